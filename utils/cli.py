"""
CLI utilities for Media Tracker.
Provides the entry point logic for the viewing-history tracker.
"""

import argparse
import json
import logging
import os
import sys
import yaml
from datetime import datetime
from typing import Dict, List, Optional

from .config import (
    __version__,
    get_primary_service,
    get_tracking_config,
    load_config,
    save_tokens,
)
from .display import (
    CYAN, GREEN, RESET,
    TeeLogger,
    log_error, log_info, log_warning,
    print_history,
    setup_logging,
)
from .errors import TrackerAPIError, TrackerAuthError
from .helpers import cleanup_old_logs, get_project_root, get_yesterday, resolve_date_range

logger = logging.getLogger('media_tracker')


def filter_tracked_items(items: List, tracking: Dict) -> List:
    """
    Drop items whose media type is switched off in the tracking config.

    Args:
        items: Normalized history items
        tracking: Dict with 'movies' and 'tv_shows' booleans

    Returns:
        Items to report, in their original order
    """
    result = []
    for item in items:
        if item.movie is not None and not tracking.get('movies', True):
            continue
        if item.episode is not None and not tracking.get('tv_shows', True):
            continue
        result.append(item)
    return result


def setup_log_file(log_dir: str, log_retention_days: int,
                   service: Optional[str] = None) -> bool:
    """
    Set up log file with TeeLogger for capturing output.

    Args:
        log_dir: Directory for log files
        log_retention_days: Days to retain logs (0 = don't log to file)
        service: Optional service suffix for log file

    Returns:
        True if logging was set up, False otherwise
    """
    if log_retention_days <= 0:
        return False

    try:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        service_suffix = f"_{service}" if service else ""
        log_file_path = os.path.join(log_dir, f"tracking{service_suffix}_{timestamp}.log")
        lf = open(log_file_path, "w", encoding="utf-8")
        sys.stdout = TeeLogger(lf)
        cleanup_old_logs(log_dir, log_retention_days)
        return True
    except Exception as e:
        log_error(f"Could not set up logging: {e}")
        return False


def teardown_log_file(original_stdout, log_retention_days: int):
    """
    Clean up log file and restore stdout.

    Args:
        original_stdout: Original sys.stdout to restore
        log_retention_days: If > 0 and stdout was redirected, close log
    """
    if log_retention_days > 0 and sys.stdout is not original_stdout:
        try:
            sys.stdout.logfile.close()
            sys.stdout = original_stdout
        except Exception as e:
            log_warning(f"Error closing log file: {e}")


def print_runtime(start_time: datetime):
    """Print formatted runtime duration."""
    runtime = datetime.now() - start_time
    hours = runtime.seconds // 3600
    minutes = (runtime.seconds % 3600) // 60
    seconds = runtime.seconds % 60
    print(f"\n{GREEN}All processing completed!{RESET}")
    print(f"Total runtime: {hours:02d}:{minutes:02d}:{seconds:02d}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Report media watched on Simkl or Trakt")
    parser.add_argument('start', nargs='?', help='First day to report (YYYY-MM-DD, default: yesterday)')
    parser.add_argument('end', nargs='?', help='Last day to report (default: same as start)')
    parser.add_argument('--service', choices=['simkl', 'trakt'],
                        help='Tracking service to query (default: primary_service from config)')
    parser.add_argument('--config', help='Path to config.yml (default: config/config.yml)')
    parser.add_argument('--json', action='store_true', help='Print unified items as JSON')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    return parser


def track_viewing(config: Dict, config_dir: str, service: str,
                  start, end, as_json: bool = False) -> int:
    """
    Fetch, filter and print history for one service.

    Args:
        config: Loaded root config
        config_dir: Directory where refreshed tokens are saved
        service: 'simkl' or 'trakt'
        start: Range start (date or ISO string)
        end: Range end (date or ISO string)
        as_json: Print JSON instead of journal lines

    Returns:
        Number of reported items
    """
    # trackers imports utils, so import lazily
    from trackers import create_tracker

    def persist(credentials):
        try:
            path = save_tokens(config_dir, service, credentials)
        except (OSError, yaml.YAMLError) as e:
            log_warning(f"Could not save refreshed {service} tokens to "
                        f"{os.path.join(config_dir, service + '.yml')}: {e}")
            return
        logger.debug(f"Saved refreshed {service} tokens to {path}")

    tracker = create_tracker(config, service, token_callback=persist)
    if tracker is None:
        raise TrackerAuthError(
            f"Please configure your {service} client_id and client_secret in the settings"
        )
    if not tracker.is_authenticated:
        raise TrackerAuthError(
            f"{tracker.api_name} is not authenticated. Run utils/tracker_auth.py first."
        )

    items = tracker.get_history(start, end)
    items = filter_tracked_items(items, get_tracking_config(config))

    if as_json:
        print(json.dumps([item.to_dict() for item in items], indent=2, ensure_ascii=False))
        return len(items)

    start_dt, end_dt = resolve_date_range(start, end)
    if not items:
        log_info(f"No media watched between {start_dt:%Y-%m-%d} and {end_dt:%Y-%m-%d}")
        return 0

    print_history(items, f"Views from {start_dt:%Y-%m-%d} to {end_dt:%Y-%m-%d} ({tracker.api_name})")
    return len(items)


def run_tracker_main(argv: Optional[List[str]] = None):
    """
    Main entry point for the viewing tracker.

    Args:
        argv: Command line arguments (defaults to sys.argv)
    """
    args = build_parser().parse_args(argv)

    start_time = datetime.now()
    if not args.json:
        print(f"{CYAN}Media Tracker v{__version__}{RESET}")
        print("-" * 50)

    config_path = args.config or os.path.join(get_project_root(), 'config/config.yml')
    config_dir = os.path.dirname(config_path) or '.'

    try:
        root_config = load_config(config_path, verbose=not args.json)
        service = args.service or get_primary_service(root_config)
    except Exception as e:
        log_error(f"Could not load config.yml: {e}")
        log_warning(f"Looking for config at: {config_path}")
        sys.exit(1)

    setup_logging(debug=args.debug, config=root_config)
    logger.debug("Debug logging enabled")

    general = root_config.get('general') or {}
    log_retention_days = general.get('log_retention_days', 0) if not args.json else 0
    log_dir = os.path.join(get_project_root(), 'logs')
    original_stdout = sys.stdout
    setup_log_file(log_dir, log_retention_days, service)

    start = args.start or get_yesterday().isoformat()
    end = args.end or start

    try:
        track_viewing(root_config, config_dir, service, start, end, as_json=args.json)
    except TrackerAuthError as e:
        log_error(f"Authentication problem: {e}")
        logger.debug("Authentication failure details", exc_info=True)
        teardown_log_file(original_stdout, log_retention_days)
        sys.exit(1)
    except (TrackerAPIError, ValueError) as e:
        log_error(f"Error tracking viewing: {e}")
        logger.debug("Tracking failure details", exc_info=True)
        teardown_log_file(original_stdout, log_retention_days)
        sys.exit(1)

    if not args.json:
        print_runtime(start_time)
    teardown_log_file(original_stdout, log_retention_days)
