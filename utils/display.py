"""
Display and logging utilities for Media Tracker.
Handles colored output, logging setup and journal-line formatting.
"""

import sys
import re
import logging
from datetime import timezone
from typing import Iterable, List

# ANSI color codes
RED = '\033[91m'
GREEN = '\033[92m'
YELLOW = '\033[93m'
CYAN = '\033[96m'
RESET = '\033[0m'

# ANSI pattern for stripping color codes from log files
ANSI_PATTERN = re.compile(r'\x1b\[[0-9;]*m')

LOGGER_NAME = 'media_tracker'

MOVIE_ICON = '🎬'
TV_ICON = '📺'


class ColoredFormatter(logging.Formatter):
    """Custom formatter that adds colors to log levels"""

    LEVEL_COLORS = {
        logging.DEBUG: CYAN,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: RED,
    }

    def format(self, record):
        # Add color to the level name
        color = self.LEVEL_COLORS.get(record.levelno, '')
        record.levelname = f"{color}{record.levelname}{RESET}"
        return super().format(record)


class TeeLogger:
    """
    A simple 'tee' class that writes to both console and a file,
    stripping ANSI color codes for the file and handling Unicode characters.
    """
    def __init__(self, logfile):
        self.logfile = logfile
        # Force UTF-8 encoding for stdout
        if hasattr(sys.stdout, 'buffer'):
            self.stdout_buffer = sys.stdout.buffer
        else:
            self.stdout_buffer = sys.stdout

    def write(self, text):
        try:
            # Write to console
            if hasattr(sys.stdout, 'buffer'):
                self.stdout_buffer.write(text.encode('utf-8'))
            else:
                sys.__stdout__.write(text)

            # Write to file (strip ANSI codes)
            stripped = ANSI_PATTERN.sub('', text)
            self.logfile.write(stripped)
        except UnicodeEncodeError:
            # Fallback for problematic characters
            safe_text = text.encode('ascii', 'replace').decode('ascii')
            if hasattr(sys.stdout, 'buffer'):
                self.stdout_buffer.write(safe_text.encode('utf-8'))
            else:
                sys.__stdout__.write(safe_text)
            stripped = ANSI_PATTERN.sub('', safe_text)
            self.logfile.write(stripped)

    def flush(self):
        if hasattr(sys.stdout, 'buffer'):
            self.stdout_buffer.flush()
        else:
            sys.__stdout__.flush()
        self.logfile.flush()


def setup_logging(debug: bool = False, config: dict = None) -> logging.Logger:
    """
    Configure logging for the tracking scripts.

    Args:
        debug: If True, set level to DEBUG. Otherwise use config or default to INFO.
        config: Optional config dict that may contain logging.level setting.

    Returns:
        Configured logger instance.
    """
    # Determine log level
    if debug:
        level = logging.DEBUG
    elif config and (config.get('logging') or {}).get('level'):
        level_str = config['logging']['level'].upper()
        level = getattr(logging, level_str, logging.INFO)
    else:
        level = logging.INFO

    handler = logging.StreamHandler()
    handler.setLevel(level)

    formatter = ColoredFormatter(
        fmt='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    # Remove existing handlers to avoid duplicates
    root_logger.handlers = []
    root_logger.addHandler(handler)

    # Suppress noisy third-party loggers
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    return logger


def log_info(message: str):
    """Log info and print without color"""
    logger = logging.getLogger(LOGGER_NAME)
    logger.info(message)
    print(message)


def log_warning(message: str):
    """Log warning and print with yellow color"""
    logger = logging.getLogger(LOGGER_NAME)
    logger.warning(message)
    print(f"{YELLOW}{message}{RESET}")


def log_error(message: str):
    """Log error and print with red color"""
    logger = logging.getLogger(LOGGER_NAME)
    logger.error(message)
    print(f"{RED}{message}{RESET}")


def format_viewing_entry(item, time_format: str = '%Y-%m-%d %H:%M') -> str:
    """
    Format a history item as one journal line.

    Args:
        item: HistoryItem (movie or episode)
        time_format: strftime format for the watched timestamp

    Returns:
        e.g. "🎬 Heat (1995) - Watched at 2024-01-02 10:00"
        or   "📺 Severance - S01E02 - Half Loop - Watched at 2024-01-02 10:00"
    """
    watched = item.watched_at.astimezone(timezone.utc).strftime(time_format)

    if item.movie is not None:
        year = f" ({item.movie.year})" if item.movie.year else ""
        return f"{MOVIE_ICON} {item.movie.title}{year} - Watched at {watched}"

    episode = item.episode
    episode_title = f" - {episode.title}" if episode.title else ""
    return f"{TV_ICON} {item.show.title} - {episode.code}{episode_title} - Watched at {watched}"


def format_viewing_entries(items: Iterable, time_format: str = '%Y-%m-%d %H:%M') -> str:
    """Format history items as journal lines, one per item."""
    return '\n'.join(format_viewing_entry(item, time_format) for item in items)


def print_history(items: List, heading: str) -> None:
    """Print a heading and one colored journal line per item."""
    print(f"\n{GREEN}{heading}{RESET}")
    print("-" * 50)
    for item in items:
        print(f"{CYAN}{format_viewing_entry(item)}{RESET}")
