"""
Media Tracker - viewing-history trackers for Simkl and Trakt.
"""

import logging
from typing import Callable, Dict, Optional

from utils.config import credentials_from_config, get_primary_service, get_service_config
from utils.tokens import Credentials

from .base import DEFAULT_REDIRECT_URI, BaseTracker
from .models import HistoryItem, RawHistory
from .simkl import SimklTracker, normalize_simkl_history
from .trakt import TraktTracker, normalize_trakt_history

logger = logging.getLogger('media_tracker')

TRACKER_CLASSES = {
    'simkl': SimklTracker,
    'trakt': TraktTracker,
}


def create_tracker(config: Dict, service: Optional[str] = None,
                   token_callback: Optional[Callable[[Credentials], None]] = None
                   ) -> Optional[BaseTracker]:
    """
    Create a tracker from config.

    Args:
        config: Full config dict containing the service section
        service: 'simkl' or 'trakt' (defaults to primary_service)
        token_callback: Function called when tokens are updated

    Returns:
        Tracker instance, or None if client credentials are not configured
    """
    service = (service or get_primary_service(config)).lower()
    tracker_class = TRACKER_CLASSES.get(service)
    if tracker_class is None:
        raise ValueError(f"Unsupported service '{service}'")

    service_config = get_service_config(config, service)
    if not service_config['client_id'] or not service_config['client_secret']:
        logger.warning(f"{tracker_class.api_name} client_id/client_secret not configured")
        return None

    return tracker_class(
        client_id=service_config['client_id'],
        client_secret=service_config['client_secret'],
        credentials=credentials_from_config(service_config),
        token_callback=token_callback,
        redirect_uri=service_config['redirect_uri'] or DEFAULT_REDIRECT_URI,
    )


__all__ = [
    'BaseTracker',
    'HistoryItem',
    'RawHistory',
    'SimklTracker',
    'TraktTracker',
    'TRACKER_CLASSES',
    'create_tracker',
    'normalize_simkl_history',
    'normalize_trakt_history',
]
