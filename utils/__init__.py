"""
Media Tracker Utilities Package.

This package contains modular utility functions organized by responsibility.
All public names are re-exported here for convenience.
"""

# Config utilities
from .config import (
    __version__,
    SUPPORTED_SERVICES,
    DEFAULT_PRIMARY_SERVICE,
    get_config_section,
    load_config,
    get_primary_service,
    get_service_config,
    credentials_from_config,
    get_tracking_config,
    save_tokens,
)

# Display utilities
from .display import (
    RED,
    GREEN,
    YELLOW,
    CYAN,
    RESET,
    ANSI_PATTERN,
    ColoredFormatter,
    TeeLogger,
    setup_logging,
    log_info,
    log_warning,
    log_error,
    format_viewing_entry,
    format_viewing_entries,
    print_history,
)

# Errors
from .errors import (
    TrackerError,
    TrackerAuthError,
    NotAuthenticatedError,
    AuthenticationExpiredError,
    NoRefreshTokenError,
    InvalidCredentialsError,
    TokenExchangeError,
    MalformedTokenResponseError,
    TrackerAPIError,
    UpstreamError,
    MalformedPayloadError,
)

# Token lifecycle
from .tokens import (
    TOKEN_REFRESH_SKEW,
    Credentials,
    TokenStore,
    TokenLifecycleManager,
)

# Helper utilities
from .helpers import (
    get_project_root,
    parse_timestamp,
    format_timestamp,
    resolve_date_range,
    get_yesterday,
    cleanup_old_logs,
)

# HTTP client base
from .api_client import BaseAPIClient

# CLI utilities
from .cli import (
    filter_tracked_items,
    setup_log_file,
    teardown_log_file,
    print_runtime,
    track_viewing,
    run_tracker_main,
)
