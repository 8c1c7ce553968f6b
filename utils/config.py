"""
Configuration utilities for Media Tracker.
Handles config loading, per-service sections and token persistence.
"""

import os
import yaml
from typing import Dict, Optional

from .tokens import Credentials

# Project version - single source of truth
__version__ = "1.0.0"

# Services with a tracker implementation
SUPPORTED_SERVICES = ('simkl', 'trakt')
DEFAULT_PRIMARY_SERVICE = 'simkl'

# Placeholders shipped in example configs
PLACEHOLDER_VALUES = {'', 'null', 'YOUR_SIMKL_CLIENT_ID', 'YOUR_TRAKT_CLIENT_ID',
                      'YOUR_SIMKL_CLIENT_SECRET', 'YOUR_TRAKT_CLIENT_SECRET'}

# Environment variables that take precedence over config values
ENV_OVERRIDES = [
    ('SIMKL_CLIENT_ID', 'simkl', 'client_id'),
    ('SIMKL_CLIENT_SECRET', 'simkl', 'client_secret'),
    ('TRAKT_CLIENT_ID', 'trakt', 'client_id'),
    ('TRAKT_CLIENT_SECRET', 'trakt', 'client_secret'),
]


def get_config_section(config: Dict, key: str, default: Dict = None) -> Dict:
    """
    Get a config section case-insensitively.

    Args:
        config: The configuration dictionary
        key: The key to look for (will check lowercase and uppercase)
        default: Default value if key not found

    Returns:
        The config section or default value
    """
    if default is None:
        default = {}
    # Try lowercase first (preferred), then uppercase for backwards compatibility
    section = config.get(key.lower(), config.get(key.upper(), default))
    return section if section is not None else default


def _load_module_configs(config: dict, config_dir: str, verbose: bool = True) -> dict:
    """
    Load and merge per-service config files into the main config.

    Loads simkl.yml and trakt.yml if they exist; module files take
    precedence over the matching section of config.yml.
    """
    for module in SUPPORTED_SERVICES:
        module_path = os.path.join(config_dir, f'{module}.yml')
        if os.path.exists(module_path):
            try:
                with open(module_path, 'r', encoding='utf-8') as f:
                    module_config = yaml.safe_load(f)
                    if module_config:
                        merged = dict(get_config_section(config, module))
                        merged.update(module_config)
                        config[module] = merged
                        if verbose:
                            print(f"  Loaded {module}.yml")
            except Exception as e:
                print(f"\033[93mWarning: Could not load {module}.yml: {e}\033[0m")

    return config


def load_config(config_path: str, verbose: bool = True) -> dict:
    """
    Load YAML configuration with per-service config file support.

    Loads config.yml and merges optional module files:
    - simkl.yml: Simkl client credentials and tokens
    - trakt.yml: Trakt client credentials and tokens

    Environment variables take precedence over all config values:
        SIMKL_CLIENT_ID      -> simkl.client_id
        SIMKL_CLIENT_SECRET  -> simkl.client_secret
        TRAKT_CLIENT_ID      -> trakt.client_id
        TRAKT_CLIENT_SECRET  -> trakt.client_secret

    Args:
        config_path: Path to config.yml file
        verbose: Print which files and overrides were used

    Returns:
        Parsed and merged config dictionary
    """
    try:
        with open(config_path, 'r', encoding='utf-8') as file:
            config = yaml.safe_load(file) or {}
            if verbose:
                print(f"Successfully loaded configuration from {config_path}")

        config_dir = os.path.dirname(config_path) or '.'

        # Load and merge modular config files
        config = _load_module_configs(config, config_dir, verbose)

        for env_var, section, key in ENV_OVERRIDES:
            value = os.environ.get(env_var)
            if value:
                if not isinstance(config.get(section), dict):
                    config[section] = {}
                config[section][key] = value
                if verbose:
                    print(f"  Using {env_var} from environment")

        return config
    except Exception as e:
        print(f"\033[91mError loading config from {config_path}: {e}\033[0m")
        raise


def get_primary_service(config: Dict) -> str:
    """
    Get the service selected as primary, defaulting to Simkl.

    Raises:
        ValueError: If the configured service is not supported
    """
    service = str(config.get('primary_service') or DEFAULT_PRIMARY_SERVICE).lower()
    if service not in SUPPORTED_SERVICES:
        raise ValueError(f"Unsupported primary_service '{service}', expected one of {SUPPORTED_SERVICES}")
    return service


def _clean(value) -> Optional[str]:
    """Treat placeholder strings from example configs as unset."""
    if value is None:
        return None
    value = str(value).strip()
    return None if value in PLACEHOLDER_VALUES else value


def get_service_config(config: Dict, service: str) -> Dict:
    """
    Get a service's settings with placeholders normalized to None.

    Args:
        config: Root configuration dictionary
        service: 'simkl' or 'trakt'

    Returns:
        Dict with client_id, client_secret, access_token, refresh_token,
        token_expires_at and redirect_uri keys
    """
    section = get_config_section(config, service)
    expires_at = section.get('token_expires_at')
    try:
        expires_at = float(expires_at) if expires_at not in (None, '', 'null') else None
    except (TypeError, ValueError):
        expires_at = None

    return {
        'client_id': _clean(section.get('client_id')),
        'client_secret': _clean(section.get('client_secret')),
        'access_token': _clean(section.get('access_token')),
        'refresh_token': _clean(section.get('refresh_token')),
        'token_expires_at': expires_at,
        'redirect_uri': _clean(section.get('redirect_uri')),
    }


def credentials_from_config(service_config: Dict) -> Credentials:
    """Build a Credentials snapshot from a normalized service section."""
    return Credentials(
        access_token=service_config.get('access_token'),
        refresh_token=service_config.get('refresh_token'),
        expires_at=service_config.get('token_expires_at'),
    )


def get_tracking_config(config: Dict) -> Dict:
    """Get movie / TV toggles, both enabled by default."""
    tracking = get_config_section(config, 'tracking')
    return {
        'movies': tracking.get('movies', True),
        'tv_shows': tracking.get('tv_shows', True),
    }


def save_tokens(config_dir: str, service: str, credentials: Credentials) -> str:
    """
    Save tokens to the service's module file (simkl.yml / trakt.yml).

    Existing keys such as client_id are kept. Clearing credentials writes
    null tokens.

    Args:
        config_dir: Directory holding config.yml
        service: 'simkl' or 'trakt'
        credentials: Snapshot to persist

    Returns:
        Path of the written file
    """
    module_path = os.path.join(config_dir, f'{service}.yml')

    module_config = {}
    if os.path.exists(module_path):
        with open(module_path, 'r', encoding='utf-8') as f:
            module_config = yaml.safe_load(f) or {}

    module_config['access_token'] = credentials.access_token
    module_config['refresh_token'] = credentials.refresh_token
    module_config['token_expires_at'] = credentials.expires_at

    os.makedirs(config_dir, exist_ok=True)
    with open(module_path, 'w', encoding='utf-8') as f:
        yaml.dump(module_config, f, default_flow_style=False, sort_keys=False)

    return module_path
