#!/usr/bin/env python3
"""
Tracker Authentication Helper.

Run this script to authenticate with Simkl or Trakt using the OAuth
authorization-code flow. Tokens are saved to config/<service>.yml for
future use.
"""

import argparse
import os
import sys
import webbrowser
from dataclasses import dataclass
from typing import Callable, Optional, Protocol
from urllib.parse import parse_qs, urlparse

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from trackers import create_tracker
from utils.config import get_primary_service, load_config, save_tokens
from utils.errors import TrackerAuthError
from utils.tokens import Credentials


@dataclass(frozen=True)
class CallbackResult:
    """One-shot result delivered to the redirect URI."""

    success: bool
    code: Optional[str] = None
    error: Optional[str] = None


class CallbackListener(Protocol):
    """
    Loopback listener receiving the OAuth redirect.

    One pending wait at a time: start(), exactly one wait_for_callback(),
    then stop().
    """

    def start(self) -> None: ...

    def wait_for_callback(self) -> CallbackResult: ...

    def stop(self) -> None: ...


def get_config_dir():
    """Get the config directory path."""
    return os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'config')


def extract_code(value: str) -> Optional[str]:
    """
    Pull the authorization code out of user input.

    Accepts either the bare code or the full redirect URL containing
    `code=...`.
    """
    value = (value or '').strip()
    if not value:
        return None
    if '?' in value or 'code=' in value:
        query = urlparse(value).query or value.split('?', 1)[-1]
        codes = parse_qs(query).get('code')
        return codes[0] if codes else None
    return value


def code_from_listener(listener: CallbackListener,
                       open_browser: Callable[[str], object] = webbrowser.open
                       ) -> Callable[[str], str]:
    """
    Build a code source that opens the browser and waits on a loopback listener.

    main() prompts for a pasted code; this is the hook for hosts that embed
    the tool and can receive the redirect themselves.

    Args:
        listener: Started and stopped around exactly one wait
        open_browser: Function opening the authorization URL

    Returns:
        Function mapping an authorization URL to the received code
    """
    def obtain(auth_url: str) -> str:
        listener.start()
        try:
            open_browser(auth_url)
            result = listener.wait_for_callback()
        finally:
            listener.stop()

        if not result.success or not result.code:
            raise TrackerAuthError(result.error or "Authentication failed")
        return result.code

    return obtain


def code_from_prompt(input_func: Optional[Callable[[str], str]] = None) -> Callable[[str], str]:
    """Build a code source that asks the user to paste the code."""
    def obtain(auth_url: str) -> str:
        read = input_func or input
        print("\033[96m1. Open: \033[93m" + auth_url + "\033[0m")
        print("\033[96m2. Approve access, then paste the code (or the whole redirect URL)\033[0m")
        print()
        code = extract_code(read("Authorization code: "))
        if not code:
            raise TrackerAuthError("No authorization code entered")
        return code

    return obtain


def authenticate(tracker, code_source: Callable[[str], str]) -> Credentials:
    """
    Run the authorization-code flow for one tracker.

    Args:
        tracker: SimklTracker or TraktTracker
        code_source: Function turning the authorization URL into a code

    Returns:
        Stored credentials after the exchange
    """
    code = code_source(tracker.get_auth_url())
    tracker.exchange_code(code)
    return tracker.get_tokens()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Authenticate Media Tracker with Simkl or Trakt")
    parser.add_argument('--service', choices=['simkl', 'trakt'],
                        help='Service to authenticate (default: primary_service from config)')
    parser.add_argument('--reauth', action='store_true',
                        help='Forget stored tokens and authenticate again')
    args = parser.parse_args(argv)

    config_dir = get_config_dir()

    # Load config
    try:
        config = load_config(os.path.join(config_dir, 'config.yml'))
        service = args.service or get_primary_service(config)
    except FileNotFoundError:
        print("\033[91mError: config/config.yml not found. Copy config/config.example.yml first.\033[0m")
        sys.exit(1)
    except ValueError as e:
        print(f"\033[91mError: {e}\033[0m")
        sys.exit(1)

    print(f"\033[96m=== {service.title()} Authentication ===\033[0m")
    print()

    def persist(credentials: Credentials):
        save_tokens(config_dir, service, credentials)

    tracker = create_tracker(config, service, token_callback=persist)
    if tracker is None:
        print(f"\033[91mError: {service} client_id or client_secret not configured.\033[0m")
        print(f"Add them to config/{service}.yml")
        sys.exit(1)

    if tracker.is_authenticated:
        if not args.reauth:
            print("Already authenticated!")
            print("To re-authenticate, run again with --reauth.")
            sys.exit(0)
        persist(tracker.clear_tokens())
        print("Stored tokens cleared.")

    try:
        authenticate(tracker, code_from_prompt())
    except TrackerAuthError as e:
        print(f"\033[91mAuthentication error: {e}\033[0m")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\033[93mCancelled.\033[0m")
        sys.exit(1)

    print()
    print("\033[92m=== Authentication Successful! ===\033[0m")
    print(f"\033[92mTokens saved to config/{service}.yml\033[0m")


if __name__ == "__main__":
    main()
