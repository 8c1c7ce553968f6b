#!/usr/bin/env python3
"""
Report media watched on Simkl or Trakt.

Usage:
    python track_viewing.py                      # yesterday, primary service
    python track_viewing.py 2024-01-01 2024-01-07 --service trakt
"""

from utils.cli import run_tracker_main


def main():
    run_tracker_main()


if __name__ == "__main__":
    main()
