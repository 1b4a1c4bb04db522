#!/usr/bin/env python3
"""
Party Search Watcher - CLI Entry Point
======================================

Runs the continuous party search watcher.

Architecture:
    - Startup: load following players, fetch store accounts, acquire a session
    - Party search every minute (or hour), prime + non-prime
    - Followed players reported to the backend, at most once per cooldown
    - Session re-acquired after too many consecutive failed searches
    - Following players reloaded every hour

Usage:
    # Start watcher
    python scripts/run_watcher.py

    # Dry run (console notifications only)
    python scripts/run_watcher.py --dry-run

    # One cycle then exit
    python scripts/run_watcher.py --once --dry-run

    # Test the notification endpoint
    python scripts/run_watcher.py --test-notify
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from partywatch.config import SCHEDULE_GRAINS, config
from partywatch.monitor import WatcherService, send_test_notification
from config.watch_settings import LOG_LEVEL, LOG_FILE


def setup_logging(log_level: str = LOG_LEVEL, log_file: str = LOG_FILE):
    """Configure logging for the watcher service."""
    log_path = Path(log_file)
    if not log_path.is_absolute():
        log_path = project_root / log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Create date-stamped log file (e.g., logs/watcher_2026-01-18.log)
    date_str = datetime.now().strftime("%Y-%m-%d")
    dated_log_file = log_path.parent / f"{log_path.stem}_{date_str}{log_path.suffix}"

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = logging.FileHandler(dated_log_file)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise from HTTP libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    root_logger.info(f"Logging to: {dated_log_file}")


def main():
    parser = argparse.ArgumentParser(
        description='Party Search Watcher',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_watcher.py                  # Start watcher
  python scripts/run_watcher.py --dry-run        # Console notifications only
  python scripts/run_watcher.py --schedule hour  # Search once per hour
  python scripts/run_watcher.py --once           # One cycle then exit
  python scripts/run_watcher.py --test-notify    # Test notification endpoint
        """
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Print notifications to console instead of posting them'
    )

    parser.add_argument(
        '--schedule',
        choices=SCHEDULE_GRAINS,
        default=config.search_schedule,
        help=f'Party search tick grain (default: {config.search_schedule})'
    )

    parser.add_argument(
        '--once',
        action='store_true',
        help='Run startup and a single search cycle, then exit'
    )

    parser.add_argument(
        '--test-notify',
        action='store_true',
        help='Send a test sighting to verify the notification endpoint'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=LOG_LEVEL,
        help=f'Log level (default: {LOG_LEVEL})'
    )

    args = parser.parse_args()

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    if args.test_notify:
        print("Testing notification endpoint...")
        if send_test_notification(dry_run=args.dry_run):
            print("Test notification sent successfully!")
            sys.exit(0)
        print(f"Failed to send test notification. Check API_URL ({config.api_url}).")
        sys.exit(1)

    watch_config = replace(config, search_schedule=args.schedule)

    print("\n" + "=" * 60)
    print("PARTY SEARCH WATCHER")
    print("=" * 60)
    print(f"Backend API:     {watch_config.api_url}")
    print(f"Session gateway: {watch_config.session_gateway_url}")
    print(f"Schedule:        every {watch_config.search_schedule} ({watch_config.schedule_timezone})")
    print(f"Search filters:  {watch_config.search_rank}, {watch_config.search_game_type}")
    print(f"Cooldown:        {watch_config.notify_cooldown_sec:.0f}s")
    print(f"Dry run:         {args.dry_run}")
    print(f"Log level:       {args.log_level}")
    print("=" * 60)

    try:
        service = WatcherService(watch_config=watch_config, dry_run=args.dry_run)

        print("\nStarting watcher service...")
        print("Press Ctrl+C to stop\n")

        asyncio.run(service.run(once=args.once))

    except KeyboardInterrupt:
        print("\n\nWatcher stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Watcher service error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
