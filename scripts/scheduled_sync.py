#!/usr/bin/env python3
"""
Scheduled synchronization script for Payload collections.

Each pass refreshes every configured collection whose sync interval has
elapsed and upserts changed entries into the local store.

Designed to be run on a schedule (cron, systemd timer) without flags, or as a
long-running process with --loop.

Usage:
    python scripts/scheduled_sync.py [--config CONFIG_PATH] [--loop] [--verbose]
"""

import argparse
import signal
import sys
import threading

from payload_sync.errors import ConfigurationError
from payload_sync.scheduler import SyncScheduler
from payload_sync.utils.config_loader import ConfigLoader
from payload_sync.utils.logging_config import configure_logging, get_logger

log = get_logger()


def main() -> int:
    """Main entry point for scheduled sync script."""
    parser = argparse.ArgumentParser(description="Scheduled synchronization for Payload collections")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Keep running and sync every scheduler.poll_seconds",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    try:
        config_loader = ConfigLoader()
        config = config_loader.load_config(args.config)
    except ConfigurationError as e:
        configure_logging(log_level="INFO", json_logs=False)
        log.error("configuration_error", error=str(e))
        return 2

    configure_logging(
        log_level="DEBUG" if args.verbose else config.logging.log_level,
        json_logs=config.logging.json_logs,
        log_file=config.logging.log_file,
    )
    config_loader.validate_config(config)

    scheduler = SyncScheduler.from_config(config)

    if args.loop:
        stop_event = threading.Event()
        signal.signal(signal.SIGINT, lambda *_: stop_event.set())
        signal.signal(signal.SIGTERM, lambda *_: stop_event.set())
        scheduler.run_forever(stop_event)
        return 0

    outcomes = scheduler.run_once()

    print("\n" + "=" * 60)
    print("SYNCHRONIZATION SUMMARY")
    print("=" * 60)
    for outcome in outcomes:
        if outcome.status == "failed":
            print(f"{outcome.collection}: FAILED ({outcome.error_type}: {outcome.error})")
        elif outcome.report is not None and not outcome.report.skipped:
            report = outcome.report
            print(
                f"{outcome.collection}: synced {report.entries_fetched} entries, "
                f"{report.records_written} written, {report.records_unchanged} unchanged "
                f"in {report.duration_seconds:.2f}s"
            )
        else:
            print(f"{outcome.collection}: {outcome.status}")
    print("=" * 60)

    return 0 if all(o.success for o in outcomes) else 1


if __name__ == "__main__":
    sys.exit(main())
