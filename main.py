#!/usr/bin/env python3
"""
detik-ingest: poll the Detik contributions feed into SQLite.

Usage:
    python main.py run       # Poll forever at the configured interval
    python main.py poll      # Run a single polling cycle and exit
    python main.py stats     # Show stored report stats
"""

import argparse
import logging
import signal
import sys
import threading

from config import load_config
from collectors import Reports, create_source
from storage import Storage


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def cmd_run(reports: Reports):
    """Start the poller and block until SIGINT/SIGTERM."""
    source = create_source(reports)
    source.initialize()

    shutdown = threading.Event()

    def handle_signal(signum, frame):
        reports.log.info(f"Received signal {signum}, shutting down")
        shutdown.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    source.start()
    shutdown.wait()
    source.stop(wait=True)


def cmd_poll(reports: Reports):
    """One cycle, for cron or debugging."""
    source = create_source(reports)
    source.initialize()
    accepted = source.run_cycle()
    print(f"Accepted {len(accepted)} new results, cursor at {source.cursor.value}")


def cmd_stats(reports: Reports):
    """Print storage stats."""
    stats = reports.storage.get_stats()
    print(f"Total reports: {stats['total_reports']}")
    print(f"Total users: {stats['total_users']}")
    print(f"Last contribution id: {stats['max_contribution_id']}")


def cli():
    parser = argparse.ArgumentParser(
        prog="detik-ingest",
        description="Incremental ingestion of Detik crowd reports",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    sub = parser.add_subparsers(dest="command", help="Command to run")

    sub.add_parser("run", parents=[common], help="Poll the feed at the configured interval")
    sub.add_parser("poll", parents=[common], help="Run a single polling cycle")
    sub.add_parser("stats", parents=[common], help="Show stored report stats")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose)
    config = load_config()
    storage = Storage(config.db_path, config.table_reports, config.table_users)
    reports = Reports(storage=storage, config=config)

    try:
        match args.command:
            case "run":
                cmd_run(reports)
            case "poll":
                cmd_poll(reports)
            case "stats":
                cmd_stats(reports)
            case _:
                parser.print_help()
    finally:
        storage.close()


if __name__ == "__main__":
    cli()
