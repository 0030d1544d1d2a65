"""
Command-line interface for the shipment tracker.

Runs one scrape-reconcile-check cycle by default. Exit status is 0 when the
cycle completes (even with nothing new) and 1 on a fatal error: missing
configuration, an unreachable port listing, or an unusable ledger.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import pipeline
from .config.settings import ConfigError, TrackerConfig, build_config
from .ingest.port_listing import PortListingError
from .ledger.store import LedgerError
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def _load_config(args: argparse.Namespace) -> TrackerConfig:
    config_path = Path(args.config) if args.config else None
    return build_config(config_path=config_path, ledger_path=args.ledger)


def _report(summary: pipeline.RunSummary, args: argparse.Namespace) -> None:
    logger.info(summary.format().replace("\n", " |"))
    if args.json:
        print(json.dumps(summary.to_dict(), indent=2))
    else:
        print(summary.format())


def cmd_run(args: argparse.Namespace) -> int:
    """Scrape new departures, merge them, then check arrivals."""
    config = _load_config(args)
    summary = pipeline.run_cycle(
        config,
        check_arrivals=not args.skip_arrivals,
        dry_run=args.dry_run,
    )
    _report(summary, args)
    if args.dry_run:
        print("(dry run - no records written)")
    return 0


def cmd_scrape(args: argparse.Namespace) -> int:
    """Scrape and merge departures only."""
    config = _load_config(args)
    summary = pipeline.run_cycle(config, check_arrivals=False, dry_run=args.dry_run)
    _report(summary, args)
    if args.dry_run:
        print("(dry run - no records written)")
    return 0


def cmd_arrivals(args: argparse.Namespace) -> int:
    """Check en route shipments for arrival only."""
    config = _load_config(args)
    summary = pipeline.run_cycle(config, scrape=False)
    _report(summary, args)
    return 0


def cmd_init_ledger(args: argparse.Namespace) -> int:
    """Create the ledger file with its header row."""
    config = _load_config(args)
    store = pipeline.open_store(config)
    print(f"Ledger ready: {store.path}")
    return 0


def main(argv: Optional[list] = None) -> int:
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        prog="shiptracker",
        description="Track LNG tanker departures and arrivals for one port"
    )

    # Global options
    parser.add_argument(
        "--config",
        help="Path to tracker YAML config (default: config/tracker.yaml)"
    )
    parser.add_argument(
        "--ledger",
        help="Ledger CSV path (overrides SHIPTRACKER_LEDGER_PATH)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the run summary as JSON"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    run_parser = subparsers.add_parser("run", help="Full cycle (default)")
    run_parser.add_argument("--skip-arrivals", action="store_true", help="Don't check arrivals")
    run_parser.add_argument("--dry-run", action="store_true", help="Don't write to ledger")
    run_parser.set_defaults(func=cmd_run)

    scrape_parser = subparsers.add_parser("scrape", help="Scrape and merge departures")
    scrape_parser.add_argument("--dry-run", action="store_true", help="Don't write to ledger")
    scrape_parser.set_defaults(func=cmd_scrape)

    arrivals_parser = subparsers.add_parser("arrivals", help="Check en route shipments for arrival")
    arrivals_parser.set_defaults(func=cmd_arrivals)

    init_parser = subparsers.add_parser("init-ledger", help="Create the ledger header row")
    init_parser.set_defaults(func=cmd_init_ledger)

    argv = sys.argv[1:] if argv is None else list(argv)
    args = parser.parse_args(argv)

    # No subcommand means a full cycle
    if not args.command:
        args = parser.parse_args(argv + ["run"])

    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        return args.func(args)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except PortListingError as e:
        logger.error(f"Scrape failed: {e}")
        return 1
    except LedgerError as e:
        logger.error(f"Ledger error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
