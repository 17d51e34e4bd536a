"""Command line entry point for the collateral backfill."""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .clients.catalog import CatalogClient
from .exceptions import BackfillError
from .extractors.base import PagedCollector
from .models.migration import TASK_ORDER, BackfillConfig, BackfillRun
from .orchestrator import BackfillOrchestrator
from .services.classification import load_classification_map

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Collateral Backfill - add collateral fields to products, salons and promotions"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run the backfill
    run_parser = subparsers.add_parser("run", help="Run the backfill")
    run_parser.add_argument("--config", help="Path to backfill config file (JSON)")
    run_parser.add_argument("--dry-run", action="store_true", help="Report candidates without changes")
    run_parser.add_argument("--tasks", nargs="+", choices=TASK_ORDER, help="Tasks to run (default: all)")
    run_parser.add_argument("--buyer-id", help="Buyer whose salons are migrated")
    run_parser.add_argument("--output-dir", help="Directory for reports")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # List buyers
    buyers_parser = subparsers.add_parser("buyers", help="List buyer ids")
    buyers_parser.add_argument("--config", help="Path to backfill config file (JSON)")
    buyers_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Show classification map
    map_parser = subparsers.add_parser("classifications", help="Show the salon classification map")
    map_parser.add_argument("--map", help="Path to a classification map JSON file")

    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        if args.command == "run":
            return run_backfill(args)
        elif args.command == "buyers":
            return list_buyers(args)
        elif args.command == "classifications":
            return show_classifications(args)
        else:
            parser.print_help()
            return 2
    except BackfillError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


def load_config(args) -> BackfillConfig:
    """Load the config file (if any), then environment overrides."""
    if getattr(args, "config", None):
        config = BackfillConfig.from_file(args.config)
    else:
        config = BackfillConfig()
    return config.with_env()


def run_backfill(args) -> int:
    """Run the backfill from config file and flags."""
    config = load_config(args)

    if args.dry_run:
        config.dry_run = True
    if args.tasks:
        config.tasks = args.tasks
    if args.buyer_id:
        config.catalog.buyer_id = args.buyer_id
    if args.output_dir:
        config.output_dir = args.output_dir

    errors = config.validate()
    if errors:
        print("Invalid configuration:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 2

    orchestrator = BackfillOrchestrator(config)
    result = asyncio.run(orchestrator.run_backfill())

    print_summary(result)
    return result.exit_code


def print_summary(run: BackfillRun) -> None:
    print("\n" + "=" * 60)
    print("BACKFILL COMPLETE" + (" (DRY RUN)" if run.dry_run else ""))
    print("=" * 60)
    for result in run.results:
        print(f"\n{result.task}: {result.status.value}")
        if result.fatal_error:
            print(f"  Error: {result.fatal_error}")
            continue
        print(f"  Records: {result.total_records}")
        print(f"  Candidates: {result.total_candidates}")
        print(f"  Updated: {result.total_updated}")
        print(f"  Failed: {result.total_failed}")
        if result.total_unclassified:
            print(f"  Unclassified (not migrated): {result.total_unclassified}")
        if result.report_path:
            print(f"  Report: {result.report_path}")
    if run.duration_seconds:
        print(f"\nDuration: {run.duration_seconds:.2f} seconds")


def list_buyers(args) -> int:
    """Print the ids of all buyers, to pick the salons scope."""
    config = load_config(args)

    async def fetch():
        async with CatalogClient(config.catalog) as catalog:
            return await PagedCollector(catalog.list_buyers, label="buyers").collect()

    buyers = asyncio.run(fetch())
    for buyer in buyers:
        print(f"{buyer.id}\t{buyer.data.get('Name', '')}")
    return 0


def show_classifications(args) -> int:
    """Print the classification map as JSON."""
    classifications = load_classification_map(args.map)
    print(json.dumps(dict(classifications), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
