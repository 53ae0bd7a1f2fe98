#!/usr/bin/env python3
"""
CLI for running and inspecting home system prediction runs.

Usage:
    python -m reporting.cli run <address_id>
    python -m reporting.cli show <address_id> [--run-id RUN_ID] [--json]
    python -m reporting.cli report <address_id> [--run-id RUN_ID] [--output-dir DIR]

Examples:
    # Start a new prediction run (retry trigger)
    python -m reporting.cli run addr-123

    # Print the latest run's predictions
    python -m reporting.cli show addr-123

    # Render the latest run as a PDF
    python -m reporting.cli report addr-123 --output-dir reports/
"""

import argparse
import json
import logging
import sys

from core.prediction_engine import PredictionRunOrchestrator
from core.store import PropertyNotFoundError, StoreError, create_store
from utils.config import Config
from utils.formatting import format_confidence, format_field_name, format_value
from .pdf_generator import ReportSuccess, generate_report
from .schemas import load_report_data


logger = logging.getLogger(__name__)


def cmd_run(args, store, config):
    """Execute a new prediction run for a property."""
    orchestrator = PredictionRunOrchestrator(
        store,
        model_version=config.model_version,
        max_workers=config.rule_workers,
    )
    result = orchestrator.run(args.address_id)

    if not result.succeeded:
        print(f"Error: Run {result.run_id} failed: {result.error}", file=sys.stderr)
        return 2 if result.property_missing else 1

    print(f"Run {result.run_id} complete ({len(result.predictions)} predictions)")
    for field_name, error in result.failed_fields.items():
        print(f"  Field {field_name} failed: {error}", file=sys.stderr)
    if result.coordinates_backfilled:
        print("  Coordinates back-filled from evidence")
    return 0


def cmd_show(args, store, config):
    """Print a run's predictions."""
    try:
        predictions = store.list_predictions(args.address_id, run_id=args.run_id)
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not predictions:
        print(f"No predictions for {args.address_id}")
        return 1

    if args.json:
        print(json.dumps([p.to_dict() for p in predictions], indent=2))
        return 0

    print(f"Run {predictions[0].run_id} ({predictions[0].model_version})")
    for prediction in predictions:
        print(
            f"  {format_field_name(prediction.field.value):<20} "
            f"{format_value(prediction.field.value, prediction.predicted_value):<20} "
            f"{format_confidence(prediction.confidence):>5}  "
            f"{prediction.provenance.source.value}"
        )
    return 0


def cmd_report(args, store, config):
    """Render a run as a Home Systems Report PDF."""
    try:
        data = load_report_data(store, args.address_id, run_id=args.run_id)
    except PropertyNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if data is None:
        print(f"No predictions for {args.address_id}", file=sys.stderr)
        return 1

    result = generate_report(data, output_dir=args.output_dir)
    if isinstance(result, ReportSuccess):
        print(f"Report generated: {result.path}")
        return 0
    print(result.message, file=sys.stderr)
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Home Systems Engine - prediction runs and reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m reporting.cli run addr-123
    python -m reporting.cli show addr-123 --json
    python -m reporting.cli report addr-123

Storage is selected with STORE_TYPE (memory | supabase).
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Start a new prediction run")
    run_parser.add_argument("address_id", help="Property address id")
    run_parser.set_defaults(func=cmd_run)

    show_parser = subparsers.add_parser("show", help="Print a run's predictions")
    show_parser.add_argument("address_id", help="Property address id")
    show_parser.add_argument("--run-id", default=None, help="Run to show (default: latest)")
    show_parser.add_argument("--json", action="store_true", help="Print raw JSON")
    show_parser.set_defaults(func=cmd_show)

    report_parser = subparsers.add_parser("report", help="Render a run as a PDF")
    report_parser.add_argument("address_id", help="Property address id")
    report_parser.add_argument("--run-id", default=None, help="Run to report (default: latest)")
    report_parser.add_argument("--output-dir", default=None, help="Output directory (default: reports/)")
    report_parser.set_defaults(func=cmd_report)

    return parser


def main(argv=None, store=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    config = Config.load()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if store is None:
        try:
            store = create_store(config)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    return args.func(args, store, config)


if __name__ == "__main__":
    sys.exit(main())
