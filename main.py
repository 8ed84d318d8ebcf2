"""
main.py
--------
Entry point for the Revenue Reconciliation Dashboard engine.

Reads payment records from CSV, reconciles a reporting period against the
prior month, and writes the derived tables to the outputs/ folder.

Usage (from the project root):
    python main.py --start 2024-02-01 --end 2024-02-29

    # With optional arguments:
    python main.py --input path/to/payments.csv --preset week
    python main.py --start 2024-04-01 --end 2024-04-30 --output-dir reports/
"""

import sys
import os
import argparse
import logging
from datetime import date, datetime

# Ensure project root is on path (for runs from any working directory)
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from pipeline import RevenueDashboardPipeline
from core.dates import preset_date_range
from core.formatting import display_date_range, format_currency, format_timestamp
from core.models import DateRange, ReconciliationResult
from core.records import load_records_csv
from config.config_loader import get_date_presets, get_output_config


# =============================================================================
# LOGGING SETUP
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("main")


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def _iso_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM-DD, got '{value}'")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Revenue Reconciliation: expected vs actual revenue against the prior month."
    )
    parser.add_argument(
        "--input", type=str, default=None,
        help="Path to payments CSV. Defaults to the configured sample file in project root."
    )
    parser.add_argument(
        "--start", type=_iso_date, default=None,
        help="Start of the reporting period (YYYY-MM-DD)."
    )
    parser.add_argument(
        "--end", type=_iso_date, default=None,
        help="End of the reporting period, inclusive (YYYY-MM-DD)."
    )
    parser.add_argument(
        "--preset", type=str, default=None,
        choices=sorted(get_date_presets().keys()),
        help="Preset range ending today. Ignored when --start/--end are given. Default: month."
    )
    parser.add_argument(
        "--output-dir", type=str, default=None,
        help="Output directory. Defaults to outputs/ in project root."
    )
    return parser.parse_args(argv)


def resolve_date_range(args: argparse.Namespace) -> DateRange:
    """Explicit --start/--end win; otherwise the preset (default "month")."""
    if args.start or args.end:
        return DateRange(start_date=args.start, end_date=args.end)
    return preset_date_range(args.preset or "month")


# =============================================================================
# MAIN
# =============================================================================

def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    output_config = get_output_config()

    # --- Resolve paths ---
    input_path = args.input or os.path.join(PROJECT_ROOT, output_config["default_input"])
    output_dir = args.output_dir or os.path.join(PROJECT_ROOT, output_config["output_dir"])
    os.makedirs(output_dir, exist_ok=True)

    # --- Load payments ---
    logger.info(f"Loading payments from: {input_path}")
    if not os.path.exists(input_path):
        logger.error(f"Input file not found: {input_path}")
        sys.exit(1)

    records = load_records_csv(input_path)
    logger.info(f"Loaded {len(records):,} payment records.")

    # --- Run pipeline ---
    date_range = resolve_date_range(args)
    pipeline = RevenueDashboardPipeline(records)
    result = pipeline.run(date_range)

    # --- Output: derived tables ---
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    for name, frame in pipeline.to_frames(result).items():
        path = os.path.join(output_dir, f"{name}_{timestamp}.csv")
        frame.to_csv(path, index=False)
        logger.info(f"{name} saved to: {path} ({len(frame):,} rows)")

    # --- Print summary ---
    _print_summary(result)
    return 0


def _print_summary(result: ReconciliationResult):
    """Prints a clean KPI summary to the console."""
    labels = display_date_range(result.date_range)
    totals = result.totals

    print("\n" + "=" * 80)
    print(f"  REVENUE RECONCILIATION  {labels['start']} – {labels['end']}")
    print(f"  Last updated: {format_timestamp(result.last_updated)}")
    print("=" * 80)

    if not result.revenue_metrics_by_day and not result.expected_revenue_per_day:
        print("\n  No payments in the selected period or the prior month.\n")
        return

    print("\n  Totals:")
    print("  " + "-" * 60)
    for label, value in [
        ("Expected Revenue", totals.expected_revenue),
        ("Actual Revenue", totals.actual_revenue),
        ("Retained Revenue", totals.retained_revenue),
        ("New Sales", totals.new_sales),
        ("Lost Revenue", totals.lost_revenue),
    ]:
        print(f"    {label:20s}  {format_currency(value):>16s}")

    print("\n  Customers:")
    print("  " + "-" * 60)
    print(f"    {'Expected, paid':20s}  {len(result.expected_customers.paid):>16,}")
    print(f"    {'Expected, unpaid':20s}  {len(result.expected_customers.unpaid):>16,}")
    print(f"    {'New':20s}  {len(result.new_sales_customers):>16,}")
    print(f"    {'Lost':20s}  {len(result.lost_customers):>16,}")
    print("=" * 80 + "\n")


if __name__ == "__main__":
    sys.exit(main())
