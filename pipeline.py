"""
pipeline.py
------------
Main orchestration layer. Wires together:
    1. Record snapshot      →  the immutable payment records being analysed
    2. Reconciliation       →  RevenueReconciliationEngine over a DateRange
    3. Memoization          →  results cached per (records_version, date_range)
    4. Output serialization →  flat DataFrames for CSV export and tables

This is the single entry point for running the engine. Everything else
is internal machinery.

Usage:
    from pipeline import RevenueDashboardPipeline

    pipeline = RevenueDashboardPipeline(records)
    result = pipeline.run(DateRange(date(2024, 2, 1), date(2024, 2, 29)))
    frames = pipeline.to_frames(result)
"""

import logging
from typing import Any, Dict, List, Tuple

import pandas as pd

from core.dates import normalize_date_range, preset_date_range
from core.formatting import format_list_date
from core.models import CustomerEntry, DateRange, ReconciliationResult
from core.reconciliation_engine import RevenueReconciliationEngine

logger = logging.getLogger(__name__)


CUSTOMER_COLUMNS = [
    "customer_id", "email", "amount", "expected_date", "payment_date",
    "paid", "paid_amount", "status",
]


class RevenueDashboardPipeline:
    """
    Holds the current record snapshot and serves reconciliation results.

    A result is recomputed only when the records or the date range change.
    Replacing the records bumps records_version and drops every cached
    result. Returned results are shared between callers and must be
    treated as read-only.
    """

    def __init__(self, records: Any = None):
        """
        Args:
            records: Initial snapshot (DataFrame, list of dicts, or list of
                PaymentRecord). May be set later with set_records().
        """
        self.engine = RevenueReconciliationEngine()
        self._records: Any = []
        self._records_version = 0
        self._cache: Dict[Tuple[int, str, str], ReconciliationResult] = {}

        if records is not None:
            self.set_records(records)

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    @property
    def records_version(self) -> int:
        return self._records_version

    def set_records(self, records: Any) -> None:
        """Replaces the record snapshot and invalidates all cached results."""
        self._records = records.copy() if isinstance(records, pd.DataFrame) else list(records or [])
        self._records_version += 1
        self._cache.clear()
        logger.info(
            f"Records replaced. Version: {self._records_version}. "
            f"Rows: {len(self._records):,}."
        )

    def run(self, date_range: DateRange | None) -> ReconciliationResult:
        """
        Reconcile the current snapshot for a date range, reusing the cached
        result when neither input has changed.
        """
        date_range = normalize_date_range(date_range)
        key = (self._records_version, date_range.start_str, date_range.end_str)

        if key in self._cache:
            logger.debug(f"Cache hit for {key}.")
            return self._cache[key]

        logger.info(f"Computing reconciliation for {date_range.start_str or 'N/A'}..{date_range.end_str or 'N/A'}.")
        result = self.engine.reconcile(self._records, date_range)
        self._cache[key] = result
        return result

    def run_preset(self, preset: str, today=None) -> ReconciliationResult:
        """Runs a configured preset range ("today", "week", "month") ending today."""
        return self.run(preset_date_range(preset, today=today))

    # -------------------------------------------------------------------------
    # OUTPUT SERIALIZATION
    # -------------------------------------------------------------------------

    def to_frames(self, result: ReconciliationResult) -> Dict[str, pd.DataFrame]:
        """
        Flattens a result into DataFrames, one per output table:
            daily_metrics, combined_revenue, expected_vs_retained,
            expected_customers, new_sales_customers, lost_customers, totals.
        """
        daily = pd.DataFrame(
            [
                {
                    "date": m.date,
                    "expected_revenue": result.expected_revenue_per_day.get(m.date, 0.0),
                    "actual_revenue": result.actual_revenue_per_day.get(m.date, 0.0),
                    "customers": result.actual_customers_per_day.get(m.date, 0),
                    "retained_revenue": m.retained_revenue,
                    "new_sales": m.new_sales,
                    "lost_revenue": m.lost_revenue,
                }
                for m in result.revenue_metrics_by_day
            ],
            columns=[
                "date", "expected_revenue", "actual_revenue", "customers",
                "retained_revenue", "new_sales", "lost_revenue",
            ],
        )

        expected_customers = [
            c for customers in result.grouped_expected_customers.values() for c in customers
        ]

        totals = result.totals
        return {
            "daily_metrics": daily,
            "combined_revenue": pd.DataFrame(
                result.combined_revenue_by_day,
                columns=["date", "expected_revenue", "actual_revenue", "retained_revenue", "new_sales"],
            ),
            "expected_vs_retained": pd.DataFrame(
                result.expected_vs_retained_by_day,
                columns=["date", "expected_revenue", "retained_revenue"],
            ),
            "expected_customers": self._serialize_customers(expected_customers),
            "new_sales_customers": self._serialize_customers(result.new_sales_customers),
            "lost_customers": self._serialize_customers(result.lost_customers),
            "totals": pd.DataFrame([{
                "start_date": result.date_range.start_str,
                "end_date": result.date_range.end_str,
                "expected_revenue": totals.expected_revenue,
                "actual_revenue": totals.actual_revenue,
                "retained_revenue": totals.retained_revenue,
                "new_sales": totals.new_sales,
                "lost_revenue": totals.lost_revenue,
            }]),
        }

    @staticmethod
    def _serialize_customers(customers: List[CustomerEntry]) -> pd.DataFrame:
        """Customer list → DataFrame with display-formatted dates."""
        rows = [
            {
                "customer_id": c.customer_id,
                "email": c.email,
                "amount": c.amount,
                "expected_date": format_list_date(c.expected_date),
                "payment_date": format_list_date(c.payment_date),
                "paid": c.paid,
                "paid_amount": c.paid_amount,
                "status": c.status,
            }
            for c in customers
        ]
        return pd.DataFrame(rows, columns=CUSTOMER_COLUMNS)
