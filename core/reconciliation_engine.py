"""
reconciliation_engine.py
-------------------------
Revenue reconciliation: "what we expected this period based on last period"
versus "what actually happened".

Given payment records and a current-period DateRange the engine:
    1. Derives the prior-period window (one month back, end extended when
       the prior month is longer) and its dataset.
    2. Projects prior revenue forward into the current period's month
       (expected revenue per day, clamped to the month's last day).
    3. Sums actual revenue and distinct customers per day for the literal
       range.
    4. Splits each active day's revenue into retained (customer paid in the
       prior period) and new sales, and smooths the aggregate lost revenue
       evenly across active days.
    5. Builds customer lists via CustomerClassifier.

Design decisions:
    - Pure over its inputs. Records are copied during intake; nothing the
      caller passed in is modified, and no state is kept between calls.
    - Data problems never raise. Unusable records are dropped during intake,
      incomplete ranges produce the empty bundle.
    - Payments without a customer id count toward actual revenue and new
      sales, so retained + new always equals actual revenue. They never
      appear in customer lists or in lost revenue.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Tuple

import pandas as pd

from core.customer_classifier import CustomerClassifier
from core.dates import normalize_date_range, prior_period_window, shift_into_month
from core.models import DailyRevenueMetrics, DateRange, ReconciliationResult, RevenueTotals
from core.records import filter_by_dates, prepare_records

logger = logging.getLogger(__name__)


class RevenueReconciliationEngine:
    """
    Reconciles expected against actual revenue for a reporting period.

    Usage:
        engine = RevenueReconciliationEngine()
        result = engine.reconcile(records, DateRange(date(2024, 2, 1), date(2024, 2, 29)))
    """

    def __init__(self):
        self.classifier = CustomerClassifier()

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def reconcile(self, records: Any, date_range: DateRange) -> ReconciliationResult:
        """
        Run the full reconciliation for one snapshot.

        Args:
            records: DataFrame, list of dicts, or list of PaymentRecord.
            date_range: Current reporting period. Endpoints may be date,
                datetime, or YYYY-MM-DD strings; None or unparsable endpoints
                yield an empty result.

        Returns:
            ReconciliationResult with every derived series, totals and
            customer list.
        """
        date_range = normalize_date_range(date_range)
        if not date_range.is_complete or date_range.start_date > date_range.end_date:
            return ReconciliationResult(date_range=date_range)

        df = prepare_records(records)

        prior_start, prior_end = prior_period_window(date_range)
        prior = filter_by_dates(df, prior_start, prior_end)
        current = filter_by_dates(df, date_range.start_str, date_range.end_str)

        logger.info(
            f"Reconciling {date_range.start_str}..{date_range.end_str} "
            f"against prior window {prior_start}..{prior_end}. "
            f"Prior rows: {len(prior):,}. Current rows: {len(current):,}."
        )

        expected = self.expected_revenue_per_day(prior, date_range.start_date)
        actual, customer_counts = self.actual_revenue_per_day(current)
        metrics_by_day, lost_revenue = self.revenue_metrics_by_day(prior, current)

        totals = RevenueTotals(
            expected_revenue=sum(expected.values(), 0.0),
            actual_revenue=sum(actual.values(), 0.0),
            retained_revenue=sum((m.retained_revenue for m in metrics_by_day), 0.0),
            new_sales=sum((m.new_sales for m in metrics_by_day), 0.0),
            lost_revenue=lost_revenue,
        )

        expected_customers = self.classifier.expected_customers(prior, current)

        return ReconciliationResult(
            date_range=date_range,
            expected_revenue_per_day=expected,
            actual_revenue_per_day=actual,
            actual_customers_per_day=customer_counts,
            combined_revenue_by_day=self._combine_series(
                expected=expected,
                actual=actual,
                retained={m.date: m.retained_revenue for m in metrics_by_day},
                new={m.date: m.new_sales for m in metrics_by_day},
            ),
            expected_vs_retained_by_day=self._combine_series(
                expected=expected,
                retained={m.date: m.retained_revenue for m in metrics_by_day},
            ),
            revenue_metrics_by_day=metrics_by_day,
            totals=totals,
            expected_customers=expected_customers,
            grouped_expected_customers=self.classifier.group_by_expected_date(expected_customers),
            new_sales_customers=self.classifier.new_sales_customers(prior, current),
            lost_customers=self.classifier.lost_customers(prior, current),
        )

    # -------------------------------------------------------------------------
    # EXPECTED & ACTUAL SERIES
    # -------------------------------------------------------------------------

    def expected_revenue_per_day(self, prior: pd.DataFrame, target_start: date) -> Dict[str, float]:
        """
        Sums prior revenue per original date, then moves each date into the
        target month (taken from the current period's start). Days past the
        target month's end collapse onto its last day and their amounts add.
        """
        if prior.empty:
            return {}

        by_source_date = prior.groupby("date", sort=True)["amount"].sum()

        shifted: Dict[str, float] = {}
        for source_date, amount in by_source_date.items():
            target = shift_into_month(source_date, target_start.year, target_start.month)
            if not target:
                logger.debug(f"Skipping unparsable prior date {source_date!r}.")
                continue
            shifted[target] = shifted.get(target, 0.0) + float(amount)

        return dict(sorted(shifted.items()))

    def actual_revenue_per_day(self, current: pd.DataFrame) -> Tuple[Dict[str, float], Dict[str, int]]:
        """
        Unshifted revenue per day for the literal range, plus the number of
        distinct customers paying on each day.
        """
        if current.empty:
            return {}, {}

        revenue = current.groupby("date", sort=True)["amount"].sum()
        customers = (
            current.dropna(subset=["customer_id"])
            .groupby("date")["customer_id"]
            .nunique()
            .reindex(revenue.index, fill_value=0)
        )

        return (
            {d: float(v) for d, v in revenue.items()},
            {d: int(v) for d, v in customers.items()},
        )

    # -------------------------------------------------------------------------
    # RETAINED / NEW / LOST
    # -------------------------------------------------------------------------

    def revenue_metrics_by_day(
        self, prior: pd.DataFrame, current: pd.DataFrame
    ) -> Tuple[List[DailyRevenueMetrics], float]:
        """
        Per-day retained/new split plus the aggregate lost revenue.

        Lost revenue is prior revenue from customers with no current-period
        payment. It has no natural day, so it is divided evenly across the
        active days and attached to each. With no active days it is only
        returned as the aggregate.

        Returns:
            (metrics sorted by date, aggregate lost revenue)
        """
        prior_totals = self.classifier.customer_totals(prior)
        current_totals = self.classifier.customer_totals(current)

        lost_revenue = float(
            sum(amount for cid, amount in prior_totals.items() if cid not in current_totals)
        )

        if current.empty:
            return [], lost_revenue

        is_retained = current["customer_id"].isin(list(prior_totals))
        retained = current["amount"].where(is_retained, 0.0).groupby(current["date"]).sum()
        new = current["amount"].where(~is_retained, 0.0).groupby(current["date"]).sum()

        metrics = [
            DailyRevenueMetrics(
                date=day,
                retained_revenue=float(retained[day]),
                new_sales=float(new[day]),
            )
            for day in sorted(retained.index)
        ]

        if metrics and lost_revenue > 0:
            lost_per_day = lost_revenue / len(metrics)
            for day_metrics in metrics:
                day_metrics.lost_revenue = lost_per_day

        logger.info(
            f"Active days: {len(metrics):,}. Prior customers: {len(prior_totals):,}. "
            f"Current customers: {len(current_totals):,}."
        )

        return metrics, lost_revenue

    # -------------------------------------------------------------------------
    # INTERNAL
    # -------------------------------------------------------------------------

    @staticmethod
    def _combine_series(**series: Dict[str, float]) -> List[Dict[str, Any]]:
        """
        Outer-joins date-keyed series into one row per date, zero-filling
        where a series has no value. Column names follow the keyword names
        (expected -> expected_revenue, new -> new_sales, etc.).
        """
        columns = {
            "expected": "expected_revenue",
            "actual": "actual_revenue",
            "retained": "retained_revenue",
            "new": "new_sales",
        }
        if not any(series.values()):
            return []

        frame = pd.DataFrame(
            {columns[name]: pd.Series(values, dtype=float) for name, values in series.items()}
        ).fillna(0.0).sort_index()

        return [
            {"date": day, **{col: float(frame.at[day, col]) for col in frame.columns}}
            for day in frame.index
        ]
