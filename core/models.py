"""
models.py
----------
Core domain models. These are the typed contracts between engine layers.

- PaymentRecord: One raw payment event as supplied by the data source.
  Partially-populated records are allowed; intake decides what is usable.

- DateRange: The current reporting period selected by the caller.

- ReconciliationResult: The full derived bundle for one (records, range)
  snapshot. Presentation layers select the pieces they need from it.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class PaymentRecord:
    """
    A single payment transaction.

    Amounts are integer minor units (cents). The engine divides by the
    configured divisor (100) to produce major-unit floats.
    """

    timestamp: Optional[str]                 # "YYYY-MM-DD HH:MM:SS.sss" or ISO-8601
    amount_minor_units: Any                  # int, numeric string, or None
    customer_id: Optional[str] = None        # Stable identity for classification
    customer_email: Optional[str] = None     # Display label only


@dataclass(frozen=True)
class DateRange:
    """
    Current reporting period. Either endpoint may be None, in which case all
    range-dependent outputs are empty. end_date is inclusive of the whole day.
    """

    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def is_complete(self) -> bool:
        return self.start_date is not None and self.end_date is not None

    @property
    def start_str(self) -> str:
        return self.start_date.strftime("%Y-%m-%d") if self.start_date else ""

    @property
    def end_str(self) -> str:
        return self.end_date.strftime("%Y-%m-%d") if self.end_date else ""


@dataclass
class DailyRevenueMetrics:
    """Retained / new / lost split for one active day of the current period."""

    date: str
    retained_revenue: float = 0.0
    new_sales: float = 0.0
    lost_revenue: float = 0.0     # Aggregate lost revenue smoothed over active days


@dataclass
class RevenueTotals:
    """Scalar KPIs for the selected period."""

    expected_revenue: float = 0.0
    actual_revenue: float = 0.0
    retained_revenue: float = 0.0
    new_sales: float = 0.0
    lost_revenue: float = 0.0


@dataclass
class CustomerEntry:
    """
    One customer row in a display list.

    Dates are YYYY-MM-DD strings; None when not applicable to the list.
    """

    customer_id: str
    email: Optional[str]
    amount: float                            # Expected (prior) or paid (new) amount
    expected_date: Optional[str] = None      # Latest prior payment shifted forward a month
    payment_date: Optional[str] = None       # Most recent current-period payment
    paid: bool = False
    paid_amount: float = 0.0
    status: Optional[str] = None             # "unpaid" | "paid" in the grouped view


@dataclass
class ExpectedCustomers:
    """Prior-period customers split by whether they paid in the current period."""

    unpaid: List[CustomerEntry] = field(default_factory=list)
    paid: List[CustomerEntry] = field(default_factory=list)


@dataclass
class ReconciliationResult:
    """
    Everything the dashboard needs for one snapshot.

    Series are date-keyed dicts in ascending date order. last_updated is a
    presentation stamp and does not take part in equality.
    """

    date_range: DateRange
    expected_revenue_per_day: Dict[str, float] = field(default_factory=dict)
    actual_revenue_per_day: Dict[str, float] = field(default_factory=dict)
    actual_customers_per_day: Dict[str, int] = field(default_factory=dict)
    combined_revenue_by_day: List[Dict[str, Any]] = field(default_factory=list)
    expected_vs_retained_by_day: List[Dict[str, Any]] = field(default_factory=list)
    revenue_metrics_by_day: List[DailyRevenueMetrics] = field(default_factory=list)
    totals: RevenueTotals = field(default_factory=RevenueTotals)
    expected_customers: ExpectedCustomers = field(default_factory=ExpectedCustomers)
    grouped_expected_customers: Dict[str, List[CustomerEntry]] = field(default_factory=dict)
    new_sales_customers: List[CustomerEntry] = field(default_factory=list)
    lost_customers: List[CustomerEntry] = field(default_factory=list)

    # Metadata
    last_updated: datetime = field(default_factory=datetime.now, compare=False)
