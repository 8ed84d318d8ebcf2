"""
customer_classifier.py
-----------------------
Customer-level views of a reconciliation.

Every customer with a payment in either period lands in exactly one bucket:
    - retained: paid in the prior window and in the current range
    - new:      paid only in the current range
    - lost:     paid only in the prior window

The lists here are display-oriented. Identity is customer_id; email is
carried along as a label. Records without a customer id never appear.
"""

from dataclasses import replace
from functools import cmp_to_key
from typing import Dict, List

import pandas as pd

from core.dates import compare_dates_descending, shift_date_forward_one_month
from core.models import CustomerEntry, ExpectedCustomers


def _by_date_descending(attr: str):
    return cmp_to_key(lambda a, b: compare_dates_descending(getattr(a, attr), getattr(b, attr)))


class CustomerClassifier:
    """Builds per-customer totals and the expected/new/lost customer lists."""

    # -------------------------------------------------------------------------
    # TOTALS
    # -------------------------------------------------------------------------

    @staticmethod
    def summarize(df: pd.DataFrame) -> pd.DataFrame:
        """
        One row per customer_id: summed amount, latest payment date, last
        known email. Rows without a customer id are ignored.
        """
        identified = df.dropna(subset=["customer_id"]) if not df.empty else df
        if identified.empty:
            return pd.DataFrame(columns=["amount", "last_date", "email"])

        return identified.groupby("customer_id", sort=True).agg(
            amount=("amount", "sum"),
            last_date=("date", "max"),
            email=("customer_email", "last"),
        )

    def customer_totals(self, df: pd.DataFrame) -> Dict[str, float]:
        """customer_id -> revenue for the given period dataset."""
        summary = self.summarize(df)
        return {cid: float(amount) for cid, amount in summary["amount"].items()}

    # -------------------------------------------------------------------------
    # LISTS
    # -------------------------------------------------------------------------

    def expected_customers(self, prior: pd.DataFrame, current: pd.DataFrame) -> ExpectedCustomers:
        """
        Prior-period customers split into paid / unpaid for the current range.

        The expected date is the customer's latest prior payment shifted
        forward one month. Paid customers also carry the summed current
        amount and their most recent current payment date. Both lists are
        newest expected date first.
        """
        prior_summary = self.summarize(prior)
        current_summary = self.summarize(current)

        result = ExpectedCustomers()
        for customer_id, row in prior_summary.iterrows():
            entry = CustomerEntry(
                customer_id=customer_id,
                email=_label(row["email"]),
                amount=float(row["amount"]),
                expected_date=shift_date_forward_one_month(row["last_date"]) or None,
            )
            if customer_id in current_summary.index:
                paid_row = current_summary.loc[customer_id]
                entry.paid = True
                entry.paid_amount = float(paid_row["amount"])
                entry.payment_date = paid_row["last_date"]
                result.paid.append(entry)
            else:
                result.unpaid.append(entry)

        result.unpaid.sort(key=_by_date_descending("expected_date"))
        result.paid.sort(key=_by_date_descending("expected_date"))
        return result

    def new_sales_customers(self, prior: pd.DataFrame, current: pd.DataFrame) -> List[CustomerEntry]:
        """
        Current customers absent from the prior window. Repeat payments add
        up; payment_date is the most recent one. Newest payment first.
        """
        prior_ids = set(self.summarize(prior).index)
        current_summary = self.summarize(current)

        customers = [
            CustomerEntry(
                customer_id=customer_id,
                email=_label(row["email"]),
                amount=float(row["amount"]),
                payment_date=row["last_date"],
            )
            for customer_id, row in current_summary.iterrows()
            if customer_id not in prior_ids
        ]
        customers.sort(key=_by_date_descending("payment_date"))
        return customers

    def lost_customers(self, prior: pd.DataFrame, current: pd.DataFrame) -> List[CustomerEntry]:
        """Prior customers with no current payment, largest amount first."""
        prior_summary = self.summarize(prior)
        current_ids = set(self.summarize(current).index)

        customers = [
            CustomerEntry(
                customer_id=customer_id,
                email=_label(row["email"]),
                amount=float(row["amount"]),
                expected_date=shift_date_forward_one_month(row["last_date"]) or None,
            )
            for customer_id, row in prior_summary.iterrows()
            if customer_id not in current_ids
        ]
        customers.sort(key=lambda c: c.amount, reverse=True)
        return customers

    @staticmethod
    def group_by_expected_date(expected: ExpectedCustomers) -> Dict[str, List[CustomerEntry]]:
        """
        Expected date -> customers due that day, each tagged "unpaid" or
        "paid" (unpaid listed first). Dates newest first; customers with no
        expected date are grouped under "".
        """
        grouped: Dict[str, List[CustomerEntry]] = {}
        for status, customers in (("unpaid", expected.unpaid), ("paid", expected.paid)):
            for customer in customers:
                tagged = replace(customer, status=status)
                grouped.setdefault(customer.expected_date or "", []).append(tagged)

        ordered = sorted(grouped.keys(), key=cmp_to_key(compare_dates_descending))
        return {day: grouped[day] for day in ordered}


def _label(value) -> str | None:
    return None if value is None or pd.isna(value) else str(value)
