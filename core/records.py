"""
records.py
-----------
Record intake. Turns whatever the data source hands us (a DataFrame, a list
of dicts, or PaymentRecord objects) into one normalized DataFrame that the
engine can group on.

Normalized columns:
    timestamp       Timestamp text after timezone normalization
    date            YYYY-MM-DD bucket (extract_date_only of timestamp)
    amount          Major-unit float (minor units / divisor)
    customer_id     str, or None when missing
    customer_email  str, or None when missing

Records missing a timestamp or an amount are dropped here and never reach
any aggregate. Amounts that are present but unparsable become 0.
The caller's input is never modified.
"""

import logging
from dataclasses import asdict
from typing import Any

import pandas as pd

from core.dates import extract_date_only
from core.models import PaymentRecord
from config.config_loader import get_record_fields_config, get_reconciliation_config

logger = logging.getLogger(__name__)

NORMALIZED_COLUMNS = ["timestamp", "date", "amount", "customer_id", "customer_email"]

# PaymentRecord attribute -> logical field name in config
_RECORD_ATTRS = {
    "timestamp": "timestamp",
    "amount_minor_units": "amount",
    "customer_id": "customer_id",
    "customer_email": "customer_email",
}


# =============================================================================
# LOADING
# =============================================================================

def load_records_csv(path: str) -> pd.DataFrame:
    """Reads a payments CSV. Every column is read as text; intake does the coercion."""
    return pd.read_csv(path, dtype=str)


def records_to_frame(records: Any) -> pd.DataFrame:
    """
    Converts supported record containers to a DataFrame keyed by the
    logical field names (timestamp, amount, customer_id, customer_email).
    """
    fields = get_record_fields_config()

    if isinstance(records, pd.DataFrame):
        df = pd.DataFrame(index=records.index)
        for logical, physical in fields.items():
            df[logical] = records[physical] if physical in records.columns else None
        return df.reset_index(drop=True)

    rows = []
    for record in records or []:
        if isinstance(record, PaymentRecord):
            raw = asdict(record)
            rows.append({_RECORD_ATTRS[k]: v for k, v in raw.items()})
        elif isinstance(record, dict):
            rows.append({logical: record.get(physical) for logical, physical in fields.items()})
        else:
            logger.debug(f"Skipping unsupported record type: {type(record).__name__}")

    return pd.DataFrame(rows, columns=list(fields.keys()))


# =============================================================================
# NORMALIZATION
# =============================================================================

def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def normalize_timestamp(value: Any, timezone: str) -> Any:
    """
    Converts a timestamp to `timezone` and re-emits it as ISO text.
    Naive timestamps are taken to already be in `timezone`. Local times
    skipped by a DST change move forward to the first valid instant.
    Unparsable values, and local times repeated by a DST change, are
    returned unchanged.
    """
    if _is_missing(value):
        return value
    try:
        ts = pd.Timestamp(value)
        if not pd.isna(ts):
            if ts.tzinfo is None:
                ts = ts.tz_localize(timezone, nonexistent="shift_forward", ambiguous="NaT")
            else:
                ts = ts.tz_convert(timezone)
    except (TypeError, ValueError):
        logger.debug(f"Could not parse timestamp {value!r}; keeping as-is.")
        return value
    if pd.isna(ts):
        return value
    return ts.strftime("%Y-%m-%dT%H:%M:%S")


def _clean_identity(value: Any) -> str | None:
    return None if _is_missing(value) else str(value).strip()


def prepare_records(records: Any) -> pd.DataFrame:
    """
    Builds the normalized record frame (see module docstring).

    Args:
        records: DataFrame (configured column names), list of dicts, or
            list of PaymentRecord.

    Returns:
        DataFrame with NORMALIZED_COLUMNS. Empty (with columns) when nothing
        is usable.
    """
    config = get_reconciliation_config()
    divisor = config["minor_units_per_major"]
    timezone = config.get("timezone")

    df = records_to_frame(records)
    if df.empty:
        return pd.DataFrame(columns=NORMALIZED_COLUMNS)

    usable = ~df["timestamp"].map(_is_missing) & ~df["amount"].map(_is_missing)
    skipped = int((~usable).sum())
    if skipped:
        logger.debug(f"Dropped {skipped:,} records missing timestamp or amount.")

    df = df[usable].copy()
    if df.empty:
        return pd.DataFrame(columns=NORMALIZED_COLUMNS)

    if timezone:
        df["timestamp"] = df["timestamp"].map(lambda v: normalize_timestamp(v, timezone))

    df["date"] = df["timestamp"].map(extract_date_only)
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0).astype(float) / divisor
    df["customer_id"] = df["customer_id"].map(_clean_identity).astype(object)
    df["customer_email"] = df["customer_email"].map(_clean_identity).astype(object)

    return df[NORMALIZED_COLUMNS].reset_index(drop=True)


def filter_by_dates(df: pd.DataFrame, start: str, end: str) -> pd.DataFrame:
    """Rows whose YYYY-MM-DD bucket lies in [start, end] (string comparison)."""
    if df.empty:
        return df
    mask = (df["date"] >= start) & (df["date"] <= end)
    return df[mask]
