"""Timestamp parsing for provider payloads."""

from datetime import datetime
from typing import Any

import pandas as pd
import pytz


def utc_now() -> datetime:
    """Current wall-clock time, tz-aware UTC."""
    return datetime.now(pytz.UTC)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a provider timestamp into a tz-aware UTC datetime.

    Handles ISO-8601 strings, RFC 2822 strings (CryptoNews ``date`` field),
    naive datetimes (assumed UTC) and pandas Timestamps.

    Returns:
        Parsed datetime or None if value is missing or unparseable
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime) and not isinstance(value, pd.Timestamp):
        if value.tzinfo is None:
            return pytz.UTC.localize(value)
        return value.astimezone(pytz.UTC)
    try:
        ts = pd.to_datetime(value, utc=True)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()
