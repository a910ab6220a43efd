"""Close-price extraction from provider payloads."""

from typing import Any

import pandas as pd

# Binance kline layout: [open_time, open, high, low, close, volume, ...]
KLINE_CLOSE_INDEX = 4


def closes_from_klines(klines: Any) -> list[float]:
    """
    Extract closing prices from a Binance klines array.

    Raises:
        ValueError: If the payload is not a list of kline rows
    """
    if not isinstance(klines, list):
        raise ValueError(f"Expected kline list, got {type(klines).__name__}")
    closes: list[float] = []
    for row in klines:
        if not isinstance(row, (list, tuple)) or len(row) <= KLINE_CLOSE_INDEX:
            raise ValueError("Malformed kline row")
        closes.append(float(row[KLINE_CLOSE_INDEX]))
    return closes


def closes_from_frame(df: pd.DataFrame) -> list[float]:
    """
    Extract closing prices from a yfinance download frame.

    Handles the multi-index columns yf.download returns for single tickers.
    """
    if df is None or df.empty:
        return []

    df = df.copy()
    if isinstance(df.columns, pd.MultiIndex):
        df.columns = df.columns.get_level_values(0)
    df.columns = [str(c).lower() for c in df.columns]

    if "close" not in df.columns:
        return []

    close = df["close"]
    # Duplicate column names collapse to a frame; keep the first
    if isinstance(close, pd.DataFrame):
        close = close.iloc[:, 0]
    return [float(v) for v in pd.to_numeric(close, errors="coerce").dropna()]
