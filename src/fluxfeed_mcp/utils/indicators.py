"""Price feature calculations."""

from collections.abc import Sequence

import numpy as np
import pandas as pd

SMA_PERIOD = 20


def calculate_sma_last(prices: pd.Series, period: int = SMA_PERIOD) -> float:
    """
    Simple moving average of the trailing ``period`` closes.

    Uses all available closes when fewer than ``period`` exist.
    """
    tail = prices.tail(period)
    if tail.empty:
        return 0.0
    return float(tail.mean())


def calculate_returns(prices: pd.Series) -> pd.Series:
    """Per-step simple returns; steps from a zero close are dropped."""
    returns = prices.pct_change(fill_method=None).iloc[1:]
    return returns.replace([np.inf, -np.inf], np.nan).dropna()


def calculate_volatility_pct(returns: pd.Series) -> float:
    """Population standard deviation of returns, in percent (0 with < 2 returns)."""
    if len(returns) < 2:
        return 0.0
    std = returns.std(ddof=0)
    if pd.isna(std):
        return 0.0
    return float(std) * 100


def compute_price_features(closes: Sequence[float] | pd.Series) -> dict[str, float]:
    """
    Derive last price, percent change, momentum and volatility.

    Args:
        closes: Closing prices ordered oldest to newest

    Returns:
        Dict with last, change_pct, momentum and vol

    Raises:
        ValueError: If there are no finite closes
    """
    prices = pd.Series(closes, dtype="float64")
    prices = prices[np.isfinite(prices)].reset_index(drop=True)
    if prices.empty:
        raise ValueError("No closing prices to compute features from")

    last = float(prices.iloc[-1])
    first = float(prices.iloc[0])
    change_pct = (last - first) / first * 100 if first else 0.0

    sma = calculate_sma_last(prices)
    momentum = (last - sma) / sma * 100 if sma else 0.0

    vol = calculate_volatility_pct(calculate_returns(prices))

    return {
        "last": last,
        "change_pct": change_pct,
        "momentum": momentum,
        "vol": vol,
    }
