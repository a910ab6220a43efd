"""Yahoo Finance price history client (secondary price provider)."""

import logging
from datetime import timedelta

import pandas as pd
import yfinance as yf

from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.data.http_client import ProviderEmptyError, run_blocking
from fluxfeed_mcp.utils.ohlcv import closes_from_frame
from fluxfeed_mcp.utils.timestamps import utc_now

logger = logging.getLogger(__name__)

SOURCE = "yfinance"

# Yahoo lists some coins under a numeric suffix to disambiguate names
YF_SYMBOL_OVERRIDES: dict[str, str] = {
    "TON": "TON11419-USD",
    "APT": "APT21794-USD",
    "ARB": "ARB11841-USD",
}


def to_yf_symbol(ticker: str) -> str:
    """Yahoo Finance symbol for a crypto ticker (BTC -> BTC-USD)."""
    ticker = ticker.upper().strip()
    return YF_SYMBOL_OVERRIDES.get(ticker, f"{ticker}-USD")


async def fetch_hourly_closes(ticker: str, days: int, config: ProviderConfig) -> list[float]:
    """
    Fetch hourly closing prices over the last ``days`` days.

    The window trails the current time, not calendar sessions.

    Args:
        ticker: Asset symbol (e.g., BTC)
        days: Lookback in days
        config: Provider configuration (timeout and retry limit)

    Returns:
        List of closing prices, oldest first

    Raises:
        ProviderUnavailableError: Timeout or retryable failure
        ProviderEmptyError: No rows returned
    """
    symbol = to_yf_symbol(ticker)
    start = utc_now() - timedelta(days=days)

    def _fetch() -> list[float]:
        df: pd.DataFrame = yf.download(
            tickers=symbol,
            start=start,
            interval="1h",
            auto_adjust=True,
            progress=False,
        )
        closes = closes_from_frame(df)
        if not closes:
            raise ProviderEmptyError(f"No data returned for {symbol}")
        return closes

    return await run_blocking(
        f"yf.download({symbol}, {days}d, 1h)",
        _fetch,
        timeout=config.request_timeout * 2,
        max_retries=config.max_retries,
    )
