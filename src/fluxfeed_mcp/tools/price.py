"""Price feature extraction with a primary exchange and a secondary provider."""

import logging
from collections.abc import Sequence

from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.data import binance_client, yfinance_client
from fluxfeed_mcp.data.http_client import call_provider, first_usable
from fluxfeed_mcp.models import PriceFeatures
from fluxfeed_mcp.utils.indicators import compute_price_features

logger = logging.getLogger(__name__)

PAIR_MAP: dict[str, str] = {
    "BTC": "BTCUSDT", "ETH": "ETHUSDT", "BNB": "BNBUSDT", "SOL": "SOLUSDT",
    "XRP": "XRPUSDT", "ADA": "ADAUSDT", "DOGE": "DOGEUSDT", "AVAX": "AVAXUSDT",
    "TRX": "TRXUSDT", "DOT": "DOTUSDT", "LINK": "LINKUSDT", "MATIC": "MATICUSDT",
    "LTC": "LTCUSDT", "BCH": "BCHUSDT", "TON": "TONUSDT", "ARB": "ARBUSDT",
    "OP": "OPUSDT", "ATOM": "ATOMUSDT", "APT": "APTUSDT",
}

# Timeframe -> Binance interval code
INTERVAL_MAP = {"15m": "15m", "1h": "1h", "4h": "4h", "1d": "1d"}
VALID_TIMEFRAMES = set(INTERVAL_MAP)
DEFAULT_TIMEFRAME = "1h"

# Timeframe -> secondary provider lookback (days)
LOOKBACK_DAYS = {"15m": 1, "1h": 1, "4h": 2, "1d": 7}


def map_ticker_to_pair(ticker: str) -> str:
    """Exchange trading pair for a ticker, defaulting to {TICKER}USDT."""
    ticker = ticker.upper().strip()
    return PAIR_MAP.get(ticker, f"{ticker}USDT")


def normalize_timeframe(tf: str | None) -> str:
    """Lowercased timeframe, or 1h when it is not one of 15m/1h/4h/1d."""
    tf = (tf or "").strip().lower()
    return tf if tf in VALID_TIMEFRAMES else DEFAULT_TIMEFRAME


def build_features(closes: Sequence[float], pair: str, interval: str, source: str) -> PriceFeatures:
    """Apply the feature formulas to a close series and tag the provider."""
    feats = compute_price_features(closes)
    return PriceFeatures(
        pair=pair,
        interval=interval,
        last=feats["last"],
        change_pct=feats["change_pct"],
        momentum=feats["momentum"],
        vol=feats["vol"],
        source=source,
    )


async def extract_price_features(
    ticker: str,
    tf: str = DEFAULT_TIMEFRAME,
    config: ProviderConfig | None = None,
) -> PriceFeatures:
    """
    Fetch candles and compute price features. Never raises for provider problems.

    Tries the last 200 Binance candles first; on any fetch or feature
    failure, tries hourly Yahoo Finance closes over a timeframe-dependent
    lookback. If both fail the result has source "unavailable" and zeroed
    numbers.

    Args:
        ticker: Asset symbol (e.g., BTC)
        tf: Timeframe - 15m, 1h, 4h, 1d
        config: Provider configuration (default: from environment)

    Returns:
        PriceFeatures tagged with the contributing provider
    """
    config = config or ProviderConfig.from_env()
    ticker = ticker.upper().strip()
    tf = normalize_timeframe(tf)
    pair = map_ticker_to_pair(ticker)
    interval = INTERVAL_MAP[tf]

    async def _primary() -> PriceFeatures:
        closes = await binance_client.fetch_closes(pair, interval, config)
        return build_features(closes, pair, interval, binance_client.SOURCE)

    async def _secondary() -> PriceFeatures:
        closes = await yfinance_client.fetch_hourly_closes(ticker, LOOKBACK_DAYS[tf], config)
        return build_features(closes, f"{ticker}USD", tf, yfinance_client.SOURCE)

    result = await first_usable(
        lambda: call_provider(binance_client.SOURCE, _primary),
        lambda: call_provider(yfinance_client.SOURCE, _secondary),
    )
    if not result.is_ok or result.data is None:
        logger.warning(f"{ticker}: price unavailable from all providers ({result.error})")
        return PriceFeatures.unavailable(pair, tf)
    return result.data
