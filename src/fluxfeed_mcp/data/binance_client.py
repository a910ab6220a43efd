"""Binance spot klines client (primary candle provider)."""

from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.data.http_client import (
    MalformedUpstreamPayloadError,
    ProviderEmptyError,
    get_json,
)
from fluxfeed_mcp.utils.ohlcv import closes_from_klines

SOURCE = "binance"
CANDLE_LIMIT = 200


async def fetch_closes(pair: str, interval: str, config: ProviderConfig) -> list[float]:
    """
    Fetch closing prices of the most recent candles, oldest first.

    Args:
        pair: Exchange trading pair (e.g., BTCUSDT)
        interval: Native interval code (15m, 1h, 4h, 1d)
        config: Provider configuration

    Returns:
        List of closing prices

    Raises:
        ProviderUnavailableError: Transport failure or non-2xx
        MalformedUpstreamPayloadError: Payload is not a kline array
        ProviderEmptyError: No candles returned
    """
    payload = await get_json(
        f"{config.binance_base_url}/klines",
        params={"symbol": pair, "interval": interval, "limit": CANDLE_LIMIT},
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )
    try:
        closes = closes_from_klines(payload)
    except (TypeError, ValueError) as e:
        raise MalformedUpstreamPayloadError(f"Bad klines for {pair}: {e}") from e
    if not closes:
        raise ProviderEmptyError(f"No candles for {pair} {interval}")
    return closes
