"""Signal synthesis: sentiment plus price availability into BUY/SELL/NEUTRAL."""

import asyncio
import logging
import math
from datetime import datetime
from typing import Any

from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.models import (
    HEALTHY,
    LOW_COVERAGE,
    METHOD_FALLBACK,
    PriceFeatures,
    SentimentResolution,
    Signal,
)
from fluxfeed_mcp.tools.price import extract_price_features, map_ticker_to_pair, normalize_timeframe
from fluxfeed_mcp.tools.sentiment import resolve_sentiment, select_window
from fluxfeed_mcp.utils.timestamps import utc_now

logger = logging.getLogger(__name__)

STATUS_BUY = "BUY"
STATUS_SELL = "SELL"
STATUS_NEUTRAL = "NEUTRAL"

SIGNAL_THRESHOLD = 0.10
SCORE_SCALE = 1.5
SCORE_POINTS = 80
COVERAGE_POINTS = 20
COVERAGE_SATURATION = 50
LOW_COVERAGE_BELOW = 10
PRICE_UNAVAILABLE_PENALTY = 0.9


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (matches display rounding)."""
    return int(math.floor(value + 0.5))


def decide_status(score: float, threshold: float = SIGNAL_THRESHOLD) -> str:
    """BUY above +threshold, SELL below -threshold, NEUTRAL otherwise."""
    if score > threshold:
        return STATUS_BUY
    if score < -threshold:
        return STATUS_SELL
    return STATUS_NEUTRAL


def signal_confidence(score: float, count: int, price_available: bool = True) -> int:
    """
    Confidence in [0, 100].

    80 points from |score| (saturating at 1.5) plus 20 points from coverage
    (saturating at 50 items); scaled by 0.9 when price data is unavailable.
    """
    magnitude = min(1.0, abs(score) / SCORE_SCALE) * SCORE_POINTS
    coverage = min(1.0, max(0, count) / COVERAGE_SATURATION) * COVERAGE_POINTS
    confidence = round_half_up(magnitude + coverage)
    if not price_available:
        confidence = round_half_up(confidence * PRICE_UNAVAILABLE_PENALTY)
    return max(0, min(100, confidence))


def coverage_health(count: int) -> str:
    return LOW_COVERAGE if count < LOW_COVERAGE_BELOW else HEALTHY


def synthesize_signal(
    sentiment: SentimentResolution,
    price: PriceFeatures,
    ticker: str,
    timeframe: str,
    now: datetime,
) -> Signal:
    """Combine resolved sentiment and price features into a Signal."""
    score = max(-SCORE_SCALE, min(SCORE_SCALE, sentiment.score))
    return Signal(
        status=decide_status(score),
        confidence=signal_confidence(score, sentiment.count, price.available),
        health=coverage_health(sentiment.count),
        news_score=score,
        count=sentiment.count,
        bullish=sentiment.bullish,
        bearish=sentiment.bearish,
        drivers=sentiment.drivers,
        method=sentiment.method,
        window=sentiment.window,
        ticker=ticker,
        timeframe=timeframe,
        last_updated=now,
    )


async def generate_signal(
    ticker: str = "BTC",
    tf: str = "1h",
    since_minutes: int = 1440,
    window: str | None = None,
    config: ProviderConfig | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Compute a fresh trading signal for a ticker.

    Sentiment resolution and price extraction run concurrently. Any
    unexpected failure in either is replaced by its zero-signal default,
    so the caller always gets a complete Signal.

    Args:
        ticker: Asset symbol (default: BTC)
        tf: Timeframe - 15m, 1h, 4h, 1d (default: 1h)
        since_minutes: Headline lookback in minutes (default: 1440)
        window: Optional UI window alias (24h, 7d, 30d)
        config: Provider configuration (default: from environment)
        now: Reference time (default: current UTC time)

    Returns:
        Signal as a JSON-ready dict
    """
    config = config or ProviderConfig.from_env()
    now = now or utc_now()
    ticker = (ticker or "BTC").upper().strip() or "BTC"
    tf = normalize_timeframe(tf)
    stat_window = select_window(window, since_minutes)

    sentiment, price = await asyncio.gather(
        resolve_sentiment(ticker, since_minutes, window, config=config, now=now),
        extract_price_features(ticker, tf, config=config),
        return_exceptions=True,
    )

    if isinstance(sentiment, Exception):
        logger.error(f"{ticker}: sentiment resolution failed unexpectedly: {sentiment}")
        sentiment = SentimentResolution(
            score=0.0, count=0, bullish=0, bearish=0, drivers=(),
            method=METHOD_FALLBACK, window=stat_window,
        )
    if isinstance(price, Exception):
        logger.error(f"{ticker}: price extraction failed unexpectedly: {price}")
        price = PriceFeatures.unavailable(map_ticker_to_pair(ticker), tf)

    signal = synthesize_signal(sentiment, price, ticker, tf, now)
    logger.info(
        f"{ticker} {tf}: {signal.status} conf={signal.confidence} "
        f"method={signal.method} price={price.source}"
    )
    return signal.to_dict()
