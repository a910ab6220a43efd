"""Sentiment resolution: STAT provider first, decayed headline aggregate second."""

import logging
from datetime import datetime

from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.data import cryptonews_client
from fluxfeed_mcp.data.http_client import ProviderResult, call_provider, first_usable
from fluxfeed_mcp.models import (
    METHOD_FALLBACK,
    METHOD_STAT,
    HeadlineRecord,
    SentimentResolution,
    StatSummary,
)
from fluxfeed_mcp.utils.aggregate import aggregate_scores, rank_drivers
from fluxfeed_mcp.utils.heuristics import fallback_headline_score
from fluxfeed_mcp.utils.timestamps import utc_now

logger = logging.getLogger(__name__)

STAT_SOURCE = "cryptonews.stat"
HEADLINE_SOURCE = "cryptonews.headlines"

WINDOW_24H = "last24hours"
WINDOW_7D = "last7days"
WINDOW_30D = "last30days"
VALID_WINDOWS = {WINDOW_24H, WINDOW_7D, WINDOW_30D}

WINDOW_ALIASES = {
    "24h": WINDOW_24H,
    "7d": WINDOW_7D,
    "30d": WINDOW_30D,
}

FALLBACK_ITEMS = 100


def select_window(alias: str | None, since_minutes: int) -> str:
    """
    Pick the STAT date-range keyword.

    A UI alias (24h/7d/30d) wins; otherwise the lookback decides:
    <= 1 day -> last24hours, <= 7 days -> last7days, else last30days.
    """
    if alias:
        mapped = WINDOW_ALIASES.get(alias.strip().lower())
        if mapped:
            return mapped
    if since_minutes <= 1440:
        return WINDOW_24H
    if since_minutes <= 10080:
        return WINDOW_7D
    return WINDOW_30D


async def fetch_stat_summary(ticker: str, window: str, config: ProviderConfig) -> StatSummary:
    """STAT summary for a ticker; a disabled (all-zero) summary on any failure."""
    result = await call_provider(
        STAT_SOURCE,
        lambda: cryptonews_client.fetch_stat(ticker, window, config),
    )
    if not result.is_ok or result.data is None:
        return StatSummary.disabled()
    return result.data


async def fetch_fallback_headlines(
    ticker: str,
    since_minutes: int,
    config: ProviderConfig,
    now: datetime,
) -> list[HeadlineRecord]:
    """Headlines for the fallback path; any provider problem yields an empty list."""
    result = await call_provider(
        HEADLINE_SOURCE,
        lambda: cryptonews_client.fetch_headlines(
            [ticker],
            config,
            since_minutes=since_minutes,
            items=FALLBACK_ITEMS,
            page=1,
            now=now,
        ),
    )
    return result.data or []


def aggregate_headlines(
    records: list[HeadlineRecord],
    now: datetime,
    window: str,
) -> SentimentResolution:
    """Score headlines (provider label, else keywords) and reduce with time decay."""
    scored = [
        (r.title, fallback_headline_score(r.title, r.provider_sentiment), r.published_at)
        for r in records
    ]
    agg = aggregate_scores(((score, published_at) for _, score, published_at in scored), now)
    return SentimentResolution(
        score=agg.score,
        count=agg.count,
        bullish=agg.bullish,
        bearish=agg.bearish,
        drivers=tuple(rank_drivers(scored, now)),
        method=METHOD_FALLBACK,
        window=window,
    )


async def resolve_sentiment(
    ticker: str,
    since_minutes: int = 1440,
    window: str | None = None,
    config: ProviderConfig | None = None,
    now: datetime | None = None,
) -> SentimentResolution:
    """
    Resolve a sentiment score for a ticker. Never raises for provider problems.

    Uses the STAT summary when it carries signal; when STAT is unavailable
    or empty (count == 0 and score == 0) the score is rebuilt from raw
    headlines in the lookback window.

    Args:
        ticker: Asset symbol (e.g., BTC)
        since_minutes: Headline lookback in minutes
        window: Optional UI alias (24h, 7d, 30d)
        config: Provider configuration (default: from environment)
        now: Reference time for decay and cutoff (default: current UTC time)

    Returns:
        SentimentResolution tagged with method "stat" or "fallback"
    """
    config = config or ProviderConfig.from_env()
    now = now or utc_now()
    ticker = ticker.upper().strip()
    stat_window = select_window(window, since_minutes)

    async def _from_stat() -> ProviderResult[SentimentResolution]:
        result = await call_provider(
            STAT_SOURCE,
            lambda: cryptonews_client.fetch_stat(ticker, stat_window, config),
            is_empty=lambda s: not s.is_usable,
        )
        if not result.is_ok:
            return ProviderResult(status=result.status, source=result.source, error=result.error)
        stat = result.data
        return ProviderResult.ok(
            STAT_SOURCE,
            SentimentResolution(
                score=stat.score,
                count=stat.count,
                bullish=stat.bullish,
                bearish=stat.bearish,
                drivers=stat.drivers,
                method=METHOD_STAT,
                window=stat_window,
            ),
        )

    async def _from_headlines() -> ProviderResult[SentimentResolution]:
        records = await fetch_fallback_headlines(ticker, since_minutes, config, now)
        logger.info(f"{ticker}: stat fallback over {len(records)} headlines ({stat_window})")
        return ProviderResult.ok(HEADLINE_SOURCE, aggregate_headlines(records, now, stat_window))

    resolved = await first_usable(_from_stat, _from_headlines)
    return resolved.data
