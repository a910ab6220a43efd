"""News feeds: ticker headlines, balanced, trending and digest feeds, and a market-wide stat."""

import asyncio
import logging
import math
from dataclasses import replace
from datetime import datetime
from typing import Any

from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.data import cryptonews_client
from fluxfeed_mcp.data.http_client import call_provider
from fluxfeed_mcp.models import BEARISH, BULLISH, HeadlineRecord
from fluxfeed_mcp.tools.classifier import classify_headlines, label_missing
from fluxfeed_mcp.tools.sentiment import VALID_WINDOWS, WINDOW_30D, WINDOW_ALIASES, fetch_stat_summary
from fluxfeed_mcp.utils.timestamps import utc_now

logger = logging.getLogger(__name__)

MAX_ITEMS = 100
FEED_SENTIMENTS = {"positive", "negative", "neutral"}
GENERAL_STAT_PROXY = "BTC"
CATEGORY_DEFAULT_SCORE = 0.3


def parse_tickers(tickers: str | list[str] | None) -> list[str]:
    """Comma-separated (or list) tickers, uppercased; BTC when none given."""
    if isinstance(tickers, str):
        parts = tickers.split(",")
    else:
        parts = list(tickers or [])
    parsed = [p.strip().upper() for p in parts if p and p.strip()]
    return parsed or ["BTC"]


async def news_feed(
    tickers: str | list[str] = "BTC",
    since_minutes: int = 1440,
    items: int = 50,
    page: int = 1,
    sentiment: str | None = None,
    config: ProviderConfig | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Recent headlines for one or more tickers, every item labelled.

    Items without provider polarity are labelled in one classifier batch.
    Provider failures yield an empty list.

    Args:
        tickers: Comma-separated symbols or a list (default: BTC)
        since_minutes: Lookback window in minutes (default: 1440)
        items: Page size, capped at 100 (default: 50)
        page: Page number, at least 1 (default: 1)
        sentiment: Optional provider filter - positive, negative, neutral
        config: Provider configuration (default: from environment)
        now: Reference time for the cutoff (default: current UTC time)

    Returns:
        Dict with ``items``: list of HeadlineRecord dicts
    """
    config = config or ProviderConfig.from_env()
    now = now or utc_now()
    ticker_list = parse_tickers(tickers)
    items = min(MAX_ITEMS, max(1, items or 50))
    page = max(1, page or 1)
    filter_sentiment = sentiment.lower() if sentiment else None
    if filter_sentiment not in FEED_SENTIMENTS:
        filter_sentiment = None

    result = await call_provider(
        cryptonews_client.SOURCE,
        lambda: cryptonews_client.fetch_headlines(
            ticker_list,
            config,
            since_minutes=since_minutes,
            items=items,
            page=page,
            sentiment=filter_sentiment,
            now=now,
        ),
    )
    records = await label_missing(result.data or [], config)

    # Unlabelled leftovers read as bullish with a zero score
    labelled = [r if r.is_labelled else replace(r, sentiment=BULLISH, score=0.0) for r in records]
    return {"items": [r.to_dict() for r in labelled]}


def _is_displayable(record: HeadlineRecord) -> bool:
    return record.url.startswith("http") and bool(record.source) and record.source != "Unknown"


def _force_category(
    records: list[HeadlineRecord],
    labels: list[tuple[str, float]],
    polarity: str,
) -> list[HeadlineRecord]:
    """
    Stamp every record with the category's polarity.

    The classifier only contributes the score; the requested category always
    decides bullish vs bearish.
    """
    default = CATEGORY_DEFAULT_SCORE if polarity == BULLISH else -CATEGORY_DEFAULT_SCORE
    forced: list[HeadlineRecord] = []
    for i, record in enumerate(records):
        score = labels[i][1] if i < len(labels) else default
        if score is None or not math.isfinite(score):
            score = default
        forced.append(replace(record, sentiment=polarity, score=score))
    return forced


def interleave(positive: list[HeadlineRecord], negative: list[HeadlineRecord]) -> list[HeadlineRecord]:
    """Alternate positive and negative items, appending the longer tail."""
    mixed: list[HeadlineRecord] = []
    for i in range(max(len(positive), len(negative))):
        if i < len(positive):
            mixed.append(positive[i])
        if i < len(negative):
            mixed.append(negative[i])
    return mixed


async def general_news(
    items: int = 12,
    page: int = 1,
    config: ProviderConfig | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Balanced market-wide feed alternating bullish and bearish headlines.

    Both category batches are fetched together and both must succeed;
    otherwise the feed is empty.

    Args:
        items: Total items requested, capped at 100 (default: 12)
        page: Page number (default: 1)
        config: Provider configuration (default: from environment)
        now: Reference time (default: current UTC time)

    Returns:
        Dict with ``items``: HeadlineRecord dicts including imageUrl/text
    """
    config = config or ProviderConfig.from_env()
    if not config.has_cryptonews:
        return {"items": []}

    now = now or utc_now()
    per_side = math.ceil(min(MAX_ITEMS, max(1, items or 12)) / 2)
    page = max(1, page or 1)

    try:
        positive, negative = await asyncio.gather(
            cryptonews_client.fetch_category("positive", config, items=per_side, page=page, now=now),
            cryptonews_client.fetch_category("negative", config, items=per_side, page=page, now=now),
        )
    except Exception as e:
        logger.warning(f"General feed unavailable: {type(e).__name__}: {e}")
        return {"items": []}

    positive = [r for r in positive if _is_displayable(r)]
    negative = [r for r in negative if _is_displayable(r)]

    positive_labels, negative_labels = await asyncio.gather(
        classify_headlines([r.title for r in positive], config),
        classify_headlines([r.title for r in negative], config),
    )

    mixed = interleave(
        _force_category(positive, positive_labels, BULLISH),
        _force_category(negative, negative_labels, BEARISH),
    )
    return {"items": [r.to_dict(include_extras=True) for r in mixed]}


async def general_stat(
    date_range: str = WINDOW_30D,
    config: ProviderConfig | None = None,
) -> dict[str, Any]:
    """
    Market-wide sentiment using BTC as the proxy ticker.

    Args:
        date_range: last24hours, last7days or last30days (24h/7d/30d also
            accepted); anything else falls back to last30days
        config: Provider configuration (default: from environment)

    Returns:
        Dict with score, sentiment (bullish/bearish/neutral) and items
    """
    config = config or ProviderConfig.from_env()
    window = (date_range or "").strip()
    if window not in VALID_WINDOWS:
        window = WINDOW_ALIASES.get(window.lower(), WINDOW_30D)
    stat = await fetch_stat_summary(GENERAL_STAT_PROXY, window, config)
    if not stat.ok:
        return {"score": 0, "sentiment": "neutral", "items": 0}
    return {
        "score": stat.score,
        "sentiment": BULLISH if stat.score >= 0 else BEARISH,
        "items": stat.count,
    }


def _apply_labels(records: list[HeadlineRecord], labels: list[tuple[str, float]]) -> list[HeadlineRecord]:
    return [replace(r, sentiment=sentiment, score=score) for r, (sentiment, score) in zip(records, labels)]


async def trending_news(
    page: int = 1,
    config: ProviderConfig | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Trending headlines enriched with full article details and labelled.

    Up to 20 unique headlines; each detail lookup runs concurrently and a
    failed lookup keeps the summary fields only. A failed trending fetch
    yields an empty feed.

    Args:
        page: Page number (default: 1)
        config: Provider configuration (default: from environment)
        now: Fallback publication time (default: current UTC time)

    Returns:
        Dict with ``items``: HeadlineRecord dicts including imageUrl/text
    """
    config = config or ProviderConfig.from_env()
    if not config.has_cryptonews:
        return {"items": []}
    now = now or utc_now()

    result = await call_provider(
        cryptonews_client.SOURCE,
        lambda: cryptonews_client.fetch_trending(config, page=max(1, page or 1)),
    )
    summaries = result.data or []

    async def _detail(summary: dict[str, Any]) -> dict[str, Any] | None:
        news_id = str(summary.get("news_id") or summary.get("id"))
        found = await call_provider(
            cryptonews_client.SOURCE,
            lambda: cryptonews_client.fetch_article(news_id, config),
        )
        return found.data

    details = await asyncio.gather(*[_detail(s) for s in summaries])
    records = [
        record
        for record in (cryptonews_client.map_trending(s, d, now) for s, d in zip(summaries, details))
        if record is not None
    ]

    labels = await classify_headlines([r.title for r in records], config)
    return {"items": [r.to_dict(include_extras=True) for r in _apply_labels(records, labels)]}


async def sundown_digest(
    page: int = 1,
    config: ProviderConfig | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    End-of-day digest items, labelled in one classifier batch.

    Returns:
        Dict with ``items``: HeadlineRecord dicts including imageUrl/text
    """
    config = config or ProviderConfig.from_env()
    if not config.has_cryptonews:
        return {"items": []}

    result = await call_provider(
        cryptonews_client.SOURCE,
        lambda: cryptonews_client.fetch_sundown(config, page=max(1, page or 1), now=now),
    )
    records = result.data or []

    labels = await classify_headlines([r.title for r in records], config)
    return {"items": [r.to_dict(include_extras=True) for r in _apply_labels(records, labels)]}
