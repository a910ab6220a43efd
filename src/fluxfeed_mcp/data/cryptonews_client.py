"""CryptoNews API client: STAT summaries, ticker headlines and category feeds."""

import logging
import math
import uuid
from datetime import datetime, timedelta
from typing import Any

from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.data.http_client import (
    MalformedUpstreamPayloadError,
    ProviderUnavailableError,
    get_json,
)
from fluxfeed_mcp.models import BEARISH, BULLISH, HeadlineRecord, StatSummary
from fluxfeed_mcp.utils.sanitize import sanitize_text
from fluxfeed_mcp.utils.timestamps import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

SOURCE = "cryptonews"

STAT_SCORE_LIMIT = 1.5
MAX_DRIVERS = 5
MAX_ITEMS = 100

# Provider label -> (polarity, score) for news feeds
FEED_LABELS: dict[str, tuple[str | None, float]] = {
    "positive": (BULLISH, 0.3),
    "negative": (BEARISH, -0.3),
    "neutral": (None, 0.0),
}


def _require_key(config: ProviderConfig) -> str:
    if not config.cryptonews_api_key:
        raise ProviderUnavailableError("CRYPTONEWS_API_KEY is not configured")
    return config.cryptonews_api_key


def _to_float(value: Any) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(result):
        return 0.0
    return result


def _to_count(value: Any) -> int:
    return max(0, int(_to_float(value)))


def _driver_text(driver: Any) -> str | None:
    if isinstance(driver, dict):
        driver = driver.get("title") or driver.get("headline") or driver.get("text")
    if driver is None:
        return None
    return sanitize_text(str(driver), max_length=200) or None


def parse_stat_payload(payload: Any) -> StatSummary:
    """
    Normalise a STAT response into a StatSummary.

    Score is clamped to [-1.5, 1.5]; count is read from ``total``, then
    ``items``, then ``count``.

    Raises:
        MalformedUpstreamPayloadError: If payload is not a JSON object
    """
    if not isinstance(payload, dict):
        raise MalformedUpstreamPayloadError(
            f"STAT payload should be an object, got {type(payload).__name__}"
        )

    count_raw = next(
        (payload.get(k) for k in ("total", "items", "count") if payload.get(k) is not None),
        0,
    )
    raw_drivers = payload.get("drivers")
    drivers: list[str] = []
    if isinstance(raw_drivers, list):
        for driver in raw_drivers[:MAX_DRIVERS]:
            text = _driver_text(driver)
            if text:
                drivers.append(text)

    score = _to_float(payload.get("score"))
    return StatSummary(
        ok=True,
        score=max(-STAT_SCORE_LIMIT, min(STAT_SCORE_LIMIT, score)),
        count=_to_count(count_raw),
        bullish=_to_count(payload.get("bullish")),
        bearish=_to_count(payload.get("bearish")),
        drivers=tuple(drivers),
    )


async def fetch_stat(ticker: str, date_range: str, config: ProviderConfig) -> StatSummary:
    """
    Fetch the pre-aggregated sentiment summary for a ticker.

    Args:
        ticker: Asset symbol (e.g., BTC)
        date_range: last24hours, last7days or last30days
        config: Provider configuration

    Returns:
        StatSummary with ok=True

    Raises:
        ProviderUnavailableError: No API key, transport failure or non-2xx
        MalformedUpstreamPayloadError: Unexpected response shape
    """
    token = _require_key(config)
    payload = await get_json(
        f"{config.cryptonews_base_url}/stat",
        params={"tickers": ticker, "date": date_range, "page": 1, "token": token},
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )
    return parse_stat_payload(payload)


def _articles(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, dict):
        raise MalformedUpstreamPayloadError(
            f"News payload should be an object, got {type(payload).__name__}"
        )
    articles = payload.get("data") or payload.get("news") or []
    if not isinstance(articles, list):
        raise MalformedUpstreamPayloadError("News payload 'data' is not a list")
    return [a for a in articles if isinstance(a, dict)]


def map_article(
    article: dict[str, Any],
    default_tickers: list[str],
    now: datetime,
    apply_labels: bool = True,
) -> HeadlineRecord | None:
    """
    Convert one provider article into a HeadlineRecord.

    Returns None when the publication date is present but unparseable.
    Missing dates fall back to ``now``.
    """
    raw_date = article.get("date") or article.get("published_at")
    published_at = parse_timestamp(raw_date) if raw_date else now
    if published_at is None:
        return None

    url = article.get("news_url") or article.get("url") or ""
    record_id = str(article.get("news_url") or article.get("id") or article.get("url") or uuid.uuid4())

    tickers = article.get("tickers")
    if isinstance(tickers, list):
        ticker_list = [str(t).upper() for t in tickers]
    elif isinstance(article.get("ticker"), str):
        ticker_list = [article["ticker"].upper()]
    else:
        ticker_list = list(default_tickers)

    provider_label = article.get("sentiment")
    provider_label = provider_label.lower() if isinstance(provider_label, str) else None

    sentiment: str | None = None
    score: float | None = None
    if apply_labels and provider_label in FEED_LABELS:
        sentiment, score = FEED_LABELS[provider_label]

    title = article.get("title") or article.get("headline") or ""
    source = article.get("source_name") or article.get("source") or "Unknown"
    text = article.get("text") or article.get("description") or article.get("summary") or ""

    return HeadlineRecord(
        id=record_id,
        title=sanitize_text(str(title), max_length=300) or "",
        source=sanitize_text(str(source), max_length=80) or "Unknown",
        url=str(url),
        published_at=published_at,
        tickers=tuple(ticker_list),
        sentiment=sentiment,
        score=score,
        provider_sentiment=provider_label,
        image_url=str(article.get("image_url") or article.get("thumbnail") or ""),
        text=sanitize_text(str(text), max_length=1000) or "",
    )


async def fetch_headlines(
    tickers: list[str],
    config: ProviderConfig,
    since_minutes: int = 1440,
    items: int = 50,
    page: int = 1,
    sentiment: str | None = None,
    now: datetime | None = None,
) -> list[HeadlineRecord]:
    """
    Fetch ticker headlines published within the lookback window.

    A single ticker queries ``tickers-only``; several use ``tickers-include``.

    Args:
        tickers: Asset symbols
        config: Provider configuration
        since_minutes: Lookback window in minutes
        items: Page size (capped at 100)
        page: Page number (>= 1)
        sentiment: Optional provider-side filter (positive/negative/neutral)
        now: Reference time for the cutoff

    Returns:
        HeadlineRecords with provider labels applied, newest cutoff enforced

    Raises:
        ProviderUnavailableError: No API key, transport failure or non-2xx
        MalformedUpstreamPayloadError: Unexpected response shape
    """
    token = _require_key(config)
    now = now or utc_now()

    params: dict[str, Any] = {
        "items": max(1, min(MAX_ITEMS, items)),
        "page": max(1, page),
        "token": token,
    }
    if len(tickers) == 1:
        params["tickers-only"] = tickers[0]
    else:
        params["tickers-include"] = ",".join(tickers)
    if sentiment:
        params["sentiment"] = sentiment

    payload = await get_json(
        config.cryptonews_base_url,
        params=params,
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )

    cutoff = now - timedelta(minutes=since_minutes)
    records: list[HeadlineRecord] = []
    for article in _articles(payload):
        record = map_article(article, tickers, now)
        if record is None:
            logger.debug(f"Skipping article with unparseable date: {article.get('date')!r}")
            continue
        if record.published_at >= cutoff:
            records.append(record)
    return records


async def fetch_category(
    sentiment: str,
    config: ProviderConfig,
    items: int = 6,
    page: int = 1,
    now: datetime | None = None,
) -> list[HeadlineRecord]:
    """
    Fetch cross-ticker headlines for one sentiment category.

    Records carry the provider label in ``provider_sentiment`` but are left
    unlabelled; callers decide polarity.

    Raises:
        ProviderUnavailableError: No API key, transport failure or non-2xx
        MalformedUpstreamPayloadError: Unexpected response shape
    """
    token = _require_key(config)
    now = now or utc_now()

    payload = await get_json(
        f"{config.cryptonews_base_url}/category",
        params={
            "section": "alltickers",
            "items": max(1, min(MAX_ITEMS, items)),
            "page": max(1, page),
            "sentiment": sentiment,
            "token": token,
        },
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )

    records: list[HeadlineRecord] = []
    for article in _articles(payload):
        record = map_article(article, [], now, apply_labels=False)
        if record is not None:
            records.append(record)
    return records


TRENDING_LIMIT = 20
DIGEST_SOURCE = "CryptoNews"


async def fetch_trending(config: ProviderConfig, page: int = 1) -> list[dict[str, Any]]:
    """
    Fetch trending headline summaries, de-duplicated by news id.

    Returns at most 20 raw article dicts; summaries without an id are dropped.

    Raises:
        ProviderUnavailableError: No API key, transport failure or non-2xx
        MalformedUpstreamPayloadError: Unexpected response shape
    """
    token = _require_key(config)
    payload = await get_json(
        f"{config.cryptonews_base_url}/trending-headlines",
        params={"page": max(1, page), "token": token},
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )

    seen: set[str] = set()
    unique: list[dict[str, Any]] = []
    for article in _articles(payload):
        news_id = article.get("news_id") or article.get("id")
        if not news_id or str(news_id) in seen:
            continue
        seen.add(str(news_id))
        unique.append(article)
    return unique[:TRENDING_LIMIT]


async def fetch_article(news_id: str, config: ProviderConfig) -> dict[str, Any] | None:
    """Full article for a news id, or None when the provider has no match."""
    token = _require_key(config)
    payload = await get_json(
        f"{config.cryptonews_base_url}/category",
        params={
            "section": "alltickers",
            "news_id": news_id,
            "items": 1,
            "page": 1,
            "token": token,
        },
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )
    articles = _articles(payload)
    return articles[0] if articles else None


def map_trending(
    summary: dict[str, Any],
    detail: dict[str, Any] | None,
    now: datetime,
) -> HeadlineRecord | None:
    """
    Merge a trending summary with its full article.

    The summary wins for title, source and date; the full article wins for
    url, tickers, image and text. Returns None when there is no title.
    """
    detail = detail or {}
    news_id = str(summary.get("news_id") or summary.get("id"))

    title = summary.get("headline") or summary.get("title") or detail.get("title") or ""
    title = sanitize_text(str(title), max_length=300) or ""
    if not title:
        return None

    source = summary.get("source_name") or summary.get("source") or detail.get("source_name")
    raw_date = summary.get("date") or summary.get("published_at") or detail.get("date")
    url = (
        detail.get("news_url")
        or summary.get("news_url")
        or summary.get("url")
        or f"https://cryptonews-api.com/news/{news_id}"
    )
    tickers = detail.get("tickers") if isinstance(detail.get("tickers"), list) else summary.get("tickers")
    text = detail.get("text") or detail.get("description") or summary.get("text") or summary.get("description")
    image_url = (
        detail.get("image_url") or detail.get("thumbnail")
        or summary.get("image_url") or summary.get("thumbnail")
    )

    return HeadlineRecord(
        id=news_id,
        title=title,
        source=sanitize_text(str(source or DIGEST_SOURCE), max_length=80) or DIGEST_SOURCE,
        url=str(url),
        published_at=(parse_timestamp(raw_date) if raw_date else None) or now,
        tickers=tuple(str(t).upper() for t in tickers) if isinstance(tickers, list) else (),
        image_url=str(image_url or ""),
        text=sanitize_text(str(text or ""), max_length=1000) or "",
    )


def _digest_items(payload: Any) -> list[dict[str, Any]]:
    """Flatten digest entries: direct articles, or nested ``news``/``items`` lists."""
    items: list[dict[str, Any]] = []
    for entry in _articles(payload):
        if entry.get("title") or entry.get("headline"):
            items.append(entry)
        elif isinstance(entry.get("news"), list):
            items.extend(a for a in entry["news"] if isinstance(a, dict))
        elif isinstance(entry.get("items"), list):
            items.extend(a for a in entry["items"] if isinstance(a, dict))
    return items


async def fetch_sundown(
    config: ProviderConfig,
    page: int = 1,
    now: datetime | None = None,
) -> list[HeadlineRecord]:
    """
    Fetch the end-of-day digest as unlabelled records.

    Digest items carry no url, tickers or image. Items without a title are
    dropped; unparseable dates fall back to ``now``.

    Raises:
        ProviderUnavailableError: No API key, transport failure or non-2xx
        MalformedUpstreamPayloadError: Unexpected response shape
    """
    token = _require_key(config)
    now = now or utc_now()
    payload = await get_json(
        f"{config.cryptonews_base_url}/sundown-digest",
        params={"page": max(1, page), "token": token},
        timeout=config.request_timeout,
        max_retries=config.max_retries,
    )

    records: list[HeadlineRecord] = []
    for item in _digest_items(payload):
        title = sanitize_text(str(item.get("headline") or item.get("title") or ""), max_length=300)
        if not title:
            continue
        raw_date = item.get("date") or item.get("published_at")
        text = item.get("text") or item.get("description") or item.get("summary") or ""
        source = item.get("source_name") or item.get("source") or DIGEST_SOURCE
        records.append(
            HeadlineRecord(
                id=str(item.get("id") or item.get("news_id") or uuid.uuid4()),
                title=title,
                source=sanitize_text(str(source), max_length=80) or DIGEST_SOURCE,
                url="",
                published_at=(parse_timestamp(raw_date) if raw_date else None) or now,
                text=sanitize_text(str(text), max_length=1000) or "",
            )
        )
    return records
