"""Trade plan generation: signal corroborated by momentum, with levels and rationale."""

import asyncio
import logging
import math
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.data import cryptonews_client
from fluxfeed_mcp.data.http_client import call_provider
from fluxfeed_mcp.models import (
    BEARISH,
    BULLISH,
    HeadlineRecord,
    NewsSkew,
    PriceFeatures,
    StatSummary,
    TradePlan,
)
from fluxfeed_mcp.tools.classifier import label_missing
from fluxfeed_mcp.tools.price import extract_price_features, map_ticker_to_pair, normalize_timeframe
from fluxfeed_mcp.tools.sentiment import fetch_stat_summary, select_window
from fluxfeed_mcp.tools.signal import (
    STATUS_BUY,
    STATUS_NEUTRAL,
    STATUS_SELL,
    round_half_up,
)
from fluxfeed_mcp.utils.aggregate import summarize_headlines
from fluxfeed_mcp.utils.sanitize import headline_excerpt, sanitize_text
from fluxfeed_mcp.utils.timestamps import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

# With price data: score and momentum must agree
PRICE_THRESHOLD = 0.1
PRICE_BASE_CONFIDENCE = 55
PRICE_MAX_CONFIDENCE = 88
PRICE_NEUTRAL_CONFIDENCE = 45

# Without price data: wider threshold, lower bands
NEWS_ONLY_THRESHOLD = 0.15
NEWS_ONLY_BASE_CONFIDENCE = 50
NEWS_ONLY_MAX_CONFIDENCE = 80
NEWS_ONLY_NEUTRAL_CONFIDENCE = 35

VOL_FRAC_MIN = 0.005
VOL_FRAC_MAX = 0.02
REWARD_MULTIPLE = 2


def decide_plan(score: float, price: PriceFeatures) -> tuple[str, int]:
    """
    Status and confidence for a trade plan.

    With price data, BUY needs score > 0.1 and positive momentum (SELL the
    mirror); confidence is 55 + (|score|*30 + |momentum|)/2 capped at 88,
    or 45 when NEUTRAL. Without price data the threshold is 0.15 and
    confidence is 50 + |score|*35 capped at 80, or 35 when NEUTRAL.
    """
    if price.available:
        strength = min(
            PRICE_MAX_CONFIDENCE,
            PRICE_BASE_CONFIDENCE + round_half_up((abs(score) * 30 + abs(price.momentum)) / 2),
        )
        if score > PRICE_THRESHOLD and price.momentum > 0:
            return STATUS_BUY, strength
        if score < -PRICE_THRESHOLD and price.momentum < 0:
            return STATUS_SELL, strength
        return STATUS_NEUTRAL, PRICE_NEUTRAL_CONFIDENCE

    strength = min(
        NEWS_ONLY_MAX_CONFIDENCE,
        NEWS_ONLY_BASE_CONFIDENCE + round_half_up(abs(score) * 35),
    )
    if score > NEWS_ONLY_THRESHOLD:
        return STATUS_BUY, strength
    if score < -NEWS_ONLY_THRESHOLD:
        return STATUS_SELL, strength
    return STATUS_NEUTRAL, NEWS_ONLY_NEUTRAL_CONFIDENCE


def volatility_fraction(vol: float) -> float:
    """Stop distance as a fraction of entry: |vol|/100 clamped to [0.5%, 2%]."""
    return min(VOL_FRAC_MAX, max(VOL_FRAC_MIN, abs(vol or 0.0) / 100))


def plan_levels(status: str, entry: float, vol_frac: float) -> tuple[float, float]:
    """Stop-loss and take-profit at 1x and 2x the volatility fraction."""
    if status == STATUS_BUY:
        return entry * (1 - vol_frac), entry * (1 + REWARD_MULTIPLE * vol_frac)
    if status == STATUS_SELL:
        return entry * (1 + vol_frac), entry * (1 - REWARD_MULTIPLE * vol_frac)
    return entry, entry


def chart_reasons(status: str, score: float, price: PriceFeatures, vol_frac: float) -> list[str]:
    stop_bp = round_half_up(vol_frac * 10000)
    if price.available:
        if status == STATUS_BUY:
            return [
                f"Price above SMA20 by {price.momentum:.2f}%",
                f"Volatility ~ {price.vol:.2f}% suggests {stop_bp}bp stop, 2R target",
            ]
        if status == STATUS_SELL:
            return [
                f"Price below SMA20 by {abs(price.momentum):.2f}%",
                f"Volatility ~ {price.vol:.2f}% suggests {stop_bp}bp stop, 2R target",
            ]
        return [f"Mixed momentum ({price.momentum:.2f}%) and change ({price.change_pct:.2f}%)"]

    if status == STATUS_BUY:
        return ["News-based signal: strong bullish sentiment", f"Sentiment score {score:.2f} > 0"]
    if status == STATUS_SELL:
        return ["News-based signal: strong bearish sentiment", f"Sentiment score {score:.2f} < 0"]
    return ["Neutral sentiment: balanced news signals", f"Score {score:.2f} near 0"]


def news_reasons(
    score: float,
    sentiment: str,
    skew: NewsSkew,
    stat_count: int | None,
    top_title: str | None,
) -> list[str]:
    """Rationale lines for the news side; names the top headline when there is one."""
    if stat_count is not None:
        return [
            f"Aggregate sentiment score: {score:.2f} ({sentiment}) from {stat_count} items",
            f"Recent headlines: {skew.bullish} bullish vs {skew.bearish} bearish",
            f'Top headline: "{headline_excerpt(top_title)}"' if top_title else "No recent headlines",
        ]
    return [
        f"{skew.bullish} bullish vs {skew.bearish} bearish headlines",
        f"Average news score {skew.avg:.2f}",
        f'Top: "{headline_excerpt(top_title)}"' if top_title else "No headlines",
    ]


def build_trade_plan(
    stat: StatSummary,
    skew: NewsSkew,
    price: PriceFeatures,
    top_title: str | None = None,
) -> TradePlan:
    """
    Assemble a TradePlan from STAT, headline skew and price features.

    STAT is the sentiment source when it carries signal; otherwise the
    plain headline average is used.
    """
    using_stat = stat.is_usable
    score = stat.score if using_stat else skew.avg
    sentiment = BULLISH if score >= 0 else BEARISH

    status, confidence = decide_plan(score, price)
    vol_frac = volatility_fraction(price.vol)
    entry = price.last or 0.0
    stop, take = plan_levels(status, entry, vol_frac)
    stat_count = stat.count if using_stat else None

    if using_stat:
        summary = (
            f"Overall sentiment: {sentiment} (score: {score:.2f} from {stat.count} items). "
            f"Recent: {skew.bullish} bullish vs {skew.bearish} bearish"
        )
    else:
        summary = f"News skew: bullish {skew.bullish} vs bearish {skew.bearish}, avg {skew.avg:.2f}"

    return TradePlan(
        status=status,
        confidence=max(0, min(100, confidence)),
        entry_price=entry,
        stop_loss=stop,
        take_profit=take,
        chart_reasons=tuple(chart_reasons(status, score, price, vol_frac)),
        news_reasons=tuple(news_reasons(score, sentiment, skew, stat_count, top_title)),
        sentiment_summary=summary,
        aggregate_score=score,
        aggregate_sentiment=sentiment,
        price=price,
        news=skew,
        stat_items=stat_count,
    )


def records_from_request(
    news: Sequence[dict[str, Any]],
    ticker: str,
    now: datetime,
) -> list[HeadlineRecord]:
    """Turn caller-supplied headlines into records; ids are list positions."""
    records: list[HeadlineRecord] = []
    for idx, item in enumerate(news):
        if not isinstance(item, dict):
            continue
        raw_sentiment = str(item.get("sentiment") or "").lower()
        sentiment = raw_sentiment if raw_sentiment in (BULLISH, BEARISH) else None
        try:
            score = float(item["score"]) if item.get("score") is not None else None
        except (TypeError, ValueError):
            score = None
        if score is not None and not math.isfinite(score):
            score = None
        if score is not None:
            score = max(-1.0, min(1.0, score))
        records.append(
            HeadlineRecord(
                id=str(idx),
                title=sanitize_text(str(item.get("title") or ""), max_length=300) or "",
                source=sanitize_text(str(item.get("source") or "Unknown"), max_length=80) or "Unknown",
                url="",
                published_at=parse_timestamp(item.get("publishedAt")) or now,
                tickers=(ticker,),
                sentiment=sentiment,
                score=score,
            )
        )
    return records


async def _plan_headlines(
    ticker: str,
    since_minutes: int,
    news: Sequence[dict[str, Any]] | None,
    config: ProviderConfig,
    now: datetime,
) -> list[HeadlineRecord]:
    if news:
        return records_from_request(news, ticker, now)
    result = await call_provider(
        cryptonews_client.SOURCE,
        lambda: cryptonews_client.fetch_headlines([ticker], config, since_minutes=since_minutes, now=now),
    )
    return result.data or []


async def analyze_trade(
    ticker: str = "BTC",
    tf: str = "1h",
    since_minutes: int = 60,
    news: Sequence[dict[str, Any]] | None = None,
    config: ProviderConfig | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Build a trade plan with entry, stop-loss, take-profit and rationale.

    STAT, price features and headlines are fetched concurrently; headlines
    without polarity are labelled in one classifier batch.

    Args:
        ticker: Asset symbol (default: BTC)
        tf: Timeframe - 15m, 1h, 4h, 1d (default: 1h)
        since_minutes: Lookback in minutes (default: 60)
        news: Optional caller-supplied headlines
            [{title, source, sentiment?, score?, publishedAt}]
        config: Provider configuration (default: from environment)
        now: Reference time (default: current UTC time)

    Returns:
        TradePlan as a JSON-ready dict
    """
    config = config or ProviderConfig.from_env()
    now = now or utc_now()
    ticker = (ticker or "BTC").upper().strip() or "BTC"
    tf = normalize_timeframe(tf)
    since_minutes = since_minutes or 60
    window = select_window(None, since_minutes)

    stat, price, headlines = await asyncio.gather(
        fetch_stat_summary(ticker, window, config),
        extract_price_features(ticker, tf, config=config),
        _plan_headlines(ticker, since_minutes, news, config, now),
        return_exceptions=True,
    )
    if isinstance(stat, Exception):
        logger.error(f"{ticker}: stat lookup failed unexpectedly: {stat}")
        stat = StatSummary.disabled()
    if isinstance(price, Exception):
        logger.error(f"{ticker}: price extraction failed unexpectedly: {price}")
        price = PriceFeatures.unavailable(map_ticker_to_pair(ticker), tf)
    if isinstance(headlines, Exception):
        logger.error(f"{ticker}: headline lookup failed unexpectedly: {headlines}")
        headlines = []

    labelled = await label_missing(headlines, config)
    skew = summarize_headlines(labelled)
    top_title = labelled[0].title if labelled else None

    plan = build_trade_plan(stat, skew, price, top_title)
    logger.info(f"{ticker} {tf}: plan {plan.status} conf={plan.confidence} price={price.source}")
    return plan.to_dict()
