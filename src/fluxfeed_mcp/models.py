"""Request-scoped value objects produced by the engine."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

import pytz

BULLISH = "bullish"
BEARISH = "bearish"

METHOD_STAT = "stat"
METHOD_FALLBACK = "fallback"

HEALTHY = "Healthy"
LOW_COVERAGE = "LowCoverage"

PRICE_UNAVAILABLE = "unavailable"


def isoformat_utc(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision and 'Z'."""
    if value.tzinfo is None:
        value = pytz.UTC.localize(value)
    value = value.astimezone(pytz.UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class HeadlineRecord:
    """A single news headline, optionally labelled with polarity and score."""

    id: str
    title: str
    source: str
    url: str
    published_at: datetime
    tickers: tuple[str, ...] = ()
    sentiment: str | None = None
    score: float | None = None
    # Raw provider label ("positive"/"negative"/"neutral"), kept for scoring only
    provider_sentiment: str | None = None
    image_url: str = ""
    text: str = ""

    @property
    def is_labelled(self) -> bool:
        return self.sentiment is not None

    def to_dict(self, include_extras: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "source": self.source,
            "url": self.url,
            "publishedAt": isoformat_utc(self.published_at),
            "tickers": list(self.tickers),
            "sentiment": self.sentiment,
            "score": self.score,
        }
        if include_extras:
            data["imageUrl"] = self.image_url
            data["text"] = self.text
        return data


@dataclass(frozen=True)
class StatSummary:
    """Pre-aggregated sentiment from the STAT provider."""

    ok: bool
    score: float = 0.0
    count: int = 0
    bullish: int = 0
    bearish: int = 0
    drivers: tuple[str, ...] = ()

    @classmethod
    def disabled(cls) -> "StatSummary":
        return cls(ok=False)

    @property
    def is_usable(self) -> bool:
        """True when the provider answered with actual signal (not all zeros)."""
        return self.ok and (self.count > 0 or self.score != 0)


@dataclass(frozen=True)
class AggregateResult:
    """Time-decayed reduction of scored headlines."""

    score: float = 0.0
    count: int = 0
    bullish: int = 0
    bearish: int = 0


@dataclass(frozen=True)
class NewsSkew:
    """Plain (undecayed) average of labelled headlines used by trade plans."""

    avg: float = 0.0
    bullish: int = 0
    bearish: int = 0
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "avg": self.avg,
            "bullish": self.bullish,
            "bearish": self.bearish,
            "count": self.count,
        }


@dataclass(frozen=True)
class PriceFeatures:
    """Numeric features extracted from a close-price series."""

    pair: str
    interval: str
    last: float = 0.0
    change_pct: float = 0.0
    momentum: float = 0.0
    vol: float = 0.0
    source: str = PRICE_UNAVAILABLE

    @classmethod
    def unavailable(cls, pair: str, interval: str) -> "PriceFeatures":
        return cls(pair=pair, interval=interval)

    @property
    def available(self) -> bool:
        return self.source != PRICE_UNAVAILABLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "pair": self.pair,
            "interval": self.interval,
            "last": self.last,
            "changePct": self.change_pct,
            "momentum": self.momentum,
            "vol": self.vol,
            "source": self.source,
        }


@dataclass(frozen=True)
class SentimentResolution:
    """Resolved sentiment for a ticker, tagged with the path that produced it."""

    score: float
    count: int
    bullish: int
    bearish: int
    drivers: tuple[str, ...]
    method: str
    window: str


@dataclass(frozen=True)
class Signal:
    """Final BUY/SELL/NEUTRAL decision with confidence and coverage health."""

    status: str
    confidence: int
    health: str
    news_score: float
    count: int
    bullish: int
    bearish: int
    drivers: tuple[str, ...]
    method: str
    window: str
    ticker: str
    timeframe: str
    last_updated: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "confidence": self.confidence,
            "health": self.health,
            "newsScore": self.news_score,
            "count": self.count,
            "skew": {"bullish": self.bullish, "bearish": self.bearish},
            "drivers": list(self.drivers),
            "method": self.method,
            "window": self.window,
            "ticker": self.ticker,
            "timeframe": self.timeframe,
            "lastUpdated": isoformat_utc(self.last_updated),
        }


@dataclass(frozen=True)
class TradePlan:
    """Signal extended with entry/stop/take-profit levels and rationale."""

    status: str
    confidence: int
    entry_price: float
    stop_loss: float
    take_profit: float
    chart_reasons: tuple[str, ...]
    news_reasons: tuple[str, ...]
    sentiment_summary: str
    aggregate_score: float
    aggregate_sentiment: str
    price: PriceFeatures
    news: NewsSkew
    stat_items: int | None = None

    def to_dict(self) -> dict[str, Any]:
        aggregate_stat = None
        if self.stat_items is not None:
            aggregate_stat = {
                "score": self.aggregate_score,
                "sentiment": self.aggregate_sentiment,
                "items": self.stat_items,
            }
        return {
            "status": self.status,
            "confidence": self.confidence,
            "entryPrice": self.entry_price,
            "stopLoss": self.stop_loss,
            "takeProfit": self.take_profit,
            "chartReasons": list(self.chart_reasons),
            "newsReasons": list(self.news_reasons),
            "sentimentSummary": self.sentiment_summary,
            "aggregateScore": self.aggregate_score,
            "aggregateSentiment": self.aggregate_sentiment,
            "features": {
                "price": self.price.to_dict(),
                "news": self.news.to_dict(),
                "aggregateStat": aggregate_stat,
            },
        }
