"""Headline score aggregation."""

import math
from collections.abc import Iterable, Sequence
from datetime import datetime

from fluxfeed_mcp.models import BEARISH, AggregateResult, HeadlineRecord, NewsSkew

DECAY_TAU_SECONDS = 6 * 60 * 60  # 6h
STAT_SCALE = 1.5


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def decay_weight(published_at: datetime, now: datetime) -> float:
    """
    Exponential recency weight exp(-elapsed / tau).

    Elapsed time is clamped at zero so future-dated headlines weigh at most 1.
    """
    elapsed = max(0.0, (now - published_at).total_seconds())
    return math.exp(-elapsed / DECAY_TAU_SECONDS)


def aggregate_scores(
    items: Iterable[tuple[float, datetime]],
    now: datetime,
) -> AggregateResult:
    """
    Reduce (score, published_at) pairs into one time-decayed score.

    Scores are clamped to [-1, 1], averaged with recency weights, then scaled
    by 1.5 onto the STAT provider's [-1.5, 1.5] range. Zero scores count
    toward neither bullish nor bearish.

    Args:
        items: (score, published_at) pairs
        now: Reference time; pin it for deterministic output

    Returns:
        AggregateResult with score, count, bullish and bearish counts
    """
    weighted_sum = 0.0
    weight_total = 0.0
    count = bullish = bearish = 0

    for raw_score, published_at in items:
        score = _clamp(float(raw_score or 0.0), -1.0, 1.0)
        w = decay_weight(published_at, now)
        weighted_sum += w * score
        weight_total += w
        count += 1
        if score > 0:
            bullish += 1
        elif score < 0:
            bearish += 1

    average = weighted_sum / weight_total if weight_total else 0.0
    return AggregateResult(
        score=_clamp(average * STAT_SCALE, -STAT_SCALE, STAT_SCALE),
        count=count,
        bullish=bullish,
        bearish=bearish,
    )


def rank_drivers(
    items: Sequence[tuple[str, float, datetime]],
    now: datetime,
    limit: int = 5,
) -> list[str]:
    """Titles with the largest decayed contribution |w * score|, best first."""
    contributions = [
        (abs(decay_weight(published_at, now) * _clamp(score, -1.0, 1.0)), index, title)
        for index, (title, score, published_at) in enumerate(items)
        if score
    ]
    # Stable on ties: provider order wins
    contributions.sort(key=lambda c: (-c[0], c[1]))
    return [title for _, _, title in contributions[:limit]]


def summarize_headlines(records: Sequence[HeadlineRecord]) -> NewsSkew:
    """
    Plain average of headline scores with a bullish/bearish split.

    Unlabelled records count as bullish; missing scores count as 0.
    """
    if not records:
        return NewsSkew()

    total = 0.0
    bullish = bearish = 0
    for record in records:
        total += record.score or 0.0
        if record.sentiment == BEARISH:
            bearish += 1
        else:
            bullish += 1

    return NewsSkew(
        avg=total / len(records),
        bullish=bullish,
        bearish=bearish,
        count=len(records),
    )
