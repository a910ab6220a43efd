"""Headline sentiment classification with a keyword fallback."""

import logging
import math
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.data import openai_client
from fluxfeed_mcp.data.http_client import call_provider
from fluxfeed_mcp.models import BEARISH, BULLISH, HeadlineRecord
from fluxfeed_mcp.utils.heuristics import heuristic_label

logger = logging.getLogger(__name__)


def _normalise_label(raw: Any) -> tuple[str, float]:
    """
    Coerce one model label into (polarity, score in [-1, 1]).

    Anything but "bearish" reads as bullish; a missing or non-finite score
    becomes +/-0.1 depending on polarity.
    """
    item = raw if isinstance(raw, dict) else {}
    sentiment = BEARISH if str(item.get("sentiment") or BULLISH).lower() == BEARISH else BULLISH
    try:
        score = float(item.get("score"))
    except (TypeError, ValueError):
        score = math.nan
    if not math.isfinite(score):
        score = 0.1 if sentiment == BULLISH else -0.1
    return sentiment, max(-1.0, min(1.0, score))


async def classify_headlines(
    texts: Sequence[str],
    config: ProviderConfig,
) -> list[tuple[str, float]]:
    """
    Label headlines in one batched classifier call.

    Falls back to the keyword heuristic when no credentials are configured,
    the call fails, or the response cannot be parsed. Output order always
    matches input order.

    Args:
        texts: Headlines to classify
        config: Provider configuration

    Returns:
        (polarity, score) per headline
    """
    texts = list(texts)
    if not texts:
        return []

    result = await call_provider(
        openai_client.SOURCE,
        lambda: openai_client.classify_texts(texts, config),
    )
    if not result.is_ok:
        logger.info(f"Classifier unavailable ({result.error}); using keyword heuristic")
        return [heuristic_label(t) for t in texts]

    labels = result.data or []
    return [_normalise_label(labels[i] if i < len(labels) else None) for i in range(len(texts))]


async def label_missing(
    records: Sequence[HeadlineRecord],
    config: ProviderConfig,
) -> list[HeadlineRecord]:
    """
    Fill in polarity/score for records that have no label yet.

    Labelled records pass through untouched.
    """
    missing = [i for i, r in enumerate(records) if not r.is_labelled]
    if not missing:
        return list(records)

    labels = await classify_headlines([records[i].title for i in missing], config)
    by_index = dict(zip(missing, labels))

    labelled: list[HeadlineRecord] = []
    for i, record in enumerate(records):
        if i in by_index:
            sentiment, score = by_index[i]
            record = replace(record, sentiment=sentiment, score=score)
        labelled.append(record)
    return labelled
