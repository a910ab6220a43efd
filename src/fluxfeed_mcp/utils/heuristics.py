"""Deterministic keyword-based headline polarity scoring."""

from fluxfeed_mcp.models import BEARISH, BULLISH

POSITIVE_KEYWORDS = (
    "surge", "rally", "inflow", "buy", "support", "breakout",
    "approval", "record", "growth",
)
NEGATIVE_KEYWORDS = (
    "hack", "dump", "sell", "ban", "lawsuit", "crash",
    "exploit", "delist", "outflow", "fine",
)

POSITIVE_WEIGHT = 0.3
NEGATIVE_WEIGHT = 0.4

# Provider-native labels used by the stat fallback path
NATIVE_LABEL_SCORE = 0.35


def heuristic_score(text: str) -> float:
    """
    Score a headline from keyword hits.

    +0.3 if any positive keyword appears, -0.4 if any negative keyword
    appears (both may apply). Matching is case-insensitive substring.
    """
    lowered = (text or "").lower()
    score = 0.0
    if any(k in lowered for k in POSITIVE_KEYWORDS):
        score += POSITIVE_WEIGHT
    if any(k in lowered for k in NEGATIVE_KEYWORDS):
        score -= NEGATIVE_WEIGHT
    return round(score, 4)


def heuristic_label(text: str) -> tuple[str, float]:
    """Polarity and score for one headline; zero counts as bullish."""
    score = heuristic_score(text)
    return (BULLISH if score >= 0 else BEARISH), score


def native_label_score(label: str | None) -> float | None:
    """Map a provider sentiment word onto +/-0.35 (neutral is 0, unknown is None)."""
    if not label:
        return None
    label = label.lower()
    if label == "positive":
        return NATIVE_LABEL_SCORE
    if label == "negative":
        return -NATIVE_LABEL_SCORE
    if label == "neutral":
        return 0.0
    return None


def fallback_headline_score(title: str, provider_label: str | None) -> float:
    """Score used on the stat fallback path: provider label first, keywords otherwise."""
    native = native_label_score(provider_label)
    if native is not None:
        return native
    return heuristic_score(title)
