"""Utility modules."""

from fluxfeed_mcp.utils.aggregate import aggregate_scores, rank_drivers, summarize_headlines
from fluxfeed_mcp.utils.heuristics import fallback_headline_score, heuristic_label, heuristic_score
from fluxfeed_mcp.utils.indicators import compute_price_features
from fluxfeed_mcp.utils.ohlcv import closes_from_frame, closes_from_klines
from fluxfeed_mcp.utils.sanitize import headline_excerpt, sanitize_text
from fluxfeed_mcp.utils.timestamps import parse_timestamp, utc_now

__all__ = [
    "aggregate_scores",
    "rank_drivers",
    "summarize_headlines",
    "fallback_headline_score",
    "heuristic_label",
    "heuristic_score",
    "compute_price_features",
    "closes_from_frame",
    "closes_from_klines",
    "headline_excerpt",
    "sanitize_text",
    "parse_timestamp",
    "utc_now",
]
