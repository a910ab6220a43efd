"""Signal engine tools."""

from fluxfeed_mcp.tools.analyze import analyze_trade
from fluxfeed_mcp.tools.classifier import classify_headlines, label_missing
from fluxfeed_mcp.tools.news import general_news, general_stat, news_feed, sundown_digest, trending_news
from fluxfeed_mcp.tools.price import extract_price_features
from fluxfeed_mcp.tools.sentiment import resolve_sentiment
from fluxfeed_mcp.tools.signal import generate_signal

__all__ = [
    "analyze_trade",
    "classify_headlines",
    "extract_price_features",
    "general_news",
    "general_stat",
    "generate_signal",
    "label_missing",
    "news_feed",
    "resolve_sentiment",
    "sundown_digest",
    "trending_news",
]
