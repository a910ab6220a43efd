"""Fluxfeed signal MCP server using FastMCP."""

import asyncio
import json
import logging
import os
from datetime import datetime
from typing import Any

from fastmcp import FastMCP

from fluxfeed_mcp import SCHEMA_VERSION, SERVER_VERSION
from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.data import shutdown_executor
from fluxfeed_mcp.models import isoformat_utc
from fluxfeed_mcp.tools import (
    analyze_trade,
    general_news,
    general_stat,
    generate_signal,
    news_feed,
    sundown_digest,
    trending_news,
)
from fluxfeed_mcp.utils.timestamps import utc_now

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, log_level, logging.INFO))
logger = logging.getLogger(__name__)

# Create FastMCP server instance
mcp = FastMCP(
    name="fluxfeed-signals",
)


# ============================================================================
# TOOLS
# ============================================================================


@mcp.tool
async def get_signal(
    ticker: str = "BTC",
    tf: str = "1h",
    since: int = 1440,
    window: str | None = None,
) -> str:
    """
    Directional trading signal (BUY/SELL/NEUTRAL) for a crypto asset.

    Resolves news sentiment (pre-aggregated STAT first, time-decayed
    headline aggregate as fallback) and checks price data availability.

    Args:
        ticker: Asset symbol (e.g., BTC, ETH, SOL)
        tf: Chart timeframe - 15m, 1h, 4h, 1d
        since: Headline lookback in minutes (default: 1440)
        window: Optional sentiment window alias - 24h, 7d, 30d

    Returns:
        JSON with status, confidence (0-100), health, newsScore, count, skew,
        drivers, method (stat/fallback), window, ticker, timeframe, lastUpdated
    """
    result = await generate_signal(ticker=ticker, tf=tf, since_minutes=since, window=window)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def analyze(
    ticker: str = "BTC",
    tf: str = "1h",
    since_minutes: int = 60,
    news: list[dict[str, Any]] | None = None,
) -> str:
    """
    Trade plan with entry, stop-loss and take-profit levels plus rationale.

    Combines news sentiment with price momentum; stops are sized from
    recent volatility with a 2:1 reward-to-risk target.

    Args:
        ticker: Asset symbol (e.g., BTC)
        tf: Chart timeframe - 15m, 1h, 4h, 1d
        since_minutes: Lookback in minutes (default: 60)
        news: Optional headlines [{title, source, sentiment?, score?, publishedAt}]
            to use instead of fetching

    Returns:
        JSON with status, confidence, entryPrice, stopLoss, takeProfit,
        chartReasons, newsReasons, sentimentSummary, aggregateScore,
        aggregateSentiment, features {price, news, aggregateStat}
    """
    result = await analyze_trade(ticker=ticker, tf=tf, since_minutes=since_minutes, news=news)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def get_news(
    tickers: str = "BTC",
    since: int = 1440,
    items: int = 50,
    page: int = 1,
    sentiment: str | None = None,
) -> str:
    """
    Recent headlines for one or more assets, each labelled bullish/bearish.

    Args:
        tickers: Comma-separated symbols (e.g., "BTC,ETH")
        since: Lookback in minutes (default: 1440)
        items: Page size, max 100 (default: 50)
        page: Page number (default: 1)
        sentiment: Optional filter - positive, negative, neutral

    Returns:
        JSON with items: [{id, title, source, url, publishedAt, tickers, sentiment, score}]
    """
    result = await news_feed(
        tickers=tickers,
        since_minutes=since,
        items=items,
        page=page,
        sentiment=sentiment,
    )
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def get_general_news(items: int = 12, page: int = 1) -> str:
    """
    Balanced market-wide feed alternating bullish and bearish headlines.

    Args:
        items: Total items (default: 12)
        page: Page number (default: 1)

    Returns:
        JSON with items, each including imageUrl and text
    """
    result = await general_news(items=items, page=page)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def get_general_stat(date_range: str = "last30days") -> str:
    """
    Market-wide sentiment score (BTC used as proxy).

    Args:
        date_range: last24hours, last7days or last30days

    Returns:
        JSON with score, sentiment and items
    """
    result = await general_stat(date_range=date_range)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def get_trending_news(page: int = 1) -> str:
    """
    Trending crypto headlines with full article details, each labelled.

    Args:
        page: Page number (default: 1)

    Returns:
        JSON with items (up to 20), each including imageUrl and text
    """
    result = await trending_news(page=page)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def get_sundown_digest(page: int = 1) -> str:
    """
    End-of-day market digest items, each labelled bullish/bearish.

    Args:
        page: Page number (default: 1)

    Returns:
        JSON with items (no url, tickers or image)
    """
    result = await sundown_digest(page=page)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def health() -> str:
    """
    Server liveness and which upstream providers have credentials.

    Returns:
        JSON with ok, time, versions and provider flags
    """
    return json.dumps(health_report(ProviderConfig.from_env()), indent=2, default=str)


def health_report(config: ProviderConfig, now: datetime | None = None) -> dict[str, Any]:
    """Liveness payload; never calls upstream providers."""
    return {
        "ok": True,
        "time": isoformat_utc(now or utc_now()),
        "server_version": SERVER_VERSION,
        "schema_version": SCHEMA_VERSION,
        "providers": {
            "cryptonews": config.has_cryptonews,
            "classifier": config.has_classifier,
        },
    }


# ============================================================================
# ENTRY POINT
# ============================================================================


def main() -> None:
    """Run the MCP server."""
    logger.info(f"Starting Fluxfeed Signal MCP Server v{SERVER_VERSION} (schema v{SCHEMA_VERSION})")
    try:
        mcp.run()
    finally:
        asyncio.run(shutdown_executor())


if __name__ == "__main__":
    main()
