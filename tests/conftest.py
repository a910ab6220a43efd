"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta

import pytest
import pytz

from fluxfeed_mcp.config import ProviderConfig
from fluxfeed_mcp.models import HeadlineRecord, PriceFeatures


@pytest.fixture
def fixed_now() -> datetime:
    """Pinned reference time for decay and cutoff calculations."""
    return pytz.UTC.localize(datetime(2024, 5, 1, 12, 0, 0))


@pytest.fixture
def config() -> ProviderConfig:
    """Config with both providers keyed."""
    return ProviderConfig(
        cryptonews_api_key="news-key",
        openai_api_key="openai-key",
    )


@pytest.fixture
def keyless_config() -> ProviderConfig:
    """Config with no credentials at all."""
    return ProviderConfig()


@pytest.fixture
def sample_records(fixed_now: datetime) -> list[HeadlineRecord]:
    """Headlines with a mix of provider labels and recency."""
    return [
        HeadlineRecord(
            id="1",
            title="Bitcoin ETF inflow hits record high",
            source="CoinDesk",
            url="https://example.com/1",
            published_at=fixed_now - timedelta(hours=1),
            tickers=("BTC",),
            sentiment="bullish",
            score=0.3,
            provider_sentiment="positive",
        ),
        HeadlineRecord(
            id="2",
            title="Exchange hack drains hot wallet",
            source="The Block",
            url="https://example.com/2",
            published_at=fixed_now - timedelta(hours=3),
            tickers=("BTC",),
        ),
        HeadlineRecord(
            id="3",
            title="Miners gather in Austin for annual meetup",
            source="Decrypt",
            url="https://example.com/3",
            published_at=fixed_now - timedelta(hours=5),
            tickers=("BTC",),
            provider_sentiment="neutral",
        ),
    ]


@pytest.fixture
def live_price() -> PriceFeatures:
    """Price features from the primary exchange with positive momentum."""
    return PriceFeatures(
        pair="BTCUSDT",
        interval="1h",
        last=60000.0,
        change_pct=2.5,
        momentum=1.2,
        vol=0.8,
        source="binance",
    )
