"""Tests for CryptoNews payload mapping."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from fluxfeed_mcp.data.cryptonews_client import (
    fetch_headlines,
    fetch_stat,
    map_article,
    parse_stat_payload,
)
from fluxfeed_mcp.data.http_client import MalformedUpstreamPayloadError, ProviderUnavailableError
from fluxfeed_mcp.models import isoformat_utc


class TestParseStatPayload:
    """Tests for parse_stat_payload."""

    def test_basic(self) -> None:
        stat = parse_stat_payload(
            {"score": 0.9, "total": 40, "bullish": 30, "bearish": 10, "drivers": ["a", "b"]}
        )
        assert stat.ok
        assert (stat.score, stat.count, stat.bullish, stat.bearish) == (0.9, 40, 30, 10)
        assert stat.drivers == ("a", "b")
        assert stat.is_usable

    def test_count_fallback_keys(self) -> None:
        assert parse_stat_payload({"items": 7}).count == 7
        assert parse_stat_payload({"count": 3}).count == 3

    def test_score_clamped(self) -> None:
        assert parse_stat_payload({"score": 4.2}).score == 1.5
        assert parse_stat_payload({"score": -9}).score == -1.5

    def test_drivers_capped_and_coerced(self) -> None:
        drivers = [{"title": "ETF approval"}, "b", None, "c", "d", "e", "f"]
        stat = parse_stat_payload({"drivers": drivers})
        assert stat.drivers == ("ETF approval", "b", "c", "d")

    def test_empty_summary_is_not_usable(self) -> None:
        stat = parse_stat_payload({"score": 0, "total": 0})
        assert stat.ok
        assert not stat.is_usable

    def test_non_numeric_fields(self) -> None:
        stat = parse_stat_payload({"score": "n/a", "total": {"x": 1}})
        assert (stat.score, stat.count) == (0.0, 0)

    def test_non_finite_values_read_as_zero(self) -> None:
        stat = parse_stat_payload({"score": 0.8, "total": "Infinity", "bullish": float("nan"), "bearish": "-inf"})
        assert (stat.score, stat.count, stat.bullish, stat.bearish) == (0.8, 0, 0, 0)
        assert stat.is_usable

    def test_not_an_object(self) -> None:
        with pytest.raises(MalformedUpstreamPayloadError):
            parse_stat_payload(["nope"])


class TestMapArticle:
    """Tests for map_article."""

    def test_full_article(self, fixed_now) -> None:
        record = map_article(
            {
                "news_url": "https://news.example.com/a",
                "title": "ETH rally extends",
                "source_name": "CoinDesk",
                "date": "Wed, 01 May 2024 06:00:00 -0400",
                "tickers": ["eth"],
                "sentiment": "Positive",
            },
            ["BTC"],
            fixed_now,
        )
        assert record.id == "https://news.example.com/a"
        assert record.url == "https://news.example.com/a"
        assert record.source == "CoinDesk"
        assert record.tickers == ("ETH",)
        assert (record.sentiment, record.score) == ("bullish", 0.3)
        assert record.provider_sentiment == "positive"
        assert isoformat_utc(record.published_at) == "2024-05-01T10:00:00.000Z"

    def test_neutral_label_leaves_polarity_empty(self, fixed_now) -> None:
        record = map_article({"title": "t", "sentiment": "Neutral"}, ["BTC"], fixed_now)
        assert record.sentiment is None
        assert record.score == 0.0

    def test_defaults(self, fixed_now) -> None:
        record = map_article({"title": "t", "ticker": "sol"}, ["BTC"], fixed_now)
        assert record.source == "Unknown"
        assert record.published_at == fixed_now
        assert record.tickers == ("SOL",)
        assert record.sentiment is None and record.score is None

    def test_falls_back_to_requested_tickers(self, fixed_now) -> None:
        assert map_article({"title": "t"}, ["BTC", "ETH"], fixed_now).tickers == ("BTC", "ETH")

    def test_unparseable_date(self, fixed_now) -> None:
        assert map_article({"title": "t", "date": "yesterday-ish"}, [], fixed_now) is None

    def test_labels_not_applied_for_category_feed(self, fixed_now) -> None:
        record = map_article({"title": "t", "sentiment": "negative"}, [], fixed_now, apply_labels=False)
        assert record.sentiment is None
        assert record.provider_sentiment == "negative"


class TestFetchers:
    """Tests for fetch_stat and fetch_headlines request shaping."""

    def test_stat_requires_key(self, keyless_config) -> None:
        with pytest.raises(ProviderUnavailableError):
            asyncio.run(fetch_stat("BTC", "last24hours", keyless_config))

    @patch("fluxfeed_mcp.data.cryptonews_client.get_json", new_callable=AsyncMock)
    def test_stat_params(self, mock_get: AsyncMock, config) -> None:
        mock_get.return_value = {"score": 0.5, "total": 12}
        stat = asyncio.run(fetch_stat("BTC", "last7days", config))

        assert stat.count == 12
        url = mock_get.call_args.args[0]
        params = mock_get.call_args.kwargs["params"]
        assert url.endswith("/stat")
        assert params == {"tickers": "BTC", "date": "last7days", "page": 1, "token": "news-key"}

    @patch("fluxfeed_mcp.data.cryptonews_client.get_json", new_callable=AsyncMock)
    def test_headlines_single_ticker_and_cutoff(self, mock_get: AsyncMock, config, fixed_now) -> None:
        mock_get.return_value = {
            "data": [
                {"title": "fresh", "date": isoformat_utc(fixed_now - timedelta(minutes=30))},
                {"title": "stale", "date": isoformat_utc(fixed_now - timedelta(hours=3))},
            ]
        }
        records = asyncio.run(
            fetch_headlines(["BTC"], config, since_minutes=60, items=500, now=fixed_now)
        )

        assert [r.title for r in records] == ["fresh"]
        params = mock_get.call_args.kwargs["params"]
        assert params["tickers-only"] == "BTC"
        assert params["items"] == 100

    @patch("fluxfeed_mcp.data.cryptonews_client.get_json", new_callable=AsyncMock)
    def test_headlines_multiple_tickers(self, mock_get: AsyncMock, config, fixed_now) -> None:
        mock_get.return_value = {"news": []}
        asyncio.run(fetch_headlines(["BTC", "ETH"], config, sentiment="negative", now=fixed_now))

        params = mock_get.call_args.kwargs["params"]
        assert params["tickers-include"] == "BTC,ETH"
        assert params["sentiment"] == "negative"
        assert "tickers-only" not in params

    @patch("fluxfeed_mcp.data.cryptonews_client.get_json", new_callable=AsyncMock)
    def test_headlines_malformed(self, mock_get: AsyncMock, config, fixed_now) -> None:
        mock_get.return_value = {"data": "oops"}
        with pytest.raises(MalformedUpstreamPayloadError):
            asyncio.run(fetch_headlines(["BTC"], config, now=fixed_now))
