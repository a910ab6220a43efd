"""Tests for trade plan generation."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from fluxfeed_mcp.models import NewsSkew, PriceFeatures, StatSummary
from fluxfeed_mcp.tools.analyze import (
    analyze_trade,
    build_trade_plan,
    chart_reasons,
    decide_plan,
    plan_levels,
    records_from_request,
    volatility_fraction,
)
from fluxfeed_mcp.utils.sanitize import headline_excerpt

NO_PRICE = PriceFeatures.unavailable("BTCUSDT", "1h")


class TestDecidePlan:
    """Tests for plan status and confidence bands."""

    def test_buy_needs_agreeing_momentum(self, live_price) -> None:
        # 55 + round((0.9 * 30 + 1.2) / 2) = 55 + 14
        assert decide_plan(0.9, live_price) == ("BUY", 69)

    def test_disagreement_is_neutral(self, live_price) -> None:
        assert decide_plan(-0.9, live_price) == ("NEUTRAL", 45)
        assert decide_plan(0.05, live_price) == ("NEUTRAL", 45)

    def test_sell_with_price(self) -> None:
        falling = PriceFeatures(pair="BTCUSDT", interval="1h", last=100.0, momentum=-4.0, source="binance")
        assert decide_plan(-0.5, falling) == ("SELL", 65)

    def test_price_confidence_capped(self) -> None:
        ripping = PriceFeatures(pair="BTCUSDT", interval="1h", last=100.0, momentum=80.0, source="binance")
        assert decide_plan(1.5, ripping) == ("BUY", 88)

    @pytest.mark.parametrize(
        "score, expected",
        [
            (0.2, ("BUY", 57)),
            (-0.2, ("SELL", 57)),
            (0.15, ("NEUTRAL", 35)),
            (0.9, ("BUY", 80)),
        ],
    )
    def test_news_only(self, score, expected) -> None:
        assert decide_plan(score, NO_PRICE) == expected


class TestLevels:
    """Tests for stop/take-profit levels."""

    @pytest.mark.parametrize("vol, expected", [(0.1, 0.005), (0.8, 0.008), (5.0, 0.02), (-1.0, 0.01)])
    def test_volatility_fraction(self, vol, expected) -> None:
        assert volatility_fraction(vol) == pytest.approx(expected)

    def test_buy_levels(self) -> None:
        stop, take = plan_levels("BUY", 60000.0, 0.008)
        assert stop == pytest.approx(59520.0)
        assert take == pytest.approx(60960.0)

    def test_sell_levels(self) -> None:
        stop, take = plan_levels("SELL", 100.0, 0.02)
        assert stop == pytest.approx(102.0)
        assert take == pytest.approx(96.0)

    def test_neutral_levels(self) -> None:
        assert plan_levels("NEUTRAL", 100.0, 0.02) == (100.0, 100.0)


class TestReasons:
    """Tests for rationale text."""

    def test_chart_reasons_with_price(self, live_price) -> None:
        assert chart_reasons("BUY", 0.9, live_price, 0.008) == [
            "Price above SMA20 by 1.20%",
            "Volatility ~ 0.80% suggests 80bp stop, 2R target",
        ]

    def test_chart_reasons_news_only(self) -> None:
        assert chart_reasons("SELL", -0.42, NO_PRICE, 0.005) == [
            "News-based signal: strong bearish sentiment",
            "Sentiment score -0.42 < 0",
        ]

    def test_excerpt_always_has_ellipsis(self) -> None:
        assert headline_excerpt("Short") == "Short..."
        assert headline_excerpt("x" * 100) == "x" * 60 + "..."

    def test_plan_without_stat_uses_headline_average(self) -> None:
        skew = NewsSkew(avg=-0.3, bullish=1, bearish=3, count=4)
        plan = build_trade_plan(StatSummary.disabled(), skew, NO_PRICE, "Regulator files lawsuit")

        assert plan.status == "SELL"
        assert plan.aggregate_sentiment == "bearish"
        assert plan.news_reasons == (
            "1 bullish vs 3 bearish headlines",
            "Average news score -0.30",
            'Top: "Regulator files lawsuit..."',
        )
        assert plan.to_dict()["features"]["aggregateStat"] is None


class TestRecordsFromRequest:
    """Tests for caller-supplied headlines."""

    def test_mapping(self, fixed_now) -> None:
        records = records_from_request(
            [
                {"title": "A", "source": "X", "sentiment": "Bullish", "score": 3},
                {"title": "B", "sentiment": "meh", "score": "n/a", "publishedAt": "2024-05-01T10:00:00Z"},
                "junk",
            ],
            "ETH",
            fixed_now,
        )
        assert len(records) == 2
        assert (records[0].id, records[0].sentiment, records[0].score) == ("0", "bullish", 1.0)
        assert records[0].published_at == fixed_now
        assert (records[1].sentiment, records[1].score, records[1].source) == (None, None, "Unknown")
        assert records[1].published_at.hour == 10
        assert records[1].tickers == ("ETH",)

    @pytest.mark.parametrize("raw", ["nan", "NaN", float("nan"), "inf", float("-inf")])
    def test_non_finite_score_is_missing(self, raw, fixed_now) -> None:
        records = records_from_request([{"title": "x", "sentiment": "bearish", "score": raw}], "BTC", fixed_now)
        assert (records[0].sentiment, records[0].score) == ("bearish", None)


class TestAnalyzeTrade:
    """End-to-end trade plan tests."""

    @patch("fluxfeed_mcp.data.openai_client.post_json", new_callable=AsyncMock)
    @patch("fluxfeed_mcp.tools.analyze.extract_price_features", new_callable=AsyncMock)
    @patch("fluxfeed_mcp.data.cryptonews_client.fetch_stat", new_callable=AsyncMock)
    def test_stat_buy_with_supplied_news(
        self, mock_stat: AsyncMock, mock_price: AsyncMock, mock_post: AsyncMock, config, live_price, fixed_now
    ) -> None:
        mock_stat.return_value = StatSummary(ok=True, score=0.9, count=40, bullish=30, bearish=10)
        mock_price.return_value = live_price
        news = [
            {"title": "ETF inflows surge", "source": "X", "sentiment": "bullish", "score": 0.6},
            {"title": "Exchange hack", "source": "Y", "sentiment": "bearish", "score": -0.4},
        ]

        plan = asyncio.run(analyze_trade("btc", "1h", news=news, config=config, now=fixed_now))

        mock_post.assert_not_called()
        assert plan["status"] == "BUY"
        assert plan["confidence"] == 69
        assert plan["entryPrice"] == 60000.0
        assert plan["stopLoss"] == pytest.approx(59520.0)
        assert plan["takeProfit"] == pytest.approx(60960.0)
        assert plan["aggregateScore"] == 0.9
        assert plan["features"]["aggregateStat"] == {"score": 0.9, "sentiment": "bullish", "items": 40}
        assert plan["features"]["news"] == {"avg": pytest.approx(0.1), "bullish": 1, "bearish": 1, "count": 2}
        assert plan["newsReasons"][2] == 'Top headline: "ETF inflows surge..."'
        assert plan["sentimentSummary"].startswith("Overall sentiment: bullish (score: 0.90 from 40 items)")

    @patch("fluxfeed_mcp.tools.analyze.extract_price_features", new_callable=AsyncMock)
    def test_nothing_available(self, mock_price: AsyncMock, keyless_config, fixed_now) -> None:
        mock_price.return_value = NO_PRICE

        plan = asyncio.run(analyze_trade("BTC", config=keyless_config, now=fixed_now))

        assert plan["status"] == "NEUTRAL"
        assert plan["confidence"] == 35
        assert plan["entryPrice"] == 0.0
        assert plan["chartReasons"] == ["Neutral sentiment: balanced news signals", "Score 0.00 near 0"]
        assert plan["newsReasons"][2] == "No headlines"
        assert plan["features"]["price"]["source"] == "unavailable"

    @patch("fluxfeed_mcp.tools.analyze.extract_price_features", new_callable=AsyncMock)
    def test_nan_score_does_not_flip_bearish_headline(
        self, mock_price: AsyncMock, keyless_config, fixed_now
    ) -> None:
        mock_price.return_value = NO_PRICE
        news = [{"title": "Exchange hack", "source": "X", "sentiment": "bearish", "score": "NaN"}]

        plan = asyncio.run(analyze_trade("BTC", news=news, config=keyless_config, now=fixed_now))

        assert plan["status"] == "NEUTRAL"
        assert plan["features"]["news"] == {"avg": 0.0, "bullish": 0, "bearish": 1, "count": 1}
