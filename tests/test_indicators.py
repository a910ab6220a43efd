"""Tests for price feature calculations."""

import math

import pandas as pd
import pytest

from fluxfeed_mcp.utils.indicators import (
    calculate_returns,
    calculate_sma_last,
    calculate_volatility_pct,
    compute_price_features,
)


class TestSMA:
    """Tests for trailing SMA."""

    def test_uses_last_twenty(self) -> None:
        prices = pd.Series([1000.0] * 5 + [10.0] * 20)
        assert calculate_sma_last(prices) == 10.0

    def test_fewer_than_period(self) -> None:
        """All closes are used when fewer than 20 exist."""
        assert calculate_sma_last(pd.Series([1.0, 2.0, 3.0])) == 2.0


class TestVolatility:
    """Tests for return volatility."""

    def test_population_std(self) -> None:
        returns = pd.Series([0.01, -0.01])
        assert math.isclose(calculate_volatility_pct(returns), 1.0)

    def test_fewer_than_two_returns(self) -> None:
        assert calculate_volatility_pct(pd.Series([0.05])) == 0.0

    def test_returns_skip_zero_base(self) -> None:
        """A step from a zero close is dropped instead of going infinite."""
        returns = calculate_returns(pd.Series([0.0, 1.0, 2.0]))
        assert list(returns) == [1.0]


class TestComputePriceFeatures:
    """Tests for compute_price_features."""

    def test_known_series(self) -> None:
        feats = compute_price_features([100, 102, 101, 105])

        assert feats["last"] == 105
        assert math.isclose(feats["change_pct"], 5.0)
        # SMA of all four closes = 102
        assert math.isclose(feats["momentum"], (105 - 102) / 102 * 100)

        returns = [0.02, -1 / 102, 4 / 101]
        mean = sum(returns) / 3
        expected_vol = math.sqrt(sum((r - mean) ** 2 for r in returns) / 3) * 100
        assert math.isclose(feats["vol"], expected_vol)

    def test_single_close(self) -> None:
        feats = compute_price_features([42.0])
        assert feats == {"last": 42.0, "change_pct": 0.0, "momentum": 0.0, "vol": 0.0}

    def test_zero_first_close(self) -> None:
        """Percent change is 0 when the first close is 0."""
        assert compute_price_features([0.0, 5.0])["change_pct"] == 0.0

    def test_empty_raises(self) -> None:
        with pytest.raises(ValueError):
            compute_price_features([])

    def test_non_finite_dropped(self) -> None:
        feats = compute_price_features([float("nan"), 100.0, 110.0])
        assert math.isclose(feats["change_pct"], 10.0)
