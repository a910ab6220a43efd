"""Tests for close extraction from provider payloads."""

import pandas as pd
import pytest

from fluxfeed_mcp.utils.ohlcv import closes_from_frame, closes_from_klines


class TestClosesFromKlines:
    """Tests for Binance kline parsing."""

    def test_close_is_index_four(self) -> None:
        klines = [
            [1700000000000, "100.0", "101.0", "99.0", "100.5", "12.3"],
            [1700003600000, "100.5", "102.0", "100.0", "101.7", "8.1"],
        ]
        assert closes_from_klines(klines) == [100.5, 101.7]

    def test_empty(self) -> None:
        assert closes_from_klines([]) == []

    def test_not_a_list(self) -> None:
        with pytest.raises(ValueError):
            closes_from_klines({"code": -1121, "msg": "Invalid symbol."})

    def test_short_row(self) -> None:
        with pytest.raises(ValueError):
            closes_from_klines([[1, 2, 3]])


class TestClosesFromFrame:
    """Tests for yfinance frame parsing."""

    def test_flat_columns(self) -> None:
        df = pd.DataFrame({"Open": [1.0, 2.0], "Close": [1.5, 2.5]})
        assert closes_from_frame(df) == [1.5, 2.5]

    def test_multiindex_columns(self) -> None:
        """yf.download returns (field, ticker) columns."""
        columns = pd.MultiIndex.from_tuples([("Close", "BTC-USD"), ("Open", "BTC-USD")])
        df = pd.DataFrame([[100.0, 99.0], [102.0, 100.0]], columns=columns)
        assert closes_from_frame(df) == [100.0, 102.0]

    def test_drops_missing(self) -> None:
        df = pd.DataFrame({"Close": [1.0, None, 3.0]})
        assert closes_from_frame(df) == [1.0, 3.0]

    def test_empty_frame(self) -> None:
        assert closes_from_frame(pd.DataFrame()) == []

    def test_no_close_column(self) -> None:
        assert closes_from_frame(pd.DataFrame({"Open": [1.0]})) == []
