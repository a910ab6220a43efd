"""Tests for keyword polarity scoring."""

import pytest

from fluxfeed_mcp.utils.heuristics import (
    fallback_headline_score,
    heuristic_label,
    heuristic_score,
    native_label_score,
)


class TestHeuristicScore:
    """Tests for heuristic_score."""

    def test_positive_keyword(self) -> None:
        assert heuristic_score("Solana breakout above resistance") == 0.3

    def test_negative_keyword(self) -> None:
        assert heuristic_score("Regulators announce ban on mixers") == -0.4

    def test_both_keywords(self) -> None:
        """Positive and negative hits combine."""
        assert heuristic_score("Rally fades after exchange hack") == -0.1

    def test_no_keywords(self) -> None:
        assert heuristic_score("Developers meet in Lisbon") == 0.0

    def test_case_insensitive(self) -> None:
        assert heuristic_score("RECORD ETF INFLOWS") == 0.3

    def test_multiple_hits_do_not_stack(self) -> None:
        """Each side contributes at most once."""
        assert heuristic_score("Surge, rally and record growth") == 0.3

    def test_substring_match(self) -> None:
        """Keywords match inside longer words ('fine' in 'finest')."""
        assert heuristic_score("Finest hour for holders") == -0.4


class TestHeuristicLabel:
    """Tests for heuristic_label."""

    def test_zero_is_bullish(self) -> None:
        assert heuristic_label("Nothing to see") == ("bullish", 0.0)

    def test_negative_is_bearish(self) -> None:
        assert heuristic_label("Token dump continues") == ("bearish", -0.4)


class TestNativeLabels:
    """Tests for provider-label scoring on the fallback path."""

    @pytest.mark.parametrize(
        "label, expected",
        [("positive", 0.35), ("Negative", -0.35), ("neutral", 0.0), (None, None), ("", None), ("mixed", None)],
    )
    def test_native_label_score(self, label, expected) -> None:
        assert native_label_score(label) == expected

    def test_provider_label_wins_over_keywords(self) -> None:
        """A provider label overrides keyword hits in the title."""
        assert fallback_headline_score("Exchange hack drains wallet", "positive") == 0.35

    def test_neutral_label_wins_over_keywords(self) -> None:
        assert fallback_headline_score("Record rally", "neutral") == 0.0

    def test_keywords_when_unlabelled(self) -> None:
        assert fallback_headline_score("Record rally", None) == 0.3
