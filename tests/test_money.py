"""Tests for monetary coercion and rounding."""

import pytest

from order_logistics.money import format_mru, round_amount, to_amount


class TestToAmount:

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", float("nan"), float("inf"), [1]])
    def test_unusable_values_become_zero(self, value):
        assert to_amount(value) == 0.0

    def test_numeric_strings_are_parsed(self):
        assert to_amount(" 12.5 ") == 12.5

    def test_numbers_pass_through(self):
        assert to_amount(7) == 7.0
        assert to_amount(-3.25) == -3.25


class TestRoundAmount:

    def test_half_rounds_up(self):
        assert round_amount(2.5) == 3
        assert round_amount(3.5) == 4

    def test_negative_half_rounds_toward_positive(self):
        assert round_amount(-2.5) == -2

    def test_missing_is_zero(self):
        assert round_amount(None) == 0

    def test_returns_int(self):
        assert isinstance(round_amount(10.4), int)


def test_format_mru():
    assert format_mru(1234.4) == "1,234 MRU"
    assert format_mru(None) == "0 MRU"
