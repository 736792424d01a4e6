"""Tests for steam_pricer.pricing.parsing."""

import pytest

from steam_pricer.pricing.parsing import parse_numeric


class TestParseNumeric:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("$13.40", 13.40),
            ("13,40€", 13.40),
            ("123,45", 123.45),
            ("1.234,56 TL", 1234.56),
            ("CDN$ 0.03", 0.03),
            ("₩ 1500", 1500.0),
            ("7", 7.0),
        ],
    )
    def test_currency_formats(self, text, expected):
        assert parse_numeric(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", [None, "", "free", "no digits here", "--", "$"])
    def test_no_number_is_none(self, text):
        assert parse_numeric(text) is None

    def test_first_number_wins(self):
        assert parse_numeric("$2.50 (was $3.00)") == pytest.approx(2.50)

    def test_multiple_dots_takes_leading_number(self):
        assert parse_numeric("1.2.3") == pytest.approx(1.2)

    def test_zero_is_a_price_not_none(self):
        assert parse_numeric("$0.00") == 0.0

    def test_lone_separator_is_none(self):
        assert parse_numeric("price: ,") is None
