"""Tests for date cell parsing"""
from datetime import date

import pytest

from business.dates import format_date, parse_date


class TestParseDate:

    @pytest.mark.parametrize("text", [
        "2025/11/17",
        "2025-11-17",
        "２０２５／１１／１７",
        "2025年11月17日",
        " 2025 / 11 / 17 ",
        "2025.11.17",
    ])
    def test_full_dates(self, text):
        assert parse_date(text) == date(2025, 11, 17)

    def test_single_digit_parts(self):
        assert parse_date("2025/1/7") == date(2025, 1, 7)

    def test_month_day_uses_reference_year(self):
        assert parse_date("11/17", today=date(2024, 3, 1)) == date(2024, 11, 17)
        assert parse_date("3月5日", today=date(2026, 1, 1)) == date(2026, 3, 5)

    @pytest.mark.parametrize("text", [None, "", "-", "未設定", "  "])
    def test_placeholders(self, text):
        assert parse_date(text) is None

    @pytest.mark.parametrize("text", ["来週", "2025/13/01", "2025/02/30", "17/11/2025"])
    def test_invalid(self, text):
        assert parse_date(text) is None


class TestFormatDate:

    def test_zero_padded(self):
        assert format_date(date(2025, 1, 7)) == "2025/01/07"
