"""Tests for amount, count and contact parsing"""
import pytest

from business.amounts import parse_amount, parse_contact, parse_count, parse_int


class TestParseAmount:

    @pytest.mark.parametrize("text,expected", [
        ("3万円", 30000),
        ("5-10万", 75000),
        ("40万〜60万円", 500000),
        ("1.5万", 15000),
        ("12000円", 12000),
        ("1000-1001円", 1001),
        ("", 0),
        (None, 0),
        ("未定", 0),
    ])
    def test_parse(self, text, expected):
        assert parse_amount(text) == expected

    def test_only_first_two_numbers_count(self):
        assert parse_amount("10-20-90万") == 150000


class TestParseCounts:

    def test_leading_integer(self):
        assert parse_int("15以上") == 15
        assert parse_int(" 3") == 3
        assert parse_int("約3") is None
        assert parse_int("") is None

    def test_count_defaults_to_zero(self):
        assert parse_count("") == 0
        assert parse_count("不明") == 0
        assert parse_count("4") == 4


class TestParseContact:

    def test_markdown_link(self):
        assert parse_contact("[X](https://x.com/yamada)") == ("X", "https://x.com/yamada")

    def test_bare_url(self):
        assert parse_contact("https://example.com") == ("開く", "https://example.com")

    def test_plain_text(self):
        assert parse_contact("電話のみ") is None
        assert parse_contact("") is None
