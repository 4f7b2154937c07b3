"""Tests for small utility helpers."""
from app.utils.helpers import count_words, safe_divide, slugify, truncate_text


def test_slugify():
    assert slugify("Risk Management Plan (v2)") == "risk-management-plan-v2"
    assert slugify("Café  Été_Report") == "cafe-ete-report"
    assert slugify("!!!") == "document"


def test_truncate_text():
    assert truncate_text("short") == "short"
    assert truncate_text("abcdefghij", max_length=6) == "abc..."


def test_count_words_and_safe_divide():
    assert count_words(" one  two\nthree ") == 3
    assert safe_divide(1, 4) == 0.25
    assert safe_divide(1, 0, default=1.0) == 1.0
