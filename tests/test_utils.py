import logging
from datetime import date

from utils import (
    accent_rgb,
    format_amount,
    format_date,
    format_indian,
    format_number,
    hex_to_rgb,
    next_invoice_number,
    parse_gst_rates,
)


def test_next_number_follows_highest_suffix():
    existing = ["INV-2024-0001", "INV-2024-0003"]
    assert next_invoice_number(existing, "INV-", 2024) == "INV-2024-0004"


def test_first_number_of_the_year():
    assert next_invoice_number(["INV-2024-0007"], "INV-", 2025) == "INV-2025-0001"
    assert next_invoice_number([], "INV-", 2025) == "INV-2025-0001"


def test_unparseable_suffixes_are_skipped():
    existing = ["INV-2024-0002", "INV-2024-DRAFT", "INV-2024-"]
    assert next_invoice_number(existing, "INV-", 2024) == "INV-2024-0003"


def test_new_prefix_restarts_the_sequence():
    existing = ["INV-2024-0041", "INV-2024-0042"]
    assert next_invoice_number(existing, "BILL/", 2024) == "BILL/2024-0001"


def test_empty_prefix_falls_back_to_default():
    assert next_invoice_number(["INV-2024-0009"], "", 2024) == "INV-2024-0010"


def test_sequence_grows_past_four_digits():
    assert next_invoice_number(["INV-2024-9999"], "INV-", 2024) == "INV-2024-10000"


def test_hex_colours():
    assert hex_to_rgb("#4F46E5") == (79, 70, 229)
    assert hex_to_rgb("4f46e5") == (79, 70, 229)
    assert hex_to_rgb("#12345") is None


def test_malformed_accent_falls_back_to_black(caplog):
    with caplog.at_level(logging.WARNING):
        assert accent_rgb("purple") == (0, 0, 0)
    assert "Invalid accent colour" in caplog.text


def test_parse_gst_rates_skips_junk():
    assert parse_gst_rates("5, 12,18 ,28") == [5.0, 12.0, 18.0, 28.0]
    assert parse_gst_rates("5,,abc,0.25") == [5.0, 0.25]
    assert parse_gst_rates("") == []


def test_indian_grouping():
    assert format_indian(98117) == "98,117.00"
    assert format_indian(1234567.5, "Rs. ") == "Rs. 12,34,567.50"
    assert format_indian(999) == "999.00"
    assert format_indian(-100000) == "-1,00,000.00"


def test_plain_formats():
    assert format_amount(7483.5, "Rs. ") == "Rs. 7483.50"
    assert format_number(2.0) == "2"
    assert format_number(1.5) == "1.5"
    assert format_date(date(2024, 7, 5)) == "5/7/2024"


def test_only_plain_digit_suffixes_count():
    existing = ["INV-2024-0002", "INV-2024-1_000", "INV-2024- 50", "INV-2024-١٢"]
    assert next_invoice_number(existing, "INV-", 2024) == "INV-2024-0003"
