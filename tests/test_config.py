import json
import logging

import pytest

from config import clean_env_value, load_company_profile, save_company_profile
from models import ColumnVisibility, CustomField


@pytest.fixture(autouse=True)
def clear_overrides(monkeypatch):
    for name in ("INVOICE_PREFIX", "INVOICE_TEMPLATE", "INVOICE_PAPER_SIZE", "INVOICE_ACCENT_COLOR"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_when_no_file(tmp_path):
    profile = load_company_profile(str(tmp_path / "missing.json"))
    assert profile.invoice_prefix == "INV-"
    assert profile.template == "standard"
    assert profile.enable_round_off is True
    assert profile.pdf_show_columns == ColumnVisibility()


def test_file_values_and_invalid_choices(tmp_path, caplog):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps({
        "invoice_prefix": "BILL-",
        "template": "fancy",
        "pdf_paper_size": "Letter",
        "accent_color": "blue",
        "pdf_show_columns": {"gst": False},
        "custom_fields": [{"id": "cf-1", "label": "PAN", "value": "ABCDE1234F"}],
    }))
    with caplog.at_level(logging.WARNING):
        profile = load_company_profile(str(path))
    assert profile.invoice_prefix == "BILL-"
    assert profile.template == "standard"
    assert profile.pdf_paper_size == "letter"
    assert profile.accent_color == "#4F46E5"
    assert profile.pdf_show_columns == ColumnVisibility(hsn=True, discount=True, gst=False)
    assert profile.custom_fields == [CustomField(id="cf-1", label="PAN", value="ABCDE1234F")]
    assert "Invalid template" in caplog.text


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps({"invoice_prefix": "BILL-"}))
    monkeypatch.setenv("INVOICE_PREFIX", '"ENV-"')
    monkeypatch.setenv("INVOICE_TEMPLATE", "modern")
    profile = load_company_profile(str(path))
    assert profile.invoice_prefix == "ENV-"
    assert profile.template == "modern"


def test_saved_profile_loads_back(tmp_path):
    path = str(tmp_path / "nested" / "profile.json")
    profile = load_company_profile(path)
    profile.name = "Saved Co"
    profile.custom_fields.append(CustomField(id="cf-9", label="Bank", value="HDFC"))
    save_company_profile(profile, path)
    assert load_company_profile(path) == profile


def test_clean_env_value():
    assert clean_env_value('  "abc" ') == "abc"
    assert clean_env_value("'x'") == "x"
    assert clean_env_value(None) == ""
