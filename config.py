"""Configuration for the GST invoice generator.

The company profile starts from DEFAULT_COMPANY_PROFILE, is overlaid with an
optional JSON file (INVOICE_PROFILE_PATH) and finally with a few environment
variables, so a deployment can change the numbering prefix or template
without editing files.
"""
import json
import logging
import os
from dataclasses import asdict

from dotenv import load_dotenv

from models import (
    FONT_SIZE_CHOICES,
    MARGIN_CHOICES,
    PAPER_SIZES,
    TEMPLATES,
    CompanyProfile,
    Customer,
)
from utils import hex_to_rgb

load_dotenv()

logger = logging.getLogger(__name__)


def clean_env_value(value):
    """Strip whitespace and one pair of surrounding quotes from an env value."""
    if not value:
        return ""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return value.strip()


# Where the company profile JSON lives (optional)
PROFILE_PATH = clean_env_value(os.getenv("INVOICE_PROFILE_PATH")) or "data/company_profile.json"

# Item catalog CSV (columns: id, name, price, hsn, gst_rate)
ITEM_CATALOG_PATH = clean_env_value(os.getenv("ITEM_CATALOG_PATH")) or "data/items.csv"

LOG_LEVEL = (clean_env_value(os.getenv("LOG_LEVEL")) or "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Environment variable -> profile field
ENV_OVERRIDES = {
    "INVOICE_PREFIX": "invoice_prefix",
    "INVOICE_TEMPLATE": "template",
    "INVOICE_PAPER_SIZE": "pdf_paper_size",
    "INVOICE_ACCENT_COLOR": "accent_color",
}

DEFAULT_COMPANY_PROFILE = {
    "name": "My Business",
    "address": "123 Main Street, Anytown, Karnataka, 12345",
    "gstin": "29ABCDE1234F1Z5",
    "phone": "9998887776",
    "email": "contact@mybusiness.com",
    "logo": "",
    "state": "Karnataka",
    "template": "standard",
    "accent_color": "#4F46E5",
    "custom_footer": "Thank you for your business!",
    "invoice_prefix": "INV-",
    "enable_round_off": True,
    "currency_symbol": "Rs. ",
    "default_gst_rates": "5,12,18,28",
    "show_logo_in_pdf": True,
    "pdf_font_size": "medium",
    "pdf_margin": "normal",
    "pdf_paper_size": "a4",
    "pdf_show_columns": {"hsn": True, "discount": True, "gst": True},
    "show_custom_fields_in_pdf": True,
    "custom_fields": [],
}

# Closed choice sets checked when loading
_CHOICES = {
    "template": TEMPLATES,
    "pdf_paper_size": PAPER_SIZES,
    "pdf_font_size": FONT_SIZE_CHOICES,
    "pdf_margin": MARGIN_CHOICES,
}

SAMPLE_CUSTOMERS = [
    Customer(
        id="cust-1",
        name="ABC Electronics",
        phone="9876543210",
        email="contact@abcelectronics.com",
        billing_address="123 Tech Park, Bangalore, Karnataka, 560001",
        shipping_address="123 Tech Park, Bangalore, Karnataka, 560001",
        gstin="29ABCDE1234F1Z5",
        state="Karnataka",
    ),
    Customer(
        id="cust-2",
        name="PQR Solutions",
        phone="8765432109",
        email="support@pqrsolutions.com",
        billing_address="456 IT Hub, Pune, Maharashtra, 411057",
        shipping_address="456 IT Hub, Pune, Maharashtra, 411057",
        gstin="27FGHIJ5678K2Z9",
        state="Maharashtra",
    ),
    Customer(
        id="cust-3",
        name="XYZ Retail",
        phone="7654321098",
        email="sales@xyzretail.in",
        billing_address="789 Market Street, New Delhi, Delhi, 110001",
        shipping_address="789 Market Street, New Delhi, Delhi, 110001",
        gstin="07LMNOP9012Q3Z8",
        state="Delhi",
    ),
]


def configure_logging(level=None):
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)


def _sanitize(values: dict) -> dict:
    """Replace invalid choice values and colours with defaults, logging each one."""
    for key, choices in _CHOICES.items():
        value = str(values.get(key, "")).lower()
        if value not in choices:
            logger.warning("Invalid %s %r in profile, using %r", key, values.get(key),
                           DEFAULT_COMPANY_PROFILE[key])
            value = DEFAULT_COMPANY_PROFILE[key]
        values[key] = value
    if hex_to_rgb(values.get("accent_color", "")) is None:
        logger.warning("Invalid accent_color %r in profile, using %r", values.get("accent_color"),
                       DEFAULT_COMPANY_PROFILE["accent_color"])
        values["accent_color"] = DEFAULT_COMPANY_PROFILE["accent_color"]
    return values


def load_company_profile(path=None) -> CompanyProfile:
    """Defaults, then the JSON profile file (if present), then environment overrides."""
    values = dict(DEFAULT_COMPANY_PROFILE)
    values["pdf_show_columns"] = dict(DEFAULT_COMPANY_PROFILE["pdf_show_columns"])

    path = path or PROFILE_PATH
    if path and os.path.exists(path):
        with open(path, encoding="utf-8") as fh:
            stored = json.load(fh)
        columns = stored.pop("pdf_show_columns", None) or {}
        values.update(stored)
        values["pdf_show_columns"].update(columns)
        logger.info("Loaded company profile from %s", path)

    for env_name, key in ENV_OVERRIDES.items():
        value = clean_env_value(os.getenv(env_name))
        if value:
            values[key] = value

    return CompanyProfile.from_dict(_sanitize(values))


def save_company_profile(profile: CompanyProfile, path=None):
    path = path or PROFILE_PATH
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(asdict(profile), fh, indent=4, ensure_ascii=False)
    logger.info("Saved company profile to %s", path)
