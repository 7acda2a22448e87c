import base64
from datetime import date
from io import BytesIO

import pytest
from PIL import Image

from models import CompanyProfile, CustomField, Customer, Invoice, LineItem
from invoices import recalculate


@pytest.fixture
def profile():
    return CompanyProfile(
        name="My Business",
        address="123 Main Street, Anytown, Karnataka, 12345",
        gstin="29ABCDE1234F1Z5",
        phone="9998887776",
        state="Karnataka",
        custom_footer="Thank you for your business!",
        custom_fields=[
            CustomField(id="cf-1", label="PAN", value="ABCDE1234F"),
            CustomField(id="cf-2", label="Bank", value="HDFC 000123456"),
        ],
    )


@pytest.fixture
def local_customer():
    return Customer(
        id="cust-1",
        name="ABC Electronics",
        state="Karnataka",
        gstin="29ABCDE1234F1Z5",
        billing_address="123 Tech Park, Bangalore, Karnataka, 560001",
    )


@pytest.fixture
def remote_customer():
    return Customer(
        id="cust-2",
        name="PQR Solutions",
        state="Maharashtra",
        gstin="27FGHIJ5678K2Z9",
        billing_address="456 IT Hub, Pune, Maharashtra, 411057",
    )


@pytest.fixture
def laptop_items():
    return [
        LineItem(name='Laptop Pro 15"', hsn="8471", quantity=1, price=85000, discount=5, gst_rate=18),
        LineItem(name="Wireless Mouse", hsn="8471", quantity=2, price=1200, discount=0, gst_rate=18),
    ]


@pytest.fixture
def make_invoice(profile, laptop_items, local_customer):
    def _make(customer=None, items=None, **overrides):
        invoice = Invoice(
            id="inv-1",
            invoice_number="INV-2024-0001",
            date=date(2024, 7, 20),
            due_date=date(2024, 8, 4),
            customer=customer or local_customer,
            items=laptop_items if items is None else items,
            notes="Payment is due within 15 days.",
            **overrides,
        )
        return recalculate(invoice, profile)
    return _make


@pytest.fixture
def png_logo():
    buffer = BytesIO()
    Image.new("RGB", (8, 8), "red").save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")
