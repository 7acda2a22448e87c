"""Data models for invoices, customers and the company profile."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Optional, Union


TEMPLATES = ("standard", "compact", "modern")
PAPER_SIZES = ("a4", "letter", "a5")
FONT_SIZE_CHOICES = ("small", "medium", "large")
MARGIN_CHOICES = ("normal", "narrow")


class InvoiceStatus(str, Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"
    OVERDUE = "Overdue"


@dataclass
class LineItem:
    name: str = ""
    hsn: str = ""
    quantity: float = 1
    price: float = 0.0
    discount: float = 0.0    # percentage, 0-100
    gst_rate: float = 0.0    # percentage
    id: str = ""


@dataclass
class ColumnVisibility:
    hsn: bool = True
    discount: bool = True
    gst: bool = True


@dataclass
class Customer:
    id: str
    name: str
    state: str
    gstin: str = ""
    phone: str = ""
    email: str = ""
    billing_address: str = ""
    shipping_address: str = ""


@dataclass
class CatalogItem:
    id: str
    name: str
    price: float
    hsn: str = ""
    gst_rate: float = 0.0


@dataclass(frozen=True)
class DomesticTax:
    """Intra-state supply: tax split evenly into CGST and SGST."""

    cgst: float = 0.0
    sgst: float = 0.0

    @property
    def total(self) -> float:
        return self.cgst + self.sgst


@dataclass(frozen=True)
class InterstateTax:
    """Inter-state supply: the whole tax is IGST."""

    igst: float = 0.0

    @property
    def total(self) -> float:
        return self.igst


@dataclass(frozen=True)
class TaxBreakdown:
    subtotal: float
    tax: Union[DomesticTax, InterstateTax]
    grand_total: float

    @property
    def is_interstate(self) -> bool:
        return isinstance(self.tax, InterstateTax)

    @property
    def cgst(self) -> float:
        return 0.0 if self.is_interstate else self.tax.cgst

    @property
    def sgst(self) -> float:
        return 0.0 if self.is_interstate else self.tax.sgst

    @property
    def igst(self) -> float:
        return self.tax.igst if self.is_interstate else 0.0

    @property
    def unrounded_total(self) -> float:
        return self.subtotal + self.tax.total


ZERO_TAX = TaxBreakdown(subtotal=0.0, tax=DomesticTax(), grand_total=0.0)


@dataclass
class CustomField:
    id: str
    label: str
    value: str


@dataclass
class CompanyProfile:
    name: str = "My Business"
    address: str = ""
    gstin: str = ""
    phone: str = ""
    email: str = ""
    logo: str = ""           # base64 or data URL
    state: str = ""

    # invoice preferences
    template: str = "standard"
    accent_color: str = "#4F46E5"
    custom_footer: str = ""
    invoice_prefix: str = "INV-"
    enable_round_off: bool = True
    currency_symbol: str = "Rs. "

    # tax settings
    default_gst_rates: str = "5,12,18,28"

    # pdf & print preferences
    show_logo_in_pdf: bool = True
    pdf_font_size: str = "medium"
    pdf_margin: str = "normal"
    pdf_paper_size: str = "a4"
    pdf_show_columns: ColumnVisibility = field(default_factory=ColumnVisibility)

    show_custom_fields_in_pdf: bool = True
    custom_fields: list[CustomField] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> CompanyProfile:
        """Build a profile from a plain mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        columns = values.get("pdf_show_columns")
        if isinstance(columns, dict):
            values["pdf_show_columns"] = ColumnVisibility(**columns)
        values["custom_fields"] = [
            f if isinstance(f, CustomField) else CustomField(**f)
            for f in values.get("custom_fields") or []
        ]
        return cls(**values)


@dataclass
class Invoice:
    id: str
    invoice_number: str
    date: date
    due_date: date
    customer: Customer
    items: list[LineItem] = field(default_factory=list)
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: str = ""
    tax: TaxBreakdown = ZERO_TAX

    # per-invoice overrides of the profile defaults
    template: Optional[str] = None
    paper_size: Optional[str] = None
    show_columns: Optional[ColumnVisibility] = None

    @property
    def subtotal(self) -> float:
        return self.tax.subtotal

    @property
    def grand_total(self) -> float:
        return self.tax.grand_total
