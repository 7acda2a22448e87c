"""Invoice finalization: validation, numbering and tax totals.

This is the caller side of the tax calculator. The calculator itself is a
pure numeric transform, so the checks that keep bad input out of saved
invoices live here.
"""

from __future__ import annotations

import logging
import uuid
import calendar
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple, Union

from models import (
    ColumnVisibility,
    CompanyProfile,
    Customer,
    Invoice,
    InvoiceStatus,
    LineItem,
)
from tax_calc import compute_tax
from utils import next_invoice_number

logger = logging.getLogger(__name__)

DEFAULT_NOTES = "Thank you for your business!"
DEFAULT_DUE_DAYS = 15
DEFAULT_GST_RATE = 18.0


class InvoiceValidationError(ValueError):
    pass


class DuplicateInvoiceNumberError(InvoiceValidationError):
    pass


def blank_line_item() -> LineItem:
    return LineItem(id=f"temp-{uuid.uuid4().hex[:8]}", gst_rate=DEFAULT_GST_RATE)


def validate_items(items: Iterable[LineItem]) -> None:
    for index, item in enumerate(items, start=1):
        if item.quantity < 0:
            raise InvoiceValidationError(f"Item {index}: quantity cannot be negative")
        if item.price < 0:
            raise InvoiceValidationError(f"Item {index}: price cannot be negative")
        if not 0 <= item.discount <= 100:
            raise InvoiceValidationError(f"Item {index}: discount must be between 0 and 100")
        if item.gst_rate < 0:
            raise InvoiceValidationError(f"Item {index}: GST rate cannot be negative")


def ensure_unique_number(invoice_number: str, existing_numbers: Iterable[str]) -> None:
    """Commit-time check backing up the non-atomic number allocator."""
    if invoice_number in set(existing_numbers):
        raise DuplicateInvoiceNumberError(f"Invoice number {invoice_number} is already in use")


def create_invoice(
    customer: Optional[Customer],
    items: list[LineItem],
    profile: CompanyProfile,
    existing_numbers: Iterable[str],
    *,
    invoice_date: Optional[date] = None,
    due_date: Optional[date] = None,
    notes: str = DEFAULT_NOTES,
    template: Optional[str] = None,
    paper_size: Optional[str] = None,
    show_columns: Optional[ColumnVisibility] = None,
) -> Invoice:
    """Validate a new invoice, allocate its number and compute its totals."""
    if customer is None:
        raise InvoiceValidationError("Please select a customer.")
    validate_items(items)

    existing_numbers = list(existing_numbers)
    invoice_date = invoice_date or date.today()
    number = next_invoice_number(existing_numbers, profile.invoice_prefix, invoice_date.year)
    ensure_unique_number(number, existing_numbers)

    invoice = Invoice(
        id=f"inv-{uuid.uuid4().hex[:12]}",
        invoice_number=number,
        date=invoice_date,
        due_date=due_date or invoice_date + timedelta(days=DEFAULT_DUE_DAYS),
        customer=customer,
        items=list(items),
        status=InvoiceStatus.DRAFT,
        notes=notes,
        template=template,
        paper_size=paper_size,
        show_columns=show_columns,
    )
    invoice = recalculate(invoice, profile)
    logger.info("Created invoice %s for %s (grand total %.2f)",
                number, customer.name, invoice.grand_total)
    return invoice


def update_invoice(invoice: Invoice, profile: CompanyProfile, **changes) -> Invoice:
    """Apply edits to a saved invoice; the invoice number never changes."""
    if "invoice_number" in changes and changes["invoice_number"] != invoice.invoice_number:
        raise InvoiceValidationError("Invoice number cannot be changed once assigned")
    if "customer" in changes and changes["customer"] is None:
        raise InvoiceValidationError("Please select a customer.")
    if "items" in changes:
        validate_items(changes["items"])
    return recalculate(replace(invoice, **changes), profile)


def recalculate(invoice: Invoice, profile: CompanyProfile) -> Invoice:
    """Recompute the full tax breakdown from items, customer state and round-off."""
    tax = compute_tax(
        invoice.items,
        profile.state,
        invoice.customer.state,
        round_off=profile.enable_round_off,
    )
    return replace(invoice, tax=tax)


# ---------------------------------------------------
# INVOICE LIST
# ---------------------------------------------------
@dataclass(frozen=True)
class InvoiceSummary:
    total_revenue: float
    pending_amount: float
    invoice_count: int


def invoice_summary(invoices: Iterable[Invoice]) -> InvoiceSummary:
    """Revenue counts Paid invoices only; everything else is still pending."""
    revenue = pending = 0.0
    count = 0
    for inv in invoices:
        count += 1
        if inv.status == InvoiceStatus.PAID:
            revenue += inv.grand_total
        else:
            pending += inv.grand_total
    return InvoiceSummary(total_revenue=revenue, pending_amount=pending, invoice_count=count)


def newest_first(invoices: Iterable[Invoice]) -> List[Invoice]:
    return sorted(invoices, key=lambda inv: inv.date, reverse=True)


def recent_invoices(invoices: Iterable[Invoice], limit: int = 5) -> List[Invoice]:
    return newest_first(invoices)[:limit]


def month_range(today: date, months_back: int = 0) -> Tuple[date, date]:
    """First and last day of the month ``months_back`` months before ``today``."""
    month_index = today.year * 12 + today.month - 1 - months_back
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def filter_invoices(
    invoices: Iterable[Invoice],
    query: str = "",
    status: Union[InvoiceStatus, str, None] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Invoice]:
    """
    Invoices matching every given filter, newest first.

    ``query`` is a case-insensitive substring of the invoice number or the
    customer name. ``status`` of None or "all" keeps every status. The date
    range is inclusive and only applies once both ends are set.
    """
    query = (query or "").strip().lower()
    if status == "all":
        status = None
    if status is not None:
        status = InvoiceStatus(status)

    matches = []
    for inv in invoices:
        if status is not None and inv.status != status:
            continue
        if query and query not in inv.invoice_number.lower() and query not in inv.customer.name.lower():
            continue
        if start and end and not start <= inv.date <= end:
            continue
        matches.append(inv)
    return newest_first(matches)


def delete_invoice(invoices: Iterable[Invoice], invoice_id: str) -> List[Invoice]:
    """A new list without the invoice ``invoice_id``; unknown ids leave it unchanged."""
    remaining = [inv for inv in invoices if inv.id != invoice_id]
    logger.info("Deleted invoice %s", invoice_id)
    return remaining
