from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from models import DomesticTax, InterstateTax, LineItem, TaxBreakdown


def is_intra_state(seller_state, buyer_state):
    """
    Same state means intra-state supply.

    Case and surrounding spaces are ignored, so "Karnataka " and "karnataka"
    match. This is looser than an exact string comparison, which would tax
    such pairs as inter-state.
    """
    return seller_state.strip().lower() == buyer_state.strip().lower()


def discounted_amount(qty, unit_price, discount):
    """Post-discount, pre-tax line total."""
    amount = qty * unit_price
    return amount - amount * discount / 100


def compute_line(item: LineItem, intra_state: bool):
    """
    Compute tax breakdown for one invoice line.
    Intra-state → CGST + SGST (half the rate each)
    Else → IGST
    """
    taxable = discounted_amount(item.quantity, item.price, item.discount)
    tax = taxable * item.gst_rate / 100
    igst = cgst = sgst = 0.0
    if intra_state:
        cgst = tax / 2
        sgst = tax / 2
    else:
        igst = tax

    line_total = taxable + cgst + sgst + igst
    return {
        "taxable": taxable,
        "cgst": cgst,
        "sgst": sgst,
        "igst": igst,
        "line_total": line_total
    }


def compute_tax(items: Iterable[LineItem], seller_state: str, buyer_state: str,
                round_off: bool = False) -> TaxBreakdown:
    """
    Derive subtotal, GST split and grand total for a whole invoice.

    The jurisdiction is decided once from the seller/buyer pair, so an
    invoice is either fully intra-state or fully inter-state. Inputs are
    not validated: negative quantities or prices flow straight through.
    """
    intra_state = is_intra_state(seller_state, buyer_state)
    subtotal = cgst = sgst = igst = 0.0

    for item in items:
        res = compute_line(item, intra_state)
        subtotal += res["taxable"]
        cgst += res["cgst"]
        sgst += res["sgst"]
        igst += res["igst"]

    grand_total = subtotal + cgst + sgst + igst
    if round_off:
        grand_total = round_to_unit(grand_total)

    tax = DomesticTax(cgst=cgst, sgst=sgst) if intra_state else InterstateTax(igst=igst)
    return TaxBreakdown(subtotal=subtotal, tax=tax, grand_total=grand_total)


def round_to_unit(val):
    """Round to the nearest whole currency unit, halves away from zero."""
    return float(Decimal(str(val)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def money(val):
    """Round to 2 decimals consistently for money values."""
    return round(float(val), 2)
