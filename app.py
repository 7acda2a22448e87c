import base64
import os
from datetime import date, timedelta

import streamlit as st

from config import (
    ITEM_CATALOG_PATH,
    SAMPLE_CUSTOMERS,
    configure_logging,
    load_company_profile,
    save_company_profile,
)
from invoice_generator import generate_invoice_image_bytes, generate_invoice_pdf, pdf_filename
from invoices import (
    DEFAULT_DUE_DAYS,
    DEFAULT_NOTES,
    InvoiceValidationError,
    blank_line_item,
    create_invoice,
    delete_invoice,
    filter_invoices,
    invoice_summary,
    month_range,
)
from item_catalog import ItemCatalog, frequent_items, to_line_item
from models import PAPER_SIZES, TEMPLATES, ColumnVisibility, CustomField, InvoiceStatus
from tax_calc import compute_tax
from utils import format_indian, parse_gst_rates

configure_logging()

# ---------------------------------------------------
# PAGE CONFIG
# ---------------------------------------------------
st.set_page_config(page_title="GST Invoice Generator", layout="wide")

st.markdown("""
    <style>
        .main, .stApp {
            background-color: #f7faff;
        }
        h1, h2, h3, h4 {
            color: #0b5394;
        }
        .section-title {
            font-size: 22px;
            color: #008000;
            font-weight: 700;
            border-bottom: 2px solid #008000;
            margin-bottom: 12px;
            padding-bottom: 4px;
        }
        .summary-box {
            background-color: #eaf1fb;
            padding: 12px 18px;
            border-radius: 8px;
            font-weight: 600;
            margin-top: 15px;
            border-left: 4px solid #0b5394;
        }
    </style>
""", unsafe_allow_html=True)

# ---------------------------------------------------
# SESSION STATE
# ---------------------------------------------------
if "profile" not in st.session_state:
    st.session_state.profile = load_company_profile()
if "invoices" not in st.session_state:
    st.session_state.invoices = []
if "invoice_items" not in st.session_state:
    st.session_state.invoice_items = [blank_line_item()]


@st.cache_resource
def load_catalog(path):
    if os.path.exists(path):
        return ItemCatalog.from_csv(path)
    return ItemCatalog([])


profile = st.session_state.profile
catalog = load_catalog(ITEM_CATALOG_PATH)
customers = {c.id: c for c in SAMPLE_CUSTOMERS}

# ---------------------------------------------------
# COMPANY SETTINGS (SIDEBAR)
# ---------------------------------------------------
with st.sidebar:
    st.header("Company Profile")
    profile.name = st.text_input("Business Name", value=profile.name)
    profile.address = st.text_area("Address", value=profile.address)
    profile.gstin = st.text_input("GSTIN", value=profile.gstin)
    profile.phone = st.text_input("Phone", value=profile.phone)
    profile.state = st.text_input("State", value=profile.state)

    st.header("Invoice Preferences")
    profile.invoice_prefix = st.text_input("Invoice Prefix", value=profile.invoice_prefix)
    profile.template = st.selectbox("Template", TEMPLATES, index=TEMPLATES.index(profile.template))
    profile.pdf_paper_size = st.selectbox("Paper Size", PAPER_SIZES,
                                          index=PAPER_SIZES.index(profile.pdf_paper_size))
    profile.accent_color = st.color_picker("Accent Colour", value=profile.accent_color)
    profile.enable_round_off = st.checkbox("Enable Grand Total Round-off", value=profile.enable_round_off)
    profile.default_gst_rates = st.text_input("Default GST Rates", value=profile.default_gst_rates)
    profile.custom_footer = st.text_input("Custom Footer", value=profile.custom_footer)

    logo_file = st.file_uploader("Logo", type=["png", "jpg", "jpeg"])
    if logo_file is not None:
        profile.logo = base64.b64encode(logo_file.read()).decode("ascii")
    profile.show_logo_in_pdf = st.checkbox("Show Logo in PDF", value=profile.show_logo_in_pdf)

    st.subheader("Custom Fields")
    profile.show_custom_fields_in_pdf = st.checkbox("Show Custom Fields in PDF",
                                                    value=profile.show_custom_fields_in_pdf)
    new_label = st.text_input("Field Label")
    new_value = st.text_input("Field Value")
    if st.button("Add Field") and new_label:
        profile.custom_fields.append(CustomField(id=f"cf-{len(profile.custom_fields) + 1}",
                                                 label=new_label, value=new_value))
    for f in profile.custom_fields:
        st.caption(f"{f.label}: {f.value}")

    if st.button("Save Profile"):
        save_company_profile(profile)
        st.success("Profile saved")

# ---------------------------------------------------
# NEW INVOICE
# ---------------------------------------------------
st.title("🧾 GST Invoice Generator")
st.markdown('<div class="section-title">New Invoice</div>', unsafe_allow_html=True)

customer_id = st.selectbox("Customer", [""] + list(customers),
                           format_func=lambda cid: customers[cid].name if cid else "Select a customer")
customer = customers.get(customer_id)

col1, col2 = st.columns(2)
with col1:
    invoice_date = st.date_input("Date", value=date.today())
with col2:
    due_date = st.date_input("Due Date", value=date.today() + timedelta(days=DEFAULT_DUE_DAYS))

if customer:
    suggestions = frequent_items(st.session_state.invoices, customer.id)
    if suggestions:
        st.caption("Frequently billed for this customer:")
        cols = st.columns(len(suggestions))
        for col, sugg in zip(cols, suggestions):
            if col.button(f"➕ {sugg.name}", key=f"sugg-{sugg.name}-{sugg.price}"):
                st.session_state.invoice_items.append(sugg)

gst_rates = parse_gst_rates(profile.default_gst_rates) or [18.0]
items = st.session_state.invoice_items

for i, it in enumerate(items):
    cols = st.columns([3, 1, 1, 1, 1, 1])
    it.name = cols[0].text_input(f"Item {i + 1}", value=it.name, key=f"name{i}")
    matches = catalog.search(it.name) if it.name else []
    if matches and matches[0].name != it.name and cols[0].button(f"Use '{matches[0].name}'", key=f"pick{i}"):
        picked = to_line_item(matches[0], quantity=it.quantity, discount=it.discount)
        picked.id = it.id
        items[i] = it = picked
    it.hsn = cols[1].text_input("HSN/SAC", value=it.hsn, key=f"hsn{i}")
    it.quantity = cols[2].number_input("Qty", min_value=0.0, value=float(it.quantity), key=f"qty{i}")
    it.price = cols[3].number_input("Rate", min_value=0.0, value=float(it.price), key=f"price{i}")
    it.discount = cols[4].number_input("Disc %", min_value=0.0, max_value=100.0,
                                       value=float(it.discount), key=f"disc{i}")
    rate_options = sorted(set(gst_rates) | {0.0, float(it.gst_rate)})
    it.gst_rate = cols[5].selectbox("GST %", rate_options, index=rate_options.index(float(it.gst_rate)),
                                    key=f"gst{i}")

col1, col2 = st.columns(2)
with col1:
    if st.button("➕ Add Item"):
        items.append(blank_line_item())
with col2:
    if st.button("➖ Remove Item") and len(items) > 1:
        items.pop()

notes = st.text_area("Notes", value=DEFAULT_NOTES)

with st.expander("Advanced Options"):
    template = st.selectbox("Template", TEMPLATES, index=TEMPLATES.index(profile.template), key="inv-template")
    paper_size = st.selectbox("Paper Size", PAPER_SIZES,
                              index=PAPER_SIZES.index(profile.pdf_paper_size), key="inv-paper")
    defaults = profile.pdf_show_columns
    show_columns = ColumnVisibility(
        hsn=st.checkbox("Show HSN/SAC", value=defaults.hsn),
        discount=st.checkbox("Show Discount", value=defaults.discount),
        gst=st.checkbox("Show GST", value=defaults.gst),
    )

if customer:
    totals = compute_tax(items, profile.state, customer.state, profile.enable_round_off)
    st.markdown(f"""
    <div class="summary-box">
        Subtotal: ₹{totals.subtotal:.2f}<br>
        CGST: ₹{totals.cgst:.2f} | SGST: ₹{totals.sgst:.2f} | IGST: ₹{totals.igst:.2f}<br>
        <b>Grand Total: {format_indian(totals.grand_total, "₹")}</b>
    </div>
    """, unsafe_allow_html=True)

if st.button("Save Invoice"):
    try:
        invoice = create_invoice(
            customer, list(items), profile,
            [inv.invoice_number for inv in st.session_state.invoices],
            invoice_date=invoice_date, due_date=due_date, notes=notes,
            template=template, paper_size=paper_size, show_columns=show_columns,
        )
    except InvoiceValidationError as e:
        st.warning(str(e))
    else:
        st.session_state.invoices.append(invoice)
        st.session_state.invoice_items = [blank_line_item()]
        st.success(f"✅ Saved invoice {invoice.invoice_number}")

# ---------------------------------------------------
# DASHBOARD
# ---------------------------------------------------
st.markdown('<div class="section-title">Dashboard</div>', unsafe_allow_html=True)

summary = invoice_summary(st.session_state.invoices)
col1, col2, col3 = st.columns(3)
col1.metric("Total Revenue", format_indian(summary.total_revenue, "₹"))
col2.metric("Pending Amount", format_indian(summary.pending_amount, "₹"))
col3.metric("Total Invoices", summary.invoice_count)

# ---------------------------------------------------
# SAVED INVOICES
# ---------------------------------------------------
st.markdown('<div class="section-title">Invoices</div>', unsafe_allow_html=True)

if not st.session_state.invoices:
    st.info("📝 No invoices yet. Create one above.")

statuses = [s.value for s in InvoiceStatus]
col1, col2, col3 = st.columns([2, 1, 1])
with col1:
    search = st.text_input("Search by invoice # or customer")
with col2:
    status_filter = st.selectbox("Status", ["all"] + statuses, key="status-filter")
with col3:
    date_filter = st.selectbox("Date", ["All Time", "This Month", "Last Month", "Custom Range"])

start = end = None
if date_filter == "This Month":
    start, end = month_range(date.today())
elif date_filter == "Last Month":
    start, end = month_range(date.today(), months_back=1)
elif date_filter == "Custom Range":
    col1, col2 = st.columns(2)
    start = col1.date_input("From", value=None)
    end = col2.date_input("To", value=None)

for inv in filter_invoices(st.session_state.invoices, search, status_filter, start, end):
    with st.expander(f"{inv.invoice_number} · {inv.customer.name} · {format_indian(inv.grand_total, '₹')}"):
        inv.status = InvoiceStatus(st.selectbox("Status", statuses, index=statuses.index(inv.status.value),
                                                key=f"status-{inv.id}"))
        col1, col2, col3 = st.columns(3)
        with col1:
            # PDF bytes are built on request and kept for the download button
            if st.button("📄 Prepare PDF", key=f"prep-{inv.id}"):
                st.session_state[f"pdf-{inv.id}"] = generate_invoice_pdf(inv, profile)
            pdf_bytes = st.session_state.get(f"pdf-{inv.id}")
            if pdf_bytes:
                st.download_button("⬇️ Download Invoice (PDF)",
                                   data=pdf_bytes,
                                   file_name=pdf_filename(inv),
                                   mime="application/pdf",
                                   key=f"pdf-dl-{inv.id}")
        with col2:
            if st.button("🖼️ Preview", key=f"preview-{inv.id}"):
                st.image(generate_invoice_image_bytes(inv, profile))
        with col3:
            if st.button("🗑️ Delete", key=f"delete-{inv.id}"):
                st.session_state.invoices = delete_invoice(st.session_state.invoices, inv.id)
                st.session_state.pop(f"pdf-{inv.id}", None)
                st.rerun()
