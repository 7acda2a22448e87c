import logging

import pytest

from invoice_generator import (
    MAX_ITEMS,
    FilledRect,
    ImageBlock,
    Line,
    ModernTemplate,
    StandardTemplate,
    TableBlock,
    TextBlock,
    generate_invoice_image_bytes,
    generate_invoice_pdf,
    get_template,
    render_invoice,
    resolve_settings,
    text_width,
)
from models import ColumnVisibility, LineItem


def _text_op(doc, text):
    return next(op for op in doc.ops if isinstance(op, TextBlock) and text in op.lines)


def test_intra_state_totals_show_cgst_and_sgst_only(profile, make_invoice):
    doc = render_invoice(make_invoice(), profile)
    texts = doc.texts()
    assert "CGST" in texts and "SGST" in texts
    assert "IGST" not in texts
    assert "Rs. 7483.50" in texts
    assert "Rs. 98,117.00" in texts


def test_inter_state_totals_show_igst_only(profile, make_invoice, remote_customer):
    for template in ("standard", "compact", "modern"):
        doc = render_invoice(make_invoice(customer=remote_customer, template=template), profile)
        texts = doc.texts()
        assert "IGST" in texts
        assert "CGST" not in texts and "SGST" not in texts
        assert "Rs. 14967.00" in texts


def test_grand_total_always_rendered(profile, make_invoice):
    doc = render_invoice(make_invoice(items=[]), profile)
    assert "Grand Total" in doc.texts()
    assert "Rs. 0.00" in doc.texts()


def test_invoice_override_beats_profile(profile, make_invoice):
    profile.template = "modern"
    profile.pdf_paper_size = "letter"
    settings = resolve_settings(make_invoice(template="compact", paper_size="a5"), profile)
    assert (settings.template, settings.paper_size) == ("compact", "a5")

    settings = resolve_settings(make_invoice(), profile)
    assert (settings.template, settings.paper_size) == ("modern", "letter")
    assert settings.columns == profile.pdf_show_columns


@pytest.mark.parametrize("paper, size", [("a4", (210, 297)), ("letter", (215.9, 279.4)), ("a5", (148, 210))])
def test_page_dimensions_match_paper_size(profile, make_invoice, paper, size):
    doc = render_invoice(make_invoice(paper_size=paper), profile)
    assert (doc.width, doc.height) == size


def test_unknown_template_or_paper_is_rejected(profile, make_invoice):
    with pytest.raises(ValueError):
        render_invoice(make_invoice(template="fancy"), profile)
    with pytest.raises(ValueError):
        render_invoice(make_invoice(paper_size="legal"), profile)


def test_template_classes(profile, make_invoice):
    settings = resolve_settings(make_invoice(template="compact"), profile)
    template = get_template(profile, settings)
    assert isinstance(template, StandardTemplate) and template.compact
    settings = resolve_settings(make_invoice(template="modern"), profile)
    assert isinstance(get_template(profile, settings), ModernTemplate)


def test_compact_uses_smaller_fonts(profile, make_invoice):
    standard = render_invoice(make_invoice(template="standard"), profile)
    compact = render_invoice(make_invoice(template="compact"), profile)
    assert _text_op(compact, "TAX INVOICE").size == _text_op(standard, "TAX INVOICE").size - 2
    assert _text_op(compact, "Bill To:").size == _text_op(standard, "Bill To:").size - 1
    std_table = next(op for op in standard.ops if isinstance(op, TableBlock))
    cmp_table = next(op for op in compact.ops if isinstance(op, TableBlock))
    assert cmp_table.size == std_table.size - 1
    assert cmp_table.y < std_table.y


def test_modern_has_accent_band_and_striped_table(profile, make_invoice):
    doc = render_invoice(make_invoice(template="modern"), profile)
    band = next(op for op in doc.ops if isinstance(op, FilledRect))
    assert (band.x, band.y, band.width) == (0, 0, 210)
    assert band.color == (79, 70, 229)
    table = next(op for op in doc.ops if isinstance(op, TableBlock))
    assert table.theme == "striped"
    assert "GRAND TOTAL" in doc.texts()


def test_standard_uses_grid_table(profile, make_invoice):
    doc = render_invoice(make_invoice(), profile)
    table = next(op for op in doc.ops if isinstance(op, TableBlock))
    assert table.theme == "grid"
    assert table.head_color == (79, 70, 229)


def test_column_visibility_override(profile, make_invoice):
    invoice = make_invoice(show_columns=ColumnVisibility(hsn=False, discount=False, gst=False))
    table = next(op for op in render_invoice(invoice, profile).ops if isinstance(op, TableBlock))
    assert [cell[0] for cell in table.header] == ["#", "Item", "Qty", "Rate", "Amount"]


def test_logo_drawn_only_when_enabled(profile, make_invoice, png_logo):
    profile.logo = png_logo
    doc = render_invoice(make_invoice(), profile)
    assert any(isinstance(op, ImageBlock) for op in doc.ops)

    profile.show_logo_in_pdf = False
    doc = render_invoice(make_invoice(), profile)
    assert not any(isinstance(op, ImageBlock) for op in doc.ops)


def test_corrupt_logo_degrades_gracefully(profile, make_invoice, caplog):
    profile.logo = "data:image/png;base64,bm90IGFuIGltYWdl"
    with caplog.at_level(logging.WARNING):
        doc = render_invoice(make_invoice(template="modern"), profile)
    assert not any(isinstance(op, ImageBlock) for op in doc.ops)
    assert "Could not decode logo" in caplog.text
    assert "GRAND TOTAL" in doc.texts()


def test_malformed_accent_colour_renders_black(profile, make_invoice):
    profile.accent_color = "not-a-colour"
    doc = render_invoice(make_invoice(), profile)
    assert _text_op(doc, "TAX INVOICE").color == (0, 0, 0)


def test_seller_block_clears_title_on_a5(profile, make_invoice):
    profile.name = "A Rather Long Trading Company Name Private Limited"
    doc = render_invoice(make_invoice(paper_size="a5"), profile)
    title = _text_op(doc, "TAX INVOICE")
    title_right = title.x + text_width("TAX INVOICE", title.size, "bold") / 2
    seller_blocks = [op for op in doc.ops
                     if isinstance(op, TextBlock) and op.align == "right" and op.y < 45]
    assert seller_blocks
    for block in seller_blocks:
        for line in block.lines:
            assert block.x - text_width(line, block.size, block.style) > title_right


def test_totals_stay_above_footer(profile, make_invoice):
    for template in ("standard", "compact", "modern"):
        doc = render_invoice(make_invoice(template=template), profile)
        rule = [op for op in doc.ops if isinstance(op, Line)][-1]
        grand = _text_op(doc, "Rs. 98,117.00")
        assert grand.page == rule.page
        assert grand.bottom < rule.y1


def _totals_pairs(doc):
    values = [op for op in doc.ops
              if isinstance(op, TextBlock) and op.align == "right" and op.lines[0].startswith("Rs. ")]
    for value in values:
        label = next(op for op in doc.ops if isinstance(op, TextBlock) and op.align == "left"
                     and op.page == value.page and op.y == value.y)
        yield label, value


def test_lakh_scale_totals_keep_labels_clear_of_values(profile, make_invoice):
    profile.pdf_font_size = "large"
    items = [LineItem(name="Server", hsn="8471", quantity=10, price=100000, gst_rate=18)]
    for template in ("standard", "compact", "modern"):
        doc = render_invoice(make_invoice(items=items, template=template), profile)
        assert "Rs. 11,80,000.00" in doc.texts()
        pairs = list(_totals_pairs(doc))
        assert len(pairs) == 4  # subtotal, CGST, SGST, grand total
        for label, value in pairs:
            label_right = label.x + text_width(label.lines[0], label.size, label.style)
            value_left = value.x - text_width(value.lines[0], value.size, value.style)
            assert label_right < value_left
            assert label.x >= 15


def test_long_item_list_breaks_across_pages(profile, make_invoice):
    items = [LineItem(name=f"Part {n}", hsn="8471", quantity=1, price=10, gst_rate=18) for n in range(80)]
    doc = render_invoice(make_invoice(items=items), profile)
    tables = [op for op in doc.ops if isinstance(op, TableBlock)]
    assert doc.page_count > 1
    assert len(tables) > 1
    assert sum(len(t.rows) for t in tables) == 80
    assert all(t.bottom <= doc.height - 15 for t in tables)
    assert [t.page for t in tables] == list(range(len(tables)))
    # footer lands on the last page
    footer_rule = [op for op in doc.ops if isinstance(op, Line)][-1]
    assert footer_rule.page == doc.page_count - 1


def test_too_many_items_is_refused(profile, make_invoice):
    items = [LineItem(name="x", price=1)] * (MAX_ITEMS + 1)
    with pytest.raises(ValueError):
        render_invoice(make_invoice(items=items), profile)


def test_pdf_output(profile, make_invoice, png_logo):
    profile.logo = png_logo
    for template in ("standard", "compact", "modern"):
        pdf = generate_invoice_pdf(make_invoice(template=template), profile)
        assert pdf.startswith(b"%PDF")


def test_png_preview(profile, make_invoice):
    png = generate_invoice_image_bytes(make_invoice(template="modern"), profile)
    assert png.startswith(b"\x89PNG")
