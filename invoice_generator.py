import base64
import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Iterable, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from models import (
    TEMPLATES,
    ColumnVisibility,
    CompanyProfile,
    CustomField,
    Invoice,
    LineItem,
)
from tax_calc import discounted_amount
from utils import accent_rgb, format_amount, format_date, format_indian, format_number

logger = logging.getLogger(__name__)

# Page geometry is in millimetres, origin at the top-left corner.
PAPER_SIZES = {
    "a4": (210.0, 297.0),
    "letter": (215.9, 279.4),
    "a5": (148.0, 210.0),
}
MARGINS = {"normal": 15.0, "narrow": 10.0}

FONT_SIZES = {
    "small": {"header": 16, "title": 18, "body": 8, "table": 7},
    "medium": {"header": 18, "title": 20, "body": 10, "table": 9},
    "large": {"header": 20, "title": 22, "body": 12, "table": 11},
}

FONT_NAMES = {"normal": "Helvetica", "bold": "Helvetica-Bold", "italic": "Helvetica-Oblique"}

PT_TO_MM = 25.4 / 72
LINE_HEIGHT_FACTOR = 1.15
CELL_PADDING = 1.76
MIN_ITEM_COLUMN = 20.0

PAGE_BOTTOM_MARGIN = 10.0
FOOTER_LINE_HEIGHT = 4.0
FOOTER_FIELD_GAP = 2.0
FOOTER_CLEARANCE = 4.0

LOGO_SIZE = 25.0
REGION_GAP = 3.0
MAX_LOGO_BYTES = 2 * 1024 * 1024
MAX_ITEMS = 500

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)
LIGHT_GREY = (200, 200, 200)
STRIPE = (245, 245, 245)


def line_height(size):
    """Natural line height in mm for a font size in points."""
    return size * PT_TO_MM * LINE_HEIGHT_FACTOR


def text_width(text, size, style="normal"):
    return stringWidth(text, FONT_NAMES[style], size) / mm


def wrap_text(text, size, max_width, style="normal") -> List[str]:
    """Split ``text`` into lines no wider than ``max_width`` mm; honours newlines."""
    if not text:
        return []
    return simpleSplit(text, FONT_NAMES[style], size, max_width * mm)


def font_sizes(size: str, compact: bool = False) -> dict:
    fonts = dict(FONT_SIZES.get(size, FONT_SIZES["medium"]))
    if compact:
        fonts["header"] -= 2
        fonts["body"] -= 1
        fonts["table"] -= 1
    return fonts


# ---------------------------------------------------
# DRAWING INSTRUCTIONS
# ---------------------------------------------------
@dataclass
class TextBlock:
    x: float
    y: float  # baseline of the first line
    lines: List[str]
    size: float
    style: str = "normal"
    color: Tuple[int, int, int] = BLACK
    align: str = "left"
    line_height: float = 0.0  # 0 means the font's natural line height
    page: int = 0

    @property
    def step(self):
        return self.line_height or line_height(self.size)

    @property
    def bottom(self):
        return self.y + (max(len(self.lines), 1) - 1) * self.step


@dataclass
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 0.5
    color: Tuple[int, int, int] = BLACK
    page: int = 0


@dataclass
class FilledRect:
    x: float
    y: float
    width: float
    height: float
    color: Tuple[int, int, int]
    page: int = 0


@dataclass
class ImageBlock:
    image: Image.Image
    x: float
    y: float
    width: float
    height: float
    page: int = 0


@dataclass
class TableBlock:
    """One page's slice of the item table, header row repeated on every slice."""

    x: float
    y: float
    widths: List[float]
    aligns: List[str]
    header: List[List[str]]
    rows: List[List[List[str]]]
    header_height: float
    row_heights: List[float]
    size: float
    theme: str = "grid"
    head_color: Tuple[int, int, int] = BLACK
    row_offset: int = 0
    page: int = 0

    @property
    def width(self):
        return sum(self.widths)

    @property
    def bottom(self):
        return self.y + self.header_height + sum(self.row_heights)

    def iter_cells(self):
        """Yield (x, top, width, height, lines, align, is_header, row_number)."""
        top = self.y
        rows = [(self.header, self.header_height, True, -1)]
        rows += [(row, h, False, self.row_offset + n)
                 for n, (row, h) in enumerate(zip(self.rows, self.row_heights))]
        for cells, height, is_header, row_number in rows:
            x = self.x
            for lines, width, align in zip(cells, self.widths, self.aligns):
                yield x, top, width, height, lines, align, is_header, row_number
                x += width
            top += height


@dataclass
class InvoiceDocument:
    paper_size: str
    width: float
    height: float
    ops: list = field(default_factory=list)
    page: int = 0

    def add(self, op):
        op.page = self.page
        self.ops.append(op)
        return op

    def new_page(self):
        self.page += 1

    @property
    def page_count(self):
        return self.page + 1

    def on_page(self, page):
        return [op for op in self.ops if op.page == page]

    def texts(self) -> List[str]:
        return [line for op in self.ops if isinstance(op, TextBlock) for line in op.lines]


# ---------------------------------------------------
# ITEM TABLE MODEL
# ---------------------------------------------------
@dataclass
class ColumnHint:
    key: str
    width: Optional[float]  # None takes the remaining width
    align: str = "left"


@dataclass
class DocumentTable:
    header: List[str]
    rows: List[List[str]]
    column_hints: List[ColumnHint]


def build_table(items: Sequence[LineItem], columns: ColumnVisibility) -> DocumentTable:
    """Header and body rows for the item table, honouring the optional columns."""
    candidates = [
        (ColumnHint("#", 10), "#", True),
        (ColumnHint("item", None), "Item & HSN/SAC" if columns.hsn else "Item", True),
        (ColumnHint("quantity", 15, "right"), "Qty", True),
        (ColumnHint("price", 20, "right"), "Rate", True),
        (ColumnHint("discount", 20, "right"), "Discount", columns.discount),
        (ColumnHint("gst", 15, "right"), "GST", columns.gst),
        (ColumnHint("amount", 25, "right"), "Amount", True),
    ]
    visible = [(hint, title) for hint, title, shown in candidates if shown]

    rows = []
    for index, item in enumerate(items, start=1):
        row_data = {
            "#": str(index),
            "item": f"{item.name}\nHSN: {item.hsn}" if columns.hsn else item.name,
            "quantity": format_number(item.quantity),
            "price": f"{item.price:.2f}",
            "discount": f"{format_number(item.discount)}%",
            "gst": f"{format_number(item.gst_rate)}%" if item.gst_rate > 0 else "Exempt",
            "amount": f"{discounted_amount(item.quantity, item.price, item.discount):.2f}",
        }
        rows.append([row_data[hint.key] for hint, _ in visible])

    return DocumentTable(
        header=[title for _, title in visible],
        rows=rows,
        column_hints=[hint for hint, _ in visible],
    )


def _column_widths(hints: Sequence[ColumnHint], total_width: float) -> List[float]:
    fixed = sum(h.width for h in hints if h.width is not None)
    flexible = [h for h in hints if h.width is None]
    scale = 1.0
    if flexible and total_width - fixed < MIN_ITEM_COLUMN:
        # narrow paper: shrink the fixed columns so the item column stays readable
        scale = (total_width - MIN_ITEM_COLUMN) / fixed
    remaining = total_width - fixed * scale
    return [h.width * scale if h.width is not None else remaining / len(flexible)
            for h in hints]


def _wrap_cell(text, size, width, style="normal"):
    lines = []
    for part in str(text).split("\n"):
        lines.extend(wrap_text(part, size, width - 2 * CELL_PADDING, style) or [""])
    return lines


def layout_table(doc: InvoiceDocument, table: DocumentTable, x, y, width, size,
                 theme, head_color, bottom_limit, continue_at) -> float:
    """Place ``table`` from ``y`` downwards, breaking onto new pages; returns its bottom."""
    widths = _column_widths(table.column_hints, width)
    aligns = [h.align for h in table.column_hints]
    step = line_height(size)

    def height_of(cells):
        return max(len(lines) for lines in cells) * step + 2 * CELL_PADDING

    header = [_wrap_cell(title, size, w, "bold") for title, w in zip(table.header, widths)]
    header_height = height_of(header)

    top = y
    rows, heights, row_offset = [], [], 0

    def emit():
        return doc.add(TableBlock(
            x=x, y=top, widths=widths, aligns=aligns, header=header, rows=rows,
            header_height=header_height, row_heights=heights, size=size, theme=theme,
            head_color=head_color, row_offset=row_offset,
        ))

    for number, row in enumerate(table.rows):
        cells = [_wrap_cell(value, size, w) for value, w in zip(row, widths)]
        height = height_of(cells)
        overflow = top + header_height + sum(heights) + height > bottom_limit
        if overflow and (rows or top > continue_at):
            if rows:
                emit()
            doc.new_page()
            top = continue_at
            rows, heights, row_offset = [], [], number
        rows.append(cells)
        heights.append(height)

    return emit().bottom


# ---------------------------------------------------
# LOGO
# ---------------------------------------------------
def load_logo(data: str) -> Optional[Image.Image]:
    """Decode a base64 / data-URL logo; returns None (and logs) when it is unusable."""
    if not data:
        return None
    encoded = data.partition(",")[2] if data.startswith("data:") else data
    encoded = "".join(encoded.split())
    if len(encoded) * 3 // 4 > MAX_LOGO_BYTES:
        logger.warning("Logo is larger than %d bytes, rendering without it", MAX_LOGO_BYTES)
        return None
    try:
        image = Image.open(BytesIO(base64.b64decode(encoded, validate=True)))
        image.load()
    except (ValueError, OSError, Image.DecompressionBombError) as e:
        logger.warning("Could not decode logo image, rendering without it: %s", e)
        return None
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")
    return image


# ---------------------------------------------------
# FOOTER
# ---------------------------------------------------
@dataclass
class FooterLayout:
    blocks: List[TextBlock]
    rule: Line

    @property
    def top(self):
        return self.rule.y1

    @property
    def ops(self):
        return self.blocks + [self.rule]


def compose_footer(page_width, page_height, margin, custom_footer="", notes="",
                   custom_fields: Iterable[CustomField] = (), color=BLACK, font_size=9,
                   bottom_margin=PAGE_BOTTOM_MARGIN) -> FooterLayout:
    """
    Stack footer content upwards from the bottom of the page.

    Order from the bottom: custom footer (centred), notes (left, half page wide),
    then custom fields in reverse definition order, so the first field ends up
    topmost, right under the separating rule. The rule sits one line above
    whatever was placed last.
    """
    blocks = []
    cursor = page_height - bottom_margin

    def place(lines, x, align, style="normal"):
        nonlocal cursor
        top = cursor - (len(lines) - 1) * FOOTER_LINE_HEIGHT
        blocks.append(TextBlock(x, top, lines, font_size, style, BLACK, align, FOOTER_LINE_HEIGHT))
        cursor = top - FOOTER_LINE_HEIGHT

    full_width = page_width - margin * 2
    if custom_footer:
        place(wrap_text(custom_footer, font_size, full_width, "italic"), page_width / 2, "center", "italic")
    if notes:
        place(wrap_text(f"Notes: {notes}", font_size, page_width / 2), margin, "left")

    custom_fields = list(custom_fields)
    if custom_fields:
        cursor -= FOOTER_FIELD_GAP
        for f in reversed(custom_fields):
            place(wrap_text(f"{f.label}: {f.value}", font_size, full_width), margin, "left")

    rule = Line(margin, cursor, page_width - margin, cursor, 0.5, color)
    return FooterLayout(blocks=blocks, rule=rule)


# ---------------------------------------------------
# TEMPLATES
# ---------------------------------------------------
@dataclass(frozen=True)
class RenderSettings:
    template: str
    paper_size: str
    columns: ColumnVisibility


def resolve_settings(invoice: Invoice, profile: CompanyProfile) -> RenderSettings:
    """Invoice-level overrides win over the company profile defaults."""
    template = (invoice.template or profile.template or "standard").lower()
    paper_size = (invoice.paper_size or profile.pdf_paper_size or "a4").lower()
    if template not in TEMPLATES:
        raise ValueError(f"Unknown invoice template: {template}")
    if paper_size not in PAPER_SIZES:
        raise ValueError(f"Unknown paper size: {paper_size}")
    columns = invoice.show_columns or profile.pdf_show_columns or ColumnVisibility()
    return RenderSettings(template=template, paper_size=paper_size, columns=columns)


class InvoiceTemplate:
    """
    Lays out one invoice as drawing instructions.

    Stages run in a fixed order (header, party details, items table, totals,
    footer); each returns the Y offset where the next one starts. The footer
    is anchored to the bottom of the last page instead of following the table.
    """

    table_theme = "grid"

    def __init__(self, profile: CompanyProfile, settings: RenderSettings, compact: bool = False):
        self.profile = profile
        self.settings = settings
        self.compact = compact
        self.width, self.height = PAPER_SIZES[settings.paper_size]
        self.margin = MARGINS.get(profile.pdf_margin, MARGINS["normal"])
        self.fonts = font_sizes(profile.pdf_font_size, compact)
        self.accent = accent_rgb(profile.accent_color)
        self.symbol = profile.currency_symbol
        self.step = 4.0 if compact else 5.0

    def layout(self, invoice: Invoice) -> InvoiceDocument:
        if len(invoice.items) > MAX_ITEMS:
            raise ValueError(f"Invoice has {len(invoice.items)} items; at most {MAX_ITEMS} can be rendered")

        doc = InvoiceDocument(self.settings.paper_size, self.width, self.height)
        y = self.draw_header(doc, invoice)
        y = self.draw_party_details(doc, invoice, y)
        y = self.draw_items_table(doc, invoice, y)
        footer = self.compose_footer(invoice)
        self.draw_totals(doc, invoice, y, footer.top)
        for op in footer.ops:
            doc.add(op)
        logger.debug("Laid out invoice %s: template=%s paper=%s pages=%d",
                     invoice.invoice_number, self.settings.template,
                     self.settings.paper_size, doc.page_count)
        return doc

    def logo(self) -> Optional[Image.Image]:
        if not (self.profile.show_logo_in_pdf and self.profile.logo):
            return None
        return load_logo(self.profile.logo)

    def text(self, doc, x, y, lines, size=None, style="normal", color=BLACK, align="left"):
        if isinstance(lines, str):
            lines = [lines]
        return doc.add(TextBlock(x, y, lines, size or self.fonts["body"], style, color, align, self.step))

    def draw_header(self, doc, invoice) -> float:
        raise NotImplementedError

    def draw_party_details(self, doc, invoice, y) -> float:
        raise NotImplementedError

    def totals_ops(self, invoice, y) -> Tuple[list, float]:
        raise NotImplementedError

    def draw_items_table(self, doc, invoice, y) -> float:
        table = build_table(invoice.items, self.settings.columns)
        return layout_table(
            doc, table,
            x=self.margin, y=y, width=self.width - self.margin * 2,
            size=self.fonts["table"], theme=self.table_theme, head_color=self.accent,
            bottom_limit=self.height - self.margin, continue_at=self.margin,
        )

    def compose_footer(self, invoice) -> FooterLayout:
        fields = self.profile.custom_fields if self.profile.show_custom_fields_in_pdf else []
        return compose_footer(
            self.width, self.height, self.margin,
            custom_footer=self.profile.custom_footer,
            notes=invoice.notes,
            custom_fields=fields,
            color=self.accent,
            font_size=self.fonts["table"],
        )

    def tax_lines(self, invoice) -> List[Tuple[str, float]]:
        """Subtotal plus only the tax components that actually apply."""
        lines = [("Subtotal", invoice.tax.subtotal)]
        for label, amount in (("CGST", invoice.tax.cgst), ("SGST", invoice.tax.sgst),
                              ("IGST", invoice.tax.igst)):
            if amount > 0:
                lines.append((label, amount))
        return lines

    def totals_label_x(self, rows, default_width=50.0):
        """
        Left edge of the totals label column.

        ``rows`` are (label, value, size, label_style, value_style). The column
        starts ``default_width`` in from the right margin and moves further
        left whenever a label would run into its right-aligned value.
        """
        value_x = self.width - self.margin
        label_x = value_x - default_width
        for label, value, size, label_style, value_style in rows:
            value_left = value_x - text_width(value, size, value_style)
            label_x = min(label_x, value_left - REGION_GAP - text_width(label, size, label_style))
        return max(label_x, self.margin)

    def draw_totals(self, doc, invoice, y, footer_top) -> float:
        ops, bottom = self.totals_ops(invoice, y)
        if bottom > footer_top - FOOTER_CLEARANCE:
            doc.new_page()
            ops, bottom = self.totals_ops(invoice, self.margin)
        for op in ops:
            doc.add(op)
        return bottom


class StandardTemplate(InvoiceTemplate):
    """Centred title, seller block on the right, grid table. ``compact`` shrinks it."""

    SELLER_WIDTH = 60.0
    DETAILS_WIDTH = 50.0
    BILL_TO_WIDTH = 80.0

    def draw_header(self, doc, invoice):
        m, w = self.margin, self.width
        logo = self.logo()
        if logo is not None:
            doc.add(ImageBlock(logo, m, 10, LOGO_SIZE, LOGO_SIZE))

        title = "TAX INVOICE"
        title_size = self.fonts["header"] + 2
        doc.add(TextBlock(w / 2, 20, [title], title_size, "bold", self.accent, "center"))

        # seller block must stay clear of the centred title
        title_right = w / 2 + text_width(title, title_size, "bold") / 2
        block_width = min(self.SELLER_WIDTH, w - m - title_right - REGION_GAP)
        body = self.fonts["body"]
        p = self.profile

        y = 15.0
        for text in (p.name, p.address, f"GSTIN: {p.gstin}", f"Phone: {p.phone}" if p.phone else ""):
            lines = wrap_text(text, body, block_width)
            if lines:
                block = self.text(doc, w - m, y, lines, align="right")
                y = block.bottom + self.step

        rule_y = max(40.0 if self.compact else 45.0, y - self.step + REGION_GAP + 2,
                     10 + LOGO_SIZE + REGION_GAP if logo is not None else 0)
        doc.add(Line(m, rule_y, w - m, rule_y, 0.5, self.accent))
        return rule_y

    def draw_party_details(self, doc, invoice, y):
        m, w = self.margin, self.width
        customer = invoice.customer
        y += 8.0 if self.compact else 10.0

        details_x = w - m - self.DETAILS_WIDTH
        bill_width = min(self.BILL_TO_WIDTH, details_x - m - REGION_GAP)
        body = self.fonts["body"]

        self.text(doc, m, y, "Bill To:", style="bold")
        left = y
        for text in (customer.name, customer.billing_address,
                     f"GSTIN: {customer.gstin}", f"State: {customer.state}"):
            lines = wrap_text(text, body, bill_width)
            if lines:
                left = self.text(doc, m, left + self.step, lines).bottom

        right = y
        for n, (label, value) in enumerate((("Invoice No:", invoice.invoice_number),
                                            ("Date:", format_date(invoice.date)),
                                            ("Due Date:", format_date(invoice.due_date)))):
            right = y + n * self.step
            self.text(doc, details_x, right, label, style="bold")
            self.text(doc, w - m, right, value, align="right")

        return max(left, right) + (6.0 if self.compact else 8.0)

    def totals_ops(self, invoice, y):
        value_x = self.width - self.margin
        body = self.fonts["body"]
        lh = 4.0 if self.compact else 5.0
        rows = [(label, format_amount(amount, self.symbol), body, "normal", "bold")
                for label, amount in self.tax_lines(invoice)]
        grand = ("Grand Total", format_indian(invoice.tax.grand_total, self.symbol), body + 2, "bold", "bold")
        label_x = self.totals_label_x(rows + [grand], self.DETAILS_WIDTH)
        ops = []

        def add_line(row, at, color=BLACK):
            label, value, size, label_style, value_style = row
            ops.append(TextBlock(label_x, at, [label], size, label_style, color))
            ops.append(TextBlock(value_x, at, [value], size, value_style, color, "right"))

        cur = y + (6.0 if self.compact else 10.0)
        for n, row in enumerate(rows):
            if n:
                cur += lh
            add_line(row, cur)

        cur += 5.0 if self.compact else 7.0
        ops.append(Line(label_x, cur - 2, value_x, cur - 2, 0.2, BLACK))
        add_line(grand, cur + 2, self.accent)
        return ops, cur + 2


class ModernTemplate(InvoiceTemplate):
    """Accent band header, label/value metadata, striped table."""

    table_theme = "striped"
    BAND_HEIGHT = 30.0
    COMPANY_WIDTH = 60.0
    META_WIDTH = 70.0
    VALUE_OFFSET = 25.0
    BILL_TO_WIDTH = 80.0

    def draw_header(self, doc, invoice):
        m, w = self.margin, self.width
        doc.add(FilledRect(0, 0, w, self.BAND_HEIGHT, self.accent))
        doc.add(TextBlock(m, 20, ["INVOICE"], self.fonts["title"] + 4, "bold", WHITE))
        logo = self.logo()
        if logo is not None:
            doc.add(ImageBlock(logo, w - m - 30, 5, LOGO_SIZE, LOGO_SIZE))
        return self.BAND_HEIGHT

    def draw_party_details(self, doc, invoice, y):
        m, w = self.margin, self.width
        body = self.fonts["body"]
        p = self.profile
        y += 10.0

        block_width = min(self.COMPANY_WIDTH, w - m * 2 - self.META_WIDTH)
        right = self.text(doc, w - m, y, wrap_text(p.name, body, block_width, "bold"),
                          style="bold", align="right").bottom
        address = wrap_text(f"{p.address}\nGSTIN: {p.gstin}", body, block_width)
        right = self.text(doc, w - m, right + self.step, address, align="right").bottom

        left = y
        for n, (label, value) in enumerate((("Invoice #:", invoice.invoice_number),
                                            ("Date:", format_date(invoice.date)),
                                            ("Due Date:", format_date(invoice.due_date)))):
            left = y + (n + 2) * self.step
            self.text(doc, m, left, label, style="bold")
            self.text(doc, m + self.VALUE_OFFSET, left, value)

        rule_y = max(left, right) + 6.0
        doc.add(Line(m, rule_y, w - m, rule_y, 0.2, LIGHT_GREY))

        y = rule_y + 10.0
        customer = invoice.customer
        bill_width = min(self.BILL_TO_WIDTH, w - m * 2)
        self.text(doc, m, y, "BILLED TO", style="bold")
        bottom = self.text(doc, m, y + self.step, wrap_text(customer.name, body, bill_width)).bottom
        details = wrap_text(
            f"{customer.billing_address}\nGSTIN: {customer.gstin}\nState: {customer.state}",
            body, bill_width,
        )
        bottom = self.text(doc, m, bottom + self.step, details).bottom
        return bottom + 10.0

    def totals_ops(self, invoice, y):
        value_x = self.width - self.margin
        body = self.fonts["body"]
        rows = [(label, format_amount(amount, self.symbol), body, "normal", "normal")
                for label, amount in self.tax_lines(invoice)]
        grand = ("GRAND TOTAL", format_indian(invoice.tax.grand_total, self.symbol), body + 2, "bold", "bold")
        label_x = self.totals_label_x(rows + [grand])
        ops = []
        cur = y + 10.0

        def add_line(row):
            nonlocal cur
            label, value, size, label_style, value_style = row
            ops.append(TextBlock(label_x, cur, [label], size, label_style))
            ops.append(TextBlock(value_x, cur, [value], size, value_style, align="right"))
            cur += self.step

        for row in rows:
            add_line(row)

        cur += 2
        ops.append(Line(max(label_x - 5, self.margin), cur, value_x, cur, 0.3, self.accent))
        cur += 5
        add_line(grand)
        return ops, cur - self.step


def get_template(profile: CompanyProfile, settings: RenderSettings) -> InvoiceTemplate:
    if settings.template == "modern":
        return ModernTemplate(profile, settings)
    return StandardTemplate(profile, settings, compact=settings.template == "compact")


def render_invoice(invoice: Invoice, profile: CompanyProfile) -> InvoiceDocument:
    settings = resolve_settings(invoice, profile)
    return get_template(profile, settings).layout(invoice)


# ---------------------------------------------------
# OUTPUT BACKENDS
# ---------------------------------------------------
def _rgb(color):
    return tuple(v / 255 for v in color)


def _cell_baseline(top, n, size):
    step = line_height(size)
    return top + CELL_PADDING + n * step + step * 0.75


def _cell_x(x, width, align):
    return x + width - CELL_PADDING if align == "right" else x + CELL_PADDING


def _draw_pdf_text(c, x, y, text, align):
    if align == "right":
        c.drawRightString(x, y, text)
    elif align == "center":
        c.drawCentredString(x, y, text)
    else:
        c.drawString(x, y, text)


def _draw_pdf_op(c, op, page_height):
    def flip(y):
        return (page_height - y) * mm

    if isinstance(op, TextBlock):
        c.setFont(FONT_NAMES[op.style], op.size)
        c.setFillColorRGB(*_rgb(op.color))
        for n, text in enumerate(op.lines):
            _draw_pdf_text(c, op.x * mm, flip(op.y + n * op.step), text, op.align)
    elif isinstance(op, Line):
        c.setStrokeColorRGB(*_rgb(op.color))
        c.setLineWidth(op.width * mm)
        c.line(op.x1 * mm, flip(op.y1), op.x2 * mm, flip(op.y2))
    elif isinstance(op, FilledRect):
        c.setFillColorRGB(*_rgb(op.color))
        c.rect(op.x * mm, flip(op.y + op.height), op.width * mm, op.height * mm, stroke=0, fill=1)
    elif isinstance(op, ImageBlock):
        try:
            c.drawImage(ImageReader(op.image), op.x * mm, flip(op.y + op.height),
                        width=op.width * mm, height=op.height * mm,
                        mask="auto", preserveAspectRatio=True)
        except Exception as e:
            logger.warning("Could not draw logo image, continuing without it: %s", e)
    elif isinstance(op, TableBlock):
        c.setLineWidth(0.1 * mm)
        c.setStrokeColorRGB(*_rgb(LIGHT_GREY))
        for x, top, width, height, lines, align, is_header, row in op.iter_cells():
            fill = None
            if is_header:
                fill = op.head_color
            elif op.theme == "striped" and row % 2 == 1:
                fill = STRIPE
            if fill is not None:
                c.setFillColorRGB(*_rgb(fill))
            stroke = 1 if op.theme == "grid" else 0
            if fill is not None or stroke:
                c.rect(x * mm, flip(top + height), width * mm, height * mm,
                       stroke=stroke, fill=1 if fill is not None else 0)
            c.setFont(FONT_NAMES["bold" if is_header else "normal"], op.size)
            c.setFillColorRGB(*_rgb(WHITE if is_header else BLACK))
            for n, text in enumerate(lines):
                _draw_pdf_text(c, _cell_x(x, width, align) * mm,
                               flip(_cell_baseline(top, n, op.size)), text, align)


def write_pdf(document: InvoiceDocument, title: str = "") -> bytes:
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(document.width * mm, document.height * mm))
    if title:
        c.setTitle(title)
    for page in range(document.page_count):
        for op in document.on_page(page):
            _draw_pdf_op(c, op, document.height)
        c.showPage()
    c.save()
    buffer.seek(0)
    return buffer.read()


def _png_font(size_px, bold=False):
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf", max(int(size_px), 1))
    except (OSError, ImportError):
        return ImageFont.load_default()


def write_png(document: InvoiceDocument, page: int = 0, scale: float = 4.0) -> bytes:
    """Raster preview of one page; ``scale`` is pixels per millimetre."""
    img = Image.new("RGB", (round(document.width * scale), round(document.height * scale)), "white")
    draw = ImageDraw.Draw(img)
    def px(v):
        return v * scale

    def put_text(x, baseline, text, size, style, color, align):
        size_px = size * PT_TO_MM * scale
        font = _png_font(size_px, style == "bold")
        width = draw.textlength(text, font=font)
        if align == "right":
            x -= width
        elif align == "center":
            x -= width / 2
        draw.text((x, baseline - size_px * 0.8), text, font=font, fill=color)

    for op in document.on_page(page):
        if isinstance(op, TextBlock):
            for n, text in enumerate(op.lines):
                put_text(px(op.x), px(op.y + n * op.step), text, op.size, op.style, op.color, op.align)
        elif isinstance(op, Line):
            draw.line([(px(op.x1), px(op.y1)), (px(op.x2), px(op.y2))],
                      fill=op.color, width=max(1, round(px(op.width))))
        elif isinstance(op, FilledRect):
            draw.rectangle([px(op.x), px(op.y), px(op.x + op.width), px(op.y + op.height)], fill=op.color)
        elif isinstance(op, ImageBlock):
            logo = op.image.convert("RGBA").resize((round(px(op.width)), round(px(op.height))))
            img.paste(logo, (round(px(op.x)), round(px(op.y))), logo)
        elif isinstance(op, TableBlock):
            for x, top, width, height, lines, align, is_header, row in op.iter_cells():
                fill = op.head_color if is_header else (
                    STRIPE if op.theme == "striped" and row % 2 == 1 else None)
                outline = LIGHT_GREY if op.theme == "grid" else None
                if fill is not None or outline is not None:
                    draw.rectangle([px(x), px(top), px(x + width), px(top + height)],
                                   fill=fill, outline=outline)
                for n, text in enumerate(lines):
                    put_text(px(_cell_x(x, width, align)), px(_cell_baseline(top, n, op.size)), text,
                             op.size, "bold" if is_header else "normal",
                             WHITE if is_header else BLACK, align)

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return buffer.getvalue()


def pdf_filename(invoice: Invoice) -> str:
    return f"Invoice-{invoice.invoice_number}.pdf"


def generate_invoice_pdf(invoice: Invoice, profile: CompanyProfile) -> bytes:
    document = render_invoice(invoice, profile)
    return write_pdf(document, title=f"Invoice {invoice.invoice_number}")


def generate_invoice_image_bytes(invoice: Invoice, profile: CompanyProfile, page: int = 0) -> bytes:
    document = render_invoice(invoice, profile)
    return write_png(document, page=min(page, document.page_count - 1))
