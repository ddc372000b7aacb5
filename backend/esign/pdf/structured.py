"""Structured layout: national header, title, body and signature grid.

The whole document is laid out once as a continuous flow at the printable
width. The paginator then cuts that flow into page slices and every page
redraws the flow shifted by its slice start, clipped to the slice.
"""

import html
import io
import logging
from dataclasses import dataclass

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Flowable, Paragraph, Spacer, Table, TableStyle

from backend.esign.models.document import Document, Signer
from backend.esign.pdf.fonts import PdfFonts, resolve_fonts
from backend.esign.pdf.geometry import STRUCTURED_GEOMETRY, PageGeometry
from backend.esign.pdf.html_flow import html_to_paragraphs
from backend.esign.pdf.painter import SignatureFlowable
from backend.esign.pdf.paginator import FlowSource, MeasuredBlock, Paginator

logger = logging.getLogger(__name__)

NATIONAL_HEADER = ("CỘNG HÒA XÃ HỘI CHỦ NGHĨA VIỆT NAM", "Độc lập - Tự do - Hạnh phúc")
HEADER_DIVIDER = "---------------oOo---------------"
SIGN_HINT = "(Ký và ghi rõ họ tên)"
BLANK_NAME = "..........................."
SIGNATURE_BOX = (150.0, 60.0)
GRID_COLUMNS = 2

_ALIGNMENTS = {"center": TA_CENTER, "right": TA_RIGHT, "justify": TA_JUSTIFY, "left": TA_LEFT}
_UNBOUNDED = 10**6


@dataclass(frozen=True)
class RenderOptions:
    """Structured layout options."""

    font_path: str | None = None
    include_header: bool = True


@dataclass(frozen=True)
class PlacedBlock:
    """A measured flowable and its offset in the continuous flow."""

    top: float
    height: float
    flowable: Flowable
    flowable_height: float


def _styles(fonts: PdfFonts) -> dict[str, ParagraphStyle]:
    body = ParagraphStyle("body", fontName=fonts.body, fontSize=11, leading=16, alignment=TA_JUSTIFY)
    return {
        "body": body,
        "heading": ParagraphStyle("heading", parent=body, fontName=fonts.bold, fontSize=13, leading=18, alignment=TA_LEFT),
        "subheading": ParagraphStyle("subheading", parent=body, fontName=fonts.bold, fontSize=12, leading=17, alignment=TA_LEFT),
        "quote": ParagraphStyle("quote", parent=body, leftIndent=14, textColor=colors.HexColor("#333333")),
        "bullet": ParagraphStyle("bullet", parent=body, leftIndent=14, alignment=TA_LEFT),
        "national": ParagraphStyle("national", parent=body, fontName=fonts.bold, fontSize=12, leading=16, alignment=TA_CENTER),
        "divider": ParagraphStyle("divider", parent=body, alignment=TA_CENTER, textColor=colors.HexColor("#666666")),
        "title": ParagraphStyle("title", parent=body, fontName=fonts.bold, fontSize=15, leading=20, alignment=TA_CENTER),
        "number": ParagraphStyle("number", parent=body, fontSize=10.5, alignment=TA_CENTER),
        "place_date": ParagraphStyle("place_date", parent=body, alignment=TA_CENTER),
        "role": ParagraphStyle("role", parent=body, fontName=fonts.bold, alignment=TA_CENTER),
        "hint": ParagraphStyle("hint", parent=body, fontSize=9, leading=12, alignment=TA_CENTER, textColor=colors.HexColor("#666666")),
        "name": ParagraphStyle("name", parent=body, alignment=TA_CENTER),
    }


def _place_and_date(document: Document, *, with_tai: bool) -> str:
    location = document.metadata.location.strip()
    created = document.metadata.created_date.strip()
    if with_tai:
        return ", tại ".join(p for p in (created, location) if p)
    return ", ".join(p for p in (location, created) if p)


def _signer_cell(signer: Signer, styles: dict[str, ParagraphStyle], fonts: PdfFonts) -> list[Flowable]:
    return [
        Paragraph(html.escape(signer.role.upper()), styles["role"]),
        Paragraph(f"<i>{SIGN_HINT}</i>", styles["hint"]),
        Spacer(1, 6),
        SignatureFlowable(
            signer.signature_data if signer.signed else None,
            SIGNATURE_BOX[0],
            SIGNATURE_BOX[1],
            fonts,
        ),
        Spacer(1, 6),
        Paragraph(html.escape(signer.name) if signer.name else BLANK_NAME, styles["name"]),
    ]


def _signature_rows(
    document: Document, styles: dict[str, ParagraphStyle], fonts: PdfFonts, width: float
) -> list[Flowable]:
    columns = min(len(document.signers), GRID_COLUMNS)
    col_width = width / columns
    rows: list[Flowable] = []
    for start in range(0, len(document.signers), columns):
        chunk = document.signers[start : start + columns]
        cells: list[list[Flowable] | str] = [_signer_cell(s, styles, fonts) for s in chunk]
        cells += [""] * (columns - len(chunk))
        table = Table([cells], colWidths=[col_width] * columns)
        table.setStyle(
            TableStyle(
                [
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                    ("TOPPADDING", (0, 0), (-1, -1), 4),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 12),
                ]
            )
        )
        rows.append(table)
    return rows


def build_blocks(
    document: Document, fonts: PdfFonts, width: float, include_header: bool = True
) -> list[tuple[Flowable, float]]:
    """Build the flow as ``(flowable, space_after)`` pairs, one per block."""
    styles = _styles(fonts)
    blocks: list[tuple[Flowable, float]] = []

    if include_header:
        blocks.append((Paragraph(NATIONAL_HEADER[0], styles["national"]), 2))
        blocks.append((Paragraph(NATIONAL_HEADER[1], styles["national"]), 2))
        blocks.append((Paragraph(HEADER_DIVIDER, styles["divider"]), 18))

    if document.title.strip():
        blocks.append((Paragraph(html.escape(document.title.upper()), styles["title"]), 4))
    if document.metadata.contract_number:
        number = html.escape(document.metadata.contract_number)
        blocks.append((Paragraph(f"<i>Số: {number}</i>", styles["number"]), 10))

    opening = _place_and_date(document, with_tai=True)
    if opening:
        blocks.append((Paragraph(f"<i>{html.escape(opening)}</i>", styles["body"]), 10))

    for paragraph in html_to_paragraphs(document.content):
        style = styles.get(paragraph.style, styles["body"])
        if paragraph.alignment in _ALIGNMENTS:
            style = ParagraphStyle(f"{style.name}-aligned", parent=style, alignment=_ALIGNMENTS[paragraph.alignment])
        blocks.append((Paragraph(paragraph.markup, style), 6))

    closing = _place_and_date(document, with_tai=False)
    if closing:
        blocks.append((Paragraph(f"<i>{html.escape(closing)}</i>", styles["place_date"]), 16))
    else:
        blocks.append((Spacer(1, 16), 0))

    for row in _signature_rows(document, styles, fonts, width):
        blocks.append((row, 8))

    return blocks


def measure_blocks(blocks: list[tuple[Flowable, float]], width: float) -> tuple[FlowSource, list[PlacedBlock]]:
    """Wrap every block at ``width`` and record where it sits in the flow."""
    measured: list[MeasuredBlock] = []
    placed: list[PlacedBlock] = []
    cursor = 0.0

    for flowable, space_after in blocks:
        _, height = flowable.wrap(width, _UNBOUNDED)
        line_breaks: tuple[float, ...] = ()
        if isinstance(flowable, Paragraph):
            leading = flowable.style.leading
            line_count = len(flowable.blPara.lines)
            line_breaks = tuple(leading * i for i in range(1, line_count))
        block_height = height + space_after
        measured.append(MeasuredBlock(height=block_height, line_breaks=line_breaks))
        placed.append(PlacedBlock(top=cursor, height=block_height, flowable=flowable, flowable_height=height))
        cursor += block_height

    return FlowSource(blocks=measured), placed


def _draw_footer(canvas: Canvas, geometry: PageGeometry, fonts: PdfFonts, page: int, pages: int) -> None:
    canvas.saveState()
    canvas.setFont(fonts.body, 8)
    canvas.setFillColor(colors.HexColor("#666666"))
    canvas.drawCentredString(geometry.page_size[0] / 2, geometry.bottom_mm * mm * 0.4, f"Trang {page}/{pages}")
    canvas.restoreState()


def render_document(document: Document, options: RenderOptions | None = None) -> bytes:
    """Render a Document to PDF bytes.

    Raises:
        PaginationError: If the flow cannot be paginated
    """
    options = options or RenderOptions()
    fonts = resolve_fonts(options.font_path)
    geometry = STRUCTURED_GEOMETRY

    blocks = build_blocks(document, fonts, geometry.usable_width, options.include_header)
    source, placed = measure_blocks(blocks, geometry.usable_width)
    slices = Paginator(geometry).paginate(source)

    buffer = io.BytesIO()
    canvas = Canvas(buffer, pagesize=geometry.page_size)
    canvas.setTitle(document.title or document.id)
    canvas.setSubject(document.id)

    for page_slice in slices:
        canvas.saveState()
        clip = canvas.beginPath()
        clip.rect(geometry.left, geometry.content_top - page_slice.height, geometry.usable_width, page_slice.height)
        canvas.clipPath(clip, stroke=0, fill=0)

        for block in placed:
            if block.top + block.height <= page_slice.start or block.top >= page_slice.end:
                continue
            y = geometry.content_top - (block.top - page_slice.start) - block.flowable_height
            block.flowable.drawOn(canvas, geometry.left, y)

        canvas.restoreState()
        _draw_footer(canvas, geometry, fonts, page_slice.index + 1, len(slices))
        canvas.showPage()

    canvas.save()
    logger.info(f"[pdf] document_id={document.id} layout=structured pages={len(slices)}")
    return buffer.getvalue()
