"""Replay signature drawings on a reportlab canvas."""

from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Flowable

from backend.esign.models.signature import SignatureData
from backend.esign.pdf.fonts import PdfFonts
from backend.esign.signatures.codec import (
    Dot,
    SignatureDrawing,
    StrokePath,
    TextLabel,
    parse_color,
    render,
)

# Fraction of font size from the visual middle of a line to its baseline
_BASELINE_SHIFT = 0.35


def _set_fill(canvas: Canvas, color: str) -> None:
    r, g, b = parse_color(color)
    canvas.setFillColorRGB(r / 255.0, g / 255.0, b / 255.0)


def _set_stroke(canvas: Canvas, color: str) -> None:
    r, g, b = parse_color(color)
    canvas.setStrokeColorRGB(r / 255.0, g / 255.0, b / 255.0)


def _font_for(family: str, fonts: PdfFonts) -> str:
    lowered = family.lower()
    if "cursive" in lowered or "script" in lowered:
        return fonts.script
    return fonts.body


def paint_drawing(
    canvas: Canvas, drawing: SignatureDrawing, x: float, y_top: float, fonts: PdfFonts
) -> None:
    """Draw ``drawing`` with its top-left corner at ``(x, y_top)``.

    Drawing coordinates grow downwards; canvas coordinates grow upwards.
    """
    canvas.saveState()
    canvas.setLineCap(1)
    canvas.setLineJoin(1)

    for op in drawing.ops:
        if isinstance(op, StrokePath):
            _set_stroke(canvas, op.color)
            canvas.setLineWidth(op.width)
            path = canvas.beginPath()
            first, *rest = op.points
            path.moveTo(x + first[0], y_top - first[1])
            for px, py in rest:
                path.lineTo(x + px, y_top - py)
            canvas.drawPath(path, stroke=1, fill=0)
        elif isinstance(op, Dot):
            _set_fill(canvas, op.color)
            canvas.circle(x + op.x, y_top - op.y, op.radius, stroke=0, fill=1)
        elif isinstance(op, TextLabel):
            _set_fill(canvas, op.color)
            canvas.setFont(_font_for(op.font_family, fonts), op.font_size)
            canvas.drawCentredString(
                x + op.x, y_top - op.y - op.font_size * _BASELINE_SHIFT, op.text
            )

    canvas.restoreState()


class SignatureFlowable(Flowable):
    """Fixed-size flowable showing a signature (or the placeholder) centered."""

    def __init__(
        self, signature: SignatureData | None, width: float, height: float, fonts: PdfFonts
    ) -> None:
        super().__init__()
        self.drawing = render(signature, width, height)
        self.width = width
        self.height = height
        self._fonts = fonts

    def wrap(self, availWidth: float, availHeight: float) -> tuple[float, float]:
        self._avail_width = availWidth
        return (availWidth, self.height)

    def draw(self) -> None:
        offset = max(0.0, (getattr(self, "_avail_width", self.width) - self.width) / 2)
        paint_drawing(self.canv, self.drawing, offset, self.height, self._fonts)
