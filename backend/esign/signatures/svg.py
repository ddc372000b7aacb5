"""SVG and PNG output for rendered signatures."""

import base64
import io
from xml.sax.saxutils import escape, quoteattr

from PIL import Image, ImageDraw, ImageFont

from backend.esign.signatures.codec import (
    Dot,
    SignatureDrawing,
    StrokePath,
    TextLabel,
    parse_color,
)


def _fmt(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-", "-0") else "0"


def drawing_to_svg(drawing: SignatureDrawing, background: str | None = None) -> str:
    """Serialize a drawing as a standalone SVG document.

    Args:
        drawing: Rendered signature
        background: Optional fill color for the whole box

    Returns:
        SVG markup
    """
    w, h = _fmt(drawing.width), _fmt(drawing.height)
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}" viewBox="0 0 {w} {h}">'
    ]
    if background:
        parts.append(f'<rect width="100%" height="100%" fill={quoteattr(background)}/>')

    for op in drawing.ops:
        if isinstance(op, StrokePath):
            first, *rest = op.points
            d = f"M {_fmt(first[0])} {_fmt(first[1])}" + "".join(
                f" L {_fmt(x)} {_fmt(y)}" for x, y in rest
            )
            parts.append(
                f'<path d="{d}" stroke={quoteattr(op.color)} stroke-width="{_fmt(op.width)}" '
                'fill="none" stroke-linecap="round" stroke-linejoin="round"/>'
            )
        elif isinstance(op, Dot):
            parts.append(
                f'<circle cx="{_fmt(op.x)}" cy="{_fmt(op.y)}" r="{_fmt(op.radius)}" '
                f"fill={quoteattr(op.color)}/>"
            )
        elif isinstance(op, TextLabel):
            parts.append(
                f'<text x="{_fmt(op.x)}" y="{_fmt(op.y)}" dominant-baseline="middle" '
                f'text-anchor="middle" fill={quoteattr(op.color)} '
                f'font-size="{_fmt(op.font_size)}" font-family={quoteattr(op.font_family)}>'
                f"{escape(op.text)}</text>"
            )

    parts.append("</svg>")
    return "".join(parts)


def svg_to_data_url(svg: str) -> str:
    """Encode SVG markup as a base64 data URL for embedding in HTML/email."""
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


def drawing_to_png(drawing: SignatureDrawing, scale: float = 2.0) -> bytes:
    """Rasterize a drawing to a transparent PNG.

    Typed text uses Pillow's bundled font, so script typefaces are not
    reproduced; the PDF renderer embeds real fonts instead.
    """
    size = (max(1, round(drawing.width * scale)), max(1, round(drawing.height * scale)))
    image = Image.new("RGBA", size, (255, 255, 255, 0))
    draw = ImageDraw.Draw(image)

    for op in drawing.ops:
        if isinstance(op, StrokePath):
            points = [(x * scale, y * scale) for x, y in op.points]
            draw.line(points, fill=parse_color(op.color), width=max(1, round(op.width * scale)),
                      joint="curve")
        elif isinstance(op, Dot):
            r = op.radius * scale
            cx, cy = op.x * scale, op.y * scale
            draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=parse_color(op.color))
        elif isinstance(op, TextLabel):
            font = ImageFont.load_default(size=op.font_size * scale)
            draw.text(
                (op.x * scale, op.y * scale),
                op.text,
                fill=parse_color(op.color),
                font=font,
                anchor="mm",
            )

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
