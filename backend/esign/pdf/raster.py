"""Captured-image layout: a client screenshot of the document, sliced into pages."""

import base64
import binascii
import io
import logging

from PIL import Image
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas

from backend.esign.pdf.geometry import CAPTURE_GEOMETRY, PageGeometry
from backend.esign.pdf.paginator import PaginationError, Paginator, RasterSource

logger = logging.getLogger(__name__)


def decode_capture(image: str) -> bytes:
    """Decode a base64 image, with or without a ``data:`` URL prefix.

    Raises:
        ValueError: If the payload is not valid base64
    """
    if image.startswith("data:"):
        _, _, image = image.partition(",")
    try:
        return base64.b64decode(image, validate=True)
    except binascii.Error as e:
        raise ValueError("Captured image is not valid base64") from e


def render_capture(
    image_bytes: bytes,
    known_width_mm: float = 210.0,
    geometry: PageGeometry = CAPTURE_GEOMETRY,
    title: str | None = None,
) -> bytes:
    """Paginate a captured page image into an A4 PDF.

    The image is scaled so ``known_width_mm`` fills the printable width; each
    page shows the next band of pixel rows at the top margin.

    Raises:
        PaginationError: If the image is empty
        ValueError: If the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as opened:
            image = opened.convert("RGB")
    except OSError as e:
        raise ValueError("Captured image could not be decoded") from e

    source = RasterSource(width_px=image.width, height_px=image.height, known_width_mm=known_width_mm)
    paginator = Paginator(geometry)
    slices = paginator.paginate(source)
    if not slices:
        raise PaginationError("Captured image has no rows")

    scale = paginator.raster_scale(source)
    pixels_per_mm = image.width / known_width_mm

    buffer = io.BytesIO()
    canvas = Canvas(buffer, pagesize=geometry.page_size)
    if title:
        canvas.setTitle(title)

    for page_slice in slices:
        band = image.crop((0, int(page_slice.start), image.width, int(page_slice.end)))
        band_height_mm = page_slice.height / pixels_per_mm * scale
        canvas.drawImage(
            ImageReader(band),
            geometry.left,
            geometry.content_top - band_height_mm * mm,
            width=geometry.usable_width,
            height=band_height_mm * mm,
        )
        canvas.showPage()

    canvas.save()
    logger.info(
        f"[pdf] layout=capture size={image.width}x{image.height} pages={len(slices)}"
    )
    return buffer.getvalue()
