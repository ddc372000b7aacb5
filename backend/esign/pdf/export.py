"""Bounded-time PDF export.

Rendering is CPU-bound reportlab/Pillow work, so it runs in a worker thread
under ``asyncio.wait_for``. Exports of the same document are serialized.
"""

import asyncio
import logging
import re
import time
import unicodedata
from collections.abc import Callable
from datetime import date
from typing import Any

from backend.esign.db.locks import KeyedLocks
from backend.esign.models.common import DocumentKind
from backend.esign.models.document import Document
from backend.esign.pdf.raster import render_capture
from backend.esign.pdf.structured import RenderOptions, render_document
from backend.esign.signing.errors import PdfGenerationFailedError

logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")
_MAX_NAME_LENGTH = 30


def _ascii_fold(text: str) -> str:
    # đ/Đ have no decomposition, map them explicitly
    text = text.replace("đ", "d").replace("Đ", "D")
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def generate_pdf_filename(
    kind: DocumentKind, document_id: str, title: str | None = None, today: date | None = None
) -> str:
    """Build the download filename, e.g. ``Hop_Dong_3DO-ABC123_HOP_DONG_THUE_20250101.pdf``."""
    prefix = "Bien_Nhan" if kind == DocumentKind.receipt else "Hop_Dong"
    safe_name = _NON_ALNUM_RE.sub("_", _ascii_fold(title))[:_MAX_NAME_LENGTH] if title else ""
    stamp = (today or date.today()).strftime("%Y%m%d")
    return f"{prefix}_{document_id}_{safe_name}_{stamp}.pdf"


class ExportMetrics:
    """Interface for PDF export metrics."""

    def record_latency(self, layout: str, outcome: str, latency_ms: float) -> None:
        """Record export latency."""
        pass

    def inc_failure(self, layout: str, reason: str) -> None:
        """Increment failure counter."""
        pass


class PdfExporter:
    """Runs renderers with a time bound and per-document serialization."""

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        options: RenderOptions | None = None,
        metrics: ExportMetrics | None = None,
    ) -> None:
        """Initialize exporter.

        Args:
            timeout_seconds: Upper bound for one render
            options: Structured layout options
            metrics: Metrics recorder (optional, defaults to no-op)
        """
        self._timeout = timeout_seconds
        self._options = options or RenderOptions()
        self._metrics = metrics or ExportMetrics()
        self._locks = KeyedLocks()

    async def export(self, document: Document) -> bytes:
        """Render the structured layout of ``document``.

        Raises:
            PdfGenerationFailedError: On render error or timeout
        """
        return await self._run(document.id, "structured", render_document, document, self._options)

    async def export_capture(
        self, document_id: str, image_bytes: bytes, known_width_mm: float = 210.0
    ) -> bytes:
        """Paginate a client-captured image of the document.

        Raises:
            PdfGenerationFailedError: On undecodable image, render error or timeout
        """
        return await self._run(document_id, "capture", render_capture, image_bytes, known_width_mm)

    async def _run(
        self, document_id: str, layout: str, render: Callable[..., bytes], *args: Any
    ) -> bytes:
        async with self._locks.hold(document_id):
            start = time.monotonic()
            try:
                pdf = await asyncio.wait_for(asyncio.to_thread(render, *args), timeout=self._timeout)
            except TimeoutError as e:
                elapsed_ms = (time.monotonic() - start) * 1000
                self._metrics.record_latency(layout, "timeout", elapsed_ms)
                self._metrics.inc_failure(layout, "timeout")
                logger.error(f"[pdf] document_id={document_id} layout={layout} timed out after {self._timeout}s")
                raise PdfGenerationFailedError(
                    f"PDF generation timed out after {self._timeout:g} seconds"
                ) from e
            except Exception as e:
                elapsed_ms = (time.monotonic() - start) * 1000
                self._metrics.record_latency(layout, "error", elapsed_ms)
                self._metrics.inc_failure(layout, type(e).__name__)
                logger.error(f"[pdf] document_id={document_id} layout={layout} failed: {e}")
                raise PdfGenerationFailedError(f"PDF generation failed: {e}") from e

            elapsed_ms = (time.monotonic() - start) * 1000
            self._metrics.record_latency(layout, "success", elapsed_ms)
            logger.info(
                f"[pdf] document_id={document_id} layout={layout} bytes={len(pdf)} "
                f"latency_ms={elapsed_ms:.0f}"
            )
            return pdf
