"""Single slicing algorithm shared by the captured-image and structured layouts.

A source is a vertical strip of some total height. Each page takes the
largest preferred break that fits, else the largest fallback break, else a
hard cut at full page capacity. Slices are contiguous and cover the source
exactly once.
"""

import bisect
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from backend.esign.pdf.geometry import PageGeometry


class PaginationError(ValueError):
    """Source cannot be paginated (non-positive capacity or invalid size)."""


@dataclass(frozen=True)
class PageSlice:
    """Half-open range ``[start, end)`` of the source shown on one page."""

    index: int
    start: float
    end: float

    @property
    def height(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class RasterSource:
    """Captured page image, measured in pixels."""

    width_px: int
    height_px: int
    known_width_mm: float = 210.0


@dataclass(frozen=True)
class MeasuredBlock:
    """A laid-out block of the structured flow.

    ``line_breaks`` are offsets from the block top where the block may be cut
    between lines.
    """

    height: float
    line_breaks: tuple[float, ...] = ()


@dataclass(frozen=True)
class FlowSource:
    """Structured content measured at the page's printable width, in points."""

    blocks: Sequence[MeasuredBlock] = field(default_factory=tuple)

    @property
    def total_height(self) -> float:
        return sum(b.height for b in self.blocks)

    def block_offsets(self) -> list[float]:
        """Top offset of every block."""
        offsets: list[float] = []
        cursor = 0.0
        for block in self.blocks:
            offsets.append(cursor)
            cursor += block.height
        return offsets


def _largest_in(breaks: list[float], low: float, high: float) -> float | None:
    """Largest break in the half-open interval ``(low, high]``."""
    pos = bisect.bisect_right(breaks, high)
    if pos == 0:
        return None
    candidate = breaks[pos - 1]
    return candidate if candidate > low else None


def plan_slices(
    total: float,
    capacity: float,
    preferred_breaks: Sequence[float] = (),
    fallback_breaks: Sequence[float] = (),
) -> list[PageSlice]:
    """Cut ``[0, total)`` into page slices no taller than ``capacity``.

    Args:
        total: Source height
        capacity: Maximum slice height
        preferred_breaks: Offsets where a cut is best (block boundaries)
        fallback_breaks: Offsets where a cut is acceptable (line boundaries)

    Returns:
        Contiguous slices; empty if ``total`` is zero

    Raises:
        PaginationError: If capacity is not positive or total is negative
    """
    if capacity <= 0:
        raise PaginationError(f"Page capacity must be positive, got {capacity}")
    if total < 0:
        raise PaginationError(f"Source height must not be negative, got {total}")

    preferred = sorted({b for b in preferred_breaks if 0 < b < total})
    fallback = sorted({b for b in fallback_breaks if 0 < b < total})

    slices: list[PageSlice] = []
    cursor: float = 0
    while cursor < total:
        limit = cursor + capacity
        if limit >= total:
            end = total
        else:
            end = _largest_in(preferred, cursor, limit)
            if end is None:
                end = _largest_in(fallback, cursor, limit)
            if end is None:
                end = limit
        slices.append(PageSlice(index=len(slices), start=cursor, end=end))
        cursor = end
    return slices


class Paginator:
    """Plans pages for a raster or flow source on one page geometry."""

    def __init__(self, geometry: PageGeometry) -> None:
        self._geometry = geometry

    @property
    def geometry(self) -> PageGeometry:
        return self._geometry

    def raster_scale(self, source: RasterSource) -> float:
        """Millimetres on the page per millimetre of the captured source."""
        if source.known_width_mm <= 0:
            raise PaginationError("known_width_mm must be positive")
        return self._geometry.usable_width_mm / source.known_width_mm

    def raster_capacity(self, source: RasterSource) -> int:
        """Pixel rows of the source that fit on one page."""
        if source.width_px <= 0:
            raise PaginationError("Captured image has no width")
        scale = self.raster_scale(source)
        pixels_per_mm = source.width_px / source.known_width_mm
        return math.floor(self._geometry.usable_height_mm / scale * pixels_per_mm)

    def paginate(self, source: RasterSource | FlowSource) -> list[PageSlice]:
        """Plan page slices for either source type."""
        if isinstance(source, RasterSource):
            return plan_slices(source.height_px, self.raster_capacity(source))

        offsets = source.block_offsets()
        preferred = offsets[1:]
        fallback = [
            top + line for top, block in zip(offsets, source.blocks) for line in block.line_breaks
        ]
        return plan_slices(source.total_height, self._geometry.usable_height, preferred, fallback)
