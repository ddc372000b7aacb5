"""Page geometry for both PDF layouts (millimetres, converted to points on demand)."""

from dataclasses import dataclass

from reportlab.lib.units import mm

A4_WIDTH_MM = 210.0
A4_HEIGHT_MM = 297.0


@dataclass(frozen=True)
class PageGeometry:
    """Page size and margins in millimetres."""

    width_mm: float = A4_WIDTH_MM
    height_mm: float = A4_HEIGHT_MM
    left_mm: float = 15.0
    right_mm: float = 15.0
    top_mm: float = 15.0
    bottom_mm: float = 15.0

    @property
    def usable_width_mm(self) -> float:
        return self.width_mm - self.left_mm - self.right_mm

    @property
    def usable_height_mm(self) -> float:
        return self.height_mm - self.top_mm - self.bottom_mm

    @property
    def page_size(self) -> tuple[float, float]:
        """Page size in points, as reportlab expects."""
        return (self.width_mm * mm, self.height_mm * mm)

    @property
    def usable_width(self) -> float:
        return self.usable_width_mm * mm

    @property
    def usable_height(self) -> float:
        return self.usable_height_mm * mm

    @property
    def left(self) -> float:
        return self.left_mm * mm

    @property
    def content_top(self) -> float:
        """Y of the top of the content area in points (origin bottom-left)."""
        return (self.height_mm - self.top_mm) * mm


# Captured-image layout keeps the asymmetric margins of the client capture
CAPTURE_GEOMETRY = PageGeometry(left_mm=3.0, right_mm=7.0, top_mm=5.0, bottom_mm=5.0)
STRUCTURED_GEOMETRY = PageGeometry()
