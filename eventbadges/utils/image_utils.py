"""Unit and coordinate conversion helpers for badge output."""

from typing import Tuple

from reportlab.lib.units import mm

MM_PER_INCH = 25.4


def mm_to_pixels(value: float, dpi: int) -> int:
    return int(round(value * dpi / MM_PER_INCH))


def top_left_to_pdf(
    x: float, y: float, page_height: float, box_height: float = 0.0
) -> Tuple[float, float]:
    """Convert a top-left origin box corner (mm) to ReportLab points.

    ReportLab's origin is bottom-left, so Y is inverted and the box's
    own height is subtracted to find its lower edge.
    """
    return (x * mm, (page_height - y - box_height) * mm)
