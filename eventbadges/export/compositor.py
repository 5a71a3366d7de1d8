"""Resolve a badge layout against one record into a draw list.

The draw list is an ordered list of primitives in millimeters, origin at
the top-left corner with y growing downward. Later items paint over
earlier ones. Composition is pure: the same request always yields an
equal draw list, and the request is never modified.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from eventbadges import config
from eventbadges.errors import InvalidBadgeRequest
from eventbadges.export.barcode_image import render_code128_png
from eventbadges.models.badge_layout import BadgeLayoutConfig, default_layout


@dataclass
class BadgeGenerationRequest:
    """Everything needed to print one badge; built at print time, used once."""
    record_id: str
    name: str
    role: str
    barcode: str
    values: Optional[Dict[str, Any]] = None
    layout: Optional[BadgeLayoutConfig] = None


@dataclass(frozen=True)
class Rectangle:
    x: float
    y: float
    width: float
    height: float
    fill_color: Optional[str] = None
    stroke_color: Optional[str] = None
    line_width: float = 0.0


@dataclass(frozen=True)
class TextRun:
    value: str
    x: float
    y: float  # baseline
    font_size: float
    font_weight: str = "normal"
    align: str = "left"


@dataclass(frozen=True)
class BarcodeImage:
    code: str
    x: float
    y: float
    width: float
    height: float
    show_text: bool
    png: bytes = field(repr=False)


DrawItem = Union[Rectangle, TextRun, BarcodeImage]


@dataclass
class DrawList:
    page_width: float
    page_height: float
    items: List[DrawItem] = field(default_factory=list)

    @property
    def text_runs(self) -> List[TextRun]:
        return [i for i in self.items if isinstance(i, TextRun)]

    @property
    def barcodes(self) -> List[BarcodeImage]:
        return [i for i in self.items if isinstance(i, BarcodeImage)]


def _as_text(value: Any) -> str:
    if value is True:
        return "Yes"
    return str(value)


def get_field_value(field_name: str, request: BadgeGenerationRequest) -> str:
    """Text for a layout element bound to ``field_name``.

    A comma-separated name joins the non-empty values of each listed
    field with single spaces. Without a value map, or when a single
    field is empty, ``name``/``...Name...`` falls back to the request's
    name and ``role`` to its role.
    """
    values = request.values
    if values is not None:
        if "," in field_name:
            parts = [values.get(part.strip()) for part in field_name.split(",")]
            return " ".join(_as_text(p) for p in parts if p)
        if values.get(field_name):
            return _as_text(values[field_name])

    if field_name == "name" or "Name" in field_name:
        return request.name
    if field_name == "role":
        return request.role
    return ""


def _check_request(request: BadgeGenerationRequest) -> None:
    if not request.record_id:
        raise InvalidBadgeRequest("Record ID is required")
    if not request.name:
        raise InvalidBadgeRequest("Name is required")
    if not request.barcode:
        raise InvalidBadgeRequest("Barcode is required")


def compose(
    request: BadgeGenerationRequest,
    fallback_layout: Optional[BadgeLayoutConfig] = None,
) -> DrawList:
    """Build the draw list for one badge.

    Uses the request's layout, else ``fallback_layout``, else the
    built-in default. Raises InvalidBadgeRequest before doing any work
    when id, name or barcode is missing, and BarcodeEncodingError when
    the barcode cannot be rendered.
    """
    _check_request(request)
    layout = request.layout or fallback_layout or default_layout()
    page_w, page_h = layout.dimensions

    items: List[DrawItem] = [Rectangle(0, 0, page_w, page_h, fill_color="#ffffff")]

    if layout.showBorder:
        inset = config.BORDER_MARGIN_MM
        items.append(Rectangle(
            inset, inset, page_w - 2 * inset, page_h - 2 * inset,
            stroke_color="#000000", line_width=config.BORDER_LINE_WIDTH_MM,
        ))

    for shape in layout.shapes:
        items.append(Rectangle(
            shape.position.x, shape.position.y, shape.size.width, shape.size.height,
            fill_color=shape.fillColor,
            stroke_color=shape.borderColor if shape.borderWidth > 0 else None,
            line_width=shape.borderWidth,
        ))

    for element in layout.textElements:
        value = get_field_value(element.fieldName, request)
        if not value:
            continue
        items.append(TextRun(
            value=value,
            x=element.position.x,
            y=element.position.y,
            font_size=element.fontSize,
            font_weight=element.fontWeight,
            align=element.align,
        ))

    bc = layout.barcode
    items.append(BarcodeImage(
        code=request.barcode,
        x=bc.position.x,
        y=bc.position.y,
        width=bc.size.width,
        height=bc.size.height,
        show_text=bc.showText,
        png=render_code128_png(request.barcode, show_text=bc.showText),
    ))

    return DrawList(page_w, page_h, items)
