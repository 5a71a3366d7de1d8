"""Badge layout data models with JSON serialization."""

import json
import logging
import random
import string
import time
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from eventbadges import config
from eventbadges.errors import InvalidLayout, PersistenceError
from eventbadges.storage import KeyValueStore

logger = logging.getLogger(__name__)

# Paper dimensions in mm (width, height)
PAPER_DIMENSIONS: Dict[str, Tuple[float, float]] = {
    "A4": (210.0, 297.0),
    "A6": (105.0, 148.0),
}


def _number(value: Any, name: str) -> float:
    # bool is an int subclass but never a coordinate
    if isinstance(value, bool):
        raise InvalidLayout(f"{name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidLayout(f"{name} must be a number, got {value!r}") from None


def _flag(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    if isinstance(value, (int, float)):
        return bool(value)
    raise InvalidLayout(f"{name} must be true or false, got {value!r}")


def _mapping(value: Any, name: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidLayout(f"{name} must be an object")
    return value


def _text(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidLayout(f"{name} is required")
    return value


def _known_keys(cls, d: dict) -> dict:
    unknown = set(d) - set(cls.__dataclass_fields__)
    if unknown:
        raise InvalidLayout(f"Unknown {cls.__name__} keys: {', '.join(sorted(unknown))}")
    return d


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def from_dict(cls, d: Any) -> "Position":
        d = _known_keys(cls, _mapping(d, "position"))
        return cls(x=_number(d.get("x", 0.0), "position.x"), y=_number(d.get("y", 0.0), "position.y"))


@dataclass
class Size:
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_dict(cls, d: Any) -> "Size":
        d = _known_keys(cls, _mapping(d, "size"))
        return cls(
            width=_number(d.get("width", 0.0), "size.width"),
            height=_number(d.get("height", 0.0), "size.height"),
        )


@dataclass
class BadgeTextElement:
    """A text element showing one field, or several comma-joined fields."""
    id: str
    fieldName: str
    label: str = ""
    position: Position = field(default_factory=Position)
    fontSize: float = 12
    fontWeight: str = "normal"  # "normal" or "bold"
    align: str = "left"  # "left", "center", "right"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Any) -> "BadgeTextElement":
        d = _mapping(d, "text element")
        d = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        weight = d.get("fontWeight", "normal")
        if weight not in ("normal", "bold"):
            raise InvalidLayout(f"fontWeight must be normal or bold, got {weight!r}")
        align = d.get("align", "left")
        if align not in ("left", "center", "right"):
            raise InvalidLayout(f"align must be left, center or right, got {align!r}")
        return cls(
            id=_text(d.get("id"), "text element id"),
            fieldName=_text(d.get("fieldName"), "fieldName"),
            label=str(d.get("label") or ""),
            position=Position.from_dict(d.get("position")),
            fontSize=_number(d.get("fontSize", 12), "fontSize"),
            fontWeight=weight,
            align=align,
        )


@dataclass
class BadgeBarcodeElement:
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=Size)
    showText: bool = True

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Any) -> "BadgeBarcodeElement":
        d = _mapping(d, "barcode")
        return cls(
            position=Position.from_dict(d.get("position")),
            size=Size.from_dict(d.get("size")),
            showText=_flag(d.get("showText", True), "showText"),
        )


@dataclass
class BadgeShapeElement:
    """A static rectangle, e.g. a colored header band."""
    id: str
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=Size)
    fillColor: Optional[str] = None
    borderColor: Optional[str] = None
    borderWidth: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Any) -> "BadgeShapeElement":
        d = _mapping(d, "shape")
        return cls(
            id=_text(d.get("id"), "shape id"),
            position=Position.from_dict(d.get("position")),
            size=Size.from_dict(d.get("size")),
            fillColor=d.get("fillColor"),
            borderColor=d.get("borderColor"),
            borderWidth=_number(d.get("borderWidth", 0.0), "borderWidth"),
        )


def _element_list(d: dict, key: str, element_cls) -> list:
    items = d.get(key) or []
    if not isinstance(items, list):
        raise InvalidLayout(f"{key} must be a list")
    return [element_cls.from_dict(item) for item in items]
@dataclass
class BadgeLayoutConfig:
    """Complete badge layout: paper, border, text elements, barcode."""
    paperSize: str = "A6"
    showBorder: bool = True
    textElements: List[BadgeTextElement] = field(default_factory=list)
    barcode: BadgeBarcodeElement = field(default_factory=BadgeBarcodeElement)
    shapes: List[BadgeShapeElement] = field(default_factory=list)

    @property
    def dimensions(self) -> Tuple[float, float]:
        return PAPER_DIMENSIONS.get(self.paperSize, PAPER_DIMENSIONS["A6"])

    def find_element(self, element_id: str) -> Optional[BadgeTextElement]:
        for element in self.textElements:
            if element.id == element_id:
                return element
        return None

    def to_dict(self) -> dict:
        d = {
            "paperSize": self.paperSize,
            "showBorder": self.showBorder,
            "textElements": [e.to_dict() for e in self.textElements],
            "barcode": self.barcode.to_dict(),
        }
        if self.shapes:
            d["shapes"] = [s.to_dict() for s in self.shapes]
        return d

    @classmethod
    def from_dict(cls, d: Any) -> "BadgeLayoutConfig":
        d = _mapping(d, "layout")
        paper = d.get("paperSize", "A6")
        if paper not in PAPER_DIMENSIONS:
            raise InvalidLayout(f"Unknown paper size {paper!r}")
        return cls(
            paperSize=paper,
            showBorder=_flag(d.get("showBorder", True), "showBorder"),
            textElements=_element_list(d, "textElements", BadgeTextElement),
            barcode=BadgeBarcodeElement.from_dict(d.get("barcode")),
            shapes=_element_list(d, "shapes", BadgeShapeElement),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def default_layout() -> BadgeLayoutConfig:
    """A fresh copy of the built-in layout used when nothing is saved."""
    return BadgeLayoutConfig(
        paperSize="A6",
        showBorder=True,
        textElements=[
            BadgeTextElement(
                id="name-top",
                fieldName="firstName,lastName",
                label="Full Name (Top)",
                position=Position(52.5, 40),
                fontSize=14,
                fontWeight="bold",
                align="center",
            ),
        ],
        barcode=BadgeBarcodeElement(
            position=Position(20, 100),
            size=Size(65, 25),
            showText=True,
        ),
    )


def generate_element_id() -> str:
    """Id for a new layout element; unique within one editing session."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"elem-{int(time.time() * 1000)}-{suffix}"


def looks_like_layout(data) -> bool:
    return isinstance(data, dict) and "textElements" in data and "barcode" in data


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class LayoutLoad(NamedTuple):
    layout: BadgeLayoutConfig
    error: Optional[Exception]


def read_layout_config(store: KeyValueStore) -> LayoutLoad:
    """Read the saved layout; failures come back in ``error``, never raised.

    An empty store is not an error: the default layout is returned with
    ``error`` set to None.
    """
    try:
        stored = store.get(config.LAYOUT_STORAGE_KEY)
    except PersistenceError as e:
        return LayoutLoad(default_layout(), e)
    if not stored:
        return LayoutLoad(default_layout(), None)
    try:
        data = json.loads(stored)
        if not looks_like_layout(data):
            raise ValueError("stored layout lacks textElements or barcode")
        return LayoutLoad(BadgeLayoutConfig.from_dict(data), None)
    except ValueError as e:
        return LayoutLoad(default_layout(), e)


def write_layout_config(store: KeyValueStore, layout: BadgeLayoutConfig) -> Optional[Exception]:
    try:
        store.set(config.LAYOUT_STORAGE_KEY, layout.to_json())
    except PersistenceError as e:
        return e
    return None


def load_layout_config(store: KeyValueStore) -> BadgeLayoutConfig:
    """Saved layout, or the default when missing or unreadable."""
    layout, error = read_layout_config(store)
    if error is not None:
        logger.warning("Failed to load badge layout, using default: %s", error)
    return layout


def save_layout_config(store: KeyValueStore, layout: BadgeLayoutConfig) -> bool:
    """Persist the layout; a failure is logged and reported as False."""
    error = write_layout_config(store, layout)
    if error is not None:
        logger.warning("Failed to save badge layout: %s", error)
        return False
    return True
