"""Generic validation and display of dynamic record values.

A record's values are an open mapping from field name to value. The
schema only hints at the runtime type; nothing here rejects a write.
Validation results are advisory and returned as data for form feedback.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from eventbadges.models.fields import FieldDefinition

REQUIRED_FIELD_MISSING = "RequiredFieldMissing"
INVALID_FIELD_VALUE = "InvalidFieldValue"

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

MISSING_DISPLAY = "-"


@dataclass
class ValidationResult:
    values: Dict[str, Any]
    errors: Dict[str, str] = field(default_factory=dict)
    error_kinds: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add(self, name: str, kind: str, message: str) -> None:
        self.errors[name] = message
        self.error_kinds[name] = kind


def default_value(fd: FieldDefinition) -> Any:
    return False if fd.type == "checkbox" else ""


def current_value(fd: FieldDefinition, values: Mapping[str, Any]) -> Any:
    value = values.get(fd.name)
    return default_value(fd) if value is None else value


def is_empty(fd: FieldDefinition, value: Any) -> bool:
    if value is None:
        return True
    if fd.type == "checkbox":
        return value is False or value == "false" or value == ""
    if isinstance(value, str):
        return not value.strip()
    return False


def is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and bool(NUMBER_RE.match(value.strip()))


def _check_type(fd: FieldDefinition, value: Any) -> str:
    """Return an error message for a non-empty value, or '' when it fits."""
    label = fd.label or fd.name
    if fd.type == "email":
        if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
            return f"{label} must be a valid email address"
    elif fd.type == "number":
        if not is_number(value):
            return f"{label} must be a number"
    elif fd.type == "select":
        if str(value) not in fd.options:
            return f"{label} must be one of: {', '.join(fd.options)}"
    return ""


def validate_values(
    schema: Iterable[FieldDefinition], values: Mapping[str, Any]
) -> ValidationResult:
    """Validate a value map against a schema, in schema order.

    Returns the resolved values (defaults filled in for absent fields)
    and a mapping of field name to error message. Keys that are not in
    the schema are passed through untouched.
    """
    resolved = dict(values)
    result = ValidationResult(values=resolved)
    for fd in schema:
        value = current_value(fd, values)
        resolved[fd.name] = value
        if is_empty(fd, value):
            if fd.required:
                result.add(fd.name, REQUIRED_FIELD_MISSING,
                           f"{fd.label or fd.name} is required")
            continue
        message = _check_type(fd, value)
        if message:
            result.add(fd.name, INVALID_FIELD_VALUE, message)
    return result


def coerce_value(fd: FieldDefinition, raw: Any) -> Any:
    """Convert raw form input to the field's soft runtime type.

    Input that does not convert is kept as given.
    """
    if raw is None:
        return None
    if fd.type == "checkbox":
        if isinstance(raw, str):
            return raw.strip().lower() in ("true", "1", "yes", "on")
        return bool(raw)
    if fd.type == "number":
        if is_number(raw) and isinstance(raw, str):
            text = raw.strip()
            try:
                return int(text)
            except ValueError:
                return float(text)
        return raw
    return raw if isinstance(raw, str) else str(raw)


def coerce_values(
    schema: Iterable[FieldDefinition], raw_values: Mapping[str, Any]
) -> Dict[str, Any]:
    values = dict(raw_values)
    for fd in schema:
        if fd.name in values:
            values[fd.name] = coerce_value(fd, values[fd.name])
    return values


def display_value(fd: FieldDefinition, values: Mapping[str, Any]) -> str:
    """Text shown for one field in lists and exports; '-' when missing."""
    value = values.get(fd.name)
    if not value:
        return MISSING_DISPLAY
    if value is True:
        return "Yes"
    return str(value)


def table_row(
    schema: Iterable[FieldDefinition], values: Mapping[str, Any]
) -> List[Tuple[str, str]]:
    """(label, display text) pairs in schema order; orphaned keys are skipped."""
    return [(fd.label or fd.name, display_value(fd, values)) for fd in schema]
