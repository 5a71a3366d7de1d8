"""Custom field definitions and the editable field schema."""

import re
import time
from dataclasses import dataclass, field, asdict, replace
from typing import Iterator, List, Optional

from eventbadges.errors import (
    DuplicateFieldName,
    InvalidFieldName,
    InvalidFieldOptionsUsage,
    InvalidFieldType,
)

FIELD_TYPES = ("text", "email", "phone", "number", "date", "select", "checkbox")

FIELD_NAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")


def sanitize_field_name(name: str) -> str:
    """Replace whitespace with underscores, as the field editor does on input."""
    return re.sub(r"\s", "_", name)


@dataclass
class FieldDefinition:
    """One custom field of an event schema."""
    name: str
    type: str = "text"
    label: str = ""
    required: bool = False
    options: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        d = asdict(self)
        if not self.options:
            d.pop("options")
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "FieldDefinition":
        if not isinstance(d, dict):
            raise InvalidFieldName(f"Field definition must be an object, got {d!r}")
        d = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        name = d.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidFieldName("Field name is required", "")
        options = d.get("options") or []
        if not isinstance(options, list):
            raise InvalidFieldOptionsUsage(f"Options of {name!r} must be a list", name)
        d["options"] = [str(o) for o in options]
        return cls(**d)


def validate_field(fd: FieldDefinition) -> None:
    """Check a single definition; raises a SchemaError subclass."""
    if not fd.name or not FIELD_NAME_RE.match(fd.name):
        raise InvalidFieldName(
            f"Field name {fd.name!r} may only contain letters, digits and '_'",
            fd.name,
        )
    if fd.type not in FIELD_TYPES:
        raise InvalidFieldType(f"Unknown field type {fd.type!r}", fd.name)
    if fd.type == "select" and not fd.options:
        raise InvalidFieldOptionsUsage(
            f"Select field {fd.name!r} needs at least one option", fd.name
        )
    if fd.type != "select" and fd.options:
        raise InvalidFieldOptionsUsage(
            f"Only select fields take options ({fd.name!r} is {fd.type})", fd.name
        )


def validate_schema(fields: List[FieldDefinition]) -> None:
    """Validate every definition and the uniqueness of names."""
    seen = set()
    for fd in fields:
        validate_field(fd)
        if fd.name in seen:
            raise DuplicateFieldName(f"Duplicate field name {fd.name!r}", fd.name)
        seen.add(fd.name)


def schema_from_list(data: List[dict]) -> List[FieldDefinition]:
    if not isinstance(data, list):
        raise InvalidFieldName("A schema is a list of field definitions")
    fields = [FieldDefinition.from_dict(d) for d in data]
    validate_schema(fields)
    return fields


def schema_to_list(fields: List[FieldDefinition]) -> List[dict]:
    return [f.to_dict() for f in fields]


class FieldSchema:
    """Ordered, editable list of field definitions.

    Every edit is validated against the whole schema; a rejected edit
    leaves the schema as it was.
    """

    def __init__(self, fields: Optional[List[FieldDefinition]] = None):
        self.fields: List[FieldDefinition] = list(fields or [])
        validate_schema(self.fields)

    def __iter__(self) -> Iterator[FieldDefinition]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, index: int) -> FieldDefinition:
        return self.fields[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, FieldSchema):
            return NotImplemented
        return self.fields == other.fields

    @property
    def names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get(self, name: str) -> Optional[FieldDefinition]:
        for fd in self.fields:
            if fd.name == name:
                return fd
        return None

    def _commit(self, candidate: List[FieldDefinition]) -> None:
        validate_schema(candidate)
        self.fields = candidate

    def add_field(self, definition: Optional[FieldDefinition] = None) -> FieldDefinition:
        if definition is None:
            definition = FieldDefinition(
                name=f"field_{int(time.time() * 1000)}", type="text", label="New Field"
            )
        self._commit(self.fields + [definition])
        return definition

    def update_field(self, index: int, **changes) -> FieldDefinition:
        if "name" in changes:
            changes["name"] = sanitize_field_name(changes["name"])
        if "options" in changes:
            changes["options"] = list(changes["options"] or [])
        updated = replace(self.fields[index], **changes)
        candidate = list(self.fields)
        candidate[index] = updated
        self._commit(candidate)
        return updated

    def remove_field(self, index: int) -> FieldDefinition:
        candidate = list(self.fields)
        removed = candidate.pop(index)
        self.fields = candidate
        return removed

    def move_field(self, index: int, direction: str) -> None:
        new_index = index - 1 if direction == "up" else index + 1
        if new_index < 0 or new_index >= len(self.fields):
            return
        candidate = list(self.fields)
        candidate[index], candidate[new_index] = candidate[new_index], candidate[index]
        self.fields = candidate

    def to_list(self) -> List[dict]:
        return schema_to_list(self.fields)

    @classmethod
    def from_list(cls, data: List[dict]) -> "FieldSchema":
        return cls(schema_from_list(data))
