"""Badge printing workflow and the record repository it talks to.

A print runs strictly in sequence: fetch the record, fetch the event's
layout (best effort), compose, render, then persist the print marker.
Nothing is persisted when composing or rendering fails.

Two concurrent first prints of the same record can each generate a
barcode; the last marker written wins. No lock guards this.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from eventbadges import config
from eventbadges.errors import (
    BadgeAlreadyExists,
    InvalidBadgeRequest,
    PersistenceError,
    RecordNotFound,
)
from eventbadges.export.compositor import BadgeGenerationRequest, compose
from eventbadges.export.pdf_export import render_pdf
from eventbadges.models.badge_layout import (
    BadgeLayoutConfig,
    load_layout_config,
    looks_like_layout,
)
from eventbadges.storage import KeyValueStore
from eventbadges.utils.barcodes import (
    SEED_PREFIXES,
    generate_badge_id,
    generate_barcode,
    generate_scan_code,
    identifier_seed,
    now_ms,
    parse_barcode,
)

logger = logging.getLogger(__name__)

KINDS = ("participant", "staff")
ROLES = {"participant": "Participant", "staff": "Staff"}
FALLBACK_NAMES = {"participant": "Participant", "staff": "Staff Member"}
CONFIRMED = "CONFIRMED"


@dataclass
class BadgeRecord:
    """A participant or staff member as seen by the badge printer."""
    id: str
    values: Dict[str, Any] = field(default_factory=dict)
    event_id: Optional[str] = None
    badge_id: Optional[str] = None
    badge_printed_at: Optional[datetime] = None
    badge_printed_by: Optional[str] = None
    status: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "eventId": self.event_id,
            "values": dict(self.values),
            "badgeId": self.badge_id,
            "badgePrintedAt": self.badge_printed_at.isoformat() if self.badge_printed_at else None,
            "badgePrintedBy": self.badge_printed_by,
            "status": self.status,
        }


@dataclass
class PrintResult:
    type: str
    id: str
    barcode: str
    status: Optional[str] = None
    artifact: bytes = field(default=b"", repr=False)

    def to_dict(self) -> dict:
        d = {"type": self.type, "id": self.id, "barcode": self.barcode}
        if self.status:
            d["status"] = self.status
        return d


class RecordRepository:
    """Storage collaborator used by print_badge.

    Implementations raise PersistenceError (RecordNotFound for unknown
    ids) on failure.
    """

    def get_record(self, kind: str, record_id: str) -> BadgeRecord:
        raise NotImplementedError

    def get_event_layout(self, event_id: str) -> Optional[BadgeLayoutConfig]:
        raise NotImplementedError

    def update_status(self, kind: str, record_id: str, status: str) -> None:
        raise NotImplementedError

    def persist_print_marker(
        self, kind: str, record_id: str, printed_by: str, badge_id: str
    ) -> None:
        raise NotImplementedError

    def assign_badge_id(self, kind: str, record_id: str, badge_id: str) -> None:
        raise NotImplementedError

    def find_by_badge_id(self, badge_id: str) -> Optional[Tuple[str, BadgeRecord]]:
        """``(kind, record)`` holding exactly this badge id, or None."""
        raise NotImplementedError

    def find_by_id_suffix(self, suffix: str) -> Optional[Tuple[str, BadgeRecord]]:
        """First record whose id ends with ``suffix``, ignoring case."""
        raise NotImplementedError


class InMemoryRecordRepository(RecordRepository):

    def __init__(self):
        self.records: Dict[str, Dict[str, BadgeRecord]] = {kind: {} for kind in KINDS}
        self.event_layouts: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def add_record(self, kind: str, record: BadgeRecord) -> BadgeRecord:
        with self._lock:
            self.records[kind][record.id] = record
        return record

    def set_event_layout(self, event_id: str, layout: BadgeLayoutConfig) -> None:
        with self._lock:
            self.event_layouts[event_id] = layout.to_dict()

    def get_record(self, kind: str, record_id: str) -> BadgeRecord:
        with self._lock:
            record = self.records.get(kind, {}).get(record_id)
        if record is None:
            raise RecordNotFound(f"{kind} {record_id} not found")
        return record

    def get_event_layout(self, event_id: str) -> Optional[BadgeLayoutConfig]:
        with self._lock:
            data = self.event_layouts.get(event_id)
        if data is None or not looks_like_layout(data):
            return None
        return BadgeLayoutConfig.from_dict(data)

    def update_status(self, kind: str, record_id: str, status: str) -> None:
        record = self.get_record(kind, record_id)
        with self._lock:
            record.status = status

    def persist_print_marker(
        self, kind: str, record_id: str, printed_by: str, badge_id: str
    ) -> None:
        record = self.get_record(kind, record_id)
        with self._lock:
            record.badge_id = badge_id
            record.badge_printed_at = datetime.now(timezone.utc)
            record.badge_printed_by = printed_by

    def assign_badge_id(self, kind: str, record_id: str, badge_id: str) -> None:
        record = self.get_record(kind, record_id)
        with self._lock:
            record.badge_id = badge_id

    def find_by_badge_id(self, badge_id: str) -> Optional[Tuple[str, BadgeRecord]]:
        with self._lock:
            for kind, records in self.records.items():
                for record in records.values():
                    if record.badge_id == badge_id:
                        return kind, record
        return None

    def find_by_id_suffix(self, suffix: str) -> Optional[Tuple[str, BadgeRecord]]:
        suffix = suffix.lower()
        with self._lock:
            for kind, records in self.records.items():
                for record in records.values():
                    if record.id.lower().endswith(suffix):
                        return kind, record
        return None


def full_name(values: Dict[str, Any], kind: str) -> str:
    name = f"{values.get('firstName') or ''} {values.get('lastName') or ''}".strip()
    return name or FALLBACK_NAMES[kind]


def _fetch_event_layout(
    repository: RecordRepository, event_id: Optional[str]
) -> Optional[BadgeLayoutConfig]:
    if not event_id:
        return None
    try:
        return repository.get_event_layout(event_id)
    except PersistenceError as e:
        logger.warning("Failed to fetch layout for event %s, using default: %s", event_id, e)
        return None


def print_badge(
    repository: RecordRepository,
    record_id: str,
    kind: str,
    printed_by: str,
    event_id: Optional[str] = None,
    layout_store: Optional[KeyValueStore] = None,
    clock: Callable[[], int] = now_ms,
) -> PrintResult:
    """Compose, render and mark one badge as printed.

    An existing badge id is reused verbatim; otherwise a new barcode is
    generated from the record id and ``clock()`` (epoch millis). The
    layout is the event's saved layout, else the one in
    ``layout_store``, else the built-in default.
    """
    if kind not in KINDS:
        raise InvalidBadgeRequest(f"Unknown badge type {kind!r}")

    record = repository.get_record(kind, record_id)
    if not record or not record.id:
        raise InvalidBadgeRequest(f"Invalid {kind} data received")

    event_layout = _fetch_event_layout(repository, event_id)
    fallback = load_layout_config(layout_store) if layout_store is not None else None

    values = record.values or {}
    barcode = record.badge_id
    generated = not barcode
    if generated:
        barcode = generate_barcode(identifier_seed(SEED_PREFIXES[kind], record.id, clock()))

    request = BadgeGenerationRequest(
        record_id=record.id,
        name=full_name(values, kind),
        role=ROLES[kind],
        barcode=barcode,
        values=dict(values),
        layout=event_layout,
    )
    artifact = render_pdf(compose(request, fallback), title=f"Badge {record.id}")

    status = None
    if kind == "participant":
        if record.status != CONFIRMED:
            repository.update_status(kind, record.id, CONFIRMED)
        status = CONFIRMED

    marker_id = barcode
    if kind == "staff" and generated:
        marker_id = barcode[:config.STAFF_BADGE_ID_MAX]
    try:
        repository.persist_print_marker(kind, record.id, printed_by, marker_id)
    except PersistenceError:
        logger.error("Badge for %s %s rendered but not marked as printed", kind, record.id)
        raise

    logger.info("Printed %s badge %s for %s", kind, barcode, record.id)
    return PrintResult(type=kind, id=record.id, barcode=barcode, status=status, artifact=artifact)


def generate_badge(repository: RecordRepository, kind: str, record_id: str) -> BadgeRecord:
    """Give a record a random badge id (``P-``/``S-`` plus 16 hex digits).

    Raises BadgeAlreadyExists when the record already has one.
    """
    if kind not in KINDS:
        raise InvalidBadgeRequest(f"Unknown badge type {kind!r}")
    record = repository.get_record(kind, record_id)
    if record.badge_id:
        raise BadgeAlreadyExists(f"Badge already exists for {kind} {record_id}")
    badge_id = generate_badge_id(kind)
    repository.assign_badge_id(kind, record_id, badge_id)
    logger.info("Assigned badge %s to %s %s", badge_id, kind, record_id)
    return repository.get_record(kind, record_id)


def scan_code_for(
    record: BadgeRecord, course_id: str, clock: Callable[[], int] = now_ms
) -> str:
    if not record.event_id:
        raise InvalidBadgeRequest(f"Record {record.id} is not attached to an event")
    return generate_scan_code(record.event_id, record.id, course_id, clock())


def lookup_badge(
    repository: RecordRepository, code: str, event_id: Optional[str] = None
) -> Tuple[str, BadgeRecord]:
    """Find the record behind a scanned code.

    An exact badge id match wins. Otherwise a four-segment scan code is
    matched on its participant segment against record ids. When
    ``event_id`` is given the record must belong to that event.
    """
    code = code.strip() if isinstance(code, str) else ""
    if not code:
        raise InvalidBadgeRequest("A badge code is required")

    found = repository.find_by_badge_id(code)
    if found is None:
        parsed = parse_barcode(code)
        if parsed is not None:
            found = repository.find_by_id_suffix(parsed.participant_part)
    if found is None:
        raise RecordNotFound(f"No badge matches {code!r}")

    kind, record = found
    if event_id and record.event_id != event_id:
        raise InvalidBadgeRequest(f"{kind} {record.id} is not registered for event {event_id}")
    return kind, record
