import logging
import re
import threading
from io import BytesIO

import pytest
from pypdf import PdfReader
from reportlab.lib.units import mm

from eventbadges import printing
from eventbadges.errors import (
    BadgeAlreadyExists,
    BarcodeEncodingError,
    InvalidBadgeRequest,
    PersistenceError,
    RecordNotFound,
)
from eventbadges.models.badge_layout import BadgeLayoutConfig, save_layout_config
from eventbadges.printing import (
    BadgeRecord,
    InMemoryRecordRepository,
    generate_badge,
    lookup_badge,
    print_badge,
    scan_code_for,
)
from eventbadges.utils.barcodes import is_identifier_code

STAFF_ID = "5taff001-aaaa-bbbb-cccc-dddddddddddd"
PART_ID = "abcdef12-3456-7890-abcd-ef1234567890"


def fixed_clock():
    return 1700000000000


class RecordingRepository(InMemoryRecordRepository):

    def __init__(self, fail_marker=False, fail_layout=False):
        super().__init__()
        self.markers = []
        self.fail_marker = fail_marker
        self.fail_layout = fail_layout

    def get_event_layout(self, event_id):
        if self.fail_layout:
            raise PersistenceError("event service down")
        return super().get_event_layout(event_id)

    def persist_print_marker(self, kind, record_id, printed_by, badge_id):
        self.markers.append((kind, record_id, printed_by, badge_id))
        if self.fail_marker:
            raise PersistenceError("write failed")
        super().persist_print_marker(kind, record_id, printed_by, badge_id)


@pytest.fixture
def recording(repository):
    repo = RecordingRepository()
    for kind, records in repository.records.items():
        for record in records.values():
            repo.add_record(kind, record)
    return repo


def test_first_staff_print_end_to_end(recording):
    recording.set_event_layout("evt-1", BadgeLayoutConfig.from_dict({
        "paperSize": "A4",
        "showBorder": False,
        "textElements": [],
        "barcode": {"position": {"x": 10, "y": 10}, "size": {"width": 50, "height": 20}, "showText": True},
    }))

    result = print_badge(recording, STAFF_ID, "staff", "admin@example.com",
                         event_id="evt-1", clock=fixed_clock)

    page = PdfReader(BytesIO(result.artifact)).pages[0]
    assert float(page.mediabox.width) == pytest.approx(210 * mm)
    assert float(page.mediabox.height) == pytest.approx(297 * mm)
    assert len(page.images) == 1
    assert page.extract_text().strip() == ""

    # STAFF-5taff001-1700000000000 -> digits 5001 + 1700000000000
    assert result.barcode == "500117000000"
    assert is_identifier_code(result.barcode)
    assert recording.markers == [("staff", STAFF_ID, "admin@example.com", result.barcode)]
    record = recording.get_record("staff", STAFF_ID)
    assert record.badge_id == result.barcode
    assert record.badge_printed_by == "admin@example.com"
    assert record.badge_printed_at is not None
    assert result.to_dict() == {"type": "staff", "id": STAFF_ID, "barcode": result.barcode}


def test_generated_barcode_comes_from_record_id_and_clock(recording):
    result = print_badge(recording, PART_ID, "participant", "desk-1", clock=fixed_clock)
    # PART-abcdef12-1700000000000 -> digits 12 + 1700000000000
    assert result.barcode == "121700000000"


def test_reprint_reuses_stored_badge_id(recording, monkeypatch):
    recording.get_record("participant", PART_ID).badge_id = "P-1A2B3C4D5E6F7A8B"
    composed = []
    real_compose = printing.compose

    def spy(request, fallback=None):
        composed.append(request.barcode)
        return real_compose(request, fallback)

    monkeypatch.setattr(printing, "compose", spy)
    result = print_badge(recording, PART_ID, "participant", "desk-1", clock=fixed_clock)

    assert result.barcode == "P-1A2B3C4D5E6F7A8B"
    assert composed == ["P-1A2B3C4D5E6F7A8B"]
    assert recording.markers[-1][3] == "P-1A2B3C4D5E6F7A8B"


def test_second_print_sees_first_barcode(recording):
    first = print_badge(recording, STAFF_ID, "staff", "a", clock=fixed_clock)
    second = print_badge(recording, STAFF_ID, "staff", "b", clock=lambda: 1800000000000)
    assert second.barcode == first.barcode
    assert [m[3] for m in recording.markers] == [first.barcode, first.barcode]


def test_participant_is_confirmed(recording):
    result = print_badge(recording, PART_ID, "participant", "desk-1")
    assert result.status == "CONFIRMED"
    assert result.to_dict()["status"] == "CONFIRMED"
    assert recording.get_record("participant", PART_ID).status == "CONFIRMED"


def test_encoding_failure_skips_marker(recording):
    recording.get_record("staff", STAFF_ID).badge_id = "BADGE-Ä"
    with pytest.raises(BarcodeEncodingError):
        print_badge(recording, STAFF_ID, "staff", "a")
    assert recording.markers == []
    assert recording.get_record("staff", STAFF_ID).badge_printed_at is None


def test_render_failure_skips_marker(recording, monkeypatch):
    def broken_render(*args, **kwargs):
        raise RuntimeError("renderer crashed")

    monkeypatch.setattr(printing, "render_pdf", broken_render)
    with pytest.raises(RuntimeError):
        print_badge(recording, PART_ID, "participant", "a")
    assert recording.markers == []
    assert recording.get_record("participant", PART_ID).status == "PENDING"


def test_marker_failure_propagates(repository):
    repo = RecordingRepository(fail_marker=True)
    repo.add_record("staff", repository.get_record("staff", STAFF_ID))
    with pytest.raises(PersistenceError):
        print_badge(repo, STAFF_ID, "staff", "a")
    assert repo.get_record("staff", STAFF_ID).badge_printed_at is None


def test_layout_fetch_failure_falls_back(repository, store, caplog):
    repo = RecordingRepository(fail_layout=True)
    repo.add_record("staff", repository.get_record("staff", STAFF_ID))
    saved = BadgeLayoutConfig.from_dict({
        "paperSize": "A4", "showBorder": False, "textElements": [],
        "barcode": {"position": {"x": 1, "y": 1}, "size": {"width": 40, "height": 15}},
    })
    save_layout_config(store, saved)

    with caplog.at_level(logging.WARNING):
        result = print_badge(repo, STAFF_ID, "staff", "a", event_id="evt-1", layout_store=store)
    assert "using default" in caplog.text
    page = PdfReader(BytesIO(result.artifact)).pages[0]
    assert float(page.mediabox.width) == pytest.approx(210 * mm)


def test_default_layout_prints_full_name(recording):
    result = print_badge(recording, PART_ID, "participant", "a")
    text = PdfReader(BytesIO(result.artifact)).pages[0].extract_text()
    assert "Ada Lovelace" in text


def test_fallback_names():
    assert printing.full_name({}, "staff") == "Staff Member"
    assert printing.full_name({"firstName": " "}, "participant") == "Participant"
    assert printing.full_name({"lastName": "Hopper"}, "staff") == "Hopper"


def test_unknown_record_and_kind(recording):
    with pytest.raises(RecordNotFound):
        print_badge(recording, "missing", "staff", "a")
    with pytest.raises(InvalidBadgeRequest):
        print_badge(recording, PART_ID, "speaker", "a")


def test_record_without_id_is_invalid():
    repo = InMemoryRecordRepository()
    repo.records["staff"]["ghost"] = BadgeRecord(id="")
    with pytest.raises(InvalidBadgeRequest):
        print_badge(repo, "ghost", "staff", "a")


class BarrierRepository(RecordingRepository):
    """Holds each thread's first record fetch until both threads arrive."""

    def __init__(self, parties):
        super().__init__()
        self.barrier = threading.Barrier(parties, timeout=10)
        self.local = threading.local()

    def get_record(self, kind, record_id):
        record = super().get_record(kind, record_id)
        if not getattr(self.local, "waited", False):
            self.local.waited = True
            self.barrier.wait()
        return record


def test_concurrent_first_prints_both_render(repository):
    # Both prints read the record before either writes its marker, so
    # each generates its own barcode and the last marker written wins.
    repo = BarrierRepository(2)
    repo.add_record("staff", repository.get_record("staff", STAFF_ID))
    results, errors = {}, []

    def run(name, millis):
        try:
            results[name] = print_badge(repo, STAFF_ID, "staff", name, clock=lambda: millis)
        except Exception as e:
            errors.append(e)

    threads = [
        threading.Thread(target=run, args=("desk-a", 1700000000000)),
        threading.Thread(target=run, args=("desk-b", 1800000000000)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    assert {r.barcode for r in results.values()} == {"500117000000", "500118000000"}
    for result in results.values():
        assert result.artifact.startswith(b"%PDF")
        assert len(PdfReader(BytesIO(result.artifact)).pages) == 1
    assert len(repo.markers) == 2
    record = repo.get_record("staff", STAFF_ID)
    winner = [m for m in repo.markers if m[3] == record.badge_id]
    assert len(winner) == 1
    assert record.badge_printed_by == winner[0][2]


def test_generate_badge_assigns_random_id(repository):
    record = generate_badge(repository, "staff", STAFF_ID)
    assert re.match(r"^S-[0-9A-F]{16}$", record.badge_id)
    assert repository.get_record("staff", STAFF_ID).badge_id == record.badge_id
    with pytest.raises(BadgeAlreadyExists):
        generate_badge(repository, "staff", STAFF_ID)
    with pytest.raises(RecordNotFound):
        generate_badge(repository, "participant", "missing")


def test_generated_badge_is_reused_when_printing(repository):
    badge_id = generate_badge(repository, "participant", PART_ID).badge_id
    assert print_badge(repository, PART_ID, "participant", "desk").barcode == badge_id


def test_lookup_by_exact_badge_id(repository):
    repository.get_record("participant", PART_ID).badge_id = "P-00FF00FF00FF00FF"
    kind, record = lookup_badge(repository, " P-00FF00FF00FF00FF ", event_id="evt-1")
    assert (kind, record.id) == ("participant", PART_ID)
    with pytest.raises(InvalidBadgeRequest):
        lookup_badge(repository, "P-00FF00FF00FF00FF", event_id="evt-2")


def test_lookup_by_scan_code(repository):
    record = repository.get_record("participant", PART_ID)
    record.event_id = "evt001"
    code = scan_code_for(record, "course-123456", clock=fixed_clock)
    assert code.startswith("EVT001-567890-123456-")
    kind, found = lookup_badge(repository, code)
    assert found is record


def test_lookup_misses(repository):
    with pytest.raises(RecordNotFound):
        lookup_badge(repository, "S-NOPE")
    with pytest.raises(RecordNotFound):
        lookup_badge(repository, "AAAAAA-BBBBBB-CCCCCC-DDDD")
    with pytest.raises(InvalidBadgeRequest):
        lookup_badge(repository, "")
