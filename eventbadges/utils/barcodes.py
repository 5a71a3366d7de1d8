"""Badge code generation and barcode string validation."""

import re
import secrets
import time
from typing import NamedTuple, Optional

from eventbadges import config

BARCODE_PATTERN = re.compile(r"^[A-Z0-9]+-[A-Z0-9]+-[A-Z0-9]+-[A-Z0-9]+$")

SEED_PREFIXES = {"participant": "PART", "staff": "STAFF"}
BADGE_ID_PREFIXES = {"participant": "P", "staff": "S"}

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


class ParsedBarcode(NamedTuple):
    event_part: str
    participant_part: str
    course_part: str
    timestamp: str


def now_ms() -> int:
    return int(time.time() * 1000)


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def identifier_seed(prefix: str, record_id: str, timestamp_ms: Optional[int] = None) -> str:
    """``PREFIX-<first 8 chars of id>-<epoch millis>``."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return f"{prefix}-{record_id[:8]}-{timestamp_ms}"


def generate_barcode(seed: str, length: int = config.BARCODE_LENGTH) -> str:
    """Digits of ``seed``, truncated (or zero-padded on the left) to ``length``."""
    digits = re.sub(r"[^0-9]", "", seed.upper())[:length]
    return digits.rjust(length, "0")


def is_identifier_code(code: str, length: int = config.BARCODE_LENGTH) -> bool:
    return len(code) == length and code.isdigit()


def generate_scan_code(
    event_id: str,
    participant_id: str,
    course_id: str,
    timestamp_ms: Optional[int] = None,
) -> str:
    """Four-segment scan code: last six chars of each id plus a base36 timestamp."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    parts = [event_id[-6:], participant_id[-6:], course_id[-6:], to_base36(timestamp_ms)]
    return "-".join(p.upper() for p in parts)


def generate_badge_id(kind: str) -> str:
    """Random badge id such as ``P-1F3A...`` for a participant."""
    return f"{BADGE_ID_PREFIXES[kind]}-{secrets.token_hex(8).upper()}"


def validate_barcode(code: str) -> bool:
    return bool(BARCODE_PATTERN.match(code or ""))


def parse_barcode(code: str) -> Optional[ParsedBarcode]:
    """Split a four-segment code; None when the code has another shape."""
    if not validate_barcode(code):
        return None
    return ParsedBarcode(*code.split("-"))
