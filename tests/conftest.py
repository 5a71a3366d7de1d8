import pytest

from eventbadges.errors import PersistenceError
from eventbadges.models.badge_layout import (
    BadgeBarcodeElement,
    BadgeLayoutConfig,
    BadgeTextElement,
    Position,
    Size,
)
from eventbadges.models.fields import FieldDefinition
from eventbadges.printing import BadgeRecord, InMemoryRecordRepository
from eventbadges.storage import KeyValueStore, MemoryStore


class BrokenStore(KeyValueStore):
    """Store whose every operation fails."""

    def get(self, key):
        raise PersistenceError("store offline")

    def set(self, key, value):
        raise PersistenceError("store offline")

    def delete(self, key):
        raise PersistenceError("store offline")


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def broken_store():
    return BrokenStore()


@pytest.fixture
def schema():
    return [
        FieldDefinition("firstName", "text", "First Name", required=True),
        FieldDefinition("lastName", "text", "Last Name", required=True),
        FieldDefinition("email", "email", "Email"),
        FieldDefinition("age", "number", "Age"),
        FieldDefinition("tshirt", "select", "T-Shirt", options=["S", "M", "L"]),
        FieldDefinition("vegan", "checkbox", "Vegan"),
    ]


@pytest.fixture
def name_layout():
    return BadgeLayoutConfig(
        paperSize="A6",
        showBorder=False,
        textElements=[
            BadgeTextElement(
                id="full-name",
                fieldName="firstName,lastName",
                label="Full Name",
                position=Position(52.5, 40),
                fontSize=14,
                fontWeight="bold",
                align="center",
            ),
        ],
        barcode=BadgeBarcodeElement(Position(20, 100), Size(65, 25), True),
    )


@pytest.fixture
def repository():
    repo = InMemoryRecordRepository()
    repo.add_record("participant", BadgeRecord(
        id="abcdef12-3456-7890-abcd-ef1234567890",
        values={"firstName": "Ada", "lastName": "Lovelace", "company": "Analytical"},
        event_id="evt-1",
        status="PENDING",
    ))
    repo.add_record("staff", BadgeRecord(
        id="5taff001-aaaa-bbbb-cccc-dddddddddddd",
        values={"firstName": "Grace", "lastName": "Hopper"},
        event_id="evt-1",
    ))
    return repo
