"""In-memory application state singleton for the badge web service."""

import threading
from typing import Dict, Optional

from eventbadges import config
from eventbadges.printing import InMemoryRecordRepository
from eventbadges.storage import JsonFileStore, KeyValueStore


class AppState:
    """Holds the layout store, record repository and rendered badges."""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        repository: Optional[InMemoryRecordRepository] = None,
    ):
        self.store: KeyValueStore = store or JsonFileStore(config.DATA_DIR, "layout")
        self.repository: InMemoryRecordRepository = repository or InMemoryRecordRepository()
        # Rendered PDFs by artifact id
        self.artifacts: Dict[str, bytes] = {}
        self.lock = threading.Lock()

    def add_artifact(self, artifact_id: str, pdf: bytes) -> None:
        with self.lock:
            self.artifacts[artifact_id] = pdf

    def get_artifact(self, artifact_id: str) -> Optional[bytes]:
        with self.lock:
            return self.artifacts.get(artifact_id)

    def reset(self, store: KeyValueStore, repository: InMemoryRecordRepository) -> None:
        self.store = store
        self.repository = repository
        with self.lock:
            self.artifacts.clear()


# Module-level singleton
state = AppState()
