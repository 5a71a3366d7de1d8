"""Scoped key-value stores holding JSON strings.

``MemoryStore`` keeps values for the life of the process; ``JsonFileStore``
keeps one JSON file per scope on disk. Both raise PersistenceError on
failure and return None for missing keys.
"""

import json
import os
import tempfile
import threading
from typing import Dict, Optional

from eventbadges.errors import PersistenceError


class KeyValueStore:
    """Interface: string keys to string values inside one scope."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """All keys of one scope in ``<directory>/<scope>.json``."""

    def __init__(self, directory: str, scope: str = "default"):
        self.path = os.path.join(directory, f"{scope}.json")
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"{self.path} does not hold a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        try:
            os.makedirs(directory, exist_ok=True)
            # Write to a temp file, then rename over the target
            fd, tmp_path = tempfile.mkstemp(suffix=".json", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"Could not write {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)
