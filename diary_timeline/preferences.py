"""Flat key-value persistence for favorites and other small preferences.

The engine only talks to the :class:`PreferenceStore` protocol, so tests can
use :class:`InMemoryPreferenceStore` while the app uses SQLite. Read failures
of any kind degrade to an empty value; nothing here should stop startup.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Set, runtime_checkable

logger = logging.getLogger("diary_timeline.preferences")

SCHEMA_PREFERENCES = """
CREATE TABLE IF NOT EXISTS preferences (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


@runtime_checkable
class PreferenceStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryPreferenceStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class SqlitePreferenceStore:
    def __init__(self, db_path: str | Path):
        self._db_path = Path(db_path)

    @contextmanager
    def _connection(self):
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._db_path)
        try:
            conn.execute(SCHEMA_PREFERENCES)
            yield conn
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        with self._connection() as conn:
            row = conn.execute("SELECT value FROM preferences WHERE key = ?", (key,)).fetchone()
        return None if row is None else str(row[0])

    def set(self, key: str, value: str) -> None:
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO preferences (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )


def _read_json(store: PreferenceStore, key: str) -> object:
    try:
        raw = store.get(key)
    except (sqlite3.Error, OSError) as exc:
        logger.warning("Preference '%s' could not be read: %s", key, exc)
        return None
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Preference '%s' holds malformed JSON, ignoring it.", key)
        return None


def read_string_list(store: PreferenceStore, key: str) -> List[str]:
    parsed = _read_json(store, key)
    if not isinstance(parsed, list):
        return []
    return [item for item in parsed if isinstance(item, str)]


def write_string_list(store: PreferenceStore, key: str, values: Iterable[str]) -> bool:
    payload = json.dumps(list(values), ensure_ascii=False)
    try:
        store.set(key, payload)
    except (sqlite3.Error, OSError) as exc:
        logger.warning("Preference '%s' could not be written: %s", key, exc)
        return False
    return True


def read_favorite_set(store: PreferenceStore, key: str) -> Set[str]:
    return set(read_string_list(store, key))


def persist_favorite_set(store: PreferenceStore, key: str, favorites: Iterable[str]) -> bool:
    return write_string_list(store, key, sorted(favorites))


def read_claimed_names(store: PreferenceStore, key: str) -> Set[str]:
    """Names owned by another diary feature, stored as the keys of a JSON object."""
    parsed = _read_json(store, key)
    if not isinstance(parsed, dict):
        return set()
    return {name for name in parsed.keys() if isinstance(name, str)}


__all__ = [
    "InMemoryPreferenceStore",
    "PreferenceStore",
    "SqlitePreferenceStore",
    "persist_favorite_set",
    "read_claimed_names",
    "read_favorite_set",
    "read_string_list",
    "write_string_list",
]
