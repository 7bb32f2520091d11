from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, List, Optional

from .date_parser import to_base_title
from .models import RawDocument
from .timeline import name_sort_key

logger = logging.getLogger("diary_timeline.database")

LEGACY_TABLE = "entries"

SCHEMA_DOCUMENTS = """
CREATE TABLE IF NOT EXISTS documents (
    name TEXT PRIMARY KEY,
    title TEXT NOT NULL DEFAULT '',
    plain_text TEXT NOT NULL DEFAULT '',
    rich_text TEXT NOT NULL DEFAULT '',
    imported_at REAL
);
"""


class DocumentNotFoundError(LookupError):
    pass


@contextmanager
def _get_connection(db_path: Path):
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA journal_mode = WAL;")
        conn.row_factory = sqlite3.Row
        yield conn
        conn.commit()
    finally:
        conn.close()


def normalise_legacy_row(row: dict) -> Optional[RawDocument]:
    """Convert a loosely typed legacy row into a RawDocument, or None when it has no name."""
    name = row.get("name")
    if not isinstance(name, str) or not name:
        return None
    title = row.get("title")
    if not isinstance(title, str) or not title:
        title = to_base_title(name) or name
    return RawDocument(
        name=name,
        title=title,
        plain_text=row.get("content") or row.get("plain_text") or "",
        rich_text=row.get("html_content") or row.get("htmlContent") or row.get("rich_text") or "",
        imported_at=row.get("imported_at", row.get("importedAt")),
    )


class DocumentStore:
    """SQLite-backed storage for imported diary documents."""

    def __init__(self, db_path: str | Path, *, legacy_db_path: str | Path | None = None):
        self._db_path = Path(db_path)
        self._legacy_db_path = Path(legacy_db_path) if legacy_db_path else None
        self.init_db()

    def init_db(self) -> None:
        with _get_connection(self._db_path) as conn:
            conn.execute(SCHEMA_DOCUMENTS)

    def save_documents(self, documents: Iterable[RawDocument]) -> int:
        rows = [
            (doc.name, doc.title, doc.plain_text, doc.rich_text, doc.imported_at)
            for doc in documents
        ]
        if not rows:
            return 0
        with _get_connection(self._db_path) as conn:
            conn.executemany(
                """
                INSERT INTO documents (name, title, plain_text, rich_text, imported_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    title = excluded.title,
                    plain_text = excluded.plain_text,
                    rich_text = excluded.rich_text,
                    imported_at = excluded.imported_at
                """,
                rows,
            )
        return len(rows)

    def load_all(self, claimed_names: Iterable[str] = ()) -> List[RawDocument]:
        with _get_connection(self._db_path) as conn:
            rows = conn.execute(
                "SELECT name, title, plain_text, rich_text, imported_at FROM documents"
            ).fetchall()
        documents = [RawDocument(**dict(row)) for row in rows]
        if not documents:
            documents = self._migrate_legacy(set(claimed_names))
        return sorted(documents, key=lambda doc: name_sort_key(doc.name))

    def load_body(self, name: str) -> str:
        with _get_connection(self._db_path) as conn:
            row = conn.execute(
                "SELECT plain_text, rich_text FROM documents WHERE name = ?",
                (name,),
            ).fetchone()
        if row is None:
            raise DocumentNotFoundError(name)
        return row["rich_text"] or row["plain_text"] or ""

    def delete_document(self, name: str) -> bool:
        with _get_connection(self._db_path) as conn:
            cursor = conn.execute("DELETE FROM documents WHERE name = ?", (name,))
            return cursor.rowcount > 0

    def clear_documents(self) -> None:
        with _get_connection(self._db_path) as conn:
            conn.execute("DELETE FROM documents")

    def _migrate_legacy(self, claimed_names: set[str]) -> List[RawDocument]:
        if self._legacy_db_path is None or not self._legacy_db_path.exists():
            return []
        try:
            conn = sqlite3.connect(self._legacy_db_path)
            try:
                conn.row_factory = sqlite3.Row
                exists = conn.execute(
                    "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                    (LEGACY_TABLE,),
                ).fetchone()
                if exists is None:
                    return []
                legacy_rows = conn.execute(f"SELECT * FROM {LEGACY_TABLE}").fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.warning("Legacy diary database could not be read: %s", exc)
            return []

        documents = [doc for doc in (normalise_legacy_row(dict(row)) for row in legacy_rows) if doc]
        if claimed_names:
            documents = [doc for doc in documents if doc.name not in claimed_names]
        if not documents:
            return []

        self.save_documents(documents)
        logger.info("Migrated %d documents from the legacy diary database.", len(documents))
        return documents


__all__ = ["DocumentNotFoundError", "DocumentStore", "normalise_legacy_row"]
