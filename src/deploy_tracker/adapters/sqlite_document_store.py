"""SQLite-backed document collection for story records."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from deploy_tracker.domain.errors import DocumentStoreError
from deploy_tracker.domain.ports import Document

FIELD_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,63}$")

logger = logging.getLogger(__name__)


def _field_path(name: str) -> str:
    if not FIELD_PATTERN.match(name):
        raise DocumentStoreError(f"Unsupported document field name: {name!r}")
    return f"$.{name}"


class SQLiteDocumentStore:
    """Store one JSON document per story row, keyed by a generated id."""

    def __init__(self, db_path: Path, *, collection: str = "user_stories") -> None:
        if not FIELD_PATTERN.match(collection):
            raise ValueError(f"Invalid collection name: {collection!r}")
        self._db_path = db_path
        self._table = collection
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_schema()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self._db_path))
        connection.row_factory = sqlite3.Row
        return connection

    def _initialize_schema(self) -> None:
        with self._connect() as connection:
            connection.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    id TEXT PRIMARY KEY,
                    document_json TEXT NOT NULL,
                    created_at_utc TEXT NOT NULL,
                    updated_at_utc TEXT NOT NULL
                )
                """
            )
            connection.execute(
                f"""
                CREATE INDEX IF NOT EXISTS idx_{self._table}_owner
                ON {self._table}(json_extract(document_json, '$.ownerId'))
                """
            )

    def _where(self, filters: Mapping[str, str]) -> tuple[str, list[str]]:
        clauses: list[str] = []
        params: list[str] = []
        for name, value in filters.items():
            if name == "id":
                clauses.append("id = ?")
            else:
                clauses.append(f"json_extract(document_json, '{_field_path(name)}') = ?")
            params.append(str(value))
        if not clauses:
            return "", params
        return "WHERE " + " AND ".join(clauses), params

    def insert(self, document: Mapping[str, Any]) -> Document:
        """Insert a document under a new id and return the stored copy."""
        document_id = uuid4().hex
        stored = {**document, "id": document_id}
        now = datetime.now(UTC).isoformat()
        try:
            with self._connect() as connection:
                connection.execute(
                    f"""
                    INSERT INTO {self._table} (id, document_json, created_at_utc, updated_at_utc)
                    VALUES (?, ?, ?, ?)
                    """,
                    (document_id, json.dumps(stored, ensure_ascii=False), now, now),
                )
        except sqlite3.Error as exc:
            logger.warning("store.insert failed table=%s error=%s", self._table, exc)
            raise DocumentStoreError(f"Insert failed: {exc}") from exc
        return stored

    def select(self, *, filters: Mapping[str, str]) -> list[Document]:
        """Return every document whose top-level fields equal ``filters``."""
        where, params = self._where(filters)
        try:
            with self._connect() as connection:
                rows = connection.execute(
                    f"""
                    SELECT document_json
                    FROM {self._table}
                    {where}
                    ORDER BY created_at_utc ASC, rowid ASC
                    """,
                    params,
                ).fetchall()
        except sqlite3.Error as exc:
            logger.warning("store.select failed table=%s error=%s", self._table, exc)
            raise DocumentStoreError(f"Select failed: {exc}") from exc
        return [json.loads(str(row["document_json"])) for row in rows]

    def update(
        self,
        *,
        document_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, str] | None = None,
    ) -> int:
        """Overwrite top-level fields of one document; return the updated row count.

        ``expected`` narrows the match to documents whose fields also equal those values.
        """
        if "id" in fields:
            raise DocumentStoreError("Document id cannot be overwritten.")
        for name in fields:
            _field_path(name)
        where, params = self._where({**(expected or {}), "id": document_id})
        now = datetime.now(UTC).isoformat()
        try:
            with self._connect() as connection:
                row = connection.execute(
                    f"SELECT document_json FROM {self._table} {where}",
                    params,
                ).fetchone()
                if row is None:
                    return 0
                document = json.loads(str(row["document_json"]))
                document.update(fields)
                cursor = connection.execute(
                    f"""
                    UPDATE {self._table}
                    SET document_json = ?, updated_at_utc = ?
                    WHERE id = ?
                    """,
                    (json.dumps(document, ensure_ascii=False), now, document_id),
                )
                updated_rows = cursor.rowcount
        except sqlite3.Error as exc:
            logger.warning(
                "store.update failed table=%s id=%s error=%s", self._table, document_id, exc
            )
            raise DocumentStoreError(f"Update failed: {exc}") from exc
        return updated_rows

    def delete(self, *, filters: Mapping[str, str]) -> int:
        """Delete documents matching ``filters``; return how many were removed."""
        where, params = self._where(filters)
        if not where:
            raise DocumentStoreError("Refusing to delete without a filter.")
        try:
            with self._connect() as connection:
                cursor = connection.execute(f"DELETE FROM {self._table} {where}", params)
                deleted_rows = cursor.rowcount
        except sqlite3.Error as exc:
            logger.warning("store.delete failed table=%s error=%s", self._table, exc)
            raise DocumentStoreError(f"Delete failed: {exc}") from exc
        return deleted_rows
