"""Process-local document collection used for previews and tests."""

from __future__ import annotations

import copy
import threading
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from deploy_tracker.domain.errors import DocumentStoreError
from deploy_tracker.domain.ports import Document



class InMemoryDocumentStore:
    """Keep documents in insertion order; every read and write copies payloads.

    Calls are serialized by one lock, so request threads may share an instance.
    """

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)

    @staticmethod
    def _matches(document: Mapping[str, Any], filters: Mapping[str, str]) -> bool:
        return all(document.get(name) == value for name, value in filters.items())

    def insert(self, document: Mapping[str, Any]) -> Document:
        document_id = uuid4().hex
        stored = copy.deepcopy({**document, "id": document_id})
        with self._lock:
            self._documents[document_id] = stored
            return copy.deepcopy(stored)

    def select(self, *, filters: Mapping[str, str]) -> list[Document]:
        with self._lock:
            return [
                copy.deepcopy(document)
                for document in self._documents.values()
                if self._matches(document, filters)
            ]

    def update(
        self,
        *,
        document_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, str] | None = None,
    ) -> int:
        if "id" in fields:
            raise DocumentStoreError("Document id cannot be overwritten.")
        replacement = copy.deepcopy(dict(fields))
        with self._lock:
            document = self._documents.get(document_id)
            if document is None or not self._matches(document, expected or {}):
                return 0
            document.update(replacement)
            return 1

    def delete(self, *, filters: Mapping[str, str]) -> int:
        if not filters:
            raise DocumentStoreError("Refusing to delete without a filter.")
        with self._lock:
            doomed = [
                document_id
                for document_id, document in self._documents.items()
                if self._matches(document, filters)
            ]
            for document_id in doomed:
                del self._documents[document_id]
            return len(doomed)
