"""Factory for selecting the story document store backend."""

from __future__ import annotations

from pathlib import Path

from deploy_tracker.adapters.memory_document_store import InMemoryDocumentStore
from deploy_tracker.adapters.sqlite_document_store import SQLiteDocumentStore
from deploy_tracker.domain.ports import DocumentStore


def create_document_store(*, db_path: Path, backend: str = "sqlite") -> DocumentStore:
    """Build the story document store named by ``backend`` (``sqlite`` or ``memory``)."""
    normalized = backend.strip().lower()
    if normalized in {"", "sqlite"}:
        return SQLiteDocumentStore(db_path=db_path)
    if normalized == "memory":
        return InMemoryDocumentStore()
    raise RuntimeError(
        "Unsupported DEPLOY_TRACKER_STORE_BACKEND value. Expected sqlite or memory."
    )
