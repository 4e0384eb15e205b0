"""Append and remove story changes through whole-array read-modify-write."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

from deploy_tracker.core.change_codec import parse_change_type, validate_change
from deploy_tracker.core.story_repository import StoryRepository
from deploy_tracker.domain.models import Change

logger = logging.getLogger(__name__)


class ChangeIdFactory:
    """Epoch-millisecond ids, bumped past the previous id when the clock stalls."""

    def __init__(self, clock: Callable[[], int] = time.time_ns) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            candidate = self._clock() // 1_000_000
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
        return str(candidate)


_DEFAULT_IDS = ChangeIdFactory()


def new_change_id() -> str:
    """Return a process-wide strictly increasing time-based change id."""
    return _DEFAULT_IDS()


class ChangeLogEditor:
    """Mutate one story's change list: fetch, compute locally, overwrite.

    Steps are not atomic. Two overlapping calls against the same story both read the same
    array and the later overwrite drops the earlier edit, so callers must finish one
    mutation per story before issuing the next.
    """

    def __init__(
        self,
        repository: StoryRepository,
        *,
        id_factory: Callable[[], str] = new_change_id,
    ) -> None:
        self._repository = repository
        self._new_id = id_factory

    def append(
        self, story_id: str, change_type: object, draft: Mapping[str, Any]
    ) -> tuple[Change, ...]:
        """Validate ``draft``, append it as a new change, and return the stored list.

        Raises ``ValidationError`` before any store access, ``FetchError`` when the read
        fails, ``UpdateError`` when the overwrite fails, ``NotFoundError`` when the story
        is gone.
        """
        kind = parse_change_type(change_type)
        details = validate_change(kind, draft)
        current = self._repository.get_changes(story_id)
        change = Change(id=self._new_id(), type=kind, details=details)
        updated = (*current, change)
        self._repository.replace_changes(
            story_id, updated, failure_message="Error adding change"
        )
        logger.info(
            "change.append story_id=%s change_id=%s type=%s count=%s",
            story_id,
            change.id,
            kind,
            len(updated),
        )
        return updated

    def remove(self, story_id: str, change_id: str) -> tuple[Change, ...]:
        """Drop the change with ``change_id``; an unknown id leaves the list unchanged."""
        current = self._repository.get_changes(story_id)
        updated = tuple(change for change in current if change.id != change_id)
        self._repository.replace_changes(
            story_id, updated, failure_message="Error removing change"
        )
        logger.info(
            "change.remove story_id=%s change_id=%s removed=%s",
            story_id,
            change_id,
            len(current) - len(updated),
        )
        return updated
