"""Owner-scoped CRUD over story documents."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from deploy_tracker.core.change_codec import change_from_document, change_to_document
from deploy_tracker.core.session import SessionContext
from deploy_tracker.domain.errors import (
    AuthenticationRequired,
    DocumentStoreError,
    FetchError,
    NotFoundError,
    UpdateError,
    ValidationError,
)
from deploy_tracker.domain.models import Change, UserStory
from deploy_tracker.domain.ports import Document, DocumentStore

REQUIRED_STORY_FIELDS = ("number", "title", "date")
MISSING_STORY_FIELDS_MESSAGE = "Please fill in all required fields for the new user story."

logger = logging.getLogger(__name__)


class StoryDraft(BaseModel):
    """Fields a caller supplies when creating a story."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    number: str = Field(min_length=1, max_length=120)
    title: str = Field(min_length=1, max_length=300)
    description: str = Field(default="", max_length=10_000)
    date: dt.date


def validate_story_draft(draft: Mapping[str, Any]) -> StoryDraft:
    """Reject drafts with a blank number, title, or date before touching the store."""
    for name in REQUIRED_STORY_FIELDS:
        value = draft.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(MISSING_STORY_FIELDS_MESSAGE)
    try:
        return StoryDraft.model_validate(dict(draft))
    except PydanticValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(
            f"Invalid user story: {location}: {first.get('msg', 'invalid value')}."
        ) from exc


def story_from_document(document: Mapping[str, Any]) -> UserStory:
    raw_changes = document.get("changes") or []
    if not isinstance(raw_changes, list):
        raise ValidationError("Stored changes must be a list.")
    return UserStory(
        id=str(document["id"]),
        owner_id=str(document["ownerId"]),
        number=str(document.get("number", "")),
        title=str(document.get("title", "")),
        description=str(document.get("description", "")),
        date=dt.date.fromisoformat(str(document["date"])),
        changes=tuple(change_from_document(change) for change in raw_changes),
    )


class StoryRepository:
    """CRUD over the signed-in owner's stories.

    Every call resolves the owner from the session and filters the store by ``ownerId``.
    ``get_changes`` and ``replace_changes`` are the two halves of the change-log
    read-modify-write; ``replace_changes`` overwrites the whole array, so a concurrent
    writer's edit made between the two calls is lost (last write wins).
    """

    def __init__(self, store: DocumentStore, session: SessionContext) -> None:
        self._store = store
        self._session = session

    @property
    def session(self) -> SessionContext:
        return self._session

    def _owner_id(self, owner_id: str | None = None) -> str:
        user = self._session.require_user()
        if owner_id is not None and owner_id != user.id:
            raise AuthenticationRequired("Stories of another user are not accessible.")
        return user.id

    def _select_owned(self, *, story_id: str, owner_id: str) -> Document:
        try:
            documents = self._store.select(filters={"id": story_id, "ownerId": owner_id})
        except DocumentStoreError as exc:
            logger.warning("story.fetch failed story_id=%s error=%s", story_id, exc)
            raise FetchError("Error fetching user story") from exc
        if not documents:
            raise NotFoundError("User story not found.")
        return documents[0]

    def list_stories(self, owner_id: str | None = None) -> list[UserStory]:
        """Fetch every story of the owner and refresh the session cache."""
        owner = self._owner_id(owner_id)
        try:
            documents = self._store.select(filters={"ownerId": owner})
            stories = [story_from_document(document) for document in documents]
        except DocumentStoreError as exc:
            logger.warning("story.list failed owner_id=%s error=%s", owner, exc)
            raise FetchError("Error fetching user stories") from exc
        except (KeyError, ValueError, ValidationError) as exc:
            logger.warning("story.list invalid_document owner_id=%s error=%s", owner, exc)
            raise FetchError("Error fetching user stories") from exc
        current = self._session.current_user()
        if current is not None and current.id == owner:
            self._session.replace_cache(stories)
        return stories

    def get_story(self, story_id: str) -> UserStory:
        owner = self._owner_id()
        document = self._select_owned(story_id=story_id, owner_id=owner)
        try:
            return story_from_document(document)
        except (KeyError, ValueError, ValidationError) as exc:
            raise FetchError("Error fetching user story") from exc

    def create_story(self, draft: Mapping[str, Any]) -> UserStory:
        """Validate and persist a new story with an empty change log."""
        owner = self._owner_id()
        validated = validate_story_draft(draft)
        document = {
            "ownerId": owner,
            "number": validated.number,
            "title": validated.title,
            "description": validated.description,
            "date": validated.date.isoformat(),
            "changes": [],
        }
        try:
            stored = self._store.insert(document)
        except DocumentStoreError as exc:
            logger.warning("story.create failed owner_id=%s error=%s", owner, exc)
            raise UpdateError("Error adding user story") from exc
        story = story_from_document(stored)
        self._session.cache_story(story)
        logger.info("story.create owner_id=%s story_id=%s", owner, story.id)
        return story

    def delete_story(self, story_id: str, *, missing_ok: bool = True) -> None:
        """Remove a story and its embedded changes.

        A story that is already gone counts as deleted unless ``missing_ok`` is False.
        """
        owner = self._owner_id()
        try:
            removed = self._store.delete(filters={"id": story_id, "ownerId": owner})
        except DocumentStoreError as exc:
            logger.warning("story.delete failed story_id=%s error=%s", story_id, exc)
            raise UpdateError("Error removing user story") from exc
        self._session.forget_story(story_id)
        logger.info("story.delete story_id=%s removed=%s", story_id, removed)
        if removed == 0 and not missing_ok:
            raise NotFoundError("User story not found.")

    def get_changes(self, story_id: str) -> tuple[Change, ...]:
        """Read side of the change-log read-modify-write."""
        owner = self._owner_id()
        document = self._select_owned(story_id=story_id, owner_id=owner)
        raw_changes = document.get("changes") or []
        try:
            if not isinstance(raw_changes, list):
                raise ValidationError("Stored changes must be a list.")
            return tuple(change_from_document(change) for change in raw_changes)
        except ValidationError as exc:
            logger.warning("story.changes invalid story_id=%s error=%s", story_id, exc.message)
            raise FetchError("Error fetching user story") from exc

    def replace_changes(
        self,
        story_id: str,
        changes: Iterable[Change],
        *,
        failure_message: str = "Error updating user story",
    ) -> None:
        """Overwrite the stored change array wholesale; no merge, no version check.

        A store failure surfaces as ``UpdateError(failure_message)``.
        """
        owner = self._owner_id()
        next_changes = tuple(changes)
        payload = [change_to_document(change) for change in next_changes]
        try:
            updated = self._store.update(
                document_id=story_id,
                fields={"changes": payload},
                expected={"ownerId": owner},
            )
        except DocumentStoreError as exc:
            logger.warning("story.replace_changes failed story_id=%s error=%s", story_id, exc)
            raise UpdateError(failure_message) from exc
        if updated == 0:
            raise NotFoundError("User story not found.")
        self._session.set_cached_changes(story_id, next_changes)
