from __future__ import annotations

import datetime as dt

import pytest

from deploy_tracker.adapters.memory_document_store import InMemoryDocumentStore
from deploy_tracker.core.session import FixedIdentity, SessionContext
from deploy_tracker.core.story_repository import StoryRepository, validate_story_draft
from deploy_tracker.domain.errors import (
    AuthenticationRequired,
    FetchError,
    NotFoundError,
    ValidationError,
)
from deploy_tracker.domain.models import User


def _repository(store: InMemoryDocumentStore, user_id: str) -> StoryRepository:
    return StoryRepository(store, SessionContext(FixedIdentity(User(id=user_id))))


class _Anonymous:
    def get_current_user(self) -> None:
        return None

    def on_auth_state_change(self, callback: object) -> object:
        return lambda: None


def test_create_assigns_id_owner_and_empty_change_log() -> None:
    store = InMemoryDocumentStore()
    repository = _repository(store, "alice")

    story = repository.create_story(
        {"number": " US-1 ", "title": "Add field", "date": "2024-01-01", "description": "x"}
    )

    assert story.id
    assert story.owner_id == "alice"
    assert story.number == "US-1"
    assert story.date == dt.date(2024, 1, 1)
    assert story.changes == ()
    stored = store.select(filters={"id": story.id})[0]
    assert stored["ownerId"] == "alice"
    assert stored["changes"] == []
    assert repository.session.cached_stories == (story,)


@pytest.mark.parametrize("missing", ["number", "title", "date"])
def test_create_rejects_blank_required_fields_without_inserting(missing: str) -> None:
    store = InMemoryDocumentStore()
    repository = _repository(store, "alice")
    draft = {"number": "US-1", "title": "Title", "date": "2024-01-01", missing: "  "}

    with pytest.raises(ValidationError) as error:
        repository.create_story(draft)

    assert error.value.message == "Please fill in all required fields for the new user story."
    assert len(store) == 0


def test_story_draft_rejects_bad_date() -> None:
    with pytest.raises(ValidationError):
        validate_story_draft({"number": "US-1", "title": "Title", "date": "01/02/2024"})


def test_list_returns_only_the_owners_stories() -> None:
    store = InMemoryDocumentStore()
    alice = _repository(store, "alice")
    bob = _repository(store, "bob")
    first = alice.create_story({"number": "US-1", "title": "One", "date": "2024-01-01"})
    second = alice.create_story({"number": "US-2", "title": "Two", "date": "2024-01-02"})
    bob.create_story({"number": "B-1", "title": "Bob", "date": "2024-01-03"})

    listed = alice.list_stories()

    assert [story.id for story in listed] == [first.id, second.id]
    assert alice.session.cached_stories == tuple(listed)
    with pytest.raises(NotFoundError):
        bob.get_story(first.id)
    with pytest.raises(NotFoundError):
        bob.get_changes(first.id)
    with pytest.raises(AuthenticationRequired):
        bob.list_stories(owner_id="alice")


def test_other_owner_cannot_delete_or_overwrite() -> None:
    store = InMemoryDocumentStore()
    alice = _repository(store, "alice")
    bob = _repository(store, "bob")
    story = alice.create_story({"number": "US-1", "title": "One", "date": "2024-01-01"})

    bob.delete_story(story.id)
    with pytest.raises(NotFoundError):
        bob.replace_changes(story.id, ())

    assert alice.get_story(story.id) == story


def test_delete_is_idempotent_unless_strict() -> None:
    store = InMemoryDocumentStore()
    repository = _repository(store, "alice")
    story = repository.create_story({"number": "US-1", "title": "One", "date": "2024-01-01"})

    repository.delete_story(story.id)
    repository.delete_story(story.id)

    assert repository.session.cached_stories == ()
    assert repository.list_stories() == []
    with pytest.raises(NotFoundError):
        repository.delete_story(story.id, missing_ok=False)


def test_anonymous_session_is_refused() -> None:
    repository = StoryRepository(InMemoryDocumentStore(), SessionContext(_Anonymous()))
    with pytest.raises(AuthenticationRequired):
        repository.list_stories()
    with pytest.raises(AuthenticationRequired):
        repository.get_changes("any")


def test_corrupt_stored_change_surfaces_as_fetch_error() -> None:
    store = InMemoryDocumentStore()
    repository = _repository(store, "alice")
    story = repository.create_story({"number": "US-1", "title": "One", "date": "2024-01-01"})
    store.update(
        document_id=story.id,
        fields={"changes": [{"id": "1", "type": "Field", "details": {"label": "only"}}]},
    )

    with pytest.raises(FetchError):
        repository.get_changes(story.id)
    with pytest.raises(FetchError):
        repository.list_stories()
