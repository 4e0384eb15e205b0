from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from deploy_tracker.adapters.memory_document_store import InMemoryDocumentStore
from deploy_tracker.adapters.sqlite_account_store import SQLiteAccountStore
from deploy_tracker.core.auth import LocalAuthProvider
from deploy_tracker.core.session import FixedIdentity, SessionContext
from deploy_tracker.core.workspace import TrackerWorkspace
from deploy_tracker.domain.errors import AuthenticationRequired
from deploy_tracker.domain.models import User


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


def _story(number: str) -> dict[str, str]:
    return {"number": number, "title": f"Story {number}", "date": "2024-01-01"}


def _provider(tmp_path: Path, clock: _Clock | None = None) -> LocalAuthProvider:
    accounts = SQLiteAccountStore(db_path=tmp_path / "accounts.db")
    if clock is None:
        provider = LocalAuthProvider(accounts)
    else:
        provider = LocalAuthProvider(accounts, token_ttl_hours=1, clock=clock)
    provider.sign_up(email="alice@example.com", password="password123")
    provider.sign_up(email="bob@example.com", password="password123")
    return provider


def test_anonymous_session_cannot_reach_stories(tmp_path: Path) -> None:
    workspace = TrackerWorkspace.open(store=InMemoryDocumentStore(), identity=_provider(tmp_path))

    assert workspace.session.current_user() is None
    with pytest.raises(AuthenticationRequired):
        workspace.load()
    with pytest.raises(AuthenticationRequired):
        workspace.add_story(_story("US-1"))


def test_sign_out_clears_cached_stories(tmp_path: Path) -> None:
    provider = _provider(tmp_path)
    workspace = TrackerWorkspace.open(store=InMemoryDocumentStore(), identity=provider)

    provider.sign_in(email="alice@example.com", password="password123")
    workspace.add_story(_story("US-1"))
    assert len(workspace.session.cached_stories) == 1

    provider.sign_out()

    assert workspace.session.current_user() is None
    assert workspace.session.cached_stories == ()
    assert workspace.page().items == ()


def test_next_user_never_sees_previous_users_stories(tmp_path: Path) -> None:
    provider = _provider(tmp_path)
    workspace = TrackerWorkspace.open(store=InMemoryDocumentStore(), identity=provider)

    provider.sign_in(email="alice@example.com", password="password123")
    workspace.add_story(_story("US-1"))
    workspace.add_story(_story("US-2"))

    provider.sign_in(email="bob@example.com", password="password123")
    assert workspace.session.cached_stories == ()
    assert workspace.load() == []

    workspace.add_story(_story("BOB-1"))
    assert [story.number for story in workspace.page().items] == ["BOB-1"]

    provider.sign_in(email="alice@example.com", password="password123")
    assert sorted(story.number for story in workspace.load()) == ["US-1", "US-2"]


def test_token_expiry_is_reported_as_sign_out(tmp_path: Path) -> None:
    clock = _Clock()
    provider = _provider(tmp_path, clock)
    workspace = TrackerWorkspace.open(store=InMemoryDocumentStore(), identity=provider)
    provider.sign_in(email="alice@example.com", password="password123")
    workspace.add_story(_story("US-1"))

    clock.now += timedelta(hours=2)

    assert workspace.session.refresh() is None
    assert workspace.session.cached_stories == ()
    assert provider.access_token is None
    with pytest.raises(AuthenticationRequired):
        workspace.load()


def test_close_unsubscribes_from_provider(tmp_path: Path) -> None:
    provider = _provider(tmp_path)
    session = SessionContext(provider)

    session.close()
    provider.sign_in(email="alice@example.com", password="password123")

    assert session.current_user() is None


def test_fixed_identity_session_is_bound_to_one_user() -> None:
    user = User(id="user-1", email="one@example.com")
    session = SessionContext(FixedIdentity(user))

    assert session.require_user() == user
    assert session.refresh() == user
