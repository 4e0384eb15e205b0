"""Session context binding story access to the signed-in user."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from deploy_tracker.domain.errors import AuthenticationRequired
from deploy_tracker.domain.models import Change, User, UserStory
from deploy_tracker.domain.ports import IdentitySource

logger = logging.getLogger(__name__)


def _noop() -> None:
    return None


class SessionContext:
    """Current user plus that user's locally cached stories.

    The cache only ever holds stories of ``current_user()``: it is dropped whenever the
    provider reports sign-out, expiry, or a different user.
    """

    def __init__(self, auth_provider: IdentitySource) -> None:
        self._auth = auth_provider
        self._user: User | None = auth_provider.get_current_user()
        self._stories: list[UserStory] = []
        self._unsubscribe = auth_provider.on_auth_state_change(self._on_auth_state_change)

    def _on_auth_state_change(self, user: User | None) -> None:
        previous = self._user
        if previous is not None and (user is None or user.id != previous.id):
            self.clear()
        self._user = user
        logger.info(
            "session.change previous=%s current=%s",
            previous.id if previous else None,
            user.id if user else None,
        )

    def current_user(self) -> User | None:
        return self._user

    def refresh(self) -> User | None:
        """Re-read identity from the provider; expiry surfaces through the callback."""
        user = self._auth.get_current_user()
        if user is None or self._user is None or user.id != self._user.id:
            self._on_auth_state_change(user)
        return self._user

    def require_user(self) -> User:
        user = self._user
        if user is None:
            raise AuthenticationRequired("Sign in to access user stories.")
        return user

    @property
    def cached_stories(self) -> tuple[UserStory, ...]:
        return tuple(self._stories)

    def replace_cache(self, stories: Iterable[UserStory]) -> None:
        self._stories = list(stories)

    def cache_story(self, story: UserStory) -> None:
        self._stories.append(story)

    def forget_story(self, story_id: str) -> None:
        self._stories = [story for story in self._stories if story.id != story_id]

    def set_cached_changes(self, story_id: str, changes: tuple[Change, ...]) -> None:
        self._stories = [
            story.with_changes(changes) if story.id == story_id else story
            for story in self._stories
        ]

    def clear(self) -> None:
        if self._stories:
            logger.info("session.cache_cleared stories=%s", len(self._stories))
        self._stories = []

    def close(self) -> None:
        """Detach from the provider and drop cached data."""
        self._unsubscribe()
        self.clear()
        self._user = None


class FixedIdentity:
    """Identity source for one already-authenticated request; it never changes."""

    def __init__(self, user: User) -> None:
        self._user = user

    def get_current_user(self) -> User | None:
        return self._user

    def on_auth_state_change(self, callback: Callable[[User | None], None]) -> Callable[[], None]:
        return _noop
