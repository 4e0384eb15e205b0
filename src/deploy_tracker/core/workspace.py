"""One signed-in workspace: session, repository, change editor, and visible page."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from deploy_tracker.core.change_log import ChangeLogEditor, new_change_id
from deploy_tracker.core.query_view import STORIES_PER_PAGE, StoryPage, visible_page
from deploy_tracker.core.session import SessionContext
from deploy_tracker.core.story_repository import StoryRepository
from deploy_tracker.domain.models import Change, UserStory
from deploy_tracker.domain.ports import DocumentStore, IdentitySource


@dataclass
class TrackerWorkspace:
    """Wires the story components around a single session.

    Every mutation goes through the repository, which keeps the session cache in step,
    so ``page`` always reflects the latest local state without another fetch.
    """

    session: SessionContext
    repository: StoryRepository
    editor: ChangeLogEditor

    @classmethod
    def open(
        cls,
        *,
        store: DocumentStore,
        identity: IdentitySource,
        id_factory: Callable[[], str] = new_change_id,
    ) -> TrackerWorkspace:
        session = SessionContext(identity)
        repository = StoryRepository(store, session)
        return cls(
            session=session,
            repository=repository,
            editor=ChangeLogEditor(repository, id_factory=id_factory),
        )

    def load(self) -> list[UserStory]:
        return self.repository.list_stories()

    def add_story(self, draft: Mapping[str, Any]) -> UserStory:
        return self.repository.create_story(draft)

    def remove_story(self, story_id: str) -> None:
        self.repository.delete_story(story_id)

    def add_change(
        self, story_id: str, change_type: object, draft: Mapping[str, Any]
    ) -> tuple[Change, ...]:
        return self.editor.append(story_id, change_type, draft)

    def remove_change(self, story_id: str, change_id: str) -> tuple[Change, ...]:
        return self.editor.remove(story_id, change_id)

    def page(
        self, *, query: str = "", page_number: int = 1, page_size: int = STORIES_PER_PAGE
    ) -> StoryPage:
        return visible_page(
            self.session.cached_stories,
            query=query,
            page_number=page_number,
            page_size=page_size,
        )

    def close(self) -> None:
        self.session.close()
