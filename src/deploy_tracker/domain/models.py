"""Core tracker domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

ChangeType = Literal["Field", "LWC", "Profile", "Permission"]
CHANGE_TYPES: tuple[ChangeType, ...] = ("Field", "LWC", "Profile", "Permission")


@dataclass(frozen=True)
class User:
    """Identity issued by the authentication provider."""

    id: str
    email: str | None = None


@dataclass(frozen=True)
class Change:
    """One recorded configuration edit.

    ``details`` is the codec model for ``type`` and never another variant.
    """

    id: str
    type: ChangeType
    details: Any


@dataclass(frozen=True)
class UserStory:
    """A unit of planned work with its embedded change log."""

    id: str
    owner_id: str
    number: str
    title: str
    description: str
    date: date
    changes: tuple[Change, ...] = field(default_factory=tuple)

    def with_changes(self, changes: tuple[Change, ...]) -> UserStory:
        return UserStory(
            id=self.id,
            owner_id=self.owner_id,
            number=self.number,
            title=self.title,
            description=self.description,
            date=self.date,
            changes=changes,
        )
