"""Typed contracts shared by API handlers and the Python client."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from deploy_tracker.core.change_codec import change_to_document
from deploy_tracker.core.query_view import StoryPage
from deploy_tracker.domain.models import Change, User, UserStory

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ContractModel(BaseModel):
    """Base model config used by all API contracts."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


def _normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError("Email must be a valid address.")
    return normalized


class AuthRegisterRequest(ContractModel):
    """Register an account for bearer-token access."""

    email: str = Field(min_length=5, max_length=320)
    password: SecretStr = Field(min_length=8, max_length=200)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def _validate_password(cls, value: SecretStr) -> SecretStr:
        raw = value.get_secret_value()
        if raw.strip() != raw:
            raise ValueError("Password must not start or end with whitespace.")
        return value


class AuthLoginRequest(ContractModel):
    """Authenticate and request an access token."""

    email: str = Field(min_length=5, max_length=320)
    password: SecretStr = Field(min_length=1, max_length=200)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return _normalize_email(value)


class AuthTokenResponse(ContractModel):
    """Bearer token payload used by web and Python clients."""

    access_token: str
    token_type: str = Field(default="bearer", pattern=r"^bearer$")
    expires_at_utc: str | None = None


class UserResponse(ContractModel):
    """Public identity of the signed-in user."""

    user_id: str
    email: str | None = None


class StoryCreateRequest(ContractModel):
    """New story draft; blank required fields are rejected by the repository."""

    number: str = ""
    title: str = ""
    description: str = ""
    date: str = ""


class ChangeCreateRequest(BaseModel):
    """New change draft; ``details`` is validated against the schema for ``type``."""

    model_config = ConfigDict(extra="forbid")

    type: str
    details: dict[str, Any] = Field(default_factory=dict)


class ChangeResponse(ContractModel):
    """One stored change in its persisted layout."""

    id: str
    type: str
    details: dict[str, Any]


class StoryResponse(ContractModel):
    """Stored story with its change log."""

    id: str
    owner_id: str
    number: str
    title: str
    description: str
    date: str
    changes: list[ChangeResponse] = Field(default_factory=list)


class StoryPageResponse(ContractModel):
    """One page of the owner's stories after the number filter."""

    items: list[StoryResponse]
    query: str
    page: int
    page_size: int
    total_items: int
    page_count: int


class ChangeListResponse(ContractModel):
    """Current change log of one story."""

    story_id: str
    changes: list[ChangeResponse]


def user_response(user: User) -> UserResponse:
    return UserResponse(user_id=user.id, email=user.email)


def change_response(change: Change) -> ChangeResponse:
    return ChangeResponse.model_validate(change_to_document(change))


def story_response(story: UserStory) -> StoryResponse:
    return StoryResponse(
        id=story.id,
        owner_id=story.owner_id,
        number=story.number,
        title=story.title,
        description=story.description,
        date=story.date.isoformat(),
        changes=[change_response(change) for change in story.changes],
    )


def story_page_response(page: StoryPage, *, query: str) -> StoryPageResponse:
    return StoryPageResponse(
        items=[story_response(story) for story in page.items],
        query=query,
        page=page.page_number,
        page_size=page.page_size,
        total_items=page.total_items,
        page_count=page.page_count,
    )


def change_list_response(story_id: str, changes: tuple[Change, ...]) -> ChangeListResponse:
    return ChangeListResponse(
        story_id=story_id,
        changes=[change_response(change) for change in changes],
    )
