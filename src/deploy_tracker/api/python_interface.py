"""Python-first client for the tracker HTTP API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from deploy_tracker.api.contracts import (
    AuthTokenResponse,
    ChangeCreateRequest,
    ChangeListResponse,
    StoryCreateRequest,
    StoryPageResponse,
    StoryResponse,
)


@dataclass(frozen=True)
class AuthSession:
    """Authenticated client session."""

    access_token: str
    api_base_url: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


class TrackerApiClient:
    """Typed API client for scripts and notebooks."""

    def __init__(self, api_base_url: str = "http://127.0.0.1:8000") -> None:
        self._api_base_url = api_base_url.rstrip("/")

    @property
    def api_base_url(self) -> str:
        return self._api_base_url

    def register(self, *, email: str, password: str) -> None:
        response = httpx.post(
            f"{self._api_base_url}/api/v1/auth/register",
            json={"email": email, "password": password},
            timeout=30.0,
        )
        response.raise_for_status()

    def login(self, *, email: str, password: str) -> AuthSession:
        """Authenticate and return a reusable auth session."""
        response = httpx.post(
            f"{self._api_base_url}/api/v1/auth/login",
            json={"email": email, "password": password},
            timeout=30.0,
        )
        response.raise_for_status()
        token = AuthTokenResponse.model_validate(response.json())
        return AuthSession(access_token=token.access_token, api_base_url=self._api_base_url)

    def logout(self, *, session: AuthSession) -> None:
        response = httpx.post(
            f"{session.api_base_url}/api/v1/auth/logout",
            headers=session.headers,
            timeout=30.0,
        )
        response.raise_for_status()

    def list_stories(
        self,
        *,
        session: AuthSession,
        number: str = "",
        page: int = 1,
        page_size: int | None = None,
    ) -> StoryPageResponse:
        """Fetch one page of stories, optionally filtered by story number."""
        params: dict[str, str | int] = {"number": number, "page": page}
        if page_size is not None:
            params["page_size"] = page_size
        response = httpx.get(
            f"{session.api_base_url}/api/v1/stories",
            params=params,
            headers=session.headers,
            timeout=30.0,
        )
        response.raise_for_status()
        return StoryPageResponse.model_validate(response.json())

    def create_story(
        self,
        *,
        session: AuthSession,
        number: str,
        title: str,
        date: str,
        description: str = "",
    ) -> StoryResponse:
        request = StoryCreateRequest(
            number=number, title=title, date=date, description=description
        )
        response = httpx.post(
            f"{session.api_base_url}/api/v1/stories",
            json=request.model_dump(mode="json"),
            headers=session.headers,
            timeout=30.0,
        )
        response.raise_for_status()
        return StoryResponse.model_validate(response.json())

    def delete_story(self, *, session: AuthSession, story_id: str) -> None:
        response = httpx.delete(
            f"{session.api_base_url}/api/v1/stories/{story_id}",
            headers=session.headers,
            timeout=30.0,
        )
        response.raise_for_status()

    def list_changes(self, *, session: AuthSession, story_id: str) -> ChangeListResponse:
        response = httpx.get(
            f"{session.api_base_url}/api/v1/stories/{story_id}/changes",
            headers=session.headers,
            timeout=30.0,
        )
        response.raise_for_status()
        return ChangeListResponse.model_validate(response.json())

    def append_change(
        self,
        *,
        session: AuthSession,
        story_id: str,
        change_type: str,
        details: dict[str, Any],
    ) -> ChangeListResponse:
        """Append one change; wait for the result before appending to the same story again."""
        request = ChangeCreateRequest(type=change_type, details=details)
        response = httpx.post(
            f"{session.api_base_url}/api/v1/stories/{story_id}/changes",
            json=request.model_dump(mode="json"),
            headers=session.headers,
            timeout=30.0,
        )
        response.raise_for_status()
        return ChangeListResponse.model_validate(response.json())

    def remove_change(
        self, *, session: AuthSession, story_id: str, change_id: str
    ) -> ChangeListResponse:
        response = httpx.delete(
            f"{session.api_base_url}/api/v1/stories/{story_id}/changes/{change_id}",
            headers=session.headers,
            timeout=30.0,
        )
        response.raise_for_status()
        return ChangeListResponse.model_validate(response.json())
