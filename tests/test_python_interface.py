from __future__ import annotations

from typing import Any

import httpx
import pytest

from deploy_tracker.api.python_interface import AuthSession, TrackerApiClient

BASE_URL = "http://127.0.0.1:8000"


def _story_payload(changes: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    return {
        "id": "story-1",
        "owner_id": "owner-1",
        "number": "US-1",
        "title": "Add field",
        "description": "",
        "date": "2024-01-01",
        "changes": changes or [],
    }


def _change_payload() -> dict[str, Any]:
    return {
        "id": "1704153600000",
        "type": "Field",
        "details": {
            "date": "2024-01-02",
            "note": "",
            "apiName": "Foo__c",
            "label": "Foo",
            "fieldType": "Text",
        },
    }


def test_tracker_api_client_login_parses_token(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(url: str, json: object, timeout: float) -> httpx.Response:
        request = httpx.Request("POST", url)
        if str(url).endswith("/auth/login"):
            return httpx.Response(
                status_code=200,
                request=request,
                json={"access_token": "token-123", "token_type": "bearer", "expires_at_utc": "x"},
            )
        return httpx.Response(status_code=201, request=request, json={})

    monkeypatch.setattr("deploy_tracker.api.python_interface.httpx.post", fake_post)
    client = TrackerApiClient(api_base_url=BASE_URL + "/")
    client.register(email="alice@example.com", password="password123")
    session = client.login(email="alice@example.com", password="password123")
    assert session.access_token == "token-123"
    assert session.api_base_url == BASE_URL
    assert session.headers == {"Authorization": "Bearer token-123"}


def test_tracker_api_client_story_and_change_methods(monkeypatch: pytest.MonkeyPatch) -> None:
    sent: list[tuple[str, str, object]] = []

    def fake_post(
        url: str,
        json: object | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> httpx.Response:
        del headers, timeout
        sent.append(("POST", url, json))
        request = httpx.Request("POST", url)
        if url.endswith("/changes"):
            return httpx.Response(
                status_code=201,
                request=request,
                json={"story_id": "story-1", "changes": [_change_payload()]},
            )
        return httpx.Response(status_code=201, request=request, json=_story_payload())

    def fake_get(
        url: str,
        params: dict[str, object] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> httpx.Response:
        del headers, timeout
        sent.append(("GET", url, params))
        request = httpx.Request("GET", url)
        if url.endswith("/changes"):
            return httpx.Response(
                status_code=200,
                request=request,
                json={"story_id": "story-1", "changes": [_change_payload()]},
            )
        return httpx.Response(
            status_code=200,
            request=request,
            json={
                "items": [_story_payload([_change_payload()])],
                "query": "US",
                "page": 1,
                "page_size": 5,
                "total_items": 1,
                "page_count": 1,
            },
        )

    def fake_delete(
        url: str, headers: dict[str, str] | None = None, timeout: float = 30.0
    ) -> httpx.Response:
        del headers, timeout
        sent.append(("DELETE", url, None))
        request = httpx.Request("DELETE", url)
        if "/changes/" in url:
            return httpx.Response(
                status_code=200, request=request, json={"story_id": "story-1", "changes": []}
            )
        return httpx.Response(status_code=204, request=request)

    monkeypatch.setattr("deploy_tracker.api.python_interface.httpx.post", fake_post)
    monkeypatch.setattr("deploy_tracker.api.python_interface.httpx.get", fake_get)
    monkeypatch.setattr("deploy_tracker.api.python_interface.httpx.delete", fake_delete)

    client = TrackerApiClient(api_base_url=BASE_URL)
    session = AuthSession(access_token="token-123", api_base_url=BASE_URL)

    created = client.create_story(
        session=session, number="US-1", title="Add field", date="2024-01-01"
    )
    appended = client.append_change(
        session=session,
        story_id=created.id,
        change_type="Field",
        details={"date": "2024-01-02", "apiName": "Foo__c", "label": "Foo", "fieldType": "Text"},
    )
    page = client.list_stories(session=session, number="US", page_size=5)
    listed = client.list_changes(session=session, story_id=created.id)
    removed = client.remove_change(
        session=session, story_id=created.id, change_id=appended.changes[0].id
    )
    client.delete_story(session=session, story_id=created.id)

    assert created.number == "US-1"
    assert appended.changes[0].details["apiName"] == "Foo__c"
    assert page.items[0].changes[0].type == "Field"
    assert listed.changes == appended.changes
    assert removed.changes == []
    assert sent[0][2] == {
        "number": "US-1",
        "title": "Add field",
        "description": "",
        "date": "2024-01-01",
    }
    assert sent[2] == (
        "GET",
        f"{BASE_URL}/api/v1/stories",
        {"number": "US", "page": 1, "page_size": 5},
    )
    assert sent[-1] == ("DELETE", f"{BASE_URL}/api/v1/stories/story-1", None)


def test_tracker_api_client_raises_on_error_status(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_get(
        url: str,
        params: dict[str, object] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> httpx.Response:
        del params, headers, timeout
        return httpx.Response(
            status_code=404,
            request=httpx.Request("GET", url),
            json={"detail": "User story not found."},
        )

    monkeypatch.setattr("deploy_tracker.api.python_interface.httpx.get", fake_get)
    client = TrackerApiClient(api_base_url=BASE_URL)
    session = AuthSession(access_token="token-123", api_base_url=BASE_URL)

    with pytest.raises(httpx.HTTPStatusError):
        client.list_changes(session=session, story_id="missing")
