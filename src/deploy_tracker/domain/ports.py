"""Ports for the document store and the authentication provider."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from deploy_tracker.domain.models import User

Document = dict[str, Any]
AuthStateCallback = Callable[[User | None], None]


class DocumentStore(Protocol):
    """Collection of story documents keyed by a store-generated id."""

    def insert(self, document: Mapping[str, Any]) -> Document:
        ...

    def select(self, *, filters: Mapping[str, str]) -> list[Document]:
        ...

    def update(
        self,
        *,
        document_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, str] | None = None,
    ) -> int:
        ...

    def delete(self, *, filters: Mapping[str, str]) -> int:
        ...


class IdentitySource(Protocol):
    """Reports the signed-in user and announces every change of it."""

    def get_current_user(self) -> User | None:
        ...

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        ...


class AuthProvider(IdentitySource, Protocol):
    """Issues identities and notifies subscribers about session changes."""

    def sign_up(self, *, email: str, password: str) -> User:
        ...

    def sign_in(self, *, email: str, password: str) -> str:
        ...

    def sign_out(self) -> None:
        ...
