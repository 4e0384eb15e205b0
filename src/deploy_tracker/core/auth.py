"""Local authentication provider backed by the account store."""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from deploy_tracker.adapters.sqlite_account_store import (
    SQLiteAccountStore,
    StoredToken,
    StoredUser,
)
from deploy_tracker.domain.errors import AuthenticationError, ConflictError, ValidationError
from deploy_tracker.domain.models import User
from deploy_tracker.domain.ports import AuthStateCallback

PBKDF2_ITERATIONS = 310_000
TOKEN_TTL_HOURS = 24
MIN_PASSWORD_LENGTH = 8
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt.hex()}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        algorithm, iterations, salt_hex, digest_hex = password_hash.split("$", maxsplit=3)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    recomputed = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        bytes.fromhex(salt_hex),
        int(iterations),
    )
    return hmac.compare_digest(recomputed.hex(), digest_hex)


def user_from_stored(user: StoredUser) -> User:
    return User(id=user.user_id, email=user.email)


class LocalAuthProvider:
    """Email/password sign-in with expiring bearer tokens.

    One provider instance represents one client session: it remembers the token issued
    by the last ``sign_in`` and notifies subscribers whenever the signed-in user changes,
    including when the token is found to have expired.
    """

    def __init__(
        self,
        account_store: SQLiteAccountStore,
        *,
        token_ttl_hours: int = TOKEN_TTL_HOURS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._accounts = account_store
        self._token_ttl = timedelta(hours=token_ttl_hours)
        self._clock = clock
        self._token: str | None = None
        self._listeners: list[AuthStateCallback] = []

    @property
    def access_token(self) -> str | None:
        return self._token

    def sign_up(self, *, email: str, password: str) -> User:
        normalized = email.strip().lower()
        if not EMAIL_PATTERN.match(normalized):
            raise ValidationError("Email must be a valid address.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
            )
        created = self._accounts.create_user(
            email=normalized, password_hash=hash_password(password)
        )
        if created is None:
            raise ConflictError("Email already registered")
        logger.info("auth.sign_up user_id=%s", created.user_id)
        return user_from_stored(created)

    def issue_token(self, *, email: str, password: str) -> tuple[User, StoredToken]:
        """Verify credentials and store a new bearer token without touching this session."""
        stored = self._accounts.get_user_by_email(email=email.strip())
        if stored is None or not verify_password(password, stored.password_hash):
            raise AuthenticationError("Invalid credentials")
        expires_at = self._clock() + self._token_ttl
        token = self._accounts.create_token(
            user_id=stored.user_id,
            token_value=secrets.token_urlsafe(32),
            expires_at_utc=expires_at.isoformat(),
        )
        logger.info("auth.token_issued user_id=%s", stored.user_id)
        return user_from_stored(stored), token

    def sign_in(self, *, email: str, password: str) -> str:
        """Verify credentials, start this session, and return its bearer token."""
        user, token = self.issue_token(email=email, password=password)
        self._token = token.token_value
        self._notify(user)
        return token.token_value

    def sign_out(self) -> None:
        if self._token is None:
            return
        self._accounts.revoke_token(token_value=self._token)
        self._token = None
        logger.info("auth.sign_out")
        self._notify(None)

    def resolve_token(self, token_value: str) -> User | None:
        """Map a bearer token to its user when it has not expired."""
        stored = self._accounts.get_user_by_token(
            token_value=token_value, now_utc=self._clock().isoformat()
        )
        if stored is None:
            return None
        return user_from_stored(stored)

    def revoke(self, token_value: str) -> bool:
        return self._accounts.revoke_token(token_value=token_value)

    def get_current_user(self) -> User | None:
        if self._token is None:
            return None
        user = self.resolve_token(self._token)
        if user is None:
            logger.info("auth.session_expired")
            self._token = None
            self._notify(None)
        return user

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, user: User | None) -> None:
        for listener in list(self._listeners):
            listener(user)
