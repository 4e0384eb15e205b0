"""SQLite-backed persistence for user accounts and bearer tokens."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

_ACCOUNT_COLUMNS = "a.account_id, a.email, a.password_hash, a.registered_at_utc"


@dataclass(frozen=True)
class StoredUser:
    """Registered account."""

    user_id: str
    email: str
    password_hash: str
    registered_at_utc: str


@dataclass(frozen=True)
class StoredToken:
    """Issued bearer token and its expiry."""

    token_value: str
    user_id: str
    expires_at_utc: str
    issued_at_utc: str


class SQLiteAccountStore:
    """Accounts and their bearer tokens, kept next to the story documents."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_schema()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self._db_path))
        connection.row_factory = sqlite3.Row
        return connection

    def _initialize_schema(self) -> None:
        with self._connect() as connection:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    account_id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    registered_at_utc TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS bearer_tokens (
                    token_value TEXT PRIMARY KEY,
                    account_id TEXT NOT NULL REFERENCES accounts(account_id),
                    expires_at_utc TEXT NOT NULL,
                    issued_at_utc TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_bearer_tokens_account
                ON bearer_tokens(account_id);
                """
            )

    def _fetch_user(self, query: str, params: tuple[str, ...]) -> StoredUser | None:
        with self._connect() as connection:
            row = connection.execute(query, params).fetchone()
        return None if row is None else self._user_from_row(row)

    def create_user(self, *, email: str, password_hash: str) -> StoredUser | None:
        """Register an account; None means the email is taken."""
        user = StoredUser(
            user_id=uuid4().hex,
            email=email.lower(),
            password_hash=password_hash,
            registered_at_utc=datetime.now(UTC).isoformat(),
        )
        try:
            with self._connect() as connection:
                connection.execute(
                    "INSERT INTO accounts VALUES (?, ?, ?, ?)",
                    (user.user_id, user.email, user.password_hash, user.registered_at_utc),
                )
        except sqlite3.IntegrityError:
            return None
        return user

    def get_user_by_email(self, *, email: str) -> StoredUser | None:
        return self._fetch_user(
            f"SELECT {_ACCOUNT_COLUMNS} FROM accounts a WHERE a.email = ?", (email.lower(),)
        )

    def get_user_by_id(self, *, user_id: str) -> StoredUser | None:
        return self._fetch_user(
            f"SELECT {_ACCOUNT_COLUMNS} FROM accounts a WHERE a.account_id = ?", (user_id,)
        )

    def create_token(self, *, user_id: str, token_value: str, expires_at_utc: str) -> StoredToken:
        token = StoredToken(
            token_value=token_value,
            user_id=user_id,
            expires_at_utc=expires_at_utc,
            issued_at_utc=datetime.now(UTC).isoformat(),
        )
        with self._connect() as connection:
            connection.execute(
                "INSERT INTO bearer_tokens VALUES (?, ?, ?, ?)",
                (token.token_value, token.user_id, token.expires_at_utc, token.issued_at_utc),
            )
        return token

    def get_user_by_token(self, *, token_value: str, now_utc: str) -> StoredUser | None:
        """Return the token's account while ``now_utc`` is before its expiry."""
        return self._fetch_user(
            f"""
            SELECT {_ACCOUNT_COLUMNS}
            FROM bearer_tokens t JOIN accounts a ON a.account_id = t.account_id
            WHERE t.token_value = ? AND t.expires_at_utc > ?
            """,
            (token_value, now_utc),
        )

    def revoke_token(self, *, token_value: str) -> bool:
        with self._connect() as connection:
            cursor = connection.execute(
                "DELETE FROM bearer_tokens WHERE token_value = ?", (token_value,)
            )
            return cursor.rowcount > 0

    @staticmethod
    def _user_from_row(row: sqlite3.Row) -> StoredUser:
        return StoredUser(
            user_id=str(row["account_id"]),
            email=str(row["email"]),
            password_hash=str(row["password_hash"]),
            registered_at_utc=str(row["registered_at_utc"]),
        )
