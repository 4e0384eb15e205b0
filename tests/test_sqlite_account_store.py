from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

from deploy_tracker.adapters.sqlite_account_store import SQLiteAccountStore


def test_user_lookup_by_email_and_id(tmp_path: Path) -> None:
    store = SQLiteAccountStore(db_path=tmp_path / "accounts.db")
    user = store.create_user(email="Alice@Example.com", password_hash="hash")
    assert user is not None

    by_email = store.get_user_by_email(email="ALICE@example.com")
    by_id = store.get_user_by_id(user_id=user.user_id)

    assert user.email == "alice@example.com"
    assert by_email == user
    assert by_id == user
    assert store.get_user_by_id(user_id="missing-user-id") is None


def test_duplicate_email_is_refused(tmp_path: Path) -> None:
    store = SQLiteAccountStore(db_path=tmp_path / "accounts.db")
    assert store.create_user(email="alice@example.com", password_hash="hash") is not None
    assert store.create_user(email="alice@example.com", password_hash="hash2") is None


def test_token_lookup_respects_expiration_and_revocation(tmp_path: Path) -> None:
    store = SQLiteAccountStore(db_path=tmp_path / "accounts.db")
    user = store.create_user(email="alice@example.com", password_hash="hash")
    assert user is not None
    valid_expires = (datetime.now(UTC) + timedelta(hours=1)).isoformat()
    expired_expires = (datetime.now(UTC) - timedelta(hours=1)).isoformat()

    store.create_token(
        user_id=user.user_id, token_value="token-valid", expires_at_utc=valid_expires
    )
    store.create_token(
        user_id=user.user_id, token_value="token-expired", expires_at_utc=expired_expires
    )

    now = datetime.now(UTC).isoformat()
    valid_user = store.get_user_by_token(token_value="token-valid", now_utc=now)
    expired_user = store.get_user_by_token(token_value="token-expired", now_utc=now)

    assert valid_user is not None
    assert valid_user.user_id == user.user_id
    assert expired_user is None

    assert store.revoke_token(token_value="token-valid") is True
    assert store.revoke_token(token_value="token-valid") is False
    assert store.get_user_by_token(token_value="token-valid", now_utc=now) is None
