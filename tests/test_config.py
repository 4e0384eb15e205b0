from __future__ import annotations

import logging
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

import deploy_tracker.adapters.observability as observability
from deploy_tracker.config import DEFAULT_CORS_ORIGINS, TrackerSettings, load_settings


@pytest.fixture
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    observability._CONFIGURED = False


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DB_PATH", "AUTH_MODE", "PAGE_SIZE", "CORS_ORIGINS", "STORE_BACKEND"):
        monkeypatch.delenv(f"DEPLOY_TRACKER_{name}", raising=False)

    settings = load_settings()

    assert settings.db_path == Path("work/local/deploy_tracker.db")
    assert settings.auth_mode == "local"
    assert settings.store_backend == "sqlite"
    assert settings.page_size == 10
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS


def test_settings_read_and_clamp_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("DEPLOY_TRACKER_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("DEPLOY_TRACKER_PAGE_SIZE", "500")
    monkeypatch.setenv("DEPLOY_TRACKER_TOKEN_TTL_HOURS", "soon")
    monkeypatch.setenv("DEPLOY_TRACKER_CORS_ORIGINS", "https://a.test, ,https://b.test")
    monkeypatch.setenv("DEPLOY_TRACKER_AUTH_MODE", "OIDC")
    monkeypatch.setenv("DEPLOY_TRACKER_OIDC_ISSUER", "https://id.example.test/realms/tracker")

    settings = load_settings()
    explicit = load_settings(db_path=tmp_path / "explicit.db")

    assert settings.db_path == tmp_path / "env.db"
    assert settings.page_size == 100
    assert settings.token_ttl_hours == 24
    assert settings.cors_origins == ("https://a.test", "https://b.test")
    assert settings.auth_mode == "oidc"
    assert explicit.db_path == tmp_path / "explicit.db"


def test_unknown_auth_mode_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEPLOY_TRACKER_AUTH_MODE", "saml")
    with pytest.raises(RuntimeError, match="DEPLOY_TRACKER_AUTH_MODE"):
        load_settings()


@pytest.mark.usefixtures("restore_root_logging")
def test_runtime_logging_writes_rotating_file(tmp_path: Path) -> None:
    observability._CONFIGURED = False
    settings = TrackerSettings(log_path=tmp_path / "logs" / "tracker.log", log_level="DEBUG")

    observability.configure_runtime_logging(settings)
    observability.configure_runtime_logging(settings)

    root = logging.getLogger()
    file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert root.level == logging.DEBUG
    logging.getLogger("deploy_tracker.test").info("story.create owner_id=%s", "alice")
    file_handlers[0].flush()
    assert "story.create owner_id=alice" in (tmp_path / "logs" / "tracker.log").read_text(
        encoding="utf-8"
    )


def test_oidc_mode_requires_an_issuer(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEPLOY_TRACKER_AUTH_MODE", "oidc")
    monkeypatch.delenv("DEPLOY_TRACKER_OIDC_ISSUER", raising=False)
    with pytest.raises(RuntimeError, match="DEPLOY_TRACKER_OIDC_ISSUER"):
        load_settings()
