"""FastAPI application exposing story and change-log workflows."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from deploy_tracker.adapters.document_store_factory import create_document_store
from deploy_tracker.adapters.sqlite_account_store import SQLiteAccountStore
from deploy_tracker.api.contracts import (
    AuthLoginRequest,
    AuthRegisterRequest,
    AuthTokenResponse,
    ChangeCreateRequest,
    ChangeListResponse,
    StoryCreateRequest,
    StoryPageResponse,
    StoryResponse,
    UserResponse,
    change_list_response,
    story_page_response,
    story_response,
    user_response,
)
from deploy_tracker.api.oidc import user_from_oidc_token
from deploy_tracker.config import load_settings
from deploy_tracker.core.auth import LocalAuthProvider
from deploy_tracker.core.session import FixedIdentity
from deploy_tracker.core.workspace import TrackerWorkspace
from deploy_tracker.domain.errors import (
    AuthenticationError,
    AuthenticationRequired,
    ConflictError,
    FetchError,
    NotFoundError,
    TrackerError,
    UpdateError,
    ValidationError,
)
from deploy_tracker.domain.models import User

logger = logging.getLogger(__name__)

_ERROR_STATUS: tuple[tuple[type[TrackerError], int], ...] = (
    (ValidationError, 422),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (AuthenticationRequired, status.HTTP_401_UNAUTHORIZED),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (FetchError, status.HTTP_502_BAD_GATEWAY),
    (UpdateError, status.HTTP_502_BAD_GATEWAY),
)


class HealthResponse(BaseModel):
    """Simple health payload used by probes."""

    status: Literal["ok"] = "ok"
    service: str = "deploy_tracker"


class ApiRootResponse(BaseModel):
    """Describes currently available API capabilities and runtime mode."""

    name: str = "deploy_tracker"
    auth: str = "bearer-token"
    persistence: str = "sqlite"
    endpoints: list[str] = Field(
        default_factory=lambda: [
            "/healthz",
            "/api/v1",
            "/api/v1/auth/register",
            "/api/v1/auth/login",
            "/api/v1/auth/logout",
            "/api/v1/me",
            "/api/v1/stories",
            "/api/v1/stories/{story_id}",
            "/api/v1/stories/{story_id}/changes",
            "/api/v1/stories/{story_id}/changes/{change_id}",
        ]
    )


def error_status(exc: TrackerError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(db_path: Path | None = None) -> FastAPI:
    """Create the API application."""
    settings = load_settings(db_path=db_path)
    store = create_document_store(db_path=settings.db_path, backend=settings.store_backend)
    accounts = SQLiteAccountStore(db_path=settings.db_path)
    auth = LocalAuthProvider(accounts, token_ttl_hours=settings.token_ttl_hours)
    bearer = HTTPBearer(auto_error=False)

    app = FastAPI(
        title="deploy_tracker API",
        version="0.1.0",
        description=(
            "Track user stories and the configuration changes deployed with each one: "
            "field creation, LWC edits, profile edits, and permission edits."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=[
            {"name": "system", "description": "Service health and runtime metadata."},
            {"name": "auth", "description": "Registration, login, logout, and identity."},
            {"name": "stories", "description": "Owner-scoped user story CRUD and paging."},
            {"name": "changes", "description": "Per-story change log append and removal."},
        ],
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info(
        "api.start db_path=%s store=%s auth_mode=%s",
        settings.db_path,
        settings.store_backend,
        settings.auth_mode,
    )

    @app.exception_handler(TrackerError)
    async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
        status_code = error_status(exc)
        logger.warning(
            "api.error path=%s kind=%s status=%s message=%s",
            request.url.path,
            type(exc).__name__,
            status_code,
            exc.message,
        )
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    def current_user(
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    ) -> User:
        if credentials is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing bearer token",
            )
        if settings.auth_mode == "oidc":
            return user_from_oidc_token(credentials.credentials)
        user = auth.resolve_token(credentials.credentials)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
            )
        return user

    def workspace(user: User = Depends(current_user)) -> TrackerWorkspace:
        return TrackerWorkspace.open(store=store, identity=FixedIdentity(user))

    @app.get("/healthz", response_model=HealthResponse, tags=["system"])
    def healthz() -> HealthResponse:
        return HealthResponse()

    @app.get("/api/v1", response_model=ApiRootResponse, tags=["system"])
    def api_v1_root() -> ApiRootResponse:
        return ApiRootResponse(
            auth="oidc-jwt" if settings.auth_mode == "oidc" else "bearer-token",
            persistence=settings.store_backend,
        )

    @app.post(
        "/api/v1/auth/register",
        response_model=UserResponse,
        tags=["auth"],
        status_code=status.HTTP_201_CREATED,
    )
    def register(payload: AuthRegisterRequest) -> UserResponse:
        if settings.auth_mode == "oidc":
            raise HTTPException(
                status_code=status.HTTP_501_NOT_IMPLEMENTED,
                detail="Accounts are managed by the identity provider.",
            )
        created = auth.sign_up(email=payload.email, password=payload.password.get_secret_value())
        return user_response(created)

    @app.post("/api/v1/auth/login", response_model=AuthTokenResponse, tags=["auth"])
    def login(payload: AuthLoginRequest) -> AuthTokenResponse:
        if settings.auth_mode == "oidc":
            raise HTTPException(
                status_code=status.HTTP_501_NOT_IMPLEMENTED,
                detail="Sign in through the identity provider.",
            )
        _, token = auth.issue_token(
            email=payload.email, password=payload.password.get_secret_value()
        )
        return AuthTokenResponse(
            access_token=token.token_value, expires_at_utc=token.expires_at_utc
        )

    @app.post(
        "/api/v1/auth/logout", tags=["auth"], status_code=status.HTTP_204_NO_CONTENT
    )
    def logout(
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    ) -> Response:
        if credentials is not None and settings.auth_mode == "local":
            auth.revoke(credentials.credentials)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/api/v1/me", response_model=UserResponse, tags=["auth"])
    def me(user: User = Depends(current_user)) -> UserResponse:
        return user_response(user)

    @app.get("/api/v1/stories", response_model=StoryPageResponse, tags=["stories"])
    def list_stories(
        number: str = Query(default="", max_length=120),
        page: int = Query(default=1, ge=1),
        page_size: int = Query(default=settings.page_size, ge=1, le=100),
        tracker: TrackerWorkspace = Depends(workspace),
    ) -> StoryPageResponse:
        tracker.load()
        visible = tracker.page(query=number, page_number=page, page_size=page_size)
        return story_page_response(visible, query=number)

    @app.post(
        "/api/v1/stories",
        response_model=StoryResponse,
        tags=["stories"],
        status_code=status.HTTP_201_CREATED,
    )
    def create_story(
        payload: StoryCreateRequest,
        tracker: TrackerWorkspace = Depends(workspace),
    ) -> StoryResponse:
        return story_response(tracker.add_story(payload.model_dump()))

    @app.get("/api/v1/stories/{story_id}", response_model=StoryResponse, tags=["stories"])
    def get_story(
        story_id: str, tracker: TrackerWorkspace = Depends(workspace)
    ) -> StoryResponse:
        return story_response(tracker.repository.get_story(story_id))

    @app.delete(
        "/api/v1/stories/{story_id}",
        tags=["stories"],
        status_code=status.HTTP_204_NO_CONTENT,
    )
    def delete_story(
        story_id: str,
        strict: bool = Query(default=False),
        tracker: TrackerWorkspace = Depends(workspace),
    ) -> Response:
        tracker.repository.delete_story(story_id, missing_ok=not strict)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get(
        "/api/v1/stories/{story_id}/changes",
        response_model=ChangeListResponse,
        tags=["changes"],
    )
    def list_changes(
        story_id: str, tracker: TrackerWorkspace = Depends(workspace)
    ) -> ChangeListResponse:
        return change_list_response(story_id, tracker.repository.get_changes(story_id))

    @app.post(
        "/api/v1/stories/{story_id}/changes",
        response_model=ChangeListResponse,
        tags=["changes"],
        status_code=status.HTTP_201_CREATED,
    )
    def append_change(
        story_id: str,
        payload: ChangeCreateRequest,
        tracker: TrackerWorkspace = Depends(workspace),
    ) -> ChangeListResponse:
        changes = tracker.add_change(story_id, payload.type, payload.details)
        return change_list_response(story_id, changes)

    @app.delete(
        "/api/v1/stories/{story_id}/changes/{change_id}",
        response_model=ChangeListResponse,
        tags=["changes"],
    )
    def remove_change(
        story_id: str,
        change_id: str,
        tracker: TrackerWorkspace = Depends(workspace),
    ) -> ChangeListResponse:
        return change_list_response(story_id, tracker.remove_change(story_id, change_id))

    return app


app = create_app()
