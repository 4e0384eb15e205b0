"""Domain models, error kinds, and ports for the deployment tracker."""

from deploy_tracker.domain.errors import (
    AuthenticationError,
    AuthenticationRequired,
    ConflictError,
    DocumentStoreError,
    FetchError,
    NotFoundError,
    TrackerError,
    UpdateError,
    ValidationError,
)
from deploy_tracker.domain.models import CHANGE_TYPES, Change, ChangeType, User, UserStory
from deploy_tracker.domain.ports import AuthProvider, DocumentStore, IdentitySource

__all__ = [
    "CHANGE_TYPES",
    "AuthProvider",
    "AuthenticationError",
    "AuthenticationRequired",
    "Change",
    "ChangeType",
    "ConflictError",
    "DocumentStore",
    "DocumentStoreError",
    "FetchError",
    "IdentitySource",
    "NotFoundError",
    "TrackerError",
    "UpdateError",
    "User",
    "UserStory",
    "ValidationError",
]
