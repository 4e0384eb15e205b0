"""Error kinds surfaced by the tracker core."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for user-visible tracker failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    """A draft failed required-field or shape checks; no remote call was made."""


class NotFoundError(TrackerError):
    """The target story no longer exists for the acting owner."""


class FetchError(TrackerError):
    """Reading from the document store failed."""


class UpdateError(TrackerError):
    """Writing to the document store failed."""


class AuthenticationRequired(TrackerError):
    """An owner-scoped operation was invoked without a signed-in user."""


class AuthenticationError(TrackerError):
    """Credentials or bearer token were rejected."""


class ConflictError(TrackerError):
    """The requested account already exists."""


class DocumentStoreError(Exception):
    """Raised by document store adapters when the backing storage fails."""
