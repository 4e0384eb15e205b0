"""Public API surface for HTTP serving and Python-first interfaces."""

from deploy_tracker.api.app import create_app
from deploy_tracker.api.python_interface import AuthSession, TrackerApiClient

__all__ = [
    "AuthSession",
    "TrackerApiClient",
    "create_app",
]
