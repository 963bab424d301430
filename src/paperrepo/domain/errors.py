"""Domain error taxonomy.

Every error carries a human readable message that is safe to return to the
client; the API layer maps each class onto an HTTP status.
"""

from __future__ import annotations

from typing import Optional


class RepositoryError(Exception):
    """Base class for errors surfaced to callers as structured responses."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RepositoryError):
    status_code = 400


class DuplicateRequest(RepositoryError):
    """An active (pending or approved) request already exists for the pair."""

    status_code = 400

    _MESSAGES = {
        "pending": "You have already requested this paper. Your request is pending approval.",
        "approved": "You already have access to this paper.",
    }

    def __init__(self, status: str, request_id: Optional[str] = None):
        super().__init__(self._MESSAGES.get(status, "An active request already exists."))
        self.status = status
        self.request_id = request_id


class AuthenticationFailed(RepositoryError):
    status_code = 401


class PermissionDenied(RepositoryError):
    status_code = 403


class NotFound(RepositoryError):
    status_code = 404

    def __init__(self, kind: str, message: Optional[str] = None):
        super().__init__(message or f"{kind.capitalize()} not found")
        self.kind = kind


class InvalidState(RepositoryError):
    status_code = 409


class NotificationFailed(RepositoryError):
    """Email dispatch failed. Never rolls back an already persisted change."""

    status_code = 502
