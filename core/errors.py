"""
Error taxonomy shared by every service.

Services raise these; the API layer turns them into JSON responses
(see ``apps.api.main``). Nothing here knows about HTTP beyond the
suggested status code.
"""

from __future__ import annotations


class WorkflowError(Exception):
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WorkflowError):
    """Malformed or missing input. ``errors`` maps field name -> message."""

    status_code = 400

    def __init__(self, message: str, errors: dict[str, str] | None = None):
        super().__init__(message)
        self.errors = errors or {}


class PermissionDeniedError(WorkflowError):
    status_code = 403


class NotFoundError(WorkflowError):
    status_code = 404


class InvalidTransitionError(WorkflowError):
    status_code = 400


class AuthenticationError(WorkflowError):
    """No session or an expired/invalid token. The boundary decides the redirect."""

    status_code = 401
