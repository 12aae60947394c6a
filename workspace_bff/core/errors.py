"""
Failure taxonomy shared by the token lifecycle and the provider wrappers.

The HTTP layer maps these onto responses; nothing here knows about FastAPI.
"""

from __future__ import annotations

from typing import Optional


class WorkspaceError(Exception):
    """Base class for errors surfaced to the HTTP layer."""

    code = "workspace_error"

    def __init__(self, message: str, *, user_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_id = user_id


class AuthenticationError(WorkspaceError):
    """The user must (re)connect their Google account before retrying."""

    code = "authentication_error"


class NotAuthenticatedError(AuthenticationError):
    """No credential on file for the user."""

    code = "not_authenticated"


class ReauthRequiredError(AuthenticationError):
    """The refresh token is missing or was revoked."""

    code = "reauth_required"


class RefreshFailedError(AuthenticationError):
    """The token endpoint could not be reached or rejected the refresh."""

    code = "refresh_failed"


class ProviderCallFailedError(WorkspaceError):
    """A Gmail, Calendar or Tasks call failed for reasons unrelated to auth."""

    code = "provider_call_failed"

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        status_code: Optional[int] = None,
        user_id: Optional[str] = None,
    ) -> None:
        super().__init__(message, user_id=user_id)
        self.operation = operation
        self.status_code = status_code


class TaskNotFoundError(WorkspaceError):
    """A local task does not exist or belongs to someone else."""

    code = "task_not_found"


__all__ = [
    "AuthenticationError",
    "NotAuthenticatedError",
    "ProviderCallFailedError",
    "ReauthRequiredError",
    "RefreshFailedError",
    "TaskNotFoundError",
    "WorkspaceError",
]
