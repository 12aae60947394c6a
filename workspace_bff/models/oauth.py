"""
Domain models for OAuth credential persistence and the token lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


@dataclass(frozen=True, slots=True)
class TokenGrant:
    """Tokens handed back by the Google token endpoint or the SDK auto-refresh."""

    access_token: str = field(repr=False)
    expires_at: datetime
    refresh_token: Optional[str] = field(default=None, repr=False)
    scopes: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CredentialSnapshot:
    """Immutable view of a user's live token fields.

    Used as the token cache payload and as the input for building or updating
    pooled clients. Never the system of record.
    """

    access_token: Optional[str] = field(repr=False)
    refresh_token: Optional[str] = field(default=None, repr=False)
    expires_at: Optional[datetime] = None
    scopes: Tuple[str, ...] = ()

    def time_until_expiry(self, now: datetime) -> Optional[timedelta]:
        if self.expires_at is None:
            return None
        return self.expires_at - now

    def expires_within(self, margin: timedelta, now: datetime) -> bool:
        """An unknown expiry counts as expired."""
        remaining = self.time_until_expiry(now)
        return remaining is None or remaining < margin


class GoogleProfile(BaseModel):
    """Profile data returned by the consent flow."""

    google_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None


class UserCredential(BaseModel):
    """A user's Google connection as stored in the document store.

    Token fields stay ``None`` unless they were explicitly requested from the
    store, and are never rendered in ``repr`` or serialized output.
    """

    user_id: str
    provider: str = "google"
    google_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    access_token: Optional[str] = Field(None, repr=False, exclude=True)
    refresh_token: Optional[str] = Field(None, repr=False, exclude=True)

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token)

    def to_snapshot(self) -> CredentialSnapshot:
        return CredentialSnapshot(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=self.expires_at,
            scopes=tuple(self.scopes),
        )


__all__ = ["CredentialSnapshot", "GoogleProfile", "TokenGrant", "UserCredential"]
