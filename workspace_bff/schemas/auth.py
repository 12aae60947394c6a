"""Schemas related to OAuth flows."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class OAuthCallbackPayload(BaseModel):
    """Payload sent to complete the OAuth callback exchange."""

    code: str = Field(..., description="Authorization code returned by Google OAuth.")
    state: str = Field(..., description="Opaque state token issued when starting OAuth.")


class AuthorizeResponse(BaseModel):
    authorization_url: str
    state: str


class CallbackResult(BaseModel):
    """Outcome of a completed consent round trip."""

    status: str = "connected"
    user_id: str
    email: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)
    has_refresh_token: bool
    redirect_to: Optional[str] = None


__all__ = ["AuthorizeResponse", "CallbackResult", "OAuthCallbackPayload"]
