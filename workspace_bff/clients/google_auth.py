"""
Google OAuth utilities.

These helpers drive the consent flow (authorization URL, code exchange and
profile lookup) and the token endpoint calls the token lifecycle relies on.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException, status

from workspace_bff.core.config import GoogleSettings, OAuthSettings
from workspace_bff.core.datetime_utils import utcnow
from workspace_bff.models.oauth import GoogleProfile, TokenGrant

logger = logging.getLogger(__name__)

_DEFAULT_EXPIRES_IN = 3600


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str, ttl_seconds: int = 900) -> None:
        self._secret_key = secret_key.encode("utf-8")
        self._ttl = timedelta(seconds=ttl_seconds)

    def encode(self, payload: Dict[str, Any]) -> str:
        body = {**payload, "issued_at": utcnow().isoformat()}
        serialized = json.dumps(body, separators=(",", ":"), sort_keys=True).encode("utf-8")
        signature = hmac.new(self._secret_key, serialized, sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        """Verify signature and age, returning the original payload."""
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed OAuth state.",
            ) from exc

        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid OAuth state signature.",
            )

        payload = json.loads(serialized)
        try:
            issued_at = datetime.fromisoformat(payload["issued_at"])
        except (KeyError, TypeError, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing issued_at in state token.",
            ) from exc
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        if utcnow() - issued_at > self._ttl:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="OAuth state token has expired.",
            )
        return payload


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint fails or returns an error."""

    def __init__(
        self,
        message: str,
        *,
        error: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.status_code = status_code

    @property
    def is_invalid_grant(self) -> bool:
        return self.error == "invalid_grant"


class GoogleOAuthClient:
    """Build Google authorization URLs and talk to the token endpoint."""

    AUTH_BASE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"

    def __init__(
        self,
        google_settings: GoogleSettings,
        oauth_settings: OAuthSettings,
        *,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._google = google_settings
        self._oauth = oauth_settings
        self._timeout = timeout_seconds
        self._transport = transport
        self._clock = clock

    @property
    def client_id(self) -> str:
        return self._google.client_id

    @property
    def client_secret(self) -> str:
        return self._google.client_secret

    def build_authorization_url(
        self,
        state: str,
        *,
        force_consent: bool = False,
        login_hint: Optional[str] = None,
    ) -> str:
        """Construct the Google OAuth consent URL.

        ``force_consent`` makes Google show the consent screen again, which is
        the only way to be issued a fresh refresh token for a returning user.
        """
        params = {
            "client_id": self._google.client_id,
            "redirect_uri": str(self._google.redirect_uri),
            "response_type": "code",
            "scope": " ".join(self._oauth.scopes),
            "access_type": "offline",
            "include_granted_scopes": "true",
            "state": state,
        }
        if force_consent:
            params["prompt"] = "consent"
        if login_hint:
            params["login_hint"] = login_hint
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _post_token(self, payload: Dict[str, str]) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(self.TOKEN_URL, data=payload)
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(
                f"Token endpoint unreachable: {exc.__class__.__name__}"
            ) from exc

        if response.status_code != status.HTTP_200_OK:
            error: Optional[str] = None
            try:
                error = response.json().get("error")
            except (ValueError, AttributeError):
                logger.debug("Token endpoint error body was not a JSON object")
            raise OAuthTokenExchangeError(
                f"Token endpoint returned {response.status_code}",
                error=error,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise OAuthTokenExchangeError(
                "Token endpoint returned a non-JSON body.",
                status_code=response.status_code,
            ) from exc

    def _grant_from_payload(self, token_payload: Any) -> TokenGrant:
        try:
            access_token = token_payload.get("access_token")
            expires_in = int(token_payload.get("expires_in") or _DEFAULT_EXPIRES_IN)
            scope = str(token_payload.get("scope") or "")
        except (ValueError, TypeError, AttributeError) as exc:
            raise OAuthTokenExchangeError("Malformed token payload returned from Google.") from exc
        if not access_token:
            raise OAuthTokenExchangeError("Incomplete token payload returned from Google.")
        return TokenGrant(
            access_token=access_token,
            refresh_token=token_payload.get("refresh_token") or None,
            expires_at=self._clock() + timedelta(seconds=expires_in),
            scopes=tuple(scope.split()),
        )

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for tokens.

        Google only includes a refresh token on first consent (or when consent
        was forced), so ``TokenGrant.refresh_token`` may be ``None``.
        """
        return self._grant_from_payload(
            await self._post_token(
                {
                    "code": code,
                    "client_id": self._google.client_id,
                    "client_secret": self._google.client_secret,
                    "redirect_uri": str(self._google.redirect_uri),
                    "grant_type": "authorization_code",
                }
            )
        )

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Mint a new access token from a stored refresh token."""
        return self._grant_from_payload(
            await self._post_token(
                {
                    "client_id": self._google.client_id,
                    "client_secret": self._google.client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                }
            )
        )

    async def fetch_user_profile(self, access_token: str) -> GoogleProfile:
        try:
            async with self._client() as client:
                response = await client.get(
                    self.USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError("Userinfo endpoint unreachable.") from exc
        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(
                "Failed to fetch Google profile.", status_code=response.status_code
            )
        try:
            data = response.json()
            subject = data.get("sub")
        except (ValueError, AttributeError) as exc:
            raise OAuthTokenExchangeError("Google profile response was not a JSON object.") from exc
        if not subject:
            raise OAuthTokenExchangeError("Google profile is missing a subject id.")
        return GoogleProfile(
            google_id=data["sub"],
            email=data.get("email"),
            name=data.get("name"),
            picture=data.get("picture"),
        )

    async def revoke_token(self, token: str) -> None:
        try:
            async with self._client() as client:
                response = await client.post(self.REVOKE_URL, data={"token": token})
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError("Revocation endpoint unreachable.") from exc
        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(
                "Token revocation was rejected.", status_code=response.status_code
            )


__all__ = [
    "GoogleOAuthClient",
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
]
