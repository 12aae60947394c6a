"""
Token lifecycle: hand out ready-to-use Google clients per user.

``ensure_client`` walks cache -> store -> expiry check -> refresh -> pool. All
token writes go through a read-merge-write on the credential store so a
refresh response without a refresh token never erases the stored one.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from workspace_bff.clients.google_auth import GoogleOAuthClient, OAuthTokenExchangeError
from workspace_bff.clients.google_workspace import GoogleWorkspaceClient
from workspace_bff.core.datetime_utils import utcnow
from workspace_bff.core.errors import (
    NotAuthenticatedError,
    ReauthRequiredError,
    RefreshFailedError,
)
from workspace_bff.models.oauth import (
    CredentialSnapshot,
    GoogleProfile,
    TokenGrant,
    UserCredential,
)
from workspace_bff.services.client_pool import ClientPool
from workspace_bff.services.credential_store import CredentialStore
from workspace_bff.services.token_cache import TokenCache

logger = logging.getLogger(__name__)


class TokenLifecycleManager:
    """Coordinates the credential store, token cache and client pool."""

    _REFRESH_MARGIN = timedelta(minutes=5)

    def __init__(
        self,
        *,
        credential_store: CredentialStore,
        token_cache: TokenCache,
        client_pool: ClientPool,
        oauth_client: GoogleOAuthClient,
        cache_ttl_seconds: Optional[float] = None,
        refresh_margin: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = credential_store
        self._cache = token_cache
        self._pool = client_pool
        self._oauth = oauth_client
        self._cache_ttl = cache_ttl_seconds
        self._refresh_margin = self._REFRESH_MARGIN if refresh_margin is None else refresh_margin
        self._clock = clock
        self._pool.register_refresh_listener(self.handle_provider_refresh)

    def _load_snapshot(self, user_id: str) -> Optional[CredentialSnapshot]:
        try:
            return self._store.get_snapshot(user_id)
        except ValueError as exc:
            logger.warning("Stored tokens for user %s could not be decrypted", user_id)
            raise ReauthRequiredError(
                "Stored Google tokens are unreadable; reconnect your account.",
                user_id=user_id,
            ) from exc

    async def ensure_client(self, user_id: str) -> GoogleWorkspaceClient:
        """Return an authorized client whose access token is not about to expire."""
        snapshot = self._cache.get(user_id)
        if snapshot is None:
            snapshot = self._load_snapshot(user_id)
            if snapshot is None or not snapshot.access_token:
                raise NotAuthenticatedError(
                    "Google account not connected; please connect your account.",
                    user_id=user_id,
                )
            self._cache.set(user_id, snapshot, self._cache_ttl)

        if snapshot.expires_within(self._refresh_margin, self._clock()):
            logger.info("Access token for user %s expires soon; refreshing", user_id)
            snapshot = await self.refresh(user_id)

        return self._pool.acquire(user_id, snapshot)

    async def refresh(self, user_id: str) -> CredentialSnapshot:
        """Exchange the stored refresh token for a new access token.

        The refresh token is always read from the store, never the cache.
        """
        try:
            refresh_token = self._store.get_refresh_token(user_id)
        except ValueError as exc:
            self._cache.invalidate(user_id)
            raise ReauthRequiredError(
                "Stored Google tokens are unreadable; reconnect your account.",
                user_id=user_id,
            ) from exc
        if not refresh_token:
            self._cache.invalidate(user_id)
            logger.warning("No refresh token stored for user %s", user_id)
            raise ReauthRequiredError(
                "No refresh token on file; reconnect your Google account.",
                user_id=user_id,
            )

        try:
            grant = await self._oauth.refresh_access_token(refresh_token)
        except OAuthTokenExchangeError as exc:
            self._cache.invalidate(user_id)
            if exc.is_invalid_grant:
                logger.warning("Refresh token for user %s was revoked", user_id)
                raise ReauthRequiredError(
                    "Google rejected the refresh token; reconnect your account.",
                    user_id=user_id,
                ) from exc
            logger.warning("Token refresh failed for user %s: %s", user_id, exc)
            raise RefreshFailedError(
                "Token refresh failed - user may need to re-authenticate",
                user_id=user_id,
            ) from exc

        snapshot = self._persist_grant(user_id, grant)
        self._pool.acquire(user_id, snapshot)
        logger.info("Refreshed access token for user %s", user_id)
        return snapshot

    def _persist_grant(self, user_id: str, grant: TokenGrant) -> CredentialSnapshot:
        try:
            snapshot = self._store.update_tokens(
                user_id,
                access_token=grant.access_token,
                expires_at=grant.expires_at,
                refresh_token=grant.refresh_token,
                scopes=grant.scopes,
            )
        except LookupError as exc:
            self._cache.invalidate(user_id)
            raise NotAuthenticatedError(
                "Google account was disconnected during refresh.", user_id=user_id
            ) from exc
        self._cache.set(user_id, snapshot, self._cache_ttl)
        return snapshot

    def handle_provider_refresh(self, user_id: str, grant: TokenGrant) -> None:
        """Listener for refreshes the Google SDK performs during a call.

        Runs on the worker thread executing the call. The pooled handle already
        carries the new token, so only the store and cache are updated. Failures
        are logged and do not abort the provider call.
        """
        try:
            self._persist_grant(user_id, grant)
        except Exception:
            logger.exception("Failed to persist SDK-refreshed tokens for user %s", user_id)
            self._cache.invalidate(user_id)
            return
        logger.info("Persisted SDK-refreshed access token for user %s", user_id)

    def invalidate_cached_tokens(self, user_id: str) -> None:
        self._cache.invalidate(user_id)

    def link_account(
        self,
        profile: GoogleProfile,
        grant: TokenGrant,
        *,
        user_id: Optional[str] = None,
    ) -> UserCredential:
        """Store tokens from a completed consent round trip."""
        credential = self._store.link_account(profile, grant, user_id=user_id)
        self._cache.invalidate(credential.user_id)
        if credential.user_id in self._pool:
            self._pool.acquire(credential.user_id, credential.to_snapshot())
        return credential

    async def disconnect(self, user_id: str) -> bool:
        """Revoke and forget the user's Google credential."""
        try:
            credential = self._store.get(user_id, include_tokens=True)
        except ValueError:
            logger.warning("Skipping revocation for user %s; tokens unreadable", user_id)
            credential = self._store.get(user_id)
        if credential is None:
            self._cache.invalidate(user_id)
            self._pool.discard(user_id)
            return False

        token = credential.refresh_token or credential.access_token
        if token:
            try:
                await self._oauth.revoke_token(token)
            except OAuthTokenExchangeError as exc:
                logger.warning("Token revocation failed for user %s: %s", user_id, exc)

        self._store.delete(user_id)
        self._cache.invalidate(user_id)
        self._pool.discard(user_id)
        logger.info("Disconnected Google account for user %s", user_id)
        return True


__all__ = ["TokenLifecycleManager"]
