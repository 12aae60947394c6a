from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from google.oauth2.credentials import Credentials

from workspace_bff.clients.google_auth import GoogleOAuthClient, OAuthTokenExchangeError
from workspace_bff.clients.sqlite_store import SQLiteStore
from workspace_bff.core.config import GoogleSettings, OAuthSettings
from workspace_bff.core.errors import (
    NotAuthenticatedError,
    ReauthRequiredError,
    RefreshFailedError,
)
from workspace_bff.models.oauth import GoogleProfile, TokenGrant
from workspace_bff.services.client_pool import ClientPool, google_client_factory
from workspace_bff.services.credential_store import CredentialStore
from workspace_bff.services.token_cache import TokenCache
from workspace_bff.services.token_cipher import TokenCipherService
from workspace_bff.services.token_lifecycle import TokenLifecycleManager


class DummyOAuthClient:
    def __init__(
        self,
        *,
        access_token: str = "refreshed-access",
        refresh_token: str | None = None,
        error: Exception | None = None,
        revoke_error: Exception | None = None,
    ) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.error = error
        self.revoke_error = revoke_error
        self.refresh_calls: list[str] = []
        self.revoked: list[str] = []

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        self.refresh_calls.append(refresh_token)
        if self.error is not None:
            raise self.error
        return TokenGrant(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )

    async def revoke_token(self, token: str) -> None:
        self.revoked.append(token)
        if self.revoke_error is not None:
            raise self.revoke_error


class Harness:
    def __init__(self, tmp_path, oauth_client: DummyOAuthClient) -> None:
        self.store = CredentialStore(
            SQLiteStore(str(tmp_path / "lifecycle.db")),
            TokenCipherService(secret="lifecycle-secret"),
        )
        self.cache = TokenCache()
        self.pool = ClientPool(google_client_factory(client_id="cid", client_secret="secret"))
        self.oauth = oauth_client
        self.manager = TokenLifecycleManager(
            credential_store=self.store,
            token_cache=self.cache,
            client_pool=self.pool,
            oauth_client=oauth_client,
        )

    def seed(
        self,
        user_id: str = "u1",
        *,
        expires_in: timedelta,
        refresh_token: str | None = "stored-refresh",
    ) -> None:
        self.store.link_account(
            GoogleProfile(google_id=f"google-{user_id}", email=f"{user_id}@example.com"),
            TokenGrant(
                access_token="initial-access",
                refresh_token=refresh_token,
                expires_at=datetime.now(timezone.utc) + expires_in,
            ),
            user_id=user_id,
        )


@pytest.mark.asyncio
async def test_refresh_without_new_refresh_token_keeps_stored_one(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient(refresh_token=None))
    harness.seed(expires_in=timedelta(minutes=-10))

    snapshot = await harness.manager.refresh("u1")

    assert snapshot.refresh_token == "stored-refresh"
    assert harness.store.get_refresh_token("u1") == "stored-refresh"


@pytest.mark.asyncio
async def test_refresh_stores_rotated_refresh_token(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient(refresh_token="rotated-refresh"))
    harness.seed(expires_in=timedelta(minutes=-10))

    await harness.manager.refresh("u1")

    assert harness.store.get_refresh_token("u1") == "rotated-refresh"


@pytest.mark.asyncio
async def test_fresh_token_needs_no_exchange(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())
    harness.seed(expires_in=timedelta(minutes=30))

    client = await harness.manager.ensure_client("u1")

    assert harness.oauth.refresh_calls == []
    assert client.token == "initial-access"


@pytest.mark.asyncio
@pytest.mark.parametrize("expires_in", [timedelta(minutes=4), timedelta(seconds=-1)])
async def test_expiring_token_is_refreshed_exactly_once(tmp_path, expires_in) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())
    harness.seed(expires_in=expires_in)

    await harness.manager.ensure_client("u1")

    assert harness.oauth.refresh_calls == ["stored-refresh"]


@pytest.mark.asyncio
async def test_successive_calls_do_not_refresh_twice(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())
    harness.seed(expires_in=timedelta(minutes=-1))

    first = await harness.manager.ensure_client("u1")
    second = await harness.manager.ensure_client("u1")

    assert first is second
    assert len(harness.oauth.refresh_calls) == 1


@pytest.mark.asyncio
async def test_expired_token_yields_client_with_new_token_and_stored_expiry(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient(access_token="brand-new"))
    harness.seed(expires_in=timedelta(seconds=-1))
    before = datetime.now(timezone.utc)

    client = await harness.manager.ensure_client("u1")

    assert client.token == "brand-new"
    stored = harness.store.get("u1", include_tokens=True)
    assert stored.access_token == "brand-new"
    assert stored.expires_at > before + timedelta(minutes=55)
    assert harness.cache.get("u1").access_token == "brand-new"


@pytest.mark.asyncio
async def test_refresh_updates_pooled_client_in_place(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient(access_token="second"))
    harness.seed(expires_in=timedelta(minutes=30))
    client = await harness.manager.ensure_client("u1")

    await harness.manager.refresh("u1")

    assert harness.pool.get("u1") is client
    assert client.token == "second"


@pytest.mark.asyncio
async def test_expired_token_without_refresh_token_requires_reauth(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())
    harness.seed(expires_in=timedelta(minutes=-5), refresh_token=None)

    with pytest.raises(ReauthRequiredError):
        await harness.manager.ensure_client("u1")

    assert harness.oauth.refresh_calls == []
    assert "u1" not in harness.cache


@pytest.mark.asyncio
async def test_unknown_user_is_not_authenticated(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())

    with pytest.raises(NotAuthenticatedError):
        await harness.manager.ensure_client("nobody")


@pytest.mark.asyncio
async def test_revoked_refresh_token_requires_reauth(tmp_path) -> None:
    error = OAuthTokenExchangeError("rejected", error="invalid_grant", status_code=400)
    harness = Harness(tmp_path, DummyOAuthClient(error=error))
    harness.seed(expires_in=timedelta(minutes=-5))

    with pytest.raises(ReauthRequiredError):
        await harness.manager.ensure_client("u1")

    assert "u1" not in harness.cache


@pytest.mark.asyncio
async def test_token_endpoint_failure_raises_refresh_failed_and_clears_cache(tmp_path) -> None:
    error = OAuthTokenExchangeError("Token endpoint unreachable: ConnectTimeout")
    harness = Harness(tmp_path, DummyOAuthClient(error=error))
    harness.seed(expires_in=timedelta(minutes=-5))

    with pytest.raises(RefreshFailedError):
        await harness.manager.ensure_client("u1")

    assert "u1" not in harness.cache
    assert harness.store.get_refresh_token("u1") == "stored-refresh"


@pytest.mark.asyncio
async def test_garbled_token_endpoint_response_raises_refresh_failed(tmp_path) -> None:
    oauth_client = GoogleOAuthClient(
        GoogleSettings(
            client_id="cid", client_secret="secret", redirect_uri="https://example.com/cb"
        ),
        OAuthSettings(),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>proxy</html>")),
    )
    harness = Harness(tmp_path, oauth_client)
    harness.seed(expires_in=timedelta(minutes=-5))
    harness.cache.set("u1", harness.store.get_snapshot("u1"))

    with pytest.raises(RefreshFailedError):
        await harness.manager.ensure_client("u1")

    assert "u1" not in harness.cache
    assert harness.store.get_refresh_token("u1") == "stored-refresh"


@pytest.mark.asyncio
async def test_sdk_refresh_is_persisted_without_losing_refresh_token(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())
    harness.seed(expires_in=timedelta(minutes=30))
    await harness.manager.ensure_client("u1")
    new_expiry = datetime.now(timezone.utc) + timedelta(hours=1)

    harness.manager.handle_provider_refresh(
        "u1", TokenGrant(access_token="sdk-access", expires_at=new_expiry)
    )

    stored = harness.store.get("u1", include_tokens=True)
    assert stored.access_token == "sdk-access"
    assert stored.refresh_token == "stored-refresh"
    assert stored.expires_at == new_expiry
    assert harness.cache.get("u1").access_token == "sdk-access"


@pytest.mark.asyncio
async def test_sdk_refresh_keeps_refresh_token_stored_by_another_worker(
    tmp_path, monkeypatch
) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())
    harness.seed(expires_in=timedelta(minutes=30), refresh_token="rt-old")
    client = await harness.manager.ensure_client("u1")
    # Re-consent handled elsewhere; this process still pools the old handle.
    harness.store.link_account(
        GoogleProfile(google_id="google-u1", email="u1@example.com"),
        TokenGrant(
            access_token="reconsent-access",
            refresh_token="rt-new",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        ),
    )

    def fake_refresh(self, request) -> None:
        self.token = "sdk-access"
        self.expiry = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1)

    monkeypatch.setattr(Credentials, "refresh", fake_refresh)
    client.credentials.refresh(object())

    stored = harness.store.get("u1", include_tokens=True)
    assert stored.access_token == "sdk-access"
    assert stored.refresh_token == "rt-new"


@pytest.mark.asyncio
async def test_sdk_refresh_persists_rotated_refresh_token(tmp_path, monkeypatch) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())
    harness.seed(expires_in=timedelta(minutes=30), refresh_token="rt-old")
    client = await harness.manager.ensure_client("u1")

    def fake_refresh(self, request) -> None:
        self.token = "sdk-access"
        self._refresh_token = "rt-rotated"
        self.expiry = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1)

    monkeypatch.setattr(Credentials, "refresh", fake_refresh)
    client.credentials.refresh(object())

    assert harness.store.get_refresh_token("u1") == "rt-rotated"


def test_sdk_refresh_for_disconnected_user_is_logged_not_raised(tmp_path, caplog) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())

    harness.manager.handle_provider_refresh(
        "gone",
        TokenGrant(access_token="x", expires_at=datetime.now(timezone.utc)),
    )

    assert "gone" not in harness.cache
    assert "Failed to persist SDK-refreshed tokens" in caplog.text


@pytest.mark.asyncio
async def test_link_account_invalidates_cache_and_updates_pooled_client(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())
    harness.seed(expires_in=timedelta(minutes=30))
    client = await harness.manager.ensure_client("u1")

    harness.manager.link_account(
        GoogleProfile(google_id="google-u1", email="u1@example.com"),
        TokenGrant(
            access_token="consented-access",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        ),
    )

    assert "u1" not in harness.cache
    assert client.token == "consented-access"
    assert harness.store.get_refresh_token("u1") == "stored-refresh"


@pytest.mark.asyncio
async def test_disconnect_revokes_and_forgets_everything(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())
    harness.seed(expires_in=timedelta(minutes=30))
    await harness.manager.ensure_client("u1")

    assert await harness.manager.disconnect("u1") is True

    assert harness.oauth.revoked == ["stored-refresh"]
    assert harness.store.get("u1") is None
    assert "u1" not in harness.cache
    assert "u1" not in harness.pool
    with pytest.raises(NotAuthenticatedError):
        await harness.manager.ensure_client("u1")


@pytest.mark.asyncio
async def test_disconnect_survives_revocation_failure(tmp_path) -> None:
    harness = Harness(
        tmp_path,
        DummyOAuthClient(revoke_error=OAuthTokenExchangeError("Revocation endpoint unreachable.")),
    )
    harness.seed(expires_in=timedelta(minutes=30))

    assert await harness.manager.disconnect("u1") is True
    assert harness.store.get("u1") is None


@pytest.mark.asyncio
async def test_disconnect_unknown_user_returns_false(tmp_path) -> None:
    harness = Harness(tmp_path, DummyOAuthClient())

    assert await harness.manager.disconnect("nobody") is False
