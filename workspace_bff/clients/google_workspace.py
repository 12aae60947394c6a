"""
Authorized per-user handle onto the Gmail, Calendar and Tasks APIs.

The handle is what the client pool stores. It wraps a google-auth
``Credentials`` subclass that reports SDK-initiated refreshes back to the token
lifecycle, and it hands out discovery resources plus a fresh ``AuthorizedHttp``
per request so concurrent worker threads never share an ``httplib2.Http``.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple, TypeVar

import httplib2
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from workspace_bff.core.config import ProviderSettings
from workspace_bff.core.datetime_utils import ensure_utc, to_naive_utc, utcnow
from workspace_bff.core.errors import (
    ProviderCallFailedError,
    ReauthRequiredError,
    RefreshFailedError,
)
from workspace_bff.models.oauth import CredentialSnapshot, TokenGrant

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from workspace_bff.services.token_lifecycle import TokenLifecycleManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

RefreshListener = Callable[[str, TokenGrant], None]

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class ObservedCredentials(Credentials):
    """Credentials that report refreshes performed by the Google SDK itself."""

    def __init__(
        self,
        *args: Any,
        on_refresh: Optional[Callable[["ObservedCredentials"], None]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._on_refresh = on_refresh

    def refresh(self, request: Any) -> None:
        super().refresh(request)
        if self._on_refresh is not None:
            self._on_refresh(self)


class GoogleWorkspaceClient:
    """A user's pre-authorized, reusable API handle."""

    def __init__(
        self,
        user_id: str,
        snapshot: CredentialSnapshot,
        *,
        client_id: str,
        client_secret: str,
        token_uri: str = GOOGLE_TOKEN_URI,
        on_tokens_refreshed: Optional[RefreshListener] = None,
    ) -> None:
        self.user_id = user_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_uri = token_uri
        self._listener = on_tokens_refreshed
        self._services: Dict[Tuple[str, str], Any] = {}
        self._issued_refresh_token: Optional[str] = None
        self._credentials = self._build_credentials(snapshot)

    def __repr__(self) -> str:
        return f"GoogleWorkspaceClient(user_id={self.user_id!r})"

    @property
    def credentials(self) -> ObservedCredentials:
        return self._credentials

    @property
    def token(self) -> Optional[str]:
        return self._credentials.token

    def _build_credentials(self, snapshot: CredentialSnapshot) -> ObservedCredentials:
        self._issued_refresh_token = snapshot.refresh_token
        return ObservedCredentials(
            token=snapshot.access_token,
            refresh_token=snapshot.refresh_token,
            token_uri=self._token_uri,
            client_id=self._client_id,
            client_secret=self._client_secret,
            expiry=to_naive_utc(snapshot.expires_at),
            on_refresh=self._handle_sdk_refresh,
        )

    def update_credentials(self, snapshot: CredentialSnapshot) -> None:
        """Swap in new token values while keeping this handle's identity."""
        self._credentials = self._build_credentials(snapshot)
        self._services.clear()

    def _handle_sdk_refresh(self, credentials: ObservedCredentials) -> None:
        if self._listener is None or not credentials.token:
            return
        # google-auth keeps the refresh token it was built with unless Google
        # rotates it; only a rotated one may replace the stored value.
        rotated = credentials.refresh_token or None
        if rotated is None or rotated == self._issued_refresh_token:
            rotated = None
        else:
            self._issued_refresh_token = rotated
        expiry = credentials.expiry
        self._listener(
            self.user_id,
            TokenGrant(
                access_token=credentials.token,
                refresh_token=rotated,
                expires_at=ensure_utc(expiry) if expiry else utcnow() + timedelta(hours=1),
                scopes=tuple(getattr(credentials, "granted_scopes", None) or ()),
            ),
        )

    def service(self, api_name: str, api_version: str) -> Any:
        key = (api_name, api_version)
        resource = self._services.get(key)
        if resource is None:
            resource = build(
                api_name,
                api_version,
                credentials=self._credentials,
                cache_discovery=False,
            )
            self._services[key] = resource
        return resource

    def authorized_http(self, timeout: float) -> AuthorizedHttp:
        return AuthorizedHttp(self._credentials, http=httplib2.Http(timeout=timeout))


def _http_error_message(exc: HttpError) -> str:
    reason = getattr(exc, "reason", None)
    return reason or str(exc)


def _is_invalid_grant(exc: RefreshError) -> bool:
    """google-auth puts the token endpoint's error code in the message and body."""
    return any("invalid_grant" in str(arg) for arg in exc.args)


class GoogleApiWrapper:
    """Shared plumbing for the provider call wrappers.

    Every call obtains a ready client from the token lifecycle, runs exactly one
    request on a worker thread and translates transport failures. Retries are
    left to the caller.
    """

    api_name: str = ""
    api_version: str = ""

    def __init__(
        self,
        lifecycle: "TokenLifecycleManager",
        settings: Optional[ProviderSettings] = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._settings = settings or ProviderSettings()

    @property
    def read_timeout(self) -> float:
        return self._settings.read_timeout_seconds

    @property
    def send_timeout(self) -> float:
        return self._settings.send_timeout_seconds

    async def _execute(
        self,
        *,
        user_id: str,
        operation: str,
        build_request: Callable[[Any], Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """Build one request against the API resource and execute it."""

        def _work(service: Any, http: AuthorizedHttp) -> Any:
            return build_request(service).execute(http=http)

        return await self._with_service(
            user_id=user_id, operation=operation, work=_work, timeout=timeout
        )

    async def _with_service(
        self,
        *,
        user_id: str,
        operation: str,
        work: Callable[[Any, AuthorizedHttp], T],
        timeout: Optional[float] = None,
    ) -> T:
        client = await self._lifecycle.ensure_client(user_id)
        http_timeout = timeout or self.read_timeout

        def _run() -> T:
            service = client.service(self.api_name, self.api_version)
            return work(service, client.authorized_http(http_timeout))

        return await self._run_in_thread(user_id=user_id, operation=operation, func=_run)

    async def _run_in_thread(
        self, *, user_id: str, operation: str, func: Callable[[], T]
    ) -> T:
        try:
            return await asyncio.to_thread(func)
        except HttpError as exc:
            status_code = getattr(exc.resp, "status", None)
            logger.warning(
                "%s failed for user %s with provider status %s",
                operation,
                user_id,
                status_code,
            )
            raise ProviderCallFailedError(
                _http_error_message(exc),
                operation=operation,
                status_code=int(status_code) if status_code else None,
                user_id=user_id,
            ) from exc
        except RefreshError as exc:
            logger.warning("Automatic token refresh failed during %s for user %s", operation, user_id)
            self._lifecycle.invalidate_cached_tokens(user_id)
            if _is_invalid_grant(exc):
                raise ReauthRequiredError(
                    "Google rejected the refresh token; reconnect your account.",
                    user_id=user_id,
                ) from exc
            raise RefreshFailedError(
                "Token refresh failed - user may need to re-authenticate",
                user_id=user_id,
            ) from exc
        except (httplib2.HttpLib2Error, OSError) as exc:
            logger.warning(
                "%s failed for user %s: %s", operation, user_id, exc.__class__.__name__
            )
            raise ProviderCallFailedError(
                f"{operation} did not complete ({exc.__class__.__name__}).",
                operation=operation,
                user_id=user_id,
            ) from exc


__all__ = [
    "GOOGLE_TOKEN_URI",
    "GoogleApiWrapper",
    "GoogleWorkspaceClient",
    "ObservedCredentials",
    "RefreshListener",
]
