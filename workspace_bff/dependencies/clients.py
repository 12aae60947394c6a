"""
Factory functions to provide shared clients and services as FastAPI dependencies.

The token cache, client pool and lifecycle manager are process-wide; the
``lru_cache`` factories below build each of them exactly once.
"""

from datetime import timedelta
from functools import lru_cache

from workspace_bff.clients import (
    DynamoDBClient,
    GmailClient,
    GoogleCalendarClient,
    GoogleOAuthClient,
    GoogleTasksClient,
    OAuthStateEncoder,
    RecordStore,
    SQLiteStore,
)
from workspace_bff.core.config import get_settings
from workspace_bff.services import (
    ClientPool,
    CredentialStore,
    LocalTaskService,
    TokenCache,
    TokenCipherService,
    TokenLifecycleManager,
    google_client_factory,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_record_store() -> RecordStore:
    """Provide the configured document store (SQLite locally, DynamoDB in AWS)."""
    storage = _settings().storage
    if storage.backend == "dynamodb":
        return DynamoDBClient(storage)
    return SQLiteStore(storage.sqlite_path)


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder derived from the Google client secret."""
    settings = _settings()
    return OAuthStateEncoder(
        secret_key=settings.google.client_secret,
        ttl_seconds=settings.oauth.state_ttl_seconds,
    )


@lru_cache()
def get_google_oauth_client() -> GoogleOAuthClient:
    """Create a singleton Google OAuth client."""
    settings = _settings()
    return GoogleOAuthClient(
        settings.google,
        settings.oauth,
        timeout_seconds=settings.tokens.exchange_timeout_seconds,
    )


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.google.client_secret
    return TokenCipherService(secret=secret)


@lru_cache()
def get_credential_store() -> CredentialStore:
    return CredentialStore(get_record_store(), get_token_cipher_service())


@lru_cache()
def get_token_cache() -> TokenCache:
    return TokenCache(default_ttl_seconds=_settings().tokens.cache_ttl_seconds)


@lru_cache()
def get_client_pool() -> ClientPool:
    settings = _settings()
    factory = google_client_factory(
        client_id=settings.google.client_id,
        client_secret=settings.google.client_secret,
        token_uri=GoogleOAuthClient.TOKEN_URL,
    )
    return ClientPool(factory, capacity=settings.tokens.client_pool_size)


@lru_cache()
def get_token_lifecycle_manager() -> TokenLifecycleManager:
    """Provide the process-wide token lifecycle manager."""
    tokens = _settings().tokens
    return TokenLifecycleManager(
        credential_store=get_credential_store(),
        token_cache=get_token_cache(),
        client_pool=get_client_pool(),
        oauth_client=get_google_oauth_client(),
        cache_ttl_seconds=tokens.cache_ttl_seconds,
        refresh_margin=timedelta(seconds=tokens.refresh_margin_seconds),
    )


@lru_cache()
def get_gmail_client() -> GmailClient:
    return GmailClient(get_token_lifecycle_manager(), _settings().provider)


@lru_cache()
def get_calendar_client() -> GoogleCalendarClient:
    return GoogleCalendarClient(get_token_lifecycle_manager(), _settings().provider)


@lru_cache()
def get_tasks_client() -> GoogleTasksClient:
    return GoogleTasksClient(get_token_lifecycle_manager(), _settings().provider)


def get_local_task_service() -> LocalTaskService:
    """Build a local task service over the shared record store."""
    return LocalTaskService(get_record_store())


__all__ = [
    "get_calendar_client",
    "get_client_pool",
    "get_credential_store",
    "get_gmail_client",
    "get_google_oauth_client",
    "get_local_task_service",
    "get_oauth_state_encoder",
    "get_record_store",
    "get_tasks_client",
    "get_token_cache",
    "get_token_cipher_service",
    "get_token_lifecycle_manager",
]
