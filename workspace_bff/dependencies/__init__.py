"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_calendar_client,
    get_client_pool,
    get_credential_store,
    get_gmail_client,
    get_google_oauth_client,
    get_local_task_service,
    get_oauth_state_encoder,
    get_record_store,
    get_tasks_client,
    get_token_cache,
    get_token_cipher_service,
    get_token_lifecycle_manager,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
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
