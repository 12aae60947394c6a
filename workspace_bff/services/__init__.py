"""Service layer exports."""

from .client_pool import ClientPool, google_client_factory
from .credential_store import CredentialStore
from .local_tasks import LocalTaskService
from .token_cache import TokenCache
from .token_cipher import TokenCipherService
from .token_lifecycle import TokenLifecycleManager

__all__ = [
    "ClientPool",
    "CredentialStore",
    "LocalTaskService",
    "TokenCache",
    "TokenCipherService",
    "TokenLifecycleManager",
    "google_client_factory",
]
