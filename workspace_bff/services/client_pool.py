"""Process-wide pool of authorized Google clients, one per user."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Callable, List, Optional

from workspace_bff.clients.google_workspace import GoogleWorkspaceClient, RefreshListener
from workspace_bff.core.errors import NotAuthenticatedError
from workspace_bff.models.oauth import CredentialSnapshot

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, CredentialSnapshot, Optional[RefreshListener]], GoogleWorkspaceClient]


class ClientPool:
    """Reuses client handles across requests.

    When the pool grows past ``capacity`` the oldest inserted handle is dropped.
    Eviction only costs a rebuild from the stored credential.
    """

    DEFAULT_CAPACITY = 100

    def __init__(
        self,
        client_factory: ClientFactory,
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        if capacity < 1:
            raise ValueError("Client pool capacity must be positive.")
        self._factory = client_factory
        self._capacity = capacity
        self._clients: "OrderedDict[str, GoogleWorkspaceClient]" = OrderedDict()
        self._listeners: List[RefreshListener] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def register_refresh_listener(self, listener: RefreshListener) -> None:
        """Every handle built afterwards reports SDK refreshes to ``listener``."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def _notify(self, user_id: str, grant) -> None:
        for listener in list(self._listeners):
            listener(user_id, grant)

    def acquire(
        self, user_id: str, snapshot: Optional[CredentialSnapshot] = None
    ) -> GoogleWorkspaceClient:
        client = self._clients.get(user_id)
        if client is not None:
            if snapshot is not None and snapshot.access_token != client.token:
                client.update_credentials(snapshot)
            return client

        if snapshot is None:
            raise NotAuthenticatedError(
                "No credentials available to build a Google client.", user_id=user_id
            )

        client = self._factory(user_id, snapshot, self._notify)
        self._clients[user_id] = client
        while len(self._clients) > self._capacity:
            evicted_user, _ = self._clients.popitem(last=False)
            logger.debug("Evicted pooled Google client for user %s", evicted_user)
        return client

    def get(self, user_id: str) -> Optional[GoogleWorkspaceClient]:
        return self._clients.get(user_id)

    def discard(self, user_id: str) -> None:
        self._clients.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._clients


def google_client_factory(
    *, client_id: str, client_secret: str, token_uri: Optional[str] = None
) -> ClientFactory:
    """Factory producing real ``GoogleWorkspaceClient`` handles."""

    def _build(
        user_id: str,
        snapshot: CredentialSnapshot,
        listener: Optional[RefreshListener],
    ) -> GoogleWorkspaceClient:
        kwargs = {"token_uri": token_uri} if token_uri else {}
        return GoogleWorkspaceClient(
            user_id,
            snapshot,
            client_id=client_id,
            client_secret=client_secret,
            on_tokens_refreshed=listener,
            **kwargs,
        )

    return _build


__all__ = ["ClientFactory", "ClientPool", "google_client_factory"]
