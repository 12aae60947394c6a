"""Short-lived, process-wide cache of credential snapshots keyed by user."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from workspace_bff.models.oauth import CredentialSnapshot


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    snapshot: CredentialSnapshot
    deadline: float


class TokenCache:
    """Avoids a store read on every provider call.

    Entries expire after a TTL shorter than the access-token lifetime. A miss
    always falls through to the credential store, so losing an entry is never
    a correctness problem.
    """

    def __init__(
        self,
        default_ttl_seconds: float = 3000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: Dict[str, _CacheEntry] = {}
        self._default_ttl = default_ttl_seconds
        self._clock = clock

    def get(self, user_id: str) -> Optional[CredentialSnapshot]:
        entry = self._entries.get(user_id)
        if entry is None:
            return None
        if entry.deadline <= self._clock():
            # Only drop the entry we inspected; a concurrent set() may have replaced it.
            if self._entries.get(user_id) is entry:
                self._entries.pop(user_id, None)
            return None
        return entry.snapshot

    def set(
        self,
        user_id: str,
        snapshot: CredentialSnapshot,
        ttl_seconds: Optional[float] = None,
    ) -> None:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        self._entries[user_id] = _CacheEntry(snapshot=snapshot, deadline=self._clock() + ttl)

    def invalidate(self, user_id: str) -> None:
        self._entries.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._entries


__all__ = ["TokenCache"]
