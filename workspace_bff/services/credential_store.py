"""
Durable storage of users' Google credentials.

Credentials live in the document store under ``user#{user_id}`` /
``oauth#google`` with both tokens encrypted. Two link records let the consent
callback find an existing user by Google account id or by email.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional

from workspace_bff.clients.record_store import RecordStore
from workspace_bff.core.datetime_utils import parse_datetime, utcnow
from workspace_bff.models.oauth import (
    CredentialSnapshot,
    GoogleProfile,
    TokenGrant,
    UserCredential,
)
from workspace_bff.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

CREDENTIAL_SORT_KEY = "oauth#google"
LINK_SORT_KEY = "link"


def _user_key(user_id: str) -> str:
    return f"user#{user_id}"


def _google_key(google_id: str) -> str:
    return f"google#{google_id}"


def _email_key(email: str) -> str:
    return f"email#{email.strip().lower()}"


class CredentialStore:
    """Reads and writes ``UserCredential`` documents.

    Token fields are only decrypted when a caller asks for them. Writes never
    replace a stored refresh token with an empty one.
    """

    def __init__(
        self,
        record_store: RecordStore,
        token_cipher: TokenCipherService,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = record_store
        self._cipher = token_cipher
        self._clock = clock

    def _load_record(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._store.get_item(
            partition_key=_user_key(user_id), sort_key=CREDENTIAL_SORT_KEY
        )

    def _to_credential(
        self, record: Dict[str, Any], *, include_tokens: bool
    ) -> UserCredential:
        expires_at = record.get("expires_at")
        created_at = record.get("created_at")
        updated_at = record.get("updated_at")
        credential = UserCredential(
            user_id=record["user_id"],
            provider=record.get("provider", "google"),
            google_id=record.get("google_id"),
            email=record.get("email"),
            name=record.get("name"),
            picture=record.get("picture"),
            scopes=list(record.get("scopes") or []),
            expires_at=parse_datetime(expires_at) if expires_at else None,
            created_at=parse_datetime(created_at) if created_at else None,
            updated_at=parse_datetime(updated_at) if updated_at else None,
        )
        if include_tokens:
            credential.access_token = self._cipher.decrypt_optional(
                record.get("access_token_encrypted")
            )
            credential.refresh_token = self._cipher.decrypt_optional(
                record.get("refresh_token_encrypted")
            )
        return credential

    def get(self, user_id: str, *, include_tokens: bool = False) -> Optional[UserCredential]:
        """Return the user's credential, with token fields only when requested."""
        record = self._load_record(user_id)
        if record is None:
            return None
        return self._to_credential(record, include_tokens=include_tokens)

    def get_snapshot(self, user_id: str) -> Optional[CredentialSnapshot]:
        credential = self.get(user_id, include_tokens=True)
        if credential is None:
            return None
        return credential.to_snapshot()

    def get_refresh_token(self, user_id: str) -> Optional[str]:
        record = self._load_record(user_id)
        if record is None:
            return None
        return self._cipher.decrypt_optional(record.get("refresh_token_encrypted"))

    def update_tokens(
        self,
        user_id: str,
        *,
        access_token: str,
        expires_at: datetime,
        refresh_token: Optional[str] = None,
        scopes: Optional[Iterable[str]] = None,
    ) -> CredentialSnapshot:
        """Persist refreshed token values.

        The existing refresh token survives unless a non-empty replacement is
        supplied, and empty ``scopes`` keep the stored ones.
        """
        record = self._load_record(user_id)
        if record is None:
            raise LookupError(f"No credential stored for user {user_id}.")

        record["access_token_encrypted"] = self._cipher.encrypt(access_token)
        if refresh_token:
            record["refresh_token_encrypted"] = self._cipher.encrypt(refresh_token)
        scope_list = list(scopes or [])
        if scope_list:
            record["scopes"] = scope_list
        record["expires_at"] = expires_at.isoformat()
        record["updated_at"] = self._clock().isoformat()
        # Conditional so a credential deleted since the read stays deleted.
        self._store.replace_item(record)

        return CredentialSnapshot(
            access_token=access_token,
            refresh_token=self._cipher.decrypt_optional(record.get("refresh_token_encrypted")),
            expires_at=expires_at,
            scopes=tuple(record.get("scopes") or ()),
        )

    def find_user_id(
        self, *, google_id: Optional[str] = None, email: Optional[str] = None
    ) -> Optional[str]:
        """Resolve a user by Google account id first, then by email."""
        candidates = []
        if google_id:
            candidates.append(_google_key(google_id))
        if email:
            candidates.append(_email_key(email))
        for partition_key in candidates:
            link = self._store.get_item(partition_key=partition_key, sort_key=LINK_SORT_KEY)
            if link and link.get("user_id"):
                return link["user_id"]
        return None

    def link_account(
        self,
        profile: GoogleProfile,
        grant: TokenGrant,
        *,
        user_id: Optional[str] = None,
    ) -> UserCredential:
        """Create or update the credential produced by a consent round trip."""
        resolved_user_id = (
            user_id
            or self.find_user_id(google_id=profile.google_id, email=profile.email)
            or uuid.uuid4().hex
        )
        now = self._clock().isoformat()
        record = self._load_record(resolved_user_id)
        is_new = record is None
        if record is None:
            record = {
                "pk": _user_key(resolved_user_id),
                "sk": CREDENTIAL_SORT_KEY,
                "user_id": resolved_user_id,
                "provider": "google",
                "created_at": now,
            }

        record.update(
            {
                "google_id": profile.google_id,
                "email": profile.email or record.get("email"),
                "name": profile.name or record.get("name"),
                "picture": profile.picture or record.get("picture"),
                "access_token_encrypted": self._cipher.encrypt(grant.access_token),
                "expires_at": grant.expires_at.isoformat(),
                "updated_at": now,
            }
        )
        if grant.refresh_token:
            record["refresh_token_encrypted"] = self._cipher.encrypt(grant.refresh_token)
        if grant.scopes:
            record["scopes"] = list(grant.scopes)
        self._store.put_item(record)

        self._store.put_item(
            {
                "pk": _google_key(profile.google_id),
                "sk": LINK_SORT_KEY,
                "user_id": resolved_user_id,
            }
        )
        if profile.email:
            self._store.put_item(
                {
                    "pk": _email_key(profile.email),
                    "sk": LINK_SORT_KEY,
                    "user_id": resolved_user_id,
                }
            )

        if not record.get("refresh_token_encrypted"):
            logger.warning(
                "Google account linked for user %s without a refresh token", resolved_user_id
            )
        logger.info(
            "%s Google credential for user %s",
            "Created" if is_new else "Updated",
            resolved_user_id,
        )
        return self._to_credential(record, include_tokens=True)

    def delete(self, user_id: str) -> bool:
        """Remove the credential and its link records. Returns whether one existed."""
        record = self._load_record(user_id)
        if record is None:
            return False
        if record.get("google_id"):
            self._store.delete_item(
                partition_key=_google_key(record["google_id"]), sort_key=LINK_SORT_KEY
            )
        if record.get("email"):
            self._store.delete_item(
                partition_key=_email_key(record["email"]), sort_key=LINK_SORT_KEY
            )
        self._store.delete_item(partition_key=_user_key(user_id), sort_key=CREDENTIAL_SORT_KEY)
        return True


__all__ = ["CredentialStore"]
