"""Gmail client wrapper: profile, message listing and sending."""

from __future__ import annotations

import base64
import logging
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional

from google_auth_httplib2 import AuthorizedHttp

from workspace_bff.clients.google_workspace import GoogleApiWrapper
from workspace_bff.schemas.gmail import ListMessagesParams, SendMessageRequest

logger = logging.getLogger(__name__)


def build_raw_message(message: SendMessageRequest) -> str:
    """Encode an outbound message as the base64url ``raw`` field Gmail expects."""
    mime = MIMEText(message.body, "html" if message.is_html else "plain", "utf-8")
    mime["To"] = message.to
    mime["Subject"] = message.subject
    return base64.urlsafe_b64encode(mime.as_bytes()).decode("ascii")


class GmailClient(GoogleApiWrapper):
    """Read and send mail on behalf of a connected user."""

    api_name = "gmail"
    api_version = "v1"

    async def get_profile(self, *, user_id: str) -> Dict[str, Any]:
        return await self._execute(
            user_id=user_id,
            operation="gmail.get_profile",
            build_request=lambda service: service.users().getProfile(userId="me"),
        )

    async def list_messages(
        self, *, user_id: str, params: Optional[ListMessagesParams] = None
    ) -> List[Dict[str, Any]]:
        """List matching messages with full payloads.

        Details for all listed ids are fetched in one batch request. A message
        that fails to load is logged and left out.
        """
        params = params or ListMessagesParams()
        limit = params.capped_max_results

        def _work(service: Any, http: AuthorizedHttp) -> List[Dict[str, Any]]:
            messages = service.users().messages()
            listing = messages.list(userId="me", q=params.query, maxResults=limit).execute(
                http=http
            )
            refs = (listing.get("messages") or [])[:limit]
            if not refs:
                return []

            fetched: Dict[str, Dict[str, Any]] = {}

            def _collect(request_id: str, response: Any, exception: Optional[Exception]) -> None:
                if exception is not None:
                    logger.warning(
                        "Skipping Gmail message %s for user %s: %s",
                        request_id,
                        user_id,
                        exception,
                    )
                    return
                fetched[request_id] = response

            batch = service.new_batch_http_request(callback=_collect)
            for ref in refs:
                batch.add(
                    messages.get(userId="me", id=ref["id"], format="full"),
                    request_id=ref["id"],
                )
            batch.execute(http=http)
            return [fetched[ref["id"]] for ref in refs if ref["id"] in fetched]

        return await self._with_service(
            user_id=user_id, operation="gmail.list_messages", work=_work
        )

    async def send_message(self, *, user_id: str, message: SendMessageRequest) -> Dict[str, Any]:
        raw = build_raw_message(message)
        return await self._execute(
            user_id=user_id,
            operation="gmail.send_message",
            build_request=lambda service: service.users()
            .messages()
            .send(userId="me", body={"raw": raw}),
            timeout=self.send_timeout,
        )


__all__ = ["GmailClient", "build_raw_message"]
