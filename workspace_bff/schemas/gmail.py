"""Request models for Gmail endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

MAX_MESSAGE_RESULTS = 50


class ListMessagesParams(BaseModel):
    """Filters for listing the user's messages."""

    query: str = Field("", description="Gmail search expression (same syntax as the Gmail UI).")
    max_results: int = Field(
        10,
        ge=1,
        description=f"Requested page size; never more than {MAX_MESSAGE_RESULTS} are fetched.",
    )

    @property
    def capped_max_results(self) -> int:
        return min(self.max_results, MAX_MESSAGE_RESULTS)


class SendMessageRequest(BaseModel):
    """A single outbound email."""

    to: str = Field(..., min_length=3, description="Recipient address or address list.")
    subject: str = Field(..., max_length=998)
    body: str = Field(..., description="Message body, plain text unless is_html is set.")
    is_html: bool = Field(False, description="Send the body as text/html.")


__all__ = ["ListMessagesParams", "MAX_MESSAGE_RESULTS", "SendMessageRequest"]
