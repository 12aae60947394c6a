"""Request models for Calendar endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_EVENT_RESULTS = 50


class ListEventsParams(BaseModel):
    """Window and ordering for an events listing.

    ``time_min`` defaults to "now" at call time when left unset.
    """

    calendar_id: str = Field("primary", description="Calendar to read from.")
    time_min: Optional[datetime] = None
    time_max: Optional[datetime] = None
    max_results: int = Field(10, ge=1)
    single_events: bool = Field(True, description="Expand recurring events into instances.")
    order_by: str = Field("startTime", pattern="^(startTime|updated)$")

    @property
    def capped_max_results(self) -> int:
        return min(self.max_results, MAX_EVENT_RESULTS)


class EventPayload(BaseModel):
    """Calendar event body forwarded to Google as-is.

    Only ``summary``, ``start`` and ``end`` are checked; any other Calendar
    event field is passed through untouched.
    """

    model_config = ConfigDict(extra="allow")

    summary: str = Field(..., min_length=1)
    start: Dict[str, Any]
    end: Dict[str, Any]
    description: Optional[str] = None
    location: Optional[str] = None

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


__all__ = ["EventPayload", "ListEventsParams", "MAX_EVENT_RESULTS"]
