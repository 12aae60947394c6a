"""Google Calendar client wrapper."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from workspace_bff.clients.google_workspace import GoogleApiWrapper
from workspace_bff.core.datetime_utils import to_rfc3339, utcnow
from workspace_bff.schemas.calendar import ListEventsParams


class GoogleCalendarClient(GoogleApiWrapper):
    """List and manage events in a user's calendars."""

    api_name = "calendar"
    api_version = "v3"

    async def list_events(
        self, *, user_id: str, params: Optional[ListEventsParams] = None
    ) -> List[Dict[str, Any]]:
        """Return events in the requested window, starting now by default."""
        params = params or ListEventsParams()
        query: Dict[str, Any] = {
            "calendarId": params.calendar_id,
            "timeMin": to_rfc3339(params.time_min or utcnow()),
            "maxResults": params.capped_max_results,
            "singleEvents": params.single_events,
            "orderBy": params.order_by,
        }
        if params.time_max is not None:
            query["timeMax"] = to_rfc3339(params.time_max)

        response = await self._execute(
            user_id=user_id,
            operation="calendar.list_events",
            build_request=lambda service: service.events().list(**query),
        )
        return response.get("items", [])

    async def insert_event(
        self, *, user_id: str, event: Dict[str, Any], calendar_id: str = "primary"
    ) -> Dict[str, Any]:
        return await self._execute(
            user_id=user_id,
            operation="calendar.insert_event",
            build_request=lambda service: service.events().insert(
                calendarId=calendar_id, body=event
            ),
            timeout=self.send_timeout,
        )

    async def update_event(
        self,
        *,
        user_id: str,
        event_id: str,
        event: Dict[str, Any],
        calendar_id: str = "primary",
    ) -> Dict[str, Any]:
        return await self._execute(
            user_id=user_id,
            operation="calendar.update_event",
            build_request=lambda service: service.events().update(
                calendarId=calendar_id, eventId=event_id, body=event
            ),
            timeout=self.send_timeout,
        )

    async def delete_event(
        self, *, user_id: str, event_id: str, calendar_id: str = "primary"
    ) -> None:
        await self._execute(
            user_id=user_id,
            operation="calendar.delete_event",
            build_request=lambda service: service.events().delete(
                calendarId=calendar_id, eventId=event_id
            ),
            timeout=self.send_timeout,
        )


__all__ = ["GoogleCalendarClient"]
