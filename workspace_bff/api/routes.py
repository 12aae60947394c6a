"""
FastAPI routes for the Google Workspace backend-for-frontend.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from workspace_bff.clients.google_auth import OAuthTokenExchangeError
from workspace_bff.clients.google_tasks import DEFAULT_TASKLIST
from workspace_bff.core.datetime_utils import day_bounds, utcnow
from workspace_bff.core.errors import NotAuthenticatedError
from workspace_bff.dependencies import (
    get_app_settings,
    get_calendar_client,
    get_credential_store,
    get_gmail_client,
    get_google_oauth_client,
    get_local_task_service,
    get_oauth_state_encoder,
    get_tasks_client,
    get_token_lifecycle_manager,
)
from workspace_bff.schemas import (
    AuthorizeResponse,
    CallbackResult,
    EventPayload,
    ListEventsParams,
    ListMessagesParams,
    ListTasksParams,
    LocalTask,
    LocalTaskCreate,
    LocalTaskPage,
    LocalTaskUpdate,
    MoveTaskParams,
    OAuthCallbackPayload,
    SendMessageRequest,
    TaskCreate,
    TaskListCreate,
    TaskUpdate,
)
from workspace_bff.schemas.local_tasks import TaskPriority, TaskStatus

router = APIRouter()
logger = logging.getLogger(__name__)

UserId = Annotated[
    str,
    Query(..., min_length=1, description="Application-level identifier for the user."),
]


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


# --- Google OAuth -----------------------------------------------------------


@router.get("/auth/google/authorize", status_code=HTTPStatus.OK)
async def start_google_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_google_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    user_id: Optional[str] = Query(
        default=None,
        description="Existing user to attach the Google account to; omitted for new users.",
    ),
    redirect_to: Optional[str] = Query(
        default=None,
        description="Optional URL to redirect back to on successful authentication.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Google consent screen.",
    ),
    force_consent: bool = Query(
        default=False,
        description="Show the consent screen again so Google issues a new refresh token.",
    ),
) -> Any:
    """
    Kick off the OAuth flow by generating a state token and authorization URL.
    """
    state = state_encoder.encode(
        {"nonce": uuid.uuid4().hex, "redirect_to": redirect_to, "user_id": user_id}
    )
    authorization_url = oauth_client.build_authorization_url(
        state=state, force_consent=force_consent
    )

    if redirect or _wants_html(request):
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return AuthorizeResponse(authorization_url=authorization_url, state=state)


@router.post("/auth/google/callback", response_model=CallbackResult)
async def handle_google_oauth_callback(
    payload: OAuthCallbackPayload,
    oauth_client: Annotated[Any, Depends(get_google_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    lifecycle: Annotated[Any, Depends(get_token_lifecycle_manager)],
) -> CallbackResult:
    """Complete the OAuth exchange, store tokens, and return redirect metadata."""
    state_data = state_encoder.decode(payload.state)

    try:
        grant = await oauth_client.exchange_authorization_code(payload.code)
        profile = await oauth_client.fetch_user_profile(grant.access_token)
    except OAuthTokenExchangeError as exc:
        logger.warning("OAuth callback failed: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange authorization code.",
        ) from exc

    credential = lifecycle.link_account(profile, grant, user_id=state_data.get("user_id"))
    return CallbackResult(
        user_id=credential.user_id,
        email=credential.email,
        scopes=credential.scopes,
        has_refresh_token=credential.has_refresh_token,
        redirect_to=state_data.get("redirect_to"),
    )


@router.get("/auth/google/callback", status_code=HTTPStatus.OK)
async def handle_google_oauth_callback_get(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_google_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    lifecycle: Annotated[Any, Depends(get_token_lifecycle_manager)],
    settings: Annotated[Any, Depends(get_app_settings)],
    state: str = Query(..., description="OAuth state token."),
    code: str = Query(..., description="Authorization code returned by Google."),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    result = await handle_google_oauth_callback(
        payload=OAuthCallbackPayload(state=state, code=code),
        oauth_client=oauth_client,
        state_encoder=state_encoder,
        lifecycle=lifecycle,
    )

    redirect_target = result.redirect_to or settings.frontend_base_url
    if redirect_target and (redirect or _wants_html(request)):
        return RedirectResponse(url=str(redirect_target), status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return JSONResponse(content=result.model_dump())


@router.get("/auth/google/profile")
async def get_google_profile(
    user_id: UserId,
    credential_store: Annotated[Any, Depends(get_credential_store)],
) -> dict:
    credential = credential_store.get(user_id)
    if credential is None:
        raise NotAuthenticatedError("Google account not connected.", user_id=user_id)
    return {
        "profile": credential.model_dump(mode="json"),
        "has_refresh_token": bool(credential_store.get_refresh_token(user_id)),
    }


@router.delete("/auth/google/disconnect")
async def disconnect_google_account(
    user_id: UserId,
    lifecycle: Annotated[Any, Depends(get_token_lifecycle_manager)],
) -> dict:
    if not await lifecycle.disconnect(user_id):
        raise NotAuthenticatedError("Google account not connected.", user_id=user_id)
    return {"status": "disconnected"}


# --- Gmail ------------------------------------------------------------------


@router.get("/gmail/profile")
async def get_gmail_profile(
    user_id: UserId,
    gmail: Annotated[Any, Depends(get_gmail_client)],
) -> dict:
    return {"profile": await gmail.get_profile(user_id=user_id)}


@router.get("/gmail/messages")
async def list_gmail_messages(
    user_id: UserId,
    gmail: Annotated[Any, Depends(get_gmail_client)],
    query: str = Query(default="", description="Gmail search expression."),
    max_results: int = Query(default=10, ge=1),
) -> dict:
    messages = await gmail.list_messages(
        user_id=user_id, params=ListMessagesParams(query=query, max_results=max_results)
    )
    return {"count": len(messages), "messages": messages}


@router.get("/gmail/search")
async def search_gmail_messages(
    user_id: UserId,
    gmail: Annotated[Any, Depends(get_gmail_client)],
    q: str = Query(..., min_length=1, description="Search query is required."),
    max_results: int = Query(default=20, ge=1),
) -> dict:
    messages = await gmail.list_messages(
        user_id=user_id, params=ListMessagesParams(query=q, max_results=max_results)
    )
    return {"query": q, "count": len(messages), "messages": messages}


@router.post("/gmail/send", status_code=HTTPStatus.CREATED)
async def send_gmail_message(
    payload: SendMessageRequest,
    user_id: UserId,
    gmail: Annotated[Any, Depends(get_gmail_client)],
) -> dict:
    result = await gmail.send_message(user_id=user_id, message=payload)
    return {"message": "Email sent successfully", "result": result}


# --- Calendar ---------------------------------------------------------------


@router.get("/calendar/events")
async def list_calendar_events(
    user_id: UserId,
    calendar: Annotated[Any, Depends(get_calendar_client)],
    calendar_id: str = Query(default="primary"),
    time_min: Optional[datetime] = Query(default=None, description="RFC 3339 lower bound."),
    time_max: Optional[datetime] = Query(default=None, description="RFC 3339 upper bound."),
    max_results: int = Query(default=20, ge=1),
) -> dict:
    params = ListEventsParams(
        calendar_id=calendar_id,
        time_min=time_min,
        time_max=time_max,
        max_results=max_results,
    )
    events = await calendar.list_events(user_id=user_id, params=params)
    return {"count": len(events), "events": events}


@router.get("/calendar/today")
async def list_today_events(
    user_id: UserId,
    calendar: Annotated[Any, Depends(get_calendar_client)],
) -> dict:
    now = utcnow()
    start, end = day_bounds(now)
    events = await calendar.list_events(
        user_id=user_id,
        params=ListEventsParams(time_min=start, time_max=end, max_results=50),
    )
    return {"date": now.date().isoformat(), "count": len(events), "events": events}


@router.get("/calendar/upcoming")
async def list_upcoming_events(
    user_id: UserId,
    calendar: Annotated[Any, Depends(get_calendar_client)],
) -> dict:
    now = utcnow()
    next_week = now + timedelta(days=7)
    events = await calendar.list_events(
        user_id=user_id,
        params=ListEventsParams(time_min=now, time_max=next_week, max_results=50),
    )
    return {
        "period": {"start": now.isoformat(), "end": next_week.isoformat()},
        "count": len(events),
        "events": events,
    }


@router.post("/calendar/events", status_code=HTTPStatus.CREATED)
async def create_calendar_event(
    payload: EventPayload,
    user_id: UserId,
    calendar: Annotated[Any, Depends(get_calendar_client)],
    calendar_id: str = Query(default="primary"),
) -> dict:
    event = await calendar.insert_event(
        user_id=user_id, event=payload.to_body(), calendar_id=calendar_id
    )
    return {"event": event}


@router.put("/calendar/events/{event_id}")
async def update_calendar_event(
    event_id: str,
    payload: EventPayload,
    user_id: UserId,
    calendar: Annotated[Any, Depends(get_calendar_client)],
    calendar_id: str = Query(default="primary"),
) -> dict:
    event = await calendar.update_event(
        user_id=user_id, event_id=event_id, event=payload.to_body(), calendar_id=calendar_id
    )
    return {"event": event}


@router.delete("/calendar/events/{event_id}")
async def delete_calendar_event(
    event_id: str,
    user_id: UserId,
    calendar: Annotated[Any, Depends(get_calendar_client)],
    calendar_id: str = Query(default="primary"),
) -> dict:
    await calendar.delete_event(user_id=user_id, event_id=event_id, calendar_id=calendar_id)
    return {"status": "deleted", "event_id": event_id}


# --- Google Tasks -----------------------------------------------------------
# Static paths are registered before the ``{tasklist_id}`` patterns they overlap.


@router.get("/gtasks/test")
async def test_google_tasks_connection(
    user_id: UserId,
    tasks: Annotated[Any, Depends(get_tasks_client)],
) -> dict:
    task_lists = await tasks.list_task_lists(user_id=user_id)
    return {"connected": True, "task_list_count": len(task_lists)}


@router.get("/gtasks/lists")
async def list_google_task_lists(
    user_id: UserId,
    tasks: Annotated[Any, Depends(get_tasks_client)],
) -> dict:
    task_lists = await tasks.list_task_lists(user_id=user_id)
    return {"count": len(task_lists), "task_lists": task_lists}


@router.post("/gtasks/lists", status_code=HTTPStatus.CREATED)
async def create_google_task_list(
    payload: TaskListCreate,
    user_id: UserId,
    tasks: Annotated[Any, Depends(get_tasks_client)],
) -> dict:
    return {"task_list": await tasks.insert_task_list(user_id=user_id, title=payload.title)}


@router.delete("/gtasks/{tasklist_id}/clear")
async def clear_completed_google_tasks(
    tasklist_id: str,
    user_id: UserId,
    tasks: Annotated[Any, Depends(get_tasks_client)],
) -> dict:
    if tasklist_id == DEFAULT_TASKLIST:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="A specific task list id is required to clear completed tasks.",
        )
    await tasks.clear_completed_tasks(user_id=user_id, tasklist_id=tasklist_id)
    return {"status": "cleared", "tasklist_id": tasklist_id}


@router.get("/gtasks")
@router.get("/gtasks/{tasklist_id}")
async def list_google_tasks(
    user_id: UserId,
    tasks: Annotated[Any, Depends(get_tasks_client)],
    tasklist_id: str = DEFAULT_TASKLIST,
    max_results: int = Query(default=100, ge=1),
    show_completed: bool = Query(default=True),
    show_deleted: bool = Query(default=False),
    show_hidden: bool = Query(default=False),
    completed_min: Optional[str] = Query(default=None),
    completed_max: Optional[str] = Query(default=None),
    due_min: Optional[str] = Query(default=None),
    due_max: Optional[str] = Query(default=None),
    updated_min: Optional[str] = Query(default=None),
) -> dict:
    params = ListTasksParams(
        max_results=max_results,
        show_completed=show_completed,
        show_deleted=show_deleted,
        show_hidden=show_hidden,
        completed_min=completed_min,
        completed_max=completed_max,
        due_min=due_min,
        due_max=due_max,
        updated_min=updated_min,
    )
    items = await tasks.list_tasks(user_id=user_id, tasklist_id=tasklist_id, params=params)
    return {"tasklist_id": tasklist_id, "count": len(items), "tasks": items}


@router.post("/gtasks/{tasklist_id}", status_code=HTTPStatus.CREATED)
async def create_google_task(
    tasklist_id: str,
    payload: TaskCreate,
    user_id: UserId,
    tasks: Annotated[Any, Depends(get_tasks_client)],
) -> dict:
    task = await tasks.insert_task(
        user_id=user_id, task=payload.to_body(), tasklist_id=tasklist_id
    )
    return {"task": task}


@router.put("/gtasks/{tasklist_id}/{task_id}")
async def update_google_task(
    tasklist_id: str,
    task_id: str,
    payload: TaskUpdate,
    user_id: UserId,
    tasks: Annotated[Any, Depends(get_tasks_client)],
) -> dict:
    task = await tasks.update_task(
        user_id=user_id,
        task_id=task_id,
        changes=payload.to_body(),
        tasklist_id=tasklist_id,
    )
    return {"task": task}


@router.delete("/gtasks/{tasklist_id}/{task_id}")
async def delete_google_task(
    tasklist_id: str,
    task_id: str,
    user_id: UserId,
    tasks: Annotated[Any, Depends(get_tasks_client)],
) -> dict:
    await tasks.delete_task(user_id=user_id, task_id=task_id, tasklist_id=tasklist_id)
    return {"status": "deleted", "task_id": task_id}


@router.post("/gtasks/{tasklist_id}/{task_id}/move")
async def move_google_task(
    tasklist_id: str,
    task_id: str,
    user_id: UserId,
    tasks: Annotated[Any, Depends(get_tasks_client)],
    payload: Annotated[Optional[MoveTaskParams], Body()] = None,
) -> dict:
    position = payload or MoveTaskParams()
    task = await tasks.move_task(
        user_id=user_id,
        task_id=task_id,
        tasklist_id=tasklist_id,
        parent_id=position.parent_id,
        previous_id=position.previous_id,
    )
    return {"task": task}


@router.patch("/gtasks/{tasklist_id}/{task_id}/toggle")
async def toggle_google_task(
    tasklist_id: str,
    task_id: str,
    user_id: UserId,
    tasks: Annotated[Any, Depends(get_tasks_client)],
) -> dict:
    task = await tasks.toggle_completion(
        user_id=user_id, task_id=task_id, tasklist_id=tasklist_id
    )
    return {"task": task, "completed": task.get("status") == "completed"}


# --- Local tasks ------------------------------------------------------------


@router.get("/tasks", response_model=LocalTaskPage)
async def list_local_tasks(
    user_id: UserId,
    service: Annotated[Any, Depends(get_local_task_service)],
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: Optional[TaskStatus] = Query(default=None),
    priority: Optional[TaskPriority] = Query(default=None),
) -> LocalTaskPage:
    return service.list_tasks(
        user_id=user_id, page=page, limit=limit, status=status, priority=priority
    )


@router.post("/tasks", response_model=LocalTask, status_code=HTTPStatus.CREATED)
async def create_local_task(
    payload: LocalTaskCreate,
    user_id: UserId,
    service: Annotated[Any, Depends(get_local_task_service)],
) -> LocalTask:
    return service.create_task(user_id=user_id, payload=payload)


@router.get("/tasks/{task_id}", response_model=LocalTask)
async def get_local_task(
    task_id: str,
    user_id: UserId,
    service: Annotated[Any, Depends(get_local_task_service)],
) -> LocalTask:
    return service.get_task(user_id=user_id, task_id=task_id)


@router.put("/tasks/{task_id}", response_model=LocalTask)
async def update_local_task(
    task_id: str,
    payload: LocalTaskUpdate,
    user_id: UserId,
    service: Annotated[Any, Depends(get_local_task_service)],
) -> LocalTask:
    return service.update_task(user_id=user_id, task_id=task_id, payload=payload)


@router.delete("/tasks/{task_id}")
async def delete_local_task(
    task_id: str,
    user_id: UserId,
    service: Annotated[Any, Depends(get_local_task_service)],
) -> dict:
    service.delete_task(user_id=user_id, task_id=task_id)
    return {"status": "deleted", "task_id": task_id}
