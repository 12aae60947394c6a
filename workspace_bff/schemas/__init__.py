"""Public schema exports."""

from .auth import AuthorizeResponse, CallbackResult, OAuthCallbackPayload
from .calendar import EventPayload, ListEventsParams
from .gmail import ListMessagesParams, SendMessageRequest
from .local_tasks import LocalTask, LocalTaskCreate, LocalTaskPage, LocalTaskUpdate
from .tasks import (
    ListTasksParams,
    MoveTaskParams,
    TaskCreate,
    TaskListCreate,
    TaskUpdate,
)

__all__ = [
    "AuthorizeResponse",
    "CallbackResult",
    "EventPayload",
    "ListEventsParams",
    "ListMessagesParams",
    "ListTasksParams",
    "LocalTask",
    "LocalTaskCreate",
    "LocalTaskPage",
    "LocalTaskUpdate",
    "MoveTaskParams",
    "OAuthCallbackPayload",
    "SendMessageRequest",
    "TaskCreate",
    "TaskListCreate",
    "TaskUpdate",
]
