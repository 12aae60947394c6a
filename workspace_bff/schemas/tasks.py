"""Request models for Google Tasks endpoints."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from workspace_bff.core.datetime_utils import to_rfc3339, utcnow

MAX_TASK_RESULTS = 100

GoogleTaskStatus = Literal["needsAction", "completed"]


def _normalize_timestamp(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    try:
        return to_rfc3339(value)
    except ValueError as exc:
        raise ValueError(f"Invalid date or timestamp: {value!r}") from exc


class TaskListCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=1024)


class ListTasksParams(BaseModel):
    """Filters for listing tasks in one task list."""

    max_results: int = Field(100, ge=1)
    show_completed: bool = True
    show_deleted: bool = False
    show_hidden: bool = False
    completed_min: Optional[str] = None
    completed_max: Optional[str] = None
    due_min: Optional[str] = None
    due_max: Optional[str] = None
    updated_min: Optional[str] = None

    @property
    def capped_max_results(self) -> int:
        return min(self.max_results, MAX_TASK_RESULTS)

    def to_query(self) -> Dict[str, Any]:
        query: Dict[str, Any] = {
            "maxResults": self.capped_max_results,
            "showCompleted": self.show_completed,
            "showDeleted": self.show_deleted,
            "showHidden": self.show_hidden,
        }
        optional = {
            "completedMin": self.completed_min,
            "completedMax": self.completed_max,
            "dueMin": self.due_min,
            "dueMax": self.due_max,
            "updatedMin": self.updated_min,
        }
        query.update({key: value for key, value in optional.items() if value})
        return query


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=1024)
    notes: Optional[str] = Field(None, max_length=8192)
    due: Optional[str] = Field(None, description="Date or RFC 3339 timestamp.")
    status: Optional[GoogleTaskStatus] = None
    parent: Optional[str] = None

    @field_validator("due")
    @classmethod
    def _normalize_due(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_timestamp(value)

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TaskUpdate(BaseModel):
    """Partial update of a Google task.

    ``due`` sent as ``null`` clears the due date; leaving it out keeps it.
    ``completed`` is only forwarded when it is a timestamp.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=1024)
    notes: Optional[str] = Field(None, max_length=8192)
    due: Optional[str] = None
    status: Optional[GoogleTaskStatus] = None
    completed: Optional[Union[str, bool]] = None

    @field_validator("due")
    @classmethod
    def _normalize_due(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_timestamp(value)

    @field_validator("completed")
    @classmethod
    def _normalize_completed(cls, value: Optional[Union[str, bool]]) -> Optional[str]:
        if value is True:
            return to_rfc3339(utcnow())
        if not value:
            return None
        return _normalize_timestamp(value)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        for name in ("title", "notes", "status"):
            value = getattr(self, name)
            if value is not None:
                body[name] = value
        if "due" in self.model_fields_set:
            body["due"] = self.due
        if self.completed:
            body["completed"] = self.completed
        return body


class MoveTaskParams(BaseModel):
    parent_id: Optional[str] = Field(None, description="New parent task; top level when unset.")
    previous_id: Optional[str] = Field(None, description="Sibling to place the task after.")


__all__ = [
    "GoogleTaskStatus",
    "ListTasksParams",
    "MAX_TASK_RESULTS",
    "MoveTaskParams",
    "TaskCreate",
    "TaskListCreate",
    "TaskUpdate",
]
