"""Pydantic models for the locally stored task manager."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, computed_field

TaskStatus = Literal["pending", "in-progress", "completed", "cancelled"]
TaskPriority = Literal["low", "medium", "high", "urgent"]


class LocalTaskCreate(BaseModel):
    """Payload for creating a local task."""

    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)


class LocalTaskUpdate(BaseModel):
    """Partial update; fields left out are unchanged."""

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    tags: Optional[List[str]] = None


class LocalTask(BaseModel):
    """A stored local task."""

    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total: int
    has_next: bool
    has_prev: bool


class LocalTaskPage(BaseModel):
    tasks: List[LocalTask]
    pagination: Pagination


__all__ = [
    "LocalTask",
    "LocalTaskCreate",
    "LocalTaskPage",
    "LocalTaskUpdate",
    "Pagination",
    "TaskPriority",
    "TaskStatus",
]
