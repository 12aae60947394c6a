"""
Local task manager backed by the document store.

Tasks belong to one user and are stored under ``user#{user_id}`` /
``task#{task_id}``, independent of Google Tasks.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime
from typing import Callable, Optional

from workspace_bff.clients.record_store import RecordStore
from workspace_bff.core.datetime_utils import utcnow
from workspace_bff.core.errors import TaskNotFoundError
from workspace_bff.schemas.local_tasks import (
    LocalTask,
    LocalTaskCreate,
    LocalTaskPage,
    LocalTaskUpdate,
    Pagination,
    TaskPriority,
    TaskStatus,
)

logger = logging.getLogger(__name__)

_TASK_PREFIX = "task#"
_CLEARABLE_FIELDS = frozenset({"description", "due_date"})


class LocalTaskService:
    """CRUD over a user's local tasks."""

    def __init__(
        self,
        store: RecordStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._clock = clock

    @staticmethod
    def _partition(user_id: str) -> str:
        return f"user#{user_id}"

    def _save(self, task: LocalTask) -> None:
        item = task.model_dump(mode="json", exclude={"is_completed"})
        item.update({"pk": self._partition(task.user_id), "sk": f"{_TASK_PREFIX}{task.id}"})
        self._store.put_item(item)

    @staticmethod
    def _from_item(item: dict) -> LocalTask:
        data = {key: value for key, value in item.items() if key not in {"pk", "sk"}}
        return LocalTask.model_validate(data)

    def create_task(self, *, user_id: str, payload: LocalTaskCreate) -> LocalTask:
        now = self._clock()
        task = LocalTask(
            id=uuid.uuid4().hex,
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        self._save(task)
        logger.info("Created local task %s for user %s", task.id, user_id)
        return task

    def get_task(self, *, user_id: str, task_id: str) -> LocalTask:
        item = self._store.get_item(
            partition_key=self._partition(user_id), sort_key=f"{_TASK_PREFIX}{task_id}"
        )
        if item is None:
            raise TaskNotFoundError(f"Task {task_id} not found.", user_id=user_id)
        return self._from_item(item)

    def list_tasks(
        self,
        *,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
    ) -> LocalTaskPage:
        """Return one page of tasks, newest first."""
        items = self._store.list_items_with_prefix(
            partition_key=self._partition(user_id), sort_key_prefix=_TASK_PREFIX
        )
        tasks = [self._from_item(item) for item in items]
        if status:
            tasks = [task for task in tasks if task.status == status]
        if priority:
            tasks = [task for task in tasks if task.priority == priority]
        tasks.sort(key=lambda task: task.created_at, reverse=True)

        total = len(tasks)
        total_pages = math.ceil(total / limit) if total else 0
        start = (page - 1) * limit
        return LocalTaskPage(
            tasks=tasks[start : start + limit],
            pagination=Pagination(
                current_page=page,
                total_pages=total_pages,
                total=total,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    def update_task(
        self, *, user_id: str, task_id: str, payload: LocalTaskUpdate
    ) -> LocalTask:
        task = self.get_task(user_id=user_id, task_id=task_id)
        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key in _CLEARABLE_FIELDS
        }
        updated = task.model_copy(update={**changes, "updated_at": self._clock()})
        self._save(updated)
        return updated

    def delete_task(self, *, user_id: str, task_id: str) -> None:
        self.get_task(user_id=user_id, task_id=task_id)
        self._store.delete_item(
            partition_key=self._partition(user_id), sort_key=f"{_TASK_PREFIX}{task_id}"
        )
        logger.info("Deleted local task %s for user %s", task_id, user_id)


__all__ = ["LocalTaskService"]
