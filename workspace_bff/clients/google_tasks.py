"""Google Tasks client wrapper."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from workspace_bff.clients.google_workspace import GoogleApiWrapper
from workspace_bff.core.datetime_utils import to_rfc3339, utcnow
from workspace_bff.schemas.tasks import ListTasksParams

logger = logging.getLogger(__name__)

DEFAULT_TASKLIST = "@default"


class GoogleTasksClient(GoogleApiWrapper):
    """Task lists and tasks for a connected user."""

    api_name = "tasks"
    api_version = "v1"

    async def list_task_lists(self, *, user_id: str) -> List[Dict[str, Any]]:
        response = await self._execute(
            user_id=user_id,
            operation="tasks.list_task_lists",
            build_request=lambda service: service.tasklists().list(),
        )
        return response.get("items", [])

    async def insert_task_list(self, *, user_id: str, title: str) -> Dict[str, Any]:
        return await self._execute(
            user_id=user_id,
            operation="tasks.insert_task_list",
            build_request=lambda service: service.tasklists().insert(body={"title": title}),
            timeout=self.send_timeout,
        )

    async def list_tasks(
        self,
        *,
        user_id: str,
        tasklist_id: str = DEFAULT_TASKLIST,
        params: Optional[ListTasksParams] = None,
    ) -> List[Dict[str, Any]]:
        query = (params or ListTasksParams()).to_query()
        response = await self._execute(
            user_id=user_id,
            operation="tasks.list_tasks",
            build_request=lambda service: service.tasks().list(tasklist=tasklist_id, **query),
        )
        return response.get("items", [])

    async def get_task(
        self, *, user_id: str, task_id: str, tasklist_id: str = DEFAULT_TASKLIST
    ) -> Dict[str, Any]:
        return await self._execute(
            user_id=user_id,
            operation="tasks.get_task",
            build_request=lambda service: service.tasks().get(
                tasklist=tasklist_id, task=task_id
            ),
        )

    async def insert_task(
        self,
        *,
        user_id: str,
        task: Dict[str, Any],
        tasklist_id: str = DEFAULT_TASKLIST,
    ) -> Dict[str, Any]:
        return await self._execute(
            user_id=user_id,
            operation="tasks.insert_task",
            build_request=lambda service: service.tasks().insert(
                tasklist=tasklist_id, body=task
            ),
            timeout=self.send_timeout,
        )

    async def update_task(
        self,
        *,
        user_id: str,
        task_id: str,
        changes: Dict[str, Any],
        tasklist_id: str = DEFAULT_TASKLIST,
    ) -> Dict[str, Any]:
        """Update a task. The Tasks API requires the id inside the body as well."""
        body = {"id": task_id, **changes}
        return await self._execute(
            user_id=user_id,
            operation="tasks.update_task",
            build_request=lambda service: service.tasks().update(
                tasklist=tasklist_id, task=task_id, body=body
            ),
            timeout=self.send_timeout,
        )

    async def delete_task(
        self, *, user_id: str, task_id: str, tasklist_id: str = DEFAULT_TASKLIST
    ) -> None:
        await self._execute(
            user_id=user_id,
            operation="tasks.delete_task",
            build_request=lambda service: service.tasks().delete(
                tasklist=tasklist_id, task=task_id
            ),
            timeout=self.send_timeout,
        )

    async def move_task(
        self,
        *,
        user_id: str,
        task_id: str,
        tasklist_id: str = DEFAULT_TASKLIST,
        parent_id: Optional[str] = None,
        previous_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        position: Dict[str, str] = {}
        if parent_id:
            position["parent"] = parent_id
        if previous_id:
            position["previous"] = previous_id
        return await self._execute(
            user_id=user_id,
            operation="tasks.move_task",
            build_request=lambda service: service.tasks().move(
                tasklist=tasklist_id, task=task_id, **position
            ),
            timeout=self.send_timeout,
        )

    async def clear_completed_tasks(self, *, user_id: str, tasklist_id: str) -> None:
        await self._execute(
            user_id=user_id,
            operation="tasks.clear_completed_tasks",
            build_request=lambda service: service.tasks().clear(tasklist=tasklist_id),
            timeout=self.send_timeout,
        )

    async def toggle_completion(
        self, *, user_id: str, task_id: str, tasklist_id: str = DEFAULT_TASKLIST
    ) -> Dict[str, Any]:
        """Flip a task between ``needsAction`` and ``completed``.

        Reads the task first and writes back its title, notes, due date and
        parent. A concurrent edit between the read and the write is lost.
        """
        current = await self.get_task(user_id=user_id, task_id=task_id, tasklist_id=tasklist_id)
        new_status = "needsAction" if current.get("status") == "completed" else "completed"

        changes: Dict[str, Any] = {
            "title": current.get("title"),
            "notes": current.get("notes") or "",
            "status": new_status,
        }
        if current.get("due"):
            changes["due"] = current["due"]
        if current.get("parent"):
            changes["parent"] = current["parent"]
        if new_status == "completed":
            changes["completed"] = to_rfc3339(utcnow())

        logger.info("Marking task %s as %s for user %s", task_id, new_status, user_id)
        return await self.update_task(
            user_id=user_id, task_id=task_id, changes=changes, tasklist_id=tasklist_id
        )


__all__ = ["DEFAULT_TASKLIST", "GoogleTasksClient"]
