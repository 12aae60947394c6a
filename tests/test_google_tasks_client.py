from __future__ import annotations

import pytest

from google_fakes import FakeApi, FakeLifecycle
from workspace_bff.clients.google_tasks import GoogleTasksClient
from workspace_bff.core.config import ProviderSettings
from workspace_bff.core.datetime_utils import parse_datetime, utcnow
from workspace_bff.core.errors import NotAuthenticatedError
from workspace_bff.schemas.tasks import ListTasksParams, TaskUpdate


def _client(api: FakeApi, **kwargs) -> tuple[GoogleTasksClient, FakeLifecycle]:
    lifecycle = FakeLifecycle(api, **kwargs)
    settings = ProviderSettings(read_timeout_seconds=8, send_timeout_seconds=15)
    return GoogleTasksClient(lifecycle, settings), lifecycle


@pytest.mark.asyncio
async def test_toggle_completes_task_and_preserves_fields() -> None:
    api = FakeApi(
        {
            "tasks.get": {
                "id": "t1",
                "title": "Write report",
                "notes": "x",
                "due": "2024-01-01T00:00:00.000Z",
                "status": "needsAction",
            },
            "tasks.update": lambda **kwargs: kwargs["body"],
        }
    )
    client, _ = _client(api)
    before = utcnow()

    await client.toggle_completion(user_id="u1", task_id="t1", tasklist_id="list-1")

    [update] = api.calls_to("tasks.update")
    body = update["body"]
    assert update["tasklist"] == "list-1"
    assert update["task"] == "t1"
    assert body["id"] == "t1"
    assert body["status"] == "completed"
    assert body["notes"] == "x"
    assert body["due"] == "2024-01-01T00:00:00.000Z"
    assert body["title"] == "Write report"
    assert parse_datetime(body["completed"]) >= before.replace(microsecond=0)


@pytest.mark.asyncio
async def test_toggle_reopens_completed_task_without_completed_field() -> None:
    api = FakeApi(
        {
            "tasks.get": {
                "id": "t1",
                "title": "Done already",
                "status": "completed",
                "completed": "2024-01-02T00:00:00.000Z",
                "parent": "p1",
            },
            "tasks.update": lambda **kwargs: kwargs["body"],
        }
    )
    client, _ = _client(api)

    result = await client.toggle_completion(user_id="u1", task_id="t1")

    assert result["status"] == "needsAction"
    assert "completed" not in result
    assert "due" not in result
    assert result["notes"] == ""
    assert result["parent"] == "p1"
    assert api.calls_to("tasks.get")[0]["tasklist"] == "@default"


@pytest.mark.asyncio
async def test_update_task_includes_id_and_null_due() -> None:
    api = FakeApi({"tasks.update": lambda **kwargs: kwargs["body"]})
    client, _ = _client(api)
    changes = TaskUpdate.model_validate({"title": "Renamed", "due": None, "completed": None})

    body = await client.update_task(user_id="u1", task_id="t9", changes=changes.to_body())

    assert body == {"id": "t9", "title": "Renamed", "due": None}


@pytest.mark.asyncio
async def test_list_tasks_caps_page_size_and_uses_read_timeout() -> None:
    api = FakeApi({"tasks.list": {"items": [{"id": "t1"}]}})
    client, lifecycle = _client(api)

    items = await client.list_tasks(
        user_id="u1", tasklist_id="list-1", params=ListTasksParams(max_results=500)
    )

    assert items == [{"id": "t1"}]
    method, kwargs, http = api.calls[0]
    assert kwargs["maxResults"] == 100
    assert kwargs["tasklist"] == "list-1"
    assert http.timeout == 8
    assert lifecycle.ensured == ["u1"]
    assert lifecycle.client.services == [("tasks", "v1")]


@pytest.mark.asyncio
async def test_writes_use_send_timeout() -> None:
    api = FakeApi({"tasks.insert": {"id": "new"}})
    client, _ = _client(api)

    await client.insert_task(user_id="u1", task={"title": "New"}, tasklist_id="list-1")

    _, kwargs, http = api.calls[0]
    assert kwargs == {"tasklist": "list-1", "body": {"title": "New"}}
    assert http.timeout == 15


@pytest.mark.asyncio
async def test_move_task_only_sends_given_positions() -> None:
    api = FakeApi({"tasks.move": {"id": "t1"}})
    client, _ = _client(api)

    await client.move_task(user_id="u1", task_id="t1", previous_id="t0")

    assert api.calls_to("tasks.move") == [
        {"tasklist": "@default", "task": "t1", "previous": "t0"}
    ]


@pytest.mark.asyncio
async def test_task_list_operations() -> None:
    api = FakeApi(
        {
            "tasklists.list": {"items": [{"id": "l1", "title": "Mine"}]},
            "tasklists.insert": lambda **kwargs: {"id": "l2", **kwargs["body"]},
        }
    )
    client, _ = _client(api)

    lists = await client.list_task_lists(user_id="u1")
    created = await client.insert_task_list(user_id="u1", title="Errands")
    await client.clear_completed_tasks(user_id="u1", tasklist_id="l1")
    await client.delete_task(user_id="u1", task_id="t1", tasklist_id="l1")

    assert lists == [{"id": "l1", "title": "Mine"}]
    assert created == {"id": "l2", "title": "Errands"}
    assert api.calls_to("tasks.clear") == [{"tasklist": "l1"}]
    assert api.calls_to("tasks.delete") == [{"tasklist": "l1", "task": "t1"}]


@pytest.mark.asyncio
async def test_lifecycle_errors_propagate_before_any_call() -> None:
    api = FakeApi()
    client, _ = _client(api, error=NotAuthenticatedError("not connected", user_id="u1"))

    with pytest.raises(NotAuthenticatedError):
        await client.list_task_lists(user_id="u1")

    assert api.calls == []
