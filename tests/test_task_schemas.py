from __future__ import annotations

import pytest
from pydantic import ValidationError

from workspace_bff.core.datetime_utils import parse_datetime
from workspace_bff.schemas.calendar import EventPayload, ListEventsParams
from workspace_bff.schemas.gmail import ListMessagesParams
from workspace_bff.schemas.tasks import ListTasksParams, TaskCreate, TaskUpdate


def test_task_create_normalizes_date_only_due() -> None:
    task = TaskCreate(title="Pay rent", due="2024-03-01")

    assert task.to_body() == {"title": "Pay rent", "due": "2024-03-01T00:00:00.000Z"}


def test_task_create_rejects_unparseable_due() -> None:
    with pytest.raises(ValidationError):
        TaskCreate(title="Pay rent", due="next tuesday")


def test_task_update_null_due_clears_it() -> None:
    update = TaskUpdate.model_validate({"due": None})

    assert update.to_body() == {"due": None}


def test_task_update_omits_untouched_fields() -> None:
    update = TaskUpdate.model_validate({"title": "Renamed"})

    assert update.to_body() == {"title": "Renamed"}


def test_task_update_completed_true_becomes_timestamp() -> None:
    update = TaskUpdate.model_validate({"status": "completed", "completed": True})

    body = update.to_body()
    assert body["status"] == "completed"
    assert parse_datetime(body["completed"]).tzinfo is not None


def test_task_update_completed_false_is_dropped() -> None:
    update = TaskUpdate.model_validate({"status": "needsAction", "completed": False})

    assert update.to_body() == {"status": "needsAction"}


def test_list_tasks_query_is_camel_cased_and_capped() -> None:
    params = ListTasksParams(max_results=500, show_completed=False, due_max="2024-03-31T00:00:00Z")

    assert params.to_query() == {
        "maxResults": 100,
        "showCompleted": False,
        "showDeleted": False,
        "showHidden": False,
        "dueMax": "2024-03-31T00:00:00Z",
    }


def test_list_caps() -> None:
    assert ListMessagesParams(max_results=51).capped_max_results == 50
    assert ListEventsParams(max_results=7).capped_max_results == 7


def test_event_payload_keeps_extra_google_fields() -> None:
    payload = EventPayload.model_validate(
        {"summary": "Review", "start": {"date": "2024-03-01"}, "end": {"date": "2024-03-02"},
         "colorId": "5"}
    )

    assert payload.to_body() == {
        "summary": "Review",
        "start": {"date": "2024-03-01"},
        "end": {"date": "2024-03-02"},
        "colorId": "5",
    }
