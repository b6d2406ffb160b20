"""Task endpoints scoped to a project."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from tracker.context import get_request_store, localize, request_timezone
from tracker.enums import TASK_LABEL_FIELDS, Priority, TaskStatus, with_labels
from tracker.errors import success_response
from tracker.payload import (
    _ensure_payload_dict,
    _read_enum,
    _read_number,
    _read_optional_datetime,
    _read_text,
    _reject_unknown_fields,
)
from tracker.router import api_router

TASK_FIELDS = {
    "title",
    "description",
    "status",
    "priority",
    "assigneeId",
    "parentId",
    "category",
    "dueDate",
    "timeEstimate",
    "timeSpent",
}


def _read_task_fields(
    payload: dict[str, Any], request: Request, *, creating: bool
) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if creating or "title" in payload:
        fields["title"] = _read_text(payload, "title", required=True)
    for key in ("description", "assigneeId", "parentId", "category"):
        if creating or key in payload:
            fields[key] = _read_text(payload, key)
    for key in ("timeEstimate", "timeSpent"):
        if creating or key in payload:
            fields[key] = _read_number(payload, key)

    for key, enum_type, default in (
        ("status", TaskStatus, TaskStatus.TODO),
        ("priority", Priority, Priority.MEDIUM),
    ):
        if creating or key in payload:
            value = _read_enum(payload, key, enum_type, default if creating else None)
            if value is not None:
                fields[key] = value.value

    if creating or "dueDate" in payload:
        due = _read_optional_datetime(payload, "dueDate")
        fields["dueDate"] = localize(due, request_timezone(request)) if due else None
    return fields


@api_router.get("/projects/{project_id}/tasks")
def list_tasks(project_id: str, request: Request) -> dict[str, Any]:
    """List a project's tasks, newest first."""
    tasks = get_request_store(request).list_tasks(project_id)
    return success_response(
        {"tasks": [with_labels(task, TASK_LABEL_FIELDS) for task in tasks]}
    )


@api_router.post("/projects/{project_id}/tasks", status_code=201)
def create_task(
    project_id: str, payload: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Create a task; status defaults to TODO and priority to MEDIUM."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, TASK_FIELDS)
    fields = _read_task_fields(payload, request, creating=True)
    task = get_request_store(request).create_task(project_id, fields)
    return success_response({"task": with_labels(task, TASK_LABEL_FIELDS)})


@api_router.get("/projects/{project_id}/tasks/{task_id}")
def get_task(project_id: str, task_id: str, request: Request) -> dict[str, Any]:
    task = get_request_store(request).get_task(project_id, task_id)
    return success_response({"task": with_labels(task, TASK_LABEL_FIELDS)})


@api_router.put("/projects/{project_id}/tasks/{task_id}")
def update_task(
    project_id: str, task_id: str, payload: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Update the fields present in the payload."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, TASK_FIELDS)
    fields = _read_task_fields(payload, request, creating=False)
    task = get_request_store(request).update_task(project_id, task_id, fields)
    return success_response({"task": with_labels(task, TASK_LABEL_FIELDS)})


@api_router.delete("/projects/{project_id}/tasks/{task_id}")
def delete_task(project_id: str, task_id: str, request: Request) -> dict[str, Any]:
    get_request_store(request).delete_task(project_id, task_id)
    return success_response({"success": True})
