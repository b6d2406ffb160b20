"""Project endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request

from tracker.api_timeline import read_draft_events
from tracker.context import get_request_store, localize, request_timezone
from tracker.enums import (
    PROJECT_LABEL_FIELDS,
    TASK_LABEL_FIELDS,
    Priority,
    ProjectStatus,
    ProjectType,
    with_labels,
)
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
from tracker.user_scope import get_request_owner

logger = logging.getLogger(__name__)

PROJECT_FIELDS = {
    "name",
    "description",
    "projectGoal",
    "projectValue",
    "website",
    "status",
    "priority",
    "projectType",
    "startDate",
    "endDate",
}


def _read_project_fields(
    payload: dict[str, Any], request: Request, *, creating: bool
) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if creating or "name" in payload:
        fields["name"] = _read_text(payload, "name", required=True)
    for key in ("description", "projectGoal", "website"):
        if creating or key in payload:
            fields[key] = _read_text(payload, key)
    if creating or "projectValue" in payload:
        fields["projectValue"] = _read_number(payload, "projectValue")

    for key, enum_type, default in (
        ("status", ProjectStatus, ProjectStatus.PLANNING),
        ("priority", Priority, Priority.MEDIUM),
        ("projectType", ProjectType, ProjectType.DEVELOPMENT),
    ):
        if creating or key in payload:
            value = _read_enum(payload, key, enum_type, default if creating else None)
            if value is not None:
                fields[key] = value.value

    zone = request_timezone(request)
    for key in ("startDate", "endDate"):
        if creating or key in payload:
            moment = _read_optional_datetime(payload, key)
            fields[key] = localize(moment, zone) if moment is not None else None
    return fields


def _present(project: dict[str, Any]) -> dict[str, Any]:
    presented = with_labels(project, PROJECT_LABEL_FIELDS)
    if "tasks" in project:
        presented["tasks"] = [
            with_labels(task, TASK_LABEL_FIELDS) for task in project["tasks"]
        ]
    return presented


@api_router.get("/projects")
def list_projects(request: Request) -> dict[str, Any]:
    """List projects, newest first, with their timeline events."""
    projects = get_request_store(request).list_projects()
    return success_response(
        {"projects": [_present(project) for project in projects]}
    )


@api_router.post("/projects", status_code=201)
def create_project(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Create a project and its timeline events in a single commit."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, PROJECT_FIELDS | {"timelineEvents"})

    fields = _read_project_fields(payload, request, creating=True)
    events = read_draft_events(payload.get("timelineEvents"), request)
    project = get_request_store(request).create_project(
        fields, events, get_request_owner(request)
    )
    logger.info(
        "Created project %s with %d timeline events",
        project["id"],
        len(project["timelineEvents"]),
    )
    return success_response({"project": _present(project)})


@api_router.get("/projects/{project_id}")
def get_project(project_id: str, request: Request) -> dict[str, Any]:
    """Read a project with its tasks and timeline events."""
    project = get_request_store(request).get_project(project_id)
    return success_response({"project": _present(project)})


@api_router.put("/projects/{project_id}")
def update_project(
    project_id: str, payload: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Update the fields present in the payload."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, PROJECT_FIELDS)
    fields = _read_project_fields(payload, request, creating=False)
    project = get_request_store(request).update_project(project_id, fields)
    return success_response({"project": _present(project)})


@api_router.delete("/projects/{project_id}")
def delete_project(project_id: str, request: Request) -> dict[str, Any]:
    """Delete a project with its tasks and timeline events."""
    get_request_store(request).delete_project(project_id)
    logger.info("Deleted project %s", project_id)
    return success_response({"success": True})
