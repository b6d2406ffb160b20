"""Route registration."""

# ruff: noqa: F401

from __future__ import annotations

from fastapi import FastAPI

from tracker.router import api_router

# Import modules to register routes with the shared router.
from tracker import api_projects, api_tasks, api_timeline

# Re-export endpoints for tests and direct imports.
from tracker.api_projects import (
    create_project,
    delete_project,
    get_project,
    list_projects,
    update_project,
)
from tracker.api_tasks import (
    create_task,
    delete_task,
    get_task,
    list_tasks,
    update_task,
)
from tracker.api_timeline import (
    delete_timeline_event,
    generate_timeline,
    parse_upload,
    timeline_overdue,
    timeline_today,
    timeline_tomorrow,
    update_timeline_event,
    validate_upload,
)


def register_handlers(app: FastAPI) -> None:
    """Attach tracker routes to the FastAPI application."""
    app.include_router(api_router)
