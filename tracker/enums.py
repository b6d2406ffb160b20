"""Closed value sets stored on projects and tasks, with their display labels."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ProjectStatus(str, Enum):
    PLANNING = "PLANNING"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ProjectType(str, Enum):
    DEVELOPMENT = "DEVELOPMENT"
    DESIGN = "DESIGN"
    MARKETING = "MARKETING"
    RESEARCH = "RESEARCH"
    CLIENT_PROJECT = "CLIENT_PROJECT"
    INTERNAL_PROJECT = "INTERNAL_PROJECT"
    PERSONAL_PROJECT = "PERSONAL_PROJECT"
    OTHER = "OTHER"


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    DONE = "DONE"


# Overdue is only defined for projects that are still active.
TERMINAL_PROJECT_STATUSES = frozenset(
    {ProjectStatus.COMPLETED, ProjectStatus.CANCELLED}
)

STATUS_LABELS = {
    ProjectStatus.PLANNING: "Planning",
    ProjectStatus.IN_PROGRESS: "In Progress",
    ProjectStatus.ON_HOLD: "On Hold",
    ProjectStatus.COMPLETED: "Completed",
    ProjectStatus.CANCELLED: "Cancelled",
}

PRIORITY_LABELS = {
    Priority.LOW: "Low",
    Priority.MEDIUM: "Medium",
    Priority.HIGH: "High",
    Priority.URGENT: "Urgent",
}

PROJECT_TYPE_LABELS = {
    ProjectType.DEVELOPMENT: "Development",
    ProjectType.DESIGN: "Design",
    ProjectType.MARKETING: "Marketing",
    ProjectType.RESEARCH: "Research",
    ProjectType.CLIENT_PROJECT: "Client Project",
    ProjectType.INTERNAL_PROJECT: "Internal Project",
    ProjectType.PERSONAL_PROJECT: "Personal Project",
    ProjectType.OTHER: "Other",
}

TASK_STATUS_LABELS = {
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.REVIEW: "Review",
    TaskStatus.DONE: "Done",
}


_LABEL_TABLES: dict[type[Enum], dict] = {
    ProjectStatus: STATUS_LABELS,
    Priority: PRIORITY_LABELS,
    ProjectType: PROJECT_TYPE_LABELS,
    TaskStatus: TASK_STATUS_LABELS,
}


PROJECT_LABEL_FIELDS = (
    ("status", ProjectStatus),
    ("priority", Priority),
    ("projectType", ProjectType),
)
TASK_LABEL_FIELDS = (("status", TaskStatus), ("priority", Priority))


def display_label(enum_type: type[Enum], raw_value: str | None) -> str | None:
    """Display label for a stored value; unknown values are echoed back."""
    if raw_value is None:
        return None
    try:
        member = enum_type(raw_value)
    except ValueError:
        return str(raw_value)
    return _LABEL_TABLES[enum_type][member]


def with_labels(
    record: dict[str, Any], label_fields: tuple[tuple[str, type[Enum]], ...]
) -> dict[str, Any]:
    """Copy of ``record`` with a ``<field>Label`` entry per labelled field."""
    labelled = dict(record)
    for key, enum_type in label_fields:
        if key in record:
            labelled[f"{key}Label"] = display_label(enum_type, record[key])
    return labelled


def parse_project_status(raw_value: str | None) -> ProjectStatus | None:
    """Map a stored status string to the enum, ``None`` for unknown values."""
    if not raw_value:
        return None
    try:
        return ProjectStatus(str(raw_value).strip().upper())
    except ValueError:
        return None
