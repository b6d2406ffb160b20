"""File-backed project, task and timeline-event records for one user."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import uuid
import weakref
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

from tracker.aggregation import ScheduledEvent
from tracker.errors import TrackerError
from tracker.git_store import _commit_record_changes, _ensure_git_repo, _stage_paths
from tracker.paths import validate_path, validate_record_id

logger = logging.getLogger(__name__)

PROJECTS_DIRNAME = "projects"
PROJECT_FILENAME = "project.json"
TIMELINE_FILENAME = "timeline.json"
TASKS_FILENAME = "tasks.json"

PROJECT_SUMMARY_FIELDS = ("id", "name", "status", "priority", "projectType")

# Entries disappear once no store operation holds the lock.
_root_locks: weakref.WeakValueDictionary[str, threading.Lock] = (
    weakref.WeakValueDictionary()
)
_root_locks_guard = threading.Lock()


def _lock_for(root: Path) -> threading.Lock:
    key = str(root.resolve())
    with _root_locks_guard:
        lock = _root_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _root_locks[key] = lock
        return lock


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _atomic_write(target_path: Path, content: str) -> None:
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=target_path.parent, delete=False
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_path, target_path)
    finally:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink()


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, sort_keys=True) + "\n"


def _storage_error(message: str, details: dict[str, Any]) -> TrackerError:
    return TrackerError("STORAGE_ERROR", message, details, status_code=500)


class ProjectStore:
    """
    Projects, tasks and timeline events stored as JSON under a data root.

    Layout::

        projects/<project_id>/project.json
        projects/<project_id>/timeline.json
        projects/<project_id>/tasks.json

    Every mutation is written and committed as a single git commit. If any
    write or the commit fails, all files touched by the mutation are restored
    to their previous content and the whole operation fails with
    ``STORAGE_ERROR``.
    """

    def __init__(self, root: Path, clock: Callable[[], datetime] = _utc_now) -> None:
        self.root = root
        self._clock = clock

    # Reading

    def _project_dir(self, project_id: str) -> Path:
        validate_record_id(project_id, field="projectId")
        return validate_path(self.root, f"{PROJECTS_DIRNAME}/{project_id}")

    def _read_json(self, path: Path, default: Any) -> Any:
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.exception("Failed to read record file %s", path)
            raise _storage_error(
                "Stored record could not be read.",
                {"path": path.relative_to(self.root).as_posix()},
            ) from exc

    def _load_project(self, project_id: str) -> dict[str, Any]:
        project_path = self._project_dir(project_id) / PROJECT_FILENAME
        project = self._read_json(project_path, None)
        if project is None:
            raise TrackerError(
                "PROJECT_NOT_FOUND",
                "Project not found.",
                {"id": project_id},
                status_code=404,
            )
        return project

    def _load_events(self, project_id: str) -> list[dict[str, Any]]:
        return self._read_json(self._project_dir(project_id) / TIMELINE_FILENAME, [])

    def _load_tasks(self, project_id: str) -> list[dict[str, Any]]:
        return self._read_json(self._project_dir(project_id) / TASKS_FILENAME, [])

    def _project_ids(self) -> list[str]:
        projects_root = self.root / PROJECTS_DIRNAME
        if not projects_root.is_dir():
            return []
        return sorted(
            entry.name
            for entry in projects_root.iterdir()
            if entry.is_dir()
            and not entry.is_symlink()
            and (entry / PROJECT_FILENAME).is_file()
        )

    # Writing

    def _commit(self, changes: dict[Path, str | None], operation: str, target: str) -> str:
        """Apply ``changes`` (content, or ``None`` to delete) in one commit."""
        originals: dict[Path, str | None] = {}
        created_dirs: list[Path] = []
        relative_paths = [path.relative_to(self.root) for path in changes]

        with _lock_for(self.root):
            repo = _ensure_git_repo(self.root)
            try:
                for path, content in changes.items():
                    originals[path] = (
                        path.read_text(encoding="utf-8") if path.exists() else None
                    )
                    if content is None:
                        if path.exists():
                            path.unlink()
                        continue
                    if not path.parent.exists():
                        path.parent.mkdir(parents=True)
                        created_dirs.append(path.parent)
                    _atomic_write(path, content)
                commit_sha = _commit_record_changes(
                    repo, relative_paths, operation, target
                )
            except Exception as exc:
                logger.exception("%s failed for %s; rolling back", operation, target)
                self._rollback(repo, originals, created_dirs, relative_paths)
                raise _storage_error(
                    "Records could not be saved; changes rolled back.",
                    {"operation": operation, "target": target},
                ) from exc
            finally:
                repo.close()

        logger.info("%s committed %s (%s)", operation, target, commit_sha[:12])
        return commit_sha

    def _rollback(
        self,
        repo: Any,
        originals: dict[Path, str | None],
        created_dirs: list[Path],
        relative_paths: list[Path],
    ) -> None:
        for path, original in originals.items():
            try:
                if original is None:
                    if path.exists():
                        path.unlink()
                else:
                    _atomic_write(path, original)
            except OSError:
                logger.exception("Rollback could not restore %s", path)
        for directory in reversed(created_dirs):
            try:
                directory.rmdir()
            except OSError:
                logger.warning("Rollback left directory %s in place", directory)
        try:
            _stage_paths(repo, relative_paths)
        except Exception:
            logger.exception("Rollback could not restage %s", relative_paths)

    def _touch(self, record: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
        updated = dict(record)
        updated.update({key: _serialize(value) for key, value in fields.items()})
        updated["updatedAt"] = self._clock().isoformat()
        return updated

    # Projects

    def create_project(
        self,
        fields: dict[str, Any],
        events: Iterable[dict[str, Any]],
        owner: dict[str, Any],
    ) -> dict[str, Any]:
        """Create a project together with its timeline events, atomically."""
        now = self._clock().isoformat()
        project_id = _new_id()
        project = {key: _serialize(value) for key, value in fields.items()}
        project.update(
            {
                "id": project_id,
                "ownerId": owner["id"],
                "owner": dict(owner),
                "createdAt": now,
                "updatedAt": now,
            }
        )
        timeline = [
            {
                "id": _new_id(),
                "projectId": project_id,
                "title": event["title"],
                "description": event.get("description"),
                "date": _serialize(event["date"]),
                "type": event.get("type") or "milestone",
                "createdAt": now,
                "updatedAt": now,
            }
            for event in events
        ]

        project_dir = self._project_dir(project_id)
        self._commit(
            {
                project_dir / PROJECT_FILENAME: _dump(project),
                project_dir / TIMELINE_FILENAME: _dump(timeline),
                project_dir / TASKS_FILENAME: _dump([]),
            },
            "create_project",
            project_id,
        )
        return {**project, "timelineEvents": _sorted_by_date(timeline)}

    def list_projects(self) -> list[dict[str, Any]]:
        """All projects, newest first, each with its events in date order."""
        projects = [
            {
                **self._load_project(project_id),
                "timelineEvents": _sorted_by_date(self._load_events(project_id)),
            }
            for project_id in self._project_ids()
        ]
        projects.sort(key=lambda project: project.get("createdAt") or "", reverse=True)
        return projects

    def get_project(self, project_id: str) -> dict[str, Any]:
        project = self._load_project(project_id)
        tasks = _newest_first(self._load_tasks(project_id))
        return {
            **project,
            "tasks": tasks,
            "timelineEvents": _sorted_by_date(self._load_events(project_id)),
            "taskCount": len(tasks),
        }

    def update_project(self, project_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        project = self._touch(self._load_project(project_id), fields)
        project_dir = self._project_dir(project_id)
        self._commit(
            {project_dir / PROJECT_FILENAME: _dump(project)},
            "update_project",
            project_id,
        )
        return project

    def delete_project(self, project_id: str) -> None:
        self._load_project(project_id)
        project_dir = self._project_dir(project_id)
        removals: dict[Path, str | None] = {
            path: None for path in sorted(project_dir.iterdir()) if path.is_file()
        }
        self._commit(removals, "delete_project", project_id)
        try:
            project_dir.rmdir()
        except OSError:
            logger.warning("Project directory %s was not empty after delete", project_dir)

    # Tasks

    def list_tasks(self, project_id: str) -> list[dict[str, Any]]:
        self._load_project(project_id)
        return _newest_first(self._load_tasks(project_id))

    def get_task(self, project_id: str, task_id: str) -> dict[str, Any]:
        self._load_project(project_id)
        tasks = self._load_tasks(project_id)
        return tasks[_find_index(tasks, task_id, "TASK_NOT_FOUND", "Task not found.")]

    def create_task(self, project_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        self._load_project(project_id)
        tasks = self._load_tasks(project_id)
        now = self._clock().isoformat()
        task = {key: _serialize(value) for key, value in fields.items()}
        task.update(
            {
                "id": _new_id(),
                "projectId": project_id,
                "createdAt": now,
                "updatedAt": now,
            }
        )
        tasks.append(task)
        self._commit(
            {self._project_dir(project_id) / TASKS_FILENAME: _dump(tasks)},
            "create_task",
            f"{project_id}/{task['id']}",
        )
        return task

    def update_task(
        self, project_id: str, task_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        self._load_project(project_id)
        tasks = self._load_tasks(project_id)
        index = _find_index(tasks, task_id, "TASK_NOT_FOUND", "Task not found.")
        tasks[index] = self._touch(tasks[index], fields)
        self._commit(
            {self._project_dir(project_id) / TASKS_FILENAME: _dump(tasks)},
            "update_task",
            f"{project_id}/{task_id}",
        )
        return tasks[index]

    def delete_task(self, project_id: str, task_id: str) -> None:
        self._load_project(project_id)
        tasks = self._load_tasks(project_id)
        index = _find_index(tasks, task_id, "TASK_NOT_FOUND", "Task not found.")
        del tasks[index]
        self._commit(
            {self._project_dir(project_id) / TASKS_FILENAME: _dump(tasks)},
            "delete_task",
            f"{project_id}/{task_id}",
        )

    # Timeline events

    def update_event(
        self, project_id: str, event_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        self._load_project(project_id)
        events = self._load_events(project_id)
        index = _find_index(
            events, event_id, "EVENT_NOT_FOUND", "Timeline event not found."
        )
        events[index] = self._touch(events[index], fields)
        self._commit(
            {self._project_dir(project_id) / TIMELINE_FILENAME: _dump(events)},
            "update_event",
            f"{project_id}/{event_id}",
        )
        return events[index]

    def delete_event(self, project_id: str, event_id: str) -> None:
        self._load_project(project_id)
        events = self._load_events(project_id)
        index = _find_index(
            events, event_id, "EVENT_NOT_FOUND", "Timeline event not found."
        )
        del events[index]
        self._commit(
            {self._project_dir(project_id) / TIMELINE_FILENAME: _dump(events)},
            "delete_event",
            f"{project_id}/{event_id}",
        )

    def scheduled_events(self) -> list[ScheduledEvent]:
        """Every stored event joined with its project summary and owner."""
        scheduled: list[ScheduledEvent] = []
        for project_id in self._project_ids():
            project = self._load_project(project_id)
            summary = {key: project.get(key) for key in PROJECT_SUMMARY_FIELDS}
            summary["owner"] = dict(project.get("owner") or {})
            for event in self._load_events(project_id):
                try:
                    event_date = datetime.fromisoformat(event["date"])
                except (KeyError, TypeError, ValueError) as exc:
                    raise _storage_error(
                        "Stored timeline event has an invalid date.",
                        {"projectId": project_id, "id": event.get("id")},
                    ) from exc
                scheduled.append(
                    ScheduledEvent(event=event, date=event_date, project=summary)
                )
        return scheduled


def _sorted_by_date(events: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(events, key=lambda event: datetime.fromisoformat(event["date"]))


def _newest_first(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(records, key=lambda record: record.get("createdAt") or "", reverse=True)


def _find_index(
    records: list[dict[str, Any]], record_id: str, code: str, message: str
) -> int:
    validate_record_id(record_id)
    for index, record in enumerate(records):
        if record.get("id") == record_id:
            return index
    raise TrackerError(code, message, {"id": record_id}, status_code=404)
