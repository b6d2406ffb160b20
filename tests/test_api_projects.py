from types import SimpleNamespace

import pytest

from tracker.api import (
    create_project,
    create_task,
    delete_project,
    delete_task,
    get_project,
    get_task,
    list_projects,
    list_tasks,
    update_project,
    update_task,
)
from tracker.errors import TrackerError


def _build_request(data_root):
    return SimpleNamespace(
        app=SimpleNamespace(state=SimpleNamespace(data_path=data_root)),
        state=SimpleNamespace(user_id="test-user-123"),
        headers={"X-Tracker-User-Name": "Test User"},
    )


def test_create_project_applies_defaults(tmp_path):
    payload = create_project({"name": "  Alpha  "}, _build_request(tmp_path))

    assert payload["ok"] is True
    project = payload["data"]["project"]
    assert project["name"] == "Alpha"
    assert project["status"] == "PLANNING"
    assert project["priority"] == "MEDIUM"
    assert project["projectType"] == "DEVELOPMENT"
    assert project["timelineEvents"] == []
    assert project["owner"] == {"id": "testuser123", "name": "Test User", "email": None}


def test_create_project_with_timeline_events(tmp_path):
    request = _build_request(tmp_path)
    payload = create_project(
        {
            "name": "Launch plan",
            "status": "in_progress",
            "priority": "urgent",
            "projectType": "marketing",
            "startDate": "2024-01-01",
            "projectValue": "2500",
            "timelineEvents": [
                {"title": "Launch", "date": "2024-01-15T00:00:00Z"},
                {"title": "Kickoff", "date": "2024-01-01T00:00:00Z", "type": "deadline"},
            ],
        },
        request,
    )

    project = payload["data"]["project"]
    assert project["status"] == "IN_PROGRESS"
    assert project["priority"] == "URGENT"
    assert project["projectType"] == "MARKETING"
    assert project["projectValue"] == 2500.0
    assert [event["title"] for event in project["timelineEvents"]] == ["Kickoff", "Launch"]
    assert project["timelineEvents"][1]["type"] == "milestone"

    listed = list_projects(request)["data"]["projects"]
    assert [item["id"] for item in listed] == [project["id"]]


@pytest.mark.parametrize(
    ("payload", "code"),
    [
        ({}, "MISSING_FIELDS"),
        ({"name": "   "}, "MISSING_FIELDS"),
        ({"name": "A", "status": "DONE"}, "INVALID_STATUS"),
        ({"name": "A", "priority": "critical"}, "INVALID_PRIORITY"),
        ({"name": "A", "projectType": "hobby"}, "INVALID_PROJECT_TYPE"),
        ({"name": "A", "color": "red"}, "UNKNOWN_FIELD"),
        ({"name": "A", "startDate": "next week"}, "INVALID_DATE"),
        ({"name": "A", "timelineEvents": {"title": "x"}}, "INVALID_TYPE"),
        ({"name": "A", "timelineEvents": [{"title": "x"}]}, "MISSING_FIELDS"),
        ({"name": "A", "timelineEvents": [{"title": "x", "date": "soon"}]}, "INVALID_DATE"),
    ],
)
def test_create_project_rejects_bad_payloads(tmp_path, payload, code):
    request = _build_request(tmp_path)

    with pytest.raises(TrackerError) as excinfo:
        create_project(payload, request)

    assert excinfo.value.error.code == code
    assert list_projects(request)["data"]["projects"] == []


def test_update_project_changes_only_given_fields(tmp_path):
    request = _build_request(tmp_path)
    project = create_project(
        {"name": "Alpha", "priority": "HIGH"}, request
    )["data"]["project"]

    updated = update_project(
        project["id"], {"status": "completed", "description": "Done"}, request
    )["data"]["project"]

    assert updated["status"] == "COMPLETED"
    assert updated["priority"] == "HIGH"
    assert updated["description"] == "Done"
    assert updated["name"] == "Alpha"


def test_get_and_delete_project(tmp_path):
    request = _build_request(tmp_path)
    project = create_project({"name": "Alpha"}, request)["data"]["project"]

    detail = get_project(project["id"], request)["data"]["project"]
    assert detail["taskCount"] == 0
    assert detail["tasks"] == []

    assert delete_project(project["id"], request)["data"] == {"success": True}
    with pytest.raises(TrackerError) as excinfo:
        get_project(project["id"], request)
    assert excinfo.value.error.code == "PROJECT_NOT_FOUND"
    assert excinfo.value.status_code == 404


def test_task_endpoints(tmp_path):
    request = _build_request(tmp_path)
    project_id = create_project({"name": "Alpha"}, request)["data"]["project"]["id"]

    task = create_task(
        project_id,
        {"title": "Write brief", "dueDate": "2024-02-01", "timeEstimate": 3},
        request,
    )["data"]["task"]
    assert task["status"] == "TODO"
    assert task["priority"] == "MEDIUM"
    assert task["timeEstimate"] == 3.0
    assert task["projectId"] == project_id

    updated = update_task(project_id, task["id"], {"status": "review"}, request)["data"]["task"]
    assert updated["status"] == "REVIEW"
    assert updated["title"] == "Write brief"

    assert get_task(project_id, task["id"], request)["data"]["task"]["status"] == "REVIEW"
    assert [item["id"] for item in list_tasks(project_id, request)["data"]["tasks"]] == [
        task["id"]
    ]
    assert get_project(project_id, request)["data"]["project"]["taskCount"] == 1

    delete_task(project_id, task["id"], request)
    assert list_tasks(project_id, request)["data"]["tasks"] == []


def test_task_endpoints_validate_input(tmp_path):
    request = _build_request(tmp_path)
    project_id = create_project({"name": "Alpha"}, request)["data"]["project"]["id"]

    with pytest.raises(TrackerError) as excinfo:
        create_task(project_id, {"title": "x", "status": "BLOCKED"}, request)
    assert excinfo.value.error.code == "INVALID_STATUS"

    with pytest.raises(TrackerError) as excinfo:
        create_task("missingproject", {"title": "x"}, request)
    assert excinfo.value.error.code == "PROJECT_NOT_FOUND"

    with pytest.raises(TrackerError) as excinfo:
        get_task(project_id, "missingtask", request)
    assert excinfo.value.error.code == "TASK_NOT_FOUND"


def test_responses_carry_display_labels(tmp_path):
    request = _build_request(tmp_path)
    project = create_project(
        {"name": "Alpha", "status": "on_hold", "projectType": "client_project"}, request
    )["data"]["project"]

    assert project["statusLabel"] == "On Hold"
    assert project["priorityLabel"] == "Medium"
    assert project["projectTypeLabel"] == "Client Project"

    create_task(project["id"], {"title": "Draft"}, request)
    detail = get_project(project["id"], request)["data"]["project"]
    assert detail["tasks"][0]["statusLabel"] == "To Do"
