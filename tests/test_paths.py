import os

import pytest

from tracker.errors import TrackerError
from tracker.paths import validate_path, validate_record_id


def test_validate_path_returns_joined_path(tmp_path):
    result = validate_path(tmp_path, "projects/abc/project.json")

    assert result == tmp_path / "projects" / "abc" / "project.json"


def test_validate_path_rejects_absolute_path(tmp_path):
    with pytest.raises(TrackerError) as excinfo:
        validate_path(tmp_path, "/etc/passwd")

    assert excinfo.value.error.code == "ABSOLUTE_PATH"


def test_validate_path_rejects_traversal_without_fs_access(tmp_path, monkeypatch):
    def _unexpected_call(*_args, **_kwargs):
        raise AssertionError("symlink check should not run for traversal paths")

    monkeypatch.setattr("tracker.paths._contains_symlink", _unexpected_call)

    with pytest.raises(TrackerError) as excinfo:
        validate_path(tmp_path, "../../etc/passwd")

    assert excinfo.value.error.code == "PATH_TRAVERSAL"


def test_validate_path_rejects_symlink(tmp_path):
    target = tmp_path / "target"
    target.mkdir()
    os.symlink(target, tmp_path / "link")

    with pytest.raises(TrackerError) as excinfo:
        validate_path(tmp_path, "link/project.json")

    assert excinfo.value.error.code == "PATH_SYMLINK"


@pytest.mark.parametrize("raw_id", ["../escape", "a/b", "", "x" * 65])
def test_validate_record_id_rejects_unsafe_ids(raw_id):
    with pytest.raises(TrackerError) as excinfo:
        validate_record_id(raw_id)

    assert excinfo.value.error.code == "INVALID_ID"


def test_validate_record_id_accepts_hex_ids():
    assert validate_record_id("0f3a9c2e") == "0f3a9c2e"
