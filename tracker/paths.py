"""Path validation utilities for enforcing the data root boundary."""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath

from tracker.errors import TrackerError

_VALID_RECORD_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def validate_path(data_root: Path, raw_path: str) -> Path:
    """Validate a relative path and return it joined onto the data root."""
    if not isinstance(raw_path, str):
        raise TrackerError(
            "INVALID_TYPE",
            "Path must be a string.",
            {"path": str(raw_path), "type": type(raw_path).__name__},
        )

    normalized = raw_path.replace("\\", "/")
    candidate = PurePosixPath(normalized)

    if candidate.is_absolute():
        raise TrackerError(
            "ABSOLUTE_PATH",
            "Absolute paths are not allowed.",
            {"path": raw_path},
        )

    if ".." in candidate.parts:
        raise TrackerError(
            "PATH_TRAVERSAL",
            "Path traversal is not allowed.",
            {"path": raw_path},
        )

    if _contains_symlink(data_root, candidate):
        raise TrackerError(
            "PATH_SYMLINK",
            "Symlinked paths are not allowed.",
            {"path": raw_path},
        )

    return data_root.joinpath(*candidate.parts)


def validate_record_id(raw_id: object, *, field: str = "id") -> str:
    """Check that a client-supplied record id is safe to use as a path segment."""
    if not isinstance(raw_id, str):
        raise TrackerError(
            "INVALID_TYPE",
            f"{field} must be a string.",
            {field: str(raw_id), "type": type(raw_id).__name__},
        )
    if not _VALID_RECORD_ID.fullmatch(raw_id):
        raise TrackerError(
            "INVALID_ID",
            f"{field} contains invalid characters.",
            {field: raw_id},
        )
    return raw_id


def _contains_symlink(data_root: Path, relative_path: PurePosixPath) -> bool:
    current = data_root
    for segment in relative_path.parts:
        current = current / segment
        if current.is_symlink():
            return True
    return False
