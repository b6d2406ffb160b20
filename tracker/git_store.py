"""Git helpers that version the JSON records of a user's data root."""

from __future__ import annotations

import logging
from pathlib import Path

from dulwich import porcelain
from dulwich.repo import Repo

from tracker.errors import TrackerError

logger = logging.getLogger(__name__)

COMMIT_IDENTITY = b"Tracker Service <tracker@localhost>"


def _ensure_git_repo(data_root: Path) -> Repo:
    git_dir = data_root / ".git"
    try:
        if git_dir.exists():
            return Repo(str(data_root))
        logger.info("Initializing record repository at %s", data_root)
        return porcelain.init(str(data_root))
    except Exception as exc:
        raise TrackerError(
            "STORAGE_ERROR",
            "Record repository could not be initialized.",
            {"path": str(data_root)},
            status_code=500,
        ) from exc


def _stage_paths(repo: Repo, relative_paths: list[Path]) -> None:
    # Staging a path that no longer exists removes it from the index.
    repo.get_worktree().stage([path.as_posix() for path in relative_paths])


def _commit_record_changes(
    repo: Repo,
    relative_paths: list[Path],
    operation: str,
    target: str,
) -> str:
    _stage_paths(repo, relative_paths)
    commit_sha = porcelain.commit(
        repo,
        message=f"{operation}: {target}",
        author=COMMIT_IDENTITY,
        committer=COMMIT_IDENTITY,
    )
    if isinstance(commit_sha, bytes):
        return commit_sha.decode("ascii")
    return str(commit_sha)

