"""Request-scoped user identity and data root helpers."""

from __future__ import annotations

import re
from pathlib import Path

from fastapi import Request

from tracker.errors import TrackerError

USER_ID_HEADER = "X-Tracker-User-Id"
USER_NAME_HEADER = "X-Tracker-User-Name"
USER_EMAIL_HEADER = "X-Tracker-User-Email"
SERVICE_TOKEN_HEADER = "X-Tracker-Service-Token"
AUTH_EXEMPT_PATHS = {"/health"}
DEFAULT_USER_ID = "localuser"

_VALID_USER_ID = re.compile(r"^[A-Za-z0-9_]{3,128}$")


def normalize_user_id(raw_user_id: str) -> str:
    """Normalize and validate a user id from request context."""
    if not isinstance(raw_user_id, str):
        raise TrackerError(
            "INVALID_USER_ID",
            "User id must be a string.",
            {"type": type(raw_user_id).__name__},
            status_code=401,
        )

    normalized = raw_user_id.strip().replace("-", "")
    if not normalized:
        raise TrackerError(
            "AUTH_REQUIRED",
            "Missing required user identity header.",
            {"header": USER_ID_HEADER},
            status_code=401,
        )

    if not _VALID_USER_ID.fullmatch(normalized):
        raise TrackerError(
            "INVALID_USER_ID",
            "User id contains invalid characters.",
            {"user_id": raw_user_id},
            status_code=401,
        )
    return normalized


def resolve_user_data_root(base_root: Path, user_id: str) -> Path:
    """Resolve the scoped user data root path."""
    return base_root / "users" / normalize_user_id(user_id)


def _user_header_required(request: Request) -> bool:
    config = getattr(request.app.state, "config", None)
    return bool(getattr(config, "require_user_header", True))


def get_request_user_id(request: Request) -> str:
    """Read and cache normalized user id from request state/headers."""
    cached = getattr(request.state, "user_id", None)
    if isinstance(cached, str) and cached.strip():
        normalized = normalize_user_id(cached)
        request.state.user_id = normalized
        return normalized

    headers = getattr(request, "headers", None) or {}
    raw_user_id = headers.get(USER_ID_HEADER)
    if raw_user_id is None:
        if _user_header_required(request):
            raise TrackerError(
                "AUTH_REQUIRED",
                "Missing required user identity header.",
                {"header": USER_ID_HEADER},
                status_code=401,
            )
        raw_user_id = DEFAULT_USER_ID

    normalized = normalize_user_id(raw_user_id)
    request.state.user_id = normalized
    return normalized


def get_request_owner(request: Request) -> dict[str, str | None]:
    """Owner identity fields recorded on projects created by this request."""
    headers = getattr(request, "headers", None) or {}
    name = (headers.get(USER_NAME_HEADER) or "").strip() or None
    email = (headers.get(USER_EMAIL_HEADER) or "").strip() or None
    return {"id": get_request_user_id(request), "name": name, "email": email}


def get_request_data_root(request: Request) -> Path:
    """Resolve and create the user-scoped data root for a request."""
    config = getattr(request.app.state, "config", None)
    if config is not None and hasattr(config, "data_path"):
        base_root = Path(config.data_path)
    else:
        base_root = Path(request.app.state.data_path)

    user_id = get_request_user_id(request)
    scoped_root = resolve_user_data_root(base_root, user_id)
    scoped_root.mkdir(parents=True, exist_ok=True)
    return scoped_root
