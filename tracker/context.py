"""Per-request access to the record store, the clock and the time zone."""

from __future__ import annotations

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from fastapi import Request

from tracker.config import DEFAULT_SPACING_DAYS
from tracker.storage import ProjectStore
from tracker.user_scope import get_request_data_root


def get_request_store(request: Request) -> ProjectStore:
    return ProjectStore(get_request_data_root(request))


def request_timezone(request: Request) -> tzinfo | None:
    """Configured zone, or ``None`` for the host's local time."""
    config = getattr(request.app.state, "config", None)
    name = getattr(config, "timezone", None)
    return ZoneInfo(name) if name else None


def default_spacing_days(request: Request) -> int:
    config = getattr(request.app.state, "config", None)
    return getattr(config, "default_spacing_days", DEFAULT_SPACING_DAYS)


def current_time(request: Request) -> datetime:
    """Aware "now" for the request; ``app.state.clock`` overrides the system clock."""
    clock = getattr(request.app.state, "clock", None)
    if clock is not None:
        return clock()
    zone = request_timezone(request)
    if zone is None:
        return datetime.now().astimezone()
    return datetime.now(zone)


def localize(moment: datetime, zone: tzinfo | None) -> datetime:
    """Attach ``zone`` to a naive datetime; aware values are returned as-is."""
    if moment.tzinfo is not None:
        return moment
    if zone is None:
        return moment.astimezone()
    return moment.replace(tzinfo=zone)
