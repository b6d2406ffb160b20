"""Timeline endpoints: markdown intake, draft generation and dashboard queries."""

from __future__ import annotations

import base64
import binascii
import logging
from datetime import date
from typing import Any

from fastapi import Request

from tracker.aggregation import (
    MILESTONE_EVENT_TYPES,
    ScheduledEvent,
    overdue_events,
    today_events,
    tomorrow_events,
)
from tracker.context import (
    current_time,
    default_spacing_days,
    get_request_store,
    localize,
    request_timezone,
)
from tracker.errors import TrackerError, success_response
from tracker.markdown_parser import (
    FILE_TOO_LARGE_MESSAGE,
    MAX_UPLOAD_BYTES,
    NO_HEADERS_MESSAGE,
    READ_FAILED_MESSAGE,
    decode_upload,
    parse_markdown_headers,
    validate_markdown_file,
)
from tracker.payload import (
    _ensure_payload_dict,
    _read_datetime,
    _read_text,
    _reject_unknown_fields,
    _require_fields,
)
from tracker.router import api_router
from tracker.timeline import (
    SPACING_OPTIONS,
    format_total_duration,
    generate_timeline_events,
    parse_event_date,
    total_duration_days,
)

logger = logging.getLogger(__name__)

UPLOAD_FIELDS = {"filename", "size", "contentType", "content", "contentBase64"}


def _read_upload_metadata(payload: dict[str, Any]) -> tuple[str, int, str | None]:
    _require_fields(payload, ["filename"])
    filename = payload["filename"]
    if not isinstance(filename, str) or not filename.strip():
        raise TrackerError(
            "INVALID_TYPE",
            "filename must be a non-empty string.",
            {"filename": str(filename)},
        )

    size = payload.get("size")
    if size is None:
        content = payload.get("content")
        size = len(content.encode("utf-8")) if isinstance(content, str) else 0
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise TrackerError(
            "INVALID_TYPE",
            "size must be a non-negative integer.",
            {"size": str(size)},
        )

    content_type = payload.get("contentType")
    if content_type is not None and not isinstance(content_type, str):
        raise TrackerError(
            "INVALID_TYPE",
            "contentType must be a string.",
            {"contentType": str(content_type)},
        )
    return filename.strip(), size, content_type


def _read_upload_text(payload: dict[str, Any]) -> str:
    if "contentBase64" in payload:
        encoded = payload["contentBase64"]
        if not isinstance(encoded, str):
            raise TrackerError(
                "INVALID_TYPE",
                "contentBase64 must be a string.",
                {"contentBase64": str(encoded)},
            )
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (ValueError, binascii.Error) as exc:
            raise TrackerError(
                "FILE_READ_FAILED",
                READ_FAILED_MESSAGE,
                {"error": str(exc)},
            ) from exc
        if len(raw) > MAX_UPLOAD_BYTES:
            raise TrackerError("INVALID_FILE", FILE_TOO_LARGE_MESSAGE, {"size": len(raw)})
        return decode_upload(raw)

    content = payload.get("content")
    if not isinstance(content, str):
        raise TrackerError(
            "MISSING_CONTENT",
            "content or contentBase64 is required.",
            {"fields": ["content", "contentBase64"]},
        )
    if len(content.encode("utf-8")) > MAX_UPLOAD_BYTES:
        raise TrackerError(
            "INVALID_FILE", FILE_TOO_LARGE_MESSAGE, {"size": len(content)}
        )
    return content


@api_router.post("/timeline/validate")
def validate_upload(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Check an upload's name, size and content type without reading it."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, UPLOAD_FIELDS)
    filename, size, content_type = _read_upload_metadata(payload)
    result = validate_markdown_file(filename, size, content_type)
    return success_response(result.to_dict())


@api_router.post("/timeline/parse")
def parse_upload(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Validate an uploaded markdown file and extract its H1 headers."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, UPLOAD_FIELDS)
    filename, size, content_type = _read_upload_metadata(payload)

    validation = validate_markdown_file(filename, size, content_type)
    if not validation.valid:
        raise TrackerError(
            "INVALID_FILE",
            validation.error or "Invalid file",
            {"filename": filename},
        )

    result = parse_markdown_headers(_read_upload_text(payload))
    if not result.headers:
        raise TrackerError("NO_HEADERS", NO_HEADERS_MESSAGE, {"filename": filename})

    logger.info("Parsed %d H1 headers from %s", len(result.headers), filename)
    return success_response(result.to_dict())


def _read_headers(payload: dict[str, Any]) -> list[str]:
    headers = payload.get("headers")
    if not isinstance(headers, list) or not all(
        isinstance(header, str) for header in headers
    ):
        raise TrackerError(
            "INVALID_TYPE",
            "headers must be a list of strings.",
            {"headers": str(headers)},
        )
    stripped = [header.strip() for header in headers]
    if not all(stripped):
        raise TrackerError(
            "INVALID_HEADERS",
            "headers must not contain empty strings.",
            {"headers": headers},
        )
    return stripped


def _read_start_date(payload: dict[str, Any], request: Request) -> date:
    raw = payload.get("startDate")
    if raw is None or raw == "":
        return current_time(request).date()
    try:
        return parse_event_date(raw)
    except ValueError as exc:
        raise TrackerError(
            "INVALID_DATE",
            "startDate must be an ISO date.",
            {"startDate": str(raw)},
        ) from exc


def _read_spacing(payload: dict[str, Any], request: Request) -> int:
    spacing = payload.get("spacingDays")
    if spacing is None:
        return default_spacing_days(request)
    if isinstance(spacing, bool) or not isinstance(spacing, int) or spacing < 0:
        raise TrackerError(
            "INVALID_SPACING",
            "spacingDays must be a non-negative integer.",
            {"spacingDays": str(spacing)},
        )
    return spacing


@api_router.post("/timeline/generate")
def generate_timeline(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Project headers onto dates, one event every ``spacingDays`` days."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"headers", "startDate", "spacingDays"})
    _require_fields(payload, ["headers"])

    headers = _read_headers(payload)
    start_date = _read_start_date(payload, request)
    spacing_days = _read_spacing(payload, request)

    events = generate_timeline_events(headers, start_date, spacing_days)
    return success_response(
        {
            "events": [event.to_dict() for event in events],
            "totalDays": total_duration_days(events),
            "totalDuration": format_total_duration(len(headers), spacing_days),
            "spacingOptions": list(SPACING_OPTIONS),
        }
    )


def _load_scheduled_events(request: Request, failure_message: str) -> list[ScheduledEvent]:
    store = get_request_store(request)
    try:
        return store.scheduled_events()
    except TrackerError as exc:
        if exc.status_code < 500:
            raise
        logger.error("%s: %s", failure_message, exc.error.message)
        raise TrackerError(
            "STORAGE_ERROR",
            failure_message,
            {"error": exc.error.message},
            status_code=500,
        ) from exc


@api_router.get("/timeline/today")
def timeline_today(request: Request) -> dict[str, Any]:
    """Events scheduled for today, earliest first."""
    now = current_time(request)
    events = today_events(
        _load_scheduled_events(request, "Failed to fetch today's timeline events"),
        now,
    )
    logger.info("Found %d timeline events for today", len(events))
    return success_response({"events": [event.to_dict() for event in events]})


@api_router.get("/timeline/tomorrow")
def timeline_tomorrow(request: Request, milestones: bool = False) -> dict[str, Any]:
    """Events scheduled for tomorrow; ``milestones`` keeps milestone-like types only."""
    now = current_time(request)
    events = tomorrow_events(
        _load_scheduled_events(request, "Failed to fetch tomorrow's timeline events"),
        now,
        types=MILESTONE_EVENT_TYPES if milestones else None,
    )
    logger.info("Found %d timeline events for tomorrow", len(events))
    return success_response({"events": [event.to_dict() for event in events]})


@api_router.get("/timeline/overdue")
def timeline_overdue(request: Request) -> dict[str, Any]:
    """Missed events of active projects, most recently missed first."""
    now = current_time(request)
    events = overdue_events(
        _load_scheduled_events(request, "Failed to fetch overdue timeline events"),
        now,
    )
    logger.info("Found %d overdue timeline events", len(events))
    return success_response({"events": [event.to_dict() for event in events]})


def _read_event_fields(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if "title" in payload:
        fields["title"] = _read_text(payload, "title", required=True)
    if "description" in payload:
        fields["description"] = _read_text(payload, "description")
    if "type" in payload:
        fields["type"] = _read_text(payload, "type") or "milestone"
    if "date" in payload:
        fields["date"] = localize(
            _read_datetime(payload["date"], "date"), request_timezone(request)
        )
    return fields


@api_router.put("/projects/{project_id}/timeline/{event_id}")
def update_timeline_event(
    project_id: str, event_id: str, payload: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Update a persisted timeline event."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"title", "description", "date", "type"})
    fields = _read_event_fields(payload, request)
    event = get_request_store(request).update_event(project_id, event_id, fields)
    return success_response({"event": event})


@api_router.delete("/projects/{project_id}/timeline/{event_id}")
def delete_timeline_event(
    project_id: str, event_id: str, request: Request
) -> dict[str, Any]:
    """Delete a persisted timeline event."""
    get_request_store(request).delete_event(project_id, event_id)
    return success_response({"success": True})


def _read_draft_event(entry: Any, index: int, request: Request) -> dict[str, Any]:
    if not isinstance(entry, dict):
        raise TrackerError(
            "INVALID_TYPE",
            "Timeline events must be objects.",
            {"index": index, "type": type(entry).__name__},
        )
    _reject_unknown_fields(entry, {"title", "description", "date", "type"})
    _require_fields(entry, ["title", "date"])
    fields = _read_event_fields(entry, request)
    fields.setdefault("type", "milestone")
    fields.setdefault("description", None)
    return fields


def read_draft_events(raw_events: Any, request: Request) -> list[dict[str, Any]]:
    """Validate the draft events submitted with a new project."""
    if raw_events is None:
        return []
    if not isinstance(raw_events, list):
        raise TrackerError(
            "INVALID_TYPE",
            "timelineEvents must be a list.",
            {"type": type(raw_events).__name__},
        )
    return [
        _read_draft_event(entry, index, request)
        for index, entry in enumerate(raw_events)
    ]

