"""Payload validation helpers for tracker endpoints."""

from __future__ import annotations

import re
from datetime import date, datetime
from enum import Enum
from typing import Any, TypeVar

from tracker.errors import TrackerError
from tracker.timeline import parse_iso_datetime

EnumT = TypeVar("EnumT", bound=Enum)


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise TrackerError(
            "INVALID_TYPE",
            "Payload must be an object.",
            {"type": type(payload).__name__},
        )
    return payload


def _reject_unknown_fields(payload: dict[str, Any], allowed_fields: set[str]) -> None:
    unknown_fields = sorted(set(payload) - allowed_fields)
    if unknown_fields:
        raise TrackerError(
            "UNKNOWN_FIELD",
            "Unknown fields are not allowed.",
            {"fields": unknown_fields},
        )


def _require_fields(payload: dict[str, Any], required_fields: list[str]) -> None:
    missing = [name for name in required_fields if name not in payload]
    if missing:
        raise TrackerError(
            "MISSING_FIELDS",
            f"{', '.join(required_fields)} {'is' if len(required_fields) == 1 else 'are'} required.",
            {"fields": missing},
        )


def _read_text(
    payload: dict[str, Any], key: str, *, required: bool = False
) -> str | None:
    value = payload.get(key)
    if value is None:
        if required:
            raise TrackerError(
                "MISSING_FIELDS",
                f"{key} is required.",
                {"fields": [key]},
            )
        return None
    if not isinstance(value, str):
        raise TrackerError(
            "INVALID_TYPE",
            f"{key} must be a string.",
            {key: str(value), "type": type(value).__name__},
        )
    stripped = value.strip()
    if required and not stripped:
        raise TrackerError(
            "MISSING_FIELDS",
            f"{key} is required.",
            {"fields": [key]},
        )
    return stripped or None


def _read_number(payload: dict[str, Any], key: str) -> float | None:
    value = payload.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise TrackerError(
            "INVALID_TYPE",
            f"{key} must be a number.",
            {key: str(value)},
        )
    try:
        return float(value)
    except (TypeError, ValueError):
        raise TrackerError(
            "INVALID_TYPE",
            f"{key} must be a number.",
            {key: str(value)},
        )


def _read_datetime(value: Any, key: str) -> datetime:
    """Parse an ISO-8601 date or date-time; date-only values become midnight."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    if not isinstance(value, str) or not value.strip():
        raise TrackerError(
            "INVALID_DATE",
            f"{key} must be an ISO date or date-time.",
            {key: str(value)},
        )
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise TrackerError(
            "INVALID_DATE",
            f"{key} must be an ISO date or date-time.",
            {key: value},
        )


def _read_optional_datetime(payload: dict[str, Any], key: str) -> datetime | None:
    value = payload.get(key)
    if value is None or value == "":
        return None
    return _read_datetime(value, key)


def _read_enum(
    payload: dict[str, Any], key: str, enum_type: type[EnumT], default: EnumT | None
) -> EnumT | None:
    value = payload.get(key)
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        raise TrackerError(
            "INVALID_TYPE",
            f"{key} must be a string.",
            {key: str(value), "type": type(value).__name__},
        )
    try:
        return enum_type(value.strip().upper())
    except ValueError:
        raise TrackerError(
            "INVALID_" + re.sub(r"(?<!^)(?=[A-Z])", "_", key).upper(),
            f"{key} is not a recognized value.",
            {key: value, "allowed": [member.value for member in enum_type]},
        )
