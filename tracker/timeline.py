"""Timeline event drafts generated from markdown headers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Any, Sequence

DEFAULT_EVENT_TYPE = "milestone"
DESCRIPTION_TEMPLATE = 'Generated from markdown H1 header: "{header}"'
EDITABLE_FIELDS = ("title", "description", "date", "type")

SPACING_OPTIONS = (
    {"value": 1, "label": "1 Day", "description": "Daily milestones"},
    {"value": 3, "label": "3 Days", "description": "Every 3 days"},
    {"value": 5, "label": "5 Days", "description": "Work week spacing"},
    {"value": 7, "label": "7 Days", "description": "Weekly milestones"},
    {"value": 14, "label": "14 Days", "description": "Bi-weekly"},
    {"value": 30, "label": "30 Days", "description": "Monthly milestones"},
)


@dataclass(frozen=True)
class TimelineEvent:
    """A titled, dated event; drafts have no identity beyond their position."""

    title: str
    date: date
    description: str | None = None
    type: str = DEFAULT_EVENT_TYPE

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "date": self.date.isoformat(),
            "type": self.type,
        }


def generate_timeline_events(
    headers: Sequence[str], start_date: date, spacing_days: int
) -> list[TimelineEvent]:
    """
    Place one milestone per header, ``spacing_days`` calendar days apart.

    The first event lands exactly on ``start_date``. Offsets are added as
    whole days to the date (or to the wall-clock datetime), so daylight-saving
    transitions never shift an event onto a neighbouring day.
    """
    if isinstance(spacing_days, bool) or not isinstance(spacing_days, int):
        raise ValueError("spacing_days must be an integer.")
    if spacing_days < 0:
        raise ValueError("spacing_days must not be negative.")

    return [
        TimelineEvent(
            title=header,
            description=DESCRIPTION_TEMPLATE.format(header=header),
            date=start_date + timedelta(days=index * spacing_days),
            type=DEFAULT_EVENT_TYPE,
        )
        for index, header in enumerate(headers)
    ]


def parse_iso_datetime(raw: str) -> datetime:
    """``datetime.fromisoformat`` that also accepts a trailing ``Z`` for UTC."""
    raw = raw.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


def parse_event_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if "T" in raw or " " in raw:
            return parse_iso_datetime(raw)
        return date.fromisoformat(raw)
    raise ValueError("date must be a date or an ISO date string.")


def replace_event_field(
    events: Sequence[TimelineEvent], index: int, field: str, value: Any
) -> list[TimelineEvent]:
    """Return a copy of ``events`` with one field of one draft replaced."""
    if field not in EDITABLE_FIELDS:
        raise ValueError(f"{field} is not an editable event field.")
    if not 0 <= index < len(events):
        raise IndexError(index)

    if field == "date":
        value = parse_event_date(value)

    updated = list(events)
    updated[index] = replace(updated[index], **{field: value})
    return updated


def remove_event(events: Sequence[TimelineEvent], index: int) -> list[TimelineEvent]:
    """Return a copy of ``events`` without the draft at ``index``."""
    if not 0 <= index < len(events):
        raise IndexError(index)
    return [event for position, event in enumerate(events) if position != index]


def total_duration_days(events: Sequence[TimelineEvent]) -> int:
    """Whole days between the first and the last draft, by position."""
    if len(events) < 2:
        return 0
    first = events[0].date
    last = events[-1].date
    if isinstance(first, datetime):
        first = first.date()
    if isinstance(last, datetime):
        last = last.date()
    return (last - first).days


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def format_total_duration(header_count: int, spacing_days: int) -> str:
    if header_count == 0:
        return "0 days"
    total_days = (header_count - 1) * spacing_days
    if total_days == 0:
        return "Same day"
    if total_days < 7:
        return f"{total_days} days"
    if total_days < 30:
        return f"{_round_half_up(total_days / 7)} weeks"
    return f"{_round_half_up(total_days / 30)} months"
