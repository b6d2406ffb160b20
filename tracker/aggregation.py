"""Today / tomorrow / overdue classification of persisted timeline events."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from tracker.enums import TERMINAL_PROJECT_STATUSES, ProjectStatus, parse_project_status

logger = logging.getLogger(__name__)

MILESTONE_EVENT_TYPES = frozenset({"milestone", "deadline", "release"})

ONE_DAY = timedelta(days=1)
ONE_HOUR = timedelta(hours=1)


@dataclass(frozen=True)
class ScheduledEvent:
    """A persisted timeline event joined with a summary of its project."""

    event: dict[str, Any]
    date: datetime
    project: dict[str, Any] = field(default_factory=dict)

    @property
    def project_status(self) -> ProjectStatus | None:
        return parse_project_status(self.project.get("status"))

    @property
    def type(self) -> str:
        return str(self.event.get("type") or "")

    def to_dict(self) -> dict[str, Any]:
        return {**self.event, "project": dict(self.project)}


@dataclass(frozen=True)
class OverdueEvent:
    scheduled: ScheduledEvent
    days_overdue: int
    hours_overdue: int
    overdue_text: str

    def to_dict(self) -> dict[str, Any]:
        payload = self.scheduled.to_dict()
        payload["daysOverdue"] = self.days_overdue
        payload["hoursOverdue"] = self.hours_overdue
        payload["overdueText"] = self.overdue_text
        return payload


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999000)


def _align(moment: datetime, reference: datetime) -> datetime:
    """Bring ``moment`` to the same awareness as ``reference`` for comparison."""
    if reference.tzinfo is None and moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    if reference.tzinfo is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=reference.tzinfo)
    return moment


def _elapsed(moment: datetime, now: datetime) -> timedelta:
    # Aware values are subtracted in UTC.
    if now.tzinfo is not None:
        return now.astimezone(timezone.utc) - moment.astimezone(timezone.utc)
    return now - moment


def _events_on_day(
    events: Iterable[ScheduledEvent], day: datetime
) -> list[ScheduledEvent]:
    # Half-open window: [start of day, start of next day).
    start, stop = start_of_day(day), start_of_day(day + ONE_DAY)
    logger.debug(
        "Selecting timeline events between %s and %s", start, end_of_day(day)
    )
    selected = [
        event for event in events if start <= _align(event.date, start) < stop
    ]
    return sorted(selected, key=lambda event: _align(event.date, start))


def today_events(
    events: Iterable[ScheduledEvent], now: datetime
) -> list[ScheduledEvent]:
    """Events dated within the local day of ``now``, earliest first."""
    return _events_on_day(events, now)


def tomorrow_events(
    events: Iterable[ScheduledEvent],
    now: datetime,
    types: Iterable[str] | None = None,
) -> list[ScheduledEvent]:
    """
    Events dated within the calendar day after ``now``, earliest first.

    ``types`` optionally narrows the result to the given event types,
    compared case-insensitively (see ``MILESTONE_EVENT_TYPES``).
    """
    selected = _events_on_day(events, now + ONE_DAY)
    if types is None:
        return selected
    wanted = {value.lower() for value in types}
    return [event for event in selected if event.type.lower() in wanted]


def describe_overdue(days_overdue: int, hours_overdue: int) -> str:
    if days_overdue > 0:
        unit = "day" if days_overdue == 1 else "days"
        return f"{days_overdue} {unit} overdue"
    unit = "hour" if hours_overdue == 1 else "hours"
    return f"{hours_overdue} {unit} overdue"


def overdue_events(
    events: Iterable[ScheduledEvent], now: datetime
) -> list[OverdueEvent]:
    """
    Past events of still-active projects, most recently missed first.

    Elapsed days and hours are floored, so an event 23h59m late reports
    ``0`` days and ``23`` hours.
    """
    selected = [
        event
        for event in events
        if _align(event.date, now) < now
        and event.project_status not in TERMINAL_PROJECT_STATUSES
    ]
    selected.sort(key=lambda event: _align(event.date, now), reverse=True)

    enriched: list[OverdueEvent] = []
    for event in selected:
        elapsed = _elapsed(_align(event.date, now), now)
        days_overdue = elapsed // ONE_DAY
        hours_overdue = elapsed // ONE_HOUR
        enriched.append(
            OverdueEvent(
                scheduled=event,
                days_overdue=days_overdue,
                hours_overdue=hours_overdue,
                overdue_text=describe_overdue(days_overdue, hours_overdue),
            )
        )
    return enriched
