from datetime import datetime, timedelta, timezone

import pytest

from tracker.aggregation import (
    MILESTONE_EVENT_TYPES,
    ScheduledEvent,
    describe_overdue,
    end_of_day,
    overdue_events,
    start_of_day,
    today_events,
    tomorrow_events,
)

UTC = timezone.utc
NOW = datetime(2024, 3, 10, 9, 0, tzinfo=UTC)


def _event(moment, *, status="IN_PROGRESS", type="milestone", title=None):
    return ScheduledEvent(
        event={
            "id": title or moment.isoformat(),
            "title": title or moment.isoformat(),
            "date": moment.isoformat(),
            "type": type,
        },
        date=moment,
        project={"id": "p1", "name": "Alpha", "status": status},
    )


def test_day_bounds():
    assert start_of_day(NOW) == datetime(2024, 3, 10, tzinfo=UTC)
    assert end_of_day(NOW) == datetime(2024, 3, 10, 23, 59, 59, 999000, tzinfo=UTC)


def test_today_includes_both_bounds_and_sorts_ascending():
    late = _event(end_of_day(NOW), title="late")
    early = _event(start_of_day(NOW), title="early")
    tomorrow = _event(end_of_day(NOW) + timedelta(milliseconds=1), title="tomorrow")

    selected = today_events([late, tomorrow, early], NOW)

    assert [event.event["title"] for event in selected] == ["early", "late"]


def test_sub_millisecond_end_of_day_stays_in_that_day():
    last_instant = _event(datetime(2024, 3, 10, 23, 59, 59, 999500, tzinfo=UTC))
    evening = NOW - timedelta(days=1)

    assert today_events([last_instant], NOW) == [last_instant]
    assert tomorrow_events([last_instant], NOW) == []
    assert tomorrow_events([last_instant], evening) == [last_instant]


def test_today_includes_terminal_projects():
    done = _event(NOW, status="COMPLETED")

    assert today_events([done], NOW) == [done]


def test_tomorrow_covers_next_calendar_day():
    first = _event(datetime(2024, 3, 11, 0, 0, tzinfo=UTC), title="first")
    last = _event(datetime(2024, 3, 11, 23, 59, 59, 999000, tzinfo=UTC), title="last")
    today = _event(datetime(2024, 3, 10, 23, 0, tzinfo=UTC), title="today")
    after = _event(datetime(2024, 3, 12, 0, 0, tzinfo=UTC), title="after")

    selected = tomorrow_events([after, last, today, first], NOW)

    assert [event.event["title"] for event in selected] == ["first", "last"]


def test_tomorrow_filters_milestone_types_case_insensitively():
    moment = datetime(2024, 3, 11, 12, 0, tzinfo=UTC)
    release = _event(moment, type="Release", title="release")
    meeting = _event(moment, type="meeting", title="meeting")

    selected = tomorrow_events([release, meeting], NOW, types=MILESTONE_EVENT_TYPES)

    assert [event.event["title"] for event in selected] == ["release"]


def test_overdue_example():
    event = _event(datetime(2024, 3, 8, 9, 0, 1, tzinfo=UTC))

    [overdue] = overdue_events([event], NOW)

    assert overdue.days_overdue == 1
    assert overdue.hours_overdue == 47
    assert overdue.overdue_text == "1 day overdue"
    payload = overdue.to_dict()
    assert payload["daysOverdue"] == 1
    assert payload["overdueText"] == "1 day overdue"
    assert payload["project"]["name"] == "Alpha"


@pytest.mark.parametrize("status", ["COMPLETED", "CANCELLED"])
def test_overdue_excludes_terminal_projects(status):
    event = _event(datetime(2024, 3, 8, 9, 0, 1, tzinfo=UTC), status=status)

    assert overdue_events([event], NOW) == []


def test_overdue_keeps_unknown_status():
    event = _event(datetime(2024, 3, 8, tzinfo=UTC), status=None)

    assert len(overdue_events([event], NOW)) == 1


def test_overdue_floors_elapsed_time():
    event = _event(NOW - timedelta(hours=23, minutes=59))

    [overdue] = overdue_events([event], NOW)

    assert (overdue.days_overdue, overdue.hours_overdue) == (0, 23)
    assert overdue.overdue_text == "23 hours overdue"


def test_overdue_is_strictly_before_now_and_most_recent_first():
    recent = _event(NOW - timedelta(hours=1), title="recent")
    older = _event(NOW - timedelta(days=3), title="older")
    now_event = _event(NOW, title="now")

    selected = overdue_events([older, now_event, recent], NOW)

    assert [item.scheduled.event["title"] for item in selected] == ["recent", "older"]


def test_overdue_does_not_mutate_input():
    event = _event(NOW - timedelta(days=2))
    snapshot = dict(event.event)

    overdue_events([event], NOW)

    assert event.event == snapshot
    assert "daysOverdue" not in event.event


def test_naive_event_dates_compare_against_aware_now():
    naive = _event(datetime(2024, 3, 10, 12, 0))

    assert today_events([naive], NOW) == [naive]
    assert len(overdue_events([_event(datetime(2024, 3, 9, 12, 0))], NOW)) == 1


@pytest.mark.parametrize(
    ("days", "hours", "expected"),
    [
        (1, 30, "1 day overdue"),
        (2, 50, "2 days overdue"),
        (0, 1, "1 hour overdue"),
        (0, 0, "0 hours overdue"),
    ],
)
def test_describe_overdue(days, hours, expected):
    assert describe_overdue(days, hours) == expected
