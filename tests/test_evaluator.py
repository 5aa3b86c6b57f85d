"""Tests for due-reminder evaluation."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from conftest import make_reminder

from greenhealth.engine.evaluator import (
    due_today,
    evaluate,
    has_overdue,
    is_overdue,
    sort_reminders,
)

UTC = ZoneInfo("UTC")
NOW = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


def test_past_due_reminder_is_due_and_overdue():
    """A reminder due an hour ago that was never notified."""
    reminder = make_reminder(id="r1", due_at=datetime(2024, 1, 1, 8, 0, tzinfo=UTC))

    result = evaluate(NOW, [reminder])

    assert result.due == [reminder]
    assert result.overdue == [reminder]
    assert result.upcoming == []
    assert result.has_overdue


def test_completed_reminder_is_ignored():
    """Completed reminders never show up in any partition."""
    reminder = make_reminder(
        id="r1", due_at=datetime(2024, 1, 1, 8, 0, tzinfo=UTC), completed=True
    )

    result = evaluate(NOW, [reminder])

    assert result.due == []
    assert result.overdue == []
    assert result.upcoming == []


def test_future_reminder_is_upcoming():
    """A reminder due in an hour is neither due nor overdue."""
    reminder = make_reminder(id="r1", due_at=NOW + timedelta(hours=1))

    result = evaluate(NOW, [reminder])

    assert result.due == []
    assert result.overdue == []
    assert result.upcoming == [reminder]


def test_notified_reminder_is_overdue_but_not_due():
    """Overdue is display-only and ignores the notification flag."""
    reminder = make_reminder(
        id="r1", due_at=NOW - timedelta(minutes=5), notification_sent=True
    )

    result = evaluate(NOW, [reminder])

    assert result.due == []
    assert result.overdue == [reminder]


def test_reminder_due_exactly_now():
    """Due at the current instant: due, but not yet overdue."""
    reminder = make_reminder(id="r1", due_at=NOW)

    result = evaluate(NOW, [reminder])

    assert result.due == [reminder]
    assert result.overdue == []
    assert result.upcoming == []


def test_marking_sent_removes_from_due():
    """After dispatch, the same evaluation no longer reports it due."""
    reminder = make_reminder(id="r1", due_at=NOW - timedelta(hours=1))
    assert evaluate(NOW, [reminder]).due == [reminder]

    reminder.notification_sent = True

    assert evaluate(NOW, [reminder]).due == []


def test_ties_are_broken_by_id():
    """Two reminders due at the same instant come back in id order."""
    due_at = NOW - timedelta(hours=1)
    b = make_reminder(id="b", due_at=due_at)
    a = make_reminder(id="a", due_at=due_at)

    result = evaluate(NOW, [b, a])

    assert [r.id for r in result.due] == ["a", "b"]
    assert [r.id for r in result.overdue] == ["a", "b"]
    assert [r.id for r in sort_reminders([b, a])] == ["a", "b"]


def test_numeric_ids_tie_break_like_the_store():
    """Store ids are integers: 9 comes before 10."""
    due_at = NOW - timedelta(hours=1)
    tenth = make_reminder(id="10", due_at=due_at)
    ninth = make_reminder(id="9", due_at=due_at)

    assert [r.id for r in sort_reminders([tenth, ninth])] == ["9", "10"]


def test_evaluate_is_idempotent():
    """Same inputs, same output, same order; the input list is untouched."""
    reminders = [
        make_reminder(id="3", due_at=NOW + timedelta(days=1)),
        make_reminder(id="1", due_at=NOW - timedelta(days=1)),
        make_reminder(id="2", due_at=NOW - timedelta(days=2), notification_sent=True),
    ]
    original_order = [r.id for r in reminders]

    first = evaluate(NOW, reminders)
    second = evaluate(NOW, reminders)

    assert first == second
    assert [r.id for r in first.overdue] == ["2", "1"]
    assert [r.id for r in first.due] == ["1"]
    assert [r.id for r in first.upcoming] == ["3"]
    assert [r.id for r in reminders] == original_order


def test_has_overdue_badge():
    """The badge lights up for any incomplete reminder whose time has come."""
    future = make_reminder(id="1", due_at=NOW + timedelta(hours=2))
    past_done = make_reminder(id="2", due_at=NOW - timedelta(hours=2), completed=True)
    past = make_reminder(id="3", due_at=NOW - timedelta(hours=2))

    assert not has_overdue([future, past_done], NOW)
    assert has_overdue([future, past], NOW)


def test_is_overdue():
    assert is_overdue(make_reminder(due_at=NOW - timedelta(seconds=1)), NOW)
    assert not is_overdue(make_reminder(due_at=NOW), NOW)


def test_due_today_uses_owner_timezone():
    """Local 'today' decides which reminders the daily summary covers."""
    # 09:00 UTC is 04:00 in New York on Jan 1
    later_today = make_reminder(id="1", due_at=datetime(2024, 1, 1, 20, 0, tzinfo=UTC))
    # 03:00 UTC on Jan 2 is still Jan 1 in New York
    late_evening = make_reminder(id="2", due_at=datetime(2024, 1, 2, 3, 0, tzinfo=UTC))
    tomorrow = make_reminder(id="3", due_at=datetime(2024, 1, 2, 15, 0, tzinfo=UTC))
    notified = make_reminder(
        id="4", due_at=datetime(2024, 1, 1, 21, 0, tzinfo=UTC), notification_sent=True
    )

    result = due_today([tomorrow, late_evening, notified, later_today], "America/New_York", NOW)

    assert [r.id for r in result] == ["1", "2"]
