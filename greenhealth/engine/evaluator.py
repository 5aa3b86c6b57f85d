"""Due-reminder evaluation.

Pure functions: no store access, no clock reads unless ``now`` is omitted by a
presentation helper.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List

from greenhealth.db.models import Reminder
from greenhealth.utils.time_utils import from_utc, utcnow


@dataclass
class Evaluation:
    """Partition of a reminder set at a given instant.

    ``due`` and ``overdue`` overlap: a reminder past its due time that has not
    been notified yet is in both. ``upcoming`` holds everything not yet due.
    """

    due: List[Reminder] = field(default_factory=list)
    overdue: List[Reminder] = field(default_factory=list)
    upcoming: List[Reminder] = field(default_factory=list)

    @property
    def has_overdue(self) -> bool:
        return bool(self.overdue)


def sort_key(reminder: Reminder) -> tuple:
    """Earliest due first; ties broken by id, numerically as the store orders them."""
    rid = reminder.id or ""
    return (reminder.due_at, int(rid) if rid.isdigit() else -1, rid)


def sort_reminders(reminders: Iterable[Reminder]) -> List[Reminder]:
    """Return reminders in display order."""
    return sorted(reminders, key=sort_key)


def is_overdue(reminder: Reminder, now: datetime) -> bool:
    """Display-only: the due time has passed, whatever the notification state."""
    return reminder.due_at < now


def is_due(reminder: Reminder, now: datetime) -> bool:
    """The due time is reached and no notification has been shown yet."""
    return reminder.due_at <= now and not reminder.notification_sent


def evaluate(now: datetime, reminders: Iterable[Reminder]) -> Evaluation:
    """Partition incomplete reminders into due, overdue and upcoming.

    Callers pass reminders with ``completed == False``; any completed ones are
    skipped. Calling this repeatedly with the same inputs yields the same
    order-stable output.
    """
    result = Evaluation()

    for reminder in sort_reminders(r for r in reminders if not r.completed):
        if reminder.due_at > now:
            result.upcoming.append(reminder)
            continue

        if is_due(reminder, now):
            result.due.append(reminder)
        if is_overdue(reminder, now):
            result.overdue.append(reminder)

    return result


def has_overdue(reminders: Iterable[Reminder], now: datetime | None = None) -> bool:
    """Badge state: any incomplete reminder whose due time has been reached."""
    if now is None:
        now = utcnow()
    return any(not r.completed and r.due_at <= now for r in reminders)


def due_today(
    reminders: Iterable[Reminder], tz: str, now: datetime | None = None
) -> List[Reminder]:
    """Incomplete, not yet notified reminders due on the owner's local today."""
    if now is None:
        now = utcnow()

    today = from_utc(now, tz).date()
    return sort_reminders(
        r
        for r in reminders
        if not r.completed
        and not r.notification_sent
        and from_utc(r.due_at, tz).date() == today
    )
