"""RRULE-based recurrence helpers.

Recurrence is stored on a reminder as metadata only. Nothing here runs on its
own: a follow-up reminder is created only when the owner asks for it.
"""

from datetime import datetime

from dateutil.rrule import rrulestr

from greenhealth.db.models import Reminder

# Recurrence option -> iCalendar RRULE
RECURRENCE_RULES = {
    "daily": "FREQ=DAILY",
    "weekly": "FREQ=WEEKLY",
    "biweekly": "FREQ=WEEKLY;INTERVAL=2",
    "monthly": "FREQ=MONTHLY",
}

RECURRENCE_LABELS = {
    "none": "Does not repeat",
    "daily": "Every day",
    "weekly": "Every week",
    "biweekly": "Every 2 weeks",
    "monthly": "Every month",
}


def is_recurring(recurrence: str) -> bool:
    return recurrence in RECURRENCE_RULES


def describe_recurrence(recurrence: str) -> str:
    """Human-readable label for a recurrence option."""
    return RECURRENCE_LABELS.get(recurrence, RECURRENCE_LABELS["none"])


def get_next_occurrence(due_at: datetime, recurrence: str) -> datetime:
    """Get the next occurrence after due_at.

    Monthly rules skip months without the day (a reminder on the 31st next
    falls on the next month that has a 31st), as RFC 5545 specifies.

    Args:
        due_at: Current due date (timezone-aware)
        recurrence: One of daily, weekly, biweekly, monthly

    Returns:
        Next occurrence as timezone-aware datetime
    """
    rule_str = RECURRENCE_RULES.get(recurrence)
    if rule_str is None:
        raise ValueError(f"Reminder does not recur: {recurrence}")

    rule = rrulestr(f"RRULE:{rule_str}", dtstart=due_at)

    next_date = rule.after(due_at)

    if next_date is None:
        raise ValueError("No next occurrence found")

    # Ensure timezone info is preserved
    if next_date.tzinfo is None and due_at.tzinfo is not None:
        next_date = next_date.replace(tzinfo=due_at.tzinfo)

    return next_date


def build_next_reminder(reminder: Reminder) -> Reminder:
    """A fresh, incomplete copy of a recurring reminder at its next occurrence."""
    return Reminder(
        owner_id=reminder.owner_id,
        title=reminder.title,
        description=reminder.description,
        due_at=get_next_occurrence(reminder.due_at, reminder.recurrence),
        recurrence=reminder.recurrence,
        category=reminder.category,
        plant_id=reminder.plant_id,
        plant_name=reminder.plant_name,
    )
