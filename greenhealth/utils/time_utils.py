"""Time and timezone utilities."""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(ZoneInfo("UTC"))


def to_utc(dt: datetime, tz: str) -> datetime:
    """Convert a timezone-aware datetime to UTC."""
    if dt.tzinfo is None:
        # Assume it's in the given timezone
        dt = dt.replace(tzinfo=ZoneInfo(tz))
    return dt.astimezone(ZoneInfo("UTC"))


def from_utc(dt: datetime, tz: str) -> datetime:
    """Convert a UTC datetime to the given timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt.astimezone(ZoneInfo(tz))


def combine_date_time(day: date, time_of_day: str, tz: str) -> datetime:
    """Combine a calendar date and an HH:MM time in the owner's timezone.

    Returns:
        The combined instant in UTC (always timezone-aware)
    """
    local = datetime.combine(day, time.fromisoformat(time_of_day))
    return to_utc(local.replace(tzinfo=ZoneInfo(tz)), tz)


def parse_date(text: str, tz: str, now: datetime | None = None) -> date:
    """Parse a due date typed by the user.

    Supports:
    - today / tomorrow
    - in X days / in X weeks
    - ISO format (2026-03-15)
    """
    if now is None:
        now = utcnow()

    today = from_utc(now, tz).date()
    text = text.strip().lower()

    if text == "today":
        return today
    if text == "tomorrow":
        return today + timedelta(days=1)

    if text.startswith("in "):
        parts = text[3:].split()
        if len(parts) == 2 and parts[0].isdigit():
            value = int(parts[0])
            unit = parts[1]
            if unit in ["day", "days"]:
                return today + timedelta(days=value)
            if unit in ["week", "weeks"]:
                return today + timedelta(weeks=value)
            raise ValueError(f"Unknown time unit: {unit}")

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    raise ValueError(f"Couldn't understand date format: {text}")


def parse_time_of_day(text: str) -> str:
    """Validate an HH:MM time and return it zero-padded."""
    try:
        parsed = time.fromisoformat(text.strip().zfill(5))
    except ValueError:
        raise ValueError(f"Couldn't understand time: {text}")
    return parsed.strftime("%H:%M")


def format_due(dt: datetime, tz: str) -> str:
    """Format a due time as e.g. "Jan 1, 2024 at 8:00 AM" in the owner's timezone."""
    local = from_utc(dt, tz)
    hour = local.hour % 12 or 12
    return (
        f"{local.strftime('%b')} {local.day}, {local.year} "
        f"at {hour}:{local.strftime('%M %p')}"
    )


def format_relative_time(dt: datetime, now: datetime | None = None) -> str:
    """Format a datetime relative to now.

    Examples:
        "in 5 minutes"
        "in 2 hours"
        "tomorrow"
        "2 days overdue"
    """
    if now is None:
        now = utcnow()

    delta = dt - now
    total_seconds = delta.total_seconds()

    if total_seconds < 0:
        # Overdue
        abs_seconds = abs(total_seconds)
        if abs_seconds < 3600:
            minutes = int(abs_seconds / 60)
            return f"{minutes} minute{'s' if minutes != 1 else ''} overdue"
        elif abs_seconds < 86400:
            hours = int(abs_seconds / 3600)
            return f"{hours} hour{'s' if hours != 1 else ''} overdue"
        else:
            days = int(abs_seconds / 86400)
            return f"{days} day{'s' if days != 1 else ''} overdue"
    else:
        # Future
        if total_seconds < 3600:
            minutes = int(total_seconds / 60)
            return f"in {minutes} minute{'s' if minutes != 1 else ''}"
        elif total_seconds < 86400:
            hours = int(total_seconds / 3600)
            return f"in {hours} hour{'s' if hours != 1 else ''}"
        elif total_seconds < 172800:  # 2 days
            return "tomorrow"
        else:
            days = int(total_seconds / 86400)
            return f"in {days} days"
