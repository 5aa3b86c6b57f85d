"""Message text formatters."""

from datetime import datetime
from html import escape
from typing import TYPE_CHECKING, List

from greenhealth.db.models import Owner, Plant, Reminder
from greenhealth.engine.evaluator import has_overdue, is_overdue, sort_reminders
from greenhealth.engine.recurrence import describe_recurrence, is_recurring
from greenhealth.utils.constants import CATEGORY_ICONS
from greenhealth.utils.time_utils import format_due, format_relative_time, utcnow

if TYPE_CHECKING:
    from greenhealth.engine.platform import NotificationPayload


def format_due_line(reminder: Reminder, owner: Owner, now: datetime) -> str:
    """Due line, marked when the due time has passed."""
    due = format_due(reminder.due_at, owner.timezone)
    if is_overdue(reminder, now):
        return f"🔴 Due: {due} (Overdue)"
    return f"Due: {due} ({format_relative_time(reminder.due_at, now)})"


def format_reminder(
    reminder: Reminder, owner: Owner, show_id: bool = True, now: datetime | None = None
) -> str:
    """Format a reminder as a message."""
    if now is None:
        now = utcnow()

    icon = CATEGORY_ICONS.get(reminder.category, CATEGORY_ICONS["other"])
    lines = []

    if show_id:
        lines.append(f"{icon} <b>{escape(reminder.title)}</b> (ID: {reminder.id})")
    else:
        lines.append(f"{icon} <b>{escape(reminder.title)}</b>")

    lines.append(format_due_line(reminder, owner, now))

    if is_recurring(reminder.recurrence):
        lines.append(f"🔁 {describe_recurrence(reminder.recurrence)}")

    if reminder.plant_name:
        lines.append(f"🌿 {escape(reminder.plant_name)}")

    if reminder.description:
        lines.append(f"\n{escape(reminder.description)}")

    if reminder.completed:
        lines.append("\n✓ Completed")

    return "\n".join(lines)


def format_reminder_list(
    reminders: List[Reminder], owner: Owner, now: datetime | None = None
) -> str:
    """Format the active reminders, earliest first, with an overdue badge."""
    if now is None:
        now = utcnow()

    active = sort_reminders(r for r in reminders if not r.completed)
    if not active:
        return "No active reminders."

    badge = " 🔴" if has_overdue(active, now) else ""
    lines = [f"<b>Reminders ({len(active)})</b>{badge}"]

    for reminder in active:
        icon = CATEGORY_ICONS.get(reminder.category, CATEGORY_ICONS["other"])
        entry = (
            f"{icon} <b>{escape(reminder.title)}</b> (ID: {reminder.id})\n"
            f"   {format_due_line(reminder, owner, now)}"
        )
        if reminder.plant_name:
            entry += f"\n   🌿 {escape(reminder.plant_name)}"
        lines.append(entry)

    return "\n\n".join(lines)


def format_plant_list(plants: List[Plant]) -> str:
    """Format the owner's garden."""
    if not plants:
        return "Your garden is empty. Add a plant with /addplant."

    lines = [f"<b>Your Garden ({len(plants)})</b>"]
    for plant in plants:
        species = f" <i>{escape(plant.species)}</i>" if plant.species else ""
        lines.append(f"🪴 <b>{escape(plant.name)}</b>{species} (ID: {plant.id})")

    return "\n".join(lines)


def format_notification(payload: "NotificationPayload") -> str:
    """Render a notification payload as message text."""
    header = f"{payload.icon} <b>{escape(payload.title)}</b>".strip()
    if payload.body:
        return f"{header}\n\n{escape(payload.body)}"
    return header


def format_permission_prompt() -> str:
    return (
        "🔔 <b>Enable Notifications</b>\n\n"
        "Allow GreenHealth to send you a message when a plant care reminder is due?"
    )


def format_welcome_message() -> str:
    """Format the welcome message for /start."""
    return """
<b>Welcome to GreenHealth!</b> 🌿

I'll remind you when your plants need watering, fertilizing, pruning or repotting.

<b>Quick Start:</b>
• /addplant Monstera | Monstera deliciosa - add a plant
• /add - create a reminder (guided)
• /reminders - see what's coming up
• /help - full command list
""".strip()


def format_help_message() -> str:
    """Format the help message."""
    return """
<b>GreenHealth Commands 🌿</b>

<b>Reminders:</b>
/add - Guided reminder creation
/reminders - Active reminders, earliest first
/done &lt;id&gt; - Mark a reminder complete
/undo &lt;id&gt; - Mark a reminder incomplete
/delete &lt;id&gt; - Delete a reminder

<b>Garden:</b>
/plants - List your plants
/addplant &lt;name&gt; [| species] - Add a plant
/deleteplant &lt;id&gt; - Remove a plant

<b>Settings:</b>
/notifications - Enable notifications
/mute - Turn notifications off
/timezone &lt;tz&gt; - Set timezone (e.g., Europe/London)

<b>Tips:</b>
• Use the buttons on a notification to mark it complete
• Repeating reminders are not re-created automatically; after completing one, tap "Schedule next"
""".strip()
