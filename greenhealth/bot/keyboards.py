"""Inline keyboard builders."""

from typing import TYPE_CHECKING, List

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from greenhealth.db.models import Plant
from greenhealth.engine.recurrence import describe_recurrence
from greenhealth.utils.constants import CATEGORIES, CATEGORY_ICONS, RECURRENCES

if TYPE_CHECKING:
    from greenhealth.engine.platform import NotificationPayload


def notification_keyboard(payload: "NotificationPayload") -> InlineKeyboardMarkup | None:
    """One button per notification action: notif:<action>:<reminder_id>."""
    if not payload.actions:
        return None

    reminder_id = payload.data.get("reminder_id") or ""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(label, callback_data=f"notif:{action}:{reminder_id}")
                for action, label in payload.actions
            ]
        ]
    )


def permission_keyboard() -> InlineKeyboardMarkup:
    """Keyboard for the notification permission prompt."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("🔔 Allow", callback_data="perm:grant"),
                InlineKeyboardButton("Block", callback_data="perm:deny"),
            ]
        ]
    )


def confirm_cancel_keyboard(action: str) -> InlineKeyboardMarkup:
    """Keyboard for confirmations: Confirm, Cancel."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("✓ Confirm", callback_data=f"confirm:{action}"),
                InlineKeyboardButton("✗ Cancel", callback_data=f"cancel:{action}"),
            ]
        ]
    )


def category_keyboard() -> InlineKeyboardMarkup:
    """Pick a reminder category."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(
                    f"{CATEGORY_ICONS[name]} {name.title()}", callback_data=f"category:{name}"
                )
                for name in CATEGORIES[:3]
            ],
            [
                InlineKeyboardButton(
                    f"{CATEGORY_ICONS[name]} {name.title()}", callback_data=f"category:{name}"
                )
                for name in CATEGORIES[3:]
            ],
        ]
    )


def recurrence_keyboard() -> InlineKeyboardMarkup:
    """Pick a recurrence option."""
    return InlineKeyboardMarkup(
        [
            [InlineKeyboardButton(describe_recurrence(name), callback_data=f"recurrence:{name}")]
            for name in RECURRENCES
        ]
    )


def plant_keyboard(plants: List[Plant]) -> InlineKeyboardMarkup:
    """Pick the plant a reminder is for, or none."""
    rows = [
        [InlineKeyboardButton(f"🪴 {plant.name}", callback_data=f"plant:{plant.id}")]
        for plant in plants
    ]
    rows.append([InlineKeyboardButton("No specific plant", callback_data="plant:none")])
    return InlineKeyboardMarkup(rows)


def completed_keyboard(reminder_id: str, recurring: bool) -> InlineKeyboardMarkup:
    """Shown after completing: undo, and schedule-next for recurring reminders."""
    buttons = [InlineKeyboardButton("↩ Undo", callback_data=f"undo:{reminder_id}")]
    if recurring:
        buttons.append(
            InlineKeyboardButton("🔁 Schedule next", callback_data=f"repeat:{reminder_id}")
        )
    return InlineKeyboardMarkup([buttons])
