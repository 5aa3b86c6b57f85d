"""Command handlers."""

import logging
from html import escape
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from telegram import Update
from telegram.ext import ContextTypes

from greenhealth.bot.formatters import (
    format_help_message,
    format_plant_list,
    format_reminder_list,
    format_welcome_message,
)
from greenhealth.bot.keyboards import completed_keyboard
from greenhealth.config import Config
from greenhealth.db.models import Owner, Plant, Reminder
from greenhealth.db.repository import Repository
from greenhealth.engine.dispatcher import notification_tag
from greenhealth.engine.platform import NotificationPlatform
from greenhealth.engine.recurrence import is_recurring
from greenhealth.utils.constants import (
    MAX_PLANT_NAME_LENGTH,
    PERMISSION_DEFAULT,
    PERMISSION_DENIED,
    PERMISSION_GRANTED,
)

logger = logging.getLogger(__name__)


async def get_owner(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Owner | None:
    """Look up the calling owner, asking them to /start if unknown."""
    if not update.effective_user:
        return None

    repo: Repository = context.bot_data["repo"]
    owner = await repo.get_owner(update.effective_user.id)

    if owner is None and update.effective_message:
        await update.effective_message.reply_text("Please /start the bot first.")

    return owner


def parse_id_arg(context: ContextTypes.DEFAULT_TYPE) -> str | None:
    """The single numeric ID argument of a command, if well-formed."""
    if not context.args or len(context.args) != 1:
        return None
    arg = context.args[0].strip()
    return arg if arg.isdigit() else None


async def load_owned_reminder(
    repo: Repository, owner: Owner, reminder_id: str
) -> Reminder | None:
    reminder = await repo.get_reminder(reminder_id)
    if reminder is None or reminder.owner_id != owner.telegram_id:
        return None
    return reminder


async def set_completion(
    repo: Repository, owner: Owner, reminder_id: str, completed: bool
) -> Reminder | None:
    """Mark a reminder complete or incomplete.

    Completing is idempotent and also marks the notification as sent, so the
    reminder never alerts again. Reopening a reminder that is not due yet
    lets it alert at its due time.

    Returns:
        The updated reminder, or None if the owner has no such reminder
    """
    reminder = await load_owned_reminder(repo, owner, reminder_id)
    if reminder is None:
        return None

    await repo.set_completed(reminder_id, completed)
    reminder = await repo.get_reminder(reminder_id)

    logger.info(
        f"Reminder {reminder_id} marked {'complete' if completed else 'incomplete'}"
    )
    return reminder


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command."""
    if not update.effective_user or not update.message:
        return

    repo: Repository = context.bot_data["repo"]
    platform: NotificationPlatform = context.bot_data["platform"]
    telegram_id = update.effective_user.id

    owner = await repo.get_owner(telegram_id)
    if owner is None:
        owner = await repo.create_owner(telegram_id, Config.DEFAULT_TIMEZONE)
        logger.info(f"New owner created: {telegram_id}")

    await update.message.reply_html(format_welcome_message())

    if owner.notification_permission == PERMISSION_DEFAULT:
        await platform.request_permission(telegram_id)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    if not update.message:
        return

    await update.message.reply_html(format_help_message())


async def reminders_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reminders command - active reminders, earliest first."""
    if not update.message:
        return

    owner = await get_owner(update, context)
    if not owner:
        return

    repo: Repository = context.bot_data["repo"]
    reminders = await repo.get_reminders_by_owner(owner.telegram_id, completed=False)

    await update.message.reply_html(format_reminder_list(reminders, owner))


async def done_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /done <id> command."""
    await _completion_command(update, context, completed=True)


async def undo_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /undo <id> command."""
    await _completion_command(update, context, completed=False)


async def _completion_command(
    update: Update, context: ContextTypes.DEFAULT_TYPE, completed: bool
) -> None:
    if not update.message:
        return

    reminder_id = parse_id_arg(context)
    if reminder_id is None:
        command = "done" if completed else "undo"
        await update.message.reply_text(f"Usage: /{command} <reminder_id>")
        return

    owner = await get_owner(update, context)
    if not owner:
        return

    repo: Repository = context.bot_data["repo"]
    reminder = await set_completion(repo, owner, reminder_id, completed)

    if reminder is None:
        await update.message.reply_text("Reminder not found.")
        return

    if completed:
        await update.message.reply_html(
            f"✓ Marked as complete: <b>{escape(reminder.title)}</b>",
            reply_markup=completed_keyboard(
                reminder_id, is_recurring(reminder.recurrence)
            ),
        )
    else:
        await update.message.reply_html(
            f"↩ Marked as incomplete: <b>{escape(reminder.title)}</b>"
        )


async def delete_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete <id> command."""
    if not update.message:
        return

    reminder_id = parse_id_arg(context)
    if reminder_id is None:
        await update.message.reply_text("Usage: /delete <reminder_id>")
        return

    owner = await get_owner(update, context)
    if not owner:
        return

    repo: Repository = context.bot_data["repo"]
    reminder = await load_owned_reminder(repo, owner, reminder_id)

    if not reminder:
        await update.message.reply_text("Reminder not found.")
        return

    await repo.delete_reminder(reminder_id)

    platform: NotificationPlatform = context.bot_data["platform"]
    platform.forget(owner.telegram_id, tag=notification_tag(reminder_id))

    await update.message.reply_html(f"🗑 Reminder removed: <b>{escape(reminder.title)}</b>")


async def plants_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /plants command."""
    if not update.message:
        return

    owner = await get_owner(update, context)
    if not owner:
        return

    repo: Repository = context.bot_data["repo"]
    plants = await repo.get_plants(owner.telegram_id)

    await update.message.reply_html(format_plant_list(plants))


async def addplant_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addplant <name> [| species] command."""
    if not update.message:
        return

    text = " ".join(context.args or []).strip()
    name, _, species = text.partition("|")
    name = name.strip()
    species = species.strip()

    if not name:
        await update.message.reply_text("Please enter a plant name.\n\nUsage: /addplant <name> [| species]")
        return

    if len(name) > MAX_PLANT_NAME_LENGTH:
        await update.message.reply_text(
            f"Plant name is too long (max {MAX_PLANT_NAME_LENGTH} characters)."
        )
        return

    owner = await get_owner(update, context)
    if not owner:
        return

    repo: Repository = context.bot_data["repo"]
    plant = await repo.create_plant(
        Plant(owner_id=owner.telegram_id, name=name, species=species or None)
    )

    await update.message.reply_html(
        f"🪴 Plant added to your garden: <b>{escape(plant.name)}</b> (ID: {plant.id})"
    )


async def deleteplant_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /deleteplant <id> command."""
    if not update.message:
        return

    plant_id = parse_id_arg(context)
    if plant_id is None:
        await update.message.reply_text("Usage: /deleteplant <plant_id>")
        return

    owner = await get_owner(update, context)
    if not owner:
        return

    repo: Repository = context.bot_data["repo"]
    plant = await repo.get_plant(plant_id)

    if not plant or plant.owner_id != owner.telegram_id:
        await update.message.reply_text("Plant not found.")
        return

    await repo.delete_plant(plant_id)

    await update.message.reply_html(f"🗑 Plant removed: <b>{escape(plant.name)}</b>")


async def notifications_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /notifications command - ask for notification permission."""
    if not update.message:
        return

    owner = await get_owner(update, context)
    if not owner:
        return

    platform: NotificationPlatform = context.bot_data["platform"]
    permission = await platform.request_permission(owner.telegram_id)

    if permission == PERMISSION_GRANTED:
        await update.message.reply_text(
            "🔔 Notifications are enabled. Use /mute to turn them off."
        )


async def mute_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /mute command - revoke notification permission."""
    if not update.message:
        return

    owner = await get_owner(update, context)
    if not owner:
        return

    repo: Repository = context.bot_data["repo"]
    await repo.set_notification_permission(owner.telegram_id, PERMISSION_DENIED)

    await update.message.reply_text(
        "🔕 Notifications turned off. Use /notifications to enable them again."
    )


async def timezone_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /timezone <timezone> command."""
    if not update.message:
        return

    owner = await get_owner(update, context)
    if not owner:
        return

    # If no timezone provided, show current
    if not context.args:
        await update.message.reply_html(
            f"<b>Current timezone:</b> {owner.timezone}\n\n"
            "To change: <code>/timezone Europe/London</code>"
        )
        return

    tz_name = context.args[0]
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        await update.message.reply_text(f"Unknown timezone: {tz_name}")
        return

    repo: Repository = context.bot_data["repo"]
    await repo.update_owner_settings(owner.telegram_id, timezone=tz_name)

    await update.message.reply_html(f"✓ Timezone set to <b>{tz_name}</b>")
