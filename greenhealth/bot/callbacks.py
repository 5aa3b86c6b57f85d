"""Callback query handlers for inline buttons."""

import logging
from html import escape

from telegram import Update
from telegram.ext import ContextTypes

from greenhealth.bot.events import on_notification_click, on_push
from greenhealth.bot.handlers import get_owner, load_owned_reminder, set_completion
from greenhealth.db.repository import Repository
from greenhealth.engine.dispatcher import Dispatcher
from greenhealth.engine.platform import NotificationPlatform
from greenhealth.engine.poller import check_owner, check_todays_reminders
from greenhealth.engine.recurrence import build_next_reminder, is_recurring
from greenhealth.utils.constants import PERMISSION_DENIED, PERMISSION_GRANTED
from greenhealth.utils.time_utils import format_due, utcnow

logger = logging.getLogger(__name__)


async def handle_permission_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE, decision: str
) -> None:
    """Handle the Allow / Block buttons of the permission prompt."""
    if not update.effective_user or not update.callback_query:
        return

    query = update.callback_query
    owner = await get_owner(update, context)
    if not owner:
        await query.answer()
        return

    repo: Repository = context.bot_data["repo"]

    if decision != "grant":
        await repo.set_notification_permission(owner.telegram_id, PERMISSION_DENIED)
        await query.answer()
        if query.message:
            await query.message.edit_text(
                "🔕 <b>Notifications Blocked</b>\n\n"
                "Use /notifications whenever you want to enable them.",
                parse_mode="HTML",
            )
        return

    await repo.set_notification_permission(owner.telegram_id, PERMISSION_GRANTED)
    await query.answer("Notifications enabled")
    if query.message:
        await query.message.delete()

    platform: NotificationPlatform = context.bot_data["platform"]
    dispatcher: Dispatcher = context.bot_data["dispatcher"]

    await on_push(
        platform,
        owner.telegram_id,
        {
            "title": "Notifications Enabled",
            "body": "You'll receive reminders for your plants.",
            "tag": "notifications-enabled",
        },
    )

    # Catch up right away: anything already due, then a summary for today
    now = utcnow()
    await check_owner(repo, dispatcher, owner.telegram_id, now)
    await check_todays_reminders(repo, platform, owner.telegram_id, now)


async def handle_undo_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE, reminder_id: str
) -> None:
    """Handle 'Undo' after a reminder was completed."""
    if not update.callback_query:
        return

    query = update.callback_query
    owner = await get_owner(update, context)
    if not owner:
        await query.answer()
        return

    repo: Repository = context.bot_data["repo"]
    reminder = await set_completion(repo, owner, reminder_id, False)

    if reminder is None:
        await query.answer("Reminder not found.")
        return

    if query.message:
        await query.message.edit_text(
            f"↩ Marked as incomplete: <b>{escape(reminder.title)}</b>",
            parse_mode="HTML",
        )
    await query.answer("Marked as incomplete")


async def handle_repeat_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE, reminder_id: str
) -> None:
    """Handle 'Schedule next' for a completed recurring reminder."""
    if not update.callback_query:
        return

    query = update.callback_query
    owner = await get_owner(update, context)
    if not owner:
        await query.answer()
        return

    repo: Repository = context.bot_data["repo"]
    reminder = await load_owned_reminder(repo, owner, reminder_id)

    if reminder is None or not is_recurring(reminder.recurrence):
        await query.answer("Reminder not found.")
        return

    next_reminder = build_next_reminder(reminder)

    # A second tap on the same button must not schedule it twice
    pending = await repo.get_reminders_by_owner(owner.telegram_id, completed=False)
    if any(
        r.title == next_reminder.title and r.due_at == next_reminder.due_at for r in pending
    ):
        await query.answer("Next reminder is already scheduled.")
        return

    created = await repo.create_reminder(next_reminder)
    due = format_due(created.due_at, owner.timezone)
    logger.info(f"Scheduled reminder {created.id} as next occurrence of {reminder_id}")

    # Drop the buttons so the next occurrence can't be scheduled twice
    if query.message:
        await query.message.edit_text(
            f"🔁 Next reminder scheduled: <b>{escape(created.title)}</b>\n"
            f"Due: {due} (ID: {created.id})",
            parse_mode="HTML",
        )
    await query.answer(f"Next: {due}")


async def callback_router(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Route callback queries to appropriate handlers."""
    if not update.callback_query:
        return

    query = update.callback_query
    data = query.data

    if not data:
        return

    # Parse callback data
    parts = data.split(":")

    if parts[0] == "notif" and len(parts) == 3:
        await on_notification_click(update, context, parts[1], parts[2])

    elif parts[0] == "perm" and len(parts) == 2:
        await handle_permission_callback(update, context, parts[1])

    elif parts[0] == "undo" and len(parts) == 2:
        await handle_undo_callback(update, context, parts[1])

    elif parts[0] == "repeat" and len(parts) == 2:
        await handle_repeat_callback(update, context, parts[1])

    else:
        await query.answer("Unknown action")
