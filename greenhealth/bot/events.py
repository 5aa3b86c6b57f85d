"""Platform event entry points.

One coroutine per event the platform delivers: a pushed message, a tap on a
notification action, and the periodic background sync. They unpack the
platform's arguments and hand off to the engine.
"""

import logging
from html import escape
from typing import Any, Dict

from telegram import Update
from telegram.ext import ContextTypes

from greenhealth.bot.formatters import format_reminder_list
from greenhealth.bot.handlers import get_owner, set_completion
from greenhealth.bot.keyboards import completed_keyboard
from greenhealth.config import Config
from greenhealth.db.repository import Repository
from greenhealth.engine.dispatcher import Dispatcher
from greenhealth.engine.platform import NotificationPayload, NotificationPlatform
from greenhealth.engine.poller import check_due_reminders
from greenhealth.engine.recurrence import is_recurring
from greenhealth.errors import PermissionDenied
from greenhealth.utils.constants import (
    NOTIFICATION_VIEW_URL,
    PUSH_DEFAULT_BODY,
    PUSH_DEFAULT_TAG,
    PUSH_DEFAULT_TITLE,
)

logger = logging.getLogger(__name__)

PUSH_ACTIONS = [("view", "View"), ("dismiss", "Dismiss")]


async def on_push(platform: NotificationPlatform, owner_id: int, data: Dict[str, Any]) -> bool:
    """Show a pushed message as a notification, filling in defaults.

    Returns:
        True if the notification was shown
    """
    payload = NotificationPayload(
        title=data.get("title") or PUSH_DEFAULT_TITLE,
        body=data.get("body") or PUSH_DEFAULT_BODY,
        tag=data.get("tag") or PUSH_DEFAULT_TAG,
        icon=data.get("icon") or "🌿",
        actions=list(PUSH_ACTIONS),
        require_interaction=True,
        data=data.get("data") or {"url": NOTIFICATION_VIEW_URL},
    )

    try:
        await platform.show(owner_id, payload)
    except PermissionDenied as e:
        logger.info(f"Push to owner {owner_id} skipped: {e}")
        return False
    except Exception as e:
        logger.error(f"Error showing push notification to owner {owner_id}: {e}")
        return False

    return True


async def on_periodic_sync(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Job callback for the periodic background check."""
    tag = context.job.data if context.job else None
    if tag != Config.PERIODIC_SYNC_TAG:
        logger.debug(f"Ignoring periodic sync with tag {tag!r}")
        return

    repo: Repository = context.bot_data["repo"]
    dispatcher: Dispatcher = context.bot_data["dispatcher"]
    await check_due_reminders(repo, dispatcher)


async def on_notification_click(
    update: Update, context: ContextTypes.DEFAULT_TYPE, action: str, reminder_id: str
) -> None:
    """Handle a tap on one of a notification's action buttons."""
    query = update.callback_query
    if not query:
        return

    platform: NotificationPlatform = context.bot_data["platform"]

    if action == "dismiss":
        if query.message:
            if update.effective_user:
                platform.forget(update.effective_user.id, message_id=query.message.message_id)
            await query.message.delete()
        await query.answer()
        return

    owner = await get_owner(update, context)
    if not owner:
        await query.answer()
        return

    repo: Repository = context.bot_data["repo"]

    if action == "complete" and reminder_id:
        reminder = await set_completion(repo, owner, reminder_id, True)
        if reminder is None:
            await query.answer("Reminder not found.")
            return

        if query.message:
            platform.forget(owner.telegram_id, message_id=query.message.message_id)
            await query.message.edit_text(
                f"✓ <b>Completed:</b> <s>{escape(reminder.title)}</s>",
                parse_mode="HTML",
                reply_markup=completed_keyboard(reminder_id, is_recurring(reminder.recurrence)),
            )
        await query.answer(f"✓ Marked {reminder.title} as complete")

    elif action == "view":
        # Route the user to the reminders view
        reminders = await repo.get_reminders_by_owner(owner.telegram_id, completed=False)
        await query.answer()
        await context.bot.send_message(
            chat_id=owner.telegram_id,
            text=format_reminder_list(reminders, owner),
            parse_mode="HTML",
        )

    else:
        await query.answer("Unknown action")
