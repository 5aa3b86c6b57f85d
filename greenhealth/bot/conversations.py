"""Conversation handlers for multi-step flows."""

import logging
from html import escape

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import (
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    filters,
)

from greenhealth.bot.formatters import format_reminder
from greenhealth.bot.handlers import get_owner
from greenhealth.bot.keyboards import (
    category_keyboard,
    confirm_cancel_keyboard,
    plant_keyboard,
    recurrence_keyboard,
)
from greenhealth.config import Config
from greenhealth.db.models import Reminder
from greenhealth.db.repository import Repository
from greenhealth.utils.constants import (
    CATEGORIES,
    MAX_DESCRIPTION_LENGTH,
    MAX_TITLE_LENGTH,
    RECURRENCES,
)
from greenhealth.utils.time_utils import (
    combine_date_time,
    format_due,
    parse_date,
    parse_time_of_day,
)

logger = logging.getLogger(__name__)

# Conversation states
TITLE, DESCRIPTION, DATE, TIME, CATEGORY, RECURRENCE, PLANT, CONFIRM = range(8)

SKIP_WORDS = ["skip", "no", "none", "-"]


async def add_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Start the /add conversation."""
    if not update.message:
        return ConversationHandler.END

    owner = await get_owner(update, context)
    if not owner:
        return ConversationHandler.END

    context.user_data["owner"] = owner
    context.user_data["reminder_data"] = {}

    await update.message.reply_text(
        "<b>Add Reminder</b>\n\nWhat's the reminder title?\n\n"
        "Example: <i>Water the monstera</i>\n\n"
        "Send /cancel to abort.",
        parse_mode=ParseMode.HTML,
    )

    return TITLE


async def add_title(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive reminder title."""
    if not update.message or not update.message.text:
        return TITLE

    title = update.message.text.strip()

    if not title:
        await update.message.reply_text("Please enter a reminder title.")
        return TITLE

    if len(title) > MAX_TITLE_LENGTH:
        await update.message.reply_text(
            f"Title is too long (max {MAX_TITLE_LENGTH} characters)."
        )
        return TITLE

    context.user_data["reminder_data"]["title"] = title

    await update.message.reply_text(
        f"<b>Title:</b> {escape(title)}\n\n"
        "Add a description? (optional)\n\n"
        "Send <i>skip</i> for none.",
        parse_mode=ParseMode.HTML,
    )

    return DESCRIPTION


async def add_description(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive description (optional)."""
    if not update.message or not update.message.text:
        return DESCRIPTION

    text = update.message.text.strip()

    if text.lower() in SKIP_WORDS:
        text = ""

    if len(text) > MAX_DESCRIPTION_LENGTH:
        await update.message.reply_text(
            f"Description is too long (max {MAX_DESCRIPTION_LENGTH} characters)."
        )
        return DESCRIPTION

    context.user_data["reminder_data"]["description"] = text or None

    await update.message.reply_text(
        "Which day is it due?\n\n"
        "Examples:\n"
        "• <i>today</i>\n"
        "• <i>tomorrow</i>\n"
        "• <i>in 3 days</i>\n"
        "• <i>2026-03-15</i>\n\n"
        "Send /cancel to abort.",
        parse_mode=ParseMode.HTML,
    )

    return DATE


async def add_date(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive due date."""
    if not update.message or not update.message.text:
        return DATE

    owner = context.user_data["owner"]

    try:
        due_date = parse_date(update.message.text, owner.timezone)
    except ValueError as e:
        await update.message.reply_text(f"{e}\n\nPlease try again or /cancel.")
        return DATE

    context.user_data["reminder_data"]["due_date"] = due_date

    await update.message.reply_text(
        "What time? (24-hour, e.g. <i>08:30</i>)\n\n"
        f"Send <i>skip</i> for {Config.DEFAULT_REMINDER_TIME}.",
        parse_mode=ParseMode.HTML,
    )

    return TIME


async def add_time(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive time of day and combine it with the date."""
    if not update.message or not update.message.text:
        return TIME

    owner = context.user_data["owner"]
    data = context.user_data["reminder_data"]
    text = update.message.text.strip()

    try:
        time_of_day = (
            Config.DEFAULT_REMINDER_TIME
            if text.lower() in SKIP_WORDS
            else parse_time_of_day(text)
        )
    except ValueError as e:
        await update.message.reply_text(f"{e}\n\nPlease try again or /cancel.")
        return TIME

    data["due_at"] = combine_date_time(data["due_date"], time_of_day, owner.timezone)

    await update.message.reply_text(
        f"<b>Due:</b> {format_due(data['due_at'], owner.timezone)}\n\n"
        "What kind of care is it?",
        parse_mode=ParseMode.HTML,
        reply_markup=category_keyboard(),
    )

    return CATEGORY


async def add_category(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive category button press."""
    query = update.callback_query
    if not query or not query.data:
        return CATEGORY

    await query.answer()

    category = query.data.split(":", 1)[1]
    if category not in CATEGORIES:
        return CATEGORY

    context.user_data["reminder_data"]["category"] = category

    if query.message:
        await query.message.edit_text("Does it repeat?", reply_markup=recurrence_keyboard())

    return RECURRENCE


async def add_recurrence(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive recurrence button press, then offer the owner's plants."""
    query = update.callback_query
    if not query or not query.data:
        return RECURRENCE

    await query.answer()

    recurrence = query.data.split(":", 1)[1]
    if recurrence not in RECURRENCES:
        return RECURRENCE

    context.user_data["reminder_data"]["recurrence"] = recurrence

    repo: Repository = context.bot_data["repo"]
    owner = context.user_data["owner"]
    plants = await repo.get_plants(owner.telegram_id)
    context.user_data["plants"] = {plant.id: plant for plant in plants}

    if not plants:
        await show_confirmation(update, context)
        return CONFIRM

    if query.message:
        await query.message.edit_text(
            "Which plant is it for?", reply_markup=plant_keyboard(plants)
        )

    return PLANT


async def add_plant(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive plant button press."""
    query = update.callback_query
    if not query or not query.data:
        return PLANT

    await query.answer()

    plant_id = query.data.split(":", 1)[1]
    plant = context.user_data.get("plants", {}).get(plant_id)

    data = context.user_data["reminder_data"]
    data["plant_id"] = plant.id if plant else None
    data["plant_name"] = plant.name if plant else None

    await show_confirmation(update, context)

    return CONFIRM


def build_reminder(context: ContextTypes.DEFAULT_TYPE) -> Reminder:
    """Reminder from the collected conversation data."""
    owner = context.user_data["owner"]
    data = context.user_data["reminder_data"]

    return Reminder(
        owner_id=owner.telegram_id,
        title=data["title"],
        description=data.get("description"),
        due_at=data["due_at"],
        recurrence=data.get("recurrence", "none"),
        category=data.get("category", "other"),
        plant_id=data.get("plant_id"),
        plant_name=data.get("plant_name"),
    )


async def show_confirmation(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Show confirmation message with reminder details."""
    owner = context.user_data["owner"]
    reminder = build_reminder(context)

    message = (
        "<b>Confirm Reminder</b>\n\n"
        + format_reminder(reminder, owner, show_id=False)
        + "\n\nLooks good?"
    )

    if update.callback_query and update.callback_query.message:
        await update.callback_query.message.edit_text(
            message, parse_mode=ParseMode.HTML, reply_markup=confirm_cancel_keyboard("add")
        )
    elif update.effective_message:
        await update.effective_message.reply_html(
            message, reply_markup=confirm_cancel_keyboard("add")
        )


async def add_confirm(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle confirmation callback."""
    if not update.callback_query:
        return ConversationHandler.END

    query = update.callback_query

    # Answer the callback query first to stop the loading state
    await query.answer()

    try:
        if query.data == "confirm:add":
            if not context.user_data.get("owner") or not context.user_data.get("reminder_data"):
                if query.message:
                    await query.message.edit_text(
                        "Error: Session expired. Please use /add again."
                    )
                return ConversationHandler.END

            repo: Repository = context.bot_data["repo"]
            created = await repo.create_reminder(build_reminder(context))
            logger.info(f"Reminder {created.id} created for owner {created.owner_id}")

            if query.message:
                await query.message.edit_text(
                    f"✓ <b>Reminder added!</b>\n\n"
                    f"ID: {created.id}\n"
                    f"Title: {escape(created.title)}\n\n"
                    f"Use /reminders to see all your reminders.",
                    parse_mode=ParseMode.HTML,
                )

        elif query.data == "cancel:add":
            if query.message:
                await query.message.edit_text("❌ Cancelled. Use /add to try again.")

    finally:
        context.user_data.clear()

    return ConversationHandler.END


async def add_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Cancel the /add conversation."""
    context.user_data.clear()

    if update.message:
        await update.message.reply_text("Cancelled.")

    return ConversationHandler.END


def build_add_conversation_handler() -> ConversationHandler:
    """Build the /add conversation handler."""
    text_input = filters.TEXT & ~filters.COMMAND

    return ConversationHandler(
        entry_points=[CommandHandler("add", add_start)],
        states={
            TITLE: [MessageHandler(text_input, add_title)],
            DESCRIPTION: [MessageHandler(text_input, add_description)],
            DATE: [MessageHandler(text_input, add_date)],
            TIME: [MessageHandler(text_input, add_time)],
            CATEGORY: [CallbackQueryHandler(add_category, pattern=r"^category:")],
            RECURRENCE: [CallbackQueryHandler(add_recurrence, pattern=r"^recurrence:")],
            PLANT: [CallbackQueryHandler(add_plant, pattern=r"^plant:")],
            CONFIRM: [
                CallbackQueryHandler(add_confirm, pattern=r"^(confirm|cancel):add$")
            ],
        },
        fallbacks=[CommandHandler("cancel", add_cancel)],
        per_message=False,  # Track per conversation, not per message
        conversation_timeout=300,  # 5 minute timeout
    )
