"""Global error handler for user-initiated actions."""

import logging
import traceback

from telegram import Update
from telegram.error import NetworkError, TimedOut
from telegram.ext import ContextTypes

from greenhealth.errors import PermissionDenied, StoreUnavailable

logger = logging.getLogger(__name__)


def toast_for(error: object) -> str:
    """Short message shown to the user for an error."""
    if isinstance(error, StoreUnavailable):
        return "❌ Could not reach your garden data right now.\n\nPlease try again in a moment."
    if isinstance(error, PermissionDenied):
        return "🔕 Notifications are blocked.\n\nUse /notifications to enable them."
    if isinstance(error, TimedOut):
        return "⏱️ Request timed out.\n\nPlease try again in a moment."
    if isinstance(error, NetworkError):
        return "🌐 Network error.\n\nPlease check your connection and try again."
    return (
        "😅 Oops! Something went wrong.\n\n"
        "The error has been logged. Please try again or use /help for assistance."
    )


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log the error and tell the user, when there is one to tell."""
    error = context.error
    logger.error("Exception while handling an update:", exc_info=error)

    if error is not None:
        tb_string = "".join(traceback.format_exception(None, error, error.__traceback__))
        logger.debug(f"Traceback:\n{tb_string}")

    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(toast_for(error))
        except Exception as e:
            logger.error(f"Failed to send error message to user: {e}")
