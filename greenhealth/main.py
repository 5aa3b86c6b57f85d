"""Main entry point for the GreenHealth reminder bot."""

import logging
import sys

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
)

from greenhealth.bot.callbacks import callback_router
from greenhealth.bot.conversations import build_add_conversation_handler
from greenhealth.bot.events import on_periodic_sync
from greenhealth.bot.handlers import (
    addplant_command,
    delete_command,
    deleteplant_command,
    done_command,
    help_command,
    mute_command,
    notifications_command,
    plants_command,
    reminders_command,
    start_command,
    timezone_command,
    undo_command,
)
from greenhealth.config import Config
from greenhealth.db.migrations import run_migrations
from greenhealth.db.repository import Repository
from greenhealth.engine.dispatcher import Dispatcher
from greenhealth.engine.platform import TelegramNotificationPlatform
from greenhealth.engine.poller import (
    ForegroundTimer,
    check_due_reminders,
    register_periodic_sync,
)
from greenhealth.errors import PlatformUnsupported
from greenhealth.utils.error_handler import error_handler

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    stream=sys.stdout,
)
# httpx logs every Telegram API request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def post_init(application: Application) -> None:
    """Initialize bot resources after application is created."""
    await run_migrations(Config.DATABASE_PATH)

    repo = Repository(Config.DATABASE_PATH)
    await repo.connect()

    platform = TelegramNotificationPlatform(application.bot, repo)
    dispatcher = Dispatcher(platform)

    application.bot_data["repo"] = repo
    application.bot_data["platform"] = platform
    application.bot_data["dispatcher"] = dispatcher

    # Foreground timer: checks now, then every interval
    async def foreground_check() -> None:
        await check_due_reminders(repo, dispatcher)

    timer = ForegroundTimer(foreground_check, Config.FOREGROUND_CHECK_INTERVAL)
    timer.start()
    application.bot_data["foreground_timer"] = timer

    # Periodic background sync, if the job queue is available
    try:
        register_periodic_sync(
            application,
            on_periodic_sync,
            tag=Config.PERIODIC_SYNC_TAG,
            interval=Config.PERIODIC_SYNC_INTERVAL,
            min_interval=Config.PERIODIC_SYNC_MIN_INTERVAL,
        )
    except PlatformUnsupported as e:
        logger.warning(f"{e}; running with the foreground timer only")

    logger.info("GreenHealth initialized successfully")


async def post_shutdown(application: Application) -> None:
    """Cleanup resources on shutdown."""
    timer: ForegroundTimer | None = application.bot_data.get("foreground_timer")
    if timer:
        await timer.stop()

    repo: Repository | None = application.bot_data.get("repo")
    if repo:
        await repo.close()

    logger.info("GreenHealth shut down")


def build_application() -> Application:
    """Create the application and register handlers."""
    application = (
        Application.builder()
        .token(Config.TELEGRAM_BOT_TOKEN)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    # Commands
    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("reminders", reminders_command))
    application.add_handler(CommandHandler("done", done_command))
    application.add_handler(CommandHandler("undo", undo_command))
    application.add_handler(CommandHandler("delete", delete_command))

    # Garden
    application.add_handler(CommandHandler("plants", plants_command))
    application.add_handler(CommandHandler("addplant", addplant_command))
    application.add_handler(CommandHandler("deleteplant", deleteplant_command))

    # Settings
    application.add_handler(CommandHandler("notifications", notifications_command))
    application.add_handler(CommandHandler("mute", mute_command))
    application.add_handler(CommandHandler("timezone", timezone_command))

    # Conversation handlers
    application.add_handler(build_add_conversation_handler())

    # Callback queries (buttons)
    application.add_handler(CallbackQueryHandler(callback_router))

    # Error handler
    application.add_error_handler(error_handler)

    return application


def main() -> None:
    """Start the bot."""
    # Validate configuration
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    application = build_application()

    logger.info("Starting GreenHealth bot...")
    application.run_polling(allowed_updates=["message", "callback_query"])


if __name__ == "__main__":
    main()
