"""Configuration management from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

    # Database
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", "./data/greenhealth.db"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Foreground timer, seconds
    FOREGROUND_CHECK_INTERVAL: int = int(os.getenv("FOREGROUND_CHECK_INTERVAL", "60"))

    # Periodic background sync, seconds
    PERIODIC_SYNC_TAG: str = os.getenv("PERIODIC_SYNC_TAG", "check-reminders")
    PERIODIC_SYNC_INTERVAL: int = int(os.getenv("PERIODIC_SYNC_INTERVAL", "3600"))
    PERIODIC_SYNC_MIN_INTERVAL: int = int(os.getenv("PERIODIC_SYNC_MIN_INTERVAL", "3600"))

    # Reminder defaults
    DEFAULT_TIMEZONE: str = os.getenv("DEFAULT_TIMEZONE", "UTC")
    DEFAULT_REMINDER_TIME: str = os.getenv("DEFAULT_REMINDER_TIME", "12:00")

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if not cls.TELEGRAM_BOT_TOKEN:
            raise ValueError("TELEGRAM_BOT_TOKEN environment variable is required")

        if cls.FOREGROUND_CHECK_INTERVAL <= 0:
            raise ValueError("FOREGROUND_CHECK_INTERVAL must be positive")

        if cls.PERIODIC_SYNC_INTERVAL <= 0:
            raise ValueError("PERIODIC_SYNC_INTERVAL must be positive")

        # Ensure database directory exists
        cls.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
