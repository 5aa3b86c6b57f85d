"""Data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal


Recurrence = Literal["none", "daily", "weekly", "biweekly", "monthly"]
Category = Literal["water", "fertilize", "prune", "repot", "other"]
NotificationPermission = Literal["default", "granted", "denied"]


@dataclass
class Owner:
    """Telegram user who owns plants and reminders."""

    telegram_id: int
    timezone: str
    notification_permission: NotificationPermission = "default"
    created_at: datetime | None = None


@dataclass
class Plant:
    """A plant in the owner's garden."""

    owner_id: int
    name: str
    species: str | None = None
    created_at: datetime | None = None
    id: str | None = None


@dataclass
class Reminder:
    """A scheduled plant-care task."""

    owner_id: int
    title: str
    due_at: datetime  # UTC
    recurrence: Recurrence = "none"
    category: Category = "other"
    description: str | None = None
    plant_id: str | None = None  # weak reference, lookup only
    plant_name: str | None = None
    completed: bool = False
    notification_sent: bool = False  # at-most-once dispatch guard
    created_at: datetime | None = None
    id: str | None = None
