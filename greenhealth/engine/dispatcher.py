"""Notification dispatch for due reminders."""

import logging
from dataclasses import dataclass
from enum import Enum

from greenhealth.db.models import Reminder
from greenhealth.engine.platform import NotificationPayload, NotificationPlatform
from greenhealth.errors import PermissionDenied
from greenhealth.utils.constants import (
    CATEGORY_ICONS,
    NOTIFICATION_TAG_PREFIX,
    NOTIFICATION_TITLE_PREFIX,
    NOTIFICATION_VIEW_URL,
    PERMISSION_GRANTED,
    SUMMARY_TAG,
)

logger = logging.getLogger(__name__)

REMINDER_ACTIONS = [("complete", "Mark Complete"), ("view", "View")]


class DispatchStatus(str, Enum):
    SHOWN = "shown"
    PERMISSION_DENIED = "permission_denied"
    FAILED = "failed"


@dataclass
class DispatchResult:
    """Outcome of one dispatch attempt."""

    reminder_id: str | None
    status: DispatchStatus
    payload: NotificationPayload | None = None
    error: str | None = None

    @property
    def shown(self) -> bool:
        return self.status == DispatchStatus.SHOWN


def notification_body(reminder: Reminder) -> str:
    """Description if present, else the plant it is for, else empty."""
    if reminder.description:
        return reminder.description
    if reminder.plant_name:
        return f"For: {reminder.plant_name}"
    return ""


def notification_tag(reminder_id: str | None) -> str:
    return f"{NOTIFICATION_TAG_PREFIX}{reminder_id}"


def build_payload(reminder: Reminder) -> NotificationPayload:
    """Build the notification for a due reminder."""
    return NotificationPayload(
        title=f"{NOTIFICATION_TITLE_PREFIX}{reminder.title}",
        body=notification_body(reminder),
        tag=notification_tag(reminder.id),
        icon=CATEGORY_ICONS.get(reminder.category, CATEGORY_ICONS["other"]),
        actions=list(REMINDER_ACTIONS),
        require_interaction=True,
        data={"url": NOTIFICATION_VIEW_URL, "reminder_id": reminder.id},
    )


def build_summary_payload(count: int) -> NotificationPayload:
    """One notification covering every reminder due today."""
    noun = "reminder" if count == 1 else "reminders"
    task = "task" if count == 1 else "tasks"
    return NotificationPayload(
        title=f"{count} {noun} due today",
        body=f"You have {count} plant care {task} due today.",
        tag=SUMMARY_TAG,
        icon=CATEGORY_ICONS["other"],
        actions=[("view", "View")],
        require_interaction=True,
        data={"url": NOTIFICATION_VIEW_URL},
    )


class Dispatcher:
    """Shows reminder notifications through an injected platform.

    The dispatcher does not persist anything. The poller owns the
    notification_sent bookkeeping around each call.
    """

    def __init__(self, platform: NotificationPlatform):
        self.platform = platform

    async def dispatch(self, reminder: Reminder) -> DispatchResult:
        """Show a notification for a reminder if the owner allows it.

        Never raises: a missing permission or a display failure is reported
        in the result.
        """
        payload = build_payload(reminder)

        try:
            permission = await self.platform.permission(reminder.owner_id)
        except Exception as e:
            logger.error(f"Permission check failed for reminder {reminder.id}: {e}")
            return DispatchResult(reminder.id, DispatchStatus.FAILED, payload, str(e))

        if permission != PERMISSION_GRANTED:
            logger.debug(
                f"Skipping reminder {reminder.id}: notification permission is {permission}"
            )
            return DispatchResult(reminder.id, DispatchStatus.PERMISSION_DENIED, payload)

        try:
            await self.platform.show(reminder.owner_id, payload)
        except PermissionDenied as e:
            logger.info(f"Notification permission revoked for reminder {reminder.id}: {e}")
            return DispatchResult(
                reminder.id, DispatchStatus.PERMISSION_DENIED, payload, str(e)
            )
        except Exception as e:
            logger.error(f"Failed to show notification for reminder {reminder.id}: {e}")
            return DispatchResult(reminder.id, DispatchStatus.FAILED, payload, str(e))

        logger.info(f"Notification shown for reminder {reminder.id} ({payload.tag})")
        return DispatchResult(reminder.id, DispatchStatus.SHOWN, payload)
