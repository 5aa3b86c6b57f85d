"""Notification platform capability.

The dispatcher never talks to Telegram directly; it is handed an object with
``permission``, ``request_permission`` and ``show`` so tests can substitute a
fake.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Tuple

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import Forbidden, TelegramError

from greenhealth.bot.formatters import format_notification, format_permission_prompt
from greenhealth.bot.keyboards import notification_keyboard, permission_keyboard
from greenhealth.db.repository import Repository
from greenhealth.errors import PermissionDenied
from greenhealth.utils.constants import PERMISSION_DEFAULT, PERMISSION_DENIED, PERMISSION_GRANTED

logger = logging.getLogger(__name__)


@dataclass
class NotificationPayload:
    """Everything needed to display one notification."""

    title: str
    body: str
    tag: str
    icon: str = ""
    actions: List[Tuple[str, str]] = field(default_factory=list)  # (action, label)
    require_interaction: bool = True
    data: Dict[str, Any] = field(default_factory=dict)


class NotificationPlatform(Protocol):
    """Capability the dispatcher needs from the host platform."""

    async def permission(self, owner_id: int) -> str:
        ...

    async def request_permission(self, owner_id: int) -> str:
        ...

    async def show(self, owner_id: int, payload: NotificationPayload) -> Any:
        ...

    def forget(
        self, owner_id: int, tag: str | None = None, message_id: int | None = None
    ) -> None:
        ...


class TelegramNotificationPlatform:
    """Shows notifications as Telegram messages with inline action buttons."""

    def __init__(self, bot: Bot, repo: Repository):
        self.bot = bot
        self.repo = repo
        # (owner_id, tag) -> message_id of the notification currently shown
        self._tagged_messages: Dict[Tuple[int, str], int] = {}

    async def permission(self, owner_id: int) -> str:
        """Current permission state for an owner."""
        owner = await self.repo.get_owner(owner_id)
        if owner is None:
            return PERMISSION_DEFAULT
        return owner.notification_permission

    async def request_permission(self, owner_id: int) -> str:
        """Ask the owner to allow notifications.

        The answer arrives later as a button press; this returns the state as
        it is now.
        """
        current = await self.permission(owner_id)
        if current == PERMISSION_GRANTED:
            return current

        await self.bot.send_message(
            chat_id=owner_id,
            text=format_permission_prompt(),
            parse_mode=ParseMode.HTML,
            reply_markup=permission_keyboard(),
        )
        return current

    async def show(self, owner_id: int, payload: NotificationPayload) -> int:
        """Display a notification, replacing any earlier one with the same tag.

        Returns:
            The Telegram message ID of the notification

        Raises:
            PermissionDenied: the owner blocked the bot
            TelegramError: any other delivery failure
        """
        key = (owner_id, payload.tag)
        previous = self._tagged_messages.pop(key, None)
        if previous is not None:
            try:
                await self.bot.delete_message(chat_id=owner_id, message_id=previous)
            except TelegramError as e:
                logger.debug(f"Could not remove notification {payload.tag}: {e}")

        try:
            message = await self.bot.send_message(
                chat_id=owner_id,
                text=format_notification(payload),
                parse_mode=ParseMode.HTML,
                reply_markup=notification_keyboard(payload),
                disable_notification=not payload.require_interaction,
            )
        except Forbidden as e:
            await self.repo.set_notification_permission(owner_id, PERMISSION_DENIED)
            raise PermissionDenied(f"Owner {owner_id} blocked notifications") from e

        self._tagged_messages[key] = message.message_id
        return message.message_id

    def forget(
        self, owner_id: int, tag: str | None = None, message_id: int | None = None
    ) -> None:
        """Stop tracking a notification that was dismissed, completed or deleted."""
        for key, shown_id in list(self._tagged_messages.items()):
            if key[0] == owner_id and (key[1] == tag or shown_id == message_id):
                del self._tagged_messages[key]
