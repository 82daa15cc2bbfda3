"""Notification engine — ephemeral messages, the main menu and the pinned summary.

Message lifetimes are tiered: validation errors linger a little longer
than confirmations, and the pinned summary stays for several seconds.
Deletions go to the DeletionScheduler and are never awaited here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.config import settings

if TYPE_CHECKING:
    from src.core.state import BotState
    from src.ports.delivery_port import DeliveryPort, Keyboard
    from src.ports.scheduler_port import DeletionScheduler

logger = logging.getLogger(__name__)


class NotificationEngine:
    """Sends, edits, pins and schedules deletions through the delivery port."""

    def __init__(
        self,
        gateway: DeliveryPort,
        scheduler: DeletionScheduler,
        state: BotState,
        error_ttl: float | None = None,
        confirm_ttl: float | None = None,
        summary_ttl: float | None = None,
    ) -> None:
        self._gateway = gateway
        self._scheduler = scheduler
        self._state = state
        self.error_ttl = settings.ERROR_TTL_SECONDS if error_ttl is None else error_ttl
        self.confirm_ttl = settings.CONFIRM_TTL_SECONDS if confirm_ttl is None else confirm_ttl
        self.summary_ttl = settings.SUMMARY_TTL_SECONDS if summary_ttl is None else summary_ttl

    # -- ephemeral -----------------------------------------------------------

    def expire(self, chat_id: int, message_id: int, ttl: float) -> None:
        """Queue a deletion; any scheduling error is logged and dropped."""
        try:
            self._scheduler.schedule_deletion(chat_id, message_id, ttl)
        except Exception as exc:
            logger.warning(
                "Could not schedule deletion of message %s in chat %s: %s",
                message_id, chat_id, exc,
            )

    async def send_ephemeral(self, chat_id: int, text: str, ttl: float) -> int | None:
        message_id = await self._gateway.send_message(chat_id, text)
        if message_id is not None:
            self.expire(chat_id, message_id, ttl)
        return message_id

    async def error(self, chat_id: int, text: str) -> int | None:
        return await self.send_ephemeral(chat_id, text, self.error_ttl)

    async def confirm(self, chat_id: int, text: str) -> int | None:
        return await self.send_ephemeral(chat_id, text, self.confirm_ttl)

    # -- main menu -----------------------------------------------------------

    async def show_menu(
        self,
        chat_id: int,
        text: str,
        keyboard: Keyboard,
        message_id: int | None = None,
        fresh: bool = False,
    ) -> int | None:
        """Edit the menu in place when its id is known, otherwise send a new one.

        `message_id` (e.g. the message a button was pressed on) becomes the
        new reference. `fresh` forces a new message.
        """
        if message_id is not None:
            self._state.menu_messages[chat_id] = message_id

        known = None if fresh else self._state.menu_messages.get(chat_id)
        if known is not None:
            if await self._gateway.edit_message(chat_id, known, text, keyboard):
                return known
            logger.info("Menu %s in chat %s not editable, sending a new one", known, chat_id)

        sent = await self._gateway.send_message(chat_id, text, keyboard)
        if sent is not None:
            self._state.menu_messages[chat_id] = sent
        else:
            self._state.menu_messages.pop(chat_id, None)
        return sent

    # -- summary -------------------------------------------------------------

    async def publish_summary(self, chat_id: int, text: str) -> int | None:
        """Send, pin and expire the day summary. Pin failure is not fatal."""
        message_id = await self._gateway.send_message(chat_id, text)
        if message_id is None:
            logger.warning("Summary for chat %s could not be delivered", chat_id)
            return None

        if not await self._gateway.pin_message(chat_id, message_id):
            logger.warning("Summary %s in chat %s could not be pinned", message_id, chat_id)
            await self.error(chat_id, "❗ Could not pin the summary (missing admin rights?).")

        self.expire(chat_id, message_id, self.summary_ttl)
        return message_id
