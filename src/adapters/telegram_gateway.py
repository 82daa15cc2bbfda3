"""Telegram delivery adapter — implements DeliveryPort.

Wraps a telegram.Bot instance. Every Bot API error is logged and turned
into a failure result; nothing is raised to the caller.
"""

from __future__ import annotations

import logging

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.error import BadRequest, TelegramError

from src.ports.delivery_port import Keyboard

logger = logging.getLogger(__name__)


def to_markup(keyboard: Keyboard | None) -> InlineKeyboardMarkup | None:
    """Convert (label, callback_data) rows to an inline keyboard."""
    if not keyboard:
        return None
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(label, callback_data=data) for label, data in row]
        for row in keyboard
    ])


class TelegramGateway:
    """Telegram implementation of DeliveryPort."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_message(
        self, chat_id: int, text: str, keyboard: Keyboard | None = None,
    ) -> int | None:
        try:
            message = await self._bot.send_message(
                chat_id=chat_id, text=text, reply_markup=to_markup(keyboard),
            )
        except TelegramError as exc:
            logger.warning("Failed to send message to chat %s: %s", chat_id, exc)
            return None
        return message.message_id

    async def edit_message(
        self, chat_id: int, message_id: int, text: str, keyboard: Keyboard | None = None,
    ) -> bool:
        try:
            await self._bot.edit_message_text(
                text=text,
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=to_markup(keyboard),
            )
        except BadRequest as exc:
            if "not modified" in str(exc).lower():
                return True
            logger.warning("Failed to edit message %s in chat %s: %s", message_id, chat_id, exc)
            return False
        except TelegramError as exc:
            logger.warning("Failed to edit message %s in chat %s: %s", message_id, chat_id, exc)
            return False
        return True

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        try:
            return bool(await self._bot.delete_message(chat_id=chat_id, message_id=message_id))
        except TelegramError as exc:
            logger.info("Failed to delete message %s in chat %s: %s", message_id, chat_id, exc)
            return False

    async def pin_message(self, chat_id: int, message_id: int) -> bool:
        try:
            return bool(await self._bot.pin_chat_message(
                chat_id=chat_id, message_id=message_id, disable_notification=True,
            ))
        except TelegramError as exc:
            logger.warning("Failed to pin message %s in chat %s: %s", message_id, chat_id, exc)
            return False

    async def answer_callback(self, callback_id: str, text: str | None = None) -> bool:
        try:
            return bool(await self._bot.answer_callback_query(
                callback_query_id=callback_id, text=text,
            ))
        except TelegramError as exc:
            logger.warning("Failed to answer callback %s: %s", callback_id, exc)
            return False
