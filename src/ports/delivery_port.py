"""Delivery port — abstract interface for talking to a chat.

Core modules depend on this protocol, never on a specific messaging provider.
Implementations never raise on a rejected request: they log it and report
failure through the return value.
"""

from __future__ import annotations

from typing import Protocol

# Rows of (label, callback_data) buttons
Keyboard = list[list[tuple[str, str]]]


class DeliveryPort(Protocol):
    """Abstract messaging interface used by core modules."""

    async def send_message(
        self, chat_id: int, text: str, keyboard: Keyboard | None = None,
    ) -> int | None: ...

    async def edit_message(
        self, chat_id: int, message_id: int, text: str, keyboard: Keyboard | None = None,
    ) -> bool: ...

    async def delete_message(self, chat_id: int, message_id: int) -> bool: ...

    async def pin_message(self, chat_id: int, message_id: int) -> bool: ...

    async def answer_callback(self, callback_id: str, text: str | None = None) -> bool: ...
