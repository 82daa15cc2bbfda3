"""Process-wide state holder.

Input modes, the reset clock, known menu message ids and per-chat locks
live here instead of in module globals. One BotState is built at startup
and handed to the service; tests build their own.

None of this survives a restart, and that is fine: every chat comes
back as Idle and the reset clock starts at boot time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

logger = logging.getLogger(__name__)


class ChatMode(str, Enum):
    IDLE = "idle"
    AWAITING_EXPECTED = "awaiting_expected"
    AWAITING_RECEIVED = "awaiting_received"


class ModeRegistry:
    """Per-chat input modes. A missing entry means IDLE."""

    def __init__(self) -> None:
        self._modes: dict[int, ChatMode] = {}

    def get(self, chat_id: int) -> ChatMode:
        return self._modes.get(chat_id, ChatMode.IDLE)

    def set(self, chat_id: int, mode: ChatMode) -> None:
        if mode is ChatMode.IDLE:
            self._modes.pop(chat_id, None)
        else:
            self._modes[chat_id] = mode

    def clear(self, chat_id: int) -> None:
        self._modes.pop(chat_id, None)

    def clear_all(self) -> int:
        """Drop every mode; returns how many chats were waiting for input."""
        count = len(self._modes)
        self._modes.clear()
        return count

    def __len__(self) -> int:
        return len(self._modes)


@dataclass
class ResetClock:
    """Instant of the last process-wide reset sweep. Never moves backwards."""

    last_reset: datetime

    def advance(self, moment: datetime) -> None:
        if moment > self.last_reset:
            self.last_reset = moment


@dataclass
class BotState:
    """Everything the running process remembers between updates."""

    reset_clock: ResetClock
    modes: ModeRegistry = field(default_factory=ModeRegistry)
    menu_messages: dict[int, int] = field(default_factory=dict)
    _locks: dict[int, asyncio.Lock] = field(default_factory=dict, repr=False)

    @classmethod
    def started_at(cls, now: datetime) -> BotState:
        """Fresh state for a process booting at `now`."""
        logger.debug("Bot state initialized, reset clock at %s", now.isoformat())
        return cls(reset_clock=ResetClock(last_reset=now))

    def lock_for(self, chat_id: int) -> asyncio.Lock:
        """Lock serializing read-modify-persist sequences of one chat."""
        lock = self._locks.get(chat_id)
        if lock is None:
            lock = self._locks[chat_id] = asyncio.Lock()
        return lock
