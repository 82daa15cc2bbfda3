"""Scheduler port — delayed, fire-and-forget message deletion."""

from __future__ import annotations

from typing import Protocol


class DeletionScheduler(Protocol):
    """Queues a message for deletion `delay` seconds from now.

    Scheduling never blocks the caller and a scheduled deletion cannot be
    cancelled.
    """

    def schedule_deletion(self, chat_id: int, message_id: int, delay: float) -> None: ...
