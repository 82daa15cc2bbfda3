"""Deletion scheduler backed by python-telegram-bot's JobQueue.

Each deletion becomes a one-shot job; the job queue runs it in the
background, so scheduling returns immediately.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from telegram.ext import ContextTypes, JobQueue

if TYPE_CHECKING:
    from src.ports.delivery_port import DeliveryPort

logger = logging.getLogger(__name__)


class JobQueueDeletionScheduler:
    """JobQueue implementation of DeletionScheduler."""

    def __init__(self, job_queue: JobQueue, gateway: DeliveryPort) -> None:
        self._job_queue = job_queue
        self._gateway = gateway

    def schedule_deletion(self, chat_id: int, message_id: int, delay: float) -> None:
        self._job_queue.run_once(
            self._delete_job,
            when=delay,
            data=(chat_id, message_id),
            name=f"delete:{chat_id}:{message_id}",
        )

    async def _delete_job(self, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id, message_id = context.job.data
        if not await self._gateway.delete_message(chat_id, message_id):
            logger.debug("Scheduled deletion of %s in chat %s skipped", message_id, chat_id)
