"""Daily reset policy — pure time arithmetic plus two ways to apply it.

A reset is due when the last reset happened before today's cutoff
(e.g. 11:00 local) and "now" is at or past it. Comparing against the last
recorded reset, not against "yesterday", keeps it correct when the bot
is idle for days and exact-once when it is called many times a day.

Two scopes:
- sweep(): process-wide, drives the ResetClock and clears all input modes.
- apply_to_account(): per chat, checked lazily whenever that chat is
  touched. A chat nobody writes to keeps its old sums until then.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from src.data.models import ChatAccount
from src.core.state import BotState

logger = logging.getLogger(__name__)


def cutoff_for(now: datetime, hour: int) -> datetime:
    """Today's cutoff instant, in the time zone of `now`."""
    return now.replace(hour=hour, minute=0, second=0, microsecond=0)


def should_reset(now: datetime, last_reset: datetime, hour: int) -> bool:
    cutoff = cutoff_for(now, hour)
    return now >= cutoff and last_reset < cutoff


def _utc_stamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat()


class ResetPolicy:
    """Applies the daily cutoff to the process state and to chat accounts."""

    def __init__(self, state: BotState, cutoff_hour: int | None = None) -> None:
        if cutoff_hour is None:
            from src.config import settings
            cutoff_hour = settings.RESET_HOUR

        self._state = state
        self.cutoff_hour = cutoff_hour

    def should_reset(self, now: datetime, last_reset: datetime) -> bool:
        return should_reset(now, last_reset, self.cutoff_hour)

    def sweep(self, now: datetime) -> bool:
        """Process-wide reset: clear every input mode once per crossed cutoff."""
        clock = self._state.reset_clock
        if not self.should_reset(now, clock.last_reset):
            return False

        cleared = self._state.modes.clear_all()
        clock.advance(now)
        logger.info(
            "Daily reset sweep at %s: %d pending input mode(s) cleared",
            now.isoformat(), cleared,
        )
        return True

    def apply_to_account(self, account: ChatAccount, now: datetime) -> bool:
        """Lazy per-chat reset. Mutates the account; the caller persists it.

        The reference instant is last_reset, then last_updated, then now.
        An account that was never stamped starts its cycle now rather than
        at the epoch, so a cold start never wipes anything.
        """
        reference = account.last_reset or account.last_updated
        if reference is None:
            account.last_reset = _utc_stamp(now)
            return False

        last_reset = datetime.fromisoformat(reference)
        if last_reset.tzinfo is None:
            last_reset = last_reset.replace(tzinfo=now.tzinfo)
        if not self.should_reset(now, last_reset):
            if account.last_reset is None:
                account.last_reset = _utc_stamp(now)
            return False

        had_sums = not account.is_empty
        account.clear()
        account.last_reset = _utc_stamp(now)
        self._state.modes.clear(account.chat_id)
        logger.info("Daily reset applied to chat %s (had sums: %s)", account.chat_id, had_sums)
        return True
