"""
TipTally — Tip service.

Every inbound event (command, button press, text) ends up here:

    reset check → state machine → persistence → rendering → delivery

Each entry point first runs the daily reset checks, then performs its
read-modify-persist sequence under the chat's lock. Storage errors never
reach the user: reads fall back to a zero account and failed writes are
logged and dropped.

This module is transport-agnostic: it depends on the DeliveryPort and
DeletionScheduler protocols, not on Telegram.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from src.core.clock import Clock
from src.core.notifications import NotificationEngine
from src.core.reset_policy import ResetPolicy
from src.core.state import BotState, ChatMode
from src.core.state_machine import ChatStateMachine, Outcome
from src.core.summary import (
    SummaryResult,
    back_keyboard,
    classify,
    format_amount,
    main_menu_keyboard,
    render_help,
    render_main_view,
    render_prompt,
    render_summary,
)
from src.data.models import ChatAccount, InputKind, TipHistoryRecord, UserInfo, UserStats

if TYPE_CHECKING:
    from src.data.db import AccountDB, UserDB
    from src.ports.delivery_port import DeliveryPort
    from src.ports.scheduler_port import DeletionScheduler

logger = logging.getLogger(__name__)

_KIND_LABELS = {InputKind.EXPECTED: "Expected", InputKind.RECEIVED: "Received"}


class TipService:
    """Handles chat events against persisted accounts and in-memory modes."""

    def __init__(
        self,
        accounts: AccountDB,
        users: UserDB,
        gateway: DeliveryPort,
        scheduler: DeletionScheduler,
        clock: Clock | None = None,
        state: BotState | None = None,
        cutoff_hour: int | None = None,
        history_days: int | None = None,
        notifier: NotificationEngine | None = None,
    ) -> None:
        if history_days is None:
            from src.config import settings
            history_days = settings.HISTORY_DAYS

        self.accounts = accounts
        self.users = users
        self.gateway = gateway
        self.clock = clock or Clock()
        self.state = state or BotState.started_at(self.clock.now())
        self.policy = ResetPolicy(self.state, cutoff_hour)
        self.machine = ChatStateMachine(self.state.modes)
        self.notifier = notifier or NotificationEngine(gateway, scheduler, self.state)
        self.history_days = history_days

    # ------------------------------------------------------------------
    # Persistence with graceful degradation
    # ------------------------------------------------------------------

    def _load(self, chat_id: int) -> ChatAccount:
        try:
            return self.accounts.get_account(chat_id)
        except sqlite3.Error as exc:
            logger.error("Failed to load account for chat %s: %s", chat_id, exc)
            return ChatAccount(chat_id=chat_id)

    def _save(self, account: ChatAccount, now: datetime) -> None:
        try:
            self.accounts.save_account(account, now=now)
        except sqlite3.Error as exc:
            logger.error("Failed to save account for chat %s: %s", account.chat_id, exc)

    def _append_history(self, record: TipHistoryRecord) -> TipHistoryRecord | None:
        try:
            return self.accounts.append_history(record)
        except sqlite3.Error as exc:
            logger.error("Failed to append tip history for chat %s: %s", record.chat_id, exc)
            return None

    def _history(self, chat_id: int) -> list[TipHistoryRecord]:
        try:
            return self.accounts.get_history(
                chat_id, since_days=self.history_days, today=self.clock.today(),
            )
        except sqlite3.Error as exc:
            logger.warning("Failed to read tip history for chat %s: %s", chat_id, exc)
            return []

    def track(self, chat_id: int, user: UserInfo | None = None) -> None:
        try:
            self.users.track_user(chat_id, user, now=self.clock.now())
        except sqlite3.Error as exc:
            logger.error("Failed to track chat %s: %s", chat_id, exc)

    def stats(self) -> UserStats:
        try:
            return self.users.get_aggregate_stats(now=self.clock.now())
        except sqlite3.Error as exc:
            logger.error("Failed to compute user stats: %s", exc)
            return UserStats()

    # ------------------------------------------------------------------
    # Reset checks
    # ------------------------------------------------------------------

    async def _prepare(self, chat_id: int) -> tuple[ChatAccount, datetime]:
        """Run both reset checks and return the chat's current account.

        Must be called with the chat's lock held.
        """
        now = self.clock.now()
        self.policy.sweep(now)

        account = self._load(chat_id)
        had_sums = not account.is_empty
        if self.policy.apply_to_account(account, now):
            self._save(account, now)
            if had_sums:
                await self.notifier.confirm(
                    chat_id,
                    f"🌅 New day: totals were reset at {self.policy.cutoff_hour:02d}:00.",
                )
        return account, now

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    async def _refresh_menu(
        self,
        account: ChatAccount,
        message_id: int | None = None,
        fresh: bool = False,
    ) -> None:
        mode = self.machine.mode_of(account.chat_id)
        text = render_main_view(account, self.clock.date_string(), mode)
        keyboard = main_menu_keyboard() if mode is ChatMode.IDLE else back_keyboard("✖️ Cancel")
        await self.notifier.show_menu(
            account.chat_id, text, keyboard, message_id=message_id, fresh=fresh,
        )

    async def start(self, chat_id: int, user: UserInfo | None = None) -> None:
        """/start: forget any pending mode and post a fresh main menu."""
        self.track(chat_id, user)
        async with self.state.lock_for(chat_id):
            account, _ = await self._prepare(chat_id)
            self.machine.cancel(chat_id)
        await self._refresh_menu(account, fresh=True)

    async def show_menu(self, chat_id: int, message_id: int | None = None) -> None:
        """Main menu button: cancels a pending input mode."""
        async with self.state.lock_for(chat_id):
            account, _ = await self._prepare(chat_id)
            self.machine.cancel(chat_id)
        await self._refresh_menu(account, message_id=message_id)

    async def show_help(self, chat_id: int, message_id: int | None = None) -> None:
        await self.notifier.show_menu(chat_id, render_help(), back_keyboard(), message_id=message_id)

    # ------------------------------------------------------------------
    # State machine entry points
    # ------------------------------------------------------------------

    async def select_mode(
        self, chat_id: int, kind: InputKind, message_id: int | None = None,
    ) -> None:
        async with self.state.lock_for(chat_id):
            account, _ = await self._prepare(chat_id)
            transition = self.machine.select_mode(chat_id, kind)

        await self.notifier.show_menu(
            chat_id,
            render_main_view(account, self.clock.date_string(), transition.mode),
            back_keyboard("✖️ Cancel"),
            message_id=message_id,
        )
        await self.notifier.confirm(chat_id, render_prompt(transition.mode))

    async def handle_text(
        self,
        chat_id: int,
        text: str | None,
        message_id: int | None = None,
        user: UserInfo | None = None,
    ) -> Outcome:
        """A plain text message: a numeric input attempt."""
        self.track(chat_id, user)
        async with self.state.lock_for(chat_id):
            account, now = await self._prepare(chat_id)
            transition = self.machine.submit(account, text)
            if transition.mutated:
                self._save(account, now)

        if transition.outcome is Outcome.NO_MODE:
            await self.notifier.error(
                chat_id, "👆 Choose ➕ Expected or 💵 Received first, then send the amount.",
            )
            return transition.outcome

        if transition.outcome is Outcome.INVALID_NUMBER:
            await self.notifier.error(
                chat_id, "❌ That is not a number. Try e.g. 1500 or 1500,50.",
            )
            return transition.outcome

        logger.info(
            "Chat %s: %s set to %s", chat_id, transition.kind.value, transition.value,
        )
        if message_id is not None:
            self.notifier.expire(chat_id, message_id, self.notifier.confirm_ttl)
        await self._refresh_menu(account)
        await self.notifier.confirm(
            chat_id, f"✅ {_KIND_LABELS[transition.kind]}: {format_amount(transition.value)}",
        )
        return transition.outcome

    async def undo_last(self, chat_id: int, message_id: int | None = None) -> Outcome:
        async with self.state.lock_for(chat_id):
            account, now = await self._prepare(chat_id)
            transition = self.machine.undo_last(account)
            if transition.mutated:
                self._save(account, now)

        if transition.outcome is Outcome.NOTHING_TO_UNDO:
            await self.notifier.error(chat_id, "🤷 Nothing to undo.")
            return transition.outcome

        await self._refresh_menu(account, message_id=message_id)
        await self.notifier.confirm(
            chat_id, f"↩️ {_KIND_LABELS[transition.kind]} amount cleared.",
        )
        return transition.outcome

    async def full_reset(self, chat_id: int, message_id: int | None = None) -> Outcome:
        async with self.state.lock_for(chat_id):
            account, now = await self._prepare(chat_id)
            transition = self.machine.full_reset(account)
            self._save(account, now)

        logger.info("Chat %s reset on request", chat_id)
        await self._refresh_menu(account, message_id=message_id)
        await self.notifier.confirm(chat_id, "🗑 Both amounts cleared.")
        return transition.outcome

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    async def produce_summary(self, chat_id: int) -> SummaryResult:
        """Finalize the chat's day: record it (if non-empty) and zero the account."""
        async with self.state.lock_for(chat_id):
            account, now = await self._prepare(chat_id)
            snapshot = ChatAccount(
                chat_id=chat_id,
                expected_sum=account.expected_sum,
                received_sum=account.received_sum,
            )
            day = self.clock.date_string(now)

            record = None
            if not snapshot.is_empty:
                record = self._append_history(TipHistoryRecord(
                    chat_id=chat_id,
                    date=day,
                    expected_sum=snapshot.expected_sum,
                    received_sum=snapshot.received_sum,
                    tip_amount=snapshot.difference,
                    timestamp=now.astimezone(timezone.utc).isoformat(),
                ))

            self.machine.full_reset(account)
            self._save(account, now)

        history = self._history(chat_id)
        text = render_summary(snapshot, day, history, self.history_days)
        logger.info(
            "Chat %s summary: expected=%s received=%s recorded=%s",
            chat_id, snapshot.expected_sum, snapshot.received_sum, record is not None,
        )
        return SummaryResult(text=text, outcome=classify(snapshot.difference), record=record)

    async def show_summary(self, chat_id: int, message_id: int | None = None) -> SummaryResult:
        """Summary button: produce, publish and pin the summary, then refresh the menu."""
        result = await self.produce_summary(chat_id)
        await self.notifier.publish_summary(chat_id, result.text)
        await self._refresh_menu(self._load(chat_id), message_id=message_id)
        return result

    # ------------------------------------------------------------------
    # Callback dispatch
    # ------------------------------------------------------------------

    async def handle_callback(
        self,
        chat_id: int,
        message_id: int | None,
        callback_id: str,
        data: str | None,
        user: UserInfo | None = None,
    ) -> bool:
        """Dispatch a button press. Unknown data is logged and ignored."""
        self.track(chat_id, user)
        await self.gateway.answer_callback(callback_id)

        if data == "main_menu":
            await self.show_menu(chat_id, message_id)
        elif data == "input_expected":
            await self.select_mode(chat_id, InputKind.EXPECTED, message_id)
        elif data == "input_received":
            await self.select_mode(chat_id, InputKind.RECEIVED, message_id)
        elif data == "show_summary":
            await self.show_summary(chat_id, message_id)
        elif data == "reset_sum":
            await self.full_reset(chat_id, message_id)
        elif data == "reset_last":
            await self.undo_last(chat_id, message_id)
        elif data == "help":
            await self.show_help(chat_id, message_id)
        else:
            logger.warning("Ignoring unknown callback data %r from chat %s", data, chat_id)
            return False
        return True
