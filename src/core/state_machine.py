"""Per-chat input state machine — pure business logic.

    IDLE --input_expected--> AWAITING_EXPECTED --valid number--> IDLE
    IDLE --input_received--> AWAITING_RECEIVED --valid number--> IDLE

An invalid number keeps the mode so the user can retry; a number while
IDLE is rejected without touching the account. "Undo last" and "full
reset" work in any mode.

No I/O: transitions mutate the ChatAccount and the ModeRegistry in memory,
and the caller decides what to persist and what to tell the user.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum

from src.core.state import ChatMode, ModeRegistry
from src.data.models import ChatAccount, InputKind

logger = logging.getLogger(__name__)

# ASCII digits only: float() also takes "1_000", exponents and other scripts
_AMOUNT_RE = re.compile(r"[+-]?[0-9]+(?:\.[0-9]+)?")

_MODE_FOR_KIND = {
    InputKind.EXPECTED: ChatMode.AWAITING_EXPECTED,
    InputKind.RECEIVED: ChatMode.AWAITING_RECEIVED,
}
_KIND_FOR_MODE = {mode: kind for kind, mode in _MODE_FOR_KIND.items()}


class Outcome(str, Enum):
    MODE_SELECTED = "mode_selected"
    VALUE_SET = "value_set"
    INVALID_NUMBER = "invalid_number"
    NO_MODE = "no_mode"
    CANCELLED = "cancelled"
    UNDONE = "undone"
    NOTHING_TO_UNDO = "nothing_to_undo"
    RESET = "reset"


@dataclass
class Transition:
    """What a single event did to a chat."""

    outcome: Outcome
    mode: ChatMode
    kind: InputKind | None = None     # field that was selected / written / undone
    value: float | None = None        # number that was written

    @property
    def mutated(self) -> bool:
        """True when the account changed and has to be persisted."""
        return self.outcome in (Outcome.VALUE_SET, Outcome.UNDONE, Outcome.RESET)


def parse_amount(text: str | None) -> float | None:
    """Parse "1500", "1500.50" or "1500,50". Returns None when not a finite number."""
    if not text:
        return None
    normalized = text.strip().replace(",", ".")
    if not _AMOUNT_RE.fullmatch(normalized):
        return None
    value = float(normalized)
    if not math.isfinite(value):
        return None
    return value


class ChatStateMachine:
    """Transitions for every chat, backed by a shared ModeRegistry."""

    def __init__(self, modes: ModeRegistry) -> None:
        self._modes = modes

    def mode_of(self, chat_id: int) -> ChatMode:
        return self._modes.get(chat_id)

    def select_mode(self, chat_id: int, kind: InputKind) -> Transition:
        mode = _MODE_FOR_KIND[kind]
        self._modes.set(chat_id, mode)
        logger.debug("Chat %s now %s", chat_id, mode.value)
        return Transition(Outcome.MODE_SELECTED, mode, kind=kind)

    def cancel(self, chat_id: int) -> Transition:
        self._modes.clear(chat_id)
        return Transition(Outcome.CANCELLED, ChatMode.IDLE)

    def submit(self, account: ChatAccount, text: str | None) -> Transition:
        """Feed a text message to the chat's current mode."""
        mode = self._modes.get(account.chat_id)
        if mode is ChatMode.IDLE:
            return Transition(Outcome.NO_MODE, mode)

        value = parse_amount(text)
        if value is None:
            return Transition(Outcome.INVALID_NUMBER, mode, kind=_KIND_FOR_MODE[mode])

        kind = _KIND_FOR_MODE[mode]
        if kind is InputKind.EXPECTED:
            account.expected_sum = value
        else:
            account.received_sum = value
        account.last_input = kind
        self._modes.clear(account.chat_id)
        return Transition(Outcome.VALUE_SET, ChatMode.IDLE, kind=kind, value=value)

    def undo_last(self, account: ChatAccount) -> Transition:
        """Zero whichever sum was written last. The mode is left alone."""
        mode = self._modes.get(account.chat_id)
        kind = account.last_input
        if kind is None:
            return Transition(Outcome.NOTHING_TO_UNDO, mode)

        if kind is InputKind.EXPECTED:
            account.expected_sum = 0.0
        else:
            account.received_sum = 0.0
        account.last_input = None
        return Transition(Outcome.UNDONE, mode, kind=kind)

    def full_reset(self, account: ChatAccount) -> Transition:
        account.clear()
        self._modes.clear(account.chat_id)
        return Transition(Outcome.RESET, ChatMode.IDLE)
