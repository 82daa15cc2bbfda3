"""Text rendering for the main view, summaries and help — pure functions.

Amounts are shown exactly as stored: no rounding, and whole numbers lose
the trailing ".0".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.core.state import ChatMode
from src.data.models import ChatAccount, TipHistoryRecord
from src.ports.delivery_port import Keyboard


class TipOutcome(str, Enum):
    POSITIVE = "positive"
    ZERO = "zero"
    NEGATIVE = "negative"


_OUTCOME_LABELS = {
    TipOutcome.POSITIVE: "🎉 Tips earned",
    TipOutcome.ZERO: "👌 Exact match",
    TipOutcome.NEGATIVE: "⚠️ Shortfall",
}


@dataclass
class SummaryResult:
    """A finalized day: the text to publish and what was recorded."""

    text: str
    outcome: TipOutcome
    record: TipHistoryRecord | None = None  # None when both sums were zero


def format_amount(value: float) -> str:
    value = float(value)
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def format_difference(expected: float, received: float) -> str:
    """Signed difference received - expected: "+x", "-x" or exactly "0"."""
    diff = received - expected
    if diff == 0:
        return "0"
    if diff > 0:
        return f"+{format_amount(diff)}"
    return format_amount(diff)


def classify(diff: float) -> TipOutcome:
    if diff > 0:
        return TipOutcome.POSITIVE
    if diff < 0:
        return TipOutcome.NEGATIVE
    return TipOutcome.ZERO


# ---------------------------------------------------------------------------
# Keyboards
# ---------------------------------------------------------------------------


def main_menu_keyboard() -> Keyboard:
    return [
        [("➕ Expected", "input_expected"), ("💵 Received", "input_received")],
        [("📊 Summary", "show_summary")],
        [("↩️ Undo last", "reset_last"), ("🗑 Reset", "reset_sum")],
        [("❓ Help", "help")],
    ]


def back_keyboard(label: str = "⬅️ Main menu") -> Keyboard:
    return [[(label, "main_menu")]]


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


_MODE_HINTS = {
    ChatMode.AWAITING_EXPECTED: "✏️ Send the expected amount.",
    ChatMode.AWAITING_RECEIVED: "✏️ Send the received amount.",
}


def render_main_view(account: ChatAccount, day: str, mode: ChatMode = ChatMode.IDLE) -> str:
    lines = [
        f"💰 Tips for {day}",
        "",
        f"Expected: {format_amount(account.expected_sum)}",
        f"Received: {format_amount(account.received_sum)}",
        f"Difference: {format_difference(account.expected_sum, account.received_sum)}",
    ]
    hint = _MODE_HINTS.get(mode)
    if hint:
        lines += ["", hint]
    return "\n".join(lines)


def render_prompt(mode: ChatMode) -> str:
    if mode is ChatMode.AWAITING_EXPECTED:
        return "✏️ Send the expected amount (e.g. 1500 or 1500,50)."
    return "✏️ Send the received amount (e.g. 1500 or 1500,50)."


def render_summary(
    account: ChatAccount,
    day: str,
    history: list[TipHistoryRecord] | None = None,
    history_days: int = 7,
) -> str:
    """The standalone day summary. `history` should already include this day."""
    diff = account.difference
    lines = [
        f"📅 Summary for {day}",
        f"Expected: {format_amount(account.expected_sum)}",
        f"Received: {format_amount(account.received_sum)}",
        f"{_OUTCOME_LABELS[classify(diff)]}: "
        f"{format_difference(account.expected_sum, account.received_sum)}",
    ]
    if history:
        total = sum(r.tip_amount for r in history)
        lines += [
            "",
            f"Last {history_days} days: {len(history)} shift(s), "
            f"total {format_difference(0, total)}",
        ]
    return "\n".join(lines)


def render_help() -> str:
    return (
        "ℹ️ How it works\n\n"
        "1. Press ➕ Expected and send the amount you should have.\n"
        "2. Press 💵 Received and send the amount you actually got.\n"
        "3. The difference is your tip. 📊 Summary pins the result and "
        "starts a new count.\n\n"
        "↩️ Undo last clears the last amount you entered, 🗑 Reset clears both.\n"
        "Decimals work with a dot or a comma. Totals reset every day at the cutoff hour."
    )
