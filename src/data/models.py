"""
TipTally — Data Models.

Running totals and tip history persist in SQLite across days, surviving
bot restarts. Input modes are transient and live in memory only
(see src.core.state).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class InputKind(str, Enum):
    """Which sum was written most recently (used by "undo last")."""

    EXPECTED = "expected"
    RECEIVED = "received"


@dataclass
class ChatAccount:
    """Running totals of a single chat.

    A chat without a stored row behaves exactly like a fresh ChatAccount.
    """

    chat_id: int
    expected_sum: float = 0.0
    received_sum: float = 0.0
    last_input: InputKind | None = None
    last_updated: str | None = None   # ISO-8601 UTC
    last_reset: str | None = None     # ISO-8601 UTC, last daily reset applied

    @property
    def difference(self) -> float:
        return self.received_sum - self.expected_sum

    @property
    def is_empty(self) -> bool:
        return self.expected_sum == 0 and self.received_sum == 0

    def clear(self) -> None:
        """Zero both sums and forget the last input. Timestamps are kept."""
        self.expected_sum = 0.0
        self.received_sum = 0.0
        self.last_input = None


@dataclass
class TipHistoryRecord:
    """One finalized summary. Append-only."""

    chat_id: int
    date: str                  # local calendar day YYYY-MM-DD
    expected_sum: float
    received_sum: float
    tip_amount: float          # received_sum - expected_sum
    timestamp: str             # ISO-8601 UTC
    id: int | None = None


@dataclass
class UserInfo:
    """Sender details taken from an inbound update."""

    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def display_name(self) -> str | None:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else None


@dataclass
class TrackedUser:
    """Presence record of a chat that talked to the bot."""

    chat_id: int
    username: str | None
    display_name: str | None
    first_seen: str
    last_seen: str
    total_interactions: int = 1


@dataclass
class UserStats:
    """Aggregate presence numbers across all chats."""

    total_users: int = 0
    active_today: int = 0
    active_this_week: int = 0
    total_interactions: int = 0
