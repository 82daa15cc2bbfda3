"""
TipTally — SQLite storage.

Running totals, tip history and user presence persist in SQLite across
days, surviving bot restarts. Every write is a single statement, so two
concurrent writers for the same chat never leave a half-written row
(last write wins).
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from src.data.models import (
    ChatAccount,
    InputKind,
    TipHistoryRecord,
    TrackedUser,
    UserInfo,
    UserStats,
)

logger = logging.getLogger(__name__)


def _utc_iso(moment: datetime | None = None) -> str:
    """ISO-8601 UTC string; all stored timestamps use it so they sort as text."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()


class _SQLiteStore:
    """Shared connection handling for the stores below."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        raise NotImplementedError


class AccountDB(_SQLiteStore):
    """SQLite-backed storage for per-chat running sums and tip history."""

    def _init_db(self) -> None:
        """Create the sums and history tables if they don't exist, and migrate schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS user_current_sums (
                    chat_id       INTEGER PRIMARY KEY,
                    expected_sum  REAL NOT NULL DEFAULT 0,
                    received_sum  REAL NOT NULL DEFAULT 0,
                    last_input    TEXT,
                    last_updated  TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tips_history (
                    id            INTEGER PRIMARY KEY AUTOINCREMENT,
                    chat_id       INTEGER NOT NULL,
                    date          TEXT NOT NULL,
                    expected_sum  REAL NOT NULL,
                    received_sum  REAL NOT NULL,
                    tip_amount    REAL NOT NULL,
                    timestamp     TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_tips_history_chat_date "
                "ON tips_history (chat_id, date)"
            )
            # Migrate existing DBs: add new columns if missing
            existing_cols = {
                row[1]
                for row in conn.execute("PRAGMA table_info(user_current_sums)").fetchall()
            }
            if "last_reset" not in existing_cols:
                conn.execute("ALTER TABLE user_current_sums ADD COLUMN last_reset TEXT")
        logger.debug("Account tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> ChatAccount:
        last_input = row["last_input"]
        return ChatAccount(
            chat_id=row["chat_id"],
            expected_sum=row["expected_sum"],
            received_sum=row["received_sum"],
            last_input=InputKind(last_input) if last_input else None,
            last_updated=row["last_updated"],
            last_reset=row["last_reset"],
        )

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> TipHistoryRecord:
        return TipHistoryRecord(
            id=row["id"],
            chat_id=row["chat_id"],
            date=row["date"],
            expected_sum=row["expected_sum"],
            received_sum=row["received_sum"],
            tip_amount=row["tip_amount"],
            timestamp=row["timestamp"],
        )

    def get_account(self, chat_id: int) -> ChatAccount:
        """Return the chat's totals, or a zero account if none are stored."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM user_current_sums WHERE chat_id = ?", (chat_id,)
            ).fetchone()
        if row is None:
            return ChatAccount(chat_id=chat_id)
        return self._row_to_account(row)

    def save_account(self, account: ChatAccount, now: datetime | None = None) -> ChatAccount:
        """Upsert the account and stamp last_updated."""
        account.last_updated = _utc_iso(now)
        last_input = account.last_input.value if account.last_input else None
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO user_current_sums
                    (chat_id, expected_sum, received_sum, last_input, last_updated, last_reset)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(chat_id) DO UPDATE SET
                    expected_sum = excluded.expected_sum,
                    received_sum = excluded.received_sum,
                    last_input   = excluded.last_input,
                    last_updated = excluded.last_updated,
                    last_reset   = excluded.last_reset
                """,
                (
                    account.chat_id, account.expected_sum, account.received_sum,
                    last_input, account.last_updated, account.last_reset,
                ),
            )
        logger.debug(
            "Chat %s saved: expected=%s received=%s",
            account.chat_id, account.expected_sum, account.received_sum,
        )
        return account

    def reset_account(self, chat_id: int) -> bool:
        """Zero both sums and clear last_input. The row itself is kept."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE user_current_sums
                SET expected_sum = 0, received_sum = 0, last_input = NULL
                WHERE chat_id = ?
                """,
                (chat_id,),
            )
        reset = cursor.rowcount > 0
        if reset:
            logger.info("Chat %s sums reset", chat_id)
        return reset

    def append_history(self, record: TipHistoryRecord) -> TipHistoryRecord:
        """Insert a tip history record and return it with its id."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO tips_history
                    (chat_id, date, expected_sum, received_sum, tip_amount, timestamp)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.chat_id, record.date, record.expected_sum,
                    record.received_sum, record.tip_amount, record.timestamp,
                ),
            )
            record.id = cursor.lastrowid
        logger.info(
            "Tip history #%d for chat %s: %s", record.id, record.chat_id, record.tip_amount,
        )
        return record

    def get_history(
        self, chat_id: int, since_days: int = 7, today: date | None = None,
    ) -> list[TipHistoryRecord]:
        """Return records dated within the last since_days days, most recent first."""
        if today is None:
            today = date.today()
        date_limit = (today - timedelta(days=since_days)).isoformat()

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM tips_history
                WHERE chat_id = ? AND date >= ?
                ORDER BY timestamp DESC, id DESC
                """,
                (chat_id, date_limit),
            ).fetchall()

        return [self._row_to_record(r) for r in rows]


class UserDB(_SQLiteStore):
    """SQLite-backed presence tracking for chats that talk to the bot."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    chat_id             INTEGER PRIMARY KEY,
                    username            TEXT,
                    first_seen          TEXT NOT NULL,
                    last_seen           TEXT NOT NULL,
                    total_interactions  INTEGER NOT NULL DEFAULT 1
                )
            """)
            existing_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(users)").fetchall()
            }
            if "display_name" not in existing_cols:
                conn.execute("ALTER TABLE users ADD COLUMN display_name TEXT")
        logger.debug("Users table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> TrackedUser:
        return TrackedUser(
            chat_id=row["chat_id"],
            username=row["username"],
            display_name=row["display_name"],
            first_seen=row["first_seen"],
            last_seen=row["last_seen"],
            total_interactions=row["total_interactions"],
        )

    def track_user(
        self,
        chat_id: int,
        user: UserInfo | None = None,
        now: datetime | None = None,
    ) -> None:
        """Record an interaction: insert on first sight, otherwise bump the counter.

        Known names are never overwritten with missing ones.
        """
        seen = _utc_iso(now)
        username = user.username if user else None
        display_name = user.display_name if user else None
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users
                    (chat_id, username, display_name, first_seen, last_seen, total_interactions)
                VALUES (?, ?, ?, ?, ?, 1)
                ON CONFLICT(chat_id) DO UPDATE SET
                    last_seen          = excluded.last_seen,
                    total_interactions = total_interactions + 1,
                    username           = COALESCE(excluded.username, username),
                    display_name       = COALESCE(excluded.display_name, display_name)
                """,
                (chat_id, username, display_name, seen, seen),
            )

    def get_user(self, chat_id: int) -> TrackedUser | None:
        """Fetch a tracked user by chat ID."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE chat_id = ?", (chat_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_aggregate_stats(self, now: datetime | None = None) -> UserStats:
        """Totals across all chats; "today" and "this week" are rolling windows."""
        if now is None:
            now = datetime.now(timezone.utc)
        one_day_ago = _utc_iso(now - timedelta(days=1))
        one_week_ago = _utc_iso(now - timedelta(days=7))

        with self._connect() as conn:
            total_users = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
            active_today = conn.execute(
                "SELECT COUNT(*) FROM users WHERE last_seen > ?", (one_day_ago,),
            ).fetchone()[0]
            active_week = conn.execute(
                "SELECT COUNT(*) FROM users WHERE last_seen > ?", (one_week_ago,),
            ).fetchone()[0]
            interactions = conn.execute(
                "SELECT SUM(total_interactions) FROM users"
            ).fetchone()[0]

        return UserStats(
            total_users=total_users,
            active_today=active_today,
            active_this_week=active_week,
            total_interactions=interactions or 0,
        )
