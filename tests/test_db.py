"""Tests for src.data.db — AccountDB (SQLite storage of sums and history)."""

import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone

import pytest

from src.data.db import AccountDB
from src.data.models import ChatAccount, InputKind, TipHistoryRecord


def _record(chat_id=1, day="2025-06-02", expected=100.0, received=120.0, ts=None):
    return TipHistoryRecord(
        chat_id=chat_id,
        date=day,
        expected_sum=expected,
        received_sum=received,
        tip_amount=received - expected,
        timestamp=ts or f"{day}T12:00:00+00:00",
    )


class TestAccountDBGetAndSave:
    def test_unknown_chat_returns_zero_account(self, account_db):
        account = account_db.get_account(777)
        assert account.chat_id == 777
        assert account.is_empty
        assert account.last_input is None

    def test_save_and_get(self, account_db):
        account = ChatAccount(
            chat_id=1, expected_sum=200, received_sum=250.5,
            last_input=InputKind.RECEIVED, last_reset="2025-06-02T09:00:00+00:00",
        )
        account_db.save_account(account)
        fetched = account_db.get_account(1)
        assert fetched.expected_sum == 200
        assert fetched.received_sum == 250.5
        assert fetched.last_input is InputKind.RECEIVED
        assert fetched.last_reset == "2025-06-02T09:00:00+00:00"
        assert fetched.last_updated is not None

    def test_save_stamps_last_updated_in_utc(self, account_db):
        now = datetime(2025, 6, 2, 10, 30, tzinfo=timezone.utc)
        saved = account_db.save_account(ChatAccount(chat_id=1, expected_sum=1), now=now)
        assert saved.last_updated == "2025-06-02T10:30:00+00:00"

    def test_save_overwrites(self, account_db):
        account_db.save_account(ChatAccount(chat_id=1, expected_sum=1))
        account_db.save_account(ChatAccount(chat_id=1, expected_sum=2, received_sum=3))
        fetched = account_db.get_account(1)
        assert (fetched.expected_sum, fetched.received_sum) == (2, 3)

    def test_negative_amounts_are_stored(self, account_db):
        account_db.save_account(ChatAccount(chat_id=1, expected_sum=-5.25))
        assert account_db.get_account(1).expected_sum == -5.25

    def test_chats_are_isolated(self, account_db):
        account_db.save_account(ChatAccount(chat_id=1, expected_sum=10))
        account_db.save_account(ChatAccount(chat_id=2, expected_sum=20))
        assert account_db.get_account(1).expected_sum == 10
        assert account_db.get_account(2).expected_sum == 20


class TestAccountDBReset:
    def test_reset_zeroes_but_keeps_row(self, account_db):
        account_db.save_account(ChatAccount(
            chat_id=1, expected_sum=5, received_sum=9, last_input=InputKind.EXPECTED,
        ))
        assert account_db.reset_account(1) is True
        fetched = account_db.get_account(1)
        assert fetched.is_empty
        assert fetched.last_input is None
        assert fetched.last_updated is not None

    def test_reset_unknown_chat(self, account_db):
        assert account_db.reset_account(404) is False


class TestAccountDBHistory:
    def test_append_assigns_id(self, account_db):
        record = account_db.append_history(_record())
        assert record.id is not None

    def test_history_most_recent_first(self, account_db):
        account_db.append_history(_record(ts="2025-06-01T12:00:00+00:00", day="2025-06-01"))
        account_db.append_history(_record(ts="2025-06-02T12:00:00+00:00", day="2025-06-02"))
        history = account_db.get_history(1, since_days=7, today=date(2025, 6, 2))
        assert [r.date for r in history] == ["2025-06-02", "2025-06-01"]

    def test_history_window(self, account_db):
        account_db.append_history(_record(day="2025-05-01"))
        account_db.append_history(_record(day="2025-05-26"))
        account_db.append_history(_record(day="2025-06-02"))
        history = account_db.get_history(1, since_days=7, today=date(2025, 6, 2))
        assert {r.date for r in history} == {"2025-05-26", "2025-06-02"}

    def test_history_scoped_to_chat(self, account_db):
        account_db.append_history(_record(chat_id=1))
        account_db.append_history(_record(chat_id=2))
        history = account_db.get_history(1, today=date(2025, 6, 2))
        assert len(history) == 1
        assert history[0].chat_id == 1
        assert history[0].tip_amount == 20


class TestAccountDBMigration:
    def test_adds_last_reset_to_old_schema(self, tmp_db_path):
        with sqlite3.connect(tmp_db_path) as conn:
            conn.execute("""
                CREATE TABLE user_current_sums (
                    chat_id INTEGER PRIMARY KEY,
                    expected_sum REAL DEFAULT 0,
                    received_sum REAL DEFAULT 0,
                    last_input TEXT,
                    last_updated TEXT
                )
            """)
            conn.execute(
                "INSERT INTO user_current_sums VALUES (1, 10, 12, 'received', "
                "'2025-06-01T08:00:00+00:00')"
            )
        db = AccountDB(db_path=tmp_db_path)
        account = db.get_account(1)
        assert account.received_sum == 12
        assert account.last_reset is None


class TestAccountDBConcurrentWriters:
    def test_no_partial_records(self, account_db):
        """Every writer stores a matching pair; the survivor must be one whole pair."""

        def write(value):
            account_db.save_account(
                ChatAccount(chat_id=1, expected_sum=value, received_sum=value * 2),
            )

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(write, range(1, 41)))

        final = account_db.get_account(1)
        assert final.expected_sum in range(1, 41)
        assert final.received_sum == final.expected_sum * 2
