"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like temp DBs, a pinned clock and a fake
delivery gateway.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "Europe/Warsaw")
os.environ.setdefault("RESET_HOUR", "11")

import itertools
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest

WARSAW = ZoneInfo("Europe/Warsaw")


def warsaw(year=2025, month=6, day=2, hour=10, minute=0):
    """Aware datetime in the bot's time zone."""
    return datetime(year, month, day, hour, minute, tzinfo=WARSAW)


class FakeNow:
    """Callable "now" that tests move by assigning .moment."""

    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_bot_data.db")


@pytest.fixture
def account_db(tmp_db_path):
    """Return an AccountDB instance backed by a temp file."""
    from src.data.db import AccountDB
    return AccountDB(db_path=tmp_db_path)


@pytest.fixture
def user_db(tmp_db_path):
    """Return a UserDB instance backed by a temp file."""
    from src.data.db import UserDB
    return UserDB(db_path=tmp_db_path)


@pytest.fixture
def fake_now():
    """Pinned at 10:00 Warsaw time, one hour before the default cutoff."""
    return FakeNow(warsaw())


@pytest.fixture
def clock(fake_now):
    from src.core.clock import Clock
    return Clock("Europe/Warsaw", now_fn=fake_now)


@pytest.fixture
def gateway():
    """DeliveryPort double: every send succeeds with a fresh message id."""
    ids = itertools.count(100)
    gw = MagicMock()
    gw.send_message = AsyncMock(side_effect=lambda *args, **kwargs: next(ids))
    gw.edit_message = AsyncMock(return_value=True)
    gw.delete_message = AsyncMock(return_value=True)
    gw.pin_message = AsyncMock(return_value=True)
    gw.answer_callback = AsyncMock(return_value=True)
    return gw


@pytest.fixture
def scheduler():
    """DeletionScheduler double."""
    return MagicMock()


@pytest.fixture
def service(account_db, user_db, gateway, scheduler, clock):
    from src.core.tip_service import TipService
    return TipService(
        account_db, user_db, gateway, scheduler,
        clock=clock, cutoff_hour=11, history_days=7,
    )
