"""
TipTally — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # SQLite
    DATABASE_PATH: str = "data/bot_data.db"

    # Daily reset
    TIMEZONE: str = "Europe/Warsaw"
    RESET_HOUR: int = 11

    # Ephemeral message lifetimes (seconds)
    ERROR_TTL_SECONDS: float = 2.5
    CONFIRM_TTL_SECONDS: float = 1.5
    SUMMARY_TTL_SECONDS: float = 9.0

    # How many days of tip history the summary looks back
    HISTORY_DAYS: int = 7

    # Webhook (empty WEBHOOK_URL → long polling)
    WEBHOOK_URL: str = ""
    WEBHOOK_PATH: str = "/api/webhook"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    @field_validator("RESET_HOUR", mode="before")
    @classmethod
    def parse_hour(cls, v: str | int) -> int:
        hour = int(v)
        if not 0 <= hour <= 23:
            raise ValueError(f"RESET_HOUR must be within 0-23, got {hour}")
        return hour

    @field_validator("WEBHOOK_PATH", mode="before")
    @classmethod
    def normalize_path(cls, v: str) -> str:
        v = (v or "").strip() or "/api/webhook"
        return v if v.startswith("/") else f"/{v}"


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/bot_data.db"),
        TIMEZONE=os.getenv("TIMEZONE", "Europe/Warsaw"),
        RESET_HOUR=os.getenv("RESET_HOUR", "11"),
        ERROR_TTL_SECONDS=os.getenv("ERROR_TTL_SECONDS", "2.5"),
        CONFIRM_TTL_SECONDS=os.getenv("CONFIRM_TTL_SECONDS", "1.5"),
        SUMMARY_TTL_SECONDS=os.getenv("SUMMARY_TTL_SECONDS", "9.0"),
        HISTORY_DAYS=os.getenv("HISTORY_DAYS", "7"),
        WEBHOOK_URL=os.getenv("WEBHOOK_URL", ""),
        WEBHOOK_PATH=os.getenv("WEBHOOK_PATH", "/api/webhook"),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=os.getenv("PORT", "8000"),
    )


# Singleton, imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
