"""
TipTally — Webhook server.

A single POST endpoint receives Telegram updates. Anything that parses
as JSON is acknowledged with 200, including updates that are ignored,
so Telegram never retries a harmless payload. Other methods get 405.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from telegram import Update
from telegram.ext import Application

from src.config import settings

logger = logging.getLogger(__name__)


def extract_chat_id(payload: dict[str, Any]) -> int | None:
    """Chat id of a message or callback update, None when the shape is unusable."""
    message = payload.get("message")
    if message is None:
        callback = payload.get("callback_query")
        if not isinstance(callback, dict):
            return None
        message = callback.get("message")
    if not isinstance(message, dict):
        return None
    chat = message.get("chat")
    if not isinstance(chat, dict):
        return None
    return chat.get("id")


def create_app(application: Application, webhook_url: str = "") -> FastAPI:
    """FastAPI app feeding webhook updates into a started telegram Application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with application:
            await application.start()
            if webhook_url:
                await application.bot.set_webhook(
                    url=webhook_url, allowed_updates=Update.ALL_TYPES,
                )
                logger.info("Webhook registered at %s", webhook_url)
            try:
                yield
            finally:
                await application.stop()

    api = FastAPI(title="TipTally", lifespan=lifespan)

    @api.post(settings.WEBHOOK_PATH)
    async def webhook(request: Request) -> JSONResponse:
        try:
            payload = await request.json()
        except ValueError:
            logger.warning("Webhook body is not JSON")
            return JSONResponse({"ok": False}, status_code=400)

        if not isinstance(payload, dict) or extract_chat_id(payload) is None:
            logger.info("Ignoring update without a chat: %s", str(payload)[:200])
            return JSONResponse({"ok": True})

        try:
            update = Update.de_json(payload, application.bot)
            await application.process_update(update)
        except Exception as exc:
            logger.error("Failed to process update %s: %s", payload.get("update_id"), exc)
        return JSONResponse({"ok": True})

    @api.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @api.get("/stats")
    async def stats() -> dict[str, int]:
        return asdict(application.bot_data["tips"].stats())

    return api


def run() -> None:
    """Serve the webhook with uvicorn."""
    import uvicorn

    from src.bot.telegram_bot import build_app

    logger.info("Starting TipTally bot (webhook on %s)...", settings.WEBHOOK_PATH)
    api = create_app(build_app(webhook=True), webhook_url=settings.WEBHOOK_URL)
    uvicorn.run(api, host=settings.HOST, port=settings.PORT)
