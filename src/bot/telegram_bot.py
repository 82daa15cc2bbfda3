"""
TipTally — Telegram Bot.

Telegram is the only user interface. Handlers here only translate
updates into TipService calls; the per-chat logic lives in src.core.

Recognized input:
- /start                       → fresh main menu
- inline button callbacks      → TipService.handle_callback
- any other non-command text   → numeric input attempt
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from telegram import Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from src.config import settings
from src.data.models import UserInfo

if TYPE_CHECKING:
    from src.core.tip_service import TipService

logger = logging.getLogger(__name__)


def _user_info(update: Update) -> UserInfo | None:
    user = update.effective_user
    if user is None:
        return None
    return UserInfo(
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
    )


def _service(context: ContextTypes.DEFAULT_TYPE) -> TipService:
    return context.bot_data["tips"]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/start — show the main menu as a new message."""
    chat = update.effective_chat
    if chat is None:
        logger.warning("/start without a chat, ignoring")
        return
    await _service(context).start(chat.id, _user_info(update))


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Inline keyboard button press."""
    query = update.callback_query
    if query is None or query.message is None:
        logger.warning("Callback without a source message, ignoring")
        return
    await _service(context).handle_callback(
        chat_id=query.message.chat.id,
        message_id=query.message.message_id,
        callback_id=query.id,
        data=query.data,
        user=_user_info(update),
    )


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Plain text — interpreted as an amount for the current input mode."""
    message = update.effective_message
    chat = update.effective_chat
    if message is None or chat is None:
        logger.warning("Text update without message or chat, ignoring")
        return
    await _service(context).handle_text(
        chat_id=chat.id,
        text=message.text,
        message_id=message.message_id,
        user=_user_info(update),
    )


async def handle_unknown_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    logger.info("Ignoring unknown command %r", message.text if message else None)


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Last-resort handler: log and keep serving."""
    logger.error("Unhandled error while processing update: %s", context.error, exc_info=context.error)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_service(app: Application) -> TipService:
    """Wire the default adapters around the application's bot and job queue."""
    from src.adapters.job_queue_scheduler import JobQueueDeletionScheduler
    from src.adapters.telegram_gateway import TelegramGateway
    from src.core.tip_service import TipService
    from src.data.db import AccountDB, UserDB

    if app.job_queue is None:
        raise RuntimeError(
            "JobQueue is unavailable; install python-telegram-bot[job-queue]"
        )

    gateway = TelegramGateway(app.bot)
    scheduler = JobQueueDeletionScheduler(app.job_queue, gateway)
    db_path = settings.DATABASE_PATH
    return TipService(AccountDB(db_path), UserDB(db_path), gateway, scheduler)


def build_app(
    service: TipService | None = None,
    webhook: bool = False,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        service: TipService to route updates to. Defaults to one wired
                 with the Telegram gateway and the SQLite stores.
        webhook: Build without an Updater; updates are fed in by src.web.app.
    """
    builder = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN)
    if webhook:
        builder = builder.updater(None)
    app = builder.build()

    if service is None:
        service = build_service(app)
    app.bot_data["tips"] = service

    # Edited messages are not new input
    new_message = filters.UpdateType.MESSAGE
    app.add_handler(CommandHandler("start", cmd_start, filters=new_message))
    app.add_handler(CallbackQueryHandler(handle_callback))
    app.add_handler(MessageHandler(new_message & filters.TEXT & ~filters.COMMAND, handle_text))
    app.add_handler(MessageHandler(new_message & filters.COMMAND, handle_unknown_command))
    app.add_error_handler(on_error)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting TipTally bot (polling)...")
    app = build_app()
    app.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
