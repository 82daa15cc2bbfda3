"""
TipTally — Entry Point.

Single entry point: `python main.py` starts the Telegram bot, serving a
webhook when WEBHOOK_URL is set and long polling otherwise.
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from src.config import settings

if __name__ == "__main__":
    if settings.WEBHOOK_URL:
        from src.web.app import run
        run()
    else:
        from src.bot.telegram_bot import main
        main()
