"""Telegram command loop.

Runs a python-telegram-bot ``Application`` that answers two commands:

* ``/start`` subscribes the chat to change notifications;
* ``/status`` reports how many offers have a baseline and the active settings.

The application polls on its own event loop inside the command thread, so
it is stopped through ``CommandPoller.stop`` rather than OS signals.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from telegram import Update
from telegram.ext import Application, ApplicationBuilder, CommandHandler, ContextTypes

from . import db
from .config import (POLL_INTERVAL_SECONDS, SIZE_TRACKING_MODE,
                     TELEGRAM_API_BASE, TELEGRAM_BOT_TOKEN)

logger = logging.getLogger(__name__)

GREETING = "👋 Done! Tracking Ozon size changes."


def status_text() -> str:
    return (
        f"📦 Products in DB: {db.count_baselines()}\n"
        f"Mode: {SIZE_TRACKING_MODE.value}\n"
        f"Interval: {POLL_INTERVAL_SECONDS}s"
    )


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    chat = update.effective_chat
    if chat is None:
        return
    if db.register_recipient(chat.id):
        logger.info("Chat %s subscribed", chat.id)
    await update.effective_message.reply_text(GREETING)


async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(status_text())


async def _on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Telegram handler failed: %s", context.error, exc_info=context.error)


def build_application(
    token: Optional[str] = None,
    *,
    api_base: str = TELEGRAM_API_BASE,
) -> Application:
    """Application with the /start and /status handlers registered."""
    application = (
        ApplicationBuilder()
        .token(token if token is not None else TELEGRAM_BOT_TOKEN)
        .base_url(f"{api_base.rstrip('/')}/bot")
        .build()
    )
    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("status", status_command))
    application.add_error_handler(_on_error)
    return application


class CommandPoller:
    """Owns the Application and the event loop it polls on."""

    def __init__(self, application: Optional[Application] = None) -> None:
        self.application = application if application is not None else build_application()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def run(self) -> None:
        """Poll until stop() is called. Meant to be the target of a thread."""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        logger.info("Telegram command loop started")
        try:
            self.application.run_polling(
                allowed_updates=[Update.MESSAGE],
                stop_signals=None,
                close_loop=True,
            )
        finally:
            logger.info("Telegram command loop stopped")

    def stop(self) -> None:
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self.application.stop_running)


__all__ = [
    "GREETING",
    "status_text",
    "start_command",
    "status_command",
    "build_application",
    "CommandPoller",
]
