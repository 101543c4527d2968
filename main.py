"""Run a long-polling bot configured from the environment.

    BOT_TOKEN=123:abc python main.py

Registers a few example handlers, then polls until SIGINT/SIGTERM.
"""

import asyncio
import contextlib
import re
import signal

from config import build_options
from core.logger import TelepollLogger
from bot.telebot import TeleBot

logger = TelepollLogger.get_logger()


def register_handlers(bot: TeleBot) -> None:
    """Attach the example handlers to *bot*."""

    @bot.on_text(re.compile(r"^/ping(?:@\w+)?\b"))
    async def handle_ping(message: dict) -> None:
        chat_id = message["chat"]["id"]
        logger.info("Ping received", extra={"chat_id": chat_id, "command": "/ping"})
        await bot.api.send_message(chat_id, "pong")

    @bot.on("text")
    def log_text(message: dict) -> None:
        logger.info(
            "Text message",
            extra={"chat_id": message.get("chat", {}).get("id"), "text_preview": (message.get("text") or "")[:80]},
        )

    @bot.on("photo")
    def log_photo(message: dict) -> None:
        logger.info("Photo message", extra={"chat_id": message.get("chat", {}).get("id"), "sizes": len(message["photo"])})


def _log_fetch_error(exc: Exception) -> None:
    logger.debug("Fetch error observed", extra={"error": repr(exc)})


async def main() -> None:
    """Start polling and stop cleanly on SIGINT/SIGTERM.

    Raises:
        ConfigurationError: If ``BOT_TOKEN`` is missing or malformed.
    """
    bot = TeleBot(build_options(), on_fetch_error=_log_fetch_error)
    register_handlers(bot)

    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unavailable on Windows event loops.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_requested.set)

    logger.info("Bot is running. Polling for updates...", extra={"bot_id": bot.bot_id})
    polling = bot.start()
    try:
        await stop_requested.wait()
    finally:
        try:
            await bot.stop()
        except Exception:
            logger.exception("Final getUpdates flush failed")
        await polling
        logger.info("Bot stopped", extra={"offset": bot.engine.offset})


if __name__ == "__main__":
    try:
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(main())
    finally:
        TelepollLogger().cleanup()
