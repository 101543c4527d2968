"""TeleBot: the public entry point tying registry, router and engine together.

Usage::

    bot = TeleBot({"token": "123:abc", "polling": {"interval": 1, "wait_events": True}})

    @bot.on_text(re.compile(r"^/ping\\b"))
    async def ping(message: dict) -> None:
        await bot.api.send_message(message["chat"]["id"], "pong")

    await bot.run()
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, Mapping, Optional, Union

from core.flags import Flag
from core.logger import TelepollLogger
from core.options import BotOptions
from sdk.client import TelegramClient
from bot.polling import FetchErrorObserver, PollingEngine, UpdateSource
from bot.registry import EventRegistry, HandlerEntry, Processor, TextMatcher
from bot.router import UpdateRouter

logger = TelepollLogger.get_logger()


class TeleBot:
    """A long-polling Telegram bot.

    Args:
        options: Bot token, or a mapping with ``token``, ``polling`` and
            ``api_url`` keys, or a ready :class:`BotOptions`.
        client: Update source and API client.  Defaults to a
            :class:`TelegramClient` built from the token.
        on_fetch_error: Optional callback (sync or async) receiving every
            exception a fetch cycle swallowed.

    Raises:
        ConfigurationError: If the token is missing or malformed, or a
            polling option is out of range.
    """

    def __init__(
        self,
        options: Union[str, Mapping[str, Any], BotOptions],
        client: Optional[UpdateSource] = None,
        on_fetch_error: Optional[FetchErrorObserver] = None,
    ) -> None:
        self.options = BotOptions.parse(options)
        self.api = client if client is not None else TelegramClient.from_token(self.options.token, self.options.api_url)
        self.registry = EventRegistry()
        self.router = UpdateRouter(self.registry)
        self.engine = PollingEngine(self.api, self.router, self.options.polling, on_fetch_error=on_fetch_error)
        logger.info("Bot configured", extra={"bot_id": self.bot_id, "interval": self.options.polling.interval, "wait_events": self.options.polling.wait_events})

    @property
    def bot_id(self) -> str:
        return self.options.bot_id

    # ── handler registration ─────────────────────────────────────────────

    def on(self, event_name: str, processor: Optional[Processor] = None) -> Any:
        return self.registry.on(event_name, processor)

    def on_text(self, matcher: TextMatcher, processor: Optional[Processor] = None) -> Any:
        return self.registry.on_text(matcher, processor)

    def dispatch(self, event_names: Union[str, Iterable[str]], data: Any) -> asyncio.Future:
        return self.registry.dispatch(event_names, data)

    def dispatch_text(self, matcher: Union[TextMatcher, HandlerEntry], data: Any) -> asyncio.Future:
        return self.registry.dispatch_text(matcher, data)

    # ── lifecycle ────────────────────────────────────────────────────────

    def start(self) -> asyncio.Task:
        return self.engine.start()

    async def stop(self) -> list[dict]:
        return await self.engine.stop()

    async def join(self) -> None:
        await self.engine.join()

    async def run(self) -> None:
        """Start polling and wait until :meth:`stop` ends the loop."""
        self.start()
        await self.join()

    def has_flag(self, flag: Union[Flag, str]) -> bool:
        """Read a lifecycle flag by enum member, ``"can_fetch"`` or ``"canFetch"``."""
        return self.engine.flags.has(Flag(flag))
