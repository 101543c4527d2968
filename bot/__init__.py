"""Bot layer: event registry, update router, polling engine and the TeleBot facade.

This package may import from ``core/`` and ``sdk/`` only.
"""

from bot.polling import PollingEngine
from bot.registry import EventRegistry, EventStore, HandlerEntry
from bot.router import UpdateRouter, classify_message, classify_update
from bot.telebot import TeleBot

__all__ = [
    # Facade
    "TeleBot",
    # Engine
    "PollingEngine",
    # Routing
    "UpdateRouter",
    "classify_update",
    "classify_message",
    # Registry
    "EventRegistry",
    "EventStore",
    "HandlerEntry",
]
