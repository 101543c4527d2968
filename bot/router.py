"""Update router: classifies an inbound update and dispatches it.

An update carries exactly one variant body (``message``, ``callback_query``,
...).  The first kind found in :data:`UPDATE_KINDS` wins.  Message-like
kinds are then classified by content type: the first entry of
:data:`MESSAGE_TYPES` present on the message wins, and text messages are
additionally matched against every registered text pattern.  All other
kinds are dispatched under their own name.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Optional

from core.logger import TelepollLogger
from bot.registry import EventRegistry, TextMatcher

logger = TelepollLogger.get_logger()

UPDATE_KINDS: tuple[str, ...] = (
    "message",
    "edited_message",
    "channel_post",
    "edited_channel_post",
    "callback_query",
    "inline_query",
    "chosen_inline_result",
    "shipping_query",
    "pre_checkout_query",
    "poll",
    "poll_answer",
    "my_chat_member",
    "chat_member",
    "chat_join_request",
)

# Kinds whose payload is a Message and gets classified by content type.
MESSAGE_KINDS: frozenset[str] = frozenset({"message", "channel_post"})

# Priority order matters: Telegram sends ``document`` alongside ``animation``
# and ``location`` alongside ``venue``.
MESSAGE_TYPES: tuple[str, ...] = (
    "text",
    "animation",
    "photo",
    "document",
    "audio",
    "video",
    "video_note",
    "voice",
    "sticker",
    "contact",
    "dice",
    "venue",
    "location",
)


def match_text(matcher: TextMatcher, text: str) -> bool:
    """Search *text* for *matcher*; a string matcher is treated as a regex."""
    if isinstance(matcher, re.Pattern):
        return matcher.search(text) is not None
    return re.search(matcher, text) is not None


def classify_update(update: dict[str, Any]) -> Optional[str]:
    """Return the first known update kind present on *update*."""
    for kind in UPDATE_KINDS:
        if kind in update:
            return kind
    return None


def classify_message(message: Any) -> Optional[str]:
    """Return the first known content type present on *message*."""
    if not isinstance(message, dict):
        return None
    for message_type in MESSAGE_TYPES:
        if message_type in message:
            return message_type
    return None


class UpdateRouter:
    """Routes updates into an :class:`EventRegistry`."""

    def __init__(self, registry: EventRegistry) -> None:
        self._registry = registry

    def route(self, update: dict[str, Any]) -> asyncio.Future:
        """Dispatch *update* and return one future covering every handler it reached."""
        update_id = update.get("update_id")
        kind = classify_update(update)
        if kind is None:
            logger.debug("Update has no known kind, skipping", extra={"update_id": update_id})
            return asyncio.gather()

        payload = update[kind]
        if kind in MESSAGE_KINDS:
            completions = self._route_message(payload, update_id)
        else:
            logger.debug("Dispatching update", extra={"update_id": update_id, "event": kind})
            completions = [self._registry.dispatch(kind, payload)]
        return asyncio.gather(*completions)

    def _route_message(self, message: Any, update_id: Optional[int]) -> list[asyncio.Future]:
        message_type = classify_message(message)
        if message_type is None:
            logger.debug("Message has no known type, skipping", extra={"update_id": update_id})
            return []

        completions: list[asyncio.Future] = []
        if message_type == "text":
            text = message.get("text") or ""
            for entry in self._registry.text_entries():
                if match_text(entry.key, text):
                    completions.append(self._registry.dispatch_text(entry, message))
        logger.debug("Dispatching message", extra={"update_id": update_id, "event": message_type, "text_matches": len(completions)})
        completions.append(self._registry.dispatch(message_type, message))
        return completions
