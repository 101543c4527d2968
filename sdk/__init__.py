"""Telegram Bot API transport: async client, envelope models, and exceptions.

Usage::

    from sdk import TelegramClient, APIException

    client = TelegramClient.from_token("123:abc")
    me = await client.get_me()
"""

from sdk.client import TelegramClient
from sdk.exceptions import APIException, MalformedResponseError

__all__ = [
    "TelegramClient",
    "APIException",
    "MalformedResponseError",
]
