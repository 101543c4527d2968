"""TelegramClient -- async service layer over the Telegram Bot API.

HTTP calls use the ``requests`` library; every blocking request runs inside
:func:`asyncio.to_thread` so the event loop driving the polling engine is
never blocked.  Replies are validated against the :class:`ApiResponse`
envelope before their ``result`` is handed back.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Union

import requests
from pydantic import ValidationError

from core.logger import TelepollLogger
from core.options import DEFAULT_API_URL
from sdk.exceptions import APIException, MalformedResponseError
from sdk.models import ApiResponse, Update

logger = TelepollLogger.get_logger()

ChatId = Union[int, str]


def _payload(**fields: Any) -> Dict[str, Any]:
    """Build a request payload, omitting optional fields left as ``None``."""
    return {key: value for key, value in fields.items() if value is not None}


class TelegramClient:
    """Client-side service layer for the Telegram Bot API.

    :meth:`call_method` is the single primitive every endpoint goes
    through; :meth:`get_updates` feeds the polling engine and the remaining
    methods are thin payload mappings over it.
    """

    _DEFAULT_TIMEOUT: int = 10
    # Extra seconds on top of a long-poll timeout before the HTTP layer gives up.
    _LONG_POLL_GRACE: int = 5

    def __init__(self, base_url: str, timeout: int = _DEFAULT_TIMEOUT, bot_token: str | None = None) -> None:
        """Create a new client bound to *base_url*.

        Args:
            base_url: Full Bot API base URL (e.g. ``https://api.telegram.org/bot<token>``).
            timeout: Default request timeout in seconds.
            bot_token: Raw bot token, used for file-download URLs.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._bot_token = bot_token

    @classmethod
    def from_token(cls, token: str, api_url: str = DEFAULT_API_URL, timeout: int = _DEFAULT_TIMEOUT) -> "TelegramClient":
        return cls(f"{api_url.rstrip('/')}/bot{token}", timeout=timeout, bot_token=token)

    # ------------------------------------------------------------------
    #  Internal helpers
    # ------------------------------------------------------------------

    def _post(self, endpoint: str, payload: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Send a POST request and return the parsed JSON body.

        Raises:
            APIException: If the response status code is not 2xx.
            requests.RequestException: On transport-level failures.
        """
        url = f"{self._base_url}/{endpoint.lstrip('/')}"
        response = requests.post(url, json=payload, timeout=timeout or self._timeout)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not response.ok:
            raise APIException(response.status_code, body)
        return body

    async def call_method(self, method: str, payload: Optional[Dict[str, Any]] = None, *, timeout: Optional[float] = None) -> Any:
        """Invoke Bot API *method* and return its ``result``.

        Raises:
            APIException: Non-2xx reply or an envelope with ``ok`` false.
            MalformedResponseError: The body is not a Bot API envelope.
            requests.RequestException: On transport-level failures.
        """
        body = await asyncio.to_thread(self._post, method, payload, timeout)
        try:
            envelope = ApiResponse.model_validate(body)
        except ValidationError as exc:
            logger.warning("Malformed API response", extra={"api_endpoint": method, "error": str(exc)})
            raise MalformedResponseError(200, {"description": f"Malformed response from {method}"}) from exc
        if not envelope.ok:
            logger.warning("API call rejected", extra={"api_endpoint": method, "api_response": body})
            raise APIException(envelope.error_code or 200, body)
        return envelope.result

    # ------------------------------------------------------------------
    #  Updates
    # ------------------------------------------------------------------

    async def get_updates(self, offset: Optional[int] = None, limit: Optional[int] = 100, timeout: Optional[int] = 0, allowed_updates: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """Fetch a batch of updates starting at *offset*.

        *timeout* is the server-side long-poll window; the HTTP timeout is
        stretched past it so a quiet long poll is not mistaken for a hang.
        Each returned update is checked for an integer ``update_id``.
        """
        payload = _payload(offset=offset, limit=limit, timeout=timeout, allowed_updates=allowed_updates)
        http_timeout = (timeout or 0) + self._LONG_POLL_GRACE + self._timeout
        result = await self.call_method("getUpdates", payload, timeout=http_timeout)
        if not isinstance(result, list):
            raise MalformedResponseError(200, {"description": "getUpdates result is not a list"})
        try:
            for item in result:
                Update.model_validate(item)
        except ValidationError as exc:
            raise MalformedResponseError(200, {"description": f"Malformed update: {exc}"}) from exc
        return result

    # ------------------------------------------------------------------
    #  Outbound methods
    # ------------------------------------------------------------------

    async def get_me(self) -> Dict[str, Any]:
        """Return basic information about the bot as a User object."""
        return await self.call_method("getMe")

    async def send_message(self, chat_id: ChatId, text: str, parse_mode: Optional[str] = None, disable_web_page_preview: Optional[bool] = None, disable_notification: Optional[bool] = None, reply_to_message_id: Optional[int] = None, reply_markup: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send a text message. On success, the sent Message is returned."""
        logger.debug("Sending message", extra={"chat_id": chat_id, "api_endpoint": "sendMessage", "text_preview": text[:80]})
        return await self.call_method("sendMessage", _payload(
            chat_id=chat_id,
            text=text,
            parse_mode=parse_mode,
            disable_web_page_preview=disable_web_page_preview,
            disable_notification=disable_notification,
            reply_to_message_id=reply_to_message_id,
            reply_markup=reply_markup,
        ))

    async def forward_message(self, chat_id: ChatId, from_chat_id: ChatId, message_id: int, disable_notification: Optional[bool] = None) -> Dict[str, Any]:
        """Forward a message of any kind. On success, the sent Message is returned."""
        return await self.call_method("forwardMessage", _payload(
            chat_id=chat_id,
            from_chat_id=from_chat_id,
            message_id=message_id,
            disable_notification=disable_notification,
        ))

    async def send_location(self, chat_id: ChatId, latitude: float, longitude: float, live_period: Optional[int] = None, disable_notification: Optional[bool] = None, reply_to_message_id: Optional[int] = None, reply_markup: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send a point on the map."""
        return await self.call_method("sendLocation", _payload(
            chat_id=chat_id,
            latitude=latitude,
            longitude=longitude,
            live_period=live_period,
            disable_notification=disable_notification,
            reply_to_message_id=reply_to_message_id,
            reply_markup=reply_markup,
        ))

    async def send_venue(self, chat_id: ChatId, latitude: float, longitude: float, title: str, address: str, foursquare_id: Optional[str] = None, disable_notification: Optional[bool] = None, reply_to_message_id: Optional[int] = None, reply_markup: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send information about a venue."""
        return await self.call_method("sendVenue", _payload(
            chat_id=chat_id,
            latitude=latitude,
            longitude=longitude,
            title=title,
            address=address,
            foursquare_id=foursquare_id,
            disable_notification=disable_notification,
            reply_to_message_id=reply_to_message_id,
            reply_markup=reply_markup,
        ))

    async def send_contact(self, chat_id: ChatId, phone_number: str, first_name: str, last_name: Optional[str] = None, disable_notification: Optional[bool] = None, reply_to_message_id: Optional[int] = None, reply_markup: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send a phone contact."""
        return await self.call_method("sendContact", _payload(
            chat_id=chat_id,
            phone_number=phone_number,
            first_name=first_name,
            last_name=last_name,
            disable_notification=disable_notification,
            reply_to_message_id=reply_to_message_id,
            reply_markup=reply_markup,
        ))

    async def send_chat_action(self, chat_id: ChatId, action: str) -> bool:
        """Tell the user something is happening on the bot's side (``typing``, ``upload_photo``, ...)."""
        return await self.call_method("sendChatAction", {"chat_id": chat_id, "action": action})

    async def get_user_profile_photos(self, user_id: int, offset: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, Any]:
        """Return a UserProfilePhotos object for *user_id*."""
        return await self.call_method("getUserProfilePhotos", _payload(user_id=user_id, offset=offset, limit=limit))

    async def get_file(self, file_id: str) -> Dict[str, Any]:
        """Return a File object whose ``file_path`` can be downloaded via :meth:`file_url`."""
        return await self.call_method("getFile", {"file_id": file_id})

    def file_url(self, file_path: str) -> str:
        """Download URL on the Telegram file CDN for a ``file_path`` from :meth:`get_file`."""
        api_root = self._base_url.rsplit("/bot", 1)[0]
        return f"{api_root}/file/bot{self._bot_token}/{file_path}"
