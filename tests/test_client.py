"""Tests for TelegramClient and the SDK exceptions."""

import sys
import os
from unittest.mock import patch, MagicMock

import pytest
import requests as req_lib

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sdk.client import TelegramClient
from sdk.exceptions import APIException, MalformedResponseError


def _response(body, ok: bool = True, status_code: int = 200) -> MagicMock:
    mock_resp = MagicMock()
    mock_resp.ok = ok
    mock_resp.status_code = status_code
    mock_resp.json.return_value = body
    return mock_resp


def _sent_payload(mock_post: MagicMock) -> dict:
    return mock_post.call_args.kwargs["json"]


# ── APIException ─────────────────────────────────────────────────────────────


class TestAPIException:
    """Validate the exception classes."""

    def test_attributes(self) -> None:
        exc = APIException(403, {"description": "Forbidden"})
        assert exc.status_code == 403
        assert exc.response_body == {"description": "Forbidden"}
        assert exc.description == "Forbidden"
        assert "403" in str(exc)
        assert "Forbidden" in str(exc)

    def test_default_body(self) -> None:
        exc = APIException(500)
        assert exc.response_body == {}
        assert "Unknown error" in str(exc)

    def test_malformed_is_api_exception(self) -> None:
        assert issubclass(MalformedResponseError, APIException)


# ── Construction ─────────────────────────────────────────────────────────────


class TestClientInit:
    """Validate client initialisation."""

    def test_base_url_strip(self) -> None:
        c = TelegramClient("https://api.example.com/bot123/")
        assert c._base_url == "https://api.example.com/bot123"

    def test_default_timeout(self) -> None:
        c = TelegramClient("https://api.example.com")
        assert c._timeout == 10

    def test_from_token(self) -> None:
        c = TelegramClient.from_token("123:abc", "https://api.example.com/")
        assert c._base_url == "https://api.example.com/bot123:abc"
        assert c._bot_token == "123:abc"

    def test_file_url(self) -> None:
        c = TelegramClient.from_token("123:abc", "https://api.example.com")
        assert c.file_url("photos/file_1.jpg") == "https://api.example.com/file/bot123:abc/photos/file_1.jpg"


# ── _post helper ─────────────────────────────────────────────────────────────


class TestPostHelper:
    """Validate the synchronous _post method."""

    @patch("sdk.client.requests.post")
    def test_success(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": {}})

        c = TelegramClient("https://api.example.com")
        assert c._post("getMe") == {"ok": True, "result": {}}
        assert mock_post.call_args.args[0] == "https://api.example.com/getMe"

    @patch("sdk.client.requests.post")
    def test_api_error_raises(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": False, "description": "Unauthorized"}, ok=False, status_code=401)

        c = TelegramClient("https://api.example.com")
        with pytest.raises(APIException) as exc_info:
            c._post("getMe")
        assert exc_info.value.status_code == 401

    @patch("sdk.client.requests.post")
    def test_json_decode_failure(self, mock_post: MagicMock) -> None:
        """A 2xx reply without a JSON body yields an empty dict."""
        mock_resp = _response(None)
        mock_resp.json.side_effect = ValueError("No JSON")
        mock_post.return_value = mock_resp

        c = TelegramClient("https://api.example.com")
        assert c._post("getMe") == {}

    @patch("sdk.client.requests.post")
    def test_network_error_propagates(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = req_lib.ConnectionError("offline")

        c = TelegramClient("https://api.example.com")
        with pytest.raises(req_lib.ConnectionError):
            c._post("getMe")


# ── call_method ──────────────────────────────────────────────────────────────


class TestCallMethod:
    """Validate envelope handling in call_method."""

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_returns_result(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": {"id": 1, "is_bot": True, "first_name": "Bot"}})

        c = TelegramClient("https://api.example.com")
        assert await c.get_me() == {"id": 1, "is_bot": True, "first_name": "Bot"}

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_not_ok_raises(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": False, "error_code": 400, "description": "Bad Request: chat not found"})

        c = TelegramClient("https://api.example.com")
        with pytest.raises(APIException) as exc_info:
            await c.call_method("sendMessage", {"chat_id": 1, "text": "hi"})
        assert exc_info.value.status_code == 400
        assert "chat not found" in str(exc_info.value)

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_missing_envelope_is_malformed(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"unexpected": True})

        c = TelegramClient("https://api.example.com")
        with pytest.raises(MalformedResponseError):
            await c.call_method("getMe")


# ── getUpdates ───────────────────────────────────────────────────────────────


class TestGetUpdates:
    """Validate the update fetch used by the polling engine."""

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_payload_and_result(self, mock_post: MagicMock) -> None:
        updates = [{"update_id": 7, "message": {"text": "hi"}}]
        mock_post.return_value = _response({"ok": True, "result": updates})

        c = TelegramClient("https://api.example.com")
        result = await c.get_updates(offset=7, limit=100, timeout=0)

        assert result == updates
        assert _sent_payload(mock_post) == {"offset": 7, "limit": 100, "timeout": 0}

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_http_timeout_covers_long_poll(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": []})

        c = TelegramClient("https://api.example.com")
        await c.get_updates(offset=0, timeout=30)

        assert mock_post.call_args.kwargs["timeout"] > 30

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_update_without_id_is_malformed(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": [{"message": {}}]})

        c = TelegramClient("https://api.example.com")
        with pytest.raises(MalformedResponseError):
            await c.get_updates()

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_non_list_result_is_malformed(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": {"update_id": 1}})

        c = TelegramClient("https://api.example.com")
        with pytest.raises(MalformedResponseError):
            await c.get_updates()


# ── Outbound methods ─────────────────────────────────────────────────────────


class TestOutboundMethods:
    """Spot-check payload mapping of outbound methods."""

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_send_message_omits_none(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": {"message_id": 1}})

        c = TelegramClient("https://api.example.com")
        result = await c.send_message(chat_id=42, text="hello", parse_mode="HTML")

        assert result == {"message_id": 1}
        assert _sent_payload(mock_post) == {"chat_id": 42, "text": "hello", "parse_mode": "HTML"}
        assert mock_post.call_args.args[0].endswith("/sendMessage")

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_forward_message(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": {"message_id": 2}})

        c = TelegramClient("https://api.example.com")
        await c.forward_message(chat_id=1, from_chat_id=2, message_id=3)

        assert _sent_payload(mock_post) == {"chat_id": 1, "from_chat_id": 2, "message_id": 3}

    @pytest.mark.asyncio
    @patch("sdk.client.requests.post")
    async def test_send_chat_action(self, mock_post: MagicMock) -> None:
        mock_post.return_value = _response({"ok": True, "result": True})

        c = TelegramClient("https://api.example.com")
        assert await c.send_chat_action(5, "typing") is True
        assert mock_post.call_args.args[0].endswith("/sendChatAction")

    def test_outbound_methods_exist(self) -> None:
        c = TelegramClient("https://api.example.com")
        for name in (
            "get_me", "send_message", "forward_message", "send_location",
            "send_venue", "send_contact", "send_chat_action",
            "get_user_profile_photos", "get_file",
        ):
            assert hasattr(c, name), f"Missing method: {name}"
