"""Tests for core building blocks: options, flags, and the JSON log formatter."""

import json
import logging
import sys
import os
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.flags import Flag, Flags
from core.logger import TelepollLogger, _JsonFormatter
from core.options import BotOptions, ConfigurationError, PollingOptions


# ── BotOptions ───────────────────────────────────────────────────────────────


class TestBotOptions:
    """Validate construction-time option parsing."""

    def test_token_string_shorthand(self) -> None:
        options = BotOptions.parse("123456:ABC-DEF")
        assert options.token == "123456:ABC-DEF"
        assert options.bot_id == "123456"
        assert options.polling == PollingOptions()

    def test_defaults(self) -> None:
        polling = BotOptions.parse("1:a").polling
        assert polling.interval == 0
        assert polling.wait_events is False
        assert polling.limit == 100
        assert polling.timeout == 0

    def test_mapping_with_alias(self) -> None:
        options = BotOptions.parse({"token": "1:a", "polling": {"interval": 2, "waitEvents": True}})
        assert options.polling.interval == 2
        assert options.polling.wait_events is True

    @pytest.mark.parametrize("token", ["", "no-separator", "   "])
    def test_invalid_token(self, token: str) -> None:
        with pytest.raises(ConfigurationError):
            BotOptions.parse(token)

    def test_missing_token(self) -> None:
        with pytest.raises(ConfigurationError):
            BotOptions.parse({"polling": {"interval": 1}})

    def test_none_options(self) -> None:
        with pytest.raises(ConfigurationError):
            BotOptions.parse(None)

    def test_negative_interval(self) -> None:
        with pytest.raises(ConfigurationError, match="interval"):
            BotOptions.parse({"token": "1:a", "polling": {"interval": -1}})

    def test_limit_out_of_range(self) -> None:
        with pytest.raises(ConfigurationError):
            BotOptions.parse({"token": "1:a", "polling": {"limit": 500}})

    def test_configuration_error_is_value_error(self) -> None:
        assert issubclass(ConfigurationError, ValueError)


# ── Flags ────────────────────────────────────────────────────────────────────


class TestFlags:
    """Validate flag transitions."""

    def test_initial_state(self) -> None:
        flags = Flags()
        assert not flags.has(Flag.IS_RUNNING)
        assert flags.has(Flag.CAN_FETCH)
        assert not flags.has(Flag.WAIT_EVENTS)

    def test_set_and_unset(self) -> None:
        flags = Flags()
        flags.set(Flag.IS_RUNNING)
        flags.unset(Flag.CAN_FETCH)
        assert flags.snapshot() == {"is_running": True, "can_fetch": False, "wait_events": False}

    def test_accepts_flag_names(self) -> None:
        flags = Flags()
        flags.set("wait_events")
        assert flags.has("wait_events")

    def test_accepts_camel_case_names(self) -> None:
        flags = Flags()
        flags.set("isRunning")
        flags.unset("canFetch")
        assert flags.has("isRunning")
        assert not flags.has("canFetch")
        assert not flags.has("waitEvents")
        assert Flag("waitEvents") is Flag.WAIT_EVENTS

    def test_unknown_flag(self) -> None:
        with pytest.raises(ValueError):
            Flags().has("nope")


# ── JSON formatter ───────────────────────────────────────────────────────────


class TestJsonFormatter:
    """Validate structured log output."""

    def _record(self, **kwargs) -> logging.LogRecord:
        record = logging.LogRecord("telepoll", logging.INFO, __file__, 1, "Offset %s", (7,), kwargs.pop("exc_info", None))
        for key, value in kwargs.items():
            setattr(record, key, value)
        return record

    def test_extra_fields_merged(self) -> None:
        payload = json.loads(_JsonFormatter().format(self._record(offset=7, count=3)))
        assert payload["message"] == "Offset 7"
        assert payload["level"] == "INFO"
        assert payload["offset"] == 7
        assert payload["count"] == 3

    def test_exception_included(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            exc_info = sys.exc_info()
        payload = json.loads(_JsonFormatter().format(self._record(exc_info=exc_info)))
        assert "RuntimeError: boom" in payload["exception"]


# ── logger lifecycle ─────────────────────────────────────────────────────────


class TestLoggerCleanup:
    """Validate handler teardown on shutdown."""

    def test_cleanup_flushes_and_detaches_handlers(self) -> None:
        instance = object.__new__(TelepollLogger)
        instance._logger = logging.getLogger("telepoll.test_cleanup")
        handler = MagicMock(spec=logging.Handler)
        handler.level = logging.NOTSET
        instance._logger.addHandler(handler)

        instance.cleanup()

        handler.flush.assert_called_once()
        handler.close.assert_called_once()
        assert instance._logger.handlers == []
