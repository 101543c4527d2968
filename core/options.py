"""Construction-time options for a bot instance.

Options arrive either as a bare token string or as a mapping::

    {"token": "123:abc", "polling": {"interval": 1.5, "wait_events": True}}

and are validated with pydantic.  Any problem surfaces as a single
:class:`ConfigurationError` raised before the bot is built.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_API_URL = "https://api.telegram.org"


class ConfigurationError(ValueError):
    """Raised when bot options are missing or invalid."""


class PollingOptions(BaseModel):
    """Polling behaviour.

    ``interval`` is in seconds; ``0`` selects immediate mode (fetch again as
    soon as the previous cycle completes).  ``timeout`` is the server-side
    long-poll timeout passed to ``getUpdates``.
    """

    interval: float = Field(0, ge=0)
    wait_events: bool = Field(False, alias="waitEvents")
    limit: int = Field(100, ge=1, le=100)
    timeout: int = Field(0, ge=0)
    retry_delay: float = Field(0, ge=0)

    model_config = {"populate_by_name": True, "frozen": True}


class BotOptions(BaseModel):
    """Validated options for :class:`bot.telebot.TeleBot`."""

    token: str
    polling: PollingOptions = Field(default_factory=PollingOptions)
    api_url: str = DEFAULT_API_URL

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("token")
    @classmethod
    def _check_token(cls, value: str) -> str:
        value = value.strip()
        if not value or ":" not in value:
            raise ValueError("Invalid bot token.")
        return value

    @property
    def bot_id(self) -> str:
        """Numeric bot id, the part of the token before the colon."""
        return self.token.split(":", 1)[0]

    @classmethod
    def parse(cls, options: Union[str, Mapping[str, Any], "BotOptions", None]) -> "BotOptions":
        """Build options from a token string, a mapping, or an existing instance.

        Raises:
            ConfigurationError: If the token is missing/invalid or a polling
                value is out of range.
        """
        if isinstance(options, BotOptions):
            return options
        if isinstance(options, str):
            options = {"token": options}
        if not options:
            raise ConfigurationError("Invalid bot token.")
        try:
            return cls.model_validate(dict(options))
        except ValidationError as exc:
            raise ConfigurationError(_describe(exc)) from exc


def _describe(exc: ValidationError) -> str:
    problems: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message: Optional[str] = error.get("msg")
        problems.append(f"{location}: {message}" if location else str(message))
    return "Invalid bot options: " + "; ".join(problems)
