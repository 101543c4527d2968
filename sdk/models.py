"""Pydantic models for the Bot API response envelope.

Payload shapes (messages, photos, ...) are handed to handlers as plain
dicts; only the parts the transport relies on are modelled here.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class ResponseParameters(BaseModel):
    """Contains information about why a request was unsuccessful."""

    migrate_to_chat_id: Optional[int] = None
    retry_after: Optional[int] = None

    model_config = {"populate_by_name": True}


class ApiResponse(BaseModel):
    """Envelope wrapping every Bot API reply.

    ``result`` is present when ``ok`` is true; ``description`` and
    ``error_code`` explain a failure otherwise.
    """

    ok: bool
    result: Any = None
    description: Optional[str] = None
    error_code: Optional[int] = None
    parameters: Optional[ResponseParameters] = None

    model_config = {"populate_by_name": True}


class Update(BaseModel):
    """An incoming update.  Only ``update_id`` is checked; the variant body
    (``message``, ``callback_query``, ...) is kept as extra data."""

    update_id: int

    model_config = {"populate_by_name": True, "extra": "allow"}
