"""Exception hierarchy for the Telegram Bot API transport."""

from typing import Any, Dict, Optional


class APIException(Exception):
    """Raised when the Bot API rejects a call.

    Covers both non-2xx HTTP replies and 2xx replies whose envelope says
    ``"ok": false``.

    Attributes:
        status_code: HTTP status code, or the API ``error_code`` when the
            HTTP layer succeeded.
        response_body: Raw response body as a dict, when available.
    """

    def __init__(self, status_code: int, response_body: Optional[Dict[str, Any]] = None) -> None:
        self.status_code = status_code
        self.response_body = response_body or {}
        self.description = self.response_body.get("description", "Unknown error")
        super().__init__(f"API error {status_code}: {self.description}")


class MalformedResponseError(APIException):
    """The reply could not be read as a Bot API envelope."""
