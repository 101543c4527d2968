"""Application configuration: environment variables and derived constants.

Loads ``BOT_TOKEN``, the ``POLLING_*`` settings and ``TELEGRAM_API_URL``
from the environment via ``python-dotenv``.  All values are resolved at
import time so other modules can ``from config import ...`` without
repeated lookups; :func:`build_options` turns them into the mapping
:class:`bot.telebot.TeleBot` accepts.
"""

# ── stdlib ───────────────────────────────────────────────────────────────────
import os
from typing import Any

# ── third-party ──────────────────────────────────────────────────────────────
from dotenv import load_dotenv

# ── core ─────────────────────────────────────────────────────────────────────
from core.logger import TelepollLogger
from core.options import DEFAULT_API_URL

# ── Environment bootstrap ────────────────────────────────────────────────────
load_dotenv()

logger = TelepollLogger.get_logger()


# ── Helper functions (private) ───────────────────────────────────────────────


def _parse_float(name: str, default: float) -> float:
    """Read a non-negative float; invalid or negative values fall back to *default*."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric setting", extra={"setting": name, "value": raw})
        return default
    if value < 0:
        logger.warning("Ignoring negative setting", extra={"setting": name, "value": raw})
        return default
    return value


def _parse_int(name: str, default: int) -> int:
    return int(_parse_float(name, default))


def _parse_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ── Public constants ─────────────────────────────────────────────────────────

BOT_TOKEN: str | None = os.environ.get("BOT_TOKEN")
TELEGRAM_API_URL: str = os.environ.get("TELEGRAM_API_URL") or DEFAULT_API_URL
POLLING_INTERVAL: float = _parse_float("POLLING_INTERVAL", 0)
POLLING_WAIT_EVENTS: bool = _parse_bool("POLLING_WAIT_EVENTS", False)
POLLING_LIMIT: int = _parse_int("POLLING_LIMIT", 100)
POLLING_TIMEOUT: int = _parse_int("POLLING_TIMEOUT", 30)
POLLING_RETRY_DELAY: float = _parse_float("POLLING_RETRY_DELAY", 5)


def build_options() -> dict[str, Any]:
    """Return the bot options mapping assembled from the environment."""
    return {
        "token": BOT_TOKEN or "",
        "api_url": TELEGRAM_API_URL,
        "polling": {
            "interval": POLLING_INTERVAL,
            "wait_events": POLLING_WAIT_EVENTS,
            "limit": POLLING_LIMIT,
            "timeout": POLLING_TIMEOUT,
            "retry_delay": POLLING_RETRY_DELAY,
        },
    }


# ── Startup diagnostics ─────────────────────────────────────────────────────

if BOT_TOKEN:
    logger.info("Config loaded, BOT_TOKEN is set")
else:
    logger.warning("Config loaded, BOT_TOKEN is NOT set")

logger.info(
    "Polling settings resolved",
    extra={
        "interval": POLLING_INTERVAL,
        "wait_events": POLLING_WAIT_EVENTS,
        "limit": POLLING_LIMIT,
        "timeout": POLLING_TIMEOUT,
        "retry_delay": POLLING_RETRY_DELAY,
    },
)
