"""Core building blocks: logging, lifecycle flags, construction options.

This package is framework-agnostic. It must NEVER import from ``bot/`` or ``sdk/``.
"""

from core.flags import Flag, Flags
from core.logger import TelepollLogger
from core.options import BotOptions, ConfigurationError, PollingOptions

__all__ = [
    "Flag",
    "Flags",
    "TelepollLogger",
    "BotOptions",
    "ConfigurationError",
    "PollingOptions",
]
