"""Lifecycle flags gating the polling loop.

One :class:`Flags` instance belongs to one polling engine.  Only the engine
mutates it; everything else reads through :meth:`Flags.has`.
"""

from __future__ import annotations

import dataclasses
import enum
import re
from typing import Optional


class Flag(str, enum.Enum):
    """Names of the booleans the polling engine consults."""

    IS_RUNNING = "is_running"    # loop keeps iterating
    CAN_FETCH = "can_fetch"      # no fetch in flight (interval mode)
    WAIT_EVENTS = "wait_events"  # cycle awaits handler completion

    @classmethod
    def _missing_(cls, value: object) -> Optional[Flag]:
        # Also accept the camelCase spelling (``isRunning``).
        if not isinstance(value, str):
            return None
        snake = re.sub(r"(?<!^)(?=[A-Z])", "_", value).lower()
        for member in cls:
            if member.value == snake:
                return member
        return None


@dataclasses.dataclass(slots=True)
class Flags:
    is_running: bool = False
    can_fetch: bool = True
    wait_events: bool = False

    def has(self, flag: Flag) -> bool:
        return getattr(self, Flag(flag).value)

    def set(self, flag: Flag) -> None:
        setattr(self, Flag(flag).value, True)

    def unset(self, flag: Flag) -> None:
        setattr(self, Flag(flag).value, False)

    def snapshot(self) -> dict[str, bool]:
        """Return the current values keyed by flag name (used for logging)."""
        return dataclasses.asdict(self)
