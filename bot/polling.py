"""Polling engine: fetches update batches and feeds them to the router.

Two loop styles, chosen by ``PollingOptions.interval``:

- **Immediate** (``interval == 0``): an explicit ``while`` loop awaiting one
  fetch cycle after another.  Iterations never overlap.
- **Interval** (``interval > 0``): a timer task that starts a fetch cycle
  every tick, skipping ticks while the previous fetch is still in flight
  (the ``can_fetch`` flag).

Fetch failures are logged and swallowed; the loop only ends through
:meth:`PollingEngine.stop`.  Handler completions are awaited per cycle when
``wait_events`` is set, otherwise they run detached and their failures are
logged.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Optional, Protocol

from core.flags import Flag, Flags
from core.logger import TelepollLogger
from core.options import PollingOptions
from bot.router import UpdateRouter

logger = TelepollLogger.get_logger()

FetchErrorObserver = Callable[[Exception], Any]


class UpdateSource(Protocol):
    """Anything that can fetch a batch of updates (normally :class:`sdk.TelegramClient`)."""

    async def get_updates(self, offset: Optional[int] = ..., limit: Optional[int] = ..., timeout: Optional[int] = ...) -> list[dict]: ...  # noqa: E704


class PollingEngine:
    """Owns the offset cursor and the lifecycle flags of one bot."""

    def __init__(
        self,
        source: UpdateSource,
        router: UpdateRouter,
        options: Optional[PollingOptions] = None,
        on_fetch_error: Optional[FetchErrorObserver] = None,
    ) -> None:
        options = options or PollingOptions()
        self._source = source
        self._router = router
        self._on_fetch_error = on_fetch_error

        self.interval = options.interval
        self.limit = options.limit
        self.timeout = options.timeout
        self.retry_delay = options.retry_delay

        self._offset = 0
        self.flags = Flags(wait_events=options.wait_events)

        self._lifecycle: Optional[asyncio.Task] = None
        # Strong references to detached work so the event loop cannot drop it.
        self._pending: set[asyncio.Future] = set()

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def running(self) -> bool:
        return self.flags.has(Flag.IS_RUNNING)

    # ── lifecycle ────────────────────────────────────────────────────────

    def start(self) -> asyncio.Task:
        """Start polling and return the lifecycle task.

        Must be called from inside a running event loop.  Calling it again
        while the loop is alive returns the existing task.  A loop that was
        stopped but has not reached its next flag check yet is resumed
        rather than replaced.
        """
        if self._lifecycle is not None and not self._lifecycle.done():
            if self.flags.has(Flag.IS_RUNNING):
                logger.warning("Polling already running", extra={"offset": self._offset})
            else:
                self.flags.set(Flag.IS_RUNNING)
                logger.info("Polling resumed", extra={"offset": self._offset})
            return self._lifecycle

        self.flags.set(Flag.IS_RUNNING)
        self.flags.set(Flag.CAN_FETCH)
        if self.interval > 0:
            runner = self._run_interval()
        else:
            runner = self._run_immediate()
        self._lifecycle = asyncio.create_task(runner, name="telepoll-polling")
        logger.info("Polling started", extra={"interval": self.interval, "flags": self.flags.snapshot()})
        return self._lifecycle

    async def stop(self) -> list[dict]:
        """Stop scheduling new cycles and flush the remote queue position.

        In-flight fetches and handlers are not interrupted.  The final
        ``getUpdates(limit=1, timeout=0)`` call acknowledges everything up
        to the current offset; its raw result is returned unprocessed and
        its errors propagate to the caller.
        """
        self.flags.unset(Flag.IS_RUNNING)
        logger.info("Polling stopped", extra={"offset": self._offset})
        return await self._source.get_updates(offset=self._offset, limit=1, timeout=0)

    async def join(self) -> None:
        """Wait for the lifecycle task to finish."""
        if self._lifecycle is not None:
            await self._lifecycle

    async def _run_immediate(self) -> None:
        while self.flags.has(Flag.IS_RUNNING):
            fetched = await self.fetch_cycle()
            if not fetched and self.retry_delay > 0:
                await asyncio.sleep(self.retry_delay)
            else:
                await asyncio.sleep(0)
        logger.debug("Immediate polling loop finished", extra={"offset": self._offset})

    async def _run_interval(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if not self.flags.has(Flag.IS_RUNNING):
                break
            if not self.flags.has(Flag.CAN_FETCH):
                logger.debug("Fetch still in flight, skipping tick", extra={"offset": self._offset})
                continue
            self.flags.unset(Flag.CAN_FETCH)
            cycle = asyncio.create_task(self.fetch_cycle())
            self._pending.add(cycle)
            cycle.add_done_callback(self._release_fetch)
        logger.debug("Interval polling loop finished", extra={"offset": self._offset})

    def _release_fetch(self, cycle: asyncio.Task) -> None:
        self._pending.discard(cycle)
        self.flags.set(Flag.CAN_FETCH)
        if not cycle.cancelled() and cycle.exception() is not None:
            logger.error("Fetch cycle crashed", exc_info=cycle.exception())

    # ── fetch cycle ──────────────────────────────────────────────────────

    async def fetch_cycle(self) -> bool:
        """Fetch one batch, route it, and advance the offset.

        Returns ``True`` when the fetch succeeded and ``False`` when it
        failed; a failure never propagates.
        """
        try:
            updates = await self._source.get_updates(offset=self._offset, limit=self.limit, timeout=self.timeout)
            completions = self.process_updates(updates)
        except Exception as exc:
            logger.warning("getUpdates failed, skipping cycle", extra={"api_endpoint": "getUpdates", "offset": self._offset, "error": repr(exc)})
            await self._notify_fetch_error(exc)
            return False

        if not completions:
            return True

        if self.flags.has(Flag.WAIT_EVENTS):
            try:
                await asyncio.gather(*completions)
            except Exception:
                logger.exception("Handler failed", extra={"offset": self._offset})
        else:
            for completion in completions:
                self._track(completion)
        return True

    def process_updates(self, updates: list[dict]) -> list[asyncio.Future]:
        """Route *updates* in order and move the offset past the highest id."""
        completions: list[asyncio.Future] = []
        if not updates:
            return completions

        # A batch with a missing id fails as a whole, before the offset moves.
        next_offsets = [update["update_id"] + 1 for update in updates]
        for update, next_offset in zip(updates, next_offsets):
            if self._offset < next_offset:
                self._offset = next_offset
            completions.append(self._router.route(update))

        logger.debug("Processed updates", extra={"count": len(updates), "offset": self._offset})
        return completions

    def _track(self, completion: asyncio.Future) -> None:
        self._pending.add(completion)
        completion.add_done_callback(self._on_detached_done)

    def _on_detached_done(self, completion: asyncio.Future) -> None:
        self._pending.discard(completion)
        if completion.cancelled():
            return
        exc = completion.exception()
        if exc is not None:
            logger.error("Handler failed", exc_info=exc)

    async def _notify_fetch_error(self, exc: Exception) -> None:
        if self._on_fetch_error is None:
            return
        try:
            result = self._on_fetch_error(exc)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Fetch error observer failed")
