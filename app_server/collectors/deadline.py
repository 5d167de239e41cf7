from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class SettleOnce:
    """Single resolution point shared by competing completions.

    The first ``resolve``/``reject`` wins; every later call is a no-op that
    returns ``False``. An armed deadline timer is just another competitor,
    and is cancelled once something else settles first.

    Latch state is only touched on the loop thread. Callers on other threads
    must go through the ``*_threadsafe`` variants.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._future: asyncio.Future[Any] = loop.create_future()
        self._settled = False
        self._timer: asyncio.TimerHandle | None = None
        self.timed_out = False

    # ── competitors ─────────────────────────────────────

    def arm(self, timeout: float, value: Any = None) -> None:
        self._timer = self._loop.call_later(timeout, self._expire, value)

    def resolve(self, value: Any) -> bool:
        if not self._latch():
            return False
        self._future.set_result(value)
        return True

    def reject(self, exc: BaseException) -> bool:
        if not self._latch():
            return False
        self._future.set_exception(exc)
        return True

    def resolve_threadsafe(self, value: Any) -> None:
        self._call_threadsafe(self.resolve, value)

    def reject_threadsafe(self, exc: BaseException) -> None:
        self._call_threadsafe(self.reject, exc)

    def close(self) -> None:
        """Latch without an outcome, e.g. when the waiter went away."""
        self._settled = True
        self._cancel_timer()

    # ── outcome ─────────────────────────────────────────

    async def wait(self) -> Any:
        return await self._future

    @property
    def settled(self) -> bool:
        return self._settled

    # ── internals ───────────────────────────────────────

    def _expire(self, value: Any) -> None:
        self._timer = None
        if self.resolve(value):
            self.timed_out = True

    def _latch(self) -> bool:
        if self._settled or self._future.done():
            return False
        self._settled = True
        self._cancel_timer()
        return True

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _call_threadsafe(self, method: Callable[[Any], bool], arg: Any) -> None:
        try:
            self._loop.call_soon_threadsafe(method, arg)
        except RuntimeError:
            # Loop already closed; nobody is waiting for this outcome.
            logger.debug("Dropping late completion %r, event loop is closed", arg)


async def race_deadline(
    start: Callable[[SettleOnce], None],
    timeout: float,
    default: Any = None,
) -> Any:
    """Run ``start`` against a deadline and return whichever settles first.

    ``start`` receives the latch and hands its resolve/reject methods to the
    operation being raced. If ``timeout`` elapses first, ``default`` is
    returned and the operation's eventual completion is ignored. The raced
    operation itself is never cancelled.
    """
    loop = asyncio.get_running_loop()
    latch = SettleOnce(loop)
    latch.arm(timeout, default)
    try:
        start(latch)
    except Exception as exc:
        latch.reject(exc)
    try:
        result = await latch.wait()
    finally:
        latch.close()
    if latch.timed_out:
        logger.info("Operation did not settle within %.2fs", timeout)
    return result
