"""
Deadline-guarded, write-once result slot for a single provisioning operation

Transports may report several notifications for one request (a connect that
later drops, a provision that reports "config applied" and then "success").
Only the first terminal event, or the deadline, reaches the caller; later
notifications are dropped. Notifications may arrive from foreign threads.
"""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)

# Transport work keeps running after a deadline fires, so the tasks are
# held here until they finish.
_background_tasks: Set[asyncio.Task] = set()


class PendingOperation:
    """One result slot: the first resolve/reject wins"""

    def __init__(self, name: str):
        self.name = name
        self._loop = asyncio.get_running_loop()
        self._loop_thread = threading.get_ident()
        self._future = self._loop.create_future()
        self._lock = threading.Lock()
        self._settled = False

    @property
    def settled(self) -> bool:
        return self._settled

    def resolve(self, value: Any = None) -> bool:
        """Deliver a success value. Returns False if the slot was already settled."""
        return self._settle(value, None)

    def reject(self, error: BaseException) -> bool:
        """Deliver a failure. Returns False if the slot was already settled."""
        return self._settle(None, error)

    def _settle(self, value: Any, error: Optional[BaseException]) -> bool:
        with self._lock:
            if self._settled:
                logger.debug(f"{self.name}: discarding late notification ({error or value!r})")
                return False
            self._settled = True

        if threading.get_ident() == self._loop_thread:
            self._deliver(value, error)
        else:
            self._loop.call_soon_threadsafe(self._deliver, value, error)
        return True

    def _deliver(self, value: Any, error: Optional[BaseException]) -> None:
        if self._future.done():
            return
        if error is not None:
            self._future.set_exception(error)
        else:
            self._future.set_result(value)

    def attach(self,
               awaitable: Awaitable,
               on_value: Callable[[Any], None],
               on_error: Callable[[BaseException], None]) -> asyncio.Task:
        """
        Run transport work in the background and route its outcome through
        the given callbacks, which are expected to resolve or reject this slot.
        """
        task = asyncio.ensure_future(awaitable)
        _background_tasks.add(task)

        def _done(t: asyncio.Task):
            _background_tasks.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                on_error(exc)
            else:
                on_value(t.result())

        task.add_done_callback(_done)
        return task

    async def wait(self, timeout: float, on_timeout: Callable[[], BaseException]) -> Any:
        """
        Wait for the slot to settle. If nothing arrives within `timeout`
        seconds the slot is rejected with `on_timeout()`.
        """
        timer = self._loop.call_later(timeout, self._expire, timeout, on_timeout)
        try:
            return await self._future
        finally:
            timer.cancel()

    def _expire(self, timeout: float, on_timeout: Callable[[], BaseException]) -> None:
        if self.reject(on_timeout()):
            logger.warning(f"{self.name}: timed out after {timeout:g} seconds")
