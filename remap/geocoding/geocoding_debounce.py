"""
Cancellable scheduled task used to debounce query input.

Holds at most one pending call. Scheduling again cancels the pending
call before arming a new one, so only the last input inside the quiet
period runs. A call that has already started is detached and left to
finish; ordering of late results is the caller's concern.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Set

from ..config.logger_module import log_debug, log_error


class DebouncedTask:
    """Last-write-wins delayed invocation of an async action."""

    def __init__(self,
                 delay_seconds: float,
                 action: Callable[..., Awaitable[Any]]):
        """
        Args:
            delay_seconds: Quiet period before the action fires
            action: Coroutine function invoked with the scheduled arguments
        """
        self.delay_seconds = delay_seconds
        self._action = action
        self._pending: Optional[asyncio.Task] = None
        self._running: Set[asyncio.Task] = set()

    @property
    def is_pending(self) -> bool:
        """True while a scheduled call is still waiting out its delay."""
        return self._pending is not None and not self._pending.done()

    def schedule(self, *args: Any) -> None:
        """
        Cancel any pending call and arm a new one with these arguments.
        
        Must be called from inside a running event loop.
        """
        self.cancel()
        loop = asyncio.get_running_loop()
        self._pending = loop.create_task(self._fire_after_delay(args))

    def cancel(self) -> bool:
        """
        Cancel the pending call, if any.
        
        Returns:
            True if a pending call was cancelled
        """
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()
            log_debug("Debounce: cancelled superseded pending call")
            return True
        return False

    async def _fire_after_delay(self, args) -> None:
        await asyncio.sleep(self.delay_seconds)
        
        # Detach: from here on cancel() no longer reaches this call.
        task = asyncio.current_task()
        if self._pending is task:
            self._pending = None
        self._running.add(task)
        try:
            await self._action(*args)
        except Exception as e:
            log_error(f"Debounced action failed: {e}")
        finally:
            self._running.discard(task)

    async def wait_idle(self) -> None:
        """Wait until no call is pending or running."""
        while self._pending is not None or self._running:
            tasks = list(self._running)
            if self._pending is not None:
                tasks.append(self._pending)
            await asyncio.gather(*tasks, return_exceptions=True)
            if self._pending is not None and self._pending.done():
                self._pending = None
