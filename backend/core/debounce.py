# backend/core/debounce.py

"""
Trailing-edge debouncing for bursty editor writes.

While a table is dragged the editor reports a new position many times per
second. Each report replaces the pending one for the same key; only the last
value is written once the key has been quiet for the delay.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable

logger = logging.getLogger(__name__)


class Debouncer:
    """Per-key trailing-edge debouncer running on the current event loop"""

    def __init__(self, delay_seconds: float):
        self.delay_seconds = delay_seconds
        self._pending: Dict[Hashable, asyncio.Task] = {}

    def schedule(
        self,
        key: Hashable,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> asyncio.Task:
        """Replace any pending call for ``key`` with this one."""
        previous = self._pending.get(key)
        if previous and not previous.done():
            previous.cancel()

        task = asyncio.create_task(self._run_later(key, func, args, kwargs))
        self._pending[key] = task
        return task

    async def _run_later(self, key, func, args, kwargs):
        try:
            await asyncio.sleep(self.delay_seconds)
        except asyncio.CancelledError:
            return None

        # Past this point the call is committed
        if self._pending.get(key) is asyncio.current_task():
            del self._pending[key]
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Debounced call for {key!r} failed: {e}")
            raise

    def pending_keys(self):
        return [key for key, task in self._pending.items() if not task.done()]

    async def flush(self):
        """Wait for every pending call to fire."""
        tasks = [task for task in self._pending.values() if not task.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def cancel_all(self):
        for task in self._pending.values():
            if not task.done():
                task.cancel()
        self._pending.clear()
