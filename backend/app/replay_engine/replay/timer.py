"""
Cancellable Timer

Suspension used between replay steps. A cancel request wakes a pending
wait immediately instead of letting it run to completion.
"""

import asyncio


class CancellableTimer:
    """Sleep that can be interrupted by cancel()"""

    def __init__(self):
        self._cancelled = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        self._cancelled.set()

    def reset(self):
        self._cancelled.clear()

    async def wait(self, ms: int) -> bool:
        """
        Suspend for up to `ms` milliseconds.

        Returns:
            True if the timer was cancelled before or during the wait
        """
        if self._cancelled.is_set():
            return True
        if ms <= 0:
            return False
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=ms / 1000)
        except asyncio.TimeoutError:
            return False
        return True
