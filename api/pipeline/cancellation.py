"""Cooperative job cancellation"""

import asyncio


class JobCancelledError(Exception):
    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(reason)


class CancellationToken:
    """Set once; checked by the orchestrator between stages."""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled:
            raise JobCancelledError("cancelled")

    async def wait(self) -> None:
        await self._event.wait()
