"""Bounded concurrency for file workers.

``ConcurrencyLimiter`` gates the processor's per-file coroutines on an
``asyncio.Semaphore`` so that no more than ``max_workers`` files are read
and evaluated at once.  It also remembers the highest number of files
that were in flight together, which the processor reports after a run.
"""

from __future__ import annotations

import asyncio


class ConcurrencyLimiter:
    """Admit at most *max_concurrent* file workers at a time.

    ::

        limiter = ConcurrencyLimiter(max_concurrent=4)
        async with limiter:
            evaluation = await asyncio.to_thread(evaluate, source)

    ``peak`` is the largest ``active`` count seen since construction.
    """

    __slots__ = ("_max", "_semaphore", "_active", "_peak")

    def __init__(self, max_concurrent: int = 4) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._max = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._active = 0
        self._peak = 0

    async def __aenter__(self) -> None:
        await self._semaphore.acquire()
        self._active += 1
        if self._active > self._peak:
            self._peak = self._active

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self._active -= 1
        self._semaphore.release()

    @property
    def active(self) -> int:
        return self._active

    @property
    def peak(self) -> int:
        return self._peak

    @property
    def max_concurrent(self) -> int:
        return self._max


__all__ = ["ConcurrencyLimiter"]
