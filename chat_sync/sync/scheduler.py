from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Set

from chat_sync.infrastructure.logging.logger import logger


class PeriodicTimer:
    """Fixed-interval timer on the running event loop.

    Every tick runs as its own task, so a slow tick never delays the next one
    and ticks may overlap. stop() only prevents future ticks; ticks already
    in flight run to completion.
    """

    def __init__(self, interval: float, callback: Callable[[], Awaitable[object]], *, name: str = "timer") -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.name = name
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"{self.name}-loop")

    def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        self._task = None

    async def drain(self) -> None:
        """Wait for ticks that are still in flight."""

        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval)
                self.ticks += 1
                tick = asyncio.create_task(self._invoke(), name=f"{self.name}-tick-{self.ticks}")
                self._inflight.add(tick)
                tick.add_done_callback(self._inflight.discard)
        except asyncio.CancelledError:
            return

    async def _invoke(self) -> None:
        try:
            await self._callback()
        except Exception as exc:  # noqa: BLE001 - 单次 tick 失败不能终止定时器
            logger.error(
                f"Timer tick failed: {exc}",
                exc_info=True,
                extra={"extra": {"timer": self.name, "tick": self.ticks}},
            )
