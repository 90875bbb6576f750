"""Bounded pool of browser sessions shared across scrape runs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from ..logging_conf import get_logger
from .session import RenderSession, SessionFactory


@dataclass(slots=True)
class PoolStats:
    created: int
    live: int
    idle: int
    in_use: int


class BrowserPool:
    """Hand out live sessions, creating at most ``max_size`` concurrently live ones.

    Waiters are woken on release instead of polling. A session found
    disconnected is dropped from the live count but stays in the created list
    so ``shutdown`` still terminates it.
    """

    def __init__(self, factory: SessionFactory, max_size: int = 3) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.factory = factory
        self.max_size = max_size
        self.logger = get_logger("browser_pool")
        self._created: list[RenderSession] = []
        self._idle: list[RenderSession] = []
        self._live = 0
        self._in_use = 0
        self._condition = asyncio.Condition()
        self._closed = False

    async def acquire(self) -> RenderSession:
        async with self._condition:
            while True:
                if self._closed:
                    raise RuntimeError("BrowserPool is shut down")
                while self._idle:
                    session = self._idle.pop()
                    if session.is_live():
                        self._in_use += 1
                        return session
                    self._live -= 1
                    self.logger.warning("idle_session_disconnected")
                if self._live < self.max_size:
                    # Reserve the slot before leaving the lock for the slow launch
                    self._live += 1
                    break
                try:
                    await self._condition.wait()
                except asyncio.CancelledError:
                    # A cancelled waiter may have consumed a release notification
                    self._condition.notify()
                    raise

        try:
            session = await self.factory.create()
        except BaseException:
            async with self._condition:
                self._live -= 1
                self._condition.notify()
            raise

        async with self._condition:
            closed = self._closed
            if not closed:
                self._created.append(session)
                self._in_use += 1
        if closed:
            await session.terminate()
            raise RuntimeError("BrowserPool is shut down")
        self.logger.info("session_created", created=len(self._created), max_size=self.max_size)
        return session

    async def release(self, session: RenderSession) -> None:
        async with self._condition:
            self._in_use -= 1
            if self._closed:
                return
            if session.is_live():
                self._idle.append(session)
            else:
                self._live -= 1
                self.logger.warning("released_session_dropped")
            self._condition.notify()

    async def shutdown(self) -> None:
        """Terminate every session ever created; never raises."""

        async with self._condition:
            self._closed = True
            sessions = list(self._created)
            self._created.clear()
            self._idle.clear()
            self._live = 0
            self._condition.notify_all()
        for session in sessions:
            try:
                await session.terminate()
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("session_terminate_failed", error=str(exc))
        self.logger.info("pool_shutdown", terminated=len(sessions))

    def stats(self) -> PoolStats:
        return PoolStats(
            created=len(self._created),
            live=self._live,
            idle=len(self._idle),
            in_use=self._in_use,
        )


__all__ = ["BrowserPool", "PoolStats"]
