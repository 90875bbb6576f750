"""Cross-worker deduplication and result budget for a single scrape run."""

from __future__ import annotations

import asyncio


class ResultLedger:
    """Shared seen-key set plus global result cap.

    One ledger is created per run and passed to every worker. ``try_accept``
    checks and records a key under a lock so a key is never counted twice
    against the budget.
    """

    def __init__(self, cap: int) -> None:
        if cap < 0:
            raise ValueError("cap must be >= 0")
        self.cap = cap
        self._seen: set[str] = set()
        self._lock = asyncio.Lock()

    async def try_accept(self, key: str) -> bool:
        async with self._lock:
            if key in self._seen or len(self._seen) >= self.cap:
                return False
            self._seen.add(key)
            return True

    def has_key(self, key: str) -> bool:
        return key in self._seen

    @property
    def accepted(self) -> int:
        return len(self._seen)

    @property
    def remaining(self) -> int:
        return max(self.cap - len(self._seen), 0)

    @property
    def exhausted(self) -> bool:
        return len(self._seen) >= self.cap


__all__ = ["ResultLedger"]
