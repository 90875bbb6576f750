"""Split discovered work into contiguous per-worker chunks."""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")


def partition(items: Sequence[T], worker_count: int) -> list[list[T]]:
    """Return ``worker_count`` contiguous chunks whose sizes differ by at most one.

    Earlier chunks absorb the remainder; trailing chunks are empty when there
    are fewer items than workers.
    """

    if worker_count < 1:
        raise ValueError("worker_count must be >= 1")
    base, extra = divmod(len(items), worker_count)
    chunks: list[list[T]] = []
    start = 0
    for index in range(worker_count):
        size = base + (1 if index < extra else 0)
        chunks.append(list(items[start : start + size]))
        start += size
    return chunks


__all__ = ["partition"]
