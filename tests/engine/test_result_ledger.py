from __future__ import annotations

import asyncio

import pytest

from maps_crawler.engine import ResultLedger


@pytest.mark.asyncio
async def test_ledger_rejects_duplicates_and_overflow() -> None:
    ledger = ResultLedger(2)
    assert await ledger.try_accept("Cafe|+1")
    assert not await ledger.try_accept("Cafe|+1")
    assert await ledger.try_accept("Bar|")
    assert ledger.exhausted
    assert not await ledger.try_accept("Deli|")
    assert ledger.accepted == 2
    assert ledger.remaining == 0
    assert ledger.has_key("Bar|") and not ledger.has_key("Deli|")


@pytest.mark.asyncio
async def test_concurrent_accepts_never_exceed_cap() -> None:
    ledger = ResultLedger(5)
    keys = [f"place-{index % 8}|" for index in range(40)]
    outcomes = await asyncio.gather(*(ledger.try_accept(key) for key in keys))
    assert sum(outcomes) == 5
    assert ledger.accepted == 5


def test_ledger_rejects_negative_cap() -> None:
    with pytest.raises(ValueError):
        ResultLedger(-1)
