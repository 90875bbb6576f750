from __future__ import annotations

import asyncio

import pytest

from maps_crawler.config import AppConfig, DiscoveryConfig
from maps_crawler.engine import BrowserPool, ResultLedger
from maps_crawler.errors import DiscoveryFailed, OrchestrationFailed
from maps_crawler.orchestrator import Orchestrator, merge_results


class StubDiscoverer:
    def __init__(self, urls=None, error: Exception | None = None) -> None:
        self.urls = list(urls or [])
        self.error = error
        self.requested: list[int] = []

    async def discover(self, session, query: str, max_items: int) -> list[str]:
        self.requested.append(max_items)
        if self.error is not None:
            raise self.error
        return list(self.urls)


def build(fake_factory, discoverer, extractor, overshoot_factor: int = 2) -> Orchestrator:
    config = AppConfig(discovery=DiscoveryConfig(overshoot_factor=overshoot_factor))
    pool = BrowserPool(fake_factory, max_size=1)
    return Orchestrator(pool=pool, discoverer=discoverer, extractor=extractor, config=config)


SCENARIO_URLS = [f"u{i:02d}" for i in range(15)]


def scenario_outcomes(record_factory) -> dict:
    # Ten valid places; every third URL is not a place
    return {
        url: (None if i % 3 == 2 else record_factory(f"Place {i:02d}"))
        for i, url in enumerate(SCENARIO_URLS)
    }


class ChunkGatedExtractor:
    """Let chunk k start only after chunk k-1 was fully extracted."""

    def __init__(self, outcomes: dict, chunk_size: int, chunks: int) -> None:
        self.outcomes = outcomes
        self.chunk_size = chunk_size
        self.finished = [asyncio.Event() for _ in range(chunks)]

    async def extract(self, page, url: str):
        index = SCENARIO_URLS.index(url)
        chunk = index // self.chunk_size
        if chunk and not self.finished[chunk - 1].is_set():
            await self.finished[chunk - 1].wait()
            # Give the previous worker time to record its last acceptance
            for _ in range(10):
                await asyncio.sleep(0)
        if index % self.chunk_size == self.chunk_size - 1:
            self.finished[chunk].set()
        return self.outcomes[url]


class YieldingExtractor:
    def __init__(self, outcomes: dict) -> None:
        self.outcomes = outcomes

    async def extract(self, page, url: str):
        await asyncio.sleep(0)
        return self.outcomes[url]


@pytest.mark.asyncio
async def test_capped_run_keeps_first_accepted_in_worker_order(fake_factory, record_factory) -> None:
    discoverer = StubDiscoverer(SCENARIO_URLS)
    extractor = ChunkGatedExtractor(scenario_outcomes(record_factory), chunk_size=5, chunks=3)
    orchestrator = build(fake_factory, discoverer, extractor, overshoot_factor=3)

    results = await orchestrator.run("cafe", max_results=7, workers=3)

    assert discoverer.requested == [21]
    assert [record.name for record in results] == [
        "Place 00",
        "Place 01",
        "Place 03",
        "Place 04",
        "Place 06",
        "Place 07",
        "Place 09",
    ]
    # Three workers each opened their own context on the shared session
    assert len(fake_factory.sessions[0].contexts) == 3
    assert orchestrator.pool.stats().in_use == 0


@pytest.mark.asyncio
async def test_interleaved_workers_still_respect_cap_and_order(
    fake_factory, record_factory, monkeypatch
) -> None:
    ledgers: list[ResultLedger] = []

    class RecordingLedger(ResultLedger):
        def __init__(self, cap: int) -> None:
            super().__init__(cap)
            self.order: list[str] = []
            ledgers.append(self)

        async def try_accept(self, key: str) -> bool:
            accepted = await super().try_accept(key)
            if accepted:
                self.order.append(key)
            return accepted

    monkeypatch.setattr("maps_crawler.orchestrator.ResultLedger", RecordingLedger)
    orchestrator = build(
        fake_factory,
        StubDiscoverer(SCENARIO_URLS),
        YieldingExtractor(scenario_outcomes(record_factory)),
        overshoot_factor=3,
    )

    results = await orchestrator.run("cafe", max_results=7, workers=3)

    keys = [record.dedup_key for record in results]
    assert len(results) == 7
    assert len(set(keys)) == 7
    assert set(keys) == set(ledgers[0].order)
    indices = [int(record.name.split()[-1]) for record in results]
    assert indices == sorted(indices)


@pytest.mark.asyncio
async def test_duplicate_across_chunks_survives_once(fake_factory, mapping_extractor, record_factory) -> None:
    urls = [f"u{i}" for i in range(6)]
    outcomes = {url: record_factory(f"Place {i}") for i, url in enumerate(urls)}
    outcomes["u4"] = record_factory("Place 1", url="u4")
    orchestrator = build(fake_factory, StubDiscoverer(urls), mapping_extractor(outcomes))

    results = await orchestrator.run("cafe", max_results=10, workers=2)

    names = [record.name for record in results]
    assert len(results) == 5
    assert names.count("Place 1") == 1


@pytest.mark.asyncio
async def test_candidates_beyond_overshoot_are_not_extracted(fake_factory, mapping_extractor, record_factory) -> None:
    urls = [f"u{i}" for i in range(10)]
    extractor = mapping_extractor({url: None for url in urls})
    await build(fake_factory, StubDiscoverer(urls), extractor).run("cafe", max_results=2, workers=2)
    assert sorted(extractor.calls) == ["u0", "u1", "u2", "u3"]


@pytest.mark.asyncio
async def test_empty_discovery_returns_no_results(fake_factory, mapping_extractor) -> None:
    extractor = mapping_extractor({})
    orchestrator = build(fake_factory, StubDiscoverer([]), extractor)
    assert await orchestrator.run("nowhere", max_results=5, workers=3) == []
    assert extractor.calls == []
    assert orchestrator.pool.stats().in_use == 0


@pytest.mark.asyncio
async def test_discovery_errors_are_wrapped_and_session_released(fake_factory, mapping_extractor) -> None:
    orchestrator = build(fake_factory, StubDiscoverer(error=RuntimeError("page crashed")), mapping_extractor({}))
    with pytest.raises(DiscoveryFailed, match="page crashed"):
        await orchestrator.run("cafe", max_results=5, workers=1)
    assert orchestrator.pool.stats().in_use == 0
    assert orchestrator.pool.stats().idle == 1


@pytest.mark.asyncio
async def test_worker_crash_fails_the_run(fake_factory, mapping_extractor) -> None:
    orchestrator = build(fake_factory, StubDiscoverer(["u1", "u2"]), mapping_extractor({}))
    session = await orchestrator.pool.acquire()
    session.fail_contexts = True
    await orchestrator.pool.release(session)

    with pytest.raises(OrchestrationFailed, match="2 of 2 workers failed"):
        await orchestrator.run("cafe", max_results=5, workers=2)
    assert orchestrator.pool.stats().in_use == 0


@pytest.mark.asyncio
async def test_run_rejects_non_positive_arguments(fake_factory, mapping_extractor) -> None:
    orchestrator = build(fake_factory, StubDiscoverer([]), mapping_extractor({}))
    with pytest.raises(ValueError):
        await orchestrator.run("cafe", max_results=0, workers=1)
    with pytest.raises(ValueError):
        await orchestrator.run("cafe", max_results=1, workers=0)


def test_merge_results_dedups_and_caps(record_factory) -> None:
    partials = [
        [record_factory("A", "1"), record_factory("B")],
        [record_factory("A", "1"), record_factory("C"), record_factory("D")],
    ]
    merged = merge_results(partials, max_results=3)
    assert [record.name for record in merged] == ["A", "B", "C"]
