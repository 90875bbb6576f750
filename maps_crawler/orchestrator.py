"""Scrape orchestrator wiring pool, discovery, partitioning and workers together."""

from __future__ import annotations

import asyncio
import time
from typing import Sequence

from .config import AppConfig
from .engine import (
    BrowserPool,
    ExtractionWorker,
    ListingDiscoverer,
    PageExtractor,
    ResultLedger,
    partition,
)
from .errors import CrawlerError, DiscoveryFailed, OrchestrationFailed
from .logging_conf import get_logger
from .models import PlaceRecord


def merge_results(
    partials: Sequence[Sequence[PlaceRecord]], max_results: int
) -> list[PlaceRecord]:
    """Concatenate worker outputs in worker order, dropping repeated keys, capped."""

    merged: list[PlaceRecord] = []
    seen: set[str] = set()
    for chunk in partials:
        for record in chunk:
            if len(merged) >= max_results:
                return merged
            key = record.dedup_key
            if key in seen:
                continue
            seen.add(key)
            merged.append(record)
    return merged


class Orchestrator:
    """Run one query end to end against a pooled browser session.

    No overall deadline wraps a run; discovery and per-item timeouts bound the
    individual steps only.
    """

    def __init__(
        self,
        pool: BrowserPool,
        discoverer: ListingDiscoverer,
        extractor: PageExtractor,
        config: AppConfig,
    ) -> None:
        self.pool = pool
        self.discoverer = discoverer
        self.extractor = extractor
        self.config = config
        self.logger = get_logger("orchestrator")

    async def run(self, query: str, max_results: int, workers: int) -> list[PlaceRecord]:
        if max_results < 1:
            raise ValueError("max_results must be >= 1")
        if workers < 1:
            raise ValueError("workers must be >= 1")
        log = self.logger.bind(query=query)
        started = time.monotonic()
        candidate_limit = max_results * self.config.discovery.overshoot_factor
        log.info("run_started", max_results=max_results, workers=workers)

        session = await self.pool.acquire()
        try:
            try:
                urls = await self.discoverer.discover(session, query, candidate_limit)
            except CrawlerError:
                raise
            except Exception as exc:  # noqa: BLE001
                raise DiscoveryFailed(f"Discovery failed for {query!r}: {exc}") from exc
            log.info(
                "urls_collected",
                count=len(urls),
                elapsed=round(time.monotonic() - started, 1),
            )
            if not urls:
                log.info("no_listings_found")
                return []

            chunks = partition(urls[:candidate_limit], workers)
            ledger = ResultLedger(max_results)
            partials = await self._fan_out(session, chunks, ledger)
        finally:
            await self.pool.release(session)

        results = merge_results(partials, max_results)
        log.info(
            "run_completed",
            count=len(results),
            duration=round(time.monotonic() - started, 1),
        )
        return results

    async def _fan_out(
        self,
        session,
        chunks: list[list[str]],
        ledger: ResultLedger,
    ) -> list[list[PlaceRecord]]:
        # Empty chunks only ever trail, so skipping them keeps worker-index order
        tasks = [
            ExtractionWorker(index, self.extractor, self.config.extraction).run(
                session, chunk, ledger
            )
            for index, chunk in enumerate(chunks)
            if chunk
        ]
        # Full join: every worker settles before its context could outlive the session
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if failures:
            first = failures[0]
            if isinstance(first, asyncio.CancelledError):
                raise first
            raise OrchestrationFailed(
                f"{len(failures)} of {len(tasks)} workers failed: {first}"
            ) from first
        return [list(outcome) for outcome in outcomes]


__all__ = ["Orchestrator", "merge_results"]
