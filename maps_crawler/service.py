"""Service facade exposing sync, bulk and async scrape entry points."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from . import __version__
from .config import AppConfig
from .engine import BrowserPool, ListingDiscoverer, PlacePageExtractor, PlaywrightBrowserFactory
from .jobs import AdmissionController, JobRegistry
from .logging_conf import get_logger
from .models import Job, JobSummary, PlaceRecord
from .orchestrator import Orchestrator


@dataclass(slots=True)
class ScrapeOutcome:
    query: str
    results: list[PlaceRecord]
    duration: float

    @property
    def speed(self) -> float:
        return len(self.results) / self.duration if self.duration > 0 else 0.0


@dataclass(slots=True)
class BulkOutcome:
    total_queries: int
    results: dict[str, list[PlaceRecord]] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    duration: float = 0.0


class ScraperService:
    """Entry points used by the HTTP layer and the CLI."""

    def __init__(
        self,
        config: AppConfig,
        orchestrator: Orchestrator,
        admission: AdmissionController | None = None,
        factory: PlaywrightBrowserFactory | None = None,
    ) -> None:
        self.config = config
        self.orchestrator = orchestrator
        self.admission = admission or AdmissionController(config.server.max_concurrent_jobs)
        self.jobs = JobRegistry(self._run)
        self.factory = factory
        self.logger = get_logger("service")

    @classmethod
    def from_config(cls, config: AppConfig) -> "ScraperService":
        factory = PlaywrightBrowserFactory(config.browser)
        pool = BrowserPool(factory, max_size=config.pool.max_browsers)
        orchestrator = Orchestrator(
            pool=pool,
            discoverer=ListingDiscoverer(config.discovery),
            extractor=PlacePageExtractor(config.extraction),
            config=config,
        )
        return cls(config, orchestrator, factory=factory)

    # ------------------------------------------------------------------
    def _clamp(self, max_results: int | None, workers: int | None, default_max: int) -> tuple[int, int]:
        server = self.config.server
        max_results = default_max if max_results is None else max_results
        workers = server.default_workers if workers is None else workers
        if max_results < 1 or workers < 1:
            raise ValueError("maxResults and workers must be positive")
        return min(max_results, server.max_results_cap), min(workers, server.max_workers_cap)

    async def _run(self, query: str, max_results: int, workers: int) -> list[PlaceRecord]:
        return await self.orchestrator.run(query, max_results=max_results, workers=workers)

    async def run_sync(
        self, query: str, max_results: int | None = None, workers: int | None = None
    ) -> ScrapeOutcome:
        """Scrape immediately; raises ``OverCapacity`` when all slots are busy."""

        max_results, workers = self._clamp(max_results, workers, self.config.server.default_max_results)
        with self.admission.slot():
            started = time.monotonic()
            results = await self._run(query, max_results, workers)
            duration = time.monotonic() - started
        self.logger.info(
            "sync_done", query=query, count=len(results), duration=round(duration, 1)
        )
        return ScrapeOutcome(query=query, results=results, duration=duration)

    async def run_bulk(
        self,
        queries: Sequence[str],
        max_results: int | None = None,
        workers: int | None = None,
    ) -> BulkOutcome:
        server = self.config.server
        if not queries:
            raise ValueError("queries array is required")
        if len(queries) > server.bulk_max_queries:
            raise ValueError(f"Maximum {server.bulk_max_queries} queries per request")
        max_results, workers = self._clamp(max_results, workers, server.bulk_default_max_results)

        started = time.monotonic()
        outcome = BulkOutcome(total_queries=len(queries))
        for offset in range(0, len(queries), server.bulk_batch_size):
            batch = list(queries[offset : offset + server.bulk_batch_size])
            settled = await asyncio.gather(
                *(self._run(query, max_results, workers) for query in batch),
                return_exceptions=True,
            )
            for query, result in zip(batch, settled):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, BaseException):
                    outcome.errors[query] = str(result) or "Unknown error"
                    self.logger.warning("bulk_query_failed", query=query, error=str(result))
                else:
                    outcome.results[query] = result
        outcome.duration = time.monotonic() - started
        self.logger.info(
            "bulk_done",
            total=len(queries),
            succeeded=len(outcome.results),
            duration=round(outcome.duration, 1),
        )
        return outcome

    async def submit_async(
        self, query: str, max_results: int | None = None, workers: int | None = None
    ) -> str:
        max_results, workers = self._clamp(max_results, workers, self.config.server.default_max_results)
        return self.jobs.submit(query, {"max_results": max_results, "workers": workers})

    def get_status(self, job_id: str) -> Job | None:
        return self.jobs.status(job_id)

    def list_jobs(self) -> list[JobSummary]:
        return self.jobs.list()

    def health(self) -> dict[str, Any]:
        stats = self.orchestrator.pool.stats()
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "activeJobs": self.admission.active,
            "maxConcurrent": self.admission.max_concurrent,
            "pendingAsyncJobs": self.jobs.pending_count,
            "browsers": {
                "created": stats.created,
                "live": stats.live,
                "idle": stats.idle,
                "inUse": stats.in_use,
            },
        }

    async def aclose(self) -> None:
        self.logger.info("service_shutdown")
        await self.jobs.aclose()
        await self.orchestrator.pool.shutdown()
        if self.factory is not None:
            await self.factory.aclose()


__all__ = ["BulkOutcome", "ScrapeOutcome", "ScraperService"]
