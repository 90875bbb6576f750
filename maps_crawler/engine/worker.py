"""Extraction worker: one browser context iterating one chunk of place URLs."""

from __future__ import annotations

import asyncio
from typing import Sequence

from ..config import ExtractionConfig
from ..logging_conf import get_logger
from ..models import PlaceRecord
from .dedup import ResultLedger
from .extractor import PageExtractor
from .session import RenderSession


class ExtractionWorker:
    """Extract records for a chunk, skipping failed items and honouring the ledger."""

    def __init__(
        self,
        worker_id: int,
        extractor: PageExtractor,
        config: ExtractionConfig,
    ) -> None:
        self.worker_id = worker_id
        self.extractor = extractor
        self.config = config
        self.logger = get_logger("worker").bind(worker=worker_id)

    async def run(
        self,
        session: RenderSession,
        chunk: Sequence[str],
        ledger: ResultLedger,
    ) -> list[PlaceRecord]:
        results: list[PlaceRecord] = []
        context = await session.new_context()
        try:
            page = await context.new_page()
            for index, url in enumerate(chunk):
                if ledger.exhausted:
                    self.logger.debug("budget_exhausted", skipped=len(chunk) - index)
                    break
                record = await self._extract_one(page, url)
                if record is None or not record.name:
                    continue
                if await ledger.try_accept(record.dedup_key):
                    results.append(record)
                    self.logger.info("place_extracted", name=record.name)
        finally:
            await context.close()
        return results

    async def _extract_one(self, page, url: str) -> PlaceRecord | None:
        try:
            return await asyncio.wait_for(
                self.extractor.extract(page, url),
                timeout=self.config.item_timeout_s,
            )
        except asyncio.TimeoutError:
            self.logger.debug("item_timeout", url=url)
        except Exception as exc:  # noqa: BLE001
            self.logger.debug("item_failed", url=url, error=str(exc))
        return None


__all__ = ["ExtractionWorker"]
