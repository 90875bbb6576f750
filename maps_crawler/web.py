"""FastAPI surface over ``ScraperService``."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .errors import OverCapacity
from .logging_conf import get_logger
from .service import ScraperService

logger = get_logger("web")


class ScrapeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(min_length=1)
    max_results: int | None = Field(default=None, alias="maxResults", ge=1)
    workers: int | None = Field(default=None, ge=1)


class BulkScrapeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    queries: list[str]
    max_results: int | None = Field(default=None, alias="maxResults", ge=1)
    workers: int | None = Field(default=None, ge=1)


def create_app(service: ScraperService, api_key: str | None = None) -> FastAPI:
    """Build the HTTP app; the service is closed when the app shuts down."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("api_started", version=__version__)
        yield
        await service.aclose()

    app = FastAPI(title="maps-crawler", version=__version__, lifespan=lifespan)
    app.state.service = service

    async def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
        if api_key and x_api_key != api_key:
            raise HTTPException(status_code=401, detail="Unauthorized")

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "body"
        return JSONResponse(status_code=400, content={"error": f"{field}: {first.get('msg', 'invalid')}"})

    @app.exception_handler(OverCapacity)
    async def _over_capacity(_request: Request, exc: OverCapacity) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={
                "error": "Too many concurrent requests",
                "activeJobs": exc.active,
                "maxConcurrent": exc.max_concurrent,
            },
        )

    @app.exception_handler(ValueError)
    async def _bad_request(_request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("request_failed", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/health")
    async def health() -> dict:
        return service.health()

    @app.post("/scrape", dependencies=[Depends(require_api_key)])
    async def scrape(payload: ScrapeRequest):
        logger.info("scrape_requested", query=payload.query, max_results=payload.max_results)
        try:
            outcome = await service.run_sync(payload.query, payload.max_results, payload.workers)
        except (OverCapacity, ValueError):
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("scrape_failed", query=payload.query, error=str(exc))
            return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})
        return {
            "success": True,
            "query": outcome.query,
            "count": len(outcome.results),
            "duration": f"{outcome.duration:.1f}s",
            "speed": f"{outcome.speed:.2f} results/sec",
            "results": [record.to_dict() for record in outcome.results],
        }

    @app.post("/scrape/bulk", dependencies=[Depends(require_api_key)])
    async def scrape_bulk(payload: BulkScrapeRequest) -> dict:
        outcome = await service.run_bulk(payload.queries, payload.max_results, payload.workers)
        body = {
            "success": True,
            "totalQueries": outcome.total_queries,
            "successfulQueries": len(outcome.results),
            "duration": f"{outcome.duration:.1f}s",
            "results": {
                query: [record.to_dict() for record in records]
                for query, records in outcome.results.items()
            },
        }
        if outcome.errors:
            body["errors"] = outcome.errors
        return body

    @app.post("/scrape/async", dependencies=[Depends(require_api_key)])
    async def scrape_async(payload: ScrapeRequest) -> dict:
        job_id = await service.submit_async(payload.query, payload.max_results, payload.workers)
        return {"jobId": job_id, "status": "pending"}

    @app.get("/scrape/status/{job_id}", dependencies=[Depends(require_api_key)])
    async def scrape_status(job_id: str) -> dict:
        job = service.get_status(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return job.to_dict()

    @app.get("/jobs", dependencies=[Depends(require_api_key)])
    async def list_jobs() -> dict:
        return {"jobs": [summary.to_dict() for summary in service.list_jobs()]}

    return app


__all__ = ["BulkScrapeRequest", "ScrapeRequest", "create_app"]
