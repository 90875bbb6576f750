"""Runtime data structures: place records and async jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .errors import JobStateError


@dataclass(slots=True, frozen=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(slots=True)
class PlaceRecord:
    """One business listing extracted from a place page."""

    name: str
    google_maps_url: str
    address: str | None = None
    website: str | None = None
    domain: str | None = None
    phone: str | None = None
    rating: float | None = None
    reviews: int | None = None
    category: str | None = None
    coordinates: Coordinates | None = None

    @property
    def dedup_key(self) -> str:
        """Identity of the business: name plus phone."""
        return f"{self.name}|{self.phone or ''}"

    def to_dict(self) -> dict[str, Any]:
        """JSON shape shared by the HTTP payloads and JSON lines exports."""

        coordinates = self.coordinates
        return {
            "name": self.name,
            "address": self.address,
            "website": self.website,
            "domain": self.domain,
            "phone": self.phone,
            "rating": self.rating,
            "reviews": self.reviews,
            "category": self.category,
            "coordinates": {"lat": coordinates.lat, "lng": coordinates.lng} if coordinates else None,
            "googleMapsUrl": self.google_maps_url,
        }


class JobStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """Lifecycle of one asynchronous scrape."""

    job_id: str
    query: str
    params: dict[str, Any] = field(default_factory=dict)
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None
    results: list[PlaceRecord] | None = None
    error: str | None = None

    def mark_completed(self, results: list[PlaceRecord]) -> None:
        self._ensure_pending()
        self.status = JobStatus.COMPLETED
        self.results = list(results)
        self.completed_at = _utcnow()

    def mark_failed(self, error: str) -> None:
        self._ensure_pending()
        self.status = JobStatus.FAILED
        self.error = error
        self.completed_at = _utcnow()

    def _ensure_pending(self) -> None:
        if self.status is not JobStatus.PENDING:
            raise JobStateError(f"Job {self.job_id} already {self.status.value}")

    def summary(self) -> "JobSummary":
        return JobSummary(
            job_id=self.job_id,
            status=self.status,
            query=self.query,
            created_at=self.created_at,
            result_count=len(self.results or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobId": self.job_id,
            "status": self.status.value,
            "query": self.query,
            "params": dict(self.params),
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "results": [record.to_dict() for record in self.results] if self.results is not None else None,
            "error": self.error,
        }


@dataclass(slots=True)
class JobSummary:
    job_id: str
    status: JobStatus
    query: str
    created_at: datetime
    result_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobId": self.job_id,
            "status": self.status.value,
            "query": self.query,
            "createdAt": self.created_at.isoformat(),
            "resultCount": self.result_count,
        }


__all__ = ["Coordinates", "Job", "JobStatus", "JobSummary", "PlaceRecord"]
