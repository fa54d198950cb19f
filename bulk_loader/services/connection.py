"""Capability surface the bulk pipeline needs from the remote service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from bulk_loader.api.schemas.batch import BatchInfo, BatchResult
from bulk_loader.api.schemas.job import JobInfo, Operation
from bulk_loader.api.schemas.sobject import FieldMetadata


class BulkConnection(ABC):
    """Abstract base class for bulk service connections."""

    @abstractmethod
    async def create_job(
        self,
        object_type: str,
        operation: Operation,
        *,
        external_id_field: str | None = None,
        concurrency_mode: str = "Parallel",
    ) -> JobInfo:
        """Open a new bulk job for one object and operation."""

    @abstractmethod
    async def create_batch(self, job_id: str, records: list[dict[str, Any]]) -> BatchInfo:
        """Create a batch under the job and submit its records."""

    @abstractmethod
    async def check_batch(self, job_id: str, batch_id: str) -> BatchInfo:
        """Fetch the current state of one batch."""

    @abstractmethod
    async def batch_results(self, job_id: str, batch_id: str) -> list[BatchResult]:
        """Fetch per-record results of a processed batch."""

    @abstractmethod
    async def check_job(self, job_id: str) -> JobInfo:
        """Fetch the current state of a job."""

    @abstractmethod
    async def close_job(self, job_id: str) -> JobInfo:
        """Close the job so the service stops accepting batches."""

    @abstractmethod
    async def list_batches(self, job_id: str) -> list[BatchInfo]:
        """List every batch under the job."""

    @abstractmethod
    async def describe(self, object_type: str) -> list[FieldMetadata]:
        """Return the field metadata of an object."""

    async def aclose(self) -> None:
        """Release any underlying transport."""
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
