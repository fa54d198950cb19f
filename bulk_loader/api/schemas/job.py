"""Bulk job payloads and status snapshots."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from bulk_loader.api.schemas.batch import BatchInfo, RemoteBatchState


class Operation(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"
    DELETE = "delete"


class Job(BaseModel):
    """Client-side identity of one bulk job. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    object_type: str
    operation: Operation
    external_id_field: str | None = None


class JobInfo(BaseModel):
    """Job snapshot as returned by the Bulk API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    object: str | None = None
    operation: str | None = None
    state: str = Field(..., description="Open|Closed|Aborted|Failed")
    external_id_field_name: str | None = Field(None, alias="externalIdFieldName")
    concurrency_mode: str | None = Field(None, alias="concurrencyMode")
    content_type: str | None = Field(None, alias="contentType")
    number_batches_queued: int = Field(0, alias="numberBatchesQueued")
    number_batches_in_progress: int = Field(0, alias="numberBatchesInProgress")
    number_batches_completed: int = Field(0, alias="numberBatchesCompleted")
    number_batches_failed: int = Field(0, alias="numberBatchesFailed")
    number_batches_total: int = Field(0, alias="numberBatchesTotal")
    number_records_processed: int = Field(0, alias="numberRecordsProcessed")
    number_records_failed: int = Field(0, alias="numberRecordsFailed")
    created_date: datetime | None = Field(None, alias="createdDate")
    system_modstamp: datetime | None = Field(None, alias="systemModstamp")


class JobStatus(BaseModel):
    """Point-in-time aggregate of a job and the batches under it."""

    job_id: str
    object: str | None = None
    operation: str | None = None
    state: str
    batches_total: int = 0
    batches_completed: int = 0
    batches_failed: int = 0
    records_processed: int = 0
    records_failed: int = 0
    batches: list[BatchInfo] = Field(default_factory=list)

    @classmethod
    def from_remote(cls, job_id: str, info: JobInfo, batches: list[BatchInfo]) -> JobStatus:
        """Combine the job snapshot with its batch list.

        Batch counts fall back to the batch list when the job payload omits them.
        """
        completed = sum(1 for b in batches if b.state == RemoteBatchState.COMPLETED)
        failed = sum(1 for b in batches if b.state == RemoteBatchState.FAILED)
        return cls(
            job_id=info.id or job_id,
            object=info.object,
            operation=info.operation,
            state=info.state,
            batches_total=info.number_batches_total or len(batches),
            batches_completed=info.number_batches_completed or completed,
            batches_failed=info.number_batches_failed or failed,
            records_processed=info.number_records_processed,
            records_failed=info.number_records_failed,
            batches=batches,
        )
