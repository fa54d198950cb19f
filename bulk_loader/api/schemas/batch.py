"""Batch payloads: remote snapshots, per-record results and client-side batches."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RemoteBatchState(str, Enum):
    QUEUED = "Queued"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    FAILED = "Failed"
    NOT_PROCESSED = "NotProcessed"


class BatchState(str, Enum):
    """Client-side lifecycle of a batch."""

    CREATED = "created"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    CHECKED = "checked"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_STATES = frozenset(
    {BatchState.CHECKED, BatchState.COMPLETED, BatchState.FAILED, BatchState.TIMED_OUT}
)

_TRANSITIONS: dict[BatchState, frozenset[BatchState]] = {
    BatchState.CREATED: frozenset({BatchState.SUBMITTED, BatchState.FAILED}),
    BatchState.SUBMITTED: frozenset({BatchState.ACCEPTED, BatchState.FAILED}),
    BatchState.ACCEPTED: frozenset(
        {BatchState.CHECKED, BatchState.POLLING, BatchState.FAILED}
    ),
    BatchState.POLLING: frozenset(
        {BatchState.COMPLETED, BatchState.FAILED, BatchState.TIMED_OUT}
    ),
}


class BatchInfo(BaseModel):
    """Batch snapshot as returned by the Bulk API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    job_id: str = Field(..., alias="jobId")
    state: RemoteBatchState
    state_message: str | None = Field(None, alias="stateMessage")
    number_records_processed: int = Field(0, alias="numberRecordsProcessed")
    number_records_failed: int = Field(0, alias="numberRecordsFailed")
    created_date: datetime | None = Field(None, alias="createdDate")
    system_modstamp: datetime | None = Field(None, alias="systemModstamp")
    total_processing_time: int | None = Field(None, alias="totalProcessingTime")


class BatchResultError(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status_code: str | None = Field(None, alias="statusCode")
    message: str
    fields: list[str] = Field(default_factory=list)


class BatchResult(BaseModel):
    """Outcome of one input record. Results are 1:1 with the batch's rows."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    success: bool
    created: bool = False
    errors: list[BatchResultError] = Field(default_factory=list)


class PlannedBatch(BaseModel):
    """A chunk of decoded rows with its stable position in the job."""

    index: int = Field(..., ge=0)
    records: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.records)


class Batch(BaseModel):
    """Mutable client-side batch owned by a single completion tracker."""

    index: int
    job_id: str
    records: list[dict[str, Any]] = Field(default_factory=list, repr=False)
    state: BatchState = BatchState.CREATED
    batch_id: str | None = None

    @property
    def number(self) -> int:
        """1-based batch number used in user-facing messages."""
        return self.index + 1

    @property
    def record_count(self) -> int:
        return len(self.records)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, target: BatchState) -> None:
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if target not in allowed:
            raise RuntimeError(
                f"Batch #{self.number} cannot move from {self.state.value} to {target.value}"
            )
        self.state = target


class BatchAck(BaseModel):
    """Acceptance acknowledgment returned in immediate-check mode."""

    index: int
    job_id: str
    batch_id: str
    state: RemoteBatchState


class BatchOutcome(BaseModel):
    """Terminal result of a batch in wait mode."""

    index: int
    summary: BatchInfo
    results: list[BatchResult] = Field(default_factory=list)
