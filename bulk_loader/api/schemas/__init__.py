"""API payload schemas package."""
from bulk_loader.api.schemas.batch import (
    Batch,
    BatchAck,
    BatchInfo,
    BatchOutcome,
    BatchResult,
    BatchResultError,
    BatchState,
    PlannedBatch,
    RemoteBatchState,
)
from bulk_loader.api.schemas.job import Job, JobInfo, JobStatus, Operation
from bulk_loader.api.schemas.sobject import FieldMetadata

__all__ = [
    "Batch",
    "BatchAck",
    "BatchInfo",
    "BatchOutcome",
    "BatchResult",
    "BatchResultError",
    "BatchState",
    "PlannedBatch",
    "RemoteBatchState",
    "Job",
    "JobInfo",
    "JobStatus",
    "Operation",
    "FieldMetadata",
]
