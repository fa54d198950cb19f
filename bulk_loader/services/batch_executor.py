"""Submit one planned batch to an open bulk job."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bulk_loader.api.schemas.batch import Batch, BatchInfo, BatchState
from bulk_loader.api.schemas.job import Job
from bulk_loader.services.connection import BulkConnection

logger = logging.getLogger(__name__)


@dataclass
class JobState:
    """Per-invocation state shared by every batch of one job.

    Only touched between suspension points of a single event loop, so plain
    attribute updates are safe.
    """

    job: Job
    total_batches: int
    batches_accepted: int = 0
    closed: bool = False
    polling_notice_shown: bool = False

    @property
    def job_id(self) -> str:
        return self.job.id


class BatchExecutor:
    """Moves a batch from Created to Accepted and closes the job after the last one."""

    def __init__(self, connection: BulkConnection, job_state: JobState) -> None:
        self.connection = connection
        self.job_state = job_state

    def create_batch(self, index: int, records: list[dict]) -> Batch:
        return Batch(index=index, job_id=self.job_state.job_id, records=records)

    async def execute(self, batch: Batch) -> BatchInfo:
        """Submit the batch records and return the queued batch info."""
        batch.transition(BatchState.SUBMITTED)
        info = await self.connection.create_batch(batch.job_id, batch.records)
        batch.batch_id = info.id
        batch.transition(BatchState.ACCEPTED)
        logger.debug(
            f"Batch #{batch.number} accepted as {info.id} ({batch.record_count} records)"
        )
        await self._on_accepted()
        return info

    async def _on_accepted(self) -> None:
        state = self.job_state
        state.batches_accepted += 1
        if state.batches_accepted != state.total_batches or state.closed:
            return

        # Capture the id before closing; everything after this point uses the
        # captured copy held on the immutable Job value.
        job_id = state.job_id
        state.closed = True
        await self.connection.close_job(job_id)
        logger.info(f"Closed job {job_id} after {state.total_batches} batch(es) were queued")
