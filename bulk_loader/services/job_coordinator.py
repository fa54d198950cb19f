"""Run every batch of a bulk job concurrently and aggregate their outcomes."""

from __future__ import annotations

import asyncio
import logging

from bulk_loader.api.schemas.batch import BatchAck, BatchOutcome, PlannedBatch
from bulk_loader.api.schemas.job import Job, JobStatus, Operation
from bulk_loader.core.errors import BatchFailedError, BulkApiError, BulkLoadError
from bulk_loader.services import display
from bulk_loader.services.batch_executor import BatchExecutor, JobState
from bulk_loader.services.bulk_status import fetch_job_status
from bulk_loader.services.completion_tracker import (
    DEFAULT_POLL_INTERVAL_MS,
    CompletionTracker,
    remap_error_message,
)
from bulk_loader.services.connection import BulkConnection

logger = logging.getLogger(__name__)


class JobCoordinator:
    """Creates the job, fans out one tracker per batch and joins them all.

    Batches are never cancelled because a sibling failed: every tracker runs to
    its own terminal outcome before the aggregate is decided.
    """

    def __init__(
        self,
        connection: BulkConnection,
        *,
        object_type: str,
        operation: Operation,
        external_id_field: str | None = None,
        wait_minutes: float | None = None,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        concurrency_mode: str = "Parallel",
        notify: display.Notify = display.info,
    ) -> None:
        self.connection = connection
        self.object_type = object_type
        self.operation = Operation(operation)
        self.external_id_field = external_id_field or None
        self.wait_minutes = wait_minutes
        self.poll_interval_ms = poll_interval_ms
        self.concurrency_mode = concurrency_mode
        self.notify = notify
        self.job_state: JobState | None = None

    @property
    def wait_mode(self) -> bool:
        return bool(self.wait_minutes and self.wait_minutes > 0)

    async def create_job(self, total_batches: int) -> JobState:
        try:
            info = await self.connection.create_job(
                self.object_type,
                self.operation,
                external_id_field=self.external_id_field,
                concurrency_mode=self.concurrency_mode,
            )
        except BulkApiError as e:
            # Schema errors such as a missing external id surface at job creation.
            message = remap_error_message(e, self.object_type, self.notify)
            logger.error(
                f"Could not create {self.operation.value} job on {self.object_type}: {message}"
            )
            raise BulkApiError(
                message,
                exception_code=e.exception_code,
                status_code=e.status_code,
            ) from e
        if not info.id:
            raise BulkApiError(f"Bulk API returned no job id for {self.object_type}")
        job = Job(
            id=info.id,
            object_type=self.object_type,
            operation=self.operation,
            external_id_field=self.external_id_field,
        )
        self.job_state = JobState(job=job, total_batches=total_batches)
        return self.job_state

    async def run(self, batches: list[PlannedBatch]) -> list[BatchAck] | JobStatus:
        """Submit and track all batches.

        Returns the per-batch acknowledgments in immediate-check mode, or a
        fresh job status once every batch is terminal in wait mode. Raises
        ``BulkLoadError`` carrying every batch failure if any batch failed.
        """
        if not batches:
            raise ValueError("At least one planned batch is required")

        job_state = await self.create_job(len(batches))
        executor = BatchExecutor(self.connection, job_state)
        trackers = [
            CompletionTracker(
                self.connection,
                job_state,
                executor.create_batch(planned.index, planned.records),
                wait_minutes=self.wait_minutes,
                poll_interval_ms=self.poll_interval_ms,
                notify=self.notify,
                executor=executor,
            )
            for planned in sorted(batches, key=lambda planned: planned.index)
        ]
        logger.info(
            f"Submitting {len(trackers)} batch(es) to {self.operation.value} job "
            f"{job_state.job_id} on {self.object_type}"
        )

        results = await asyncio.gather(
            *(tracker.run() for tracker in trackers), return_exceptions=True
        )

        failures: list[BatchFailedError] = []
        outcomes: list[BatchAck | BatchOutcome] = []
        unexpected: list[BaseException] = []
        for result in results:
            if isinstance(result, BatchFailedError):
                failures.append(result)
            elif isinstance(result, BaseException):
                unexpected.append(result)
            else:
                outcomes.append(result)

        for failure in sorted(failures, key=lambda failure: failure.index):
            logger.error(
                f"Job {job_state.job_id} batch #{failure.index + 1} "
                f"({failure.batch_id or 'not submitted'}) failed: {failure.message}"
            )
        if unexpected:
            logger.error(
                f"Job {job_state.job_id}: {len(unexpected)} batch(es) raised unexpectedly, "
                f"{len(outcomes)} finished and {len(failures)} failed"
            )
            raise unexpected[0]
        if failures:
            raise BulkLoadError(failures, outcomes)

        if not self.wait_mode:
            return sorted(outcomes, key=lambda ack: ack.index)

        # Every tracker has settled at this point, so the snapshot reflects all batches.
        return await fetch_job_status(self.connection, job_state.job_id, notify=self.notify)
