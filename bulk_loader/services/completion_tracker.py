"""Drive one submitted batch to a terminal outcome.

Two modes, picked by the wait duration:

* immediate-check (no wait): once the batch is queued, check its state once.
  A ``Failed`` state fails the batch, anything else resolves with an
  acknowledgment. The caller checks completion later with ``status``.
* wait mode: check once, then poll every ``poll_interval_ms`` until the batch
  completes, fails, or the ``wait_minutes`` deadline passes.

Every failure leaves the tracker as a ``BatchFailedError`` whose message has been
remapped for the known remote error shapes.
"""

from __future__ import annotations

import asyncio
import logging

from bulk_loader.api.schemas.batch import (
    Batch,
    BatchAck,
    BatchInfo,
    BatchOutcome,
    BatchState,
    RemoteBatchState,
)
from bulk_loader.core.errors import BatchFailedError, BulkApiError, PollingTimeoutError
from bulk_loader.services import display
from bulk_loader.services.batch_executor import BatchExecutor, JobState
from bulk_loader.services.connection import BulkConnection

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 5000

EXTERNAL_ID_BLANK_PREFIX = "External ID was blank"
POLLING_TIME_OUT_PREFIX = "Polling time out"
JOB_ID_PREFIX = "750"
BATCH_ID_PREFIX = "751"
RECORD_ID_LENGTH = 18

STATUS_COMMAND = "bulk-loader status -i {job_id} -b {batch_id}"
MSG_EXTERNAL_ID_REQUIRED = "An External ID is required on {object_type} to perform an upsert."
MSG_TIMED_OUT = "The operation timed out. Check the status with command:\n" + STATUS_COMMAND
MSG_CHECK_STATUS = "Check batch #{number}'s status with the command:\n" + STATUS_COMMAND
MSG_POLLING_INFO = (
    "Will poll the batch statuses every {seconds:g} seconds"
    "\nTo fetch the status on your own, press CTRL+C and use the command:"
    "\nbulk-loader status -i {job_id} -b [<batchId>]"
)
MSG_BATCH_QUEUED = "Batch #{number} queued (Batch ID: {batch_id})."
MSG_JOB_ABORTED = "Job has been aborted"


def _id_from_message(message: str, prefix: str) -> str | None:
    start = message.find(prefix)
    if start < 0:
        return None
    return message[start:start + RECORD_ID_LENGTH]


def extract_timeout_ids(error: BulkApiError) -> tuple[str | None, str | None]:
    """Job and batch ids of a polling timeout.

    Structured ids win; the 750/751 prefixed substrings of the message are the
    fallback for errors that only carry text.
    """
    job_id = error.job_id or _id_from_message(error.message, JOB_ID_PREFIX)
    batch_id = error.batch_id or _id_from_message(error.message, BATCH_ID_PREFIX)
    return job_id, batch_id


def remap_error_message(
    error: BulkApiError,
    object_type: str,
    notify: display.Notify = display.info,
) -> str:
    """Rewrite the remote error shapes users cannot act on as-is."""
    message = error.message
    if message.startswith(EXTERNAL_ID_BLANK_PREFIX):
        return MSG_EXTERNAL_ID_REQUIRED.format(object_type=object_type)
    if message.startswith(POLLING_TIME_OUT_PREFIX):
        job_id, batch_id = extract_timeout_ids(error)
        notify(MSG_TIMED_OUT.format(job_id=job_id, batch_id=batch_id))
    return message


class CompletionTracker:
    """Owns one batch from submission until it reports exactly one outcome."""

    def __init__(
        self,
        connection: BulkConnection,
        job_state: JobState,
        batch: Batch,
        *,
        wait_minutes: float | None = None,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        notify: display.Notify = display.info,
        executor: BatchExecutor | None = None,
    ) -> None:
        self.connection = connection
        self.job_state = job_state
        self.batch = batch
        self.wait_minutes = wait_minutes
        self.poll_interval_ms = poll_interval_ms
        self.notify = notify
        self.executor = executor or BatchExecutor(connection, job_state)

    @property
    def wait_mode(self) -> bool:
        return bool(self.wait_minutes and self.wait_minutes > 0)

    @property
    def timeout_ms(self) -> float:
        return (self.wait_minutes or 0) * 60000

    async def run(self) -> BatchAck | BatchOutcome:
        try:
            queued = await self.executor.execute(self.batch)
            if self.wait_mode:
                return await self._wait_for_completion(queued)
            return await self._check_once(queued)
        except BulkApiError as e:
            raise self._failure(e) from e

    async def _check_once(self, queued: BatchInfo) -> BatchAck:
        self.notify(
            MSG_CHECK_STATUS.format(
                number=self.batch.number, job_id=queued.job_id, batch_id=queued.id
            )
        )
        info = await self.connection.check_batch(queued.job_id, queued.id)
        if info.state == RemoteBatchState.FAILED:
            raise self._state_failure(info)

        self.batch.transition(BatchState.CHECKED)
        return BatchAck(
            index=self.batch.index,
            job_id=queued.job_id,
            batch_id=queued.id,
            state=info.state,
        )

    async def _wait_for_completion(self, queued: BatchInfo) -> BatchOutcome:
        info = await self.connection.check_batch(queued.job_id, queued.id)
        if info.state == RemoteBatchState.FAILED:
            raise self._state_failure(info)

        if not self.job_state.polling_notice_shown:
            self.job_state.polling_notice_shown = True
            self.notify(
                MSG_POLLING_INFO.format(
                    seconds=self.poll_interval_ms / 1000, job_id=queued.job_id
                )
            )
        self.notify(MSG_BATCH_QUEUED.format(number=self.batch.number, batch_id=queued.id))

        self.batch.transition(BatchState.POLLING)
        await self._poll(queued.job_id, queued.id)
        return await self._collect(queued.job_id, queued.id)

    async def _poll(self, job_id: str, batch_id: str) -> None:
        """Return once the batch has results to fetch; raise on failure or timeout."""
        loop = asyncio.get_running_loop()
        interval = self.poll_interval_ms / 1000
        deadline = loop.time() + self.timeout_ms / 1000

        while True:
            await asyncio.sleep(interval)
            if loop.time() > deadline:
                raise PollingTimeoutError(job_id, batch_id)

            info = await self.connection.check_batch(job_id, batch_id)
            if info.state == RemoteBatchState.COMPLETED:
                return
            if info.state == RemoteBatchState.FAILED:
                # Records processed before the failure still have results.
                if info.number_records_processed > 0:
                    return
                raise BulkApiError(
                    info.state_message or f"Batch {batch_id} failed",
                    job_id=job_id,
                    batch_id=batch_id,
                )
            if info.state == RemoteBatchState.NOT_PROCESSED:
                raise BulkApiError(MSG_JOB_ABORTED, job_id=job_id, batch_id=batch_id)

            logger.debug(
                f"Batch #{self.batch.number} {batch_id} is {info.state.value} "
                f"({info.number_records_processed} processed)"
            )

    async def _collect(self, job_id: str, batch_id: str) -> BatchOutcome:
        results = await self.connection.batch_results(job_id, batch_id)
        summary = await self.connection.check_batch(job_id, batch_id)
        display.render_batch_status(summary, results, self.batch.number, notify=self.notify)
        self.batch.transition(BatchState.COMPLETED)
        return BatchOutcome(index=self.batch.index, summary=summary, results=results)

    def _state_failure(self, info: BatchInfo) -> BatchFailedError:
        error = BulkApiError(
            info.state_message or f"Batch {info.id} failed",
            job_id=info.job_id,
            batch_id=info.id,
        )
        return self._failure(error)

    def _failure(self, error: BulkApiError) -> BatchFailedError:
        timed_out = isinstance(error, PollingTimeoutError)
        message = remap_error_message(error, self.job_state.job.object_type, self.notify)
        if not self.batch.is_terminal:
            self.batch.transition(BatchState.TIMED_OUT if timed_out else BatchState.FAILED)
        logger.error(f"Batch #{self.batch.number} failed: {message}")
        return BatchFailedError(
            message,
            index=self.batch.index,
            job_id=self.job_state.job_id,
            batch_id=self.batch.batch_id or error.batch_id,
            timed_out=timed_out,
        )
