"""Look up the status of a bulk job or one of its batches."""

from __future__ import annotations

import logging

from bulk_loader.api.schemas.batch import BatchInfo
from bulk_loader.api.schemas.job import JobStatus
from bulk_loader.core.errors import BatchNotFoundError
from bulk_loader.services import display
from bulk_loader.services.connection import BulkConnection

logger = logging.getLogger(__name__)


async def fetch_job_status(
    connection: BulkConnection,
    job_id: str,
    notify: display.Notify = display.info,
) -> JobStatus:
    """Fetch a fresh job snapshot with its batch list and render it."""
    info = await connection.check_job(job_id)
    batches = await connection.list_batches(job_id)
    status = JobStatus.from_remote(job_id, info, batches)
    display.render_job_status(status, notify=notify)
    return status


async def fetch_batch_status(
    connection: BulkConnection,
    job_id: str,
    batch_id: str,
    notify: display.Notify = display.info,
) -> BatchInfo:
    """Find one batch under the job and render it."""
    batches = await connection.list_batches(job_id)
    for batch in batches:
        if batch.id == batch_id:
            display.render_batch_status(batch, notify=notify)
            return batch
    logger.warning(f"Batch {batch_id} not found among {len(batches)} batch(es) of job {job_id}")
    raise BatchNotFoundError(job_id, batch_id)
