"""Entry points for bulk upsert, bulk delete and status lookup."""

from __future__ import annotations

import logging
from pathlib import Path

from bulk_loader.api.schemas.batch import BatchAck, BatchInfo
from bulk_loader.api.schemas.job import JobStatus, Operation
from bulk_loader.core.config import Settings, get_settings
from bulk_loader.services import display
from bulk_loader.services.bulk_status import fetch_batch_status, fetch_job_status
from bulk_loader.services.connection import BulkConnection
from bulk_loader.services.csv_ingest import plan_batches
from bulk_loader.services.external_id import find_external_id
from bulk_loader.services.job_coordinator import JobCoordinator

logger = logging.getLogger(__name__)


async def _load(
    connection: BulkConnection,
    operation: Operation,
    object_type: str,
    input_path: str | Path,
    *,
    external_id_field: str | None,
    wait_minutes: float | None,
    settings: Settings,
    notify: display.Notify,
) -> list[BatchAck] | JobStatus:
    if wait_minutes is not None and wait_minutes < 0:
        raise ValueError(f"Wait must be zero or more minutes, got {wait_minutes}")

    # Input problems surface here, before any job exists on the remote side.
    batches = plan_batches(input_path, settings.bulk_max_batch_size)

    if operation == Operation.UPSERT and not external_id_field:
        external_id_field = await find_external_id(connection, object_type)

    coordinator = JobCoordinator(
        connection,
        object_type=object_type,
        operation=operation,
        external_id_field=external_id_field,
        wait_minutes=wait_minutes,
        poll_interval_ms=settings.bulk_poll_interval_ms,
        concurrency_mode=settings.bulk_concurrency_mode,
        notify=notify,
    )
    return await coordinator.run(batches)


async def bulk_upsert(
    connection: BulkConnection,
    object_type: str,
    input_path: str | Path,
    external_id_field: str | None = None,
    wait_minutes: float | None = None,
    *,
    settings: Settings | None = None,
    notify: display.Notify = display.info,
) -> list[BatchAck] | JobStatus:
    """Upsert the rows of a CSV file, matching on the external id field."""
    return await _load(
        connection,
        Operation.UPSERT,
        object_type,
        input_path,
        external_id_field=external_id_field,
        wait_minutes=wait_minutes,
        settings=settings or get_settings(),
        notify=notify,
    )


async def bulk_delete(
    connection: BulkConnection,
    object_type: str,
    input_path: str | Path,
    wait_minutes: float | None = None,
    *,
    settings: Settings | None = None,
    notify: display.Notify = display.info,
) -> list[BatchAck] | JobStatus:
    """Delete the records whose ids are listed in a CSV file."""
    return await _load(
        connection,
        Operation.DELETE,
        object_type,
        input_path,
        external_id_field=None,
        wait_minutes=wait_minutes,
        settings=settings or get_settings(),
        notify=notify,
    )


async def bulk_status(
    connection: BulkConnection,
    job_id: str,
    batch_id: str | None = None,
    *,
    notify: display.Notify = display.info,
) -> JobStatus | BatchInfo:
    if batch_id:
        return await fetch_batch_status(connection, job_id, batch_id, notify=notify)
    return await fetch_job_status(connection, job_id, notify=notify)
