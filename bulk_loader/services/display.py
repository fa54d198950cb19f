"""Plain-text rendering of bulk job and batch status."""

from __future__ import annotations

import sys
from collections.abc import Callable
from enum import Enum

from bulk_loader.api.schemas.batch import BatchInfo, BatchResult
from bulk_loader.api.schemas.job import JobStatus

Notify = Callable[[str], None]

_BATCH_FIELDS = (
    ("id", "Batch Id"),
    ("job_id", "Job Id"),
    ("state", "State"),
    ("state_message", "State Message"),
    ("number_records_processed", "Records Processed"),
    ("number_records_failed", "Records Failed"),
    ("created_date", "Created Date"),
    ("system_modstamp", "Last Modified"),
    ("total_processing_time", "Processing Time (ms)"),
)


def info(message: str) -> None:
    """Write a user-facing line to stdout."""
    print(message, file=sys.stdout, flush=True)


def _header(title: str) -> list[str]:
    return [f"=== {title}"]


def _value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def format_batch_status(
    summary: BatchInfo,
    results: list[BatchResult] | None = None,
    batch_num: int | None = None,
) -> list[str]:
    lines: list[str] = [""]
    if batch_num:
        lines += _header(f"Batch #{batch_num}")
    if results:
        errors = [error.message for result in results for error in result.errors]
        if errors:
            lines += _header("Error Details")
            lines += errors
    for attr, label in _BATCH_FIELDS:
        lines.append(f"{label:<22} {_value(getattr(summary, attr))}")
    return lines


def format_job_status(status: JobStatus) -> list[str]:
    lines = [""] + _header("Job Status")
    lines += [
        f"{'Job Id':<22} {status.job_id}",
        f"{'Object':<22} {status.object or ''}",
        f"{'Operation':<22} {status.operation or ''}",
        f"{'State':<22} {status.state}",
        f"{'Batches Total':<22} {status.batches_total}",
        f"{'Batches Completed':<22} {status.batches_completed}",
        f"{'Batches Failed':<22} {status.batches_failed}",
        f"{'Records Processed':<22} {status.records_processed}",
        f"{'Records Failed':<22} {status.records_failed}",
    ]
    return lines


def render_batch_status(
    summary: BatchInfo,
    results: list[BatchResult] | None = None,
    batch_num: int | None = None,
    notify: Notify = info,
) -> None:
    for line in format_batch_status(summary, results, batch_num):
        notify(line)


def render_job_status(status: JobStatus, notify: Notify = info) -> None:
    for line in format_job_status(status):
        notify(line)
