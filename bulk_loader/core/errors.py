"""Exception taxonomy shared by the planner, the trackers and the CLI."""

from __future__ import annotations

from typing import Any


class BulkLoaderError(Exception):
    """Base class for every error raised by the bulk loader."""


class InputFileError(BulkLoaderError, ValueError):
    """Input file is missing, a directory, or unreadable."""


class CsvDecodeError(BulkLoaderError, ValueError):
    """Delimited content could not be decoded into rows."""


class BulkApiError(BulkLoaderError):
    """Error reported by the remote bulk service or its transport."""

    def __init__(
        self,
        message: str,
        *,
        exception_code: str | None = None,
        status_code: int | None = None,
        job_id: str | None = None,
        batch_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.exception_code = exception_code
        self.status_code = status_code
        self.job_id = job_id
        self.batch_id = batch_id


class PollingTimeoutError(BulkApiError):
    """Batch did not reach a terminal state before the wait deadline."""

    def __init__(self, job_id: str, batch_id: str) -> None:
        super().__init__(
            f"Polling time out. Job Id = {job_id} , Batch Id = {batch_id}",
            exception_code="PollingTimeout",
            job_id=job_id,
            batch_id=batch_id,
        )


class BatchFailedError(BulkLoaderError):
    """Terminal failure of a single batch."""

    def __init__(
        self,
        message: str,
        *,
        index: int,
        job_id: str | None = None,
        batch_id: str | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.index = index
        self.job_id = job_id
        self.batch_id = batch_id
        self.timed_out = timed_out


class BulkLoadError(BulkLoaderError):
    """Aggregate failure of a bulk load.

    Carries every batch failure (ordered by batch index) and the outcomes of the
    batches that did finish, so nothing reported by the remote service is lost.
    """

    def __init__(
        self,
        failures: list[BatchFailedError],
        outcomes: list[Any] | None = None,
    ) -> None:
        if not failures:
            raise ValueError("BulkLoadError requires at least one failure")
        self.failures = sorted(failures, key=lambda failure: failure.index)
        self.outcomes = outcomes or []
        super().__init__(self.failures[0].message)

    @property
    def first(self) -> BatchFailedError:
        return self.failures[0]


class BatchNotFoundError(BulkLoaderError):
    """No batch with the requested id exists under the job."""

    def __init__(self, job_id: str, batch_id: str) -> None:
        super().__init__(f"Unable to find batch {batch_id} for job {job_id}.")
        self.job_id = job_id
        self.batch_id = batch_id
