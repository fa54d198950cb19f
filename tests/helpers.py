"""Test helpers: an in-memory bulk service and row builders."""

from __future__ import annotations

import asyncio
from typing import Any

from bulk_loader.api.schemas.batch import BatchInfo, BatchResult, RemoteBatchState
from bulk_loader.api.schemas.job import JobInfo, Operation
from bulk_loader.api.schemas.sobject import FieldMetadata
from bulk_loader.core.errors import BulkApiError
from bulk_loader.services.connection import BulkConnection

JOB_ID = "7505e00000AbCdEAAV"


def batch_id_for(index: int) -> str:
    return f"751{index:015d}"


class FakeBulkConnection(BulkConnection):
    """Scriptable stand-in for the remote bulk service.

    ``states`` maps a batch index to the sequence of states returned by
    successive ``check_batch`` calls; the last state repeats forever.
    """

    def __init__(
        self,
        *,
        states: dict[int, list[str]] | None = None,
        state_messages: dict[int, str] | None = None,
        processed: dict[int, int] | None = None,
        submit_delays: dict[int, float] | None = None,
        submit_errors: dict[int, BulkApiError] | None = None,
        fields: list[dict[str, Any]] | None = None,
        default_states: list[str] | None = None,
        require_external_id: bool = False,
    ) -> None:
        self.states = states or {}
        self.state_messages = state_messages or {}
        self.processed = processed or {}
        self.submit_delays = submit_delays or {}
        self.submit_errors = submit_errors or {}
        self.fields = fields or []
        self.default_states = default_states or ["Queued", "Completed"]
        self.require_external_id = require_external_id
        self.job: dict[str, Any] | None = None
        self.records: dict[str, list[dict[str, Any]]] = {}
        self.indexes: dict[str, int] = {}
        self.check_calls: dict[str, int] = {}
        self.current_state: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.closed_jobs: list[str] = []
        self.completion_order: list[int] = []
        self.aclosed = False

    async def create_job(self, object_type, operation, *, external_id_field=None, concurrency_mode="Parallel"):
        self.calls.append(("create_job", object_type, Operation(operation).value, external_id_field))
        if self.require_external_id and Operation(operation) == Operation.UPSERT and not external_id_field:
            raise BulkApiError(
                f"External ID was blank for {object_type}", exception_code="InvalidJob", status_code=400
            )
        self.job = {
            "id": JOB_ID,
            "object": object_type,
            "operation": Operation(operation).value,
            "state": "Open",
            "externalIdFieldName": external_id_field,
            "concurrencyMode": concurrency_mode,
        }
        return JobInfo.model_validate(self.job)

    async def create_batch(self, job_id, records):
        self._require_job(job_id)
        index = len(self.records)
        batch_id = batch_id_for(index)
        self.records[batch_id] = list(records)
        self.indexes[batch_id] = index
        self.current_state[batch_id] = "Queued"
        self.calls.append(("create_batch", job_id, index))
        await asyncio.sleep(self.submit_delays.get(index, 0))
        if index in self.submit_errors:
            raise self.submit_errors[index]
        return self._info(batch_id)

    async def check_batch(self, job_id, batch_id):
        self._require_job(job_id)
        index = self.indexes[batch_id]
        script = self.states.get(index, self.default_states)
        call = self.check_calls.get(batch_id, 0)
        self.check_calls[batch_id] = call + 1
        state = script[min(call, len(script) - 1)]
        self.current_state[batch_id] = state
        return self._info(batch_id)

    async def batch_results(self, job_id, batch_id):
        self._require_job(job_id)
        index = self.indexes[batch_id]
        self.completion_order.append(index)
        self.calls.append(("batch_results", job_id, index))
        return [
            BatchResult(id=f"001{index:05d}{n:010d}", success=True, created=True)
            for n, _ in enumerate(self.records[batch_id])
        ]

    async def check_job(self, job_id):
        self._require_job(job_id)
        self.calls.append(("check_job", job_id))
        states = list(self.current_state.values())
        return JobInfo.model_validate(
            {
                **self.job,
                "numberBatchesTotal": len(states),
                "numberBatchesCompleted": states.count("Completed"),
                "numberBatchesFailed": states.count("Failed"),
                "numberRecordsProcessed": sum(len(r) for r in self.records.values()),
            }
        )

    async def close_job(self, job_id):
        self._require_job(job_id)
        self.calls.append(("close_job", job_id))
        self.closed_jobs.append(job_id)
        self.job["state"] = "Closed"
        # The service answers without an id, like clients that clear it on close.
        return JobInfo.model_validate({**self.job, "id": None})

    async def list_batches(self, job_id):
        self._require_job(job_id)
        return [self._info(batch_id) for batch_id in self.records]

    async def describe(self, object_type):
        self.calls.append(("describe", object_type))
        return [FieldMetadata.model_validate(field) for field in self.fields]

    async def aclose(self):
        self.aclosed = True

    def _require_job(self, job_id):
        if not job_id or self.job is None or job_id != self.job["id"]:
            raise BulkApiError(f"Invalid job id: {job_id!r}", exception_code="InvalidJob")

    def _info(self, batch_id) -> BatchInfo:
        index = self.indexes[batch_id]
        state = self.current_state[batch_id]
        processed = len(self.records[batch_id]) if state == "Completed" else 0
        return BatchInfo.model_validate(
            {
                "id": batch_id,
                "jobId": self.job["id"],
                "state": RemoteBatchState(state).value,
                "stateMessage": self.state_messages.get(index),
                "numberRecordsProcessed": self.processed.get(index, processed),
                "numberRecordsFailed": 0,
            }
        )


def make_rows(count: int) -> list[dict[str, str]]:
    return [{"Name": f"Account {n}", "Ext_Id__c": f"EXT-{n}"} for n in range(count)]
