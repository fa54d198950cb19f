"""Async HTTP client for the Bulk API (JSON content type)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from bulk_loader.api.schemas.batch import BatchInfo, BatchResult
from bulk_loader.api.schemas.job import JobInfo, Operation
from bulk_loader.api.schemas.sobject import FieldMetadata
from bulk_loader.core.config import Settings, get_settings
from bulk_loader.core.errors import BulkApiError
from bulk_loader.services.connection import BulkConnection

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_BACKOFF_SECONDS = 1.0
RETRYABLE_STATUS = frozenset({429, 502, 503, 504})


def _error_from_response(response: httpx.Response) -> BulkApiError:
    """Build a BulkApiError from a Bulk (object) or REST (list) error payload."""
    code = None
    message = None
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        code = payload.get("exceptionCode") or payload.get("errorCode")
        message = payload.get("exceptionMessage") or payload.get("message")
    elif isinstance(payload, list) and payload and isinstance(payload[0], dict):
        code = payload[0].get("errorCode")
        message = payload[0].get("message")

    if not message:
        message = f"HTTP {response.status_code}: {response.text[:200]}"
    return BulkApiError(message, exception_code=code, status_code=response.status_code)


class BulkApiClient(BulkConnection):
    """Talks to ``/services/async/<version>`` for jobs and batches and to the
    REST data API for describe calls."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        access_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        token = access_token or self.settings.access_token
        if not token:
            raise BulkApiError("No access token configured for the org connection")
        self._token = token
        self._client = httpx.AsyncClient(
            timeout=self.settings.request_timeout,
            follow_redirects=True,
            transport=transport,
            headers={"User-Agent": f"{self.settings.app_name}/1.0"},
        )

    @property
    def bulk_endpoint(self) -> str:
        return self.settings.bulk_endpoint

    def _headers(self, bulk: bool) -> dict[str, str]:
        if bulk:
            return {
                "X-SFDC-Session": self._token,
                "Content-Type": "application/json; charset=UTF-8",
                "Accept": "application/json",
            }
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        bulk: bool = True,
        retry: bool = True,
    ) -> Any:
        """Send one API call.

        Timeouts and transient statuses are retried with backoff only when
        ``retry`` is set. Job and batch creation are sent exactly once.
        """
        backoff = RETRY_BACKOFF_SECONDS
        attempts = MAX_RETRIES + 1 if retry else 1
        for attempt in range(attempts):
            try:
                response = await self._client.request(
                    method, url, json=json_body, headers=self._headers(bulk)
                )
            except httpx.TimeoutException as e:
                if attempt < attempts - 1:
                    logger.warning(f"{method} {url} timed out, retrying in {backoff}s")
                    await asyncio.sleep(backoff)
                    backoff *= 2
                    continue
                raise BulkApiError(
                    f"Request timeout after {self.settings.request_timeout}s: {e}"
                ) from e
            except httpx.RequestError as e:
                raise BulkApiError(f"Request failed: {str(e)}") from e

            if response.status_code in RETRYABLE_STATUS and attempt < attempts - 1:
                logger.warning(
                    f"{method} {url} returned {response.status_code}, retrying in {backoff}s"
                )
                await asyncio.sleep(backoff)
                backoff *= 2
                continue

            if response.status_code >= 400:
                error = _error_from_response(response)
                logger.debug(f"{method} {url} failed: {error.exception_code} {error.message}")
                raise error

            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise BulkApiError(
                    f"Unexpected non-JSON response from {url}",
                    status_code=response.status_code,
                ) from e
        raise BulkApiError("Max retries exceeded")

    async def create_job(
        self,
        object_type: str,
        operation: Operation,
        *,
        external_id_field: str | None = None,
        concurrency_mode: str = "Parallel",
    ) -> JobInfo:
        payload: dict[str, Any] = {
            "operation": Operation(operation).value,
            "object": object_type,
            "contentType": "JSON",
            "concurrencyMode": concurrency_mode,
        }
        if external_id_field:
            payload["externalIdFieldName"] = external_id_field
        data = await self._request(
            "POST", f"{self.bulk_endpoint}/job", json_body=payload, retry=False
        )
        info = JobInfo.model_validate(data)
        logger.info(f"Created {payload['operation']} job {info.id} on {object_type}")
        return info

    async def create_batch(self, job_id: str, records: list[dict[str, Any]]) -> BatchInfo:
        data = await self._request(
            "POST", f"{self.bulk_endpoint}/job/{job_id}/batch", json_body=records, retry=False
        )
        return BatchInfo.model_validate(data)

    async def check_batch(self, job_id: str, batch_id: str) -> BatchInfo:
        data = await self._request("GET", f"{self.bulk_endpoint}/job/{job_id}/batch/{batch_id}")
        return BatchInfo.model_validate(data)

    async def batch_results(self, job_id: str, batch_id: str) -> list[BatchResult]:
        data = await self._request(
            "GET", f"{self.bulk_endpoint}/job/{job_id}/batch/{batch_id}/result"
        )
        return [BatchResult.model_validate(item) for item in data or []]

    async def check_job(self, job_id: str) -> JobInfo:
        data = await self._request("GET", f"{self.bulk_endpoint}/job/{job_id}")
        return JobInfo.model_validate(data)

    async def close_job(self, job_id: str) -> JobInfo:
        data = await self._request(
            "POST", f"{self.bulk_endpoint}/job/{job_id}", json_body={"state": "Closed"}
        )
        return JobInfo.model_validate(data)

    async def list_batches(self, job_id: str) -> list[BatchInfo]:
        data = await self._request("GET", f"{self.bulk_endpoint}/job/{job_id}/batch")
        items = data.get("batchInfo", []) if isinstance(data, dict) else data
        return [BatchInfo.model_validate(item) for item in items or []]

    async def describe(self, object_type: str) -> list[FieldMetadata]:
        data = await self._request(
            "GET",
            f"{self.settings.rest_endpoint}/sobjects/{object_type}/describe",
            bulk=False,
        )
        return [FieldMetadata.model_validate(field) for field in data.get("fields", [])]

    async def aclose(self) -> None:
        await self._client.aclose()
