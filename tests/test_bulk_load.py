"""Tests for the upsert/delete/status entry points and external id lookup."""

import pytest

from bulk_loader.api.schemas.batch import BatchInfo
from bulk_loader.api.schemas.job import JobStatus
from bulk_loader.core.errors import BulkApiError, CsvDecodeError, InputFileError
from bulk_loader.services.bulk_load import bulk_delete, bulk_status, bulk_upsert
from bulk_loader.services.external_id import find_external_id
from helpers import JOB_ID, FakeBulkConnection, batch_id_for, make_rows


class TestFindExternalId:
    @pytest.mark.asyncio
    async def test_first_flagged_field_wins(self):
        connection = FakeBulkConnection(
            fields=[
                {"name": "Id", "externalId": False},
                {"name": "Legacy_Id__c", "externalId": True},
                {"name": "Ext_Id__c", "externalId": True},
            ]
        )
        assert await find_external_id(connection, "Account") == "Legacy_Id__c"

    @pytest.mark.asyncio
    async def test_no_flagged_field_returns_empty(self):
        connection = FakeBulkConnection(fields=[{"name": "Id", "externalId": False}])
        assert await find_external_id(connection, "Account") == ""


class TestBulkUpsert:
    @pytest.mark.asyncio
    async def test_resolves_external_id_when_not_given(self, write_csv, settings, messages):
        connection = FakeBulkConnection(fields=[{"name": "Ext_Id__c", "externalId": True}])

        acks = await bulk_upsert(
            connection, "Account", write_csv(make_rows(3)), settings=settings, notify=messages.append
        )

        assert connection.calls[0] == ("describe", "Account")
        assert connection.calls[1] == ("create_job", "Account", "upsert", "Ext_Id__c")
        assert [ack.batch_id for ack in acks] == [batch_id_for(0)]

    @pytest.mark.asyncio
    async def test_given_external_id_skips_describe(self, write_csv, settings, messages):
        connection = FakeBulkConnection()

        await bulk_upsert(
            connection,
            "Account",
            write_csv(make_rows(1)),
            external_id_field="Ext_Id__c",
            settings=settings,
            notify=messages.append,
        )

        assert not any(call[0] == "describe" for call in connection.calls)

    @pytest.mark.asyncio
    async def test_batches_follow_configured_size(self, write_csv, settings, messages):
        connection = FakeBulkConnection()
        small = settings.model_copy(update={"bulk_max_batch_size": 2})

        acks = await bulk_upsert(
            connection,
            "Account",
            write_csv(make_rows(5)),
            external_id_field="Ext_Id__c",
            settings=small,
            notify=messages.append,
        )

        assert [ack.index for ack in acks] == [0, 1, 2]
        assert [len(records) for records in connection.records.values()] == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_missing_file_fails_before_any_remote_call(self, tmp_path, settings, messages):
        connection = FakeBulkConnection()

        with pytest.raises(InputFileError, match="does not exist"):
            await bulk_upsert(
                connection, "Account", tmp_path / "missing.csv", settings=settings, notify=messages.append
            )

        assert connection.calls == []

    @pytest.mark.asyncio
    async def test_malformed_file_fails_before_any_remote_call(self, tmp_path, settings, messages):
        path = tmp_path / "bad.csv"
        path.write_text("Name,Ext_Id__c\nAcme\n")
        connection = FakeBulkConnection()

        with pytest.raises(CsvDecodeError):
            await bulk_upsert(connection, "Account", path, settings=settings, notify=messages.append)

        assert connection.calls == []

    @pytest.mark.asyncio
    async def test_negative_wait_is_rejected(self, write_csv, settings, messages):
        with pytest.raises(ValueError):
            await bulk_upsert(
                FakeBulkConnection(),
                "Account",
                write_csv(make_rows(1)),
                wait_minutes=-1,
                settings=settings,
                notify=messages.append,
            )

    @pytest.mark.asyncio
    async def test_wait_mode_returns_job_status(self, write_csv, settings, messages):
        connection = FakeBulkConnection()

        status = await bulk_upsert(
            connection,
            "Account",
            write_csv(make_rows(4)),
            external_id_field="Ext_Id__c",
            wait_minutes=1,
            settings=settings,
            notify=messages.append,
        )

        assert isinstance(status, JobStatus)
        assert status.records_processed == 4

    @pytest.mark.asyncio
    async def test_object_without_external_id_is_rejected_at_job_creation(
        self, write_csv, settings, messages
    ):
        connection = FakeBulkConnection(require_external_id=True)

        with pytest.raises(BulkApiError) as exc_info:
            await bulk_upsert(
                connection, "Account", write_csv(make_rows(1)), settings=settings, notify=messages.append
            )

        assert str(exc_info.value) == "An External ID is required on Account to perform an upsert."
        assert exc_info.value.status_code == 400
        assert connection.calls == [
            ("describe", "Account"),
            ("create_job", "Account", "upsert", None),
        ]


class TestBulkDelete:
    @pytest.mark.asyncio
    async def test_creates_delete_job_without_external_id(self, write_csv, settings, messages):
        connection = FakeBulkConnection()
        path = write_csv([{"Id": "001000000000001AAA"}, {"Id": "001000000000002AAA"}])

        acks = await bulk_delete(connection, "Account", path, settings=settings, notify=messages.append)

        assert connection.calls[0] == ("create_job", "Account", "delete", None)
        assert len(acks) == 1
        assert connection.records[batch_id_for(0)] == [
            {"Id": "001000000000001AAA"},
            {"Id": "001000000000002AAA"},
        ]


class TestBulkStatus:
    @pytest.mark.asyncio
    async def test_job_status_without_batch_id(self, fake_connection, messages):
        await fake_connection.create_job("Account", "upsert")
        await fake_connection.create_batch(JOB_ID, make_rows(1))

        status = await bulk_status(fake_connection, JOB_ID, notify=messages.append)

        assert isinstance(status, JobStatus)
        assert status.batches_total == 1

    @pytest.mark.asyncio
    async def test_batch_status_with_batch_id(self, fake_connection, messages):
        await fake_connection.create_job("Account", "upsert")
        await fake_connection.create_batch(JOB_ID, make_rows(1))

        info = await bulk_status(fake_connection, JOB_ID, batch_id_for(0), notify=messages.append)

        assert isinstance(info, BatchInfo)
        assert info.id == batch_id_for(0)
