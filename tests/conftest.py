"""Shared fixtures for the bulk loader tests."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any

import pytest

from bulk_loader.core.config import Settings
from helpers import FakeBulkConnection


@pytest.fixture
def fake_connection():
    return FakeBulkConnection()


@pytest.fixture
def messages():
    """Collects user-facing lines instead of printing them."""
    return []


@pytest.fixture
def settings():
    return Settings(access_token="00Dxx!token", bulk_poll_interval_ms=1)


@pytest.fixture
def write_csv(tmp_path):
    def _write(rows: list[dict[str, Any]] | None = None, name: str = "records.csv", header=None) -> Path:
        path = tmp_path / name
        rows = rows or []
        fieldnames = header or (list(rows[0].keys()) if rows else ["Name", "Ext_Id__c"])
        with path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(rows)
        return path

    return _write


