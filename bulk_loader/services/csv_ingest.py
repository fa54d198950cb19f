"""Decode delimited input files and plan them into size-bounded batches."""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from bulk_loader.api.schemas.batch import PlannedBatch
from bulk_loader.core.errors import CsvDecodeError, InputFileError
from bulk_loader.utils.batching import chunked
from bulk_loader.utils.csv_validator import normalize_row, validate_headers

logger = logging.getLogger(__name__)

# Bulk API hard limit on records per batch
MAX_BATCH_SIZE = 10000

# Increase CSV field size limit to handle large text fields (default is 128KB, set to 32MB)
csv.field_size_limit(32 * 1024 * 1024)


def check_input_file(file_path: str | Path) -> Path:
    """Fail fast on a missing or non-regular input file."""
    path = Path(file_path)
    if not path.exists():
        raise InputFileError(f"The specified path [{file_path}] does not exist")
    if path.is_dir():
        raise InputFileError(
            f"You specified a directory path [{file_path}], but a file is required."
        )
    return path


def iter_csv_rows(file_path: str | Path) -> Iterator[dict[str, Any]]:
    """Yield one dict per data row, keyed by the header names.

    Blank lines are skipped. The file handle is closed when the generator is
    exhausted, raises, or is closed early.
    """
    path = check_input_file(file_path)
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            reader = csv.reader(handle)
            headers: list[str] | None = None
            for row in reader:
                if not row or (len(row) == 1 and not row[0].strip()):
                    continue
                if headers is None:
                    headers = validate_headers(row)
                    continue
                yield normalize_row(row, headers, reader.line_num)
    except PermissionError:
        raise InputFileError(f"Permission denied reading file: {file_path}")
    except UnicodeDecodeError as e:
        raise CsvDecodeError(f"File encoding error: {str(e)}") from e
    except csv.Error as e:
        raise CsvDecodeError(f"CSV parsing error: {str(e)}") from e


def plan_batches(file_path: str | Path, max_batch_size: int = MAX_BATCH_SIZE) -> list[PlannedBatch]:
    """Split the decoded rows into ordered batches of at most ``max_batch_size``.

    An empty file (or a header with no data) still produces a single empty
    batch. A decode error aborts planning without returning partial batches.
    """
    if max_batch_size <= 0 or max_batch_size > MAX_BATCH_SIZE:
        raise ValueError(
            f"Batch size must be between 1 and {MAX_BATCH_SIZE}, got {max_batch_size}"
        )

    rows = iter_csv_rows(file_path)
    try:
        batches = [
            PlannedBatch(index=index, records=chunk)
            for index, chunk in enumerate(chunked(rows, max_batch_size))
        ]
    except CsvDecodeError as e:
        logger.error(f"Aborting batch planning for {file_path}: {e}")
        raise
    finally:
        rows.close()

    total = sum(batch.size for batch in batches)
    logger.info(f"Planned {len(batches)} batch(es) for {total} record(s) from {file_path}")
    return batches
