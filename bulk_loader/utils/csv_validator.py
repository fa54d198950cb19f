"""Validate CSV headers and enforce row shape."""

from __future__ import annotations

from typing import Any

from bulk_loader.core.errors import CsvDecodeError


class ValidationError(CsvDecodeError):
    """Custom exception for CSV validation errors."""

    pass


BOM = "\ufeff"


def validate_headers(headers: list[str] | None) -> list[str]:
    """Return cleaned header names, rejecting blank or duplicate columns."""
    if not headers:
        return []
    cleaned = [header.strip() for header in headers]
    if cleaned and cleaned[0].startswith(BOM):
        cleaned[0] = cleaned[0][1:]

    blank = [str(i + 1) for i, header in enumerate(cleaned) if not header]
    if blank:
        raise ValidationError(f"Blank column name at position(s): {', '.join(blank)}")

    seen: set[str] = set()
    duplicates = []
    for header in cleaned:
        if header in seen:
            duplicates.append(header)
        seen.add(header)
    if duplicates:
        raise ValidationError(f"Duplicate column(s): {', '.join(duplicates)}")
    return cleaned


def normalize_row(row: list[str], headers: list[str], line_num: int) -> dict[str, Any]:
    """Map one parsed row onto the header names.

    A row with more or fewer values than there are columns is malformed.
    """
    if len(row) != len(headers):
        raise ValidationError(
            f"Invalid record length on line {line_num}: "
            f"expected {len(headers)} fields, got {len(row)}"
        )
    return dict(zip(headers, row))
