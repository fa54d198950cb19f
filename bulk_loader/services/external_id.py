"""Pick an external id field for upserts when the caller did not name one."""

from __future__ import annotations

import logging

from bulk_loader.services.connection import BulkConnection

logger = logging.getLogger(__name__)


async def find_external_id(connection: BulkConnection, object_type: str) -> str:
    """Return the first field flagged as an external id, or "" if there is none.

    An empty result is not an error here: the bulk service rejects the upsert
    at submission time if the object really needs one.
    """
    fields = await connection.describe(object_type)
    for field in fields:
        if field.external_id:
            logger.info(f"Using external id field {field.name} for {object_type}")
            return field.name
    logger.warning(f"No external id field found on {object_type}")
    return ""
