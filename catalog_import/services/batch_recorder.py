from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from ..logging.error_log import ErrorLogBuffer
from ..models.import_batch import ImportBatch, ImportStats
from ..models.row_error import RowError
from ..store.base import RecordStore, RecordStoreError
from ..store.memory import utc_now_iso

"""Batch recorder: one ImportBatch per import attempt, whatever the outcome.

record_batch never raises on a store failure; the caller still has to get the
import result back. The failure is logged at ERROR and reported as False.
"""

__all__ = [
    "new_import_id",
    "build_batch",
    "record_batch",
]

logger = logging.getLogger(__name__)


def new_import_id() -> str:
    return f"imp-{uuid.uuid4().hex[:12]}"


def build_batch(
    import_id: str,
    file_name: str,
    actor_id: str | None,
    stats: ImportStats,
    errors: Sequence[RowError],
    notes: str | None = None,
    *,
    created_at: str | None = None,
) -> ImportBatch:
    return ImportBatch(
        id=import_id,
        created_at=created_at or utc_now_iso(),
        created_by=actor_id,
        file_name=file_name,
        stats=stats.with_counts(errors=len(errors)),
        errors=list(errors),
        notes=notes,
    )


def record_batch(store: RecordStore, batch: ImportBatch, error_log: ErrorLogBuffer | None = None) -> bool:
    """Persist ``batch`` and mirror its errors to the JSON Lines error log.

    Returns:
        True if the store accepted the batch record
    """
    if error_log is not None and batch.errors:
        error_log.extend(batch.errors, batch.id, batch.file_name)
        try:
            path = error_log.flush()
            logger.info("error log: %s (%d errors)", path, len(batch.errors))
        except OSError as e:
            logger.error("failed to write error log: %s", e)

    try:
        store.store_import_batch(batch)
    except RecordStoreError as e:
        logger.error("failed to store import batch id=%s: %s", batch.id, e)
        return False
    logger.debug("import batch recorded id=%s errors=%d", batch.id, len(batch.errors))
    return True
