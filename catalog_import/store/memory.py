from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from ..models.import_batch import ArchiveLogEntry, ImportBatch
from ..models.vehicle import RECORD_FIELDS, RowType, VehicleRecord, VehicleStatus
from .base import DuplicateRecordError, RecordNotFoundError, RecordStoreError

"""In-memory record store.

Used for DISABLE_DB_CONNECT=1 runs, validation dry-runs and tests. Single
threaded; behaves like the PostgreSQL store for every operation the importer
uses (duplicate insert fails, archive writes an audit entry, ...).
"""

__all__ = [
    "InMemoryRecordStore",
    "utc_now_iso",
]

logger = logging.getLogger(__name__)

# 更新不可 (id / created_at は insert 時のみ)
_IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class InMemoryRecordStore:
    """Dict-backed RecordStore."""

    def __init__(
        self,
        records: Iterable[VehicleRecord] = (),
        *,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._clock = clock
        self._records: dict[str, VehicleRecord] = {}
        self.batches: list[ImportBatch] = []
        self.archive_log: list[ArchiveLogEntry] = []
        for r in records:
            self._records[r.id] = r

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def get_by_id(self, record_id: str) -> VehicleRecord | None:
        return self._records.get(record_id)

    def list_ids(self, any_status: bool = True, row_type: RowType | None = None) -> set[str]:
        return {
            r.id
            for r in self._records.values()
            if (any_status or not r.is_archived) and (row_type is None or r.row_type == row_type)
        }

    def list_live_ids(self) -> set[str]:
        """Ids of every non-archived record (draft or live)."""
        return self.list_ids(any_status=False)

    def list_records(
        self,
        statuses: Iterable[VehicleStatus] | None = None,
        include_variants: bool = True,
        base_id: str | None = None,
    ) -> list[VehicleRecord]:
        wanted = set(statuses) if statuses is not None else None
        out = []
        for r in self._records.values():
            if wanted is not None and r.status not in wanted:
                continue
            if not include_variants and r.is_variant:
                continue
            if base_id is not None and r.base_id != base_id:
                continue
            out.append(r)
        return out

    def insert(self, record: VehicleRecord) -> VehicleRecord:
        if record.id in self._records:
            raise DuplicateRecordError(f"duplicate key: vehicle {record.id} already exists")
        ts = self._clock()
        stored = replace(record, created_at=ts, updated_at=ts)
        self._records[record.id] = stored
        return stored

    def update(self, record_id: str, patch: dict[str, Any]) -> VehicleRecord:
        existing = self._records.get(record_id)
        if existing is None:
            raise RecordNotFoundError(f"vehicle {record_id} not found")
        unknown = set(patch) - set(RECORD_FIELDS)
        if unknown:
            raise RecordStoreError(f"unknown fields in patch: {sorted(unknown)}")
        changes = {k: v for k, v in patch.items() if k not in _IMMUTABLE_FIELDS}
        if "gallery_image_urls" in changes:
            changes["gallery_image_urls"] = tuple(changes["gallery_image_urls"] or ())
        if "attributes" in changes:
            changes["attributes"] = dict(changes["attributes"] or {})
        changes["updated_at"] = self._clock()
        updated = replace(existing, **changes)
        self._records[record_id] = updated
        return updated

    def archive(self, record_id: str, reason: str, import_id: str | None = None) -> ArchiveLogEntry:
        existing = self._records.get(record_id)
        if existing is None:
            raise RecordNotFoundError(f"vehicle {record_id} not found")
        ts = self._clock()
        self._records[record_id] = replace(
            existing,
            status=VehicleStatus.ARCHIVED,
            archived_at=ts,
            last_import_id=import_id or existing.last_import_id,
            updated_at=ts,
        )
        entry = ArchiveLogEntry(
            record_id=record_id,
            import_id=import_id,
            archived_at=ts,
            reason=reason,
            previous_status=existing.status,
        )
        self.archive_log.append(entry)
        return entry

    def restore(self, record_id: str) -> VehicleRecord:
        existing = self._records.get(record_id)
        if existing is None:
            raise RecordNotFoundError(f"vehicle {record_id} not found")
        restored = replace(existing, status=VehicleStatus.DRAFT, archived_at=None, updated_at=self._clock())
        self._records[record_id] = restored
        return restored

    def store_import_batch(self, batch: ImportBatch) -> None:
        if any(b.id == batch.id for b in self.batches):
            raise DuplicateRecordError(f"import batch {batch.id} already stored")
        self.batches.append(batch)
        logger.debug("stored import batch id=%s file=%s", batch.id, batch.file_name)

    def list_archive_log(self, record_id: str | None = None) -> list[ArchiveLogEntry]:
        if record_id is None:
            return list(self.archive_log)
        return [e for e in self.archive_log if e.record_id == record_id]
