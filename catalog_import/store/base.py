from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

from ..models.import_batch import ArchiveLogEntry, ImportBatch
from ..models.vehicle import RowType, VehicleRecord, VehicleStatus

"""Record store interface consumed by the import engine.

Every call may fail independently with RecordStoreError, so the orchestrator
can attribute a failure to one row and carry on with the rest.

Consistency: list_ids / list_live_ids are point-in-time reads. The importer
plans all of its writes from one snapshot and never refreshes it mid-batch;
concurrent imports against the same store are not coordinated.
"""

__all__ = [
    "RecordStore",
    "RecordStoreError",
    "RecordNotFoundError",
    "DuplicateRecordError",
]


class RecordStoreError(Exception):
    """A single store operation failed."""


class RecordNotFoundError(RecordStoreError):
    pass


class DuplicateRecordError(RecordStoreError):
    pass


@runtime_checkable
class RecordStore(Protocol):
    def get_by_id(self, record_id: str) -> VehicleRecord | None: ...

    def list_ids(self, any_status: bool = True, row_type: RowType | None = None) -> set[str]: ...

    def list_live_ids(self) -> set[str]: ...

    def list_records(
        self,
        statuses: Iterable[VehicleStatus] | None = None,
        include_variants: bool = True,
        base_id: str | None = None,
    ) -> list[VehicleRecord]: ...

    def insert(self, record: VehicleRecord) -> VehicleRecord: ...

    def update(self, record_id: str, patch: dict[str, Any]) -> VehicleRecord: ...

    def archive(self, record_id: str, reason: str, import_id: str | None = None) -> ArchiveLogEntry: ...

    def restore(self, record_id: str) -> VehicleRecord: ...

    def store_import_batch(self, batch: ImportBatch) -> None: ...

    def list_archive_log(self, record_id: str | None = None) -> list[ArchiveLogEntry]: ...
