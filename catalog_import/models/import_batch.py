from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any

from .row_error import RowError
from .vehicle import VehicleStatus

"""Import batch, stats, result and archive log models.

ImportBatch is the append-only audit record written once per import attempt,
whatever the outcome. ArchiveLogEntry is written by the record store once per
archival event.
"""

__all__ = [
    "ImportStats",
    "ImportBatch",
    "ImportResult",
    "ArchiveLogEntry",
    "ARCHIVE_REASON_MISSING",
]

ARCHIVE_REASON_MISSING = "missing_from_import"


@dataclass(frozen=True)
class ImportStats:
    """Per-import counters (stored as JSON in the batch record)."""
    total_rows: int = 0  # validated rows
    base_rows: int = 0
    variant_rows: int = 0
    created: int = 0
    updated: int = 0
    archived: int = 0
    errors: int = 0

    def with_counts(self, **changes: int) -> ImportStats:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ImportBatch:
    """Audit record for one import attempt (immutable once stored)."""
    id: str
    created_at: str
    created_by: str | None
    file_name: str
    stats: ImportStats
    errors: list[RowError] = field(default_factory=list)
    notes: str | None = None  # header failure summary / pack pricing notes

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at,
            "created_by": self.created_by,
            "file_name": self.file_name,
            "stats": self.stats.to_dict(),
            "errors": [e.to_dict() for e in self.errors],
            "notes": self.notes,
        }


@dataclass(frozen=True)
class ImportResult:
    """What the caller gets back from an import attempt.

    success is True only when zero errors of any kind occurred.
    batch_persisted is False if the store rejected the batch record.
    """
    batch: ImportBatch
    success: bool
    stats: ImportStats
    errors: list[RowError]
    batch_persisted: bool = True
    cancelled: bool = False


@dataclass(frozen=True)
class ArchiveLogEntry:
    """One archival event (audit log)."""
    record_id: str
    import_id: str | None
    archived_at: str
    reason: str
    previous_status: VehicleStatus
    new_status: VehicleStatus = VehicleStatus.ARCHIVED

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["previous_status"] = self.previous_status.value
        data["new_status"] = self.new_status.value
        return data
