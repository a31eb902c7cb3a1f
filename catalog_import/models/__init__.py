"""Domain models for the vehicle catalog import engine."""

from .import_batch import (
    ARCHIVE_REASON_MISSING,
    ArchiveLogEntry,
    ImportBatch,
    ImportResult,
    ImportStats,
)
from .row_error import NO_SOURCE_ROW, RowError
from .validated_row import ValidatedRow, ValidationResult
from .vehicle import RECORD_FIELDS, ResolvedVehicleRecord, RowType, VehicleRecord, VehicleStatus

__all__ = [
    # Records
    "RowType",
    "VehicleStatus",
    "VehicleRecord",
    "ResolvedVehicleRecord",
    "RECORD_FIELDS",
    # Validation
    "RowError",
    "NO_SOURCE_ROW",
    "ValidatedRow",
    "ValidationResult",
    # Import audit
    "ImportStats",
    "ImportBatch",
    "ImportResult",
    "ArchiveLogEntry",
    "ARCHIVE_REASON_MISSING",
]
