from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""RowError model for import error reporting.

Row numbers match spreadsheet rows: first data row = 2 (row 1 is the header).
row_number=-1 is the sentinel for errors with no source row (archival of a
record missing from the file, cancellation, ...).

The JSON Lines form adds ``timestamp``, ``import_id`` and ``file``; its key
set is fixed by catalog_import/logging/error_log_schema.json.
"""

__all__ = [
    "RowError",
    "NO_SOURCE_ROW",
]

NO_SOURCE_ROW = -1


@dataclass(frozen=True)
class RowError:
    """One validation or write problem, attributable to a CSV row where possible.

    Attributes:
        row_number: Spreadsheet row number (header = 1). -1 when unknown
        vehicle_id: Record id if it could be determined
        field: CSV column the problem relates to, if any
        message: Human readable description
    """
    row_number: int
    vehicle_id: str | None
    field: str | None
    message: str

    @staticmethod
    def create(row_number: int, vehicle_id: str | None, field: str | None, message: str) -> RowError:
        # 空文字 id は「不明」として扱う
        return RowError(
            row_number=row_number,
            vehicle_id=vehicle_id or None,
            field=field or None,
            message=message,
        )

    def to_dict(self) -> dict[str, object]:
        return asdict(self)

    def to_json_line(self, import_id: str, file: str) -> str:
        """Serialize to one JSON Lines record (no extra keys allowed)."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        payload = {
            "timestamp": ts,
            "import_id": import_id,
            "file": file,
            **asdict(self),
        }
        return json.dumps(payload, ensure_ascii=False)

    def __str__(self) -> str:
        where = f"row {self.row_number}" if self.row_number != NO_SOURCE_ROW else "no row"
        parts = [where]
        if self.vehicle_id:
            parts.append(f"id={self.vehicle_id}")
        if self.field:
            parts.append(f"field={self.field}")
        return f"[{' '.join(parts)}] {self.message}"
