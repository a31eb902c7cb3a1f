from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from ..models.vehicle import RowType, VehicleRecord
from ..schema.catalog import ALL_COLUMNS, PIPE_SEPARATOR

"""Catalog CSV export.

Output is the exact import contract: header = ALL_COLUMNS, pipe-joined
gallery, blank cell for None. Exporting and re-importing unmodified is a
no-op on record content.
"""

__all__ = [
    "sort_records_for_export",
    "build_csv_content",
    "write_csv_file",
]


def _format_price(price: float | None) -> str:
    if price is None:
        return ""
    if float(price).is_integer():
        return str(int(price))
    return str(price)


def _record_cells(record: VehicleRecord) -> dict[str, str]:
    cells = {
        "row_type": record.row_type.value,
        "base_id": record.base_id,
        "variant_code": record.variant_code or "",
        "id": record.id,
        "make": record.make or "",
        "model": record.model or "",
        "year": str(record.year) if record.year else "",
        "body_type": record.body_type or "",
        "status": record.status.value,
        "price_aud": _format_price(record.price_aud),
        "cover_image_url": record.cover_image_url or "",
        "gallery_image_urls": PIPE_SEPARATOR.join(record.gallery_image_urls),
        "image_source": record.image_source or "",
        "license_note": record.license_note or "",
    }
    for col in ALL_COLUMNS:
        if col not in cells:
            value = record.attributes.get(col)
            cells[col] = "" if value is None else value
    return cells


def sort_records_for_export(records: Iterable[VehicleRecord]) -> list[VehicleRecord]:
    """base_id, then BASE before its VARIANTs, then variant_code."""
    return sorted(
        records,
        key=lambda r: (r.base_id, 0 if r.row_type == RowType.BASE else 1, r.variant_code or ""),
    )


def build_csv_content(records: Iterable[VehicleRecord]) -> str:
    """Render records (in the given order) as CSV text."""
    rows = [_record_cells(r) for r in records]
    df = pd.DataFrame(rows, columns=list(ALL_COLUMNS), dtype=str)
    return df.to_csv(index=False, lineterminator="\n")


def write_csv_file(records: Iterable[VehicleRecord], path: Path) -> int:
    """Write sorted records to ``path``; returns the number of data rows."""
    ordered = sort_records_for_export(records)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(build_csv_content(ordered), encoding="utf-8")
    return len(ordered)
