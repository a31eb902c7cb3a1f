from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence

from ..models.row_error import RowError
from ..models.validated_row import ValidatedRow, ValidationResult
from ..models.vehicle import RowType, VehicleStatus
from ..schema.catalog import PACK_DEPENDENCY_KEYS, REQUIRED_COLUMNS, SPEC_COLUMNS, is_valid_pipe_list, split_pipe
from .resolver import PACK_KIND

"""Row validator: raw CSV rows -> typed ValidatedRow values or RowErrors.

Steps:
1. Header check (fatal, short-circuits row validation)
2. Per-row checks; a row with any error is excluded from ``rows`` but its
   errors are still returned
3. In-file uniqueness of ids and (base_id, variant_code) pairs

Row numbers: i-th data row (0-based) -> i + 2, matching the spreadsheet row.
"""

__all__ = [
    "validate",
    "check_headers",
    "YEAR_MIN",
    "YEAR_MAX",
]

logger = logging.getLogger(__name__)

YEAR_MIN = 1900
YEAR_MAX = 2100
HEADER_ROW_OFFSET = 2

_STATUSES = {s.value: s for s in VehicleStatus}
_VARIANT_KINDS = {"variant", PACK_KIND}

# is_blank_row 判定対象 (identity 列は除外)
_NON_IDENTITY_COLUMNS = (
    "make",
    "model",
    "year",
    "body_type",
    "status",
    "price_aud",
    "cover_image_url",
    "gallery_image_urls",
    "image_source",
    "license_note",
)


def _cell(raw: Mapping[str, str], key: str) -> str:
    return (raw.get(key) or "").strip()


def check_headers(headers: Sequence[str]) -> list[str]:
    """Return header error messages (empty list when every column is present)."""
    present = set(headers)
    errors: list[str] = []
    missing_required = [c for c in REQUIRED_COLUMNS if c not in present]
    missing_spec = [c for c in SPEC_COLUMNS if c not in present]
    if missing_required:
        errors.append(f"Missing required columns: {', '.join(missing_required)}")
    if missing_spec:
        errors.append(f"Missing spec columns: {', '.join(missing_spec)}")
    return errors


def _parse_year(raw_value: str) -> int | None:
    try:
        year = int(raw_value)
    except ValueError:
        return None
    if year < YEAR_MIN or year > YEAR_MAX:
        return None
    return year


def _parse_price(raw_value: str) -> float | None:
    cleaned = raw_value.replace(",", "").replace("$", "").strip()
    try:
        price = float(cleaned)
    except ValueError:
        return None
    # "nan" / "inf" は float() を通るが価格ではない
    return price if math.isfinite(price) else None


def _validate_row(
    raw: Mapping[str, str],
    row_number: int,
    seen_ids: set[str],
    seen_variant_keys: set[tuple[str, str]],
) -> tuple[ValidatedRow | None, list[RowError]]:
    errors: list[RowError] = []

    def err(vehicle_id: str | None, field: str | None, message: str) -> None:
        errors.append(RowError.create(row_number, vehicle_id, field, message))

    # row_type
    row_type_raw = _cell(raw, "row_type")
    row_type: RowType | None = None
    if row_type_raw in (RowType.BASE.value, RowType.VARIANT.value):
        row_type = RowType(row_type_raw)
    else:
        err(None, "row_type", f'row_type must be BASE or VARIANT, got "{row_type_raw}"')

    # base_id
    base_id = _cell(raw, "base_id")
    if not base_id:
        err(None, "base_id", "base_id is required")

    # variant_code
    variant_code = _cell(raw, "variant_code") or None
    if row_type == RowType.BASE and variant_code:
        err(base_id, "variant_code", "BASE rows must have blank variant_code")
    if row_type == RowType.VARIANT and not variant_code:
        err(base_id, "variant_code", "VARIANT rows require a non-empty variant_code")

    # id: 空なら導出 (BASE: base_id / VARIANT: base_id + variant_code, 区切りなし)
    vehicle_id = _cell(raw, "id")
    if not vehicle_id:
        if row_type == RowType.BASE:
            vehicle_id = base_id
        elif row_type == RowType.VARIANT and base_id and variant_code:
            vehicle_id = f"{base_id}{variant_code}"
    if row_type == RowType.BASE and vehicle_id and base_id and vehicle_id != base_id:
        err(
            vehicle_id,
            "id",
            f'BASE row id must equal base_id (got id="{vehicle_id}", base_id="{base_id}")',
        )

    # year
    year_raw = _cell(raw, "year")
    year: int | None = None
    if year_raw:
        year = _parse_year(year_raw)
        if year is None:
            err(
                vehicle_id,
                "year",
                f'year must be an integer between {YEAR_MIN} and {YEAR_MAX}, got "{year_raw}"',
            )
            year = 0

    # price_aud
    price_raw = _cell(raw, "price_aud")
    price_aud: float | None = None
    if price_raw:
        price_aud = _parse_price(price_raw)
        if price_aud is None:
            err(vehicle_id, "price_aud", f'price_aud must be numeric, got "{price_raw}"')

    # status
    status_raw = _cell(raw, "status")
    status: VehicleStatus | None = None
    if status_raw:
        status = _STATUSES.get(status_raw)
        if status is None:
            err(vehicle_id, "status", f'status must be draft/live/archived, got "{status_raw}"')

    # admin_variant_kind (pack flag)
    kind_raw = _cell(raw, "admin_variant_kind")
    if row_type == RowType.BASE and kind_raw:
        err(vehicle_id, "admin_variant_kind", "BASE rows must have blank admin_variant_kind")
    elif row_type == RowType.VARIANT and kind_raw and kind_raw not in _VARIANT_KINDS:
        err(
            vehicle_id,
            "admin_variant_kind",
            f"admin_variant_kind must be 'pack', 'variant', or blank, got \"{kind_raw}\"",
        )

    # pack dependency metadata (pack VARIANT rows only)
    dependencies = {key: _cell(raw, key) for key in PACK_DEPENDENCY_KEYS}
    used = [key for key, value in dependencies.items() if value]
    if row_type == RowType.BASE and used:
        err(vehicle_id, used[0], "BASE rows must not include dependency metadata")
    for key, value in dependencies.items():
        if not is_valid_pipe_list(value):
            err(vehicle_id, key, f"{key} must be a pipe-separated string with no empty entries, got \"{value}\"")
    if row_type == RowType.VARIANT and used and kind_raw != PACK_KIND:
        err(vehicle_id, "admin_variant_kind", "Rows using pack dependency metadata must set admin_variant_kind=pack")

    # uniqueness within the file
    if vehicle_id:
        if vehicle_id in seen_ids:
            err(vehicle_id, "id", f'Duplicate id "{vehicle_id}" in CSV')
        else:
            seen_ids.add(vehicle_id)
    if row_type == RowType.VARIANT and base_id and variant_code:
        key = (base_id, variant_code)
        if key in seen_variant_keys:
            err(
                vehicle_id,
                "variant_code",
                f'Duplicate variant_code "{variant_code}" for base_id "{base_id}"',
            )
        else:
            seen_variant_keys.add(key)

    if errors or row_type is None:
        return None, errors

    attributes: dict[str, str | None] = {key: (_cell(raw, key) or None) for key in SPEC_COLUMNS}
    is_blank_row = all(not _cell(raw, c) for c in _NON_IDENTITY_COLUMNS) and all(
        v is None for v in attributes.values()
    )

    row = ValidatedRow(
        row_number=row_number,
        id=vehicle_id,
        row_type=row_type,
        base_id=base_id,
        variant_code=variant_code,
        make=_cell(raw, "make") or None,
        model=_cell(raw, "model") or None,
        year=year,
        body_type=_cell(raw, "body_type") or None,
        status=status,
        price_aud=price_aud,
        cover_image_url=_cell(raw, "cover_image_url") or None,
        gallery_image_urls=tuple(split_pipe(_cell(raw, "gallery_image_urls"))),
        image_source=_cell(raw, "image_source") or None,
        license_note=_cell(raw, "license_note") or None,
        attributes=attributes,
        is_blank_row=is_blank_row,
    )
    return row, errors


def validate(headers: Sequence[str], raw_rows: Sequence[Mapping[str, str]]) -> ValidationResult:
    """Validate parsed CSV content.

    Args:
        headers: Trimmed header names from the parser
        raw_rows: Column name -> trimmed cell text

    Returns:
        ValidationResult; is_valid is False if any header or row error exists.
        On header errors no row is examined.
    """
    header_errors = check_headers(headers)
    if header_errors:
        for msg in header_errors:
            logger.warning("header: %s", msg)
        return ValidationResult(rows=[], errors=[], header_errors=header_errors, is_valid=False)

    rows: list[ValidatedRow] = []
    errors: list[RowError] = []
    seen_ids: set[str] = set()
    seen_variant_keys: set[tuple[str, str]] = set()

    for index, raw in enumerate(raw_rows):
        row_number = index + HEADER_ROW_OFFSET
        row, row_errors = _validate_row(raw, row_number, seen_ids, seen_variant_keys)
        errors.extend(row_errors)
        if row is not None:
            rows.append(row)

    for e in errors:
        logger.warning("validation: %s", e)
    logger.debug("validated rows=%d errors=%d", len(rows), len(errors))
    return ValidationResult(rows=rows, errors=errors, header_errors=[], is_valid=not errors)
