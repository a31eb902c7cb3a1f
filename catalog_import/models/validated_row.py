from __future__ import annotations

from dataclasses import dataclass, field

from .row_error import RowError
from .vehicle import RowType, VehicleRecord, VehicleStatus

"""Validator output models."""

__all__ = [
    "ValidatedRow",
    "ValidationResult",
]


@dataclass(frozen=True)
class ValidatedRow:
    """A typed CSV row that passed every row-level check.

    ``None`` means the cell was blank. For BASE updates a blank never
    overwrites a stored value; for VARIANT rows it means inherit.
    ``status`` None: caller-side default applies (draft for new rows).
    """
    row_number: int
    id: str
    row_type: RowType
    base_id: str
    variant_code: str | None
    make: str | None
    model: str | None
    year: int | None
    body_type: str | None
    status: VehicleStatus | None
    price_aud: float | None
    cover_image_url: str | None
    gallery_image_urls: tuple[str, ...]
    image_source: str | None
    license_note: str | None
    attributes: dict[str, str | None]
    is_blank_row: bool = False

    @property
    def is_base(self) -> bool:
        return self.row_type == RowType.BASE

    @property
    def is_variant(self) -> bool:
        return self.row_type == RowType.VARIANT

    def to_record(self, *, import_id: str | None = None) -> VehicleRecord:
        """Record as it would be inserted (status defaults to draft)."""
        return VehicleRecord(
            id=self.id,
            row_type=self.row_type,
            base_id=self.base_id,
            variant_code=self.variant_code,
            status=self.status or VehicleStatus.DRAFT,
            last_import_id=import_id,
            make=self.make,
            model=self.model,
            year=self.year,
            body_type=self.body_type,
            price_aud=self.price_aud,
            cover_image_url=self.cover_image_url,
            gallery_image_urls=self.gallery_image_urls,
            image_source=self.image_source,
            license_note=self.license_note,
            attributes=dict(self.attributes),
        )


@dataclass(frozen=True)
class ValidationResult:
    """Result of header + row validation.

    is_valid is False when any header error or row error exists.
    """
    rows: list[ValidatedRow] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    header_errors: list[str] = field(default_factory=list)
    is_valid: bool = True

    @property
    def base_rows(self) -> list[ValidatedRow]:
        return [r for r in self.rows if r.is_base]

    @property
    def variant_rows(self) -> list[ValidatedRow]:
        return [r for r in self.rows if r.is_variant]
