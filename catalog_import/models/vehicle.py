from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any

"""VehicleRecord domain model.

One flat record type for both BASE and VARIANT rows; ``row_type`` is the
discriminant. VARIANT rows store overrides only:

- attribute value ``None``  -> inherit from BASE at resolution time
- attribute value ``""``    -> explicit override to blank
- identity scalars ``None`` -> inherit from BASE

Lifecycle: draft/live -> archived (soft delete) -> draft (restore).
"""

__all__ = [
    "RowType",
    "VehicleStatus",
    "VehicleRecord",
    "ResolvedVehicleRecord",
    "RECORD_FIELDS",
]


class RowType(str, Enum):
    BASE = "BASE"
    VARIANT = "VARIANT"


class VehicleStatus(str, Enum):
    """Record status.

    State transitions: draft <-> live -> archived -> draft (restore)
    """
    DRAFT = "draft"
    LIVE = "live"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class VehicleRecord:
    """Canonical vehicle record as stored in the record store."""
    id: str
    row_type: RowType
    base_id: str  # BASE: == id / VARIANT: parent BASE id
    variant_code: str | None = None  # VARIANT only
    status: VehicleStatus = VehicleStatus.DRAFT
    archived_at: str | None = None
    last_import_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    # identity (required on BASE, inheritable on VARIANT)
    make: str | None = None
    model: str | None = None
    year: int | None = None
    body_type: str | None = None
    # BASE: full price / VARIANT: None=inherit, number=override (delta for pack rows)
    price_aud: float | None = None
    cover_image_url: str | None = None
    gallery_image_urls: tuple[str, ...] = ()
    image_source: str | None = None
    license_note: str | None = None
    attributes: dict[str, str | None] = field(default_factory=dict)

    @property
    def is_base(self) -> bool:
        return self.row_type == RowType.BASE

    @property
    def is_variant(self) -> bool:
        return self.row_type == RowType.VARIANT

    @property
    def is_archived(self) -> bool:
        return self.status == VehicleStatus.ARCHIVED

    def to_dict(self) -> dict[str, Any]:
        """Plain dict with enum values and a list gallery (JSON friendly)."""
        data = asdict(self)
        data["row_type"] = self.row_type.value
        data["status"] = self.status.value
        data["gallery_image_urls"] = list(self.gallery_image_urls)
        data["attributes"] = dict(self.attributes)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VehicleRecord:
        """Build a record from a storage row; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["row_type"] = RowType(values["row_type"])
        values["status"] = VehicleStatus(values.get("status") or VehicleStatus.DRAFT.value)
        values["gallery_image_urls"] = tuple(values.get("gallery_image_urls") or ())
        values["attributes"] = dict(values.get("attributes") or {})
        if values.get("price_aud") is not None:
            values["price_aud"] = float(values["price_aud"])
        return cls(**values)


RECORD_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(VehicleRecord))


@dataclass(frozen=True)
class ResolvedVehicleRecord(VehicleRecord):
    """A VehicleRecord with VARIANT blanks filled from its BASE.

    Only the resolver builds these; ``is_resolved`` is always True so a
    resolved record can never be mistaken for a stored one.
    """
    is_resolved: bool = True
