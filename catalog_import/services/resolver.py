from __future__ import annotations

import logging
from dataclasses import fields

from ..models.vehicle import ResolvedVehicleRecord, RowType, VehicleRecord
from ..schema.catalog import SPEC_COLUMNS
from ..store.base import RecordStore

"""BASE/VARIANT inheritance resolver.

resolve(base, variant) merges field by field; the rules are not uniform:

| field                          | VARIANT value used when      |
|--------------------------------|------------------------------|
| attributes[key]                | not None and not ""          |
| make / model / year / body_type| truthy                       |
| price_aud / cover_image_url    | not None                     |
| image_source / license_note    | not None                     |
| gallery_image_urls             | always (empty list = no images) |

Everything else (id, variant_code, status, audit fields) is the VARIANT's own.
Pure, no I/O: called per row at import time and per render at read time.
"""

__all__ = [
    "resolve",
    "resolve_by_id",
    "is_pack_variant",
    "configured_price",
    "PACK_KIND",
]

logger = logging.getLogger(__name__)

PACK_KIND = "pack"

_IDENTITY_FIELDS = ("make", "model", "year", "body_type")
_NULL_FALLBACK_FIELDS = ("price_aud", "cover_image_url", "image_source", "license_note")


def _as_resolved(record: VehicleRecord, **overrides: object) -> ResolvedVehicleRecord:
    values = {f.name: getattr(record, f.name) for f in fields(VehicleRecord)}
    values.update(overrides)
    return ResolvedVehicleRecord(**values)  # type: ignore[arg-type]


def resolve(base: VehicleRecord, variant: VehicleRecord | None = None) -> ResolvedVehicleRecord:
    """Compute the effective record for ``variant`` over ``base``.

    Without a variant the BASE is returned as-is (tagged resolved). The
    VARIANT's price is returned untouched; whether it is an absolute price or
    a pack delta is up to the caller (see configured_price).
    """
    if variant is None:
        return _as_resolved(base, attributes=dict(base.attributes))

    attributes: dict[str, str | None] = {}
    for key in SPEC_COLUMNS:
        v = variant.attributes.get(key)
        attributes[key] = v if v is not None and v != "" else base.attributes.get(key)

    overrides: dict[str, object] = {"attributes": attributes}
    for name in _IDENTITY_FIELDS:
        overrides[name] = getattr(variant, name) or getattr(base, name)
    for name in _NULL_FALLBACK_FIELDS:
        v = getattr(variant, name)
        overrides[name] = v if v is not None else getattr(base, name)
    # 空リストは「画像なし」。BASE のギャラリーは継承しない
    overrides["gallery_image_urls"] = tuple(variant.gallery_image_urls)
    return _as_resolved(variant, **overrides)


def is_pack_variant(record: VehicleRecord) -> bool:
    return record.is_variant and (record.attributes.get("admin_variant_kind") or "").strip() == PACK_KIND


def configured_price(base: VehicleRecord, variant: VehicleRecord | None = None) -> float | None:
    """Price a buyer would pay: pack rows add their delta to the BASE price."""
    if variant is not None and is_pack_variant(variant):
        if variant.price_aud is None:
            return base.price_aud
        return (base.price_aud or 0.0) + variant.price_aud
    return resolve(base, variant).price_aud


def resolve_by_id(store: RecordStore, record_id: str) -> ResolvedVehicleRecord | None:
    """Read-path helper: load a record (and its BASE) and resolve it.

    Returns None when the record does not exist, or when it is a VARIANT whose
    BASE is missing or archived (orphan). Orphans are logged, never raised.
    """
    record = store.get_by_id(record_id)
    if record is None:
        return None
    if record.row_type == RowType.BASE:
        return resolve(record)
    base = store.get_by_id(record.base_id)
    if base is None or base.is_archived or not base.is_base:
        logger.warning("orphaned variant id=%s base_id=%s (base missing or archived)", record.id, record.base_id)
        return None
    return resolve(base, record)
