from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..models.vehicle import ResolvedVehicleRecord
from ..schema.catalog import PIPE_LIST_KEYS, SPEC_COLUMN_DEFS, split_pipe

"""Public-shape adapter: resolved record -> read-side vehicle shape."""

__all__ = [
    "PublicTrim",
    "PublicVehicle",
    "to_public_vehicle",
]

# 数値として公開する spec (数値でなければ文字列のまま)
_INT_SPEC_PATHS = frozenset({"overview.seating", "safety.airbags"})


@dataclass(frozen=True)
class PublicTrim:
    id: str
    name: str
    base_price: float
    specs: dict[str, dict[str, Any]]
    packs: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "basePrice": self.base_price,
            "specs": {group: dict(values) for group, values in self.specs.items()},
            "packs": list(self.packs),
        }


@dataclass(frozen=True)
class PublicVehicle:
    id: str
    make: str | None
    model: str | None
    year: int | None
    images: list[str]
    ai_summary: str | None
    best_for: list[str]
    trade_offs: list[str]
    positioning_summary: str | None
    tags: list[str]
    trims: list[PublicTrim]

    def to_dict(self) -> dict[str, Any]:
        """camelCase JSON shape; None values are omitted."""
        data: dict[str, Any] = {
            "id": self.id,
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "images": list(self.images),
            "aiSummary": self.ai_summary,
            "bestFor": list(self.best_for),
            "tradeOffs": list(self.trade_offs),
            "positioningSummary": self.positioning_summary,
            "tags": list(self.tags),
            "trims": [t.to_dict() for t in self.trims],
        }
        return {k: v for k, v in data.items() if v is not None}


def _spec_value(path: str, raw: str | None) -> Any:
    if not raw:
        return None
    if path in _INT_SPEC_PATHS:
        try:
            return int(raw)
        except ValueError:
            return raw
    return raw


def _build_specs(resolved: ResolvedVehicleRecord) -> dict[str, dict[str, Any]]:
    specs: dict[str, dict[str, Any]] = {}
    for d in SPEC_COLUMN_DEFS:
        if "." not in d.path:
            continue  # narrative / admin はトップレベル
        group, name = d.path.split(".", 1)
        value = _spec_value(d.path, resolved.attributes.get(d.key))
        bucket = specs.setdefault(group, {})
        if value is not None:
            bucket[name] = value
    if resolved.body_type:
        specs.setdefault("overview", {})["bodyType"] = resolved.body_type
    return specs


def _images(resolved: ResolvedVehicleRecord) -> list[str]:
    images: list[str] = []
    if resolved.cover_image_url:
        images.append(resolved.cover_image_url)
    for url in resolved.gallery_image_urls:
        if url and url not in images:
            images.append(url)
    return images


def to_public_vehicle(resolved: ResolvedVehicleRecord) -> PublicVehicle:
    attrs = resolved.attributes
    lists = {key: split_pipe(attrs.get(key)) for key in PIPE_LIST_KEYS}
    trim = PublicTrim(
        id=f"{resolved.id}-default",
        name="Default",
        base_price=resolved.price_aud if resolved.price_aud is not None else 0,
        specs=_build_specs(resolved),
    )
    return PublicVehicle(
        id=resolved.id,
        make=resolved.make,
        model=resolved.model,
        year=resolved.year,
        images=_images(resolved),
        ai_summary=attrs.get("ai_summary") or None,
        best_for=lists["best_for"],
        trade_offs=lists["trade_offs"],
        positioning_summary=attrs.get("positioning_summary") or None,
        tags=lists["tags"],
        trims=[trim],
    )
