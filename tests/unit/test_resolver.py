from __future__ import annotations

import logging

from catalog_import.models import ResolvedVehicleRecord, VehicleStatus
from catalog_import.services.resolver import configured_price, is_pack_variant, resolve, resolve_by_id
from catalog_import.store import InMemoryRecordStore, RecordStore


def _attrs(base_attrs, **values):
    out = dict(base_attrs)
    out.update(values)
    return out


def test_resolve_base_only(make_base):
    base = make_base("rav4")
    resolved = resolve(base)
    assert isinstance(resolved, ResolvedVehicleRecord)
    assert resolved.is_resolved is True
    assert resolved.id == "rav4"
    assert resolved.price_aud == 50000.0
    assert resolved.attributes == base.attributes


def test_price_inherits_when_null(make_base, make_variant):
    base = make_base("rav4", price_aud=50000.0)
    assert resolve(base, make_variant("rav4", "GX")).price_aud == 50000.0
    assert resolve(base, make_variant("rav4", "GXL", price_aud=55000.0)).price_aud == 55000.0


def test_gallery_empty_variant_list_means_no_images(make_base, make_variant):
    base = make_base("rav4", gallery_image_urls=("a.jpg", "b.jpg"))
    assert resolve(base, make_variant("rav4", "GX")).gallery_image_urls == ()
    assert resolve(base, make_variant("rav4", "GX", gallery_image_urls=("c.jpg",))).gallery_image_urls == ("c.jpg",)


def test_attribute_inheritance_tri_state(make_base, make_variant):
    base = make_base("rav4")
    base = make_base(
        "rav4",
        attributes=_attrs(base.attributes, spec_overview_fuel_type="Petrol", spec_performance_power="150kW"),
    )
    variant = make_variant(
        "rav4",
        "H",
        attributes=_attrs(make_variant("rav4", "H").attributes, spec_overview_fuel_type="Hybrid", spec_performance_power=""),
    )
    resolved = resolve(base, variant)
    assert resolved.attributes["spec_overview_fuel_type"] == "Hybrid"
    # "" も継承扱い
    assert resolved.attributes["spec_performance_power"] == "150kW"
    assert resolved.attributes["spec_safety_aeb"] is None


def test_identity_falls_back_when_falsy(make_base, make_variant):
    base = make_base("rav4", make="Toyota", model="RAV4", year=2024, body_type="SUV")
    variant = make_variant("rav4", "X", make="", model="RAV4 Cruiser", year=None, body_type=None)
    resolved = resolve(base, variant)
    assert (resolved.make, resolved.model, resolved.year, resolved.body_type) == ("Toyota", "RAV4 Cruiser", 2024, "SUV")


def test_variant_keeps_its_own_identity_fields(make_base, make_variant):
    base = make_base("rav4", status=VehicleStatus.LIVE)
    variant = make_variant("rav4", "X", status=VehicleStatus.DRAFT, cover_image_url="v.jpg")
    resolved = resolve(base, variant)
    assert resolved.id == "rav4X"
    assert resolved.variant_code == "X"
    assert resolved.status == VehicleStatus.DRAFT
    assert resolved.cover_image_url == "v.jpg"
    assert resolve(make_base("rav4", cover_image_url="b.jpg"), make_variant("rav4", "X")).cover_image_url == "b.jpg"


def test_resolve_is_pure(make_base, make_variant):
    base = make_base("rav4")
    variant = make_variant("rav4", "X", price_aud=1.0)
    first = resolve(base, variant)
    second = resolve(base, variant)
    assert first == second
    assert base.attributes == make_base("rav4").attributes


def test_pack_pricing(make_base, make_variant):
    base = make_base("rav4", price_aud=50000.0)
    attrs = dict(make_variant("rav4", "P").attributes, admin_variant_kind="pack")
    pack = make_variant("rav4", "P", price_aud=2500.0, attributes=attrs)
    plain = make_variant("rav4", "GXL", price_aud=55000.0)
    assert is_pack_variant(pack)
    assert not is_pack_variant(plain)
    assert not is_pack_variant(base)
    assert configured_price(base, pack) == 52500.0
    assert configured_price(base, plain) == 55000.0
    assert configured_price(base) == 50000.0


def test_resolve_by_id(make_base, make_variant):
    store = InMemoryRecordStore([make_base("rav4"), make_variant("rav4", "X", price_aud=60000.0)])
    assert isinstance(store, RecordStore)
    assert resolve_by_id(store, "rav4").price_aud == 50000.0
    resolved = resolve_by_id(store, "rav4X")
    assert resolved.price_aud == 60000.0
    assert resolved.make == "Toyota"
    assert resolve_by_id(store, "missing") is None


def test_resolve_by_id_orphan_returns_none(make_base, make_variant, caplog):
    caplog.set_level(logging.WARNING, logger="catalog_import")
    store = InMemoryRecordStore(
        [
            make_base("old", status=VehicleStatus.ARCHIVED),
            make_variant("old", "X"),
            make_variant("gone", "Y"),
        ]
    )
    assert resolve_by_id(store, "oldX") is None
    assert resolve_by_id(store, "goneY") is None
    assert sum("orphaned variant" in r.getMessage() for r in caplog.records) == 2
