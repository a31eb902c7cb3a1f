from __future__ import annotations

from catalog_import.services.public_shape import to_public_vehicle
from catalog_import.services.resolver import resolve


def test_public_vehicle_shape(make_base, make_variant):
    base = make_base(
        "rav4",
        cover_image_url="cover.jpg",
        gallery_image_urls=("cover.jpg", "side.jpg"),
    )
    attrs = dict(
        base.attributes,
        spec_overview_fuel_type="Hybrid",
        spec_overview_seating="5",
        spec_safety_airbags="seven",
        ai_summary="Practical hybrid SUV.",
        best_for="Families| Commuters |",
        tags="hybrid",
    )
    base = make_base("rav4", cover_image_url="cover.jpg", gallery_image_urls=("cover.jpg", "side.jpg"), attributes=attrs)

    pv = to_public_vehicle(resolve(base))
    assert pv.id == "rav4"
    assert pv.images == ["cover.jpg", "side.jpg"]
    assert pv.best_for == ["Families", "Commuters"]
    assert pv.trade_offs == []
    assert pv.tags == ["hybrid"]
    assert pv.ai_summary == "Practical hybrid SUV."
    assert pv.positioning_summary is None

    trim = pv.trims[0]
    assert trim.id == "rav4-default"
    assert trim.name == "Default"
    assert trim.base_price == 50000.0
    assert trim.specs["overview"] == {"fuelType": "Hybrid", "seating": 5, "bodyType": "SUV"}
    # 数値でない airbags は文字列のまま
    assert trim.specs["safety"]["airbags"] == "seven"
    assert trim.specs["performance"] == {}


def test_public_vehicle_to_dict_camel_case(make_base, make_variant):
    pv = to_public_vehicle(resolve(make_base("rav4"), make_variant("rav4", "X")))
    data = pv.to_dict()
    assert data["id"] == "rav4X"
    assert data["make"] == "Toyota"
    assert "aiSummary" not in data  # None は省略
    assert data["bestFor"] == []
    assert data["trims"][0]["basePrice"] == 50000.0
    assert data["trims"][0]["packs"] == []


def test_missing_price_becomes_zero(make_base):
    pv = to_public_vehicle(resolve(make_base("x", price_aud=None)))
    assert pv.trims[0].base_price == 0


def test_pack_dependency_metadata_is_not_published(make_base, make_variant):
    variant = make_variant(
        "rav4",
        "-tow",
        attributes={"admin_variant_kind": "pack", "admin_requires_variant": "-gxl|-xse", "tags": "towing|4wd"},
    )
    data = to_public_vehicle(resolve(make_base("rav4"), variant)).to_dict()
    assert data["tags"] == ["towing", "4wd"]
    assert not any(key.startswith(("admin", "requires", "excludes")) for key in data)
    assert "admin" not in data["trims"][0]["specs"]
