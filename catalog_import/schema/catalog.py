from __future__ import annotations

from dataclasses import dataclass

"""Schema catalog: the CSV column contract for vehicle records.

Single source of truth for:
- the CSV header row (identity columns, then spec columns)
- header validation and row mapping in the validator
- the keys allowed in ``VehicleRecord.attributes``
- attribute-by-attribute merging in the resolver
- the nested public specs shape (``path``)

Bump SCHEMA_VERSION whenever a column is added, removed or reordered.
"""

__all__ = [
    "SpecColumnDef",
    "SPEC_COLUMN_DEFS",
    "SPEC_COLUMNS",
    "REQUIRED_COLUMNS",
    "ALL_COLUMNS",
    "PIPE_SEPARATOR",
    "PIPE_LIST_KEYS",
    "PACK_DEPENDENCY_KEYS",
    "SCHEMA_VERSION",
    "get_column_def",
    "columns_in_category",
    "split_pipe",
    "is_valid_pipe_list",
]

SCHEMA_VERSION = 4

# 配列系セル (gallery / best_for / trade_offs / tags) の区切り文字。カンマは使わない
PIPE_SEPARATOR = "|"

CATEGORIES = ("overview", "efficiency", "performance", "connectivity", "safety", "narrative", "admin")


@dataclass(frozen=True)
class SpecColumnDef:
    """One spec / narrative attribute column.

    Attributes:
        key: Canonical CSV column name, also the key in ``attributes``
        label: Human readable label
        path: Dot path into the public nested specs ("overview.fuelType"),
            or a top-level key for narrative/admin fields
        category: Grouping only, never validated
        multiline: True for long narrative text
    """
    key: str
    label: str
    path: str
    category: str
    multiline: bool = False


SPEC_COLUMN_DEFS: tuple[SpecColumnDef, ...] = (
    # overview
    SpecColumnDef("spec_overview_fuel_type", "Fuel Type", "overview.fuelType", "overview"),
    SpecColumnDef("spec_overview_drivetrain", "Drivetrain", "overview.drivetrain", "overview"),
    SpecColumnDef("spec_overview_transmission", "Transmission", "overview.transmission", "overview"),
    SpecColumnDef("spec_overview_seating", "Seating", "overview.seating", "overview"),
    SpecColumnDef("spec_overview_warranty", "Warranty", "overview.warranty", "overview"),
    # efficiency
    SpecColumnDef("spec_efficiency_fuel_economy", "Fuel Economy", "efficiency.fuelEconomy", "efficiency"),
    SpecColumnDef("spec_efficiency_real_world_estimate", "Real World Estimate", "efficiency.realWorldEstimate", "efficiency"),
    SpecColumnDef("spec_efficiency_fuel_tank", "Fuel Tank", "efficiency.fuelTank", "efficiency"),
    SpecColumnDef("spec_efficiency_estimated_range", "Estimated Range", "efficiency.estimatedRange", "efficiency"),
    SpecColumnDef("spec_efficiency_service_interval", "Service Interval", "efficiency.serviceInterval", "efficiency"),
    SpecColumnDef("spec_efficiency_annual_running_cost", "Annual Running Cost", "efficiency.annualRunningCost", "efficiency"),
    SpecColumnDef("spec_efficiency_ownership_summary", "Ownership Summary", "efficiency.ownershipSummary", "efficiency", multiline=True),
    # performance
    SpecColumnDef("spec_performance_power", "Power", "performance.power", "performance"),
    SpecColumnDef("spec_performance_torque", "Torque", "performance.torque", "performance"),
    SpecColumnDef("spec_performance_zero_to_hundred", "0-100 km/h", "performance.zeroToHundred", "performance"),
    SpecColumnDef("spec_performance_top_speed", "Top Speed", "performance.topSpeed", "performance"),
    SpecColumnDef("spec_performance_weight", "Weight", "performance.weight", "performance"),
    SpecColumnDef("spec_performance_power_to_weight", "Power to Weight", "performance.powerToWeight", "performance"),
    SpecColumnDef("spec_performance_suspension", "Suspension", "performance.suspension", "performance"),
    SpecColumnDef("spec_performance_engine", "Engine", "performance.engine", "performance"),
    SpecColumnDef("spec_performance_driving_character", "Driving Character", "performance.drivingCharacter", "performance", multiline=True),
    # connectivity
    SpecColumnDef("spec_connectivity_screen_size", "Screen Size", "connectivity.screenSize", "connectivity"),
    SpecColumnDef("spec_connectivity_digital_cluster", "Digital Cluster", "connectivity.digitalCluster", "connectivity"),
    SpecColumnDef("spec_connectivity_apple_carplay", "Apple CarPlay", "connectivity.appleCarPlay", "connectivity"),
    SpecColumnDef("spec_connectivity_android_auto", "Android Auto", "connectivity.androidAuto", "connectivity"),
    SpecColumnDef("spec_connectivity_wireless_charging", "Wireless Charging", "connectivity.wirelessCharging", "connectivity"),
    SpecColumnDef("spec_connectivity_sound_system", "Sound System", "connectivity.soundSystem", "connectivity"),
    SpecColumnDef("spec_connectivity_app_support", "App Support", "connectivity.appSupport", "connectivity"),
    SpecColumnDef("spec_connectivity_ota_updates", "OTA Updates", "connectivity.otaUpdates", "connectivity"),
    SpecColumnDef("spec_connectivity_tech_summary", "Tech Summary", "connectivity.techSummary", "connectivity", multiline=True),
    # safety
    SpecColumnDef("spec_safety_ancap_rating", "ANCAP Rating", "safety.ancapRating", "safety"),
    SpecColumnDef("spec_safety_adaptive_cruise", "Adaptive Cruise", "safety.adaptiveCruise", "safety"),
    SpecColumnDef("spec_safety_blind_spot_monitoring", "Blind Spot Monitoring", "safety.blindSpotMonitoring", "safety"),
    SpecColumnDef("spec_safety_lane_keep_assist", "Lane Keep Assist", "safety.laneKeepAssist", "safety"),
    SpecColumnDef("spec_safety_aeb", "AEB", "safety.aeb", "safety"),
    SpecColumnDef("spec_safety_airbags", "Airbags", "safety.airbags", "safety"),
    SpecColumnDef("spec_safety_rear_cross_traffic", "Rear Cross Traffic", "safety.rearCrossTraffic", "safety"),
    SpecColumnDef("spec_safety_safety_summary", "Safety Summary", "safety.safetySummary", "safety", multiline=True),
    # narrative
    SpecColumnDef("ai_summary", "AI Summary", "ai_summary", "narrative", multiline=True),
    SpecColumnDef("best_for", "Best For (pipe-separated)", "best_for", "narrative"),
    SpecColumnDef("trade_offs", "Trade-offs (pipe-separated)", "trade_offs", "narrative"),
    SpecColumnDef("positioning_summary", "Positioning Summary", "positioning_summary", "narrative", multiline=True),
    SpecColumnDef("tags", "Tags (pipe-separated)", "tags", "narrative"),
    # admin: blank / variant / pack. pack => price_aud is a delta on top of the BASE price
    SpecColumnDef("admin_variant_kind", "Variant Kind", "admin_variant_kind", "admin"),
    # admin: pack dependencies (variant codes, pipe-separated). pack rows only
    SpecColumnDef("admin_requires_variant", "Requires Variant (pipe-separated)", "admin_requires_variant", "admin"),
    SpecColumnDef("admin_excludes_pack", "Excludes Pack (pipe-separated)", "admin_excludes_pack", "admin"),
    SpecColumnDef("admin_requires_pack", "Requires Pack (pipe-separated)", "admin_requires_pack", "admin"),
)

SPEC_COLUMNS: tuple[str, ...] = tuple(d.key for d in SPEC_COLUMN_DEFS)

# id may be blank in a file; the validator derives it
REQUIRED_COLUMNS: tuple[str, ...] = (
    "row_type",
    "base_id",
    "variant_code",
    "id",
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

ALL_COLUMNS: tuple[str, ...] = REQUIRED_COLUMNS + SPEC_COLUMNS

PACK_DEPENDENCY_KEYS: tuple[str, ...] = ("admin_requires_variant", "admin_excludes_pack", "admin_requires_pack")

PIPE_LIST_KEYS = frozenset({"best_for", "trade_offs", "tags", *PACK_DEPENDENCY_KEYS})

_DEFS_BY_KEY = {d.key: d for d in SPEC_COLUMN_DEFS}


def get_column_def(key: str) -> SpecColumnDef | None:
    return _DEFS_BY_KEY.get(key)


def columns_in_category(category: str) -> list[SpecColumnDef]:
    if category not in CATEGORIES:
        raise ValueError(f"unknown category: {category}")
    return [d for d in SPEC_COLUMN_DEFS if d.category == category]


def split_pipe(value: str | None) -> list[str]:
    """Split a pipe-separated cell; pieces are trimmed and empty pieces dropped."""
    if not value:
        return []
    return [p.strip() for p in value.split(PIPE_SEPARATOR) if p.strip()]


def is_valid_pipe_list(value: str | None) -> bool:
    """True for a blank cell or a pipe-separated list with no empty entries ("a||b" is invalid)."""
    if not value:
        return True
    return all(p.strip() for p in value.split(PIPE_SEPARATOR))
