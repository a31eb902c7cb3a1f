"""Import engine services: validation, orchestration, resolution."""

from .batch_recorder import build_batch, new_import_id, record_batch
from .orchestrator import apply_import, run_import
from .public_shape import PublicTrim, PublicVehicle, to_public_vehicle
from .resolver import configured_price, is_pack_variant, resolve, resolve_by_id
from .summary import render_summary_line
from .validator import check_headers, validate

__all__ = [
    "apply_import",
    "run_import",
    "build_batch",
    "new_import_id",
    "record_batch",
    "PublicTrim",
    "PublicVehicle",
    "to_public_vehicle",
    "configured_price",
    "is_pack_variant",
    "resolve",
    "resolve_by_id",
    "render_summary_line",
    "check_headers",
    "validate",
]
