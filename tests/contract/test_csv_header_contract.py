from __future__ import annotations

from catalog_import.csvfile.exporter import build_csv_content
from catalog_import.schema import ALL_COLUMNS, PACK_DEPENDENCY_KEYS, REQUIRED_COLUMNS, SPEC_COLUMN_DEFS, SPEC_COLUMNS

"""CSV column contract: order and names are shared with the admin spreadsheet template."""


def test_required_columns_lead_in_fixed_order():
    assert ALL_COLUMNS[: len(REQUIRED_COLUMNS)] == REQUIRED_COLUMNS
    assert REQUIRED_COLUMNS[:4] == ("row_type", "base_id", "variant_code", "id")


def test_column_names_are_unique_snake_case():
    assert len(set(ALL_COLUMNS)) == len(ALL_COLUMNS)
    for name in ALL_COLUMNS:
        assert name == name.lower()
        assert " " not in name


def test_spec_columns_follow_catalog_order():
    assert SPEC_COLUMNS == tuple(d.key for d in SPEC_COLUMN_DEFS)
    assert "admin_variant_kind" in SPEC_COLUMNS
    assert set(PACK_DEPENDENCY_KEYS) <= set(SPEC_COLUMNS)


def test_export_header_row():
    assert build_csv_content([]).splitlines() == [",".join(ALL_COLUMNS)]
