from __future__ import annotations

import re

from catalog_import.services import render_summary_line, run_import

"""SUMMARY 行フォーマット契約テスト."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+import=(imp-[0-9a-f]{12})\s+file=(\S+)\s+success=(true|false)\s+"
    r"rows=([0-9]+)\s+base=([0-9]+)\s+variant=([0-9]+)\s+created=([0-9]+)\s+"
    r"updated=([0-9]+)\s+archived=([0-9]+)\s+errors=([0-9]+)$"
)


def test_summary_pattern_example_line():
    line = (
        "SUMMARY import=imp-0123456789ab file=catalog.csv success=true rows=3 base=2 "
        "variant=1 created=3 updated=0 archived=0 errors=0"
    )
    assert SUMMARY_PATTERN.match(line)


def test_rendered_line_matches_contract(store, csv_text, base_row, variant_row):
    result = run_import(
        csv_text([base_row("rav4"), variant_row("rav4", "-gxl")]),
        "my catalog.csv",
        None,
        store,
    )
    m = SUMMARY_PATTERN.match(render_summary_line(result))
    assert m, render_summary_line(result)
    assert m.group(1) == result.batch.id
    assert m.group(2) == "my_catalog.csv"
    assert m.groups()[2:] == ("true", "2", "1", "1", "2", "0", "0", "0")


def test_failed_import_line(store, csv_text, variant_row):
    result = run_import(csv_text([variant_row("ghost", "-x")]), "f.csv", None, store)
    m = SUMMARY_PATTERN.match(render_summary_line(result))
    assert m
    assert m.group(3) == "false"
    assert m.group(10) == "1"
