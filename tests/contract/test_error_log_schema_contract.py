from __future__ import annotations

import json

import jsonschema
import pytest

from catalog_import.logging.error_log import SCHEMA_PATH
from catalog_import.models import RowError

"""Error log JSON Lines schema contract (catalog_import/logging/error_log_schema.json)."""


@pytest.fixture(scope="module")
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_row_error_line_matches_schema(schema):
    line = RowError.create(2, "rav4", "year", "bad year").to_json_line("imp-abc", "cars.csv")
    jsonschema.validate(json.loads(line), schema)


def test_no_source_row_sentinel_accepted(schema):
    line = RowError.create(-1, None, None, "import cancelled").to_json_line("imp-abc", "cars.csv")
    record = json.loads(line)
    assert record["row_number"] == -1
    assert record["vehicle_id"] is None
    jsonschema.validate(record, schema)


def test_rejects_row_below_sentinel(schema):
    record = json.loads(RowError.create(-2, None, None, "x").to_json_line("imp-abc", "cars.csv"))
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate(record, schema)


def test_rejects_extra_key(schema):
    record = json.loads(RowError.create(3, "a", None, "x").to_json_line("imp-abc", "cars.csv"))
    record["sheet"] = "Sheet1"
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate(record, schema)


def test_rejects_missing_key(schema):
    record = json.loads(RowError.create(3, "a", None, "x").to_json_line("imp-abc", "cars.csv"))
    del record["import_id"]
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate(record, schema)


def test_timestamp_is_utc_z(schema):
    record = json.loads(RowError.create(3, "a", None, "x").to_json_line("imp-abc", "cars.csv"))
    assert record["timestamp"].endswith("Z")
    record["timestamp"] = "2024-01-01T00:00:00+09:00"
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate(record, schema)
