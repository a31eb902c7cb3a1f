# Shared pytest fixtures
from __future__ import annotations

import itertools
import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from catalog_import.logging.init import reset_logging
from catalog_import.models import RowType, VehicleRecord, VehicleStatus
from catalog_import.schema import ALL_COLUMNS, SPEC_COLUMNS
from catalog_import.store import InMemoryRecordStore


@pytest.fixture(autouse=True)
def _clean_logging():
    # setup_logging() は propagate=False にするため、caplog を使うテストのために毎回戻す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("PGDSN", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """store:
  backend: memory
  statement_timeout_ms: 5000
import:
  timeout_seconds: 60
  default_actor: ops-bot
logs_dir: ./logs
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: catalog
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def _build_csv(rows: list[dict[str, str]], columns: tuple[str, ...] | list[str] = ALL_COLUMNS) -> str:
    """CSV text with the given header; missing cells are blank."""
    df = pd.DataFrame([{c: r.get(c, "") for c in columns} for r in rows], columns=list(columns), dtype=str)
    return df.to_csv(index=False, lineterminator="\n")


def _base_row(base_id: str, **cells: str) -> dict[str, str]:
    row = {
        "row_type": "BASE",
        "base_id": base_id,
        "make": "Toyota",
        "model": base_id.title(),
        "year": "2024",
        "body_type": "SUV",
        "status": "live",
        "price_aud": "50000",
    }
    row.update(cells)
    return row


def _variant_row(base_id: str, variant_code: str, **cells: str) -> dict[str, str]:
    row = {"row_type": "VARIANT", "base_id": base_id, "variant_code": variant_code}
    row.update(cells)
    return row


@pytest.fixture()
def csv_text() -> Callable[..., str]:
    return _build_csv


@pytest.fixture()
def clock() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"2024-01-01T00:00:{next(counter):02d}Z"


@pytest.fixture()
def store(clock) -> InMemoryRecordStore:
    return InMemoryRecordStore(clock=clock)


def _make_base(record_id: str, **fields) -> VehicleRecord:
    values = dict(
        id=record_id,
        row_type=RowType.BASE,
        base_id=record_id,
        status=VehicleStatus.LIVE,
        make="Toyota",
        model="RAV4",
        year=2024,
        body_type="SUV",
        price_aud=50000.0,
        attributes={k: None for k in SPEC_COLUMNS},
    )
    values.update(fields)
    return VehicleRecord(**values)


def _make_variant(base_id: str, variant_code: str, **fields) -> VehicleRecord:
    values = dict(
        id=f"{base_id}{variant_code}",
        row_type=RowType.VARIANT,
        base_id=base_id,
        variant_code=variant_code,
        status=VehicleStatus.LIVE,
        attributes={k: None for k in SPEC_COLUMNS},
    )
    values.update(fields)
    return VehicleRecord(**values)


@pytest.fixture()
def base_row() -> Callable[..., dict[str, str]]:
    return _base_row


@pytest.fixture()
def variant_row() -> Callable[..., dict[str, str]]:
    return _variant_row


@pytest.fixture()
def make_base() -> Callable[..., VehicleRecord]:
    return _make_base


@pytest.fixture()
def make_variant() -> Callable[..., VehicleRecord]:
    return _make_variant
