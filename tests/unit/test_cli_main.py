from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from unittest.mock import patch

import psycopg2
import pytest

from catalog_import.cli.__main__ import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS, main
from catalog_import.csvfile.parser import read_csv_file
from catalog_import.store import InMemoryRecordStore


@pytest.fixture()
def catalog_csv(temp_workdir: Path, csv_text, base_row, variant_row) -> Path:
    p = temp_workdir / "data" / "catalog.csv"
    p.write_text(
        csv_text([base_row("rav4"), variant_row("rav4", "-gxl", price_aud="52000")]),
        encoding="utf-8",
    )
    return p


def test_validate_needs_no_config(temp_workdir: Path, catalog_csv: Path, capsys):
    code = main(["validate", str(catalog_csv)])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS
    assert "INFO validate: rows=2 base=1 variant=1 errors=0" in out


def test_validate_reports_row_errors(temp_workdir: Path, csv_text, base_row, capsys):
    p = temp_workdir / "data" / "bad.csv"
    p.write_text(csv_text([base_row("rav4", year="twenty")]), encoding="utf-8")
    code = main(["validate", str(p)])
    out = capsys.readouterr().out
    assert code == EXIT_PARTIAL_FAILURE
    assert "ERROR [row 2 id=rav4 field=year]" in out


def test_validate_missing_file(temp_workdir: Path, capsys):
    code = main(["validate", "data/nope.csv"])
    assert code == EXIT_FATAL
    assert "ERROR cannot read" in capsys.readouterr().out


def test_import_without_config_is_fatal(temp_workdir: Path, catalog_csv: Path, capsys):
    code = main(["import", str(catalog_csv)])
    assert code == EXIT_FATAL
    assert "ERROR config:" in capsys.readouterr().out


def test_import_memory_backend_success(write_config: Path, catalog_csv: Path, capsys):
    code = main(["import", str(catalog_csv)])
    out = capsys.readouterr().out
    assert code == EXIT_SUCCESS
    assert "INFO store=memory (nothing is persisted)" in out
    summary = [line for line in out.splitlines() if line.startswith("SUMMARY ")]
    assert len(summary) == 1
    assert "file=catalog.csv success=true rows=2 base=1 variant=1 created=2" in summary[0]


def test_import_with_errors_returns_partial(write_config: Path, temp_workdir: Path, csv_text, base_row, capsys):
    p = temp_workdir / "data" / "partial.csv"
    p.write_text(csv_text([base_row("rav4"), base_row("camry", year="19x0")]), encoding="utf-8")
    code = main(["import", str(p)])
    out = capsys.readouterr().out
    assert code == EXIT_PARTIAL_FAILURE
    assert "success=false" in out
    assert list((temp_workdir / "logs").glob("import-errors-*.log"))


def test_import_missing_file(write_config: Path, capsys):
    assert main(["import", "data/missing.csv"]) == EXIT_FATAL


def test_disable_db_connect_forces_memory(temp_workdir: Path, catalog_csv: Path, monkeypatch, capsys):
    (temp_workdir / "config" / "import.yml").write_text("store:\n  backend: postgres\n", encoding="utf-8")
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    with patch("catalog_import.cli.__main__.psycopg2.connect") as connect:
        code = main(["import", str(catalog_csv)])
    connect.assert_not_called()
    assert code == EXIT_SUCCESS


def test_postgres_connect_failure_is_fatal(temp_workdir: Path, catalog_csv: Path, monkeypatch, capsys):
    (temp_workdir / "config" / "import.yml").write_text("store:\n  backend: postgres\n", encoding="utf-8")
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    with patch(
        "catalog_import.cli.__main__.psycopg2.connect",
        side_effect=psycopg2.OperationalError("could not connect"),
    ):
        code = main(["import", str(catalog_csv)])
    assert code == EXIT_FATAL
    assert "ERROR database: could not connect" in capsys.readouterr().out


def test_postgres_backend_uses_db_store(temp_workdir: Path, catalog_csv: Path, monkeypatch, capsys):
    (temp_workdir / "config" / "import.yml").write_text("store:\n  backend: postgres\n", encoding="utf-8")
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    backing = InMemoryRecordStore()

    @contextmanager
    def fake_db_store(cfg):
        yield backing

    with patch("catalog_import.cli.__main__._db_store", fake_db_store):
        assert main(["import", str(catalog_csv)]) == EXIT_SUCCESS
        assert len(backing) == 2
        # 2回目は何も変わらない
        assert main(["import", str(catalog_csv)]) == EXIT_SUCCESS
    assert "created=0 updated=2 archived=0" in capsys.readouterr().out.splitlines()[-1]


def test_export_writes_csv(temp_workdir: Path, write_config: Path, make_base, make_variant, capsys):
    backing = InMemoryRecordStore()
    backing.insert(make_base("rav4"))
    backing.insert(make_variant("rav4", "-gxl"))

    @contextmanager
    def fake_open_store(cfg, logger):
        yield backing

    out_path = temp_workdir / "data" / "export.csv"
    with patch("catalog_import.cli.__main__._open_store", fake_open_store):
        code = main(["export", str(out_path)])
    assert code == EXIT_SUCCESS
    parsed = read_csv_file(out_path)
    assert [r["base_id"] for r in parsed.raw_rows] == ["rav4", "rav4"]
    assert "INFO exported 2 records" in capsys.readouterr().out


def test_debug_flag(temp_workdir: Path, catalog_csv: Path, capsys):
    main(["--debug", "validate", str(catalog_csv)])
    assert "DEBUG debug mode enabled" in capsys.readouterr().out


def test_env_file_is_loaded(temp_workdir: Path, catalog_csv: Path, monkeypatch, capsys):
    (temp_workdir / "config" / "import.yml").write_text("store:\n  backend: postgres\n", encoding="utf-8")
    monkeypatch.setenv("DISABLE_DB_CONNECT", "0")
    (temp_workdir / ".env").write_text("DISABLE_DB_CONNECT=1\n", encoding="utf-8")
    with patch("catalog_import.cli.__main__.psycopg2.connect") as connect:
        code = main(["import", str(catalog_csv)])
    connect.assert_not_called()
    assert code == EXIT_SUCCESS
