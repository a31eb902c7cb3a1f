from __future__ import annotations

from pathlib import Path

from catalog_import.cli.__main__ import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS, main as cli_main

"""Exit code contract: 0 success / 2 import recorded with errors / 1 fatal."""


def test_exit_code_values():
    assert (EXIT_SUCCESS, EXIT_PARTIAL_FAILURE, EXIT_FATAL) == (0, 2, 1)


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # config/import.yml 無し → exit 1
    (temp_workdir / "data" / "c.csv").write_text("row_type\n", encoding="utf-8")
    code = cli_main(["import", "data/c.csv"])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_all_success(write_config: Path, temp_workdir: Path, csv_text, base_row, capsys):
    (temp_workdir / "data" / "c.csv").write_text(csv_text([base_row("rav4")]), encoding="utf-8")
    assert cli_main(["import", "data/c.csv"]) == 0


def test_exit_code_partial_failure(write_config: Path, temp_workdir: Path, csv_text, base_row, capsys):
    (temp_workdir / "data" / "c.csv").write_text(
        csv_text([base_row("rav4"), base_row("camry", make="")]),
        encoding="utf-8",
    )
    assert cli_main(["import", "data/c.csv"]) == 2
    assert "New BASE row requires make, model, year, and body_type" in capsys.readouterr().out


def test_exit_code_header_failure(write_config: Path, temp_workdir: Path, capsys):
    (temp_workdir / "data" / "c.csv").write_text("row_type,base_id\nBASE,rav4\n", encoding="utf-8")
    assert cli_main(["import", "data/c.csv"]) == 2
