from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg2
from dotenv import load_dotenv
from psycopg2.extras import RealDictCursor

from ..config.loader import DEFAULT_CONFIG_PATH, AppConfig, ConfigError, load_config, resolve_dsn
from ..csvfile.exporter import write_csv_file
from ..csvfile.parser import CsvFormatError, read_csv_file
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.vehicle import VehicleStatus
from ..services.orchestrator import run_import
from ..services.summary import render_summary_line
from ..services.validator import validate
from ..store.base import RecordStore, RecordStoreError
from ..store.memory import InMemoryRecordStore
from ..store.postgres import PostgresRecordStore

"""CLI entry point: ``python -m catalog_import.cli``.

Commands:
- import FILE [--actor ID]        parse, validate, write, archive; SUMMARY line
- export FILE [--include-archived] write the catalog CSV
- validate FILE                    parse + validate only, no store access

Exit codes: 0 success / 2 import recorded with errors / 1 fatal
"""

EXIT_SUCCESS = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


@contextmanager
def _db_store(cfg: AppConfig) -> Iterator[RecordStore]:
    """psycopg2 connection -> PostgresRecordStore.

    One transaction for the whole command: COMMIT on normal exit, ROLLBACK
    if the command raised. Row failures inside an import are isolated by the
    store's savepoints, so they do not force a rollback.
    """
    conn = psycopg2.connect(resolve_dsn(cfg.database))
    conn.autocommit = False
    try:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            store = PostgresRecordStore(cur)
            store.set_statement_timeout(cfg.store.statement_timeout_ms)
            store.ensure_schema()
            yield store
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def _open_store(cfg: AppConfig, logger: logging.Logger) -> Iterator[RecordStore]:
    # テスト等で DB 接続を無効化: DISABLE_DB_CONNECT=1
    if os.getenv("DISABLE_DB_CONNECT") == "1" or cfg.store.backend == "memory":
        logger.info("store=memory (nothing is persisted)")
        yield InMemoryRecordStore()
        return
    with _db_store(cfg) as store:
        logger.debug("store=postgres")
        yield store


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values win over the existing environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="catalog_import", description="Vehicle catalog CSV import / export")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Import a catalog CSV")
    p_import.add_argument("file", type=Path)
    p_import.add_argument("--actor", default=None, help="Operator id recorded on the import batch")

    p_export = sub.add_parser("export", help="Export the catalog as CSV")
    p_export.add_argument("file", type=Path)
    p_export.add_argument("--include-archived", action="store_true", help="Also export archived records")

    p_validate = sub.add_parser("validate", help="Validate a catalog CSV without writing")
    p_validate.add_argument("file", type=Path)
    return p.parse_args(argv)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise CsvFormatError(f"{path.name} is not valid UTF-8: {e}") from e


def _cmd_import(args: argparse.Namespace, cfg: AppConfig, logger: logging.Logger) -> int:
    try:
        text = _read_text(args.file)
    except (OSError, CsvFormatError) as e:
        logger.error(f"cannot read {args.file}: {e}")
        return EXIT_FATAL

    actor = args.actor or cfg.import_settings.default_actor
    cancel_event = threading.Event()
    timer: threading.Timer | None = None
    if cfg.import_settings.timeout_seconds:
        timer = threading.Timer(cfg.import_settings.timeout_seconds, cancel_event.set)
        timer.daemon = True
        timer.start()

    try:
        with _open_store(cfg, logger) as store:
            result = run_import(
                text,
                args.file.name,
                actor,
                store,
                cancel_event=cancel_event,
                error_log=ErrorLogBuffer(cfg.logs_dir),
            )
    except (psycopg2.Error, RecordStoreError) as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    finally:
        if timer is not None:
            timer.cancel()

    for e in result.errors:
        logger.error(str(e))
    if result.batch.notes:
        logger.info(f"notes: {result.batch.notes}")
    if not result.batch_persisted:
        logger.error(f"import batch {result.batch.id} could not be stored")

    # "SUMMARY " はフォーマッタが付与する
    log_summary(render_summary_line(result)[len("SUMMARY "):])

    if result.success and result.batch_persisted:
        return EXIT_SUCCESS
    return EXIT_PARTIAL_FAILURE


def _cmd_export(args: argparse.Namespace, cfg: AppConfig, logger: logging.Logger) -> int:
    statuses = None if args.include_archived else [VehicleStatus.DRAFT, VehicleStatus.LIVE]
    try:
        with _open_store(cfg, logger) as store:
            records = store.list_records(statuses=statuses)
        count = write_csv_file(records, args.file)
    except (psycopg2.Error, RecordStoreError) as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    except OSError as e:
        logger.error(f"cannot write {args.file}: {e}")
        return EXIT_FATAL
    logger.info(f"exported {count} records to {args.file}")
    return EXIT_SUCCESS


def _cmd_validate(args: argparse.Namespace, logger: logging.Logger) -> int:
    try:
        parsed = read_csv_file(args.file)
    except (OSError, CsvFormatError) as e:
        logger.error(f"cannot read {args.file}: {e}")
        return EXIT_FATAL
    result = validate(parsed.headers, parsed.raw_rows)
    for msg in result.header_errors:
        logger.error(f"header: {msg}")
    for e in result.errors:
        logger.error(str(e))
    logger.info(
        f"validate: rows={len(result.rows)} base={len(result.base_rows)} "
        f"variant={len(result.variant_rows)} errors={len(result.errors) + len(result.header_errors)}"
    )
    return EXIT_SUCCESS if result.is_valid else EXIT_PARTIAL_FAILURE


def main(argv: list[str] | None = None) -> int:
    # 空リスト [] は「引数なし」。None のときのみ sys.argv を読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    # .env を最優先で読み込む (DB 接続パラメータ優先順位保証)
    _load_env_file(Path(".env"), override=True)

    if args.command == "validate":
        return _cmd_validate(args, logger)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "import":
        return _cmd_import(args, cfg, logger)
    return _cmd_export(args, cfg, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
