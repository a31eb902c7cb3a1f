from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from ..csvfile.parser import CsvFormatError, parse_csv_text
from ..logging.error_log import ErrorLogBuffer
from ..models.import_batch import ARCHIVE_REASON_MISSING, ImportResult, ImportStats
from ..models.row_error import NO_SOURCE_ROW, RowError
from ..models.validated_row import ValidatedRow, ValidationResult
from ..models.vehicle import RowType
from ..store.base import RecordStore, RecordStoreError
from .batch_recorder import build_batch, new_import_id, record_batch
from .progress import ProgressTracker
from .resolver import PACK_KIND
from .validator import validate

"""Import orchestrator: validated rows -> record store writes.

Steps (each may end the import early; every path records one ImportBatch):

1. invalid file (header / row errors)  -> batch, no writes
2. snapshot store ids (all / BASE / live)
3. VARIANT base_id must exist as a BASE in the store or in the file
   -> otherwise batch, no writes
4. pass 1: BASE rows (update only supplied fields / insert)
5. pass 2: VARIANT rows (verbatim upsert)
6. archive live records missing from the file
7. batch with final stats

Per-row failures in 4-6 are collected and never stop the other rows.
The snapshot from step 2 is not refreshed while writing.
"""

__all__ = [
    "apply_import",
    "run_import",
    "HEADER_ROW_NUMBER",
]

logger = logging.getLogger(__name__)

HEADER_ROW_NUMBER = 1

_NEW_BASE_MESSAGE = "New BASE row requires make, model, year, and body_type"
_CANCELLED_MESSAGE = "import cancelled: remaining writes and archival were skipped"

# BASE 更新時、CSV に値がある場合のみ上書きするスカラー列
_BASE_SCALAR_FIELDS = (
    "make",
    "model",
    "year",
    "body_type",
    "price_aud",
    "cover_image_url",
    "image_source",
    "license_note",
)


class _Cancelled(Exception):
    pass


class _Run:
    """Mutable state of one import attempt."""

    def __init__(self, store: RecordStore, import_id: str, cancel_event: threading.Event | None) -> None:
        self.store = store
        self.import_id = import_id
        self.cancel_event = cancel_event
        self.errors: list[RowError] = []
        self.created = 0
        self.updated = 0
        self.archived = 0
        self.cancelled = False

    def error(self, row_number: int, vehicle_id: str | None, field: str | None, message: str) -> None:
        e = RowError.create(row_number, vehicle_id, field, message)
        logger.warning("import: %s", e)
        self.errors.append(e)

    def check_cancel(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise _Cancelled()


def _base_stats(validation: ValidationResult) -> ImportStats:
    return ImportStats(
        total_rows=len(validation.rows),
        base_rows=len(validation.base_rows),
        variant_rows=len(validation.variant_rows),
    )


def _finish(
    store: RecordStore,
    import_id: str,
    file_name: str,
    actor_id: str | None,
    stats: ImportStats,
    errors: list[RowError],
    notes: str | None,
    *,
    now: str | None,
    error_log: ErrorLogBuffer | None,
    success: bool,
    cancelled: bool = False,
) -> ImportResult:
    batch = build_batch(import_id, file_name, actor_id, stats, errors, notes, created_at=now)
    persisted = record_batch(store, batch, error_log)
    return ImportResult(
        batch=batch,
        success=success,
        stats=batch.stats,
        errors=list(errors),
        batch_persisted=persisted,
        cancelled=cancelled,
    )


def _is_pack(row: ValidatedRow) -> bool:
    return (row.attributes.get("admin_variant_kind") or "") == PACK_KIND


def _format_aud(value: float) -> str:
    return f"${value:,.0f}" if value == int(value) else f"${value:,.2f}"


def _pack_notes(store: RecordStore, base_rows: Sequence[ValidatedRow], variant_rows: Sequence[ValidatedRow]) -> str | None:
    pack_rows = [r for r in variant_rows if _is_pack(r)]
    if not pack_rows:
        return None
    notes = ["Pack rows are treated as delta pricing (AUD): price_aud is added on top of the BASE price."]
    file_prices = {r.base_id: r.price_aud for r in base_rows if r.price_aud is not None}
    store_prices: dict[str, float | None] = {}
    for row in pack_rows:
        if row.price_aud is None:
            continue
        base_price = file_prices.get(row.base_id)
        if base_price is None:
            if row.base_id not in store_prices:
                try:
                    base = store.get_by_id(row.base_id)
                except RecordStoreError as e:
                    logger.warning("pack note: base price lookup failed base_id=%s: %s", row.base_id, e)
                    base = None
                store_prices[row.base_id] = base.price_aud if base is not None and base.is_base else None
            base_price = store_prices[row.base_id]
        if base_price is not None and row.price_aud > base_price:
            notes.append(
                f"Warning row {row.row_number} ({row.id}): pack delta {_format_aud(row.price_aud)} "
                f"exceeds base price {_format_aud(base_price)} for {row.base_id}."
            )
    return " ".join(notes)


def _base_patch(run: _Run, row: ValidatedRow) -> dict[str, Any]:
    """Update patch for an existing BASE: blanks never overwrite stored values."""
    patch: dict[str, Any] = {"last_import_id": run.import_id}
    for name in _BASE_SCALAR_FIELDS:
        value = getattr(row, name)
        if value is not None:
            patch[name] = value
    if row.gallery_image_urls:
        patch["gallery_image_urls"] = row.gallery_image_urls
    if row.status is not None:
        patch["status"] = row.status
    supplied = {k: v for k, v in row.attributes.items() if v is not None}
    if supplied:
        existing = run.store.get_by_id(row.id)
        merged = dict(existing.attributes) if existing is not None else {}
        merged.update(supplied)
        patch["attributes"] = merged
    return patch


def _variant_patch(run: _Run, row: ValidatedRow) -> dict[str, Any]:
    """Update patch for an existing VARIANT: every field, nulls included."""
    record = row.to_record(import_id=run.import_id)
    patch: dict[str, Any] = {
        "row_type": record.row_type,
        "base_id": record.base_id,
        "variant_code": record.variant_code,
        "last_import_id": run.import_id,
        "attributes": dict(row.attributes),
        "gallery_image_urls": row.gallery_image_urls,
    }
    for name in _BASE_SCALAR_FIELDS:
        patch[name] = getattr(row, name)
    # status 空欄 = 既存値を維持
    if row.status is not None:
        patch["status"] = row.status
    return patch


def _write_base(run: _Run, row: ValidatedRow, existing_ids: set[str]) -> None:
    if row.id in existing_ids:
        run.store.update(row.id, _base_patch(run, row))
        run.updated += 1
        logger.debug("row=%d BASE update id=%s", row.row_number, row.id)
        return
    if not (row.make and row.model and row.year and row.body_type):
        run.error(row.row_number, row.id, None, _NEW_BASE_MESSAGE)
        return
    run.store.insert(row.to_record(import_id=run.import_id))
    run.created += 1
    logger.debug("row=%d BASE insert id=%s", row.row_number, row.id)


def _write_variant(run: _Run, row: ValidatedRow, existing_ids: set[str]) -> None:
    if row.id in existing_ids:
        run.store.update(row.id, _variant_patch(run, row))
        run.updated += 1
        logger.debug("row=%d VARIANT update id=%s", row.row_number, row.id)
    else:
        run.store.insert(row.to_record(import_id=run.import_id))
        run.created += 1
        logger.debug("row=%d VARIANT insert id=%s", row.row_number, row.id)


def _write_pass(run: _Run, rows: Sequence[ValidatedRow], existing_ids: set[str], label: str) -> None:
    writer = _write_base if label == RowType.BASE.value else _write_variant
    errors_before = len(run.errors)
    with ProgressTracker(len(rows), description=f"{label} rows") as progress:
        for row in rows:
            run.check_cancel()
            try:
                writer(run, row, existing_ids)
            except RecordStoreError as e:
                run.error(row.row_number, row.id, None, str(e))
            except Exception as e:  # 1 行の失敗で全体を止めない
                logger.exception("row=%d unexpected failure id=%s", row.row_number, row.id)
                run.error(row.row_number, row.id, None, f"unexpected: {e}")
            progress.advance()
            progress.set_postfix(created=run.created, updated=run.updated, errors=len(run.errors))
    logger.info(
        "%s pass: rows=%d created=%d updated=%d errors=%d",
        label,
        len(rows),
        run.created,
        run.updated,
        len(run.errors) - errors_before,
    )


def _archive_missing(run: _Run, live_ids: set[str], file_ids: set[str]) -> None:
    stale = sorted(live_ids - file_ids)
    with ProgressTracker(len(stale), description="archive", unit="record") as progress:
        for record_id in stale:
            run.check_cancel()
            try:
                run.store.archive(record_id, ARCHIVE_REASON_MISSING, run.import_id)
                run.archived += 1
                logger.debug("archived id=%s reason=%s", record_id, ARCHIVE_REASON_MISSING)
            except RecordStoreError as e:
                run.error(NO_SOURCE_ROW, record_id, None, str(e))
            except Exception as e:
                logger.exception("archive unexpected failure id=%s", record_id)
                run.error(NO_SOURCE_ROW, record_id, None, f"unexpected: {e}")
            progress.advance()
    logger.info("archive: candidates=%d archived=%d", len(stale), run.archived)


def apply_import(
    validation: ValidationResult,
    file_name: str,
    actor_id: str | None,
    store: RecordStore,
    *,
    cancel_event: threading.Event | None = None,
    now: str | None = None,
    error_log: ErrorLogBuffer | None = None,
    import_id: str | None = None,
) -> ImportResult:
    """Apply a validation result to ``store``.

    Args:
        validation: Output of services.validator.validate
        file_name: Source file name (audit only)
        actor_id: Operator id recorded on the batch (nullable)
        store: Record store to write to
        cancel_event: When set, remaining writes and archival are skipped;
            the batch is still recorded with what completed
        now: Batch created_at override (ISO 8601), mainly for tests
        error_log: JSON Lines sink for the batch errors
        import_id: Batch id override; a new one is generated otherwise

    Returns:
        ImportResult; success is True only when no error of any kind occurred
    """
    import_id = import_id or new_import_id()
    stats = _base_stats(validation)
    finish: dict[str, Any] = {"now": now, "error_log": error_log}
    logger.info(
        "import %s file=%s rows=%d (base=%d variant=%d)",
        import_id,
        file_name,
        stats.total_rows,
        stats.base_rows,
        stats.variant_rows,
    )

    # 1. ヘッダ / 行エラーがあれば書き込みなしで終了
    if not validation.is_valid:
        errors = [RowError.create(HEADER_ROW_NUMBER, None, None, m) for m in validation.header_errors]
        errors.extend(validation.errors)
        notes = "; ".join(validation.header_errors) or None
        logger.warning("import %s aborted: file is invalid (%d errors)", import_id, len(errors))
        return _finish(store, import_id, file_name, actor_id, stats, errors, notes, success=False, **finish)

    # 2. snapshot (以降リフレッシュしない)
    try:
        existing_ids = store.list_ids(any_status=True)
        store_base_ids = store.list_ids(any_status=True, row_type=RowType.BASE)
        live_ids = store.list_live_ids()
    except RecordStoreError as e:
        errors = [RowError.create(NO_SOURCE_ROW, None, None, f"failed to read current records: {e}")]
        logger.error("import %s aborted: %s", import_id, e)
        return _finish(store, import_id, file_name, actor_id, stats, errors, None, success=False, **finish)

    base_rows = validation.base_rows
    variant_rows = validation.variant_rows
    notes = _pack_notes(store, base_rows, variant_rows)

    # 3. 参照整合性 (1 件でもあれば全体中止)
    file_base_ids = {r.base_id for r in base_rows}
    ref_errors = [
        RowError.create(
            r.row_number,
            r.id,
            "base_id",
            f'VARIANT base_id "{r.base_id}" not found in the store or in this CSV',
        )
        for r in variant_rows
        if r.base_id not in store_base_ids and r.base_id not in file_base_ids
    ]
    if ref_errors:
        for e in ref_errors:
            logger.warning("import: %s", e)
        logger.warning("import %s aborted: %d dangling VARIANT references", import_id, len(ref_errors))
        return _finish(store, import_id, file_name, actor_id, stats, ref_errors, notes, success=False, **finish)

    # 4-6. writes
    run = _Run(store, import_id, cancel_event)
    try:
        _write_pass(run, base_rows, existing_ids, RowType.BASE.value)
        _write_pass(run, variant_rows, existing_ids, RowType.VARIANT.value)
        _archive_missing(run, live_ids, {r.id for r in validation.rows})
    except _Cancelled:
        run.cancelled = True
        run.error(NO_SOURCE_ROW, None, None, _CANCELLED_MESSAGE)

    # 7. batch
    final = stats.with_counts(created=run.created, updated=run.updated, archived=run.archived)
    return _finish(
        store,
        import_id,
        file_name,
        actor_id,
        final,
        run.errors,
        notes,
        success=not run.errors,
        cancelled=run.cancelled,
        **finish,
    )


def run_import(
    text: str,
    file_name: str,
    actor_id: str | None,
    store: RecordStore,
    *,
    cancel_event: threading.Event | None = None,
    now: str | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ImportResult:
    """Parse, validate and apply one CSV text.

    An untokenisable file is reported like a header failure (no writes).
    """
    try:
        parsed = parse_csv_text(text)
    except CsvFormatError as e:
        logger.warning("csv: %s", e)
        validation = ValidationResult(header_errors=[str(e)], is_valid=False)
    else:
        validation = validate(parsed.headers, parsed.raw_rows)
    return apply_import(
        validation,
        file_name,
        actor_id,
        store,
        cancel_event=cancel_event,
        now=now,
        error_log=error_log,
    )
