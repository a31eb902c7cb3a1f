from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

import psycopg2
from psycopg2.extras import Json

from ..models.import_batch import ArchiveLogEntry, ImportBatch
from ..models.vehicle import RECORD_FIELDS, RowType, VehicleRecord, VehicleStatus
from .base import DuplicateRecordError, RecordNotFoundError, RecordStoreError

"""PostgreSQL record store (psycopg2).

The store works on a cursor handed in by the caller (RealDictCursor rows);
the caller owns the connection and the transaction. Each write runs inside
its own SAVEPOINT, so a constraint violation on one row is rolled back alone
and the surrounding import transaction stays usable.

Tables: vehicle_records / vehicle_import_batches / vehicle_archive_logs
(SCHEMA_SQL). attributes, gallery, stats and errors are JSONB.
"""

__all__ = [
    "PostgresRecordStore",
    "SCHEMA_SQL",
]

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS vehicle_records (
    id                 TEXT PRIMARY KEY,
    row_type           TEXT NOT NULL CHECK (row_type IN ('BASE', 'VARIANT')),
    base_id            TEXT NOT NULL,
    variant_code       TEXT,
    status             TEXT NOT NULL DEFAULT 'draft' CHECK (status IN ('draft', 'live', 'archived')),
    archived_at        TIMESTAMPTZ,
    last_import_id     TEXT,
    created_at         TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at         TIMESTAMPTZ NOT NULL DEFAULT now(),
    make               TEXT,
    model              TEXT,
    year               INTEGER,
    body_type          TEXT,
    price_aud          NUMERIC(12, 2),
    cover_image_url    TEXT,
    gallery_image_urls JSONB NOT NULL DEFAULT '[]'::jsonb,
    image_source       TEXT,
    license_note       TEXT,
    attributes         JSONB NOT NULL DEFAULT '{}'::jsonb,
    CHECK (row_type = 'VARIANT' OR (id = base_id AND variant_code IS NULL)),
    CHECK (row_type = 'BASE' OR variant_code IS NOT NULL)
);
CREATE INDEX IF NOT EXISTS idx_vehicle_records_base ON vehicle_records (base_id);
CREATE INDEX IF NOT EXISTS idx_vehicle_records_status ON vehicle_records (status);

CREATE TABLE IF NOT EXISTS vehicle_import_batches (
    id          TEXT PRIMARY KEY,
    created_at  TIMESTAMPTZ NOT NULL,
    created_by  TEXT,
    file_name   TEXT NOT NULL,
    stats       JSONB NOT NULL,
    errors      JSONB NOT NULL DEFAULT '[]'::jsonb,
    notes       TEXT
);

CREATE TABLE IF NOT EXISTS vehicle_archive_logs (
    id              BIGSERIAL PRIMARY KEY,
    record_id       TEXT NOT NULL REFERENCES vehicle_records (id),
    import_id       TEXT,
    archived_at     TIMESTAMPTZ NOT NULL,
    reason          TEXT NOT NULL,
    previous_status TEXT NOT NULL,
    new_status      TEXT NOT NULL
);
"""

_COLUMNS = ", ".join(RECORD_FIELDS)
_TIMESTAMP_FIELDS = frozenset({"archived_at", "created_at", "updated_at"})
_IMMUTABLE_FIELDS = frozenset({"id", "created_at", "updated_at"})


def _adapt(field: str, value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if field == "gallery_image_urls":
        return Json(list(value or ()))
    if field == "attributes":
        return Json(dict(value or {}))
    return value


def _iso(value: Any) -> Any:
    if value is not None and hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def _row_to_record(row: dict[str, Any]) -> VehicleRecord:
    data = dict(row)
    for f in _TIMESTAMP_FIELDS:
        data[f] = _iso(data.get(f))
    return VehicleRecord.from_dict(data)


class PostgresRecordStore:
    """RecordStore over a psycopg2 cursor (RealDictCursor expected)."""

    def __init__(self, cursor: Any) -> None:
        self._cur = cursor

    def ensure_schema(self) -> None:
        self._cur.execute(SCHEMA_SQL)

    def set_statement_timeout(self, timeout_ms: int) -> None:
        self._cur.execute("SET statement_timeout = %s", (int(timeout_ms),))

    @contextmanager
    def _savepoint(self) -> Iterator[None]:
        self._cur.execute("SAVEPOINT record_write")
        try:
            yield
        except psycopg2.IntegrityError as e:
            self._cur.execute("ROLLBACK TO SAVEPOINT record_write")
            # 23505 = unique_violation
            if e.pgcode == "23505":
                raise DuplicateRecordError(str(e).strip()) from e
            raise RecordStoreError(str(e).strip()) from e
        except psycopg2.Error as e:
            self._cur.execute("ROLLBACK TO SAVEPOINT record_write")
            raise RecordStoreError(str(e).strip()) from e
        except RecordStoreError:
            self._cur.execute("RELEASE SAVEPOINT record_write")
            raise
        else:
            self._cur.execute("RELEASE SAVEPOINT record_write")

    def _read(self, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        try:
            self._cur.execute(sql, params)
            return list(self._cur.fetchall())
        except psycopg2.Error as e:
            raise RecordStoreError(str(e).strip()) from e

    # reads

    def get_by_id(self, record_id: str) -> VehicleRecord | None:
        rows = self._read(f"SELECT {_COLUMNS} FROM vehicle_records WHERE id = %s", (record_id,))
        return _row_to_record(rows[0]) if rows else None

    def list_ids(self, any_status: bool = True, row_type: RowType | None = None) -> set[str]:
        clauses: list[str] = []
        params: list[Any] = []
        if not any_status:
            clauses.append("status <> %s")
            params.append(VehicleStatus.ARCHIVED.value)
        if row_type is not None:
            clauses.append("row_type = %s")
            params.append(row_type.value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return {r["id"] for r in self._read(f"SELECT id FROM vehicle_records{where}", tuple(params))}

    def list_live_ids(self) -> set[str]:
        return self.list_ids(any_status=False)

    def list_records(
        self,
        statuses: Iterable[VehicleStatus] | None = None,
        include_variants: bool = True,
        base_id: str | None = None,
    ) -> list[VehicleRecord]:
        clauses: list[str] = []
        params: list[Any] = []
        if statuses is not None:
            clauses.append("status = ANY(%s)")
            params.append([s.value for s in statuses])
        if not include_variants:
            clauses.append("row_type = %s")
            params.append(RowType.BASE.value)
        if base_id is not None:
            clauses.append("base_id = %s")
            params.append(base_id)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._read(
            f"SELECT {_COLUMNS} FROM vehicle_records{where} ORDER BY base_id, row_type, variant_code",
            tuple(params),
        )
        return [_row_to_record(r) for r in rows]

    def list_archive_log(self, record_id: str | None = None) -> list[ArchiveLogEntry]:
        sql = (
            "SELECT record_id, import_id, archived_at, reason, previous_status, new_status "
            "FROM vehicle_archive_logs"
        )
        params: tuple[Any, ...] = ()
        if record_id is not None:
            sql += " WHERE record_id = %s"
            params = (record_id,)
        rows = self._read(sql + " ORDER BY id", params)
        return [
            ArchiveLogEntry(
                record_id=r["record_id"],
                import_id=r["import_id"],
                archived_at=_iso(r["archived_at"]),
                reason=r["reason"],
                previous_status=VehicleStatus(r["previous_status"]),
                new_status=VehicleStatus(r["new_status"]),
            )
            for r in rows
        ]

    # writes

    def insert(self, record: VehicleRecord) -> VehicleRecord:
        fields = [f for f in RECORD_FIELDS if f not in _IMMUTABLE_FIELDS or f == "id"]
        placeholders = ", ".join(["%s"] * len(fields))
        values = tuple(_adapt(f, getattr(record, f)) for f in fields)
        with self._savepoint():
            self._cur.execute(
                f"INSERT INTO vehicle_records ({', '.join(fields)}) VALUES ({placeholders}) "
                f"RETURNING {_COLUMNS}",
                values,
            )
            row = self._cur.fetchone()
        logger.debug("insert id=%s row_type=%s", record.id, record.row_type.value)
        return _row_to_record(row)

    def update(self, record_id: str, patch: dict[str, Any]) -> VehicleRecord:
        unknown = set(patch) - set(RECORD_FIELDS)
        if unknown:
            raise RecordStoreError(f"unknown fields in patch: {sorted(unknown)}")
        fields = [f for f in patch if f not in _IMMUTABLE_FIELDS]
        assignments = ", ".join(f"{f} = %s" for f in fields)
        if assignments:
            assignments += ", "
        values = tuple(_adapt(f, patch[f]) for f in fields)
        with self._savepoint():
            self._cur.execute(
                f"UPDATE vehicle_records SET {assignments}updated_at = now() WHERE id = %s "
                f"RETURNING {_COLUMNS}",
                values + (record_id,),
            )
            row = self._cur.fetchone()
            if row is None:
                raise RecordNotFoundError(f"vehicle {record_id} not found")
        logger.debug("update id=%s fields=%s", record_id, fields)
        return _row_to_record(row)

    def archive(self, record_id: str, reason: str, import_id: str | None = None) -> ArchiveLogEntry:
        with self._savepoint():
            self._cur.execute("SELECT status FROM vehicle_records WHERE id = %s FOR UPDATE", (record_id,))
            current = self._cur.fetchone()
            if current is None:
                raise RecordNotFoundError(f"vehicle {record_id} not found")
            self._cur.execute(
                "UPDATE vehicle_records SET status = %s, archived_at = now(), "
                "last_import_id = COALESCE(%s, last_import_id), updated_at = now() "
                "WHERE id = %s RETURNING archived_at",
                (VehicleStatus.ARCHIVED.value, import_id, record_id),
            )
            archived_at = _iso(self._cur.fetchone()["archived_at"])
            entry = ArchiveLogEntry(
                record_id=record_id,
                import_id=import_id,
                archived_at=archived_at,
                reason=reason,
                previous_status=VehicleStatus(current["status"]),
            )
            self._cur.execute(
                "INSERT INTO vehicle_archive_logs "
                "(record_id, import_id, archived_at, reason, previous_status, new_status) "
                "VALUES (%s, %s, %s, %s, %s, %s)",
                (
                    entry.record_id,
                    entry.import_id,
                    entry.archived_at,
                    entry.reason,
                    entry.previous_status.value,
                    entry.new_status.value,
                ),
            )
        return entry

    def restore(self, record_id: str) -> VehicleRecord:
        return self.update(record_id, {"status": VehicleStatus.DRAFT, "archived_at": None})

    def store_import_batch(self, batch: ImportBatch) -> None:
        with self._savepoint():
            self._cur.execute(
                "INSERT INTO vehicle_import_batches "
                "(id, created_at, created_by, file_name, stats, errors, notes) "
                "VALUES (%s, %s, %s, %s, %s, %s, %s)",
                (
                    batch.id,
                    batch.created_at,
                    batch.created_by,
                    batch.file_name,
                    Json(batch.stats.to_dict()),
                    Json([e.to_dict() for e in batch.errors]),
                    batch.notes,
                ),
            )
