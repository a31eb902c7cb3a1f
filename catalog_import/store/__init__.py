"""Record store layer: protocol, in-memory store, PostgreSQL store."""

from .base import DuplicateRecordError, RecordNotFoundError, RecordStore, RecordStoreError
from .memory import InMemoryRecordStore, utc_now_iso
from .postgres import SCHEMA_SQL, PostgresRecordStore

__all__ = [
    "RecordStore",
    "RecordStoreError",
    "RecordNotFoundError",
    "DuplicateRecordError",
    "InMemoryRecordStore",
    "PostgresRecordStore",
    "SCHEMA_SQL",
    "utc_now_iso",
]
