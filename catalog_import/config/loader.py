from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

- YAML (default ``config/import.yml``) via yaml.safe_load
- Validated against config_schema.json (unknown keys rejected)
- Defaults: statement_timeout_ms=30000, logs_dir=./logs
- Database connection: DATABASE_URL / PGDSN > PG* env vars > YAML ``database``
"""

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "StoreConfig",
    "ImportSettings",
    "AppConfig",
    "load_config",
    "resolve_dsn",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
]

DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

DEFAULT_STATEMENT_TIMEOUT_MS = 30000
DEFAULT_LOGS_DIR = "./logs"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class StoreConfig:
    backend: str  # "postgres" | "memory"
    statement_timeout_ms: int = DEFAULT_STATEMENT_TIMEOUT_MS


@dataclass(frozen=True)
class ImportSettings:
    timeout_seconds: float | None = None  # None = 無制限
    default_actor: str | None = None


@dataclass(frozen=True)
class AppConfig:
    store: StoreConfig
    import_settings: ImportSettings = field(default_factory=ImportSettings)
    logs_dir: Path = Path(DEFAULT_LOGS_DIR)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against config_schema.json.

    Raises:
        ConfigError: schema file missing or unreadable, or data invalid
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        where = ".".join(str(p) for p in e.absolute_path)
        prefix = f"{where}: " if where else ""
        raise ConfigError(f"config validation failed: {prefix}{e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    store_raw = data["store"]
    import_raw = data.get("import") or {}
    db_raw = data.get("database") or {}
    return AppConfig(
        store=StoreConfig(
            backend=store_raw["backend"],
            statement_timeout_ms=store_raw.get("statement_timeout_ms", DEFAULT_STATEMENT_TIMEOUT_MS),
        ),
        import_settings=ImportSettings(
            timeout_seconds=import_raw.get("timeout_seconds"),
            default_actor=import_raw.get("default_actor"),
        ),
        logs_dir=Path(data.get("logs_dir", DEFAULT_LOGS_DIR)),
        database=DatabaseConfig(
            host=db_raw.get("host"),
            port=db_raw.get("port"),
            user=db_raw.get("user"),
            password=db_raw.get("password"),
            database=db_raw.get("database"),
            dsn=db_raw.get("dsn"),
        ),
    )


def resolve_dsn(db: DatabaseConfig) -> str:
    """Build the libpq DSN.

    優先順位:
        1. DATABASE_URL / PGDSN (DSN 全体)
        2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. YAML の database セクション (dsn があればそれを使用)
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db.host or "localhost")
    port = os.getenv("PGPORT", str(db.port) if db.port else "5432")
    user = os.getenv("PGUSER", db.user or "postgres")
    password = os.getenv("PGPASSWORD", db.password or "")
    database = os.getenv("PGDATABASE", db.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn
