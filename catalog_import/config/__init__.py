from .loader import AppConfig, ConfigError, DatabaseConfig, ImportSettings, StoreConfig, load_config, resolve_dsn

__all__ = [
    "AppConfig",
    "ConfigError",
    "DatabaseConfig",
    "ImportSettings",
    "StoreConfig",
    "load_config",
    "resolve_dsn",
]
