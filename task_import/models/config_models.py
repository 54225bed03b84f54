from __future__ import annotations

from dataclasses import dataclass, field

from .task_record import ImportDefaults

"""Config dataclasses for the bulk task importer.

Built by task_import.config.loader from config/import.yml after JSON Schema
validation; every other module receives these typed objects only.
"""

__all__ = [
    "DatabaseConfig",
    "StoreConfig",
    "ImportConfig",
]


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class StoreConfig:
    backend: str = "postgres"  # postgres | memory
    mock_parents: tuple[tuple[str, str], ...] = ()  # (id, name) seeded into memory store


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an import run."""
    defaults: ImportDefaults = field(default_factory=ImportDefaults)
    column_synonyms: dict[str, list[str]] = field(default_factory=dict)  # 追加の列名 (組み込みの後ろに追加)
    store: StoreConfig = field(default_factory=StoreConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logs_directory: str = "./logs"
