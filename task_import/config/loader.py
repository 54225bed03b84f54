from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DatabaseConfig, ImportConfig, StoreConfig
from ..models.task_record import ImportDefaults, PaymentStatus, WorkStatus

"""Config loader.

Responsibilities:
- Load YAML config/import.yml
- Validate against config_schema.json (additionalProperties: false everywhere)
- Apply defaults (rate=None, Unpaid, Pending, 14 day submission offset)
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing / not JSON, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def build_config(data: dict[str, Any]) -> ImportConfig:
    """Validate an already-parsed mapping and build the typed ImportConfig."""
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")
    _validate_config_schema(data)

    d_raw = data.get("defaults") or {}
    defaults = ImportDefaults(
        rate=d_raw.get("rate"),
        payment_status=PaymentStatus(d_raw.get("payment_status", PaymentStatus.UNPAID.value)),
        work_status=WorkStatus(d_raw.get("work_status", WorkStatus.PENDING.value)),
        submission_offset_days=data.get("submission_offset_days", 14),
    )

    s_raw = data.get("store") or {}
    store = StoreConfig(
        backend=s_raw.get("backend", "postgres"),
        mock_parents=tuple((p["id"], p.get("name", "")) for p in s_raw.get("mock_parents", [])),
    )

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(
        defaults=defaults,
        column_synonyms={k: list(v) for k, v in (data.get("column_synonyms") or {}).items()},
        store=store,
        database=db,
        logs_directory=data.get("logs_directory", "./logs"),
    )


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    return build_config(data)
