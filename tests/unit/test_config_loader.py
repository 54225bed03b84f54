from __future__ import annotations

from pathlib import Path

import pytest

from task_import.config.loader import ConfigError, build_config, load_config
from task_import.models.task_record import PaymentStatus, WorkStatus


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.defaults.rate == 100
    assert cfg.defaults.payment_status is PaymentStatus.UNPAID
    assert cfg.defaults.work_status is WorkStatus.PENDING
    assert cfg.defaults.submission_offset_days == 14
    assert cfg.column_synonyms == {"projectName": ["Job"]}
    assert cfg.store.backend == "memory"
    assert cfg.store.mock_parents == (("client-1", "Acme Studio"),)
    assert cfg.database.host == "localhost"
    assert cfg.database.port == 5432
    assert cfg.logs_directory == "./logs"


def test_empty_config_gets_defaults():
    cfg = build_config({})
    assert cfg.defaults.rate is None
    assert cfg.defaults.payment_status is PaymentStatus.UNPAID
    assert cfg.store.backend == "postgres"
    assert cfg.store.mock_parents == ()
    assert cfg.column_synonyms == {}
    assert cfg.database.dsn is None


def test_load_config_empty_file(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "import.yml"
    cfg_path.write_text("", encoding="utf-8")
    assert load_config(cfg_path).defaults.rate is None


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(temp_workdir / "config" / "not_exists.yml")


def test_load_config_invalid_yaml(write_config: Path):
    write_config.write_text("defaults: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(write_config)


@pytest.mark.parametrize(
    "data",
    [
        {"extra_field": 1},
        {"defaults": {"rate": 0}},
        {"defaults": {"rate": "cheap"}},
        {"defaults": {"payment_status": "Refunded"}},
        {"defaults": {"currency": "INR"}},
        {"submission_offset_days": -1},
        {"column_synonyms": {"budget": ["Budget"]}},
        {"column_synonyms": {"pages": "Page No"}},
        {"store": {"backend": "sqlite"}},
        {"store": {"mock_parents": [{"name": "no id"}]}},
    ],
)
def test_schema_violations(data: dict):
    with pytest.raises(ConfigError, match="config validation failed"):
        build_config(data)


def test_top_level_must_be_mapping():
    with pytest.raises(ConfigError):
        build_config(["not", "a", "mapping"])  # type: ignore[arg-type]
