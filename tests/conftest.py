# Shared pytest fixtures
from __future__ import annotations

import tempfile
from datetime import date
from pathlib import Path

import pytest

from task_import.logging.init import reset_logging
from task_import.store.base import Parent
from task_import.store.memory import InMemoryTaskStore

TODAY = date(2024, 3, 1)

SCENARIO_CSV = """Project Name,Pages,Rate,Status,Notes,Start Date,Due Date
Website Redesign,8,150,In Progress,Modern responsive design,2024-01-15,2024-02-15
Logo Design,3,200,Pending,Brand identity project,2024-01-20,2024-02-05
Mobile App UI,12,120,Completed,iOS and Android interface,2024-01-01,2024-01-25
"""


@pytest.fixture(autouse=True)
def _fresh_logging():
    # handler は sys.stdout を掴むので capsys の差し替え後に作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """defaults:
  rate: 100
  payment_status: Unpaid
submission_offset_days: 14
column_synonyms:
  projectName: [Job]
store:
  backend: memory
  mock_parents:
    - id: client-1
      name: Acme Studio
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
logs_directory: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def scenario_csv() -> str:
    return SCENARIO_CSV


@pytest.fixture()
def csv_file(temp_workdir: Path) -> Path:
    f = temp_workdir / "data" / "tasks.csv"
    f.write_text(SCENARIO_CSV, encoding="utf-8")
    return f


@pytest.fixture()
def parent() -> Parent:
    return Parent(id="client-1", name="Acme Studio")


@pytest.fixture()
def store(parent: Parent) -> InMemoryTaskStore:
    existing = [{"id": f"t{i}", "slNo": i, "projectName": f"Old {i}"} for i in range(1, 6)]
    return InMemoryTaskStore(parents=[parent], tasks=existing)
