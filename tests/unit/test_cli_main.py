from __future__ import annotations

import json
from contextlib import contextmanager, nullcontext
from pathlib import Path

import task_import.cli.__main__ as cli_mod
from task_import.cli import main as cli_main
from task_import.store.base import Parent, StoreError
from task_import.store.memory import InMemoryTaskStore


def test_sample_needs_no_config(temp_workdir: Path, capsys):
    code = cli_main(["sample"])
    out = capsys.readouterr().out
    assert code == 0
    assert json.loads(out)[0]["projectName"] == "Website Redesign"


def test_sample_csv(temp_workdir: Path, capsys):
    assert cli_main(["sample", "--format", "csv"]) == 0
    assert capsys.readouterr().out.startswith("projectName,pages,rate,")


def test_missing_config_is_fatal(temp_workdir: Path, csv_file: Path, capsys):
    code = cli_main(["preview", str(csv_file)])
    assert code == 1
    assert "ERROR config: config file not found" in capsys.readouterr().out


def test_conflicting_synonyms_are_fatal(write_config: Path, csv_file: Path, capsys):
    write_config.write_text("column_synonyms:\n  pages: [Title]\n", encoding="utf-8")
    assert cli_main(["preview", str(csv_file)]) == 1
    assert "ERROR config: header label 'Title'" in capsys.readouterr().out


def test_preview_lists_records_and_summary(write_config: Path, csv_file: Path, capsys):
    code = cli_main(["preview", str(csv_file)])
    out = capsys.readouterr().out
    assert code == 0
    assert "#1   ✓ [x] Website Redesign | 8 pages x 150 = 1200 | In Progress | Unpaid" in out
    assert "SUMMARY rows=3 valid=3 invalid=0 selected=3" in out


def test_preview_invalid_row_shows_reason(write_config: Path, temp_workdir: Path, capsys):
    f = temp_workdir / "data" / "bad.csv"
    f.write_text("Project Name,Pages,Rate\nFlyer,abc,50\nPoster,2,\n", encoding="utf-8")
    code = cli_main(["preview", str(f)])
    out = capsys.readouterr().out
    assert code == 0
    assert "#1   ✗ [ ] Flyer | ? pages x 50 = ?" in out
    assert "reason: pages is not a positive whole number: 'abc'" in out
    # config の既定 rate=100 が適用される
    assert "Poster | 2 pages x 100 = 200" in out
    assert "SUMMARY rows=2 valid=1 invalid=1 selected=1" in out
    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    assert json.loads(logs[0].read_text(encoding="utf-8").splitlines()[0])["error_type"] == "INVALID_ROW"


def test_preview_default_rate_override(write_config: Path, temp_workdir: Path, capsys):
    f = temp_workdir / "data" / "norate.csv"
    f.write_text("Task,Pages\nLogo,3\n", encoding="utf-8")
    assert cli_main(["preview", str(f), "--default-rate", "250"]) == 0
    assert "Logo | 3 pages x 250 = 750" in capsys.readouterr().out


def test_preview_parse_error(write_config: Path, temp_workdir: Path, capsys):
    f = temp_workdir / "data" / "empty.csv"
    f.write_text("\n\n", encoding="utf-8")
    assert cli_main(["preview", str(f)]) == 1
    assert "ERROR parse: cannot parse: no CSV data" in capsys.readouterr().out


def test_import_commits_selected_rows(write_config: Path, csv_file: Path, capsys):
    code = cli_main(["import", str(csv_file), "--parent", "client-1", "--exclude", "2"])
    out = capsys.readouterr().out
    assert code == 0
    assert "#2   ✓ [ ] Logo Design" in out
    assert "SUMMARY committed=2/2 parent=client-1 first_sl_no=1 last_sl_no=2" in out


def test_import_edit_and_revalidate(write_config: Path, temp_workdir: Path, monkeypatch, capsys):
    store = InMemoryTaskStore(parents=[Parent("client-1", "Acme Studio")])
    monkeypatch.setattr(cli_mod, "_open_store", lambda cfg: nullcontext(store))
    f = temp_workdir / "data" / "fix.csv"
    f.write_text("Project Name,Pages,Rate\nFlyer,abc,50\nPoster,2,40\n", encoding="utf-8")
    code = cli_main(
        ["import", str(f), "--parent", "client-1", "--edit", "1:pages=4", "--revalidate", "--include", "1"]
    )
    assert code == 0
    assert [(t["projectName"], t["slNo"], t["total"]) for t in store.tasks] == [
        ("Flyer", 1, 200),
        ("Poster", 2, 80),
    ]


def test_import_selected_invalid_row_is_refused(write_config: Path, temp_workdir: Path, capsys):
    f = temp_workdir / "data" / "bad.csv"
    f.write_text("Project Name,Pages,Rate\nFlyer,abc,50\n", encoding="utf-8")
    code = cli_main(["import", str(f), "--parent", "client-1", "--all"])
    assert code == 1
    assert "ERROR import: row #1 cannot be imported" in capsys.readouterr().out


def test_import_unknown_parent(write_config: Path, csv_file: Path, capsys):
    assert cli_main(["import", str(csv_file), "--parent", "nobody"]) == 1
    assert "ERROR import: parent 'nobody' not found" in capsys.readouterr().out


def test_import_unknown_row(write_config: Path, csv_file: Path, capsys):
    assert cli_main(["import", str(csv_file), "--parent", "client-1", "--exclude", "9"]) == 1
    assert "ERROR selection:" in capsys.readouterr().out


def test_import_unknown_field(write_config: Path, csv_file: Path, capsys):
    assert cli_main(["import", str(csv_file), "--parent", "client-1", "--edit", "1:budget=3"]) == 1
    assert "ERROR selection:" in capsys.readouterr().out


def test_parents_lists_mock_parents(write_config: Path, capsys):
    assert cli_main(["parents"]) == 0
    assert "client-1\tAcme Studio" in capsys.readouterr().out


def test_store_connection_failure_is_fatal(write_config: Path, csv_file: Path, monkeypatch, capsys):
    import task_import.store.postgres as pg

    @contextmanager
    def failing_connect(db_cfg):
        raise StoreError("database connection failed: refused")
        yield

    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    monkeypatch.setattr(pg, "connect", failing_connect)
    write_config.write_text("store:\n  backend: postgres\n", encoding="utf-8")

    assert cli_main(["parents"]) == 1
    assert "ERROR store: database connection failed" in capsys.readouterr().out
    assert cli_main(["import", str(csv_file), "--parent", "client-1"]) == 1
    assert "ERROR store: database connection failed" in capsys.readouterr().out


def test_debug_flag_enables_debug_output(write_config: Path, csv_file: Path, capsys):
    assert cli_main(["--debug", "preview", str(csv_file)]) == 0
    assert "DEBUG debug mode enabled" in capsys.readouterr().out
