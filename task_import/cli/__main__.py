from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from task_import.config.loader import ConfigError, load_config
from task_import.logging.error_log import ErrorLogBuffer
from task_import.logging.init import log_summary, setup_logging
from task_import.models.config_models import ImportConfig
from task_import.models.staged_record import StagedRecord
from task_import.models.task_record import PaymentStatus
from task_import.services.column_mapper import ColumnMapper, build_synonym_table
from task_import.services.commit import CommitError, PreconditionError
from task_import.services.pipeline import commit_session, preview_file
from task_import.services.review import ReviewSession, UnknownRecordError
from task_import.services.samples import generate_sample_csv, generate_sample_json
from task_import.services.summary import (
    render_commit_summary,
    render_failure_summary,
    render_preview_summary,
)
from task_import.store.base import Parent, StoreError, TaskStore
from task_import.store.memory import InMemoryTaskStore
from task_import.tabular.reader import ParseError

"""CLI entrypoint.

    python -m task_import.cli [--config PATH] [--debug] preview FILE ...
    python -m task_import.cli import FILE --parent ID [--exclude 2,5] ...
    python -m task_import.cli sample --format csv|json
    python -m task_import.cli parents

Exit codes: 0 success, 1 fatal (config / parse / precondition / store
connection), 2 commit aborted part way (earlier rows stay persisted).
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

DEFAULT_CONFIG = Path("config/import.yml")


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _positive_float(value: str) -> float:
    try:
        num = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if num <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return num


def _row_list(value: str) -> list[int]:
    try:
        rows = [int(v) for v in value.split(",") if v.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma separated row numbers: {value!r}") from None
    if any(r < 1 for r in rows):
        raise argparse.ArgumentTypeError("row numbers start at 1")
    return rows


def _edit(value: str) -> tuple[int, str, str]:
    """ROW:field=value"""
    try:
        row_part, assignment = value.split(":", 1)
        field, new_value = assignment.split("=", 1)
        return int(row_part), field.strip(), new_value
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected ROW:field=value, got {value!r}") from None


def _add_source_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("file", type=Path, help="CSV / TXT / JSON / XLSX file to import")
    p.add_argument("--format", choices=["csv", "json", "xlsx"], help="override detection by file suffix")
    p.add_argument("--default-rate", type=_positive_float, help="rate for rows without a usable rate")
    p.add_argument(
        "--default-payment-status",
        choices=[s.value for s in PaymentStatus],
        help="payment status for rows without one",
    )


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="task_import", description="Bulk task importer (CSV / JSON -> tasks)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG, help="config YAML (default: config/import.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    prev = sub.add_parser("preview", help="parse, normalize and list the staged records")
    _add_source_args(prev)

    imp = sub.add_parser("import", help="stage the file, apply selection edits and commit")
    _add_source_args(imp)
    imp.add_argument("--parent", required=True, help="id of the client the tasks belong to")
    imp.add_argument("--all", action="store_true", help="select every row, including invalid ones")
    imp.add_argument("--none", action="store_true", help="start from an empty selection")
    imp.add_argument("--include", type=_row_list, default=[], help="rows to select, e.g. 3,4")
    imp.add_argument("--exclude", type=_row_list, default=[], help="rows to deselect, e.g. 2,5")
    imp.add_argument("--edit", type=_edit, action="append", default=[], help="ROW:field=value (repeatable)")
    imp.add_argument("--revalidate", action="store_true", help="re-run validation on edited rows")

    smp = sub.add_parser("sample", help="print a sample import document")
    smp.add_argument("--format", choices=["csv", "json"], default="json")

    sub.add_parser("parents", help="list the clients tasks can be imported into")
    return p.parse_args(argv)


@contextmanager
def _open_store(cfg: ImportConfig) -> Iterator[TaskStore]:
    """Memory store when DISABLE_DB_CONNECT=1 or store.backend=memory, PostgreSQL otherwise."""
    if os.getenv("DISABLE_DB_CONNECT") == "1" or cfg.store.backend == "memory":
        yield InMemoryTaskStore(parents=[Parent(id=i, name=n) for i, n in cfg.store.mock_parents])
        return
    from task_import.store.postgres import PostgresTaskStore, connect

    with connect(cfg.database) as conn:
        store = PostgresTaskStore(conn)
        store.ensure_schema()
        yield store


def _format_record(rec: StagedRecord) -> list[str]:
    r = rec.record
    mark = "✓" if rec.is_valid else "✗"
    box = "[x]" if rec.selected else "[ ]"
    pages = r.pages if r.pages is not None else "?"
    rate = r.rate if r.rate is not None else "?"
    total = r.total if r.total is not None else "?"
    line = (
        f"  #{rec.row_number:<3} {mark} {box} {r.project_name or '<no name>'} | "
        f"{pages} pages x {rate} = {total} | {r.work_status.value} | {r.payment_status.value} | "
        f"{r.accepted_date.isoformat()} -> {r.submission_date.isoformat()}"
    )
    lines = [line]
    if rec.reason:
        lines.append(f"        reason: {rec.reason}")
    for w in rec.warnings:
        lines.append(f"        ! {w}")
    return lines


def _print_session(session: ReviewSession) -> None:
    for rec in session.records():
        for line in _format_record(rec):
            print(line)


def _apply_selection(session: ReviewSession, args: argparse.Namespace) -> None:
    for row, field, value in args.edit:
        rec = session.find_by_row(row)
        session.update(rec.id, {field: value})
        if args.revalidate:
            session.revalidate(rec.id)
    if args.all:
        session.select_all()
    if args.none:
        session.deselect_all()
    for row in args.include:
        session.set_selected(session.find_by_row(row).id, True)
    for row in args.exclude:
        session.set_selected(session.find_by_row(row).id, False)


def _build_session(cfg: ImportConfig, args: argparse.Namespace) -> ReviewSession:
    defaults = cfg.defaults
    if args.default_rate is not None:
        defaults = replace(defaults, rate=args.default_rate)
    if args.default_payment_status is not None:
        defaults = replace(defaults, payment_status=PaymentStatus(args.default_payment_status))
    return ReviewSession(defaults)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみシステム引数を読む (空リストはそのまま使う)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        setup_logging(debug=True)
        logger.debug("debug mode enabled")

    if args.command == "sample":
        print(generate_sample_csv() if args.format == "csv" else generate_sample_json())
        return EXIT_SUCCESS_ALL

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
        mapper = ColumnMapper(build_synonym_table(cfg.column_synonyms))
    except (ConfigError, ValueError) as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "parents":
        try:
            with _open_store(cfg) as store:
                for parent in store.list_parents():
                    print(f"{parent.id}\t{parent.name}")
        except StoreError as e:
            logger.error(f"store: {e}")
            return EXIT_FATAL
        return EXIT_SUCCESS_ALL

    error_log = ErrorLogBuffer(cfg.logs_directory)
    try:
        return _run_import(args, cfg, mapper, error_log)
    finally:
        path = error_log.flush()
        if path is not None:
            logger.info(f"error log written: {path}")


def _run_import(
    args: argparse.Namespace, cfg: ImportConfig, mapper: ColumnMapper, error_log: ErrorLogBuffer
) -> int:
    logger = setup_logging()
    session = _build_session(cfg, args)
    try:
        preview_file(session, args.file, args.format, mapper=mapper, error_log=error_log)
    except ParseError as e:
        logger.error(f"parse: {e}")
        return EXIT_FATAL

    if args.command == "preview":
        _print_session(session)
        log_summary(render_preview_summary(session.counts())[len("SUMMARY "):])
        return EXIT_SUCCESS_ALL

    try:
        _apply_selection(session, args)
    except (UnknownRecordError, KeyError) as e:
        logger.error(f"selection: unknown row or field {e}")
        return EXIT_FATAL
    _print_session(session)

    requested = len(session.selected())
    try:
        with _open_store(cfg) as store:
            result = commit_session(session, store, args.parent, error_log=error_log, source=args.file.name)
    except PreconditionError as e:
        logger.error(f"import: {e}")
        return EXIT_FATAL
    except CommitError as e:
        logger.error(f"import: {e}")
        log_summary(render_failure_summary(len(e.committed), requested, args.parent, e.row_number)[len("SUMMARY "):])
        return EXIT_PARTIAL_FAILURE
    except StoreError as e:
        logger.error(f"store: {e}")
        return EXIT_FATAL

    log_summary(render_commit_summary(result, requested)[len("SUMMARY "):])
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
