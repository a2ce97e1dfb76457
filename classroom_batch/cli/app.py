from __future__ import annotations

import argparse
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..db.documents import Database
from ..db.memory import MemoryDatabase
from ..db.postgres import connect
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import enable_debug, log_summary, setup_logging
from ..models.config_models import AppConfig
from ..services.errors import BatchRejected
from ..services.kinds import KINDS
from ..services.responses import Response, add_members_request, ingest_upload, remove_members_request
from ..services.roster import members_from_csv
from ..services.summary import render_ingestion_summary, render_summary_line
from ..source.reader import RowSourceError, read_csv_rows

"""CLI entrypoint.

- ingest KIND CSV: one upload through the ingestion engine
- roster add|remove CLASS_ID: reconcile class members from --members JSON or --csv

The JSON envelope goes to stdout, followed by the SUMMARY line. Buffered row
errors are flushed to logs/errors-*.log at exit.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

SUMMARY_PREFIX = "SUMMARY "


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; override=True lets it win over the inherited environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="classroom-batch", description="CSV batch ingestion & class roster tool")
    p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Path to YAML config")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--dry-run", action="store_true", help="Use an in-memory store instead of PostgreSQL")
    sub = p.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Ingest one CSV upload")
    ingest.add_argument("kind", choices=sorted(KINDS))
    ingest.add_argument("csv_path")

    roster = sub.add_parser("roster", help="Add or remove class members")
    roster.add_argument("action", choices=["add", "remove"])
    roster.add_argument("class_id")
    source = roster.add_mutually_exclusive_group(required=True)
    source.add_argument("--members", help="JSON array of emails (add) or VNU-IDs (remove)")
    source.add_argument("--csv", dest="members_csv", help="CSV with an email (add) or vnu_id (remove) column")
    return p.parse_args(argv)


def _resolve_upload(cfg: AppConfig, raw: str) -> Path:
    path = Path(raw)
    if path.is_absolute():
        return path
    return Path(cfg.upload_directory) / path


@contextmanager
def _open_database(cfg: AppConfig, dry_run: bool) -> Iterator[Database]:
    if dry_run:
        yield MemoryDatabase()
        return
    with connect(cfg.database) as db:
        yield db


def _emit(response: Response) -> None:
    print(response.to_json())


def _exit_code(response: Response, failed: int) -> int:
    if not response.ok:
        return EXIT_FATAL
    return EXIT_PARTIAL_FAILURE if failed else EXIT_SUCCESS_ALL


def _run_ingest(args: argparse.Namespace, cfg: AppConfig, db: Database, error_log: ErrorLogBuffer) -> int:
    logger = setup_logging()
    path = _resolve_upload(cfg, args.csv_path)
    try:
        rows = read_csv_rows(path)
    except RowSourceError as e:
        logger.error(f"row source: {e}")
        return EXIT_FATAL
    logger.info(f"Ingesting {len(rows)} {args.kind} rows from {path}")

    response, result = ingest_upload(args.kind, rows, db, cfg.ingestion, source=path.name, error_log=error_log)
    _emit(response)
    if result is None:
        return EXIT_FATAL
    log_summary(render_ingestion_summary(result)[len(SUMMARY_PREFIX):])
    return _exit_code(response, len(result.failed))


def _run_roster(args: argparse.Namespace, cfg: AppConfig, db: Database, error_log: ErrorLogBuffer) -> int:
    logger = setup_logging()
    started = time.perf_counter()
    raw = args.members
    if args.members_csv is not None:
        path = _resolve_upload(cfg, args.members_csv)
        column = "email" if args.action == "add" else "vnu_id"
        try:
            raw = members_from_csv(read_csv_rows(path), column)
        except RowSourceError as e:
            logger.error(f"row source: {e}")
            return EXIT_FATAL
        except BatchRejected as e:
            _emit(Response.error(e.status_code, e.payload()))
            return EXIT_FATAL

    if args.action == "add":
        response, result = add_members_request(db, args.class_id, raw)
    else:
        response, result = remove_members_request(db, args.class_id, raw)
    _emit(response)
    if result is None:
        return EXIT_FATAL

    ok = len(result.registered) if args.action == "add" else len(result.deleted)
    failed = len(result.failed)
    summary = render_summary_line(f"roster-{args.action}", ok + failed, ok, failed, time.perf_counter() - started)
    log_summary(summary[len(SUMMARY_PREFIX):])
    return _exit_code(response, failed)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()
    # None only: an explicit [] must not fall back to sys.argv (pytest args)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        enable_debug()

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(Path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    dry_run = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1"
    if dry_run:
        logger.debug("dry-run: in-memory store, nothing is persisted")

    handler = _run_ingest if args.command == "ingest" else _run_roster
    error_log = ErrorLogBuffer()
    try:
        with _open_database(cfg, dry_run) as db:
            return handler(args, cfg, db, error_log)
    except psycopg2.Error as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    finally:
        counts = ", ".join(f"{kind}={n}" for kind, n in error_log.counts_by_kind().items())
        written = error_log.flush()
        if written is not None:
            logger.info(f"errors written to {written} ({counts})")
