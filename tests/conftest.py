# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from classroom_batch.db.memory import MemoryDatabase
from classroom_batch.logging.init import reset_logging
from classroom_batch.models.row_record import RowRecord


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "uploads").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("PGDSN", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """upload_directory: ./uploads
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
ingestion:
  status_max_length: 20
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ingest.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def write_upload(temp_workdir: Path):
    def _write(name: str, text: str) -> Path:
        path = temp_workdir / "uploads" / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def db() -> MemoryDatabase:
    return MemoryDatabase()


@pytest.fixture()
def seeded_db(db: MemoryDatabase) -> MemoryDatabase:
    """Two students, one subject, one semester and a class holding the first student."""
    alice = db.users.save({"vnu_id": "19020001", "email": "alice@vnu.edu.vn", "name": "Alice", "role": "student"})
    db.users.save({"vnu_id": "19020002", "email": "bob@vnu.edu.vn", "name": "Bob", "role": "student"})
    db.subjects.save({"subject_code": "MAT1093", "subject_name": "Algebra", "credits_number": 4})
    db.semesters.save({"semester_id": "20212", "semester_name": "Semester 2 2021-2022"})
    db.classes.save({"class_id": "INT3306", "class_name": "Web", "class_members": [alice["_id"]]})
    db.reset_calls()
    return db


@pytest.fixture()
def make_rows():
    """Build RowRecords numbered like CSV lines (first data row = line 2)."""

    def _make(*values: dict) -> list[RowRecord]:
        return [RowRecord(row_number=i + 2, values=dict(v)) for i, v in enumerate(values)]

    return _make
