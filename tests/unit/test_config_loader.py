from __future__ import annotations

from pathlib import Path

import pytest

from classroom_batch.config.loader import ConfigError, load_config
from classroom_batch.models.config_models import EmptyFilePolicy


def test_load_config_valid(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.upload_directory == "./uploads"
    assert cfg.database.host == "localhost"
    assert cfg.database.port == 5432
    assert cfg.database.dsn is None
    assert cfg.ingestion.status_max_length == 20
    assert cfg.ingestion.empty_file == {}


def test_defaults_when_sections_missing(temp_workdir: Path):
    p = temp_workdir / "config" / "ingest.yml"
    p.write_text("upload_directory: ./uploads\n", encoding="utf-8")
    cfg = load_config(p)
    assert cfg.ingestion.status_max_length == 255
    assert cfg.database.host is None


def test_empty_file_overrides(temp_workdir: Path):
    p = temp_workdir / "config" / "ingest.yml"
    p.write_text(
        "upload_directory: ./uploads\ningestion:\n  empty_file:\n    score: reject\n    student: accept\n",
        encoding="utf-8",
    )
    cfg = load_config(p)
    assert cfg.ingestion.empty_file == {"score": EmptyFilePolicy.REJECT, "student": EmptyFilePolicy.ACCEPT}


def test_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(temp_workdir / "config" / "nope.yml")


def test_invalid_yaml(temp_workdir: Path):
    p = temp_workdir / "config" / "ingest.yml"
    p.write_text("upload_directory: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(p)


def test_non_mapping_root(temp_workdir: Path):
    p = temp_workdir / "config" / "ingest.yml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(p)


@pytest.mark.parametrize(
    "text",
    [
        "database:\n  host: x\n",
        "upload_directory: ./u\nunknown_key: 1\n",
        "upload_directory: ./u\ningestion:\n  empty_file:\n    course: reject\n",
        "upload_directory: ./u\ningestion:\n  empty_file:\n    score: maybe\n",
        "upload_directory: ./u\ningestion:\n  status_max_length: 0\n",
        "upload_directory: ./u\ndatabase:\n  port: not-a-port\n",
    ],
)
def test_schema_violations(temp_workdir: Path, text: str):
    p = temp_workdir / "config" / "ingest.yml"
    p.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(p)
