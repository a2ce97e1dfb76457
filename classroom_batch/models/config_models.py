from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Config dataclasses for the classroom batch tool.

These are the typed form of config/ingest.yml produced by config.loader.
"""


class EmptyFilePolicy(Enum):
    """What an ingestion kind does with a CSV that has no data rows."""
    REJECT = "reject"  # 400 with empty buckets
    ACCEPT = "accept"  # 200 with empty buckets


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
class IngestionSettings:
    status_max_length: int = 255
    empty_file: dict[str, EmptyFilePolicy] = field(default_factory=dict)  # per-kind override


@dataclass(frozen=True)
class AppConfig:
    """Root configuration object."""
    upload_directory: str  # Relative CSV paths resolve against this
    database: DatabaseConfig
    ingestion: IngestionSettings
