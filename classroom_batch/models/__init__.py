"""Domain models for the classroom batch tool.

Rows, tagged per-row outcomes, ingestion and roster results, error records and
typed configuration.
"""

from .config_models import AppConfig, DatabaseConfig, EmptyFilePolicy, IngestionSettings
from .error_record import ErrorRecord
from .ingestion_result import IngestionResult, RowFailure
from .outcome import FailureCode, Registered, Rejected, RowOutcome
from .roster_result import MemberAddResult, MemberDeleteResult
from .row_record import RowRecord

__all__ = [
    # Configuration models
    "AppConfig",
    "DatabaseConfig",
    "EmptyFilePolicy",
    "IngestionSettings",
    # Rows and outcomes
    "RowRecord",
    "FailureCode",
    "Registered",
    "Rejected",
    "RowOutcome",
    # Results
    "IngestionResult",
    "RowFailure",
    "MemberAddResult",
    "MemberDeleteResult",
    "ErrorRecord",
]
