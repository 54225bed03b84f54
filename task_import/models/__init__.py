"""Domain models for the bulk task importer.

This package contains all domain model classes used throughout the application:
task records at each pipeline stage, the review-session record, commit results,
error log records and configuration.
"""

from .commit_result import CommitResult, PersistedTask
from .config_models import DatabaseConfig, ImportConfig, StoreConfig
from .error_record import ErrorRecord
from .staged_record import StagedRecord
from .task_record import (
    CANONICAL_FIELDS,
    CanonicalRecord,
    ImportDefaults,
    NormalizationResult,
    PartialRecord,
    PaymentStatus,
    WorkStatus,
)

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    "StoreConfig",
    "ImportDefaults",
    # Pipeline models
    "CANONICAL_FIELDS",
    "PartialRecord",
    "CanonicalRecord",
    "NormalizationResult",
    "StagedRecord",
    "WorkStatus",
    "PaymentStatus",
    # Results
    "CommitResult",
    "PersistedTask",
    "ErrorRecord",
]
