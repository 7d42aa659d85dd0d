"""
Models for validation and serialization.
"""

from models.base import BaseSchema
from models.order import (
    CanonicalOrderRow,
    ExistingOrderSnapshot,
    OrderInsert,
    Registered,
    SkippedDuplicate,
    SkippedInvalid,
    SkippedError,
    RowOutcome,
)
from models.ingestion import (
    RawUpload,
    SkipReason,
    Severity,
    DiagnosticType,
    SkippedRowDetail,
    ValidationSummary,
    IngestionReport,
    IngestionDiagnostics,
)

__all__ = [
    # Base
    "BaseSchema",

    # Orders
    "CanonicalOrderRow",
    "ExistingOrderSnapshot",
    "OrderInsert",
    "Registered",
    "SkippedDuplicate",
    "SkippedInvalid",
    "SkippedError",
    "RowOutcome",

    # Ingestion
    "RawUpload",
    "SkipReason",
    "Severity",
    "DiagnosticType",
    "SkippedRowDetail",
    "ValidationSummary",
    "IngestionReport",
    "IngestionDiagnostics",
]
