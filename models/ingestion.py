"""
Ingestion run models.

IngestionReport is returned for every run that got past the header checks;
IngestionDiagnostics travels inside IngestionAbortedError for runs that
could not start.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from models.base import BaseSchema
from models.order import ExistingOrderSnapshot


@dataclass
class RawUpload:
    """Uploaded file as handed over by the endpoint."""
    content: bytes
    filename: str = "upload.csv"
    declared_size: Optional[int] = None

    @property
    def size(self) -> int:
        return self.declared_size if self.declared_size is not None else len(self.content)


class SkipReason(str, Enum):
    """Why a row was not registered."""
    DUPLICATE = "duplicate"
    INVALID = "invalid"
    ERROR = "error"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DiagnosticType(str, Enum):
    ENCODING = "encoding"
    MISSING_FIELDS = "missing_fields"
    INVALID_DATA = "invalid_data"
    FILE_FORMAT = "file_format"


class SkippedRowDetail(BaseSchema):
    """One skipped row, in file order."""
    row: int = Field(ge=1, description="1-based data row index")
    order_code: str = ""
    customer_name: str = ""
    price: Optional[int] = None
    order_date: Optional[date] = None
    reason: SkipReason
    reason_detail: Optional[str] = None
    existing_data: Optional[ExistingOrderSnapshot] = None
    error_message: Optional[str] = None
    debug_message: Optional[str] = Field(None, exclude=True)


class ValidationSummary(BaseSchema):
    """Grouped view of the invalid rows of a run."""
    invalid_count: int = Field(ge=0)
    total_rows: int = Field(ge=0)
    error_rate: float = Field(ge=0.0, le=1.0)
    severity: Severity
    counts_by_field: dict[str, int] = Field(default_factory=dict)
    solutions: list[str] = Field(default_factory=list)


class IngestionReport(BaseSchema):
    """Final result of an ingestion run."""
    registered_count: int = Field(ge=0)
    skipped_count: int = Field(ge=0)
    total_rows: int = Field(ge=0)
    skipped_details: list[SkippedRowDetail] = Field(default_factory=list)
    message: str
    source_schema: str
    detected_encoding: str
    encoding_confidence: float = Field(ge=0.0, le=1.0)
    validation_summary: Optional[ValidationSummary] = None

    @property
    def invalid_count(self) -> int:
        """Rows rejected by validation (for caller-side rejection policies)."""
        return sum(1 for d in self.skipped_details if d.reason == SkipReason.INVALID)

    @property
    def duplicate_count(self) -> int:
        return sum(1 for d in self.skipped_details if d.reason == SkipReason.DUPLICATE)

    def to_dict(self, include_debug: bool = False) -> dict:
        """Convert to dictionary for API response."""
        data = self.model_dump(mode="json")
        if include_debug:
            for detail, source in zip(data["skipped_details"], self.skipped_details):
                detail["debug_message"] = source.debug_message
        return data


class IngestionDiagnostics(BaseSchema):
    """
    Batch-fatal diagnostic bundle.

    User-facing fields explain the problem and how to fix the file; `debug`
    holds technical detail and is only serialized on request.
    """
    error_type: DiagnosticType
    severity: Severity
    title: str
    description: str
    solutions: list[str] = Field(default_factory=list)
    detected_encoding: Optional[str] = None
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    has_garbled_text: bool = False
    source_schema: Optional[str] = None
    missing_fields: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    debug: dict[str, Any] = Field(default_factory=dict, exclude=True)

    def to_dict(self, include_debug: bool = False) -> dict:
        """Convert to dictionary for API response."""
        data = self.model_dump(mode="json")
        if include_debug:
            data["debug"] = self.debug
        return data
