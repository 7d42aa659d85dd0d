"""
Custom exception classes for the ingestion engine.

Batch-fatal problems raise an IngestionAbortedError subclass carrying the
diagnostics bundle. Row-level problems never raise out of the coordinator.
"""

from typing import Optional, Any, TYPE_CHECKING
from datetime import datetime, timezone

if TYPE_CHECKING:
    from models.ingestion import IngestionDiagnostics


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "MISSING_REQUIRED_FIELDS")
        message: Human-readable message
        status_code: HTTP status code the caller should map this to
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper()}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# PARSER ERRORS
# ===================

class OrderCSVFormatError(ValidationError):
    """Decoded order export could not be tokenized as CSV."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="ORDER_CSV_FORMAT_ERROR",
            message=message,
            details=details
        )


# ===================
# ORDER ERRORS
# ===================

class DuplicateOrderError(DuplicateError):
    """Order code already exists for the account."""

    def __init__(self, order_code: str):
        super().__init__(
            resource="Order",
            field="order_code",
            value=order_code
        )


# ===================
# INGESTION ERRORS
# ===================

class IngestionAbortedError(ValidationError):
    """
    Batch-fatal ingestion failure.

    Raised before any row is mapped, so no order was inserted. The
    diagnostics bundle explains what went wrong and how to fix the file.
    """

    def __init__(
        self,
        diagnostics: "IngestionDiagnostics",
        code: str = "INGESTION_ABORTED",
    ):
        self.diagnostics = diagnostics
        super().__init__(
            code=code,
            message=diagnostics.title,
            details=diagnostics.to_dict(include_debug=False)
        )

    def to_dict(self, include_debug: bool = False) -> dict:
        """Convert to API response format, optionally with debug data."""
        payload = super().to_dict()
        payload["error"]["details"] = self.diagnostics.to_dict(include_debug=include_debug)
        return payload


class EmptyUploadError(IngestionAbortedError):
    """Uploaded file has no content."""

    def __init__(self, diagnostics: "IngestionDiagnostics"):
        super().__init__(diagnostics, code="EMPTY_UPLOAD")


class CSVParseError(IngestionAbortedError):
    """Decoded text could not be split into CSV rows."""

    def __init__(self, diagnostics: "IngestionDiagnostics"):
        super().__init__(diagnostics, code="CSV_PARSE_ERROR")


class EncodingUnusableError(IngestionAbortedError):
    """No candidate encoding produced trustworthy text."""

    def __init__(self, diagnostics: "IngestionDiagnostics"):
        super().__init__(diagnostics, code="ENCODING_UNUSABLE")


class MissingRequiredFieldsError(IngestionAbortedError):
    """Header row lacks columns for one or more required fields."""

    def __init__(self, diagnostics: "IngestionDiagnostics"):
        super().__init__(diagnostics, code="MISSING_REQUIRED_FIELDS")
