"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    ValidationError,
    ConflictError,
    DuplicateError,
    DatabaseError,

    # Parsers
    OrderCSVFormatError,

    # Orders
    DuplicateOrderError,

    # Ingestion
    IngestionAbortedError,
    EmptyUploadError,
    CSVParseError,
    EncodingUnusableError,
    MissingRequiredFieldsError,
)

__all__ = [
    # Base
    "AppError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "DatabaseError",

    # Parsers
    "OrderCSVFormatError",

    # Orders
    "DuplicateOrderError",

    # Ingestion
    "IngestionAbortedError",
    "EmptyUploadError",
    "CSVParseError",
    "EncodingUnusableError",
    "MissingRequiredFieldsError",
]
