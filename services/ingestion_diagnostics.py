"""
Diagnostics for ingestion runs that cannot start.

Each builder returns an IngestionDiagnostics bundle: a user-facing title,
description and fix list, plus technical detail kept in `debug`.
"""

from typing import Optional

from models.ingestion import DiagnosticType, IngestionDiagnostics, Severity
from parsers.encoding_detector import EncodingResult
from parsers.schema_identifier import HeaderAnalysis
from parsers.source_schemas import SourceKind, domain_override


ENCODING_SOLUTIONS: tuple[str, ...] = (
    "Save the CSV file again with UTF-8 encoding.",
    'In Excel: File → Save As → choose "CSV UTF-8 (Comma delimited)".',
    "ColorMe Shop exports can be uploaded as they are (Shift_JIS).",
    "Open the file in a text editor and check that the text is readable.",
)

SCHEMA_SOLUTIONS: dict[SourceKind, tuple[str, ...]] = {
    SourceKind.COLORMI: (
        "Export the orders again from the ColorMe Shop admin (Orders → CSV download).",
        "Use the sales detail CSV so that every row is one purchased item.",
    ),
    SourceKind.TABECHOKU: (
        "Export the orders again from the Tabechoku admin as CSV.",
        "Check that the order number, customer name and amount columns are included.",
    ),
    SourceKind.UNKNOWN: (
        "Check that the first line of the CSV file is the header row.",
        'At minimum an order number, a customer name and an amount column are required.',
    ),
}


def is_encoding_acceptable(
    encoding: EncodingResult,
    source: SourceKind,
    min_confidence: float,
) -> bool:
    """
    Whether decoded text is good enough to ingest.

    Garbled text never is. Low confidence is tolerated only for allow-listed
    (schema, encoding) pairs.
    """
    if encoding.has_garbled_text:
        return False
    if encoding.confidence >= min_confidence:
        return True
    return domain_override(source, encoding.detected_encoding) > 0


# ===================
# BUILDERS
# ===================

def diagnose_empty_upload(filename: str) -> IngestionDiagnostics:
    return IngestionDiagnostics(
        error_type=DiagnosticType.FILE_FORMAT,
        severity=Severity.CRITICAL,
        title="The file is empty",
        description="The uploaded CSV file contains no data.",
        solutions=[
            "Check that the correct file was selected.",
            "Export the orders again from your shop system.",
        ],
        debug={"filename": filename, "size": 0},
    )


def diagnose_parse_error(
    error: Exception,
    encoding: EncodingResult,
    filename: str,
) -> IngestionDiagnostics:
    return IngestionDiagnostics(
        error_type=DiagnosticType.FILE_FORMAT,
        severity=Severity.HIGH,
        title="The CSV file could not be read",
        description="The file is not in a valid CSV format.",
        solutions=[
            "Check that the file is a CSV export and not a spreadsheet file.",
            "Check that double quotes and commas are used correctly.",
            "Open the file in a text editor and check its content.",
        ],
        detected_encoding=encoding.detected_encoding,
        confidence=encoding.confidence,
        has_garbled_text=encoding.has_garbled_text,
        debug={
            "filename": filename,
            "raw_error": str(error),
            "encoding": encoding.to_debug_dict(),
        },
    )


def diagnose_encoding(
    encoding: EncodingResult,
    headers: HeaderAnalysis,
) -> IngestionDiagnostics:
    """Encoding problem: garbled text or too little confidence."""
    if encoding.has_garbled_text:
        severity = Severity.CRITICAL
        description = "The characters in the CSV file could not be read correctly; the text is garbled."
    else:
        severity = Severity.HIGH
        description = "The character encoding of the CSV file could not be determined reliably."

    return IngestionDiagnostics(
        error_type=DiagnosticType.ENCODING,
        severity=severity,
        title="Character encoding problem",
        description=description,
        solutions=list(ENCODING_SOLUTIONS),
        detected_encoding=encoding.detected_encoding,
        confidence=encoding.confidence,
        has_garbled_text=encoding.has_garbled_text,
        source_schema=headers.source.value,
        suggestions=list(headers.suggestions),
        debug={
            "technical_details": (
                f"Detected encoding: {encoding.detected_encoding} "
                f"(confidence: {round(encoding.confidence * 100)}%)"
            ),
            "encoding": encoding.to_debug_dict(),
            "headers": headers.to_debug_dict(),
        },
    )


def diagnose_missing_fields(
    headers: HeaderAnalysis,
    encoding: Optional[EncodingResult] = None,
) -> IngestionDiagnostics:
    """Header row lacks required columns."""
    solutions = list(SCHEMA_SOLUTIONS[headers.source])
    if headers.alternate_columns:
        solutions.append("Similar column names were found. Rename them to the expected header.")
    solutions.append("Open the file and check the header row (line 1).")

    shown = ", ".join(headers.headers[:5])
    if len(headers.headers) > 5:
        shown += "..."

    debug = {
        "technical_details": f"Detected headers: {shown}",
        "headers": headers.to_debug_dict(),
    }
    if encoding is not None:
        debug["encoding"] = encoding.to_debug_dict()

    return IngestionDiagnostics(
        error_type=DiagnosticType.MISSING_FIELDS,
        severity=Severity.CRITICAL,
        title=f"Required columns are missing ({headers.schema.display_name})",
        description=f"Required columns not found: {', '.join(headers.missing_labels())}",
        solutions=solutions,
        detected_encoding=encoding.detected_encoding if encoding else None,
        confidence=encoding.confidence if encoding else None,
        has_garbled_text=encoding.has_garbled_text if encoding else False,
        source_schema=headers.source.value,
        missing_fields=list(headers.missing_fields),
        suggestions=list(headers.suggestions),
        debug=debug,
    )
