"""
Order CSV parsers.

Bytes → text (encoding_detector) → table (order_csv) → schema
(schema_identifier) → canonical rows (record_mapper) → validation
(row_validator).
"""

from parsers.encoding_detector import (
    detect_encoding,
    peek_schema_hint,
    order_candidates,
    score_text,
    is_garbled,
    EncodingResult,
    EncodingCandidate,
    SchemaHint,
    ScoringWeights,
)
from parsers.source_schemas import (
    SourceKind,
    SourceSchema,
    RequiredField,
    CANDIDATE_ENCODINGS,
    DOMAIN_OVERRIDES,
    domain_override,
    get_schema,
)
from parsers.order_csv import (
    read_order_csv,
    OrderCSVTable,
)
from parsers.schema_identifier import (
    identify_schema,
    header_matches,
    HeaderAnalysis,
)
from parsers.record_mapper import (
    map_rows,
    resolve_columns,
    normalize_price,
    parse_order_date,
    ColumnMap,
)
from parsers.row_validator import (
    validate_row,
    summarize_invalid_rows,
)

__all__ = [
    # Encoding
    "detect_encoding",
    "peek_schema_hint",
    "order_candidates",
    "score_text",
    "is_garbled",
    "EncodingResult",
    "EncodingCandidate",
    "SchemaHint",
    "ScoringWeights",

    # Schemas
    "SourceKind",
    "SourceSchema",
    "RequiredField",
    "CANDIDATE_ENCODINGS",
    "DOMAIN_OVERRIDES",
    "domain_override",
    "get_schema",

    # CSV
    "read_order_csv",
    "OrderCSVTable",

    # Headers
    "identify_schema",
    "header_matches",
    "HeaderAnalysis",

    # Rows
    "map_rows",
    "resolve_columns",
    "normalize_price",
    "parse_order_date",
    "ColumnMap",
    "validate_row",
    "summarize_invalid_rows",
]
