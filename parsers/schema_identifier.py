"""
Source schema identification from a CSV header row.

Decides which marketplace produced a file and whether its header row has
columns for every required field. Purely informational: rows are not
touched here.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence

import structlog

from parsers.encoding_detector import is_garbled
from parsers.source_schemas import (
    CANDIDATE_ENCODINGS,
    KNOWN_SCHEMAS,
    UNKNOWN,
    SourceKind,
    SourceSchema,
    get_schema,
)
from utils.text_utils import fold_for_match

logger = structlog.get_logger(__name__)


MIN_SCHEMA_SCORE = 0.2

# Above this score only the schema's preferred encoding is suggested
CONFIDENT_SCHEMA_SCORE = 0.6


@dataclass
class HeaderAnalysis:
    """Result of identify_schema()."""
    headers: list[str]
    schema: SourceSchema
    match_score: float
    has_required_fields: bool
    missing_fields: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    alternate_columns: dict[str, list[str]] = field(default_factory=dict)
    possible_encodings: list[str] = field(default_factory=list)
    duplicate_headers: list[str] = field(default_factory=list)
    declared_schema: Optional[SourceKind] = None

    @property
    def source(self) -> SourceKind:
        return self.schema.kind

    def missing_labels(self) -> list[str]:
        """Missing fields as shown to shop owners."""
        labels = {f.name: f.label for f in self.schema.required_fields}
        return [f"{name} ({labels.get(name, name)})" for name in self.missing_fields]

    def to_debug_dict(self) -> dict:
        return {
            "data_source": self.schema.kind.value,
            "match_score": round(self.match_score, 3),
            "header_count": len(self.headers),
            "headers": self.headers[:10],
            "has_required_fields": self.has_required_fields,
            "missing_fields": self.missing_fields,
            "alternate_columns": self.alternate_columns,
            "duplicate_headers": self.duplicate_headers,
            "possible_encodings": self.possible_encodings,
        }


# ===================
# MATCHING
# ===================

def header_matches(header: str, pattern: str) -> bool:
    """
    Case-insensitive containment in either direction.

    "購入商品 販売価格(消費税込)" matches "販売価格", and the abbreviated
    header "名前" matches the pattern "購入者 名前". Empty headers never match.
    """
    if not header or not pattern:
        return False
    h = fold_for_match(header)
    p = fold_for_match(pattern)
    return p in h or h in p


def find_column(headers: Sequence[str], patterns: Sequence[str]) -> Optional[int]:
    """
    Index of the column for a logical field.

    Patterns are tried in order and, for each, headers left to right; the
    first hit wins.
    """
    for pattern in patterns:
        for index, header in enumerate(headers):
            if header_matches(header, pattern):
                return index
    return None


def score_schema(headers: Sequence[str], schema: SourceSchema) -> float:
    """Share of the schema's characteristic substrings found in the headers."""
    if not schema.characteristic_headers:
        return 0.0
    folded = [fold_for_match(h) for h in headers if h]
    found = sum(
        1 for pattern in schema.characteristic_headers
        if any(fold_for_match(pattern) in h for h in folded)
    )
    return found / len(schema.characteristic_headers)


# ===================
# IDENTIFICATION
# ===================

def identify_schema(
    headers: Sequence[str],
    declared: Optional[SourceKind] = None,
    min_score: float = MIN_SCHEMA_SCORE,
) -> HeaderAnalysis:
    """
    Identify the marketplace of a header row and check required fields.

    Args:
        headers: Normalized header cells, in file order
        declared: Marketplace the uploader claims the file comes from
        min_score: Scores below this give the unknown schema

    Returns:
        HeaderAnalysis
    """
    headers = list(headers)

    best_schema = UNKNOWN
    best_score = 0.0
    for schema in KNOWN_SCHEMAS:
        schema_score = score_schema(headers, schema)
        if schema_score > best_score:
            best_schema, best_score = schema, schema_score

    if best_score < min_score:
        best_schema = UNKNOWN

    suggestions: list[str] = []

    if declared is not None and declared != SourceKind.UNKNOWN:
        if not best_schema.is_known:
            logger.info("declared_schema_used", declared=declared.value, score=best_score)
            best_schema = get_schema(declared)
        elif declared != best_schema.kind:
            logger.warning(
                "declared_schema_mismatch",
                declared=declared.value,
                identified=best_schema.kind.value,
            )
            suggestions.append(
                f"The file was declared as {get_schema(declared).display_name} "
                f"but its headers match {best_schema.display_name}."
            )

    missing_fields = [
        required.name
        for required in best_schema.required_fields
        if find_column(headers, required.patterns) is None
    ]

    alternate_columns = find_alternate_columns(headers, best_schema, missing_fields)
    suggestions.extend(_build_suggestions(headers, best_schema, missing_fields, alternate_columns))

    counts = Counter(h for h in headers if h)
    duplicate_headers = [h for h, count in counts.items() if count > 1]

    if best_score > CONFIDENT_SCHEMA_SCORE:
        possible_encodings = [best_schema.preferred_encoding]
    else:
        possible_encodings = list(CANDIDATE_ENCODINGS)

    analysis = HeaderAnalysis(
        headers=headers,
        schema=best_schema,
        match_score=best_score,
        has_required_fields=not missing_fields,
        missing_fields=missing_fields,
        suggestions=suggestions,
        alternate_columns=alternate_columns,
        possible_encodings=possible_encodings,
        duplicate_headers=duplicate_headers,
        declared_schema=declared,
    )

    logger.info(
        "schema_identified",
        source=best_schema.kind.value,
        score=round(best_score, 3),
        has_required_fields=analysis.has_required_fields,
        missing_fields=missing_fields,
    )

    return analysis


def find_alternate_columns(
    headers: Sequence[str],
    schema: SourceSchema,
    missing_fields: Sequence[str],
) -> dict[str, list[str]]:
    """
    Headers that loosely resemble a missing field.

    A header is a candidate when it contains a pattern shortened by its last
    character (never below two characters).
    """
    alternates: dict[str, list[str]] = {}
    required_by_name = {f.name: f for f in schema.required_fields}

    for name in missing_fields:
        required = required_by_name.get(name)
        if required is None:
            continue
        stems = [p[:max(2, len(p) - 1)] for p in required.patterns]
        candidates = [
            header for header in headers
            if header and any(fold_for_match(stem) in fold_for_match(header) for stem in stems)
        ]
        if candidates:
            alternates[name] = candidates

    return alternates


def _build_suggestions(
    headers: Sequence[str],
    schema: SourceSchema,
    missing_fields: Sequence[str],
    alternate_columns: dict[str, list[str]],
) -> list[str]:
    suggestions: list[str] = []

    if missing_fields:
        suggestions.append(f"Missing required columns: {', '.join(missing_fields)}")
        similar = [
            f'"{header}" (candidate for {name})'
            for name, candidates in alternate_columns.items()
            for header in candidates
        ]
        if similar:
            suggestions.append(f"Similar columns found: {', '.join(similar)}")

    if not schema.is_known:
        suggestions.append(
            "Could not identify the marketplace. "
            "Check that the first line of the file is the header row."
        )

    if any(is_garbled(h) for h in headers):
        suggestions.append(
            "Garbled characters detected in the header row. "
            "Check the file's character encoding."
        )

    return suggestions
