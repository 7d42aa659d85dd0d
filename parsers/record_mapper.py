"""
Record mapper for marketplace order exports.

Resolves, once per file, which column holds each logical field and turns
every data row into a CanonicalOrderRow. Mapping never rejects a row:
unparseable prices and dates are left as None with the raw cell kept for
the validator.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

import structlog

from models.order import CanonicalOrderRow
from parsers.schema_identifier import find_column
from parsers.source_schemas import SourceKind, SourceSchema
from utils.text_utils import clean_cell

logger = structlog.get_logger(__name__)


ColumnMap = dict[str, Optional[int]]

# Currency signs, thousands separators, quotes and spaces
PRICE_NOISE_PATTERN = re.compile(r"[¥￥円$,，\"'\s　]")

STRICT_INT_PATTERN = re.compile(r"-?\d+")

DATE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"(\d{4})[-/](\d{1,2})[-/](\d{1,2})"),  # 2024-01-05, 2024/1/5
    re.compile(r"(\d{4})(\d{2})(\d{2})"),  # 20240105
)


# ===================
# COLUMN RESOLUTION
# ===================

def resolve_columns(headers: Sequence[str], schema: SourceSchema) -> ColumnMap:
    """
    Find the column index of every logical field of a schema.

    Args:
        headers: Normalized header cells
        schema: Identified (or declared) schema

    Returns:
        {field: index or None}
    """
    return {
        name: find_column(headers, patterns)
        for name, patterns in schema.field_patterns.items()
    }


# ===================
# VALUE PARSING
# ===================

def normalize_price(raw: str) -> Optional[int]:
    """
    Parse a display price.

    - "¥1,200" → 1200
    - "1200円" → 1200
    - "1200.00" → 1200
    - "1200.5" → None (not integral)
    - "" → None
    """
    cleaned = PRICE_NOISE_PATTERN.sub("", raw or "")
    if not cleaned:
        return None

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None

    if not value.is_finite() or value != value.to_integral_value():
        return None

    return int(value)


def parse_strict_price(raw: str) -> Optional[int]:
    """Parse a plain integer cell; only surrounding whitespace is tolerated."""
    text = (raw or "").strip()
    if not STRICT_INT_PATTERN.fullmatch(text):
        return None
    return int(text)


def parse_order_date(raw: str) -> Optional[date]:
    """
    Parse an order date cell.

    Accepts 2024-01-05, 2024/01/05, 2024/1/5 and 20240105, each optionally
    followed by a time ("2024/01/05 13:45:00", "2024-01-05T13:45").

    Returns:
        date, or None when empty or unparseable
    """
    text = (raw or "").strip()
    if not text:
        return None

    # Drop the time part
    text = re.split(r"[\sT]", text, maxsplit=1)[0]

    for pattern in DATE_PATTERNS:
        match = pattern.fullmatch(text)
        if match:
            year, month, day = (int(part) for part in match.groups())
            try:
                return date(year, month, day)
            except ValueError:
                return None

    return None


# ===================
# ROW MAPPING
# ===================

def _cell(cells: Sequence[str], index: Optional[int]) -> str:
    if index is None or index >= len(cells):
        return ""
    return clean_cell(cells[index])


def map_row(
    cells: Sequence[str],
    source_row_index: int,
    columns: ColumnMap,
    schema: SourceSchema,
    default_order_date: date,
) -> CanonicalOrderRow:
    """Map one data row with a precomputed column map."""
    def value(name: str) -> str:
        return _cell(cells, columns.get(name))

    if schema.kind == SourceKind.COLORMI:
        address = value("prefecture") + value("street_address")
    else:
        address = value("address")

    raw_price = value("price")
    if schema.kind == SourceKind.TABECHOKU:
        price = parse_strict_price(raw_price)
    else:
        price = normalize_price(raw_price)

    raw_order_date = value("order_date")
    if raw_order_date:
        order_date = parse_order_date(raw_order_date)
    else:
        order_date = default_order_date

    delivery_date = None
    if schema.kind == SourceKind.TABECHOKU:
        delivery_date = value("delivery_date") or None

    return CanonicalOrderRow(
        source_row_index=source_row_index,
        order_code=value("order_code"),
        customer_name=value("customer_name"),
        phone=value("phone"),
        address=address,
        price=price,
        order_date=order_date,
        delivery_date=delivery_date,
        notes=value("notes"),
        raw_price=raw_price,
        raw_order_date=raw_order_date,
    )


def map_rows(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    schema: SourceSchema,
    default_order_date: date,
) -> list[CanonicalOrderRow]:
    """
    Map every data row of a file.

    Args:
        headers: Normalized header cells
        rows: Data rows, header excluded
        schema: Schema selected for the file
        default_order_date: Used when a row's order date cell is empty

    Returns:
        One CanonicalOrderRow per data row, in file order
    """
    columns = resolve_columns(headers, schema)

    logger.debug(
        "columns_resolved",
        source=schema.kind.value,
        columns={name: index for name, index in columns.items() if index is not None},
        unmapped=[name for name, index in columns.items() if index is None],
    )

    mapped = [
        map_row(cells, index, columns, schema, default_order_date)
        for index, cells in enumerate(rows, start=1)
    ]

    logger.info("rows_mapped", source=schema.kind.value, rows=len(mapped))
    return mapped
