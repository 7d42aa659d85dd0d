"""
Row validation for canonical order rows.

validate_row() returns the first violation as a reason string; it never
raises and never aborts the batch.
"""

from collections import Counter
from typing import Optional, Sequence

import structlog

from models.ingestion import Severity, ValidationSummary
from models.order import CanonicalOrderRow, SkippedInvalid

logger = structlog.get_logger(__name__)


CRITICAL_ERROR_RATE = 0.5
HIGH_ERROR_RATE = 0.2

FIELD_SOLUTIONS: dict[str, str] = {
    "order_code": "Some rows have no order number. Fill in the order number on every row.",
    "customer_name": "Some rows have no customer name. Fill in the customer name on every row.",
    "price": "Some prices are empty or malformed. Enter whole numbers, e.g. 1500.",
    "order_date": "Some order dates are malformed. Use the form 2024-01-31 or 2024/01/31.",
}

GENERAL_SOLUTIONS: tuple[str, ...] = (
    "Open the CSV file in a spreadsheet and fix the rows listed above.",
    "Remove blank or incomplete rows.",
)


def check_row(row: CanonicalOrderRow) -> Optional[tuple[str, str]]:
    """
    First violation of a row.

    Returns:
        (field, reason) or None when the row is valid
    """
    if not row.order_code:
        return "order_code", "Order number is required"

    if not row.customer_name:
        return "customer_name", "Customer name is required"

    if row.price is None:
        if not row.raw_price:
            return "price", "Price is required"
        return "price", f"Price is not a whole number: {row.raw_price}"

    if row.price < 0:
        return "price", f"Price must not be negative: {row.price}"

    if row.order_date is None:
        if row.raw_order_date:
            return "order_date", f"Order date is not a valid date: {row.raw_order_date}"
        return "order_date", "Order date is required"

    return None


def validate_row(row: CanonicalOrderRow) -> Optional[str]:
    """Reason the row cannot be registered, or None."""
    violation = check_row(row)
    return violation[1] if violation else None


def summarize_invalid_rows(
    invalid: Sequence[SkippedInvalid],
    total_rows: int,
) -> Optional[ValidationSummary]:
    """
    Group the invalid rows of a run.

    Args:
        invalid: SkippedInvalid outcomes
        total_rows: Data rows in the file

    Returns:
        ValidationSummary, or None when no row was invalid
    """
    if not invalid:
        return None

    counts: Counter = Counter()
    for outcome in invalid:
        violation = check_row(outcome.row)
        counts[violation[0] if violation else "other"] += 1

    error_rate = len(invalid) / total_rows if total_rows else 0.0
    if error_rate > CRITICAL_ERROR_RATE:
        severity = Severity.CRITICAL
    elif error_rate > HIGH_ERROR_RATE:
        severity = Severity.HIGH
    else:
        severity = Severity.MEDIUM

    solutions = [FIELD_SOLUTIONS[name] for name in FIELD_SOLUTIONS if counts.get(name)]
    solutions.extend(GENERAL_SOLUTIONS)

    logger.info(
        "invalid_rows_summarized",
        invalid=len(invalid),
        total=total_rows,
        error_rate=round(error_rate, 3),
        severity=severity.value,
    )

    return ValidationSummary(
        invalid_count=len(invalid),
        total_rows=total_rows,
        error_rate=min(error_rate, 1.0),
        severity=severity,
        counts_by_field=dict(counts),
        solutions=solutions,
    )
