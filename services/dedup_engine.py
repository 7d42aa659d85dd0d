"""
Duplicate resolution for one ingestion run.

An order code already persisted for the account, or registered earlier in
the same batch, blocks the row. The engine is built per run from the
account's orders, so uniqueness is per account.
"""

from typing import Mapping, Optional

import structlog

from models.order import CanonicalOrderRow, ExistingOrderSnapshot

logger = structlog.get_logger(__name__)


class DedupEngine:
    """Tracks the order codes taken for one account during one run."""

    def __init__(self, existing: Mapping[str, ExistingOrderSnapshot]):
        self._persisted: dict[str, ExistingOrderSnapshot] = dict(existing)
        self._claimed: dict[str, ExistingOrderSnapshot] = {}

    def find_conflict(self, row: CanonicalOrderRow) -> Optional[ExistingOrderSnapshot]:
        """
        Order blocking this row, if any.

        Returns:
            Snapshot of the persisted order, or of the row registered earlier
            in this batch, or None
        """
        existing = self._persisted.get(row.order_code)
        if existing is not None:
            return existing
        return self._claimed.get(row.order_code)

    def claim(self, row: CanonicalOrderRow) -> None:
        """Record a row that was just registered."""
        self._claimed[row.order_code] = ExistingOrderSnapshot.from_row(row)
        logger.debug("order_code_claimed", order_code=row.order_code)

    @property
    def known_count(self) -> int:
        return len(self._persisted) + len(self._claimed)
