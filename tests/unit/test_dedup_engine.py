"""
Unit tests for duplicate resolution.
"""

from datetime import date

from models.order import ExistingOrderSnapshot
from services.dedup_engine import DedupEngine
from tests.factories import CanonicalOrderRowFactory


def _snapshot(order_code: str) -> ExistingOrderSnapshot:
    return ExistingOrderSnapshot(
        order_code=order_code,
        customer_name="山田 太郎",
        price=1200,
        order_date=date(2025, 5, 1),
    )


class TestDedupEngine:
    """Tests for DedupEngine."""

    def test_new_code_has_no_conflict(self):
        engine = DedupEngine({})
        assert engine.find_conflict(CanonicalOrderRowFactory.create(order_code="A-1")) is None

    def test_persisted_code_conflicts(self):
        """A code already stored returns the stored snapshot."""
        existing = _snapshot("A-1")
        engine = DedupEngine({"A-1": existing})

        conflict = engine.find_conflict(CanonicalOrderRowFactory.create(order_code="A-1"))

        assert conflict == existing

    def test_claimed_code_conflicts(self):
        """A code registered earlier in the batch blocks later rows."""
        engine = DedupEngine({})
        first = CanonicalOrderRowFactory.create(order_code="A-1", customer_name="佐藤", price=500)
        engine.claim(first)

        conflict = engine.find_conflict(CanonicalOrderRowFactory.create(order_code="A-1"))

        assert conflict is not None
        assert conflict.customer_name == "佐藤"
        assert conflict.price == 500

    def test_unclaimed_row_does_not_block(self):
        """Rows that were only looked up are not remembered."""
        engine = DedupEngine({})
        row = CanonicalOrderRowFactory.create(order_code="A-1")
        engine.find_conflict(row)

        assert engine.find_conflict(row) is None

    def test_input_mapping_not_mutated(self):
        existing = {"A-1": _snapshot("A-1")}
        engine = DedupEngine(existing)
        engine.claim(CanonicalOrderRowFactory.create(order_code="B-1"))

        assert list(existing) == ["A-1"]
        assert engine.known_count == 2

    def test_codes_are_exact(self):
        """Matching is by exact order code."""
        engine = DedupEngine({"A-1": _snapshot("A-1")})
        assert engine.find_conflict(CanonicalOrderRowFactory.create(order_code="a-1")) is None
