"""
Order models.

CanonicalOrderRow is the source-independent shape every marketplace row is
mapped to. RowOutcome is the per-row result of an ingestion run.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from pydantic import Field

from models.base import BaseSchema


@dataclass
class CanonicalOrderRow:
    """One purchase, normalized from any source layout."""
    source_row_index: int  # 1-based data row (header excluded)
    order_code: str
    customer_name: str
    phone: str = ""
    address: str = ""
    price: Optional[int] = None
    order_date: Optional[date] = None
    delivery_date: Optional[str] = None
    notes: str = ""
    raw_price: str = ""
    raw_order_date: str = ""

    def to_record(self) -> dict:
        """Column values for the orders table (account and source added by the caller)."""
        return {
            "order_code": self.order_code,
            "customer_name": self.customer_name,
            "phone": self.phone,
            "address": self.address,
            "price": self.price,
            "order_date": self.order_date.isoformat() if self.order_date else None,
            "delivery_date": self.delivery_date,
            "notes": self.notes,
        }


class ExistingOrderSnapshot(BaseSchema):
    """Display snapshot of an order that blocks a duplicate row."""
    order_code: str
    customer_name: str
    price: int
    order_date: Optional[date] = None

    @classmethod
    def from_row(cls, row: CanonicalOrderRow) -> "ExistingOrderSnapshot":
        """Snapshot a row registered earlier in the same batch."""
        return cls(
            order_code=row.order_code,
            customer_name=row.customer_name,
            price=row.price if row.price is not None else 0,
            order_date=row.order_date,
        )


class OrderInsert(BaseSchema):
    """Row written to the orders table."""
    account_id: str
    order_code: str = Field(min_length=1)
    customer_name: str = Field(min_length=1)
    phone: str = ""
    address: str = ""
    price: int = Field(ge=0)
    order_date: date
    delivery_date: Optional[str] = None
    notes: str = ""
    source: str = "csv_upload"

    @classmethod
    def from_row(cls, account_id: str, row: CanonicalOrderRow, source: str) -> "OrderInsert":
        return cls(account_id=account_id, source=source, **row.to_record())


# ===================
# ROW OUTCOMES
# ===================

@dataclass
class Registered:
    """Row inserted as a new order."""
    row: CanonicalOrderRow
    order_id: str


@dataclass
class SkippedDuplicate:
    """Row skipped because its order_code is already taken."""
    row: CanonicalOrderRow
    existing: ExistingOrderSnapshot


@dataclass
class SkippedInvalid:
    """Row skipped because it failed validation."""
    row: CanonicalOrderRow
    reason: str


@dataclass
class SkippedError:
    """Row skipped because the insert failed."""
    row: CanonicalOrderRow
    message: str
    debug_message: str = ""


RowOutcome = Union[Registered, SkippedDuplicate, SkippedInvalid, SkippedError]
