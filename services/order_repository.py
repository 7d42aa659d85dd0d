"""
Order persistence.

OrderRepository is what the ingestion service needs from storage: the
account's existing orders and a single-row insert. SupabaseOrderRepository
talks to the orders table; InMemoryOrderRepository backs tests and dry runs.

"""

from typing import Iterable, Optional, Protocol
from uuid import uuid4

import structlog

from config import get_supabase_client, settings
from exceptions import DatabaseError, DuplicateOrderError
from models.order import CanonicalOrderRow, ExistingOrderSnapshot, OrderInsert

logger = structlog.get_logger(__name__)


# Postgres unique_violation
UNIQUE_VIOLATION = "23505"

# PostgREST returns at most this many rows per request (max-rows default)
PAGE_SIZE = 1000

# Order codes per `in` filter; keeps the request URL short
CODE_CHUNK_SIZE = 200

SNAPSHOT_COLUMNS = "order_code, customer_name, price, order_date"


class OrderRepository(Protocol):
    """Storage operations used by an ingestion run."""

    def fetch_existing_orders(
        self,
        account_id: str,
        order_codes: Optional[Iterable[str]] = None,
    ) -> dict[str, ExistingOrderSnapshot]:
        ...

    def insert_order(self, account_id: str, row: CanonicalOrderRow) -> str:
        ...


class SupabaseOrderRepository:
    """Orders table access through the Supabase client."""

    def __init__(
        self,
        client=None,
        table: Optional[str] = None,
        source: Optional[str] = None,
        page_size: int = PAGE_SIZE,
    ):
        self.db = client if client is not None else get_supabase_client()
        self.table = table or settings.orders_table
        self.source = source or settings.default_source
        self.page_size = page_size

    # ===================
    # READ OPERATIONS
    # ===================

    def fetch_existing_orders(
        self,
        account_id: str,
        order_codes: Optional[Iterable[str]] = None,
    ) -> dict[str, ExistingOrderSnapshot]:
        """
        Get the account's orders keyed by order code.

        Every query is paged, so accounts larger than the server's row cap
        are read completely.

        Args:
            account_id: Owner of the orders
            order_codes: Only look these codes up (None = all orders)

        Returns:
            {order_code: ExistingOrderSnapshot}

        Raises:
            DatabaseError: If the query fails
        """
        codes = sorted(set(order_codes)) if order_codes is not None else None

        logger.info(
            "fetching_existing_orders",
            account_id=account_id,
            codes=len(codes) if codes is not None else None
        )

        if codes == []:
            return {}

        try:
            if codes is None:
                rows = self._select_pages(account_id)
            else:
                rows = []
                for start in range(0, len(codes), CODE_CHUNK_SIZE):
                    rows.extend(
                        self._select_pages(account_id, codes[start:start + CODE_CHUNK_SIZE])
                    )
        except Exception as e:
            logger.error(
                "fetch_existing_orders_failed",
                account_id=account_id,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

        existing = {
            row["order_code"]: ExistingOrderSnapshot(**row)
            for row in rows
        }

        logger.info(
            "existing_orders_fetched",
            account_id=account_id,
            count=len(existing)
        )

        return existing

    def _select_pages(self, account_id: str, codes: Optional[list[str]] = None) -> list[dict]:
        rows: list[dict] = []
        offset = 0

        while True:
            query = (
                self.db.table(self.table)
                .select(SNAPSHOT_COLUMNS)
                .eq("account_id", account_id)
            )
            if codes is not None:
                query = query.in_("order_code", codes)

            result = (
                query.order("order_code")
                .range(offset, offset + self.page_size - 1)
                .execute()
            )
            page = result.data or []
            rows.extend(page)

            if len(page) < self.page_size:
                return rows
            offset += self.page_size
    # ===================
    # WRITE OPERATIONS
    # ===================

    def insert_order(self, account_id: str, row: CanonicalOrderRow) -> str:
        """
        Insert one order.

        Args:
            account_id: Owner of the order
            row: Validated canonical row

        Returns:
            ID of the new order

        Raises:
            DuplicateOrderError: If the order code already exists for the account
            DatabaseError: If the insert fails
        """
        data = OrderInsert.from_row(account_id, row, self.source).model_dump(mode="json")

        try:
            result = self.db.table(self.table).insert(data).execute()
        except Exception as e:
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                logger.warning(
                    "order_insert_conflict",
                    account_id=account_id,
                    order_code=row.order_code
                )
                raise DuplicateOrderError(row.order_code)

            logger.error(
                "order_insert_failed",
                account_id=account_id,
                order_code=row.order_code,
                error=str(e)
            )
            raise DatabaseError("insert", str(e), {"order_code": row.order_code})

        if not result.data:
            raise DatabaseError("insert", "No data returned", {"order_code": row.order_code})

        order_id = str(result.data[0]["id"])
        logger.debug("order_inserted", order_id=order_id, order_code=row.order_code)
        return order_id


class InMemoryOrderRepository:
    """
    Dictionary-backed repository.

    Enforces the same per-account order code uniqueness as the orders table.
    """

    def __init__(self, source: str = "csv_upload"):
        self.source = source
        self.orders: dict[str, dict[str, dict]] = {}

    def fetch_existing_orders(
        self,
        account_id: str,
        order_codes: Optional[Iterable[str]] = None,
    ) -> dict[str, ExistingOrderSnapshot]:
        wanted = set(order_codes) if order_codes is not None else None
        return {
            code: ExistingOrderSnapshot(**{k: record[k] for k in ExistingOrderSnapshot.model_fields})
            for code, record in self.orders.get(account_id, {}).items()
            if wanted is None or code in wanted
        }

    def insert_order(self, account_id: str, row: CanonicalOrderRow) -> str:
        account_orders = self.orders.setdefault(account_id, {})
        if row.order_code in account_orders:
            raise DuplicateOrderError(row.order_code)

        record = OrderInsert.from_row(account_id, row, self.source).model_dump()
        record["id"] = str(uuid4())
        account_orders[row.order_code] = record
        return record["id"]

    def count(self, account_id: Optional[str] = None) -> int:
        if account_id is not None:
            return len(self.orders.get(account_id, {}))
        return sum(len(orders) for orders in self.orders.values())
