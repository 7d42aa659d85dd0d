"""
Shared test fixtures.

"""

import sys
from pathlib import Path

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

import pytest
from datetime import date, datetime, timezone
from typing import Optional

from tests.factories import OrderCSVFactory


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockAPIError(Exception):
    """Stand-in for postgrest's APIError (carries a Postgres error code)."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, table: "MockSupabaseTable", data: list):
        self._table = table
        self._data = data
        self._error: Optional[Exception] = None
        self._range: Optional[tuple[int, int]] = None

    def select(self, *args, **kwargs):
        return self

    def insert(self, data):
        if self._table.insert_error is not None:
            self._error = self._table.insert_error
            return self
        # Simulate insert - add id and timestamps
        if isinstance(data, dict):
            data = [data]
        for item in data:
            item["id"] = f"order-uuid-{len(self._table.inserted) + 1}"
            item["created_at"] = datetime.now(timezone.utc).isoformat()
            self._table.inserted.append(item)
            self._table._data.append(item)
        self._data = data
        return self

    def eq(self, column, value):
        self._data = [row for row in self._data if row.get(column) == value]
        return self

    def in_(self, column, values):
        values = set(values)
        self._data = [row for row in self._data if row.get(column) in values]
        return self

    def order(self, column, desc=False):
        self._data = sorted(self._data, key=lambda row: row.get(column) or "", reverse=desc)
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def execute(self) -> MockSupabaseResponse:
        if self._error is not None:
            raise self._error
        data = self._data
        if self._range is not None:
            data = data[self._range[0]:self._range[1] + 1]
        # PostgREST max-rows cap
        if self._table.max_rows is not None:
            data = data[:self._table.max_rows]
        return MockSupabaseResponse(data=data)


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, max_rows: Optional[int] = None):
        self._data = data or []
        self.max_rows = max_rows
        self.select_count = 0
        self.inserted: list[dict] = []
        self.insert_error: Optional[Exception] = None
        self.select_error: Optional[Exception] = None

    def select(self, *args, **kwargs):
        self.select_count += 1
        query = MockSupabaseQuery(self, self._data.copy())
        query._error = self.select_error
        return query

    def insert(self, data):
        return MockSupabaseQuery(self, []).insert(data)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def set_table_data(self, table_name: str, data: list, max_rows: Optional[int] = None):
        """Configure mock data for a table (max_rows caps every select)."""
        self._tables[table_name] = MockSupabaseTable(data, max_rows=max_rows)

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table (created empty on first use)."""
        return self._tables.setdefault(name, MockSupabaseTable())


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("orders", [
                {"account_id": "acct-1", "order_code": "A-1", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def fixed_today() -> date:
    """Date used as the run's default order date."""
    return date(2025, 6, 1)


@pytest.fixture
def colormi_csv_bytes() -> bytes:
    """Three-row ColorMe export encoded as Shift_JIS."""
    return OrderCSVFactory.colormi(rows=3).encode("cp932")


@pytest.fixture
def tabechoku_csv_bytes() -> bytes:
    """Three-row Tabechoku export encoded as UTF-8 with BOM."""
    return OrderCSVFactory.tabechoku(rows=3).encode("utf-8-sig")


@pytest.fixture
def existing_order_rows() -> list:
    """Orders already stored for acct-1 and acct-2."""
    return [
        {
            "id": "uuid-1",
            "account_id": "acct-1",
            "order_code": "CM-0001",
            "customer_name": "山田 太郎",
            "price": 1200,
            "order_date": "2025-05-01",
        },
        {
            "id": "uuid-2",
            "account_id": "acct-2",
            "order_code": "CM-0002",
            "customer_name": "佐藤 花子",
            "price": 3400,
            "order_date": "2025-05-02",
        },
    ]
