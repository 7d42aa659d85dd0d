"""
Unit tests for the record mapper and the CSV table reader.
"""

from datetime import date
from unittest.mock import patch

import pandas as pd
import pytest

from exceptions import AppError, OrderCSVFormatError
from parsers.order_csv import read_order_csv
from parsers.record_mapper import (
    map_rows,
    resolve_columns,
    normalize_price,
    parse_strict_price,
    parse_order_date,
)
from parsers.source_schemas import COLORMI, TABECHOKU, UNKNOWN
from tests.factories import OrderCSVFactory


TODAY = date(2025, 6, 1)


# ===================
# CSV TABLE TESTS
# ===================

class TestReadOrderCSV:
    """Tests for the pandas-backed table reader."""

    def test_headers_and_rows(self):
        table = read_order_csv(OrderCSVFactory.colormi(rows=2))

        assert table.headers == OrderCSVFactory.COLORMI_HEADERS
        assert table.row_count == 2
        assert table.rows[0][0] == "CM-0001"

    def test_values_kept_as_strings(self):
        """Leading zeros and numeric-looking cells are not converted."""
        table = read_order_csv("注文番号,商品代金\r\n000123,1500\r\n")
        assert table.rows == [["000123", "1500"]]

    def test_empty_cells_are_empty_strings(self):
        table = read_order_csv("a,b,c\r\n1,,3\r\n")
        assert table.rows == [["1", "", "3"]]

    def test_short_rows_padded(self):
        table = read_order_csv("a,b,c\r\n1\r\n")
        assert table.rows == [["1", "", ""]]

    def test_header_normalized(self):
        """Full-width and ideographic-space headers are normalized."""
        table = read_order_csv("売上ＩＤ,購入者　名前\r\nx,y\r\n")
        assert table.headers == ["売上ID", "購入者 名前"]

    def test_blank_lines_skipped(self):
        table = read_order_csv("a,b\r\n\r\n1,2\r\n\r\n")
        assert table.rows == [["1", "2"]]

    def test_empty_text(self):
        table = read_order_csv("")
        assert table.is_empty is True
        assert table.row_count == 0

    def test_quoted_comma_and_newline(self):
        """Quoted cells may hold commas and line breaks."""
        table = read_order_csv('a,b\r\n"1,000","line1\nline2"\r\n')
        assert table.rows == [["1,000", "line1\nline2"]]

    def test_tokenizer_failure_raises_format_error(self):
        """Should wrap pandas parser errors in OrderCSVFormatError."""
        # Arrange
        failure = pd.errors.ParserError("Expected 2 fields in line 3, saw 4")

        # Act
        with patch("parsers.order_csv.pd.read_csv", side_effect=failure):
            with pytest.raises(OrderCSVFormatError) as exc_info:
                read_order_csv("a,b\r\n1,2\r\n")

        # Assert
        assert isinstance(exc_info.value, AppError)
        assert exc_info.value.code == "ORDER_CSV_FORMAT_ERROR"
        assert exc_info.value.status_code == 422
        assert str(exc_info.value) == "Expected 2 fields in line 3, saw 4"


# ===================
# VALUE PARSING TESTS
# ===================

class TestNormalizePrice:
    """Tests for display price parsing."""

    @pytest.mark.parametrize("raw,expected", [
        ("2500", 2500),
        ("¥1,200", 1200),
        ("￥1,200", 1200),
        ("1200円", 1200),
        ("$30", 30),
        ('"1,500"', 1500),
        (" 1 500 ", 1500),
        ("1200.00", 1200),
        ("-100", -100),
    ])
    def test_parses(self, raw, expected):
        assert normalize_price(raw) == expected

    @pytest.mark.parametrize("raw", ["", "円", "abc", "12.5", "1,2,3x", "NaN"])
    def test_rejects(self, raw):
        assert normalize_price(raw) is None


class TestParseStrictPrice:
    """Tests for Tabechoku integer prices."""

    def test_plain_integer(self):
        assert parse_strict_price(" 2800 ") == 2800

    def test_negative(self):
        assert parse_strict_price("-5") == -5

    @pytest.mark.parametrize("raw", ["", "2,800", "¥2800", "2800円", "28.0", "1_000"])
    def test_rejects_decorated(self, raw):
        assert parse_strict_price(raw) is None


class TestParseOrderDate:
    """Tests for order date parsing."""

    @pytest.mark.parametrize("raw", [
        "2025-05-10",
        "2025/05/10",
        "2025/5/10",
        "20250510",
        "2025-05-10 12:34:56",
        "2025/05/10 9:05",
        "2025-05-10T12:34:56",
    ])
    def test_supported_formats(self, raw):
        assert parse_order_date(raw) == date(2025, 5, 10)

    @pytest.mark.parametrize("raw", ["", "   ", "10/05/2025", "2025-13-01", "2025-02-30", "昨日"])
    def test_invalid(self, raw):
        assert parse_order_date(raw) is None


# ===================
# COLUMN RESOLUTION TESTS
# ===================

class TestResolveColumns:
    """Tests for the per-file column map."""

    def test_colormi_columns(self):
        columns = resolve_columns(OrderCSVFactory.COLORMI_HEADERS, COLORMI)

        assert columns["order_code"] == 0
        assert columns["order_date"] == 1
        assert columns["customer_name"] == 2
        assert columns["phone"] == 3
        assert columns["prefecture"] == 4
        assert columns["street_address"] == 5
        assert columns["price"] == 6
        assert columns["notes"] == 9

    def test_tabechoku_columns(self):
        columns = resolve_columns(OrderCSVFactory.TABECHOKU_HEADERS, TABECHOKU)

        assert columns["order_code"] == 0
        assert columns["phone"] == 3
        assert columns["address"] == 4
        assert columns["price"] == 5
        assert columns["delivery_date"] == 6

    def test_missing_columns_are_none(self):
        columns = resolve_columns(["売上ID", "購入者 名前", "販売価格"], COLORMI)

        assert columns["phone"] is None
        assert columns["order_date"] is None

    def test_unknown_has_no_delivery_date(self):
        columns = resolve_columns(["注文番号", "希望配達日"], UNKNOWN)
        assert "delivery_date" not in columns


# ===================
# ROW MAPPING TESTS
# ===================

class TestMapRows:
    """Tests for map_rows()."""

    def test_concrete_colormi_row(self):
        """ColorMe sample maps to one canonical row."""
        headers = ["売上ID", "購入者 名前", "購入者 住所", "購入商品 販売価格(消費税込)"]
        rows = [["CM001", "田中太郎", "東京都渋谷区1-1-1", "2500"]]

        [row] = map_rows(headers, rows, COLORMI, TODAY)

        assert row.order_code == "CM001"
        assert row.customer_name == "田中太郎"
        assert row.address == "東京都渋谷区1-1-1"
        assert row.price == 2500
        assert row.order_date == TODAY
        assert row.delivery_date is None
        assert row.source_row_index == 1

    def test_colormi_address_joins_prefecture(self):
        table = read_order_csv(OrderCSVFactory.colormi(rows=1))
        [row] = map_rows(table.headers, table.rows, COLORMI, TODAY)

        assert row.address == "東京都渋谷区神南1-1-1"
        assert row.phone == "090-0000-0001"
        assert row.order_date == date(2025, 5, 10)

    def test_colormi_price_normalized(self):
        text = OrderCSVFactory.colormi(rows=[OrderCSVFactory.colormi_row(1, price="¥1,980")])
        table = read_order_csv(text)
        [row] = map_rows(table.headers, table.rows, COLORMI, TODAY)

        assert row.price == 1980
        assert row.raw_price == "¥1,980"

    def test_tabechoku_row(self):
        table = read_order_csv(OrderCSVFactory.tabechoku(rows=1))
        [row] = map_rows(table.headers, table.rows, TABECHOKU, TODAY)

        assert row.order_code == "TC000001"
        assert row.address == "大阪府大阪市北区梅田1-2-3"
        assert row.price == 2010
        assert row.order_date == date(2025, 5, 10)
        assert row.delivery_date == "2025/05/20 午前中"

    def test_tabechoku_price_is_strict(self):
        """Tabechoku prices are not normalized."""
        text = OrderCSVFactory.tabechoku(rows=[OrderCSVFactory.tabechoku_row(1, price="2,010")])
        table = read_order_csv(text)
        [row] = map_rows(table.headers, table.rows, TABECHOKU, TODAY)

        assert row.price is None
        assert row.raw_price == "2,010"

    def test_empty_delivery_date_is_none(self):
        text = OrderCSVFactory.tabechoku(rows=[OrderCSVFactory.tabechoku_row(1, delivery_date="")])
        table = read_order_csv(text)
        [row] = map_rows(table.headers, table.rows, TABECHOKU, TODAY)

        assert row.delivery_date is None

    def test_unknown_schema_defaults(self):
        headers = ["注文ID", "顧客名", "金額"]
        [row] = map_rows(headers, [["A-1", "山田", "1,000円"]], UNKNOWN, TODAY)

        assert row.order_code == "A-1"
        assert row.price == 1000
        assert row.phone == ""
        assert row.address == ""
        assert row.notes == ""
        assert row.delivery_date is None
        assert row.order_date == TODAY

    def test_empty_order_date_defaults_to_today(self):
        text = OrderCSVFactory.colormi(rows=[OrderCSVFactory.colormi_row(1, order_date="")])
        table = read_order_csv(text)
        [row] = map_rows(table.headers, table.rows, COLORMI, TODAY)

        assert row.order_date == TODAY

    def test_bad_order_date_kept_raw(self):
        text = OrderCSVFactory.colormi(rows=[OrderCSVFactory.colormi_row(1, order_date="不明")])
        table = read_order_csv(text)
        [row] = map_rows(table.headers, table.rows, COLORMI, TODAY)

        assert row.order_date is None
        assert row.raw_order_date == "不明"

    def test_one_row_per_data_row(self):
        table = read_order_csv(OrderCSVFactory.colormi(rows=5))
        rows = map_rows(table.headers, table.rows, COLORMI, TODAY)

        assert [r.source_row_index for r in rows] == [1, 2, 3, 4, 5]

    def test_short_row_maps_missing_cells_to_empty(self):
        headers = ["売上ID", "購入者 名前", "販売価格", "備考"]
        [row] = map_rows(headers, [["CM9", "山田"]], COLORMI, TODAY)

        assert row.notes == ""
        assert row.price is None
        assert row.raw_price == ""
