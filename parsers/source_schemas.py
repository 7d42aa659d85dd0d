"""
Known marketplace export layouts.

Each schema lists the header substrings that identify it and, per logical
field, the header substrings accepted for that field. Patterns are tried in
order, so put the most specific header first.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class SourceKind(str, Enum):
    """Marketplace that produced an export."""
    COLORMI = "colormi"
    TABECHOKU = "tabechoku"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RequiredField:
    """Logical field that must have a column for a file to be ingested."""
    name: str
    label: str  # Shown to shop owners
    patterns: tuple[str, ...]


@dataclass(frozen=True)
class SourceSchema:
    """Header convention of one marketplace."""
    kind: SourceKind
    display_name: str
    characteristic_headers: tuple[str, ...]
    required_fields: tuple[RequiredField, ...]
    field_patterns: dict[str, tuple[str, ...]] = field(default_factory=dict)
    preferred_encoding: str = "cp932"

    @property
    def is_known(self) -> bool:
        return self.kind != SourceKind.UNKNOWN


# ===================
# ENCODINGS
# ===================

# Trial order. cp932 is the Windows flavour of Shift_JIS that ColorMe exports.
CANDIDATE_ENCODINGS: tuple[str, ...] = (
    "cp932",
    "utf-8-sig",
    "euc_jp",
    "iso2022_jp",
    "utf-16-le",
    "utf-16-be",
)

# Header tokens that only one marketplace writes in its first column
MARKETPLACE_TOKENS: dict[str, SourceKind] = {
    "売上ID": SourceKind.COLORMI,
    "注文番号": SourceKind.TABECHOKU,
}

# (schema, encoding) pairs whose decodes get a confidence bonus and are
# accepted below the usual confidence floor.
DOMAIN_OVERRIDES: dict[tuple[SourceKind, str], float] = {
    (SourceKind.COLORMI, "cp932"): 0.3,
}


def domain_override(kind: Optional[SourceKind], encoding: str) -> float:
    """Bonus granted to a (schema, encoding) pair, 0.0 when not allow-listed."""
    if kind is None:
        return 0.0
    return DOMAIN_OVERRIDES.get((kind, encoding), 0.0)


# ===================
# SCHEMAS
# ===================

COLORMI = SourceSchema(
    kind=SourceKind.COLORMI,
    display_name="ColorMe Shop",
    characteristic_headers=(
        "売上ID", "受注日", "購入者", "販売価格", "商品ID", "デバイス",
        "購入者 名前", "購入者 電話番号", "購入商品 販売価格",
    ),
    required_fields=(
        RequiredField("order_code", "売上ID", ("売上ID", "ID")),
        RequiredField("customer_name", "顧客名", ("購入者 名前", "名前", "顧客名")),
        RequiredField("price", "金額", ("販売価格", "金額", "価格", "合計")),
    ),
    field_patterns={
        "order_code": ("売上ID", "ID"),
        "customer_name": ("購入者 名前", "名前", "顧客名"),
        "phone": ("購入者 電話番号", "電話番号"),
        "prefecture": ("購入者 都道府県", "都道府県"),
        "street_address": ("購入者 住所", "住所"),
        "price": ("購入商品 販売価格", "販売価格", "金額", "価格", "合計"),
        "order_date": ("受注日", "注文日"),
        "notes": ("備考",),
    },
    preferred_encoding="cp932",
)

TABECHOKU = SourceSchema(
    kind=SourceKind.TABECHOKU,
    display_name="Tabechoku",
    characteristic_headers=("注文番号", "顧客名", "希望配達日", "金額", "備考"),
    required_fields=(
        RequiredField("order_code", "注文番号", ("注文番号", "番号")),
        RequiredField("customer_name", "顧客名", ("お届け先名", "注文者名", "顧客名", "名前")),
        RequiredField(
            "price", "金額",
            ("商品代金", "お支払い額", "生産者へのお支払い額", "金額", "価格"),
        ),
    ),
    field_patterns={
        "order_code": ("注文番号", "番号"),
        "customer_name": ("お届け先名", "注文者名", "顧客名", "名前"),
        "phone": ("電話番号",),
        "address": ("住所",),
        "price": ("商品代金", "お支払い額", "生産者へのお支払い額", "金額", "価格"),
        "order_date": ("注文日",),
        "delivery_date": ("希望配達日", "お届け希望日"),
        "notes": ("備考",),
    },
    preferred_encoding="utf-8-sig",
)

UNKNOWN = SourceSchema(
    kind=SourceKind.UNKNOWN,
    display_name="Unknown source",
    characteristic_headers=(),
    required_fields=(
        RequiredField("order_code", "注文ID", ("ID", "番号", "コード")),
        RequiredField("customer_name", "顧客名", ("名前", "顧客", "購入者")),
        RequiredField("price", "金額", ("金額", "価格", "料金")),
    ),
    field_patterns={
        "order_code": ("注文番号", "注文ID", "ID", "番号", "コード"),
        "customer_name": ("顧客名", "名前", "顧客", "購入者"),
        "phone": ("電話番号", "電話"),
        "address": ("住所",),
        "price": ("金額", "価格", "料金"),
        "order_date": ("注文日", "受注日"),
        "notes": ("備考",),
    },
    preferred_encoding="cp932",
)

# Declaration order breaks score ties
KNOWN_SCHEMAS: tuple[SourceSchema, ...] = (COLORMI, TABECHOKU)

SCHEMAS_BY_KIND: dict[SourceKind, SourceSchema] = {
    schema.kind: schema for schema in (*KNOWN_SCHEMAS, UNKNOWN)
}


def get_schema(kind: SourceKind) -> SourceSchema:
    """Look up a schema by marketplace."""
    return SCHEMAS_BY_KIND[kind]
