"""
Business logic services.

Each service handles one domain area.
"""

from services.dedup_engine import DedupEngine
from services.order_repository import (
    OrderRepository,
    SupabaseOrderRepository,
    InMemoryOrderRepository,
)
from services.ingestion_diagnostics import (
    diagnose_empty_upload,
    diagnose_parse_error,
    diagnose_encoding,
    diagnose_missing_fields,
    is_encoding_acceptable,
)
from services.order_ingestion_service import (
    OrderIngestionService,
    get_order_ingestion_service,
)

__all__ = [
    "DedupEngine",
    "OrderRepository",
    "SupabaseOrderRepository",
    "InMemoryOrderRepository",
    "diagnose_empty_upload",
    "diagnose_parse_error",
    "diagnose_encoding",
    "diagnose_missing_fields",
    "is_encoding_acceptable",
    "OrderIngestionService",
    "get_order_ingestion_service",
]
