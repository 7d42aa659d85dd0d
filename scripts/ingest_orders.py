"""
Ingest a marketplace order CSV for one account.

Usage:
    # Insert into Supabase
    python scripts/ingest_orders.py orders.csv --account-id 1f0c...

    # Parse and report without touching the database
    python scripts/ingest_orders.py orders.csv --account-id demo --dry-run

    # Force the schema when the headers are not recognised
    python scripts/ingest_orders.py export.csv --account-id demo --source tabechoku
"""

import argparse
import json
import os
import sys

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

import structlog

from config import configure_logging, settings
from exceptions import AppError, IngestionAbortedError
from models.ingestion import RawUpload
from parsers.source_schemas import SourceKind
from services.order_ingestion_service import OrderIngestionService
from services.order_repository import InMemoryOrderRepository, SupabaseOrderRepository

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Ingest a ColorMe Shop / Tabechoku order CSV export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("csv_file", help="Path to the CSV export")
    parser.add_argument("--account-id", required=True, help="Account that owns the orders")
    parser.add_argument(
        "--source",
        choices=[kind.value for kind in SourceKind if kind != SourceKind.UNKNOWN],
        help="Marketplace to assume when the headers are not recognised",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Use an in-memory repository instead of Supabase",
    )
    parser.add_argument(
        "--debug",
        action=argparse.BooleanOptionalAction,
        default=settings.debug,
        help="Include technical details in the output (default: DEBUG setting)",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    with open(args.csv_file, "rb") as f:
        content = f.read()

    upload = RawUpload(content=content, filename=os.path.basename(args.csv_file))
    declared = SourceKind(args.source) if args.source else None

    try:
        if args.dry_run:
            repository = InMemoryOrderRepository(source=settings.default_source)
        else:
            repository = SupabaseOrderRepository()

        service = OrderIngestionService(repository)
        report = service.ingest(upload, args.account_id, declared_schema=declared)
    except IngestionAbortedError as e:
        print(json.dumps(e.to_dict(include_debug=args.debug), ensure_ascii=False, indent=2))
        return 1
    except AppError as e:
        logger.error("ingest_orders_failed", code=e.code, error=e.message)
        print(json.dumps(e.to_dict(), ensure_ascii=False, indent=2))
        return 2

    print(json.dumps(report.to_dict(include_debug=args.debug), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
