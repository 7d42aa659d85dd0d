"""
Order ingestion service.

Runs one upload end to end: decode, read, identify, check, map, validate,
deduplicate, insert, report. File-level problems raise an
IngestionAbortedError subclass before any row is mapped; row-level problems
become skipped rows in the report.

"""

from datetime import date
from typing import Callable, Optional

import structlog

from config.settings import Settings, get_settings
from exceptions import (
    CSVParseError,
    OrderCSVFormatError,
    EmptyUploadError,
    EncodingUnusableError,
    MissingRequiredFieldsError,
)
from models.ingestion import (
    IngestionReport,
    RawUpload,
    SkippedRowDetail,
    SkipReason,
)
from models.order import (
    CanonicalOrderRow,
    Registered,
    RowOutcome,
    SkippedDuplicate,
    SkippedError,
    SkippedInvalid,
)
from parsers.encoding_detector import detect_encoding
from parsers.order_csv import read_order_csv
from parsers.record_mapper import map_rows
from parsers.row_validator import summarize_invalid_rows, validate_row
from parsers.schema_identifier import identify_schema
from parsers.source_schemas import SourceKind
from services.dedup_engine import DedupEngine
from services.ingestion_diagnostics import (
    diagnose_empty_upload,
    diagnose_encoding,
    diagnose_missing_fields,
    diagnose_parse_error,
    is_encoding_acceptable,
)
from services.order_repository import OrderRepository, SupabaseOrderRepository

logger = structlog.get_logger(__name__)


INSERT_FAILED_MESSAGE = "The order could not be saved. Please try again later."


class OrderIngestionService:
    """
    Ingests marketplace order CSV files for one account at a time.

    Runs are synchronous and share no state: the duplicate index is rebuilt
    from the repository on every call.
    """

    def __init__(
        self,
        repository: OrderRepository,
        settings: Optional[Settings] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.clock = clock

    def ingest(
        self,
        upload: RawUpload,
        account_id: str,
        declared_schema: Optional[SourceKind] = None,
    ) -> IngestionReport:
        """
        Ingest one uploaded CSV file.

        Args:
            upload: File bytes and name
            account_id: Account the orders belong to
            declared_schema: Marketplace claimed by the uploader, used only
                when the headers are not recognised

        Returns:
            IngestionReport

        Raises:
            EmptyUploadError: If the file has no content
            CSVParseError: If the decoded text is not valid CSV
            EncodingUnusableError: If the text is garbled or not trustworthy
            MissingRequiredFieldsError: If required columns are missing
            DatabaseError: If existing orders cannot be fetched
        """
        logger.info(
            "ingestion_started",
            account_id=account_id,
            filename=upload.filename,
            size=upload.size,
            declared_schema=declared_schema.value if declared_schema else None,
        )

        if not upload.content:
            logger.warning("ingestion_aborted", reason="empty_upload", filename=upload.filename)
            raise EmptyUploadError(diagnose_empty_upload(upload.filename))

        encoding = detect_encoding(upload.content, peek_bytes=self.settings.header_peek_bytes)

        try:
            table = read_order_csv(encoding.text)
        except OrderCSVFormatError as e:
            logger.warning("ingestion_aborted", reason="csv_parse_error", error=str(e))
            raise CSVParseError(diagnose_parse_error(e, encoding, upload.filename)) from e

        if table.is_empty:
            logger.warning("ingestion_aborted", reason="no_rows", filename=upload.filename)
            raise EmptyUploadError(diagnose_empty_upload(upload.filename))

        headers = identify_schema(
            table.headers,
            declared=declared_schema,
            min_score=self.settings.schema_min_score,
        )

        if not is_encoding_acceptable(
            encoding, headers.source, self.settings.min_encoding_confidence
        ):
            logger.warning(
                "ingestion_aborted",
                reason="encoding",
                encoding=encoding.detected_encoding,
                confidence=round(encoding.confidence, 3),
                garbled=encoding.has_garbled_text,
            )
            raise EncodingUnusableError(diagnose_encoding(encoding, headers))

        if not headers.has_required_fields:
            logger.warning(
                "ingestion_aborted",
                reason="missing_fields",
                source=headers.source.value,
                missing_fields=headers.missing_fields,
            )
            raise MissingRequiredFieldsError(diagnose_missing_fields(headers, encoding))

        rows = map_rows(table.headers, table.rows, headers.schema, self.clock())
        dedup = DedupEngine(
            self.repository.fetch_existing_orders(
                account_id, {row.order_code for row in rows if row.order_code}
            )
        )

        outcomes = [self._process_row(row, account_id, dedup) for row in rows]

        report = self._build_report(
            outcomes,
            source=headers.source,
            detected_encoding=encoding.detected_encoding,
            confidence=encoding.confidence,
        )

        logger.info(
            "ingestion_complete",
            account_id=account_id,
            source=report.source_schema,
            encoding=report.detected_encoding,
            total_rows=report.total_rows,
            registered=report.registered_count,
            skipped=report.skipped_count,
            duplicates=report.duplicate_count,
            invalid=report.invalid_count,
        )

        return report

    # ===================
    # ROWS
    # ===================

    def _process_row(
        self,
        row: CanonicalOrderRow,
        account_id: str,
        dedup: DedupEngine,
    ) -> RowOutcome:
        reason = validate_row(row)
        if reason is not None:
            logger.info(
                "order_row_skipped",
                row=row.source_row_index,
                order_code=row.order_code,
                reason=SkipReason.INVALID.value,
                detail=reason,
            )
            return SkippedInvalid(row=row, reason=reason)

        existing = dedup.find_conflict(row)
        if existing is not None:
            logger.info(
                "order_row_skipped",
                row=row.source_row_index,
                order_code=row.order_code,
                reason=SkipReason.DUPLICATE.value,
            )
            return SkippedDuplicate(row=row, existing=existing)

        try:
            order_id = self.repository.insert_order(account_id, row)
        except Exception as e:
            logger.error(
                "order_row_insert_failed",
                row=row.source_row_index,
                order_code=row.order_code,
                error=str(e),
                error_type=type(e).__name__,
            )
            return SkippedError(row=row, message=INSERT_FAILED_MESSAGE, debug_message=str(e))

        dedup.claim(row)
        return Registered(row=row, order_id=order_id)

    # ===================
    # REPORT
    # ===================

    def _build_report(
        self,
        outcomes: list[RowOutcome],
        source: SourceKind,
        detected_encoding: str,
        confidence: float,
    ) -> IngestionReport:
        details = [
            _skipped_detail(outcome)
            for outcome in outcomes
            if not isinstance(outcome, Registered)
        ]
        registered = len(outcomes) - len(details)
        invalid = [o for o in outcomes if isinstance(o, SkippedInvalid)]

        return IngestionReport(
            registered_count=registered,
            skipped_count=len(details),
            total_rows=len(outcomes),
            skipped_details=details,
            message=build_message(registered, details),
            source_schema=source.value,
            detected_encoding=detected_encoding,
            encoding_confidence=confidence,
            validation_summary=summarize_invalid_rows(invalid, len(outcomes)),
        )


def _skipped_detail(outcome: RowOutcome) -> SkippedRowDetail:
    row = outcome.row
    detail = SkippedRowDetail(
        row=row.source_row_index,
        order_code=row.order_code,
        customer_name=row.customer_name,
        price=row.price,
        order_date=row.order_date,
        reason=SkipReason.ERROR,
    )

    if isinstance(outcome, SkippedDuplicate):
        detail.reason = SkipReason.DUPLICATE
        detail.reason_detail = "Order number already registered"
        detail.existing_data = outcome.existing
    elif isinstance(outcome, SkippedInvalid):
        detail.reason = SkipReason.INVALID
        detail.reason_detail = outcome.reason
    elif isinstance(outcome, SkippedError):
        detail.error_message = outcome.message
        detail.debug_message = outcome.debug_message

    return detail


def build_message(registered: int, skipped: list[SkippedRowDetail]) -> str:
    """
    Summary line for the report.

    - "Registered 3 orders."
    - "Registered 1 order. Skipped 2 (1 duplicate, 1 invalid)."
    """
    message = f"Registered {registered} order{'s' if registered != 1 else ''}."
    if not skipped:
        return message

    counts = {reason: 0 for reason in SkipReason}
    for detail in skipped:
        counts[detail.reason] += 1

    parts = [f"{count} {reason.value}" for reason, count in counts.items() if count]
    return f"{message} Skipped {len(skipped)} ({', '.join(parts)})."


# Singleton instance
_order_ingestion_service: Optional[OrderIngestionService] = None


def get_order_ingestion_service() -> OrderIngestionService:
    """Get or create OrderIngestionService instance."""
    global _order_ingestion_service
    if _order_ingestion_service is None:
        _order_ingestion_service = OrderIngestionService(SupabaseOrderRepository())
    return _order_ingestion_service
