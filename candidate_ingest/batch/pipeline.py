"""
Batch upload pipeline orchestration.

Coordinates the flow: decode → normalize → validate → resolve → record,
one row at a time, and tracks the run as an UploadBatch.
"""

from pathlib import Path
from typing import Any

from candidate_ingest.batch.readers import (
    DecodedFile,
    DecodedRow,
    FileDecodeError,
    FileDecoder,
    RowNormalizer,
    decode_base64,
    row_to_json,
)
from candidate_ingest.batch.resolver import DuplicatePolicy, UpsertResolver
from candidate_ingest.core.models import BatchSummary, CellValue, UploadRowError
from candidate_ingest.core.rules import RowValidator, RuleConfigLoader
from candidate_ingest.observability.logger import get_logger, log_operation
from candidate_ingest.observability.metrics import UploadMetrics
from candidate_ingest.utils.settings import IngestSettings
from candidate_ingest.utils.validation import (
    validate_actor_id,
    validate_batch_id,
    validate_filename,
    validate_record_type,
)
from candidate_ingest.warehouse.audit import AdminAuditLogger
from candidate_ingest.warehouse.batches import UploadBatchStore
from candidate_ingest.warehouse.candidates import CandidateStore
from candidate_ingest.warehouse.connection import DatabaseConnectionPool
from candidate_ingest.warehouse.prelist import PrelistStore

logger = get_logger(__name__)

DUPLICATE_MESSAGE = "JAMB registration number already exists"

# record_type -> (audit action, audit resource)
AUDIT_ACTIONS = {
    "candidate_bio": ("upload_candidates", "candidates"),
    "prelist_score": ("upload_prelist", "prelist"),
}


class BatchProcessingError(Exception):
    """A batch could not be processed; the batch has been marked failed."""

    def __init__(self, message: str, batch_id: str | None = None):
        self.batch_id = batch_id
        super().__init__(message)


class BatchPipeline:
    """
    Orchestrates candidate and prelist uploads.

    Flow:
    1. Create an UploadBatch ("uploading")
    2. Decode the file; a decode failure fails the whole batch
    3. Record the row count and move to "processing"
    4. For each row: normalize, validate, resolve against storage
    5. Persist all row errors in one batch insert
    6. Complete the batch ("completed" even when rows were rejected)
    7. Return a BatchSummary and record an audit entry

    Rows are processed sequentially and each row commits on its own; a
    failure in one row never rolls back another.
    """

    def __init__(
        self,
        pool: DatabaseConnectionPool | None = None,
        *,
        candidate_store=None,
        prelist_store=None,
        batch_store=None,
        audit_logger=None,
        rules_path: str | Path | None = None,
        duplicate_policy: DuplicatePolicy | str = DuplicatePolicy.REJECT,
        metrics: UploadMetrics | None = None,
        max_upload_bytes: int | None = None
    ):
        """
        Initialize batch pipeline.

        Args:
            pool: Database connection pool used for any store not given explicitly
            candidate_store: CandidateStore override
            prelist_store: PrelistStore override
            batch_store: UploadBatchStore override
            audit_logger: AdminAuditLogger override
            rules_path: Rules YAML (packaged defaults if None)
            duplicate_policy: REJECT or UPDATE rows whose JAMB number exists
            metrics: UploadMetrics to record into (a private one if None)
            max_upload_bytes: Optional upload size limit
        """
        if pool is None and None in (candidate_store, prelist_store, batch_store, audit_logger):
            raise ValueError("A connection pool is required unless every store is supplied")

        self.pool = pool
        self.candidate_store = candidate_store or CandidateStore(pool)
        self.prelist_store = prelist_store or PrelistStore(pool)
        self.batch_store = batch_store or UploadBatchStore(pool)
        self.audit_logger = audit_logger or AdminAuditLogger(pool)
        self.metrics = metrics or UploadMetrics()

        rule_loader = RuleConfigLoader(rules_path)
        self.decoder = FileDecoder(max_bytes=max_upload_bytes)
        self.normalizer = RowNormalizer(rule_loader.load_header_aliases())
        self.validator = RowValidator(rule_loader.load_record_types())
        self.resolver = UpsertResolver(
            self.candidate_store,
            self.prelist_store,
            policy=DuplicatePolicy(duplicate_policy),
        )

    @classmethod
    def from_settings(
        cls,
        settings: IngestSettings,
        pool: DatabaseConnectionPool,
        **overrides
    ) -> "BatchPipeline":
        options = {
            "rules_path": settings.rules_path,
            "duplicate_policy": settings.duplicate_policy,
            "max_upload_bytes": settings.max_upload_bytes,
            **overrides,
        }
        return cls(pool, **options)

    @property
    def duplicate_policy(self) -> DuplicatePolicy:
        return self.resolver.policy

    def process_upload(
        self,
        file_data: bytes,
        filename: str,
        uploaded_by: str,
        record_type: str = "candidate_bio",
        content_type: str | None = None
    ) -> BatchSummary:
        """
        Process an uploaded file through the complete pipeline.

        Args:
            file_data: Raw file bytes
            filename: Original filename (used to infer CSV or Excel)
            uploaded_by: Actor performing the upload
            record_type: "candidate_bio" or "prelist_score"
            content_type: Optional MIME type

        Returns:
            BatchSummary of the completed batch

        Raises:
            InputValidationError: Bad filename, actor or record type
            BatchProcessingError: The batch record could not be created
                                  (batch_id is None), or a decode or other
                                  batch-level failure; the batch is marked
                                  failed first
        """
        record_type = validate_record_type(record_type)
        filename = validate_filename(filename)
        uploaded_by = validate_actor_id(uploaded_by)

        try:
            batch = self.batch_store.create_batch(filename, record_type, uploaded_by)
        except Exception as e:
            self.metrics.record_batch(record_type, "failed", 0.0)
            raise BatchProcessingError(f"Could not create upload batch for {filename}: {e}") from e

        with log_operation(
            "Processing upload",
            logger=logger,
            batch_id=batch.id,
            record_type=record_type,
            upload_filename=filename,
        ) as operation:
            decoded = self._decode(batch.id, record_type, file_data, filename, content_type, operation)

            try:
                self.batch_store.mark_processing(batch.id, decoded.total_rows)
            except Exception as e:
                self._fail_batch(batch.id, record_type, str(e), 0, 0, operation.elapsed)
                raise BatchProcessingError(f"Batch {batch.id} failed: {e}", batch.id) from e

            summary = self._run_rows(batch.id, decoded, record_type, uploaded_by, operation)

        action, resource = AUDIT_ACTIONS[record_type]
        self._audit(uploaded_by, action, resource, batch.id, filename, summary)
        return summary

    def process_base64_upload(
        self,
        payload: str,
        filename: str,
        uploaded_by: str,
        record_type: str = "candidate_bio",
        content_type: str | None = None
    ) -> BatchSummary:
        """
        Process a base64-encoded upload (optionally a data: URL).

        Raises:
            MalformedFileError: The payload is not valid base64 (no batch is created)
        """
        return self.process_upload(
            decode_base64(payload),
            filename,
            uploaded_by,
            record_type=record_type,
            content_type=content_type,
        )

    def retry_batch(
        self,
        batch_id: str,
        file_data: bytes,
        uploaded_by: str,
        content_type: str | None = None
    ) -> BatchSummary:
        """
        Re-run a completed or failed batch with re-supplied file bytes.

        The batch goes back to "processing", its previous row errors and
        counters are cleared, and rows are processed again under the same
        batch id, record type and filename.

        Raises:
            BatchNotFoundError: Unknown batch id
            InvalidBatchStateError: The batch is still uploading or processing
            BatchProcessingError: Decode failure or any batch-level failure
        """
        batch_id = validate_batch_id(batch_id)
        uploaded_by = validate_actor_id(uploaded_by)

        batch = self.batch_store.reset_for_retry(batch_id)
        record_type = batch.record_type

        with log_operation(
            "Retrying upload batch",
            logger=logger,
            batch_id=batch_id,
            record_type=record_type,
            upload_filename=batch.filename,
        ) as operation:
            decoded = self._decode(
                batch_id, record_type, file_data, batch.filename, content_type, operation
            )

            try:
                self.batch_store.set_total(batch_id, decoded.total_rows)
            except Exception as e:
                self._fail_batch(batch_id, record_type, str(e), 0, 0, operation.elapsed)
                raise BatchProcessingError(f"Batch {batch_id} failed: {e}", batch_id) from e

            summary = self._run_rows(batch_id, decoded, record_type, uploaded_by, operation)

        resource = AUDIT_ACTIONS[record_type][1]
        self._audit(uploaded_by, "retry_upload_batch", resource, batch_id, batch.filename, summary)
        return summary

    def _decode(
        self,
        batch_id: str,
        record_type: str,
        file_data: bytes,
        filename: str,
        content_type: str | None,
        operation: log_operation
    ) -> DecodedFile:
        try:
            return self.decoder.decode(file_data, filename=filename, content_type=content_type)
        except FileDecodeError as e:
            self._fail_batch(batch_id, record_type, str(e), 0, 0, operation.elapsed)
            raise BatchProcessingError(str(e), batch_id) from e

    def _run_rows(
        self,
        batch_id: str,
        decoded: DecodedFile,
        record_type: str,
        uploaded_by: str,
        operation: log_operation
    ) -> BatchSummary:
        """Steps 4 to 6: process every row, persist errors, complete the batch."""
        counts = {"created": 0, "updated": 0}
        errors: list[UploadRowError] = []

        try:
            for row in decoded.rows:
                error = self._process_row(row, decoded.header, record_type, uploaded_by, counts)
                if error is not None:
                    errors.append(error)

            self.batch_store.insert_row_errors(batch_id, errors)
            processed = counts["created"] + counts["updated"]
            self.batch_store.complete_batch(batch_id, processed, len(errors))

        except Exception as e:
            processed = counts["created"] + counts["updated"]
            self._fail_batch(
                batch_id, record_type, str(e), processed, len(errors), operation.elapsed
            )
            raise BatchProcessingError(f"Batch {batch_id} failed: {e}", batch_id) from e

        self.metrics.record_batch(record_type, "completed", operation.elapsed)

        summary = BatchSummary(
            batch_id=batch_id,
            total_records=decoded.total_rows,
            processed_records=processed,
            created_records=counts["created"],
            updated_records=counts["updated"],
            failed_records=len(errors),
            errors=errors,
            message=(
                f"Processed {processed} of {decoded.total_rows} records: "
                f"{counts['created']} created, {counts['updated']} updated, "
                f"{len(errors)} failed"
            ),
        )

        logger.info(
            summary.message,
            extra={
                "batch_id": batch_id,
                "total_records": summary.total_records,
                "created_records": summary.created_records,
                "updated_records": summary.updated_records,
                "failed_records": summary.failed_records,
            },
        )
        return summary

    def _process_row(
        self,
        row: DecodedRow,
        header: list[Any],
        record_type: str,
        uploaded_by: str,
        counts: dict[str, int]
    ) -> UploadRowError | None:
        """
        Normalize, validate and resolve one row.

        Returns:
            UploadRowError when the row was rejected, None when it was written
        """
        normalized = self.normalizer.normalize(header, row.cells)
        natural_key = None

        try:
            natural_key = self.validator.extract_natural_key(normalized, record_type)
            result = self.validator.validate(normalized, record_type, row.row_number)

            if not result.passed:
                return self._row_error(
                    row, natural_key, "validation", result.error_message, normalized, record_type
                )

            if result.warnings:
                logger.debug(
                    f"Row {row.row_number} passed with warnings",
                    extra={"row_number": row.row_number, "warnings": result.warnings},
                )

            resolution = self.resolver.resolve(result, uploaded_by=uploaded_by)

        except Exception as e:
            logger.warning(
                f"System error on row {row.row_number}: {e}",
                extra={"row_number": row.row_number, "natural_key": natural_key},
            )
            return self._row_error(
                row, natural_key, "system", str(e) or type(e).__name__, normalized, record_type
            )

        if resolution.outcome == "duplicate":
            return self._row_error(
                row, natural_key, "duplicate", DUPLICATE_MESSAGE, normalized, record_type
            )

        counts[resolution.outcome] += 1
        self.metrics.record_row(record_type, resolution.outcome)
        return None

    def _row_error(
        self,
        row: DecodedRow,
        natural_key: str | None,
        error_type: str,
        message: str,
        normalized: dict[str, CellValue],
        record_type: str
    ) -> UploadRowError:
        self.metrics.record_row(record_type, "failed")
        self.metrics.record_row_error(record_type, error_type)
        return UploadRowError(
            row_number=row.row_number,
            jamb_reg_no=natural_key,
            error_type=error_type,
            error_message=message,
            raw_data=row_to_json(normalized),
        )

    def _fail_batch(
        self,
        batch_id: str,
        record_type: str,
        message: str,
        processed: int,
        failed: int,
        duration: float
    ) -> None:
        self.metrics.record_batch(record_type, "failed", duration)
        try:
            self.batch_store.fail_batch(batch_id, message, processed, failed)
        except Exception as e:
            # The original failure is re-raised by the caller
            logger.error(f"Could not mark batch {batch_id} failed: {e}")

    def _audit(
        self,
        uploaded_by: str,
        action: str,
        resource: str,
        batch_id: str,
        filename: str,
        summary: BatchSummary
    ) -> None:
        """Record the admin action; a failing audit write never fails the upload."""
        try:
            self.audit_logger.log_action(
                uploaded_by,
                action,
                resource,
                resource_id=batch_id,
                details={
                    "filename": filename,
                    "totalRecords": summary.total_records,
                    "processedRecords": summary.processed_records,
                    "failedRecords": summary.failed_records,
                },
            )
        except Exception as e:
            logger.warning(
                f"Audit logging failed for batch {batch_id}: {e}",
                extra={"batch_id": batch_id, "action": action},
            )
