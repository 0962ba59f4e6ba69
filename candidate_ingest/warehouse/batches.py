"""
Upload batch and row error storage.

Batch status moves uploading -> processing -> completed | failed; a retry
moves a terminal batch back to processing. Row errors are written in one
bulk insert per run and cascade away with their batch.
"""

from datetime import datetime
from typing import Any

import psycopg
from psycopg.types.json import Jsonb

from candidate_ingest.core.models import (
    TERMINAL_STATUSES,
    UploadBatch,
    UploadRowError,
    statuses_leading_to,
)
from candidate_ingest.observability.logger import get_logger
from candidate_ingest.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)


class BatchNotFoundError(LookupError):
    """No upload batch exists with the given id."""

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        super().__init__(f"Upload batch {batch_id} not found")


class InvalidBatchStateError(Exception):
    """The batch is not in a status that allows the requested operation."""

    def __init__(self, batch_id: str, status: str, operation: str):
        self.batch_id = batch_id
        self.status = status
        super().__init__(f"Cannot {operation} batch {batch_id} in status '{status}'")


def _to_batch(row: dict[str, Any]) -> UploadBatch:
    return UploadBatch(**{**row, "id": str(row["id"])})


def _to_row_error(row: dict[str, Any]) -> UploadRowError:
    return UploadRowError(**{**row, "batch_id": str(row["batch_id"])})


class UploadBatchStore:
    """
    UploadBatch and UploadRowError persistence on PostgreSQL.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def create_batch(self, filename: str, record_type: str, uploaded_by: str) -> UploadBatch:
        """
        Create a batch in status "uploading".

        Returns:
            The stored UploadBatch with its database id
        """
        try:
            rows = self.pool.execute_query(
                """
                INSERT INTO upload_batches (filename, record_type, uploaded_by, status)
                VALUES (%s, %s, %s, 'uploading')
                RETURNING *
                """,
                (filename, record_type, uploaded_by),
            )
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to create upload batch for {filename}: {e}")
            raise

        batch = _to_batch(rows[0])
        logger.info(
            f"Created upload batch {batch.id}",
            extra={"batch_id": batch.id, "upload_filename": filename, "record_type": record_type},
        )
        return batch

    def get_batch(self, batch_id: str) -> UploadBatch:
        """
        Raises:
            BatchNotFoundError: Unknown batch id
        """
        rows = self.pool.execute_query("SELECT * FROM upload_batches WHERE id = %s", (batch_id,))
        if not rows:
            raise BatchNotFoundError(batch_id)
        return _to_batch(rows[0])

    def mark_processing(self, batch_id: str, total_records: int) -> None:
        """Record the decoded row count and move the batch to "processing"."""
        self._update_status(
            batch_id,
            """
            UPDATE upload_batches
            SET status = 'processing', total_records = %(total)s,
                processed_records = 0, failed_records = 0
            WHERE id = %(id)s AND status = ANY(%(sources)s)
            """,
            {"id": batch_id, "total": total_records, "sources": statuses_leading_to("processing")},
            "start processing",
        )

    def complete_batch(self, batch_id: str, processed_records: int, failed_records: int) -> None:
        self._update_status(
            batch_id,
            """
            UPDATE upload_batches
            SET status = 'completed', processed_records = %(processed)s,
                failed_records = %(failed)s, completed_at = NOW(), error_message = NULL
            WHERE id = %(id)s AND status = ANY(%(sources)s)
            """,
            {
                "id": batch_id,
                "processed": processed_records,
                "failed": failed_records,
                "sources": statuses_leading_to("completed"),
            },
            "complete",
        )

    def fail_batch(
        self,
        batch_id: str,
        error_message: str,
        processed_records: int = 0,
        failed_records: int = 0
    ) -> None:
        """
        Mark a batch failed with the counts reached so far.

        Only non-terminal batches are updated; failing a batch twice is a no-op.
        """
        try:
            self.pool.execute_command(
                """
                UPDATE upload_batches
                SET status = 'failed', error_message = %(message)s,
                    processed_records = %(processed)s, failed_records = %(failed)s,
                    completed_at = NOW()
                WHERE id = %(id)s AND status = ANY(%(sources)s)
                """,
                {
                    "id": batch_id,
                    "sources": statuses_leading_to("failed"),
                    "message": error_message,
                    "processed": processed_records,
                    "failed": failed_records,
                },
            )
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to mark batch {batch_id} failed: {e}")
            raise

    def reset_for_retry(self, batch_id: str) -> UploadBatch:
        """
        Move a terminal batch back to "processing" and clear its previous run.

        Row errors and counters are cleared in the same transaction.

        Raises:
            BatchNotFoundError: Unknown batch id
            InvalidBatchStateError: The batch is still uploading or processing
        """
        batch = self.get_batch(batch_id)
        if not batch.can_transition_to("processing", retry=True):
            raise InvalidBatchStateError(batch_id, batch.status, "retry")

        try:
            with self.pool.transaction() as cur:
                cur.execute("DELETE FROM upload_row_errors WHERE batch_id = %s", (batch_id,))
                cur.execute(
                    """
                    UPDATE upload_batches
                    SET status = 'processing', total_records = 0,
                        processed_records = 0, failed_records = 0,
                        completed_at = NULL, error_message = NULL
                    WHERE id = %s AND status = ANY(%s)
                    RETURNING *
                    """,
                    (batch_id, sorted(TERMINAL_STATUSES)),
                )
                row = cur.fetchone()
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to reset batch {batch_id} for retry: {e}")
            raise

        if row is None:
            # Another retry moved it first
            raise InvalidBatchStateError(batch_id, "processing", "retry")
        return _to_batch(row)

    def set_total(self, batch_id: str, total_records: int) -> None:
        self.pool.execute_command(
            "UPDATE upload_batches SET total_records = %s WHERE id = %s",
            (total_records, batch_id),
        )

    def insert_row_errors(self, batch_id: str, errors: list[UploadRowError]) -> int:
        """
        Persist all row errors of a run in one batch insert.

        Returns:
            Number of errors written
        """
        if not errors:
            return 0

        insert_sql = """
            INSERT INTO upload_row_errors (
                batch_id, row_number, jamb_reg_no, error_type, error_message, raw_data, created_at
            ) VALUES (
                %(batch_id)s, %(row_number)s, %(jamb_reg_no)s, %(error_type)s,
                %(error_message)s, %(raw_data)s, %(created_at)s
            )
        """
        params = [
            {
                "batch_id": batch_id,
                "row_number": error.row_number,
                "jamb_reg_no": error.jamb_reg_no,
                "error_type": error.error_type,
                "error_message": error.error_message,
                "raw_data": Jsonb(error.raw_data),
                "created_at": error.created_at,
            }
            for error in errors
        ]

        try:
            self.pool.execute_batch(insert_sql, params)
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to insert row errors for batch {batch_id}: {e}")
            raise

        logger.info(f"Inserted {len(errors)} row errors for batch {batch_id}")
        return len(errors)

    def get_row_errors(self, batch_id: str) -> list[UploadRowError]:
        """Row errors of a batch, ordered by row number."""
        rows = self.pool.execute_query(
            "SELECT * FROM upload_row_errors WHERE batch_id = %s ORDER BY row_number",
            (batch_id,),
        )
        return [_to_row_error(row) for row in rows]

    def list_batches(
        self,
        status: str | None = None,
        uploaded_by: str | None = None,
        record_type: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        page: int = 1,
        limit: int = 20
    ) -> dict[str, Any]:
        """
        List batches, newest first, with filters and pagination.

        Returns:
            {"batches": [UploadBatch], "total": int, "page": int, "limit": int}
        """
        conditions = []
        params: dict[str, Any] = {}

        if status:
            conditions.append("status = %(status)s")
            params["status"] = status
        if uploaded_by:
            conditions.append("uploaded_by = %(uploaded_by)s")
            params["uploaded_by"] = uploaded_by
        if record_type:
            conditions.append("record_type = %(record_type)s")
            params["record_type"] = record_type
        if since:
            conditions.append("uploaded_at >= %(since)s")
            params["since"] = since
        if until:
            conditions.append("uploaded_at <= %(until)s")
            params["until"] = until

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        total = self.pool.execute_query(
            f"SELECT COUNT(*) AS total FROM upload_batches {where}", params
        )[0]["total"]

        rows = self.pool.execute_query(
            f"""
            SELECT * FROM upload_batches {where}
            ORDER BY uploaded_at DESC
            LIMIT %(limit)s OFFSET %(offset)s
            """,
            {**params, "limit": limit, "offset": (page - 1) * limit},
        )

        return {
            "batches": [_to_batch(row) for row in rows],
            "total": int(total),
            "page": page,
            "limit": limit,
        }

    def cleanup_failed_batches(self, older_than_days: int = 30) -> int:
        """
        Delete failed batches uploaded more than N days ago (errors cascade).

        Returns:
            Number of batches deleted
        """
        try:
            deleted = self.pool.execute_command(
                """
                DELETE FROM upload_batches
                WHERE status = 'failed'
                  AND uploaded_at < NOW() - make_interval(days => %s)
                """,
                (older_than_days,),
            )
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to clean up failed batches: {e}")
            raise

        logger.info(f"Deleted {deleted} failed batches older than {older_than_days} days")
        return deleted

    def _update_status(
        self,
        batch_id: str,
        command: str,
        params: dict[str, Any],
        operation: str
    ) -> None:
        try:
            updated = self.pool.execute_command(command, params)
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to {operation} batch {batch_id}: {e}")
            raise

        if updated == 0:
            batch = self.get_batch(batch_id)
            raise InvalidBatchStateError(batch_id, batch.status, operation)
