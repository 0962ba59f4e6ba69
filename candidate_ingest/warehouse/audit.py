"""
Admin audit log operations.

Records who performed which administrative action (uploads, retries,
cleanups) and lets operators query the trail by actor.
"""

from typing import Any

import psycopg
from psycopg.types.json import Jsonb

from candidate_ingest.core.models import AdminAuditLog
from candidate_ingest.observability.logger import get_logger
from candidate_ingest.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)


class AdminAuditLogger:
    """
    Writes and reads admin_audit_logs.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def log_action(
        self,
        admin_user_id: str,
        action: str,
        resource: str,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None
    ) -> str:
        """
        Insert a single audit log entry.

        Args:
            admin_user_id: Actor who performed the action
            action: Action name, e.g. "upload_candidates"
            resource: Resource kind, e.g. "candidates" or "prelist"
            resource_id: Resource identifier (usually a batch id)
            details: Free-form JSON details

        Returns:
            Generated log id

        Raises:
            psycopg.DatabaseError: If insert fails
        """
        entry = AdminAuditLog(
            admin_user_id=admin_user_id,
            action=action,
            resource=resource,
            resource_id=resource_id,
            details=details,
        )

        try:
            rows = self.pool.execute_query(
                """
                INSERT INTO admin_audit_logs (
                    admin_user_id, action, resource, resource_id, details, created_at
                ) VALUES (
                    %(admin_user_id)s, %(action)s, %(resource)s, %(resource_id)s,
                    %(details)s, %(created_at)s
                ) RETURNING id
                """,
                {
                    "admin_user_id": entry.admin_user_id,
                    "action": entry.action,
                    "resource": entry.resource,
                    "resource_id": entry.resource_id,
                    "details": Jsonb(entry.details) if entry.details is not None else None,
                    "created_at": entry.created_at,
                },
            )
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to insert audit log: {e}")
            raise

        log_id = str(rows[0]["id"])
        logger.debug(
            f"Inserted audit log entry: id={log_id}, action={action}, "
            f"resource={resource}, resource_id={resource_id}"
        )
        return log_id

    def query_actions(
        self,
        admin_user_id: str | None = None,
        action: str | None = None,
        limit: int = 100
    ) -> list[AdminAuditLog]:
        """
        Query audit entries, newest first.

        Args:
            admin_user_id: Only entries by this actor
            action: Only entries with this action name
            limit: Maximum number of entries to return
        """
        conditions = []
        params: dict[str, Any] = {"limit": limit}
        if admin_user_id:
            conditions.append("admin_user_id = %(admin_user_id)s")
            params["admin_user_id"] = admin_user_id
        if action:
            conditions.append("action = %(action)s")
            params["action"] = action

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        try:
            rows = self.pool.execute_query(
                f"""
                SELECT id, admin_user_id, action, resource, resource_id, details, created_at
                FROM admin_audit_logs {where}
                ORDER BY created_at DESC
                LIMIT %(limit)s
                """,
                params,
            )
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to query audit logs: {e}")
            raise

        return [AdminAuditLog(**{**row, "id": str(row["id"])}) for row in rows]
