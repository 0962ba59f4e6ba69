"""
Candidate storage: lookup, creation and in-place update of candidates.

A candidate and its education record are written in one transaction. The
UNIQUE constraint on jamb_reg_no is what guards concurrent uploads; a
violation surfaces as DuplicateKeyError.
"""

from typing import Any

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from candidate_ingest.core.models import (
    CANDIDATE_MUTABLE_FIELDS,
    CandidateRecord,
    EducationRecord,
)
from candidate_ingest.observability.logger import get_logger
from candidate_ingest.warehouse.connection import DatabaseConnectionPool, DuplicateKeyError

logger = get_logger(__name__)

CANDIDATE_COLUMNS = (
    "jamb_reg_no",
    "first_name",
    "surname",
    "other_name",
    "gender",
    "date_of_birth",
    "email",
    "phone",
    "state",
    "lga",
    "department",
    "mode_of_entry",
    "password_hash",
    "is_first_login",
    "registration_completed",
    "biodata_completed",
    "education_completed",
    "next_of_kin_completed",
    "sponsor_completed",
    "is_active",
    "created_at",
    "updated_at",
)


def _insert_sql(table: str, columns: tuple[str, ...], returning: str = "id") -> sql.Composed:
    return sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING {returning}").format(
        table=sql.Identifier(table),
        columns=sql.SQL(", ").join(map(sql.Identifier, columns)),
        values=sql.SQL(", ").join(map(sql.Placeholder, columns)),
        returning=sql.Identifier(returning),
    )


def update_sql(table: str, columns: list[str], key_column: str = "id") -> sql.Composed:
    """UPDATE statement setting the given columns plus updated_at, matched on key_column."""
    assignments = [
        sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder(column))
        for column in columns
    ]
    assignments.append(sql.SQL("updated_at = NOW()"))
    return sql.SQL("UPDATE {table} SET {assignments} WHERE {key} = %(key)s").format(
        table=sql.Identifier(table),
        assignments=sql.SQL(", ").join(assignments),
        key=sql.Identifier(key_column),
    )


class CandidateStore:
    """
    Candidate persistence on PostgreSQL.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def get_by_jamb_no(self, jamb_reg_no: str) -> dict[str, Any] | None:
        """
        Look up a candidate by natural key.

        Returns:
            Row dict, or None when no candidate has this JAMB number
        """
        try:
            rows = self.pool.execute_query(
                "SELECT * FROM candidates WHERE jamb_reg_no = %s",
                (jamb_reg_no,),
            )
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to look up candidate {jamb_reg_no}: {e}")
            raise

        return rows[0] if rows else None

    def insert_candidate(
        self,
        candidate: CandidateRecord,
        education: EducationRecord | None = None
    ) -> str:
        """
        Create a candidate and, optionally, its education record atomically.

        Args:
            candidate: New candidate (operational flags at their defaults)
            education: Exam scores for UTME candidates

        Returns:
            New candidate id

        Raises:
            DuplicateKeyError: The JAMB number is already taken
            psycopg.DatabaseError: Any other storage failure
        """
        params = candidate.model_dump(include=set(CANDIDATE_COLUMNS))

        try:
            with self.pool.transaction() as cur:
                cur.execute(_insert_sql("candidates", CANDIDATE_COLUMNS), params)
                candidate_id = str(cur.fetchone()["id"])

                if education is not None:
                    cur.execute(
                        """
                        INSERT INTO education_records (
                            candidate_id, jamb_score, jamb_subjects, exam_type, exam_year
                        ) VALUES (
                            %(candidate_id)s, %(jamb_score)s, %(jamb_subjects)s,
                            %(exam_type)s, %(exam_year)s
                        )
                        """,
                        {
                            "candidate_id": candidate_id,
                            "jamb_score": education.jamb_score,
                            "jamb_subjects": Jsonb(
                                [s.model_dump() for s in education.jamb_subjects]
                            ),
                            "exam_type": education.exam_type,
                            "exam_year": education.exam_year,
                        },
                    )

        except psycopg.errors.UniqueViolation as e:
            raise DuplicateKeyError("candidates", candidate.jamb_reg_no) from e
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to insert candidate {candidate.jamb_reg_no}: {e}")
            raise

        logger.debug(
            f"Created candidate {candidate.jamb_reg_no}",
            extra={"candidate_id": candidate_id, "with_education": education is not None},
        )
        return candidate_id

    def update_mutable_fields(self, candidate_id: str, fields: dict[str, Any]) -> int:
        """
        Overwrite the upload-mutable fields of an existing candidate.

        Only keys in CANDIDATE_MUTABLE_FIELDS are written; identifiers,
        password hash and completion flags are never touched.

        Returns:
            Number of rows updated (0 or 1)
        """
        values = {k: v for k, v in fields.items() if k in CANDIDATE_MUTABLE_FIELDS}
        if not values:
            return 0

        try:
            return self.pool.execute_command(
                update_sql("candidates", list(values)),
                {**values, "key": candidate_id},
            )
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to update candidate {candidate_id}: {e}")
            raise

    def get_education(self, candidate_id: str) -> list[dict[str, Any]]:
        return self.pool.execute_query(
            "SELECT * FROM education_records WHERE candidate_id = %s ORDER BY created_at",
            (candidate_id,),
        )

    def get_registration_stats(self) -> dict[str, int]:
        """
        Registration counters for the admin dashboard.

        Returns:
            total, registration_completed, registration_pending, active,
            first_time_logins
        """
        rows = self.pool.execute_query(
            """
            SELECT
                COUNT(*) AS total,
                COUNT(*) FILTER (WHERE registration_completed) AS registration_completed,
                COUNT(*) FILTER (WHERE NOT registration_completed) AS registration_pending,
                COUNT(*) FILTER (WHERE is_active) AS active,
                COUNT(*) FILTER (WHERE is_first_login) AS first_time_logins
            FROM candidates
            """
        )
        return {k: int(v) for k, v in rows[0].items()}
