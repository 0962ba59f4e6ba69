"""
JAMB prelist storage: the pre-admission score roster.
"""

from typing import Any

import psycopg

from candidate_ingest.core.models import PRELIST_MUTABLE_FIELDS, PrelistRecord
from candidate_ingest.observability.logger import get_logger
from candidate_ingest.warehouse.candidates import update_sql
from candidate_ingest.warehouse.connection import DatabaseConnectionPool, DuplicateKeyError

logger = get_logger(__name__)

# Model field -> jamb_prelist column, where they differ
PRELIST_COLUMNS = {
    "surname": "last_name",
    "other_name": "middle_name",
    "phone": "phone_number",
    "state": "state_of_origin",
}

SCORE_BUCKETS = (
    ("0-199", 0, 199),
    ("200-249", 200, 249),
    ("250-299", 250, 299),
    ("300-349", 300, 349),
    ("350-400", 350, 400),
)


def _column(field_name: str) -> str:
    return PRELIST_COLUMNS.get(field_name, field_name)


class PrelistStore:
    """
    Prelist persistence on PostgreSQL.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def get_by_jamb_no(self, jamb_reg_no: str) -> dict[str, Any] | None:
        try:
            rows = self.pool.execute_query(
                "SELECT * FROM jamb_prelist WHERE jamb_reg_no = %s",
                (jamb_reg_no,),
            )
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to look up prelist record {jamb_reg_no}: {e}")
            raise

        return rows[0] if rows else None

    def insert(self, record: PrelistRecord) -> str:
        """
        Insert a prelist record.

        Returns:
            New record id

        Raises:
            DuplicateKeyError: The JAMB number is already on the prelist
        """
        insert_sql = """
            INSERT INTO jamb_prelist (
                jamb_reg_no, first_name, last_name, middle_name, date_of_birth,
                gender, phone_number, email, state_of_origin, lga,
                program_choice_1, program_choice_2, program_choice_3,
                jamb_score, is_uploaded, uploaded_at, uploaded_by
            ) VALUES (
                %(jamb_reg_no)s, %(first_name)s, %(surname)s, %(other_name)s, %(date_of_birth)s,
                %(gender)s, %(phone)s, %(email)s, %(state)s, %(lga)s,
                %(program_choice_1)s, %(program_choice_2)s, %(program_choice_3)s,
                %(jamb_score)s, %(is_uploaded)s, %(uploaded_at)s, %(uploaded_by)s
            ) RETURNING id
        """

        try:
            rows = self.pool.execute_query(insert_sql, record.model_dump(exclude={"id"}))
        except psycopg.errors.UniqueViolation as e:
            raise DuplicateKeyError("jamb_prelist", record.jamb_reg_no) from e
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to insert prelist record {record.jamb_reg_no}: {e}")
            raise

        return str(rows[0]["id"])

    def update_mutable_fields(self, record_id: str, fields: dict[str, Any]) -> int:
        """
        Overwrite the upload-mutable fields of an existing prelist record.

        Returns:
            Number of rows updated (0 or 1)
        """
        values = {
            _column(k): v for k, v in fields.items() if k in PRELIST_MUTABLE_FIELDS
        }
        if not values:
            return 0

        try:
            return self.pool.execute_command(
                update_sql("jamb_prelist", list(values)),
                {**values, "key": record_id},
            )
        except psycopg.DatabaseError as e:
            logger.error(f"Failed to update prelist record {record_id}: {e}")
            raise

    def list_records(
        self,
        state: str | None = None,
        program: str | None = None,
        min_score: int | None = None,
        max_score: int | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 50
    ) -> dict[str, Any]:
        """
        Search the prelist with filters and pagination.

        Args:
            state: Exact state of origin (case-insensitive)
            program: Matches any of the three program choices
            min_score: Lowest JAMB score (inclusive)
            max_score: Highest JAMB score (inclusive)
            search: Substring of JAMB number or names
            page: 1-based page
            limit: Page size

        Returns:
            {"records": [...], "total": int, "page": int, "limit": int}
        """
        conditions = []
        params: dict[str, Any] = {}

        if state:
            conditions.append("LOWER(state_of_origin) = LOWER(%(state)s)")
            params["state"] = state
        if program:
            conditions.append(
                "%(program)s IN (program_choice_1, program_choice_2, program_choice_3)"
            )
            params["program"] = program
        if min_score is not None:
            conditions.append("jamb_score >= %(min_score)s")
            params["min_score"] = min_score
        if max_score is not None:
            conditions.append("jamb_score <= %(max_score)s")
            params["max_score"] = max_score
        if search:
            conditions.append(
                "(jamb_reg_no ILIKE %(search)s OR first_name ILIKE %(search)s "
                "OR last_name ILIKE %(search)s)"
            )
            params["search"] = f"%{search}%"

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        total = self.pool.execute_query(
            f"SELECT COUNT(*) AS total FROM jamb_prelist {where}", params
        )[0]["total"]

        records = self.pool.execute_query(
            f"""
            SELECT * FROM jamb_prelist {where}
            ORDER BY jamb_score DESC, jamb_reg_no
            LIMIT %(limit)s OFFSET %(offset)s
            """,
            {**params, "limit": limit, "offset": (page - 1) * limit},
        )

        return {"records": records, "total": int(total), "page": page, "limit": limit}

    def get_statistics(self) -> dict[str, Any]:
        """
        Prelist statistics.

        Returns:
            total, average_score, by_state, by_program (first choice) and
            score_distribution over fixed buckets
        """
        overall = self.pool.execute_query(
            "SELECT COUNT(*) AS total, AVG(jamb_score) AS average_score FROM jamb_prelist"
        )[0]

        by_state = self.pool.execute_query(
            """
            SELECT state_of_origin AS state, COUNT(*) AS count
            FROM jamb_prelist
            GROUP BY state_of_origin
            ORDER BY count DESC, state_of_origin
            """
        )

        by_program = self.pool.execute_query(
            """
            SELECT program_choice_1 AS program, COUNT(*) AS count
            FROM jamb_prelist
            GROUP BY program_choice_1
            ORDER BY count DESC, program_choice_1
            """
        )

        bucket_columns = ", ".join(
            f"COUNT(*) FILTER (WHERE jamb_score BETWEEN {low} AND {high}) AS \"{label}\""
            for label, low, high in SCORE_BUCKETS
        )
        distribution = self.pool.execute_query(
            f"SELECT {bucket_columns} FROM jamb_prelist"
        )[0]

        average = overall["average_score"]
        return {
            "total": int(overall["total"]),
            "average_score": round(float(average), 2) if average is not None else None,
            "by_state": [{"state": r["state"], "count": int(r["count"])} for r in by_state],
            "by_program": [
                {"program": r["program"], "count": int(r["count"])} for r in by_program
            ],
            "score_distribution": {
                label: int(distribution[label]) for label, _, _ in SCORE_BUCKETS
            },
        }
