"""
Pytest configuration and fixtures for candidate-ingest tests

This module provides shared fixtures for unit, integration, and E2E tests:
in-memory stores for pipeline unit tests, file builders, and a PostgreSQL
testcontainer for storage and end-to-end tests.
"""
import io
import os
import uuid
from datetime import datetime
from typing import Any, Generator

import pandas as pd
import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from candidate_ingest.core.models import (
    CANDIDATE_MUTABLE_FIELDS,
    PRELIST_MUTABLE_FIELDS,
    UploadBatch,
)
from candidate_ingest.warehouse.batches import BatchNotFoundError, InvalidBatchStateError
from candidate_ingest.warehouse.connection import DatabaseConnectionPool, DuplicateKeyError


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )


# =======================
# IN-MEMORY STORES
# =======================

class InMemoryCandidateStore:
    """Candidate store keeping rows in a dict keyed by JAMB number."""

    def __init__(self):
        self.candidates: dict[str, dict[str, Any]] = {}
        self.education: dict[str, dict[str, Any]] = {}
        self.fail_on: set[str] = set()

    def get_by_jamb_no(self, jamb_reg_no):
        return self.candidates.get(jamb_reg_no)

    def insert_candidate(self, candidate, education=None):
        if candidate.jamb_reg_no in self.fail_on:
            raise RuntimeError("connection reset by peer")
        if candidate.jamb_reg_no in self.candidates:
            raise DuplicateKeyError("candidates", candidate.jamb_reg_no)

        candidate_id = str(uuid.uuid4())
        self.candidates[candidate.jamb_reg_no] = {**candidate.model_dump(), "id": candidate_id}
        if education is not None:
            self.education[candidate_id] = {**education.model_dump(), "candidate_id": candidate_id}
        return candidate_id

    def update_mutable_fields(self, candidate_id, fields):
        for row in self.candidates.values():
            if row["id"] == candidate_id:
                row.update({k: v for k, v in fields.items() if k in CANDIDATE_MUTABLE_FIELDS})
                return 1
        return 0


class InMemoryPrelistStore:
    def __init__(self):
        self.records: dict[str, dict[str, Any]] = {}

    def get_by_jamb_no(self, jamb_reg_no):
        return self.records.get(jamb_reg_no)

    def insert(self, record):
        if record.jamb_reg_no in self.records:
            raise DuplicateKeyError("jamb_prelist", record.jamb_reg_no)
        record_id = str(uuid.uuid4())
        self.records[record.jamb_reg_no] = {**record.model_dump(), "id": record_id}
        return record_id

    def update_mutable_fields(self, record_id, fields):
        for row in self.records.values():
            if row["id"] == record_id:
                row.update({k: v for k, v in fields.items() if k in PRELIST_MUTABLE_FIELDS})
                return 1
        return 0


class InMemoryBatchStore:
    """Upload batch store enforcing the same status rules as UploadBatchStore."""

    def __init__(self):
        self.batches: dict[str, UploadBatch] = {}
        self.row_errors: dict[str, list] = {}
        self.fail_on_insert_errors = False
        self.fail_on_create = False

    def create_batch(self, filename, record_type, uploaded_by):
        if self.fail_on_create:
            raise RuntimeError("too many connections")
        batch = UploadBatch(
            id=str(uuid.uuid4()),
            filename=filename,
            record_type=record_type,
            uploaded_by=uploaded_by,
        )
        self.batches[batch.id] = batch
        return batch

    def get_batch(self, batch_id):
        if batch_id not in self.batches:
            raise BatchNotFoundError(batch_id)
        return self.batches[batch_id]

    def _require(self, batch_id, status, operation, retry=False):
        batch = self.get_batch(batch_id)
        if not batch.can_transition_to(status, retry=retry):
            raise InvalidBatchStateError(batch_id, batch.status, operation)
        return batch

    def mark_processing(self, batch_id, total_records):
        batch = self._require(batch_id, "processing", "start processing")
        self.batches[batch_id] = batch.model_copy(
            update={"status": "processing", "total_records": total_records}
        )

    def set_total(self, batch_id, total_records):
        batch = self.get_batch(batch_id)
        self.batches[batch_id] = batch.model_copy(update={"total_records": total_records})

    def complete_batch(self, batch_id, processed_records, failed_records):
        batch = self._require(batch_id, "completed", "complete")
        self.batches[batch_id] = UploadBatch(**{
            **batch.model_dump(),
            "status": "completed",
            "processed_records": processed_records,
            "failed_records": failed_records,
            "completed_at": datetime.utcnow(),
        })

    def fail_batch(self, batch_id, error_message, processed_records=0, failed_records=0):
        batch = self.get_batch(batch_id)
        if not batch.can_transition_to("failed"):
            return
        self.batches[batch_id] = batch.model_copy(update={
            "status": "failed",
            "error_message": error_message,
            "processed_records": processed_records,
            "failed_records": failed_records,
            "completed_at": datetime.utcnow(),
        })

    def reset_for_retry(self, batch_id):
        batch = self._require(batch_id, "processing", "retry", retry=True)
        self.row_errors.pop(batch_id, None)
        batch = batch.model_copy(update={
            "status": "processing",
            "total_records": 0,
            "processed_records": 0,
            "failed_records": 0,
            "completed_at": None,
            "error_message": None,
        })
        self.batches[batch_id] = batch
        return batch

    def insert_row_errors(self, batch_id, errors):
        if self.fail_on_insert_errors:
            raise RuntimeError("disk full")
        self.row_errors[batch_id] = [
            error.model_copy(update={"batch_id": batch_id}) for error in errors
        ]
        return len(errors)

    def get_row_errors(self, batch_id):
        return sorted(self.row_errors.get(batch_id, []), key=lambda e: e.row_number)


class InMemoryAuditLogger:
    def __init__(self, fail: bool = False):
        self.entries: list[dict[str, Any]] = []
        self.fail = fail

    def log_action(self, admin_user_id, action, resource, resource_id=None, details=None):
        if self.fail:
            raise RuntimeError("audit table unavailable")
        self.entries.append({
            "admin_user_id": admin_user_id,
            "action": action,
            "resource": resource,
            "resource_id": resource_id,
            "details": details,
        })
        return str(len(self.entries))


@pytest.fixture
def candidate_store() -> InMemoryCandidateStore:
    return InMemoryCandidateStore()


@pytest.fixture
def prelist_store() -> InMemoryPrelistStore:
    return InMemoryPrelistStore()


@pytest.fixture
def batch_store() -> InMemoryBatchStore:
    return InMemoryBatchStore()


@pytest.fixture
def audit_logger() -> InMemoryAuditLogger:
    return InMemoryAuditLogger()


@pytest.fixture
def memory_pipeline(candidate_store, prelist_store, batch_store, audit_logger):
    """
    Build a BatchPipeline over the in-memory stores.

    Returns:
        Factory accepting BatchPipeline keyword overrides
    """
    from candidate_ingest.batch.pipeline import BatchPipeline

    def _build(**overrides):
        options = {
            "candidate_store": candidate_store,
            "prelist_store": prelist_store,
            "batch_store": batch_store,
            "audit_logger": audit_logger,
            **overrides,
        }
        return BatchPipeline(**options)

    return _build


@pytest.fixture
def isolated_pipeline():
    """Factory building a BatchPipeline over fresh in-memory stores on every call."""
    from candidate_ingest.batch.pipeline import BatchPipeline

    def _build(**overrides):
        options = {
            "candidate_store": InMemoryCandidateStore(),
            "prelist_store": InMemoryPrelistStore(),
            "batch_store": InMemoryBatchStore(),
            "audit_logger": InMemoryAuditLogger(),
            **overrides,
        }
        return BatchPipeline(**options)

    return _build


# =======================
# FILE FIXTURES
# =======================

def make_csv(rows: list[list[Any]]) -> bytes:
    """CSV bytes from a list of rows (first row is the header)."""
    lines = [",".join("" if cell is None else str(cell) for cell in row) for row in rows]
    return ("\n".join(lines) + "\n").encode("utf-8")


def make_xlsx(rows: list[list[Any]]) -> bytes:
    """xlsx bytes from a list of rows (first row is the header)."""
    buffer = io.BytesIO()
    frame = pd.DataFrame(rows[1:], columns=rows[0])
    frame.to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


@pytest.fixture
def csv_file():
    return make_csv


@pytest.fixture
def xlsx_file():
    return make_xlsx


CANDIDATE_HEADER = ["JAMB No", "Surname", "First Name", "Gender", "Department", "JAMB Score"]


@pytest.fixture
def candidate_csv() -> bytes:
    """Three rows: one missing surname, one repeated JAMB number, one valid."""
    return make_csv([
        CANDIDATE_HEADER,
        ["202512345678AB", "", "Ada", "female", "Computer Science", 250],
        ["202512345678CD", "Okafor", "Chidi", "male", "Medicine", 310],
        ["202512345678EF", "Bello", "Musa", "Male", "Law", 280],
    ])


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

TRUNCATE_TABLES = (
    "upload_row_errors",
    "upload_batches",
    "education_records",
    "candidates",
    "jamb_prelist",
    "admin_audit_logs",
)


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container with the schema from docker/init-db.sql

    Yields:
        PostgresContainer instance with initialized database
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_admissions",
        password="test_password",
        dbname="test_admissions",
    ) as postgres:
        init_sql_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "docker",
            "init-db.sql"
        )
        with open(init_sql_path, "r") as f:
            init_sql = f.read()

        with psycopg.connect(_conninfo(postgres)) as conn:
            with conn.cursor() as cur:
                cur.execute(init_sql)
            conn.commit()

        yield postgres


def _conninfo(postgres: PostgresContainer) -> str:
    return (
        f"host={postgres.get_container_host_ip()} "
        f"port={postgres.get_exposed_port(5432)} "
        f"dbname={postgres.dbname} "
        f"user={postgres.username} "
        f"password={postgres.password}"
    )


@pytest.fixture(scope="session")
def db_pool(postgres_container) -> Generator[DatabaseConnectionPool, None, None]:
    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database=postgres_container.dbname,
        user=postgres_container.username,
        password=postgres_container.password,
    )
    pool.open()
    yield pool
    pool.close()


@pytest.fixture(scope="function")
def clean_db(db_pool) -> DatabaseConnectionPool:
    """
    Provide a clean database by truncating all tables before each test

    Returns:
        Open connection pool on the emptied database
    """
    db_pool.execute_command(f"TRUNCATE TABLE {', '.join(TRUNCATE_TABLES)} CASCADE")
    return db_pool
