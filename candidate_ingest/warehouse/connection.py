"""
PostgreSQL connection pool for the admissions database (psycopg3)

Rows come back as dicts. Single statements commit on their own; multi-statement
writes go through transaction() so they commit or roll back together.
"""
import os
import time
from contextlib import contextmanager

from psycopg import OperationalError
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from candidate_ingest.utils.settings import IngestSettings


class DuplicateKeyError(Exception):
    """Raised when an insert collides with an existing natural key."""

    def __init__(self, table: str, key: str):
        self.table = table
        self.key = key
        super().__init__(f"{table}: key '{key}' already exists")


class DatabaseConnectionPool:
    """
    Pooled psycopg3 connections to the admissions database.

    Upload rows are processed one at a time, so a small pool is enough for
    the pipeline; admin commands share the same pool type.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        min_size: int = 1,
        max_size: int = 5,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize the pool (connections open in open()).

        Args:
            host: Database host (defaults to DB_HOST)
            port: Database port (defaults to DB_PORT)
            database: Database name (defaults to DB_NAME)
            user: Database user (defaults to DB_USER)
            password: Database password (defaults to DB_PASSWORD, required)
            min_size: Minimum pool size
            max_size: Maximum pool size
            timeout: Connect and checkout timeout in seconds
        """
        self.host = host or os.getenv("DB_HOST", "localhost")
        self.port = port or int(os.getenv("DB_PORT", "5432"))
        self.database = database or os.getenv("DB_NAME", "admissions")
        self.user = user or os.getenv("DB_USER", "admissions")
        self.password = password or os.getenv("DB_PASSWORD")

        if not self.password:
            raise ValueError(
                "Database password must be provided. "
                "Set DB_PASSWORD or pass it to the constructor."
            )

        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout

        self.conninfo = (
            f"host={self.host} port={self.port} dbname={self.database} "
            f"user={self.user} password={self.password} "
            f"connect_timeout={int(self.timeout)}"
        )

        self._pool: ConnectionPool | None = None

    @classmethod
    def from_settings(cls, settings: IngestSettings, **overrides) -> "DatabaseConnectionPool":
        """
        Build a pool from IngestSettings.

        Args:
            settings: Environment settings
            **overrides: Constructor arguments that win over the settings
                         (None values are ignored)
        """
        options = {
            "host": settings.db_host,
            "port": settings.db_port,
            "database": settings.db_name,
            "user": settings.db_user,
            "password": settings.db_password,
        }
        options.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**options)

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the pool, retrying while the database is unreachable.

        Raises:
            OperationalError: If every attempt fails
        """
        if self._pool is not None:
            return

        pool = ConnectionPool(
            conninfo=self.conninfo,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )

        for attempt in range(1, max_retries + 1):
            try:
                pool.open(wait=True, timeout=self.timeout)
                self._pool = pool
                return
            except OperationalError as e:
                if attempt == max_retries:
                    pool.close()
                    raise OperationalError(
                        f"Failed to connect to {self.host}:{self.port}/{self.database} "
                        f"after {max_retries} attempts: {e}"
                    ) from e
                time.sleep(retry_delay)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self):
        """
        Borrow a connection from the pool.

        The pool commits on clean exit and rolls back when the block raises.

        Raises:
            RuntimeError: If the pool is not open
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")

        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def transaction(self):
        """
        Cursor inside one transaction; every statement commits or none does.

        Yields:
            psycopg.Cursor returning dict rows
        """
        with self.get_connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    yield cur

    def execute_query(self, query, params: tuple | dict | None = None) -> list[dict]:
        """
        Run a SELECT (or INSERT/UPDATE ... RETURNING) and commit.

        Returns:
            One dict per row
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
            conn.commit()
            return rows

    def execute_command(self, command, params: tuple | dict | None = None) -> int:
        """
        Run an INSERT/UPDATE/DELETE and commit.

        Returns:
            Number of rows affected
        """
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(command, params)
                rowcount = cur.rowcount
            conn.commit()
            return rowcount

    def execute_batch(self, command, params_list: list[tuple] | list[dict]) -> None:
        """Run one command for many parameter sets in a single transaction."""
        with self.transaction() as cur:
            cur.executemany(command, params_list)
