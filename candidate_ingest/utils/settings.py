"""
Runtime settings for candidate-ingest.

Settings come from environment variables, optionally seeded from a .env
file. Validation rules and header aliases live in YAML (see
core/rules/default_rules.yaml); INGEST_RULES_PATH points at a replacement.
"""
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class IngestSettings(BaseModel):
    """
    Settings consumed by the CLIs and the pipeline factory.

    Attributes:
        db_host: Database host (DB_HOST)
        db_port: Database port (DB_PORT)
        db_name: Database name (DB_NAME)
        db_user: Database user (DB_USER)
        db_password: Database password (DB_PASSWORD)
        log_level: Log level (LOG_LEVEL)
        log_format: "json" or "text" (LOG_FORMAT)
        rules_path: Optional replacement rules YAML (INGEST_RULES_PATH)
        duplicate_policy: "reject" or "update" (INGEST_DUPLICATE_POLICY)
        max_upload_bytes: Upload size limit (INGEST_MAX_UPLOAD_BYTES)
    """

    db_host: str = "localhost"
    db_port: int = Field(5432, gt=0, lt=65536)
    db_name: str = "admissions"
    db_user: str = "admissions"
    db_password: str | None = None
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"
    rules_path: Path | None = None
    duplicate_policy: Literal["reject", "update"] = "reject"
    max_upload_bytes: int = Field(10 * 1024 * 1024, gt=0)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "IngestSettings":
        """
        Build settings from the environment.

        Args:
            env_file: Optional .env file loaded first (existing variables win)

        Returns:
            IngestSettings instance
        """
        if env_file is not None:
            load_dotenv(env_file, override=False)
        else:
            load_dotenv(override=False)

        values = {
            "db_host": os.getenv("DB_HOST"),
            "db_port": os.getenv("DB_PORT"),
            "db_name": os.getenv("DB_NAME"),
            "db_user": os.getenv("DB_USER"),
            "db_password": os.getenv("DB_PASSWORD"),
            "log_level": os.getenv("LOG_LEVEL"),
            "log_format": os.getenv("LOG_FORMAT"),
            "rules_path": os.getenv("INGEST_RULES_PATH"),
            "duplicate_policy": os.getenv("INGEST_DUPLICATE_POLICY"),
            "max_upload_bytes": os.getenv("INGEST_MAX_UPLOAD_BYTES"),
        }
        return cls(**{k: v for k, v in values.items() if v not in (None, "")})
