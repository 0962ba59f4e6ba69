"""
Input validation utilities for the upload pipeline and admin commands.

Checks caller-supplied identifiers and query parameters before they reach
storage: batch ids, actor ids, record types, filenames and pagination.
"""

import re
import uuid
from pathlib import PurePath

RECORD_TYPES = ("candidate_bio", "prelist_score")
BATCH_STATUSES = ("uploading", "processing", "completed", "failed")


class InputValidationError(ValueError):
    """Raised when caller input fails validation."""
    pass


def validate_batch_id(batch_id: str, field_name: str = "batch_id") -> str:
    """
    Validate an upload batch id.

    Batch ids are UUIDs assigned by the database.

    Args:
        batch_id: The batch id to validate
        field_name: Name of the field (for error messages)

    Returns:
        The batch id in canonical lower-case UUID form

    Raises:
        InputValidationError: If the value is not a UUID

    Examples:
        >>> validate_batch_id("7D0C3B8E-4B8B-4A53-9D55-3F1E2B3C9A10")
        '7d0c3b8e-4b8b-4a53-9d55-3f1e2b3c9a10'
    """
    if not batch_id or not isinstance(batch_id, str):
        raise InputValidationError(f"{field_name} must be a non-empty string")

    try:
        return str(uuid.UUID(batch_id.strip()))
    except ValueError as e:
        raise InputValidationError(f"{field_name} is not a valid UUID: {batch_id!r}") from e


def validate_actor_id(actor_id: str, field_name: str = "uploaded_by") -> str:
    """
    Validate the identifier of the administrator performing an action.

    Actor ids are non-empty strings of alphanumerics, hyphens, underscores,
    dots and @ (so email addresses are accepted).

    Raises:
        InputValidationError: If validation fails
    """
    if not actor_id or not isinstance(actor_id, str):
        raise InputValidationError(f"{field_name} must be a non-empty string")

    actor_id = actor_id.strip()

    if not actor_id:
        raise InputValidationError(f"{field_name} cannot be empty or whitespace-only")

    if not re.match(r'^[a-zA-Z0-9_\-\.@]+$', actor_id):
        raise InputValidationError(
            f"{field_name} contains invalid characters. "
            "Only alphanumeric, hyphens, underscores, dots and @ are allowed."
        )

    if len(actor_id) > 255:
        raise InputValidationError(f"{field_name} exceeds maximum length of 255 characters")

    return actor_id


def validate_record_type(record_type: str, field_name: str = "record_type") -> str:
    if record_type not in RECORD_TYPES:
        raise InputValidationError(
            f"{field_name} must be one of {', '.join(RECORD_TYPES)}, got {record_type!r}"
        )
    return record_type


def validate_batch_status(status: str, field_name: str = "status") -> str:
    if status not in BATCH_STATUSES:
        raise InputValidationError(
            f"{field_name} must be one of {', '.join(BATCH_STATUSES)}, got {status!r}"
        )
    return status


def validate_filename(filename: str, field_name: str = "filename") -> str:
    """
    Validate an uploaded filename and reduce it to its base name.

    Args:
        filename: Filename as supplied by the client
        field_name: Name of the field (for error messages)

    Returns:
        The base name, stripped of whitespace and any directory part

    Raises:
        InputValidationError: If validation fails

    Examples:
        >>> validate_filename("uploads/prelist 2025.xlsx")
        'prelist 2025.xlsx'
    """
    if not filename or not isinstance(filename, str):
        raise InputValidationError(f"{field_name} must be a non-empty string")

    if "\x00" in filename:
        raise InputValidationError(f"{field_name} contains null bytes")

    name = PurePath(filename.strip().replace("\\", "/")).name

    if not name or name in (".", ".."):
        raise InputValidationError(f"{field_name} does not name a file")

    if len(name) > 255:
        raise InputValidationError(f"{field_name} exceeds maximum length of 255 characters")

    return name


def validate_pagination(page: int, limit: int, max_limit: int = 500) -> tuple[int, int]:
    """
    Validate 1-based page and page size.

    Returns:
        (page, limit)

    Raises:
        InputValidationError: If either value is out of range
    """
    if not isinstance(page, int) or page < 1:
        raise InputValidationError(f"page must be a positive integer, got {page!r}")

    if not isinstance(limit, int) or limit < 1:
        raise InputValidationError(f"limit must be a positive integer, got {limit!r}")

    if limit > max_limit:
        raise InputValidationError(f"limit exceeds maximum of {max_limit}")

    return page, limit


def validate_older_than_days(days: int, field_name: str = "older_than_days") -> int:
    if not isinstance(days, int) or days < 0:
        raise InputValidationError(f"{field_name} must be a non-negative integer, got {days!r}")
    return days
