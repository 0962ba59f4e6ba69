"""
Core data models for the candidate ingestion pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .audit_log import AdminAuditLog
from .batch_summary import BatchSummary
from .candidate_record import (
    CANDIDATE_MUTABLE_FIELDS,
    PRELIST_MUTABLE_FIELDS,
    CandidateRecord,
    EducationRecord,
    PrelistRecord,
    SubjectScore,
)
from .cell_value import CellKind, CellValue
from .upload_batch import BATCH_TRANSITIONS, TERMINAL_STATUSES, UploadBatch, statuses_leading_to
from .upload_row_error import UploadRowError
from .validation_result import RowValidationResult

__all__ = [
    "AdminAuditLog",
    "BATCH_TRANSITIONS",
    "BatchSummary",
    "CANDIDATE_MUTABLE_FIELDS",
    "PRELIST_MUTABLE_FIELDS",
    "CandidateRecord",
    "CellKind",
    "CellValue",
    "EducationRecord",
    "PrelistRecord",
    "RowValidationResult",
    "SubjectScore",
    "TERMINAL_STATUSES",
    "UploadBatch",
    "UploadRowError",
    "statuses_leading_to",
]
