"""
UploadBatch model representing one file-upload processing run.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

BatchStatus = Literal["uploading", "processing", "completed", "failed"]
RecordType = Literal["candidate_bio", "prelist_score"]

TERMINAL_STATUSES = frozenset({"completed", "failed"})

# Forward transitions; leaving a terminal status only happens through retry.
BATCH_TRANSITIONS: dict[str, frozenset[str]] = {
    "uploading": frozenset({"processing", "failed"}),
    "processing": frozenset({"completed", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}


def statuses_leading_to(status: str) -> list[str]:
    """Statuses a batch may be in for a forward move to `status`."""
    return sorted(source for source, targets in BATCH_TRANSITIONS.items() if status in targets)


class UploadBatch(BaseModel):
    """
    One upload attempt, tracked from acceptance to a terminal status.

    Attributes:
        id: Batch UUID (assigned by the database)
        filename: Original filename as uploaded
        record_type: "candidate_bio" or "prelist_score"
        total_records: Number of data rows in the decoded file
        processed_records: Rows created or updated
        failed_records: Rows rejected (validation, duplicate or system)
        status: "uploading", "processing", "completed", "failed"
        uploaded_by: Actor identifier attributed to the upload
        uploaded_at: When the upload was accepted
        completed_at: When the batch reached a terminal status
        error_message: Batch-level failure message
    """

    id: str | None = None
    filename: str = Field(..., min_length=1)
    record_type: RecordType = "candidate_bio"
    total_records: int = Field(0, ge=0)
    processed_records: int = Field(0, ge=0)
    failed_records: int = Field(0, ge=0)
    status: BatchStatus = "uploading"
    uploaded_by: str = Field(..., min_length=1)
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None
    error_message: str | None = None

    @model_validator(mode="after")
    def check_counts(self) -> "UploadBatch":
        """Processed plus failed rows can never exceed the total."""
        if self.processed_records + self.failed_records > self.total_records:
            raise ValueError(
                f"processed_records ({self.processed_records}) + failed_records "
                f"({self.failed_records}) exceeds total_records ({self.total_records})"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, status: str, retry: bool = False) -> bool:
        """
        Whether the batch may move to `status`.

        A retry is the only way out of a terminal status, and it always
        lands in "processing".
        """
        if retry:
            return self.is_terminal and status == "processing"
        return status in BATCH_TRANSITIONS.get(self.status, frozenset())

    class Config:
        json_schema_extra = {
            "example": {
                "id": "7d0c3b8e-4b8b-4a53-9d55-3f1e2b3c9a10",
                "filename": "utme_2025_candidates.xlsx",
                "record_type": "candidate_bio",
                "total_records": 120,
                "processed_records": 117,
                "failed_records": 3,
                "status": "completed",
                "uploaded_by": "admin-42",
            }
        }
