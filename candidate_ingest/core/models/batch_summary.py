"""
BatchSummary model returned to the caller of an upload.
"""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from .upload_row_error import UploadRowError


class BatchSummary(BaseModel):
    """
    Final outcome of one batch run.

    Attributes:
        batch_id: UploadBatch id
        total_records: Data rows in the file
        processed_records: created_records + updated_records
        created_records: New records written
        updated_records: Existing records updated in place
        failed_records: Rows rejected
        errors: One UploadRowError per rejected row, in file order
        message: Human-readable outcome
    """

    batch_id: str
    total_records: int = Field(0, ge=0)
    processed_records: int = Field(0, ge=0)
    created_records: int = Field(0, ge=0)
    updated_records: int = Field(0, ge=0)
    failed_records: int = Field(0, ge=0)
    errors: list[UploadRowError] = Field(default_factory=list)
    message: str = ""

    @model_validator(mode="after")
    def check_counts(self) -> "BatchSummary":
        if self.processed_records != self.created_records + self.updated_records:
            raise ValueError("processed_records must equal created_records + updated_records")
        if self.failed_records != len(self.errors):
            raise ValueError("failed_records must equal the number of row errors")
        return self

    def to_response(self) -> dict[str, Any]:
        """JSON-serializable shape handed to the HTTP layer."""
        return {
            "batchId": self.batch_id,
            "totalRecords": self.total_records,
            "processedRecords": self.processed_records,
            "createdRecords": self.created_records,
            "updatedRecords": self.updated_records,
            "failedRecords": self.failed_records,
            "errors": [error.to_response() for error in self.errors],
            "message": self.message,
        }
