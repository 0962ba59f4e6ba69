"""
UploadRowError model representing one rejected row within a batch.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

ErrorType = Literal["validation", "duplicate", "system"]

# Width of upload_row_errors.jamb_reg_no
JAMB_REG_NO_MAX_LENGTH = 32


def _strip_nul(value: Any) -> Any:
    """Drop NUL characters, which PostgreSQL text and jsonb cannot hold."""
    if isinstance(value, str):
        return value.replace("\x00", "")
    if isinstance(value, dict):
        return {_strip_nul(k): _strip_nul(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_strip_nul(v) for v in value]
    return value


class UploadRowError(BaseModel):
    """
    A rejected row, recorded for operator review.

    Attributes:
        id: Auto-assigned primary key
        batch_id: Owning UploadBatch id
        row_number: 1-based spreadsheet row (header is row 1)
        jamb_reg_no: Natural key of the row, when it could be read
        error_type: "validation", "duplicate" or "system"
        error_message: Human-readable reason(s)
        raw_data: Normalized row payload for later inspection
        created_at: When the error was recorded
    """

    id: int | None = None
    batch_id: str | None = None
    row_number: int = Field(..., ge=2)
    jamb_reg_no: str | None = None
    error_type: ErrorType
    error_message: str = Field(..., min_length=1)
    raw_data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("jamb_reg_no")
    @classmethod
    def fit_natural_key(cls, v: str | None) -> str | None:
        """Rejected keys can be arbitrarily long; keep what the column holds."""
        if v is None:
            return None
        return _strip_nul(v)[:JAMB_REG_NO_MAX_LENGTH] or None

    @field_validator("error_message", "raw_data")
    @classmethod
    def drop_nul_characters(cls, v: Any) -> Any:
        return _strip_nul(v)

    def to_response(self) -> dict[str, Any]:
        return {
            "rowNumber": self.row_number,
            "naturalKey": self.jamb_reg_no,
            "errorType": self.error_type,
            "message": self.error_message,
        }

    class Config:
        json_schema_extra = {
            "example": {
                "batch_id": "7d0c3b8e-4b8b-4a53-9d55-3f1e2b3c9a10",
                "row_number": 4,
                "jamb_reg_no": "202512345678AB",
                "error_type": "validation",
                "error_message": "Missing required field 'surname'",
                "raw_data": {"jamb_no": "202512345678AB", "first_name": "Ada"},
            }
        }
