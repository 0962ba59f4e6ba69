"""
RowValidationResult model representing the outcome of validating one row (ephemeral).
"""

from typing import Any, List

from pydantic import BaseModel, Field, field_validator

from .upload_batch import RecordType


class RowValidationResult(BaseModel):
    """
    Outcome of validating a normalized row (ephemeral, used during processing).

    Note: never persisted; a failed result becomes an UploadRowError.

    Attributes:
        row_number: Spreadsheet row the result belongs to
        record_type: Which rule set was applied
        natural_key: JAMB registration number, when readable
        passed: Overall validation status
        fields: Coerced values for the fields the target record consumes
        errors: Error-severity reasons (all of them, not just the first)
        warnings: Warning-severity reasons that did not fail the row
    """

    row_number: int | None = None
    record_type: RecordType
    natural_key: str | None = None
    passed: bool
    fields: dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @field_validator("errors")
    @classmethod
    def check_passed_consistency(cls, v, info):
        """Validate that passed=True implies errors is empty."""
        if info.data.get("passed") and len(v) > 0:
            raise ValueError("passed=True but errors is not empty")
        return v

    @property
    def error_message(self) -> str:
        return "; ".join(self.errors)

    class Config:
        json_schema_extra = {
            "example": {
                "row_number": 3,
                "record_type": "candidate_bio",
                "natural_key": "202512345678AB",
                "passed": False,
                "fields": {"jamb_no": "202512345678AB", "first_name": "Ada"},
                "errors": [
                    "Missing required field 'surname'",
                    "jamb_score: Value 512 exceeds maximum 400",
                ],
                "warnings": [],
            }
        }
