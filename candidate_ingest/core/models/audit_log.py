"""
AdminAuditLog model representing one recorded admin action.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class AdminAuditLog(BaseModel):
    """
    Audit entry for an administrative action.

    Attributes:
        id: Auto-assigned primary key
        admin_user_id: Actor who performed the action
        action: What was done (e.g., "upload_prelist", "retry_upload_batch")
        resource: Kind of resource acted on (e.g., "prelist", "candidates")
        resource_id: Identifier of the resource (usually a batch id)
        details: Free-form JSON details
        created_at: When the action happened
    """

    id: str | None = None
    admin_user_id: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)
    resource: str = Field(..., min_length=1)
    resource_id: str | None = None
    details: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "admin_user_id": "admin-42",
                "action": "upload_prelist",
                "resource": "prelist",
                "resource_id": "7d0c3b8e-4b8b-4a53-9d55-3f1e2b3c9a10",
                "details": {"filename": "prelist.csv", "totalRecords": 3},
            }
        }
