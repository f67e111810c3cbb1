"""Pydantic schemas for access requests."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from vault_sentry.workflow.models import Decision


class AccessRequestCreate(BaseModel):
    department: str = Field(..., min_length=1, max_length=100)
    duration: int = Field(30, ge=1, le=1440)
    reason: str = Field("", max_length=2000)


class AccessRequestResponse(BaseModel):
    id: str
    requesterId: str
    username: str = ""
    department: str
    duration: int
    reason: str
    status: str
    requestedAt: datetime
    decidedAt: Optional[datetime] = None
    decidedBy: Optional[str] = None


class DecisionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(..., alias="requestId")
    action: Decision
