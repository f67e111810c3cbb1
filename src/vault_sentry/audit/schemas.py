"""Pydantic schemas for audit log responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class AuditEntryResponse(BaseModel):
    id: int
    timestamp: datetime
    kind: str
    message: str
    actor: str
    detail: dict[str, Any] = {}

    model_config = {"from_attributes": True}


class AuditChainVerification(BaseModel):
    valid: bool
    entries_checked: int
    break_at: Optional[int] = None
