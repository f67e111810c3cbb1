"""Pydantic schemas for the trap endpoint."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TrapTriggerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ip: str = Field("", max_length=64)
    user_agent: str = Field("", alias="userAgent", max_length=1024)


class TrapTriggerResponse(BaseModel):
    success: bool = True


class IncidentResponse(BaseModel):
    id: str
    sourceIp: str
    userAgent: str
    city: str
    isp: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    triggeredAt: datetime
    userId: Optional[str] = None
