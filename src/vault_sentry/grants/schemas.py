"""Pydantic schemas for the dashboard sector summary."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SectorStats(BaseModel):
    count: int
    hasAccess: bool
    expiresAt: Optional[datetime] = None
    securityLevel: str


class DashboardStatsResponse(BaseModel):
    stats: dict[str, SectorStats]
    fullName: str
    username: str
    role: str
