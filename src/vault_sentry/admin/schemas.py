"""Pydantic schemas for the admin console."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from vault_sentry.audit.schemas import AuditEntryResponse
from vault_sentry.files.schemas import FileResponse
from vault_sentry.honeypot.schemas import IncidentResponse
from vault_sentry.sectors.models import SecurityLevel
from vault_sentry.workflow.schemas import AccessRequestResponse


class SettingsResponse(BaseModel):
    idPattern: str
    allowedDomain: str
    lockdown: bool
    version: int
    updatedAt: Optional[datetime] = None
    updatedBy: str = ""


class SectorResponse(BaseModel):
    name: str
    securityLevel: str
    fileCount: int = 0
    createdAt: Optional[datetime] = None


class AdminDashboardResponse(BaseModel):
    settings: SettingsResponse
    files: list[FileResponse]
    requests: list[AccessRequestResponse]
    logs: list[AuditEntryResponse]
    incidents: list[IncidentResponse]
    sectors: list[SectorResponse]
    pollInterval: int


class FirewallRulesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id_pattern: str = Field("", alias="idPattern", max_length=500)
    allowed_domain: str = Field("", alias="allowedDomain", max_length=255)


class LockdownRequest(BaseModel):
    enabled: bool


class SectorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    level: SecurityLevel = SecurityLevel.LOW


class SectorDeleteResponse(BaseModel):
    success: bool = True
    grantsRevoked: int = 0
