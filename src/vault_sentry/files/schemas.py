"""Pydantic schemas for sector entry and file operations."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vault_sentry.files.models import LockState


class FileResponse(BaseModel):
    id: str
    filename: str
    owner: str
    ownerId: str
    status: str
    department: str
    createdAt: Optional[datetime] = None


class EnterSectorRequest(BaseModel):
    department: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., max_length=256)


class EnterSectorResponse(BaseModel):
    files: list[FileResponse]
    accessType: str


class UploadRequest(BaseModel):
    department: str = Field(..., min_length=1, max_length=100)
    filename: str = Field(..., min_length=1, max_length=255)
    passcode: str = Field("", max_length=256)
    status: LockState = LockState.LOCKED

    @model_validator(mode="after")
    def _locked_needs_passcode(self) -> "UploadRequest":
        if self.status is LockState.LOCKED and not self.passcode:
            raise ValueError("Locked files require a passcode")
        return self


class UploadResponse(BaseModel):
    success: bool = True
    file: FileResponse


class RenameRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    new_name: str = Field(..., alias="newName", min_length=1, max_length=255)


class FileIdRequest(BaseModel):
    id: str


class UnlockRequest(BaseModel):
    id: str
    passcode: str = Field(..., max_length=256)
