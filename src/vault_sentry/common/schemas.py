"""Shared Pydantic schemas for Vault Sentry."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "vault-sentry"


class ErrorResponse(BaseModel):
    error: str
    message: str = ""
    code: str
    detail: str = ""


class OkResponse(BaseModel):
    success: bool = True
    message: str = ""
