"""Pydantic schemas for registration, login and identifier migration."""

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., alias="fullName", min_length=1, max_length=255)
    username: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., max_length=256)


class RegisterResponse(BaseModel):
    success: bool = True
    message: str = "Identity verified. Please log in."


class LoginRequest(BaseModel):
    username: str = Field(..., max_length=150)
    password: str = Field(..., max_length=256)


class LoginResponse(BaseModel):
    token: str
    role: str
    route: str
    fullName: str = ""
    username: str


class MigrateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_username: str = Field(..., alias="oldUsername", max_length=150)
    password: str = Field(..., max_length=256)
    new_username: str = Field(..., alias="newUsername", min_length=1, max_length=150)
