from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str


class DocumentResponse(BaseModel):
    status: Literal["success"] = "success"
    data: dict[str, Any]


class ListResponse(DocumentResponse):
    requested_at: datetime | None = None
    results: int


class AuthResponse(DocumentResponse):
    token: str


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class PasswordUpdateRequest(BaseModel):
    password_current: str | None = None
    password: str | None = None
    password_confirm: str | None = None


class ForgotPasswordRequest(BaseModel):
    email: str | None = None


class PasswordResetRequest(BaseModel):
    password: str | None = None
    password_confirm: str | None = None
