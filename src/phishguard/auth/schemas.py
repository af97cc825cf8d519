"""Request/response schemas for authentication endpoints and session payloads."""

from __future__ import annotations

from pydantic import ConfigDict, EmailStr, Field, field_validator

from phishguard.schemas import CamelModel


# ---------------------------------------------------------------------------
# Session cache payload
# ---------------------------------------------------------------------------


class SessionUser(CamelModel):
    """The user snapshot embedded in a cached session."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str | None = None


class SessionResult(CamelModel):
    """Outcome of a session lookup. Cached verbatim under ``session:<token>``."""

    valid: bool
    user: SessionUser | None = None


# ---------------------------------------------------------------------------
# Signup / login
# ---------------------------------------------------------------------------


class SignupRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class SignupResponse(CamelModel):
    success: bool
    error: str | None = None
    session: str | None = None
    user: SessionUser | None = None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class LoginResponse(CamelModel):
    success: bool
    error: str | None = None
    session: str | None = None
    full_name: str | None = None
    email: str | None = None


class MeResponse(CamelModel):
    valid: bool
    user: SessionUser


class LogoutResponse(CamelModel):
    success: bool
