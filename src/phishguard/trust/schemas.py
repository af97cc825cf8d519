"""Schemas for the trusted-contact graph and the cached profile."""

from __future__ import annotations

from pydantic import EmailStr

from phishguard.schemas import CamelModel


class TrustedContact(CamelModel):
    id: int
    email: str
    full_name: str


class ProfileUser(CamelModel):
    id: int
    email: str
    full_name: str
    trusted_users: list[TrustedContact] = []


class ProfileResponse(CamelModel):
    """Body of ``GET /me``; cached verbatim under ``user_data:<user_id>``."""

    success: bool
    error: str | None = None
    user: ProfileUser | None = None


class TrustedUsersResponse(CamelModel):
    trusted_users: list[TrustedContact]


class AddTrustedUserRequest(CamelModel):
    email: EmailStr


class TrustedUserResponse(CamelModel):
    success: bool | None = None
    error: str | None = None
