"""Schemas for device registration and cached notification listings."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from phishguard.schemas import CamelModel


class RegisterDeviceRequest(CamelModel):
    token: str = Field(..., min_length=1, max_length=256)


class RegisterDeviceResponse(CamelModel):
    success: bool
    error: str | None = None


class NotificationListResponse(CamelModel):
    """Body cached under ``notifications:<user_id>``."""

    success: bool
    notifications: list[dict[str, Any]] = []
