"""Device registration endpoint."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from phishguard.auth.dependencies import AuthContext, get_auth_context
from phishguard.notifications.schemas import RegisterDeviceRequest, RegisterDeviceResponse
from phishguard.notifications.service import register_device
from phishguard.store import Store, get_store

logger = structlog.get_logger()

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.post("/register", response_model=RegisterDeviceResponse, response_model_exclude_none=True)
async def register_device_endpoint(
    body: RegisterDeviceRequest,
    auth: AuthContext = Depends(get_auth_context),  # noqa: B008
    store: Store = Depends(get_store),  # noqa: B008
) -> RegisterDeviceResponse:
    """Register an Expo push token for the caller. Idempotent on the token value."""
    try:
        created = await register_device(store, auth.user.id, body.token)
    except Exception:
        logger.error("device_registration_failed", user_id=auth.user.id, exc_info=True)
        return RegisterDeviceResponse(success=False, error="Failed to register device")
    if created:
        logger.info("device_registered", user_id=auth.user.id)
    return RegisterDeviceResponse(success=True)
