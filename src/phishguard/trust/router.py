"""Profile and trusted-contact endpoints under /me."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from phishguard.auth.dependencies import AuthContext, get_auth_context
from phishguard.cache import Cache, get_cache
from phishguard.config import get_settings
from phishguard.store import Store, get_store
from phishguard.trust.schemas import (
    AddTrustedUserRequest,
    ProfileResponse,
    TrustedUserResponse,
    TrustedUsersResponse,
)
from phishguard.trust.service import add_trusted_user, get_profile, list_trusted_users, remove_trusted_user

router = APIRouter(prefix="/me", tags=["Trusted contacts"])


@router.get("", response_model=ProfileResponse, response_model_exclude_none=True)
async def profile(
    auth: AuthContext = Depends(get_auth_context),  # noqa: B008
    store: Store = Depends(get_store),  # noqa: B008
    cache: Cache = Depends(get_cache),  # noqa: B008
) -> ProfileResponse:
    """The caller's profile including their trusted contacts."""
    return await get_profile(store, cache, auth.user, get_settings())


@router.get("/trusted-users", response_model=TrustedUsersResponse)
async def get_trusted_users(
    auth: AuthContext = Depends(get_auth_context),  # noqa: B008
    store: Store = Depends(get_store),  # noqa: B008
) -> TrustedUsersResponse:
    return TrustedUsersResponse(trusted_users=await list_trusted_users(store, auth.user.id))


@router.post("/trusted-users", response_model=TrustedUserResponse, response_model_exclude_none=True)
async def add_trusted_user_endpoint(
    body: AddTrustedUserRequest,
    auth: AuthContext = Depends(get_auth_context),  # noqa: B008
    store: Store = Depends(get_store),  # noqa: B008
    cache: Cache = Depends(get_cache),  # noqa: B008
) -> TrustedUserResponse:
    """Designate the user registered under ``email`` as a trusted contact."""
    try:
        await add_trusted_user(store, cache, auth.user.id, body.email)
    except (LookupError, ValueError) as e:
        return TrustedUserResponse(error=str(e))
    return TrustedUserResponse(success=True)


@router.delete("/trusted-users/{trusted_user_id}", response_model=TrustedUserResponse, response_model_exclude_none=True)
async def remove_trusted_user_endpoint(
    trusted_user_id: int,
    auth: AuthContext = Depends(get_auth_context),  # noqa: B008
    store: Store = Depends(get_store),  # noqa: B008
    cache: Cache = Depends(get_cache),  # noqa: B008
) -> TrustedUserResponse:
    await remove_trusted_user(store, cache, auth.user.id, trusted_user_id)
    return TrustedUserResponse(success=True)
