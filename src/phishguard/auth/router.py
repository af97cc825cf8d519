"""Authentication endpoints: signup, login, logout, current user."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from phishguard.auth.dependencies import AuthContext, get_auth_context, get_session_manager
from phishguard.auth.schemas import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    MeResponse,
    SessionUser,
    SignupRequest,
    SignupResponse,
)
from phishguard.auth.service import (
    InvalidCredentialsError,
    authenticate_user,
    prime_new_user_caches,
    register_user,
)
from phishguard.auth.sessions import SessionManager
from phishguard.cache import Cache, get_cache
from phishguard.config import get_settings
from phishguard.store import Store, get_store

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/signup", response_model=SignupResponse, response_model_exclude_none=True)
async def signup(
    body: SignupRequest,
    store: Store = Depends(get_store),  # noqa: B008
    cache: Cache = Depends(get_cache),  # noqa: B008
    sessions: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SignupResponse:
    """Register a user and log them in."""
    try:
        user = await register_user(store, body.email, body.password, body.full_name)
    except ValueError as e:  # includes PasswordStrengthError
        return SignupResponse(success=False, error=str(e))

    token = await sessions.issue_session(user)
    await prime_new_user_caches(cache, user, get_settings())

    return SignupResponse(
        success=True,
        session=token,
        user=SessionUser(id=user.id, email=user.email, full_name=user.full_name or ""),
    )


@router.post("/login", response_model=LoginResponse, response_model_exclude_none=True)
async def login(
    body: LoginRequest,
    store: Store = Depends(get_store),  # noqa: B008
    sessions: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> LoginResponse:
    """Exchange email + password for a session token."""
    try:
        user = await authenticate_user(store, body.email, body.password)
    except InvalidCredentialsError as e:
        return LoginResponse(success=False, error=str(e))

    token = await sessions.issue_session(user)
    logger.info("user_logged_in", user_id=user.id)
    return LoginResponse(success=True, session=token, full_name=user.full_name, email=user.email)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    auth: AuthContext = Depends(get_auth_context),  # noqa: B008
    sessions: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> LogoutResponse:
    """Invalidate the caller's session."""
    await sessions.invalidate_session(auth.token)
    return LogoutResponse(success=True)


@router.get("/me", response_model=MeResponse)
async def me(auth: AuthContext = Depends(get_auth_context)) -> MeResponse:  # noqa: B008
    """Return the authenticated user."""
    return MeResponse(valid=True, user=auth.user)
