"""FastAPI authentication dependencies.

Handlers receive an explicit ``AuthContext`` instead of reading a user off
the request object.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from phishguard.auth.schemas import SessionUser
from phishguard.auth.sessions import SessionManager
from phishguard.cache import Cache, get_cache
from phishguard.store import Store, get_store

_bearer = HTTPBearer(auto_error=False)


class UnauthorizedError(Exception):
    """Missing, unknown or invalidated session. Rendered as HTTP 401."""


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller of a request."""

    user: SessionUser
    token: str


def get_session_manager(
    cache: Cache = Depends(get_cache),  # noqa: B008
    store: Store = Depends(get_store),  # noqa: B008
) -> SessionManager:
    return SessionManager(cache, store)


async def authenticate(sessions: SessionManager, token: str | None) -> AuthContext:
    """Resolve a bearer token to an ``AuthContext`` or raise ``UnauthorizedError``."""
    if not token:
        raise UnauthorizedError
    result = await sessions.validate_session(token)
    if not result.valid or result.user is None:
        raise UnauthorizedError
    return AuthContext(user=result.user, token=token)


async def get_auth_context(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),  # noqa: B008
    sessions: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> AuthContext:
    """Authenticate the request's bearer session token (FastAPI dependency)."""
    token = credentials.credentials if credentials is not None else None
    return await authenticate(sessions, token)
