"""
Opaque session tokens with cache-aside validation.

The ``sessions`` table is the system of record. Redis holds a shadow of each
lookup result under ``session:<token>``:

- positive results (``{"valid": true, "user": {...}}``) for 24 hours,
- negative results (``{"valid": false}``) for 1 hour.

The positive TTL is the effective cap on how long a session keeps working
after its cache entry is written without a fresh store lookup. Any error
while validating is treated as an invalid session.
"""

from __future__ import annotations

import secrets

import structlog
from pydantic import ValidationError

from phishguard.auth.schemas import SessionResult, SessionUser
from phishguard.cache import Cache, session_key
from phishguard.config import Settings, get_settings
from phishguard.db.models import User
from phishguard.store import Store

logger = structlog.get_logger()

TOKEN_BYTES = 32  # 64 hex characters

INVALID = SessionResult(valid=False)


def generate_session_token() -> str:
    """Generate a cryptographically random opaque session token."""
    return secrets.token_hex(TOKEN_BYTES)


def _dump(result: SessionResult) -> str:
    return result.model_dump_json(by_alias=True, exclude_none=True)


class SessionManager:
    """Create, validate and invalidate session tokens."""

    def __init__(self, cache: Cache, store: Store, settings: Settings | None = None) -> None:
        self.cache = cache
        self.store = store
        self.settings = settings or get_settings()

    async def create_session(self, user_id: int) -> str:
        """Insert a new session row and return its token. Does not touch the cache."""
        token = generate_session_token()
        await self.store.insert_session(user_id, token)
        return token

    async def issue_session(self, user: User) -> str:
        """Create a session and prime its cache entry with the positive payload."""
        token = await self.create_session(user.id)
        result = SessionResult(valid=True, user=SessionUser.model_validate(user))
        try:
            await self.cache.set(session_key(token), _dump(result), self.settings.session_cache_ttl_seconds)
        except Exception:
            logger.warning("session_cache_prime_failed", user_id=user.id, exc_info=True)
        return token

    async def validate_session(self, token: str) -> SessionResult:
        """Resolve ``token`` to its user. Never raises."""
        try:
            return await self._validate(token)
        except Exception:
            logger.error("session_check_failed", exc_info=True)
            return INVALID

    async def _validate(self, token: str) -> SessionResult:
        key = session_key(token)

        cached = await self._read_cache(key)
        if cached is not None:
            try:
                result = SessionResult.model_validate_json(cached)
            except ValidationError:
                logger.warning("session_cache_corrupt")
                return INVALID
            if not result.valid or result.user is None:
                return INVALID
            return result

        user = await self.store.get_session_user(token)
        if user is None:
            await self._write_cache(key, INVALID, self.settings.session_negative_ttl_seconds)
            return INVALID

        result = SessionResult(valid=True, user=SessionUser.model_validate(user))
        await self._write_cache(key, result, self.settings.session_cache_ttl_seconds)
        return result

    async def invalidate_session(self, token: str) -> None:
        """Replace the cached session with a negative entry. The store row is left in place.

        The negative entry lives as long as a positive one would have, so the
        token stays rejected for the whole window in which it could otherwise
        have been served from cache.
        """
        try:
            await self.cache.set(session_key(token), _dump(INVALID), self.settings.session_cache_ttl_seconds)
        except Exception:
            logger.error("session_invalidation_failed", exc_info=True)

    async def _read_cache(self, key: str) -> str | None:
        # An unreachable cache must not fail a lookup the store can answer.
        try:
            return await self.cache.get(key)
        except Exception:
            logger.warning("session_cache_read_failed", exc_info=True)
            return None

    async def _write_cache(self, key: str, result: SessionResult, ttl: int) -> None:
        try:
            await self.cache.set(key, _dump(result), ttl)
        except Exception:
            logger.warning("session_cache_write_failed", valid=result.valid, exc_info=True)
