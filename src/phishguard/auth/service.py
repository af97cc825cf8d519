"""
Signup and login business logic.

Routers translate the exceptions raised here into ``{"success": false,
"error": ...}`` bodies.
"""

from __future__ import annotations

import structlog

from phishguard.auth.password import hash_password, validate_password_strength, verify_password
from phishguard.cache import Cache, notifications_key, user_data_key
from phishguard.config import Settings
from phishguard.db.models import User
from phishguard.notifications.schemas import NotificationListResponse
from phishguard.store import Store
from phishguard.trust.schemas import ProfileResponse, ProfileUser

logger = structlog.get_logger()


class InvalidCredentialsError(ValueError):
    """Unknown email or wrong password. Deliberately does not say which."""

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


async def register_user(store: Store, email: str, password: str, full_name: str) -> User:
    """
    Create a user with an argon2id password hash.

    Raises:
        PasswordStrengthError: If the password fails the strength rules.
        ValueError: If the email is already registered.
    """
    validate_password_strength(password)

    if await store.get_user_by_email(email) is not None:
        msg = "Email already registered"
        raise ValueError(msg)

    user = await store.create_user(email, hash_password(password), full_name)
    logger.info("user_created", user_id=user.id)
    return user


async def authenticate_user(store: Store, email: str, password: str) -> User:
    """Return the user for valid credentials, else raise InvalidCredentialsError."""
    user = await store.get_user_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError
    return user


async def prime_new_user_caches(cache: Cache, user: User, settings: Settings) -> None:
    """Seed the empty notification list and profile of a brand new user."""
    notifications = NotificationListResponse(success=True, notifications=[])
    profile = ProfileResponse(
        success=True,
        user=ProfileUser(id=user.id, email=user.email, full_name=user.full_name or "", trusted_users=[]),
    )
    try:
        await cache.set(
            notifications_key(user.id),
            notifications.model_dump_json(by_alias=True, exclude_none=True),
            settings.notifications_ttl_seconds,
        )
        await cache.set(
            user_data_key(user.id),
            profile.model_dump_json(by_alias=True, exclude_none=True),
            settings.user_data_ttl_seconds,
        )
    except Exception:
        logger.warning("new_user_cache_prime_failed", user_id=user.id, exc_info=True)
