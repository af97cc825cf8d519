"""Trust graph queries and trusted-contact alert fanout.

Edges are directed and only direct edges are followed: alerting a user's
contacts never walks the contacts' own contacts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import ValidationError

from phishguard.auth.schemas import SessionUser
from phishguard.cache import Cache, user_data_key
from phishguard.config import Settings
from phishguard.notifications.service import NotificationFanout
from phishguard.store import Store
from phishguard.trust.schemas import ProfileResponse, ProfileUser, TrustedContact

logger = structlog.get_logger()


@dataclass
class FanoutReport:
    """Which contacts an alert was attempted for, and which of those failed."""

    attempted: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def delivered(self) -> list[int]:
        return [uid for uid in self.attempted if uid not in self.failed]


async def list_trusted_contacts(store: Store, user_id: int) -> list[int]:
    """Return the ids ``user_id`` has designated as trusted contacts."""
    return await store.list_trusted_user_ids(user_id)


async def notify_trusted_contacts(
    store: Store,
    fanout: NotificationFanout,
    owner_id: int,
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> FanoutReport:
    """Send one push notification per trusted contact of ``owner_id``.

    Contacts are notified sequentially. A failure for one contact is logged
    and recorded; the remaining contacts are still notified.
    """
    report = FanoutReport()
    for contact_id in await list_trusted_contacts(store, owner_id):
        report.attempted.append(contact_id)
        try:
            await fanout.send_push_notification(contact_id, title, body, data)
        except Exception:
            report.failed.append(contact_id)
            logger.error("trusted_contact_notify_failed", owner_id=owner_id, contact_id=contact_id, exc_info=True)
    return report


# ---------------------------------------------------------------------------
# Edge management
# ---------------------------------------------------------------------------


async def add_trusted_user(store: Store, cache: Cache, owner_id: int, email: str) -> None:
    """
    Add a trust edge from ``owner_id`` to the user registered under ``email``.

    Raises:
        LookupError: If no user has that email.
        ValueError: If the edge already exists.
    """
    target = await store.get_user_by_email(email)
    if target is None:
        msg = "User not found"
        raise LookupError(msg)

    if await store.get_trust_edge(owner_id, target.id) is not None:
        msg = "User is already trusted"
        raise ValueError(msg)

    await store.add_trust_edge(owner_id, target.id)
    await _invalidate_profile(cache, owner_id)


async def remove_trusted_user(store: Store, cache: Cache, owner_id: int, trusted_user_id: int) -> None:
    """Remove the edge if present. Removing a missing edge is a no-op."""
    await store.remove_trust_edge(owner_id, trusted_user_id)
    await _invalidate_profile(cache, owner_id)


async def list_trusted_users(store: Store, owner_id: int) -> list[TrustedContact]:
    pairs = await store.list_trusted_users(owner_id)
    return [TrustedContact(id=user.id, email=user.email, full_name=user.full_name or "") for _, user in pairs]


async def _invalidate_profile(cache: Cache, owner_id: int) -> None:
    try:
        await cache.delete(user_data_key(owner_id))
    except Exception:
        logger.warning("profile_cache_invalidation_failed", user_id=owner_id, exc_info=True)


# ---------------------------------------------------------------------------
# Cached profile
# ---------------------------------------------------------------------------


async def get_profile(store: Store, cache: Cache, user: SessionUser, settings: Settings) -> ProfileResponse:
    """Return the caller's profile with trusted contacts, cache-aside on ``user_data:<id>``."""
    key = user_data_key(user.id)
    try:
        cached = await cache.get(key)
    except Exception:
        logger.warning("profile_cache_read_failed", user_id=user.id, exc_info=True)
        cached = None
    if cached:
        try:
            return ProfileResponse.model_validate_json(cached)
        except ValidationError:
            logger.warning("profile_cache_corrupt", user_id=user.id)

    try:
        contacts = await list_trusted_users(store, user.id)
    except Exception:
        logger.error("profile_fetch_failed", user_id=user.id, exc_info=True)
        return ProfileResponse(success=False, error="Failed to fetch user data")

    response = ProfileResponse(
        success=True,
        user=ProfileUser(
            id=user.id,
            email=user.email,
            full_name=user.full_name or "",
            trusted_users=contacts,
        ),
    )
    try:
        await cache.set(key, response.model_dump_json(by_alias=True, exclude_none=True), settings.user_data_ttl_seconds)
    except Exception:
        logger.warning("profile_cache_write_failed", user_id=user.id, exc_info=True)
    return response
