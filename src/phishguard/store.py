"""Durable store access.

Services talk to the ``Store`` interface: point lookups, equality-filtered
scans, inserts and deletes. ``SqlAlchemyStore`` implements it over a
request-scoped ``AsyncSession`` and commits after every write, so each
operation is durable on its own. Connectivity failures propagate as
exceptions; "not found" is ``None`` or an empty list.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from phishguard.database import get_session
from phishguard.db.models import (
    BlockedPhishingEvent,
    DeviceToken,
    Domain,
    LoginSession,
    TrustedUser,
    User,
)


class Store(ABC):
    """Operations the core needs from the system of record."""

    # --- Users ---

    @abstractmethod
    async def get_user_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    async def create_user(self, email: str, password_hash: str, full_name: str | None) -> User:
        """Insert a user. Raises ValueError if the email is already registered."""
        ...

    # --- Sessions ---

    @abstractmethod
    async def insert_session(self, user_id: int, token: str) -> None: ...

    @abstractmethod
    async def get_session_user(self, token: str) -> User | None:
        """Return the user owning ``token``, or None if no such session exists."""
        ...

    # --- Domain verdicts ---

    @abstractmethod
    async def get_domain(self, domain: str) -> Domain | None: ...

    @abstractmethod
    async def replace_domain(
        self, domain: str, is_phishing: bool, explanation: str, confidence: float
    ) -> Domain:
        """Delete any existing verdict for ``domain`` and insert a fresh one."""
        ...

    # --- Block events ---

    @abstractmethod
    async def insert_block_event(self, user_id: int, url: str, domain: str) -> BlockedPhishingEvent: ...

    @abstractmethod
    async def list_block_events(self, user_id: int) -> list[BlockedPhishingEvent]:
        """Block events for ``user_id``, oldest first."""
        ...

    # --- Trust graph ---

    @abstractmethod
    async def list_trusted_user_ids(self, user_id: int) -> list[int]: ...

    @abstractmethod
    async def list_trusted_users(self, user_id: int) -> list[tuple[TrustedUser, User]]: ...

    @abstractmethod
    async def get_trust_edge(self, user_id: int, trusted_user_id: int) -> TrustedUser | None: ...

    @abstractmethod
    async def add_trust_edge(self, user_id: int, trusted_user_id: int) -> TrustedUser: ...

    @abstractmethod
    async def remove_trust_edge(self, user_id: int, trusted_user_id: int) -> bool: ...

    # --- Device tokens ---

    @abstractmethod
    async def list_device_tokens(self, user_id: int) -> list[str]: ...

    @abstractmethod
    async def get_device_token(self, token: str) -> DeviceToken | None: ...

    @abstractmethod
    async def add_device_token(self, user_id: int, token: str) -> DeviceToken: ...

    @abstractmethod
    async def delete_device_token(self, token: str) -> None: ...


class SqlAlchemyStore(Store):
    """``Store`` over PostgreSQL through async SQLAlchemy.

    The session is shared by every store call within a request, so a failed
    write is rolled back before the error propagates; later calls in the same
    request (the next contact in a fanout, say) still get a usable session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @asynccontextmanager
    async def _write(self) -> AsyncIterator[None]:
        """Commit the statements issued in the block, or roll them back and re-raise."""
        try:
            yield
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def create_user(self, email: str, password_hash: str, full_name: str | None) -> User:
        user = User(email=email, password_hash=password_hash, full_name=full_name)
        try:
            async with self._write():
                self.db.add(user)
        except IntegrityError as e:
            # A concurrent signup won the unique index on email.
            msg = "Email already registered"
            raise ValueError(msg) from e
        return user

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def insert_session(self, user_id: int, token: str) -> None:
        async with self._write():
            self.db.add(LoginSession(user_id=user_id, token=token))

    async def get_session_user(self, token: str) -> User | None:
        result = await self.db.execute(
            select(LoginSession).options(selectinload(LoginSession.user)).where(LoginSession.token == token)
        )
        session = result.scalar_one_or_none()
        return session.user if session is not None else None

    # ------------------------------------------------------------------
    # Domain verdicts
    # ------------------------------------------------------------------

    async def get_domain(self, domain: str) -> Domain | None:
        result = await self.db.execute(select(Domain).where(Domain.domain == domain))
        return result.scalar_one_or_none()

    async def replace_domain(
        self, domain: str, is_phishing: bool, explanation: str, confidence: float
    ) -> Domain:
        row = Domain(domain=domain, is_phishing=is_phishing, explanation=explanation, confidence=confidence)
        async with self._write():
            await self.db.execute(delete(Domain).where(Domain.domain == domain))
            self.db.add(row)
        return row

    # ------------------------------------------------------------------
    # Block events
    # ------------------------------------------------------------------

    async def insert_block_event(self, user_id: int, url: str, domain: str) -> BlockedPhishingEvent:
        event = BlockedPhishingEvent(
            user_id=user_id,
            url=url,
            domain=domain,
            timestamp=datetime.now(timezone.utc),
        )
        async with self._write():
            self.db.add(event)
        return event

    async def list_block_events(self, user_id: int) -> list[BlockedPhishingEvent]:
        result = await self.db.execute(
            select(BlockedPhishingEvent)
            .where(BlockedPhishingEvent.user_id == user_id)
            .order_by(BlockedPhishingEvent.timestamp.asc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Trust graph
    # ------------------------------------------------------------------

    async def list_trusted_user_ids(self, user_id: int) -> list[int]:
        result = await self.db.execute(
            select(TrustedUser.trusted_user_id).where(TrustedUser.user_id == user_id)
        )
        return [row[0] for row in result]

    async def list_trusted_users(self, user_id: int) -> list[tuple[TrustedUser, User]]:
        result = await self.db.execute(
            select(TrustedUser, User)
            .join(User, User.id == TrustedUser.trusted_user_id)
            .where(TrustedUser.user_id == user_id)
            .order_by(TrustedUser.id)
        )
        return [(edge, user) for edge, user in result.all()]

    async def get_trust_edge(self, user_id: int, trusted_user_id: int) -> TrustedUser | None:
        result = await self.db.execute(
            select(TrustedUser).where(
                TrustedUser.user_id == user_id,
                TrustedUser.trusted_user_id == trusted_user_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_trust_edge(self, user_id: int, trusted_user_id: int) -> TrustedUser:
        edge = TrustedUser(
            user_id=user_id,
            trusted_user_id=trusted_user_id,
            created_at=datetime.now(timezone.utc),
        )
        async with self._write():
            self.db.add(edge)
        return edge

    async def remove_trust_edge(self, user_id: int, trusted_user_id: int) -> bool:
        async with self._write():
            result = await self.db.execute(
                delete(TrustedUser).where(
                    TrustedUser.user_id == user_id,
                    TrustedUser.trusted_user_id == trusted_user_id,
                )
            )
        return result.rowcount > 0  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Device tokens
    # ------------------------------------------------------------------

    async def list_device_tokens(self, user_id: int) -> list[str]:
        result = await self.db.execute(select(DeviceToken.token).where(DeviceToken.user_id == user_id))
        return [row[0] for row in result]

    async def get_device_token(self, token: str) -> DeviceToken | None:
        result = await self.db.execute(select(DeviceToken).where(DeviceToken.token == token))
        return result.scalar_one_or_none()

    async def add_device_token(self, user_id: int, token: str) -> DeviceToken:
        device = DeviceToken(user_id=user_id, token=token, created_at=datetime.now(timezone.utc))
        async with self._write():
            self.db.add(device)
        return device

    async def delete_device_token(self, token: str) -> None:
        async with self._write():
            await self.db.execute(delete(DeviceToken).where(DeviceToken.token == token))


async def get_store(db: AsyncSession = Depends(get_session)) -> AsyncGenerator[Store, None]:  # noqa: B008
    """Yield a request-scoped store (FastAPI dependency)."""
    yield SqlAlchemyStore(db)
