"""Shared test fixtures.

The core services only see the ``Cache`` and ``Store`` interfaces plus the
scanner and push clients, so the suite runs against in-memory doubles of
those collaborators; no PostgreSQL or Redis is needed.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from phishguard.auth.password import hash_password
from phishguard.auth.sessions import SessionManager
from phishguard.cache import Cache
from phishguard.config import Settings, get_settings
from phishguard.db.models import BlockedPhishingEvent, DeviceToken, Domain, TrustedUser, User
from phishguard.notifications.push import PushMessage, PushTicket, PushTransportError, chunk_messages
from phishguard.notifications.service import NotificationFanout
from phishguard.phishing.service import PhishingService
from phishguard.store import Store
from tests.helpers import SUBMIT_TOKEN


# ---------------------------------------------------------------------------
# Collaborator doubles
# ---------------------------------------------------------------------------


class MemoryCache(Cache):
    """Dict-backed cache with a manual clock for TTL assertions."""

    def __init__(self) -> None:
        self.now = 0.0
        self.entries: dict[str, tuple[str, float]] = {}
        self.ttls: dict[str, int] = {}
        self.failing = False
        self.failing_writes = False

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _check(self, write: bool = False) -> None:
        if self.failing or (write and self.failing_writes):
            raise ConnectionError("cache unavailable")

    async def get(self, key: str) -> str | None:
        self._check()
        entry = self.entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.now >= expires_at:
            del self.entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._check(write=True)
        self.entries[key] = (value, self.now + ttl_seconds)
        self.ttls[key] = ttl_seconds

    async def delete(self, key: str) -> None:
        self._check(write=True)
        self.entries.pop(key, None)

    def peek(self, key: str) -> str | None:
        """Read without expiry bookkeeping or failure injection."""
        entry = self.entries.get(key)
        return entry[0] if entry else None


class MemoryStore(Store):
    """List-backed store holding transient ORM instances."""

    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        self.sessions: dict[str, int] = {}
        self.domains: dict[str, Domain] = {}
        self.block_events: list[BlockedPhishingEvent] = []
        self.edges: list[TrustedUser] = []
        self.devices: list[DeviceToken] = []
        self.failing: set[str] = set()
        self._ids = 0
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _next_id(self) -> int:
        self._ids += 1
        return self._ids

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _check(self, op: str) -> None:
        if op in self.failing or "*" in self.failing:
            raise ConnectionError(f"store unavailable: {op}")

    # --- Users ---

    async def get_user_by_email(self, email: str) -> User | None:
        self._check("get_user_by_email")
        return next((u for u in self.users.values() if u.email.lower() == email.lower()), None)

    async def create_user(self, email: str, password_hash: str, full_name: str | None) -> User:
        self._check("create_user")
        if any(u.email.lower() == email.lower() for u in self.users.values()):
            msg = "Email already registered"
            raise ValueError(msg)
        user = User(id=self._next_id(), email=email, password_hash=password_hash, full_name=full_name)
        self.users[user.id] = user
        return user

    # --- Sessions ---

    async def insert_session(self, user_id: int, token: str) -> None:
        self._check("insert_session")
        self.sessions[token] = user_id

    async def get_session_user(self, token: str) -> User | None:
        self._check("get_session_user")
        user_id = self.sessions.get(token)
        return self.users.get(user_id) if user_id is not None else None

    # --- Domains ---

    async def get_domain(self, domain: str) -> Domain | None:
        self._check("get_domain")
        return self.domains.get(domain)

    async def replace_domain(self, domain: str, is_phishing: bool, explanation: str, confidence: float) -> Domain:
        self._check("replace_domain")
        self.domains.pop(domain, None)
        row = Domain(
            id=self._next_id(),
            domain=domain,
            is_phishing=is_phishing,
            explanation=explanation,
            confidence=confidence,
        )
        self.domains[domain] = row
        return row

    # --- Block events ---

    async def insert_block_event(self, user_id: int, url: str, domain: str) -> BlockedPhishingEvent:
        self._check("insert_block_event")
        event = BlockedPhishingEvent(id=self._next_id(), user_id=user_id, url=url, domain=domain, timestamp=self._tick())
        self.block_events.append(event)
        return event

    async def list_block_events(self, user_id: int) -> list[BlockedPhishingEvent]:
        self._check("list_block_events")
        return sorted((e for e in self.block_events if e.user_id == user_id), key=lambda e: e.timestamp)

    # --- Trust graph ---

    async def list_trusted_user_ids(self, user_id: int) -> list[int]:
        self._check("list_trusted_user_ids")
        return [e.trusted_user_id for e in self.edges if e.user_id == user_id]

    async def list_trusted_users(self, user_id: int) -> list[tuple[TrustedUser, User]]:
        self._check("list_trusted_users")
        return [(e, self.users[e.trusted_user_id]) for e in self.edges if e.user_id == user_id]

    async def get_trust_edge(self, user_id: int, trusted_user_id: int) -> TrustedUser | None:
        self._check("get_trust_edge")
        return next(
            (e for e in self.edges if e.user_id == user_id and e.trusted_user_id == trusted_user_id),
            None,
        )

    async def add_trust_edge(self, user_id: int, trusted_user_id: int) -> TrustedUser:
        self._check("add_trust_edge")
        edge = TrustedUser(id=self._next_id(), user_id=user_id, trusted_user_id=trusted_user_id, created_at=self._tick())
        self.edges.append(edge)
        return edge

    async def remove_trust_edge(self, user_id: int, trusted_user_id: int) -> bool:
        self._check("remove_trust_edge")
        before = len(self.edges)
        self.edges = [e for e in self.edges if not (e.user_id == user_id and e.trusted_user_id == trusted_user_id)]
        return len(self.edges) < before

    # --- Devices ---

    async def list_device_tokens(self, user_id: int) -> list[str]:
        self._check("list_device_tokens")
        return [d.token for d in self.devices if d.user_id == user_id]

    async def get_device_token(self, token: str) -> DeviceToken | None:
        self._check("get_device_token")
        return next((d for d in self.devices if d.token == token), None)

    async def add_device_token(self, user_id: int, token: str) -> DeviceToken:
        self._check("add_device_token")
        device = DeviceToken(id=self._next_id(), user_id=user_id, token=token, created_at=self._tick())
        self.devices.append(device)
        return device

    async def delete_device_token(self, token: str) -> None:
        self._check("delete_device_token")
        self.devices = [d for d in self.devices if d.token != token]

    # --- Seeding helpers ---

    def add_user(self, email: str, full_name: str = "Test User", password: str = "Password123") -> User:
        user = User(id=self._next_id(), email=email, password_hash=hash_password(password), full_name=full_name)
        self.users[user.id] = user
        return user


class FakePushTransport:
    """Records batches; per-token outcomes and batch failures are configurable."""

    def __init__(self) -> None:
        self.batches: list[list[PushMessage]] = []
        self.outcomes: dict[str, dict] = {}
        self.failing_tokens: set[str] = set()

    def chunk(self, messages: list[PushMessage]) -> list[list[PushMessage]]:
        return chunk_messages(messages)

    async def send(self, batch: list[PushMessage]) -> list[PushTicket]:
        if any(m.to in self.failing_tokens for m in batch):
            raise PushTransportError("push service unreachable")
        self.batches.append(batch)
        return [PushTicket.from_payload(self.outcomes.get(m.to, {"status": "ok", "id": "ticket"})) for m in batch]

    @property
    def sent_to(self) -> list[str]:
        return [m.to for batch in self.batches for m in batch]


class FakeScanner:
    def __init__(self) -> None:
        self.submitted: list[str] = []
        self.failing = False

    async def submit(self, url: str) -> None:
        if self.failing:
            raise ConnectionError("scanner unreachable")
        self.submitted.append(url)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(submit_token=SUBMIT_TOKEN)


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def transport() -> FakePushTransport:
    return FakePushTransport()


@pytest.fixture
def scanner() -> FakeScanner:
    return FakeScanner()


@pytest.fixture
def sessions(cache: MemoryCache, store: MemoryStore, settings: Settings) -> SessionManager:
    return SessionManager(cache, store, settings)


@pytest.fixture
def fanout(store: MemoryStore, cache: MemoryCache, transport: FakePushTransport) -> NotificationFanout:
    return NotificationFanout(store, cache, transport)  # type: ignore[arg-type]


@pytest.fixture
def phishing(
    store: MemoryStore,
    cache: MemoryCache,
    scanner: FakeScanner,
    fanout: NotificationFanout,
    settings: Settings,
) -> PhishingService:
    return PhishingService(store, cache, scanner, fanout, settings)  # type: ignore[arg-type]


@pytest_asyncio.fixture
async def client(
    monkeypatch: pytest.MonkeyPatch,
    cache: MemoryCache,
    store: MemoryStore,
    scanner: FakeScanner,
    transport: FakePushTransport,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with every collaborator swapped for a double."""
    from phishguard.cache import get_cache
    from phishguard.main import create_app
    from phishguard.notifications.push import get_push_client
    from phishguard.phishing.scanner import get_scanner
    from phishguard.store import get_store

    monkeypatch.setenv("PHISHGUARD_SUBMIT_TOKEN", SUBMIT_TOKEN)
    monkeypatch.setenv("PHISHGUARD_LOG_FORMAT", "console")
    get_settings.cache_clear()

    app = create_app()
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_scanner] = lambda: scanner
    app.dependency_overrides[get_push_client] = lambda: transport

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    get_settings.cache_clear()


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, store: MemoryStore, sessions: SessionManager) -> AsyncClient:
    """Client carrying a valid bearer session for user ``owner@example.com``."""
    user = store.add_user("owner@example.com", "Owner")
    token = await sessions.issue_session(user)
    client.headers["Authorization"] = f"Bearer {token}"
    return client
