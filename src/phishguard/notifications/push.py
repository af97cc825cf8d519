"""
Expo push transport over httpx.

Only the wire contract lives here: token grammar, chunking, and turning the
Expo response into one ``PushTicket`` per message. Delivery policy (pruning
dead tokens, cache invalidation) belongs to the fanout service.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Expo rejects requests carrying more than 100 messages.
PUSH_CHUNK_LIMIT = 100

DEVICE_NOT_REGISTERED = "DeviceNotRegistered"

_UUID_TOKEN = re.compile(r"^[a-z\d]{8}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{12}$", re.IGNORECASE)


def chunk_messages(messages: list[PushMessage]) -> list[list[PushMessage]]:
    """Split messages into batches of at most ``PUSH_CHUNK_LIMIT``."""
    return [messages[i : i + PUSH_CHUNK_LIMIT] for i in range(0, len(messages), PUSH_CHUNK_LIMIT)]


class PushTransportError(RuntimeError):
    """The push service could not be reached or answered with an unusable response."""


def is_push_token(token: str) -> bool:
    """Check ``token`` against the Expo push token grammar."""
    if (token.startswith("ExponentPushToken[") or token.startswith("ExpoPushToken[")) and token.endswith("]"):
        return True
    return bool(_UUID_TOKEN.match(token))


@dataclass
class PushMessage:
    to: str
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    sound: str = "default"
    priority: str = "high"
    channel_id: str = "default"

    def to_payload(self) -> dict[str, Any]:
        return {
            "to": self.to,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "sound": self.sound,
            "priority": self.priority,
            "channelId": self.channel_id,
        }


@dataclass
class PushTicket:
    """Per-message delivery outcome returned by the push service."""

    status: str
    id: str | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def device_not_registered(self) -> bool:
        return self.status == "error" and self.details.get("error") == DEVICE_NOT_REGISTERED

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> PushTicket:
        return cls(
            status=payload.get("status", "error"),
            id=payload.get("id"),
            message=payload.get("message"),
            details=payload.get("details") or {},
        )


class ExpoPushClient:
    """Send batches of push messages to the Expo push API."""

    def __init__(self, http: httpx.AsyncClient, push_url: str, access_token: str = "") -> None:
        self.http = http
        self.push_url = push_url
        self.access_token = access_token

    def chunk(self, messages: list[PushMessage]) -> list[list[PushMessage]]:
        """Split messages into batches the push service accepts."""
        return chunk_messages(messages)

    async def send(self, batch: list[PushMessage]) -> list[PushTicket]:
        """Send one batch. Returns tickets aligned with ``batch``; raises PushTransportError."""
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            resp = await self.http.post(
                self.push_url,
                json=[m.to_payload() for m in batch],
                headers=headers,
            )
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PushTransportError(f"Push request failed: {e}") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list) or len(data) != len(batch):
            raise PushTransportError("Push response does not contain one ticket per message")

        tickets = [PushTicket.from_payload(t) for t in data]
        logger.info("Push batch sent: %d messages, %d ok", len(batch), sum(t.ok for t in tickets))
        return tickets


# ---------------------------------------------------------------------------
# Process-wide client lifecycle
# ---------------------------------------------------------------------------

_client: ExpoPushClient | None = None


async def init_push_client(push_url: str, access_token: str, timeout: float) -> None:
    """Create the shared push client."""
    global _client  # noqa: PLW0603
    _client = ExpoPushClient(httpx.AsyncClient(timeout=timeout), push_url, access_token)


async def close_push_client() -> None:
    """Close the shared push client's connection pool."""
    global _client  # noqa: PLW0603
    if _client:
        await _client.http.aclose()
        _client = None


def get_push_client() -> ExpoPushClient:
    """Get the push client (FastAPI dependency)."""
    if _client is None:
        msg = "Push client not initialized. Call init_push_client() first."
        raise RuntimeError(msg)
    return _client
