"""Push notification fanout to a user's registered devices.

Delivery steps for one user:
1. Load the user's device tokens from the store
2. Drop tokens that do not match the Expo token grammar
3. Send in transport-sized batches
4. Prune tokens the transport reports as ``DeviceNotRegistered``
5. Invalidate the cached notification list

Per-token failures are logged and swallowed. A batch that cannot be sent at
all is logged and re-raised.
"""

from __future__ import annotations

from typing import Any

import structlog

from phishguard.cache import Cache, notifications_key
from phishguard.notifications.push import ExpoPushClient, PushMessage, is_push_token
from phishguard.store import Store

logger = structlog.get_logger()


class NotificationFanout:
    """Deliver push notifications to every valid device of a user."""

    def __init__(self, store: Store, cache: Cache, transport: ExpoPushClient) -> None:
        self.store = store
        self.cache = cache
        self.transport = transport

    async def send_push_notification(
        self,
        user_id: int,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        tokens = await self.store.list_device_tokens(user_id)
        if not tokens:
            logger.warning("push_no_devices", user_id=user_id)
            return

        messages = [
            PushMessage(to=token, title=title, body=body, data=data or {})
            for token in tokens
            if is_push_token(token)
        ]
        if not messages:
            logger.warning("push_no_valid_tokens", user_id=user_id, device_count=len(tokens))
            return

        for batch in self.transport.chunk(messages):
            try:
                tickets = await self.transport.send(batch)
            except Exception:
                logger.error("push_batch_failed", user_id=user_id, batch_size=len(batch), exc_info=True)
                raise

            for message, ticket in zip(batch, tickets):
                if ticket.ok:
                    continue
                logger.error(
                    "push_ticket_error",
                    user_id=user_id,
                    message=ticket.message,
                    error=ticket.details.get("error"),
                )
                if ticket.device_not_registered:
                    await self._prune_token(user_id, message.to)

        try:
            await self.cache.delete(notifications_key(user_id))
        except Exception:
            logger.warning("notifications_cache_invalidation_failed", user_id=user_id, exc_info=True)

    async def _prune_token(self, user_id: int, token: str) -> None:
        try:
            await self.store.delete_device_token(token)
            logger.info("push_token_pruned", user_id=user_id)
        except Exception:
            logger.error("push_token_prune_failed", user_id=user_id, exc_info=True)


async def register_device(store: Store, user_id: int, token: str) -> bool:
    """Register ``token`` for ``user_id``. Returns False if the token was already known."""
    if await store.get_device_token(token) is not None:
        return False
    await store.add_device_token(user_id, token)
    return True
