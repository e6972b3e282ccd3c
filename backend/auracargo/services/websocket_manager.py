import asyncio
import logging
from typing import Any
from uuid import UUID

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from auracargo.config import settings
from auracargo.core.errors import NotFoundError, UnauthorizedError, ValidationError
from auracargo.models.shipment import Shipment
from auracargo.models.support import SupportConversation
from auracargo.services.change_feed import (
    WATCHED_TABLES,
    ChangeFeed,
    RowChange,
    SubscriptionHandle,
    feed,
)

logger = logging.getLogger(__name__)

# Tables whose rows carry the owner's user_id directly
_OWNED_TABLES = {"shipments", "notifications", "support_conversations"}
# Tables scoped through a parent row: table -> (filter column, parent model)
_PARENT_SCOPED = {
    "tracking_events": ("shipment_id", Shipment),
    "support_messages": ("conversation_id", SupportConversation),
}
_ADMIN_ONLY = {"payments"}


def scope_filters(
    db: Session,
    table: str,
    filters: dict[str, Any] | None,
    profile_id: UUID,
    is_admin: bool,
) -> dict[str, Any]:
    """Restrict what a non-admin viewer may watch to their own rows."""
    if table not in WATCHED_TABLES:
        raise ValidationError(f"Unknown table '{table}'")
    if filters is not None and not isinstance(filters, dict):
        raise ValidationError("filter must be an object")
    filters = dict(filters or {})
    if is_admin:
        return filters
    if table in _ADMIN_ONLY:
        raise UnauthorizedError(f"Only staff may watch {table}")
    if table in _OWNED_TABLES:
        filters["user_id"] = str(profile_id)
        return filters
    column, model = _PARENT_SCOPED[table]
    parent_id = filters.get(column)
    if not parent_id:
        raise ValidationError(f"Subscribing to {table} requires a {column} filter")
    try:
        parent = db.get(model, UUID(str(parent_id)))
    except ValueError:
        parent = None
    if parent is None or parent.user_id != profile_id:
        raise NotFoundError(f"{column} not found")
    return filters


class RealtimeConnection:
    """
    One websocket viewer and its change-feed subscriptions.

    Feed callbacks run on whichever thread committed the write; they only
    hand the change over to the event loop. The sender task coalesces
    changes that arrive within the debounce window into a single push so a
    burst of writes causes one client re-fetch.
    """

    def __init__(
        self,
        websocket: WebSocket,
        profile_id: UUID,
        is_admin: bool,
        change_feed: ChangeFeed | None = None,
        debounce_ms: int | None = None,
    ) -> None:
        self.websocket = websocket
        self.profile_id = profile_id
        self.is_admin = is_admin
        self._feed = change_feed or feed
        self._debounce = (
            settings.realtime_debounce_ms if debounce_ms is None else debounce_ms
        ) / 1000
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.handles: dict[str, SubscriptionHandle] = {}

    def _on_change(self, handle_id: str, change: RowChange) -> None:
        payload = {
            "subscription": handle_id,
            "table": change.table,
            "operation": change.operation.value,
            "before": change.before,
            "after": change.after,
        }
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, payload)
        except RuntimeError:
            logger.debug("Dropping change for closed connection (%s)", handle_id)

    def subscribe(self, table: str, filters: dict[str, Any]) -> SubscriptionHandle:
        holder: dict[str, str] = {}
        handle = self._feed.subscribe(
            table, filters, lambda change: self._on_change(holder["id"], change)
        )
        holder["id"] = handle.id
        self.handles[handle.id] = handle
        return handle

    def unsubscribe(self, handle_id: str) -> bool:
        handle = self.handles.pop(handle_id, None)
        if handle is None:
            return False
        return self._feed.unsubscribe(handle)

    def close(self) -> None:
        for handle_id in list(self.handles):
            self.unsubscribe(handle_id)

    async def run_sender(self) -> None:
        while True:
            first = await self._queue.get()
            batch = [first]
            if self._debounce > 0:
                await asyncio.sleep(self._debounce)
            while not self._queue.empty():
                batch.append(self._queue.get_nowait())
            await self.websocket.send_json(
                jsonable_encoder({"type": "changes", "events": batch})
            )


class ConnectionManager:
    """Tracks live realtime connections so they can be torn down together."""

    def __init__(self) -> None:
        self.active_connections: list[RealtimeConnection] = []

    async def connect(self, connection: RealtimeConnection) -> None:
        await connection.websocket.accept()
        self.active_connections.append(connection)
        logger.info(
            "WebSocket connected. Active connections=%d", len(self.active_connections)
        )

    async def disconnect(self, connection: RealtimeConnection) -> None:
        connection.close()
        try:
            self.active_connections.remove(connection)
        except ValueError:
            # Already removed or unknown connection
            pass
        logger.info(
            "WebSocket disconnected. Active connections=%d",
            len(self.active_connections),
        )


manager = ConnectionManager()
