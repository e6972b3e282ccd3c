import asyncio
import json
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from auracargo.api.deps import AuthContext, auth_context_from_token
from auracargo.core.errors import AuthenticationError, PortalError, UnauthorizedError
from auracargo.database import SessionLocal
from auracargo.services.websocket_manager import RealtimeConnection, manager, scope_filters

logger = logging.getLogger(__name__)

router = APIRouter()


class AccessRevoked(Exception):
    """The viewer's account was suspended or removed while connected."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _subscribe(connection: RealtimeConnection, message: dict) -> dict:
    table = message.get("table")
    db = SessionLocal()
    try:
        # Role or suspension may have changed since the socket opened
        try:
            ctx = AuthContext(profile_id=connection.profile_id).refresh(db)
        except (AuthenticationError, UnauthorizedError) as e:
            raise AccessRevoked(e.message) from e
        connection.is_admin = ctx.is_admin
        filters = scope_filters(
            db, table, message.get("filter"), ctx.profile_id, ctx.is_admin
        )
    finally:
        db.close()
    handle = connection.subscribe(table, filters)
    return {"type": "subscribed", "subscription": handle.id, "table": table}


def handle_message(connection: RealtimeConnection, message: dict) -> dict:
    action = message.get("action")
    if action == "subscribe":
        return _subscribe(connection, message)
    if action == "unsubscribe":
        subscription = message.get("subscription")
        removed = connection.unsubscribe(str(subscription)) if subscription else False
        return {"type": "unsubscribed", "subscription": subscription, "removed": removed}
    if action == "ping":
        return {"type": "pong"}
    return {"type": "error", "detail": f"Unknown action '{action}'"}


async def _stop_sender(sender: asyncio.Task) -> None:
    sender.cancel()
    try:
        await sender
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.warning("Realtime sender stopped with an error", exc_info=True)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str = Query("")):
    """
    Realtime change feed for dashboards and the support widget.

    Clients send subscribe/unsubscribe actions; matching row changes are
    pushed back as debounced ``changes`` batches.
    """
    db = SessionLocal()
    try:
        ctx = auth_context_from_token(db, token)
    except PortalError as e:
        logger.info("Rejected websocket connection: %s", e.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    finally:
        db.close()

    connection = RealtimeConnection(websocket, ctx.profile_id, ctx.is_admin)
    await manager.connect(connection)
    sender = asyncio.create_task(connection.run_sender())
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                message = None
            if not isinstance(message, dict):
                await websocket.send_json({"type": "error", "detail": "Expected a JSON object"})
                continue
            try:
                reply = handle_message(connection, message)
            except AccessRevoked as e:
                logger.info("Closing websocket for %s: %s", connection.profile_id, e.message)
                await websocket.send_json({"type": "error", "detail": e.message})
                await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                break
            except PortalError as e:
                reply = {"type": "error", "detail": e.message}
            await websocket.send_json(reply)
    except WebSocketDisconnect:
        logger.debug("WebSocket client %s went away", connection.profile_id)
    finally:
        await _stop_sender(sender)
        await manager.disconnect(connection)
