"""WebSocket change feed: clients subscribe to one collection and re-read
their snapshot through the REST API whenever an invalidation arrives.

    ws://host/ws/changes?token=<jwt>&collection=listings
    ws://host/ws/changes?token=<jwt>&collection=messages&scope=<listing_id>

Account events are always scoped to the caller's own account.
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from src.rp_common.change_feed import ChangeFeed, Subscription, get_change_feed
from src.rp_common.errors import InvalidCredentialsError
from src.rp_gateway.auth.jwt_handler import decode_token

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

COLLECTIONS = {"listings", "messages", "offers", "b2b_listings", "accounts"}


def resolve_scope(collection: str, scope: str | None, account_id: str) -> str | None:
    if collection == "accounts":
        return account_id
    return scope or None


async def _pump(websocket: WebSocket, sub: Subscription) -> None:
    while True:
        event = await sub.queue.get()
        await websocket.send_json(event.to_dict())


async def _drain(websocket: WebSocket) -> None:
    # Clients send nothing meaningful; reading is how a disconnect surfaces.
    while True:
        await websocket.receive_text()


async def stream_changes(websocket: WebSocket, feed: ChangeFeed, sub: Subscription) -> None:
    tasks = [
        asyncio.create_task(_pump(websocket, sub)),
        asyncio.create_task(_drain(websocket)),
    ]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Change stream for %s ended: %s", sub.collection, exc)
    finally:
        feed.unsubscribe(sub)


@router.websocket("/ws/changes")
async def changes(
    websocket: WebSocket,
    collection: str,
    token: str,
    scope: str | None = None,
) -> None:
    try:
        account_id = decode_token(token)["sub"]
    except InvalidCredentialsError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if collection not in COLLECTIONS:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    feed = get_change_feed()
    sub = feed.subscribe(collection, resolve_scope(collection, scope, account_id))
    logger.info("Change feed subscriber %s on %s/%s", account_id, sub.collection, sub.scope)
    await stream_changes(websocket, feed, sub)
