"""Websocket endpoint delivering realtime notifications."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from sqlmodel import Session

from palletpark.errors import NotFoundError

from .. import database, lookups, models
from ..auth import user_id_from_token
from ..notifications import ConnectionRegistry

router = APIRouter(prefix="/events", tags=["events"])

logger = logging.getLogger(__name__)


def _resolve_socket_user(token: str | None) -> models.User | None:
    if not token:
        return None
    user_id = user_id_from_token(token)
    if user_id is None:
        return None
    with Session(database.engine) as session:
        try:
            return lookups.resolve_user_by_id(session, user_id)
        except NotFoundError:
            logger.info("Rejected websocket for unknown user %s", user_id)
            return None


@router.websocket("/ws")
async def events_socket(websocket: WebSocket, token: str | None = None) -> None:
    user = await asyncio.to_thread(_resolve_socket_user, token)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    registry: ConnectionRegistry = websocket.app.state.connections
    await websocket.accept()
    registry.register(user.id, websocket)
    await websocket.send_json({"type": "connected", "data": {"user_id": user.id}})
    try:
        while True:
            # Clients only listen; incoming frames are ignored.
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Websocket of user %s closed", user.id)
    finally:
        registry.unregister(user.id, websocket)
