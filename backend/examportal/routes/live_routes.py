"""
Live collection snapshots for staff dashboards.

WebSocket /api/live/{collection}?token=...

The full collection is sent on connect and again after every change.
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..context import PortalContext
from ..services import ActorStatus
from .deps import SESSION_COOKIE

logger = logging.getLogger(__name__)

LIVE_COLLECTIONS = {
    ActorStatus.ADMIN: {"users", "branches"},
    ActorStatus.TEACHER: {"students", "subjects", "exams", "branches"},
}

# Application close code for a refused subscription
POLICY_DENIED = 4403


def create_live_routes(portal: PortalContext) -> APIRouter:
    router = APIRouter(prefix="/api/live", tags=["live"])

    @router.websocket("/{collection}")
    async def live_collection(websocket: WebSocket, collection: str):
        token = websocket.query_params.get("token") or websocket.cookies.get(SESSION_COOKIE)
        actor = await portal.resolver.resolve(token)
        if collection not in LIVE_COLLECTIONS.get(actor.status, set()):
            logger.info(f"Live subscription to '{collection}' refused ({actor.status.value})")
            await websocket.close(code=POLICY_DENIED)
            return

        await websocket.accept()

        async def pump():
            async for snapshot in portal.store.subscribe(collection):
                await websocket.send_json({"collection": collection, "data": snapshot or {}})

        pump_task = asyncio.create_task(pump())
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug(f"Live subscriber left '{collection}'")
        finally:
            pump_task.cancel()

    return router
