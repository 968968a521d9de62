import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from fruitflow.api.deps import user_from_token
from fruitflow.database import SessionLocal
from fruitflow.services.websocket_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str | None = None):
    """
    Live order and account events for dashboards, authenticated with the
    login JWT in the ``token`` query parameter.

    The server only pushes events; incoming messages are ignored.
    """
    db = SessionLocal()
    try:
        user = user_from_token(db, token or "")
        user_id, role = user.id, user.role
    except HTTPException as exc:
        logger.info("Rejected dashboard socket: %s", exc.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    finally:
        db.close()

    await manager.connect(websocket, user_id, role)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket)
