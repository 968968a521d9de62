import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from fruitflow.models.user import UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Listener:
    user_id: str
    role: UserRole


class ConnectionManager:
    """
    Tracks authenticated dashboard sockets.

    An event reaches the users it names plus every manager; nobody else
    sees another party's order.
    """

    def __init__(self) -> None:
        self.active_connections: dict[WebSocket, Listener] = {}

    async def connect(self, websocket: WebSocket, user_id: Any, role: UserRole) -> None:
        await websocket.accept()
        self.active_connections[websocket] = Listener(str(user_id), role)
        logger.info(
            "Dashboard socket opened user=%s (%d live)", user_id, len(self.active_connections)
        )

    async def disconnect(self, websocket: WebSocket) -> None:
        self.active_connections.pop(websocket, None)
        logger.info("Dashboard socket closed (%d live)", len(self.active_connections))

    async def send_to(self, user_ids: Iterable[Any], message: dict[str, Any]) -> None:
        audience = {str(u) for u in user_ids if u}
        closed = []
        for websocket, listener in list(self.active_connections.items()):
            if listener.role != UserRole.MANAGER and listener.user_id not in audience:
                continue
            try:
                await websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError):
                # Starlette raises RuntimeError when sending on a closed socket.
                closed.append(websocket)
        for websocket in closed:
            await self.disconnect(websocket)
        if closed:
            logger.debug("Dropped %d stale socket(s) during %s", len(closed), message.get("type"))


manager = ConnectionManager()


def order_parties(order: dict[str, Any]) -> tuple:
    return order.get("customer_id"), order.get("supplier_id"), order.get("transporter_id")


async def broadcast_order_update(order: dict[str, Any]) -> None:
    await manager.send_to(order_parties(order), {"type": "order_updated", "order": order})


async def broadcast_order_deleted(order_id: str, parties: Iterable[Any]) -> None:
    await manager.send_to(parties, {"type": "order_deleted", "orderId": order_id})


async def broadcast_user_suspended(user: dict[str, Any]) -> None:
    """Sent to the suspended account and to managers."""
    await manager.send_to([user.get("id")], {"type": "user_suspended", "user": user})
