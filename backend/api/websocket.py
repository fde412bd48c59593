from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from typing import Iterable, Optional
import asyncio
import logging

from utils.broadcast import Broadcaster, MENU_UPDATED, NEW_ORDER, Subscription

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionManager:
    """Bridges one websocket to a broadcaster subscription."""

    def __init__(self, broadcaster: Broadcaster):
        self.broadcaster = broadcaster

    async def serve(self, websocket: WebSocket, topics: Optional[Iterable[str]] = None):
        # Subscribe before accepting so nothing published after the handshake is missed
        subscription = self.broadcaster.subscribe(topics)
        sender = None
        try:
            await websocket.accept()
            sender = asyncio.create_task(self._forward(websocket, subscription))
            while True:
                # Clients never send anything meaningful (text or binary); this
                # just notices disconnects
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            self.broadcaster.unsubscribe(subscription)
            if sender is not None:
                sender.cancel()
                await asyncio.gather(sender, return_exceptions=True)

    async def _forward(self, websocket: WebSocket, subscription: Subscription):
        while True:
            message = await subscription.next_message()
            try:
                await websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                # Socket went away mid-send; the receive loop cleans up
                logger.info("Stopped pushing to observer: %s", exc)
                return


def _manager(websocket: WebSocket) -> ConnectionManager:
    return ConnectionManager(websocket.app.state.broadcaster)


@router.websocket("/ws")
async def websocket_all(websocket: WebSocket):
    await _manager(websocket).serve(websocket)


@router.websocket("/ws/orders")
async def websocket_orders(websocket: WebSocket):
    """Kitchen/admin screens: new orders only"""
    await _manager(websocket).serve(websocket, [NEW_ORDER])


@router.websocket("/ws/menu")
async def websocket_menu(websocket: WebSocket):
    """Kiosk screens: menu changes only"""
    await _manager(websocket).serve(websocket, [MENU_UPDATED])
