"""
Position stream - pushes layout frames to connected views.

Message types:
- `session_state`: full state, sent once to a view when it connects
- `positions`: node positions and muted links, one per simulation tick
- `settled`: the layout has cooled down
- `session_updated`: something other than positions changed; views
  refetch GET /api/network
"""
import asyncio
import json
import logging
from typing import Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)

# Positions are rounded before sending; sub-pixel motion is not redrawn
POSITION_PRECISION = 2


class WebSocketManager:
    """
    Tracks connected views and fans layout frames out to them.

    Identical consecutive position frames are skipped, so a paused or
    fully pinned layout does not flood the views.
    """

    def __init__(self):
        self._connections: set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._last_frame: Optional[str] = None

    async def connect(self, websocket: WebSocket, snapshot: Optional[dict] = None):
        """Accept a view and send it the current session state."""
        await websocket.accept()
        if snapshot is not None:
            await websocket.send_text(json.dumps({"type": "session_state", "state": snapshot}))
        async with self._lock:
            self._connections.add(websocket)
        logger.info("View connected (%d connected)", len(self._connections))

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self._connections.discard(websocket)
        logger.info("View disconnected (%d connected)", len(self._connections))

    async def _send_all(self, text: str):
        async with self._lock:
            targets = list(self._connections)
        if not targets:
            return

        results = await asyncio.gather(
            *(ws.send_text(text) for ws in targets),
            return_exceptions=True
        )
        dropped = {ws for ws, result in zip(targets, results) if isinstance(result, Exception)}
        if dropped:
            logger.debug("Dropping %d view(s) after failed send", len(dropped))
            async with self._lock:
                self._connections -= dropped

    async def broadcast(self, message: dict):
        """Send one message to every connected view."""
        await self._send_all(json.dumps(message))

    async def notify_positions(self, positions: list[dict], muted: list[str], state: str):
        """Push a position frame unless it matches the previous one."""
        nodes = [
            {
                "id": p["id"],
                "x": round(p["x"], POSITION_PRECISION),
                "y": round(p["y"], POSITION_PRECISION),
            }
            for p in positions
        ]
        frame = json.dumps({"type": "positions", "state": state, "nodes": nodes, "muted": muted})
        if frame == self._last_frame:
            return
        self._last_frame = frame
        await self._send_all(frame)

    async def notify_settled(self, ticks: int):
        await self.broadcast({"type": "settled", "ticks": ticks})

    async def notify_session_updated(self):
        self._last_frame = None
        await self.broadcast({"type": "session_updated"})

    @property
    def connection_count(self) -> int:
        return len(self._connections)


# Global instance
ws_manager = WebSocketManager()
