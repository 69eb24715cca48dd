import asyncio
import base64
import json
import logging
from typing import Any, Dict, Optional, Set

import numpy as np
import websockets

from Scene import RenderFrame

logger = logging.getLogger(__name__)


def encode_buffer(buffer: np.ndarray) -> str:
    """Packs a float buffer as base64 little-endian float32 bytes."""
    return base64.b64encode(np.ascontiguousarray(buffer, dtype='<f4').tobytes()).decode('ascii')


def _log_send_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        # Closed sockets are cleaned up by register_client's finally block
        logger.debug("Send failed: %s", error)


class Server:
    """
    Streams render buffers to connected renderers over WebSocket.

    Positions go out every tick. Colors go out when they changed, and sizes and
    alphas (fixed for the session) only in a client's first frame, which is
    always a full frame.
    """

    def __init__(self) -> None:
        self.clients: Set[websockets.ServerConnection] = set()
        # Clients that still need a full frame
        self._fresh: Set[websockets.ServerConnection] = set()
        self.last_status: Optional[str] = None

    async def register_client(self, websocket: websockets.ServerConnection) -> None:
        """
        Handler for new WebSocket connections, passed to `serve()`. Keeps the
        connection registered until it closes.
        """
        self.clients.add(websocket)
        self._fresh.add(websocket)
        logger.info("Client connected. Total: %d", len(self.clients))

        try:
            if self.last_status is not None:
                await websocket.send(self.last_status)
            await websocket.wait_closed()
        finally:
            self.clients.discard(websocket)
            self._fresh.discard(websocket)
            logger.info("Client disconnected. Total: %d", len(self.clients))

    def construct_payload(self, frame: RenderFrame, timestamp_ms: int, full: bool = False) -> str:
        """
        Formats one render frame as a JSON string.

        Args:
            frame (RenderFrame): Snapshot from the scene.
            timestamp_ms (int): The synchronization timestamp.
            full (bool): Include every buffer regardless of dirty flags.
        """
        payload: Dict[str, Any] = {
            "type": "frame",
            "timestamp": timestamp_ms,
            "time": round(frame.time, 4),
            "positions": encode_buffer(frame.positions),
            "rotation": [round(frame.rotation[0], 4), round(frame.rotation[1], 4)],
            "pinching": frame.is_pinching,
            "pinchStrength": round(frame.pinch_strength, 4),
            "theme": {"index": frame.theme_index, "name": frame.theme_name},
            "snow": {"visible": frame.snow_visible},
            "fireworks": [
                {
                    "id": burst.handle,
                    "layer": burst.layer_index,
                    "opacity": round(burst.opacity, 4),
                    "positions": encode_buffer(burst.positions),
                    "colors": encode_buffer(burst.colors),
                    "sizes": encode_buffer(burst.sizes),
                }
                for burst in frame.fireworks
            ],
        }
        if frame.snow_visible:
            payload["snow"]["positions"] = encode_buffer(frame.snow_positions)
        if full or frame.colors_dirty:
            payload["colors"] = encode_buffer(frame.colors)
        if full:
            payload["sizes"] = encode_buffer(frame.sizes)
            payload["alphas"] = encode_buffer(frame.alphas)
        return json.dumps(payload)

    def construct_status_payload(self, status: str, message: Optional[str], timestamp_ms: int) -> str:
        payload = {
            "type": "status",
            "timestamp": timestamp_ms,
            "status": status,
            "message": message,
        }
        return json.dumps(payload)

    def broadcast(self, payload_for_client: Dict[bool, str], background_tasks: Set[asyncio.Task]) -> int:
        """
        Fire-and-forget send to every client.

        Args:
            payload_for_client: {full_frame_needed: payload}. Must hold a True key
                                whenever a client is still waiting for its first frame.
            background_tasks: Set holding the send tasks until they finish.

        Returns:
            int: Number of sends scheduled.
        """
        sent = 0
        for ws in list(self.clients):
            full = ws in self._fresh
            payload = payload_for_client.get(full)
            if payload is None:
                continue
            self._fresh.discard(ws)
            self._send(ws, payload, background_tasks)
            sent += 1
        return sent

    def broadcast_status(self, payload: str, background_tasks: Set[asyncio.Task]) -> None:
        self.last_status = payload
        for ws in list(self.clients):
            self._send(ws, payload, background_tasks)

    @staticmethod
    def _send(ws: websockets.ServerConnection, payload: str, background_tasks: Set[asyncio.Task]) -> None:
        # Keep a reference so the task is not garbage collected mid-send
        task = asyncio.create_task(ws.send(payload))
        background_tasks.add(task)
        task.add_done_callback(background_tasks.discard)
        task.add_done_callback(_log_send_failure)

    @property
    def needs_full_frame(self) -> bool:
        return bool(self._fresh)

    def serve(self, *args: Any, **kwargs: Any) -> Any:
        """
        Wrapper around `websockets.serve`.

        Usage:
            async with server.serve(server.register_client, host, port):
                ...
        """
        return websockets.serve(*args, **kwargs)
