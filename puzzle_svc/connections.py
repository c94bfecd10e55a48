# Path: puzzle_svc/connections.py
"""
Purpose: Track open WebSockets by connection id and fan out Deliveries.
Usage: connections.deliver(orchestrator.handle_frame(conn_id, text))

Each connection owns an outbox queue drained by its own writer task.
`deliver` only enqueues (no await), so every client sees frames in the
order the commands produced them, and a slow client only delays itself.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable

from fastapi import WebSocket

from .wire import Delivery, encode_frame

logger = logging.getLogger("puzzle_svc.connections")


class ConnectionManager:
    def __init__(self) -> None:
        self._sockets: Dict[str, WebSocket] = {}
        self._outboxes: Dict[str, asyncio.Queue] = {}
        self._writers: Dict[str, asyncio.Task] = {}

    def add(self, conn_id: str, websocket: WebSocket) -> None:
        outbox: asyncio.Queue = asyncio.Queue()
        self._sockets[conn_id] = websocket
        self._outboxes[conn_id] = outbox
        self._writers[conn_id] = asyncio.create_task(self._drain(conn_id, websocket, outbox))

    def discard(self, conn_id: str) -> None:
        self._sockets.pop(conn_id, None)
        self._outboxes.pop(conn_id, None)
        writer = self._writers.pop(conn_id, None)
        if writer is not None:
            writer.cancel()

    def __contains__(self, conn_id: object) -> bool:
        return conn_id in self._sockets

    def __len__(self) -> int:
        return len(self._sockets)

    def deliver(self, deliveries: Iterable[Delivery]) -> None:
        for d in deliveries:
            frame = encode_frame(d.message)
            for conn_id in d.recipients:
                outbox = self._outboxes.get(conn_id)
                if outbox is not None:
                    outbox.put_nowait(frame)

    async def _drain(self, conn_id: str, websocket: WebSocket, outbox: asyncio.Queue) -> None:
        while True:
            frame = await outbox.get()
            try:
                await websocket.send_text(frame)
            except Exception as e:
                # Closed/closing socket; its disconnect handler cleans up.
                logger.warning("[connections] send to %s failed: %s", conn_id, e)
                self._outboxes.pop(conn_id, None)
                return
