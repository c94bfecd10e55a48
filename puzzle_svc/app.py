# Path: puzzle_svc/app.py
"""
Purpose: FastAPI app for live puzzle sessions: one WebSocket per client, plus health/snapshot endpoints.
Usage: uvicorn puzzle_svc.app:app  (or `puzzle-svc`, see main.py)

Exposes:
  - GET /health               -> "ok"
  - GET /sessions/{sessionId} -> public snapshot (phase, players, leaderboard)
  - WS  /ws                   -> JSON frames tagged by `event` (see schemas.py)
"""
from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from . import __version__, config
from .activity_log import ActivityLog
from .connections import ConnectionManager
from .errors import SessionNotFoundError
from .orchestrator import Orchestrator
from .registry import SessionRegistry
from .schemas import Connected
from .wire import to

logger = logging.getLogger("puzzle_svc.app")


def create_app(
    registry: Optional[SessionRegistry] = None,
    activity: Optional[ActivityLog] = None,
) -> FastAPI:
    registry = registry if registry is not None else SessionRegistry()
    activity = activity if activity is not None else ActivityLog(config.ACTIVITY_LOG_PATH)
    orchestrator = Orchestrator(registry, activity)
    connections = ConnectionManager()

    app = FastAPI(title="puzzle-svc", version=__version__)
    app.add_middleware(CORSMiddleware, allow_origins=config.CORS_ORIGINS, allow_methods=["GET"])
    app.state.registry = registry
    app.state.orchestrator = orchestrator
    app.state.connections = connections
    app.state.activity = activity

    @app.on_event("shutdown")
    async def _shutdown():
        activity.close()

    @app.get("/health")
    async def health():
        return PlainTextResponse("ok")

    @app.get("/sessions/{sid}")
    async def get_session(sid: str):
        try:
            s = registry.get(sid)
        except SessionNotFoundError as e:
            raise HTTPException(404, e.message)
        return JSONResponse(s.snapshot())

    @app.websocket("/ws")
    async def session_socket(websocket: WebSocket):
        await websocket.accept()
        conn_id = uuid.uuid4().hex
        connections.add(conn_id, websocket)
        logger.info("[app] connection %s opened", conn_id)
        connections.deliver([to(conn_id, Connected(connectionId=conn_id))])
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                text = message.get("text")
                if text is None:
                    text = message.get("bytes") or b""
                # handle_frame runs to completion before anything else touches the sessions
                connections.deliver(orchestrator.handle_frame(conn_id, text))
        finally:
            connections.discard(conn_id)
            logger.info("[app] connection %s closed", conn_id)
            connections.deliver(orchestrator.disconnect(conn_id))

    return app


app = create_app()
