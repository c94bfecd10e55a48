# Path: puzzle_svc/registry.py
"""
In-memory session registry: id -> Session. Owns creation and removal.

One instance per server process (the ASGI app builds it); tests build their own.
"""
from __future__ import annotations

import uuid
from typing import Dict, Iterator, List

from . import config
from .errors import SessionNotFoundError
from .session import Clock, Session, wall_clock_ms


class SessionRegistry:
    def __init__(self, clock: Clock = wall_clock_ms, id_length: int = config.SESSION_ID_LENGTH) -> None:
        self._sessions: Dict[str, Session] = {}
        self._clock = clock
        self._id_length = id_length

    def _new_id(self) -> str:
        while True:
            sid = uuid.uuid4().hex[: self._id_length]
            if sid not in self._sessions:
                return sid

    def create(self, admin_id: str, puzzle_count: int) -> Session:
        s = Session(self._new_id(), admin_id, puzzle_count, clock=self._clock)
        self._sessions[s.id] = s
        return s

    def get(self, session_id: str) -> Session:
        s = self._sessions.get(session_id)
        if s is None:
            raise SessionNotFoundError(session_id)
        return s

    def remove(self, session_id: str) -> Session:
        s = self._sessions.pop(session_id, None)
        if s is None:
            raise SessionNotFoundError(session_id)
        return s

    def sessions_for(self, conn_id: str) -> List[Session]:
        """Sessions where the connection is the admin or a joined player."""
        return [s for s in self._sessions.values() if s.is_admin(conn_id) or conn_id in s.players]

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))
