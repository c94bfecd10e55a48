# Path: puzzle_svc/orchestrator.py
"""
Session orchestration only (no sockets).

- Decodes/validates inbound frames (pydantic) for one connection
- Routes them to the registry / session aggregate
- Turns every failure into an `error` frame for the caller alone
- Records notable events in the activity log after the transition succeeded
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from .activity_log import ActivityLog
from .errors import PuzzleSessionError
from .registry import SessionRegistry
from .schemas import (
    CreateSession,
    ErrorMessage,
    InboundMessage,
    JoinSession,
    LaunchPuzzle,
    NextPuzzle,
    RevealResults,
    SessionCreated,
    SubmitMove,
    TerminateSession,
    UpdatePuzzle,
)
from .session import Phase
from .wire import BadFrame, Delivery, decode_frame, to

logger = logging.getLogger("puzzle_svc.orchestrator")


def _describe(err: ValidationError) -> ErrorMessage:
    parts = []
    field = None
    for e in err.errors():
        # drop the union tag pydantic puts first in `loc`
        loc = [str(x) for x in e.get("loc", ())][1:] or [str(x) for x in e.get("loc", ())]
        where = ".".join(loc)
        if field is None and where:
            field = where
        parts.append(f"{where}: {e.get('msg')}" if where else str(e.get("msg")))
    return ErrorMessage(code="validation", message="; ".join(parts) or "invalid message", field=field)


class Orchestrator:
    def __init__(self, registry: SessionRegistry, activity: Optional[ActivityLog] = None) -> None:
        self.registry = registry
        self.activity = activity or ActivityLog(None)
        self._handlers: Dict[type, Callable[[str, InboundMessage], List[Delivery]]] = {
            CreateSession: self._create,
            UpdatePuzzle: self._update,
            JoinSession: self._join,
            LaunchPuzzle: self._launch,
            SubmitMove: self._submit,
            RevealResults: self._reveal,
            NextPuzzle: self._next,
            TerminateSession: self._terminate,
        }

    # ---- entry points ----
    def handle_frame(self, conn_id: str, text: Union[str, bytes]) -> List[Delivery]:
        try:
            msg = decode_frame(text)
        except ValidationError as e:
            return [to(conn_id, _describe(e))]
        except BadFrame as e:
            return [to(conn_id, ErrorMessage(code="bad_request", message=str(e)))]
        return self.handle(conn_id, msg)

    def handle(self, conn_id: str, msg: InboundMessage) -> List[Delivery]:
        handler = self._handlers[type(msg)]
        try:
            return handler(conn_id, msg)
        except PuzzleSessionError as e:
            logger.info("[orchestrator] %s from %s rejected (%s): %s", msg.event, conn_id, e.code, e.message)
            return [to(conn_id, ErrorMessage(code=e.code, message=e.message, field=e.field))]

    def disconnect(self, conn_id: str) -> List[Delivery]:
        out: List[Delivery] = []
        for s in self.registry.sessions_for(conn_id):
            admin = s.is_admin(conn_id)
            nickname = None if admin else s.players[conn_id].nickname
            out.extend(s.drop_connection(conn_id))
            if admin:
                self.activity.record("ADMIN_DISCONNECTED", sessionId=s.id, adminId=conn_id)
            else:
                self.activity.record("PLAYER_DISCONNECTED", sessionId=s.id, playerId=conn_id, nickname=nickname)
        return out

    # ---- handlers ----
    def _create(self, conn_id: str, msg: CreateSession) -> List[Delivery]:
        s = self.registry.create(conn_id, msg.puzzleCount)
        logger.info("[orchestrator] session %s created by %s (%d puzzles)", s.id, conn_id, s.total_puzzles)
        self.activity.record("SESSION_CREATED", sessionId=s.id, adminId=conn_id, numPuzzles=s.total_puzzles)
        return [to(conn_id, SessionCreated(sessionId=s.id, totalPuzzles=s.total_puzzles))]

    def _update(self, conn_id: str, msg: UpdatePuzzle) -> List[Delivery]:
        s = self.registry.get(msg.sessionId)
        puzzle = msg.puzzle.to_config()
        out = s.update_puzzle(conn_id, msg.puzzleIndex, puzzle)
        self.activity.record("PUZZLE_UPDATED", sessionId=s.id, puzzleIndex=msg.puzzleIndex, adminId=conn_id,
                             lineLengths=[len(ln.moves) for ln in puzzle.lines])
        return out

    def _join(self, conn_id: str, msg: JoinSession) -> List[Delivery]:
        s = self.registry.get(msg.sessionId)
        out = s.join(conn_id, msg.nickname)
        self.activity.record("PLAYER_JOINED", sessionId=s.id, playerId=conn_id, nickname=msg.nickname)
        return out

    def _launch(self, conn_id: str, msg: LaunchPuzzle) -> List[Delivery]:
        s = self.registry.get(msg.sessionId)
        out = s.launch(conn_id, msg.puzzleIndex)
        self.activity.record("PUZZLE_LAUNCHED", sessionId=s.id, puzzleIndex=msg.puzzleIndex, adminId=conn_id)
        return out

    def _submit(self, conn_id: str, msg: SubmitMove) -> List[Delivery]:
        s = self.registry.get(msg.sessionId)
        player = s.players.get(conn_id)
        step = player.step if player else None
        out = s.submit_move(conn_id, msg.move)
        self.activity.record("PLAYER_ATTEMPTED_MOVE", sessionId=s.id, playerId=conn_id,
                             nickname=player.nickname, puzzleIndex=s.puzzle_index, step=step,
                             move=player.last_move, status=player.status.value)
        return out

    def _reveal(self, conn_id: str, msg: RevealResults) -> List[Delivery]:
        s = self.registry.get(msg.sessionId)
        out = s.reveal(conn_id, msg.puzzleIndex)
        self.activity.record("RESULTS_REVEALED", sessionId=s.id, puzzleIndex=s.puzzle_index, adminId=conn_id)
        return out

    def _next(self, conn_id: str, msg: NextPuzzle) -> List[Delivery]:
        s = self.registry.get(msg.sessionId)
        out = s.advance(conn_id)
        if s.phase is Phase.CONCLUDED:
            self.activity.record("SESSION_COMPLETED", sessionId=s.id, adminId=conn_id)
        else:
            self.activity.record("ADVANCED_TO_NEXT_PUZZLE", sessionId=s.id, nextPuzzleIndex=s.puzzle_index,
                                 adminId=conn_id)
        return out

    def _terminate(self, conn_id: str, msg: TerminateSession) -> List[Delivery]:
        s = self.registry.get(msg.sessionId)
        out = s.terminate(conn_id)
        self.registry.remove(s.id)
        self.activity.record("SESSION_TERMINATED", sessionId=s.id, adminId=conn_id)
        return out
