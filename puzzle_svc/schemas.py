# Path: puzzle_svc/schemas.py
"""
Pydantic models for the WebSocket protocol between clients and the puzzle service.

Every frame is a JSON object tagged by `event`. Inbound frames are parsed
through `inbound_adapter` (a discriminated union) before they reach a
session; outbound frames are built from the models below.
"""
from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from . import config
from .models import PuzzleConfig, SolutionLine
from .notation import normalize_line

SessionId = Annotated[str, Field(min_length=1, max_length=64)]
MoveText = Union[str, List[str]]


# ---------------------------------------------------------------- inbound

class _Inbound(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class SolutionLineIn(BaseModel):
    id: Optional[str] = Field(None, min_length=1, max_length=32)
    label: Optional[str] = Field(None, max_length=64)
    moves: MoveText = ""
    points: float = Field(config.DEFAULT_POINTS, gt=0, description="base points for this line")

    model_config = ConfigDict(extra="forbid")


class PuzzleIn(BaseModel):
    position: str = Field(..., min_length=1, description="starting position as FEN")
    solutionLines: List[SolutionLineIn] = Field(default_factory=list, max_length=config.MAX_SOLUTION_LINES)
    timer: int = Field(config.DEFAULT_TIMER, ge=config.MIN_TIMER, le=config.MAX_TIMER)
    # Single-line form used by older admin clients.
    mainLine: Optional[MoveText] = None
    points: Optional[float] = Field(None, gt=0)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _one_form(self) -> "PuzzleIn":
        if self.mainLine is not None and self.solutionLines:
            raise ValueError("send either solutionLines or mainLine, not both")
        ids = [ln.id for ln in self.solutionLines if ln.id]
        if len(ids) != len(set(ids)):
            raise ValueError("solution line ids must be unique")
        return self

    def to_config(self) -> PuzzleConfig:
        if self.mainLine is not None:
            raw = [SolutionLineIn(moves=self.mainLine, points=self.points or config.DEFAULT_POINTS)]
        else:
            raw = self.solutionLines
        taken = {ln.id for ln in raw if ln.id}
        lines = []
        n = 0
        for i, ln in enumerate(raw, start=1):
            line_id = ln.id
            while not line_id:
                n += 1
                if f"line-{n}" not in taken:
                    line_id = f"line-{n}"
            taken.add(line_id)
            lines.append(SolutionLine(
                id=line_id,
                moves=tuple(normalize_line(ln.moves)),
                points=ln.points,
                label=ln.label or f"Line {i}",
            ))
        return PuzzleConfig(position=self.position.strip(), lines=tuple(lines), timer=self.timer)


class CreateSession(_Inbound):
    event: Literal["create_session"]
    puzzleCount: int = Field(
        ..., ge=1, le=config.MAX_PUZZLES, validation_alias=AliasChoices("puzzleCount", "numPuzzles")
    )


class UpdatePuzzle(_Inbound):
    event: Literal["update_puzzle"]
    sessionId: SessionId
    puzzleIndex: int
    puzzle: PuzzleIn


class JoinSession(_Inbound):
    event: Literal["join_session"]
    sessionId: SessionId
    nickname: str = Field(..., max_length=config.MAX_NICKNAME + 16)

    @field_validator("nickname")
    @classmethod
    def _nickname(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("nickname must not be empty")
        if len(v) > config.MAX_NICKNAME:
            raise ValueError(f"nickname must be at most {config.MAX_NICKNAME} characters")
        return v


class LaunchPuzzle(_Inbound):
    event: Literal["launch_puzzle"]
    sessionId: SessionId
    puzzleIndex: int


class SubmitMove(_Inbound):
    event: Literal["submit_move", "submit_answer"]
    sessionId: SessionId
    move: str = Field(..., max_length=32, validation_alias=AliasChoices("move", "answer"))


class RevealResults(_Inbound):
    event: Literal["reveal_results"]
    sessionId: SessionId
    puzzleIndex: Optional[int] = None


class NextPuzzle(_Inbound):
    event: Literal["next_puzzle"]
    sessionId: SessionId


class TerminateSession(_Inbound):
    event: Literal["terminate_session"]
    sessionId: SessionId


InboundMessage = Annotated[
    Union[CreateSession, UpdatePuzzle, JoinSession, LaunchPuzzle,
          SubmitMove, RevealResults, NextPuzzle, TerminateSession],
    Field(discriminator="event"),
]
inbound_adapter: TypeAdapter = TypeAdapter(InboundMessage)


# ---------------------------------------------------------------- outbound

class PlayerSummary(BaseModel):
    id: str
    nickname: str
    score: float


class LeaderboardRow(BaseModel):
    playerId: str
    nickname: str
    score: float


class PuzzleView(BaseModel):
    position: str
    timer: int
    points: float


class PlayerResult(BaseModel):
    nickname: str
    answer: str
    status: Literal["not_attempted", "in_progress", "succeeded", "failed"]
    isCorrect: bool
    pointsAwarded: float
    timeTaken: Optional[float] = None
    lineId: Optional[str] = None


class _Outbound(BaseModel):
    model_config = ConfigDict(extra="forbid")


class Connected(_Outbound):
    event: Literal["connected"] = "connected"
    connectionId: str


class SessionCreated(_Outbound):
    event: Literal["session_created"] = "session_created"
    sessionId: str
    totalPuzzles: int


class PuzzleUpdated(_Outbound):
    event: Literal["puzzle_updated"] = "puzzle_updated"
    sessionId: str
    puzzleIndex: int
    puzzle: Dict


class SessionJoined(_Outbound):
    event: Literal["session_joined"] = "session_joined"
    sessionId: str
    playerId: str
    nickname: str
    players: List[PlayerSummary]
    puzzleActive: bool
    puzzleIndex: Optional[int] = None
    totalPuzzles: int
    currentPuzzle: Optional[PuzzleView] = None
    endTime: Optional[int] = None


class PlayerJoined(_Outbound):
    event: Literal["player_joined"] = "player_joined"
    playerId: str
    nickname: str
    players: List[PlayerSummary]


class PlayerLeft(_Outbound):
    event: Literal["player_left"] = "player_left"
    playerId: str
    nickname: str
    players: List[PlayerSummary]


class PuzzleLaunched(_Outbound):
    event: Literal["puzzle_launched"] = "puzzle_launched"
    puzzleIndex: int
    totalPuzzles: int
    puzzle: PuzzleView
    endTime: int


class PuzzleStepSuccess(_Outbound):
    event: Literal["puzzle_step_success"] = "puzzle_step_success"
    newPosition: str
    playedMove: str
    opponentMove: Optional[str] = None
    nextStepExpected: bool


class PuzzleStepFailed(_Outbound):
    event: Literal["puzzle_step_failed"] = "puzzle_step_failed"
    attemptedMove: str
    message: str


class PlayerCompletedSequence(_Outbound):
    event: Literal["player_completed_sequence"] = "player_completed_sequence"
    playerId: str
    nickname: str
    finalPosition: str
    elapsedMs: int
    lineId: str


class PlayerFailedSequence(_Outbound):
    event: Literal["player_failed_sequence"] = "player_failed_sequence"
    playerId: str
    nickname: str
    attemptedMove: str


class AdminPlayerProgress(_Outbound):
    event: Literal["admin_player_progress"] = "admin_player_progress"
    playerId: str
    nickname: str
    attemptedMove: str
    status: Literal["correct_step", "completed", "incorrect_step", "configuration_error"]
    opponentMove: Optional[str] = None
    expectedMoves: List[str] = Field(default_factory=list)
    timestamp: int


class ResultsRevealed(_Outbound):
    event: Literal["results_revealed"] = "results_revealed"
    puzzleIndex: int
    solutionLines: List[Dict]
    leaderboard: List[LeaderboardRow]
    perPlayerResults: Dict[str, PlayerResult]


class AdvancedToNextPuzzle(_Outbound):
    event: Literal["advanced_to_next_puzzle"] = "advanced_to_next_puzzle"
    nextPuzzleIndex: int
    totalPuzzles: int


class SessionCompleted(_Outbound):
    event: Literal["session_completed"] = "session_completed"
    message: str
    leaderboard: List[LeaderboardRow]


class SessionTerminated(_Outbound):
    event: Literal["session_terminated"] = "session_terminated"
    sessionId: str
    message: str


class AdminDisconnected(_Outbound):
    event: Literal["admin_disconnected"] = "admin_disconnected"
    message: str


class ErrorMessage(_Outbound):
    event: Literal["error"] = "error"
    code: str
    message: str
    field: Optional[str] = None


OutboundMessage = Annotated[
    Union[Connected, SessionCreated, PuzzleUpdated, SessionJoined, PlayerJoined, PlayerLeft,
          PuzzleLaunched, PuzzleStepSuccess, PuzzleStepFailed, PlayerCompletedSequence,
          PlayerFailedSequence, AdminPlayerProgress, ResultsRevealed, AdvancedToNextPuzzle,
          SessionCompleted, SessionTerminated, AdminDisconnected, ErrorMessage],
    Field(discriminator="event"),
]
outbound_adapter: TypeAdapter = TypeAdapter(OutboundMessage)
