# Path: puzzle_svc/models.py
"""
Domain records for a puzzle session: puzzle slots, solution lines, and per-player attempts.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from . import config
from .errors import PuzzleValidationError
from .oracle import InvalidPositionError, Position


class AttemptStatus(str, Enum):
    NOT_ATTEMPTED = "not_attempted"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def concluded(self) -> bool:
        return self in (AttemptStatus.SUCCEEDED, AttemptStatus.FAILED)


@dataclass(frozen=True)
class SolutionLine:
    id: str
    moves: Tuple[str, ...]
    points: float
    label: str = ""

    def token(self, step: int) -> Optional[str]:
        return self.moves[step] if 0 <= step < len(self.moves) else None

    def to_dict(self) -> Dict:
        return {"id": self.id, "label": self.label, "moves": list(self.moves), "points": self.points}


@dataclass(frozen=True)
class PuzzleConfig:
    position: str = config.DEFAULT_POSITION
    lines: Tuple[SolutionLine, ...] = ()
    timer: int = config.DEFAULT_TIMER

    @property
    def points(self) -> float:
        return max((ln.points for ln in self.lines), default=0)

    def line(self, line_id: str) -> Optional[SolutionLine]:
        for ln in self.lines:
            if ln.id == line_id:
                return ln
        return None

    def validate(self) -> Position:
        """Full launch check; returns the parsed start position."""
        try:
            start = Position.parse(self.position)
        except InvalidPositionError as e:
            raise PuzzleValidationError(f"position: {e}", field="position")
        if not self.lines:
            raise PuzzleValidationError(
                "solutionLines: at least one solution line is required", field="solutionLines"
            )
        if len(self.lines) > config.MAX_SOLUTION_LINES:
            raise PuzzleValidationError(
                f"solutionLines: at most {config.MAX_SOLUTION_LINES} lines are allowed",
                field="solutionLines",
            )
        for i, ln in enumerate(self.lines):
            if not ln.moves:
                raise PuzzleValidationError(
                    f"solutionLines[{i}].moves: line '{ln.label or ln.id}' has no moves",
                    field=f"solutionLines[{i}].moves",
                )
            if not ln.points or ln.points <= 0:
                raise PuzzleValidationError(
                    f"solutionLines[{i}].points: must be positive",
                    field=f"solutionLines[{i}].points",
                )
        if self.timer < config.MIN_TIMER:
            raise PuzzleValidationError(f"timer: must be at least {config.MIN_TIMER}s", field="timer")
        return start

    def client_view(self) -> Dict:
        # What players see at launch; solution lines stay server-side.
        return {"position": self.position, "timer": self.timer, "points": self.points}

    def to_dict(self) -> Dict:
        return {
            "position": self.position,
            "solutionLines": [ln.to_dict() for ln in self.lines],
            "timer": self.timer,
        }


@dataclass
class Player:
    id: str
    nickname: str
    score: float = 0.0
    last_move: Optional[str] = None
    last_move_at: Optional[int] = None
    step: int = 0
    position: Optional[str] = None
    status: AttemptStatus = AttemptStatus.NOT_ATTEMPTED
    viable_lines: Tuple[str, ...] = ()
    line_id: Optional[str] = None
    completed_at: Optional[int] = None

    def reset(self, position: Optional[str] = None, line_ids: Tuple[str, ...] = ()) -> None:
        self.last_move = None
        self.last_move_at = None
        self.step = 0
        self.position = position
        self.status = AttemptStatus.NOT_ATTEMPTED
        self.viable_lines = tuple(line_ids)
        self.line_id = None
        self.completed_at = None

    def summary(self) -> Dict:
        return {"id": self.id, "nickname": self.nickname, "score": round(self.score, config.SCORE_DECIMALS)}


def leaderboard(players: List[Player]) -> List[Dict]:
    # sorted() is stable: ties keep join order
    rows = [
        {"playerId": p.id, "nickname": p.nickname, "score": round(p.score, config.SCORE_DECIMALS)}
        for p in players
    ]
    return sorted(rows, key=lambda r: r["score"], reverse=True)


def default_slots(count: int) -> List[PuzzleConfig]:
    return [PuzzleConfig() for _ in range(count)]
