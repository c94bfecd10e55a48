# Path: puzzle_svc/session.py
"""
One live puzzle session: admin-owned puzzle slots, joined players, and the phase machine.

    configuring --launch--> puzzle_active --reveal--> results_revealed
        ^                                                 |   |
        +--------------------- advance (more slots) ------+   |
                               advance (last slot) --> concluded
    any phase --terminate--> terminated

Every command validates identity, phase and input BEFORE mutating, and
returns the deliveries the transport must fan out. No I/O happens here.
"""
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Dict, List, Optional

from . import config
from .errors import (
    ConfigurationIntegrityError,
    NotAuthorizedError,
    PuzzleNotFoundError,
    PuzzleValidationError,
    SessionStateError,
)
from .judge import Judgment, Outcome, judge_move
from .models import AttemptStatus, Player, PuzzleConfig, default_slots, leaderboard
from .oracle import InvalidPositionError, Position
from .schemas import (
    AdminDisconnected,
    AdminPlayerProgress,
    AdvancedToNextPuzzle,
    ErrorMessage,
    PlayerCompletedSequence,
    PlayerFailedSequence,
    PlayerJoined,
    PlayerLeft,
    PlayerResult,
    PuzzleLaunched,
    PuzzleStepFailed,
    PuzzleStepSuccess,
    PuzzleUpdated,
    PuzzleView,
    ResultsRevealed,
    SessionCompleted,
    SessionJoined,
    SessionTerminated,
)
from .scoring import award_points, elapsed_seconds
from .wire import Delivery, to

logger = logging.getLogger("puzzle_svc.session")

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class Phase(str, Enum):
    CONFIGURING = "configuring"
    PUZZLE_ACTIVE = "puzzle_active"
    RESULTS_REVEALED = "results_revealed"
    CONCLUDED = "concluded"
    TERMINATED = "terminated"


class Command(str, Enum):
    UPDATE = "update_puzzle"
    JOIN = "join_session"
    LAUNCH = "launch_puzzle"
    SUBMIT = "submit_move"
    REVEAL = "reveal_results"
    ADVANCE = "next_puzzle"
    TERMINATE = "terminate_session"


# {phase: {command: next phase}}; None keeps the phase.
TRANSITIONS = {
    Phase.CONFIGURING: {
        Command.UPDATE: None,
        Command.JOIN: None,
        Command.LAUNCH: Phase.PUZZLE_ACTIVE,
        Command.TERMINATE: Phase.TERMINATED,
    },
    Phase.PUZZLE_ACTIVE: {
        Command.UPDATE: None,
        Command.JOIN: None,
        Command.SUBMIT: None,
        Command.REVEAL: Phase.RESULTS_REVEALED,
        Command.TERMINATE: Phase.TERMINATED,
    },
    Phase.RESULTS_REVEALED: {
        Command.UPDATE: None,
        Command.JOIN: None,
        Command.LAUNCH: Phase.PUZZLE_ACTIVE,
        Command.ADVANCE: Phase.CONFIGURING,  # CONCLUDED when no slot is left
        Command.TERMINATE: Phase.TERMINATED,
    },
    Phase.CONCLUDED: {
        Command.TERMINATE: Phase.TERMINATED,
    },
    Phase.TERMINATED: {},
}

_REJECTIONS = {
    Command.SUBMIT: "No puzzle is active; moves are closed.",
    Command.REVEAL: "There is no active puzzle to reveal.",
    Command.ADVANCE: "Reveal the current puzzle's results before advancing.",
    Command.LAUNCH: "A puzzle is already active; reveal its results first.",
}


class Session:
    def __init__(self, session_id: str, admin_id: str, puzzle_count: int, clock: Clock = wall_clock_ms):
        if puzzle_count < 1:
            raise PuzzleValidationError("puzzleCount: must be at least 1", field="puzzleCount")
        self.id = session_id
        self.admin_id = admin_id
        self.puzzles: List[PuzzleConfig] = default_slots(puzzle_count)
        self.puzzle_index: Optional[int] = None
        self.phase = Phase.CONFIGURING
        self.launched_at: Optional[int] = None
        self.players: Dict[str, Player] = {}
        self.leaderboard: List[Dict] = []
        self._start_fen: Optional[str] = None
        self._clock = clock

    # ---- views ----
    @property
    def total_puzzles(self) -> int:
        return len(self.puzzles)

    @property
    def puzzle_active(self) -> bool:
        return self.phase is Phase.PUZZLE_ACTIVE

    @property
    def current_puzzle(self) -> Optional[PuzzleConfig]:
        if self.puzzle_index is None:
            return None
        return self.puzzles[self.puzzle_index]

    @property
    def end_time(self) -> Optional[int]:
        if not self.puzzle_active or self.launched_at is None:
            return None
        return self.launched_at + self.current_puzzle.timer * 1000

    @property
    def participants(self) -> List[str]:
        return [self.admin_id, *self.players]

    def player_list(self) -> List[Dict]:
        return [p.summary() for p in self.players.values()]

    def snapshot(self) -> Dict:
        return {
            "sessionId": self.id,
            "phase": self.phase.value,
            "puzzleIndex": self.puzzle_index,
            "totalPuzzles": self.total_puzzles,
            "puzzleActive": self.puzzle_active,
            "endTime": self.end_time,
            "players": self.player_list(),
            "leaderboard": self.leaderboard,
        }

    # ---- guards ----
    def is_admin(self, conn_id: str) -> bool:
        return conn_id == self.admin_id

    def _require_admin(self, conn_id: str, action: str) -> None:
        if not self.is_admin(conn_id):
            logger.warning("[session %s] non-admin %s tried to %s", self.id, conn_id, action)
            raise NotAuthorizedError(f"Only the session admin can {action}.")

    def _require(self, command: Command) -> Optional[Phase]:
        allowed = TRANSITIONS[self.phase]
        if command not in allowed:
            msg = _REJECTIONS.get(command) or f"'{command.value}' is not allowed while the session is {self.phase.value}."
            if self.phase in (Phase.CONCLUDED, Phase.TERMINATED):
                msg = f"'{command.value}' is not allowed: the session has {self.phase.value}."
            raise SessionStateError(msg)
        return allowed[command]

    def _slot(self, index: int) -> PuzzleConfig:
        if not isinstance(index, int) or not 0 <= index < self.total_puzzles:
            raise PuzzleNotFoundError(index, self.total_puzzles)
        return self.puzzles[index]

    # ---- admin commands ----
    def update_puzzle(self, conn_id: str, index: int, puzzle: PuzzleConfig) -> List[Delivery]:
        self._require_admin(conn_id, "edit puzzles")
        self._require(Command.UPDATE)
        self._slot(index)
        if self.puzzle_active and index == self.puzzle_index:
            raise SessionStateError(f"Puzzle {index + 1} is live; reveal its results before editing it.")
        try:
            Position.parse(puzzle.position)
        except InvalidPositionError as e:
            raise PuzzleValidationError(f"position: {e}", field="position")
        if len(puzzle.lines) > config.MAX_SOLUTION_LINES:
            raise PuzzleValidationError(
                f"solutionLines: at most {config.MAX_SOLUTION_LINES} lines are allowed", field="solutionLines"
            )
        self.puzzles[index] = puzzle
        logger.info("[session %s] puzzle %d updated: %s", self.id, index,
                    " || ".join(" ".join(ln.moves) for ln in puzzle.lines) or "(no lines)")
        return [to(self.admin_id, PuzzleUpdated(sessionId=self.id, puzzleIndex=index, puzzle=puzzle.to_dict()))]

    def launch(self, conn_id: str, index: int) -> List[Delivery]:
        self._require_admin(conn_id, "launch puzzles")
        nxt = self._require(Command.LAUNCH)
        puzzle = self._slot(index)
        start = puzzle.validate()

        self.puzzle_index = index
        self.phase = nxt
        self.launched_at = self._clock()
        self._start_fen = start.fen
        line_ids = tuple(ln.id for ln in puzzle.lines)
        for p in self.players.values():
            p.reset(start.fen, line_ids)

        logger.info("[session %s] puzzle %d launched (%d players, %ds)",
                    self.id, index, len(self.players), puzzle.timer)
        msg = PuzzleLaunched(
            puzzleIndex=index,
            totalPuzzles=self.total_puzzles,
            puzzle=PuzzleView(**puzzle.client_view()),
            endTime=self.end_time,
        )
        return [to(self.participants, msg)]

    def reveal(self, conn_id: str, index: Optional[int] = None) -> List[Delivery]:
        self._require_admin(conn_id, "reveal results")
        nxt = self._require(Command.REVEAL)
        if index is not None and index != self.puzzle_index:
            raise PuzzleValidationError(
                f"puzzleIndex: puzzle {index} is not the active puzzle ({self.puzzle_index})", field="puzzleIndex"
            )
        puzzle = self.current_puzzle
        results: Dict[str, PlayerResult] = {}
        for p in self.players.values():
            points = 0.0
            time_taken = None
            correct = p.status is AttemptStatus.SUCCEEDED and p.completed_at is not None
            if correct:
                line = puzzle.line(p.line_id)
                elapsed = elapsed_seconds(self.launched_at, p.completed_at)
                elapsed = max(0.0, min(elapsed, float(puzzle.timer)))
                points = award_points(line.points, puzzle.timer, elapsed)
                p.score = round(p.score + points, config.SCORE_DECIMALS)
                time_taken = round(elapsed, 1)
            results[p.id] = PlayerResult(
                nickname=p.nickname,
                answer=p.last_move or "",
                status=p.status.value,
                isCorrect=correct,
                pointsAwarded=points,
                timeTaken=time_taken,
                lineId=p.line_id,
            )

        self.phase = nxt
        self.launched_at = None
        self.leaderboard = leaderboard(list(self.players.values()))
        logger.info("[session %s] results revealed for puzzle %d (%d solved)",
                    self.id, self.puzzle_index, sum(1 for r in results.values() if r.isCorrect))
        msg = ResultsRevealed(
            puzzleIndex=self.puzzle_index,
            solutionLines=[ln.to_dict() for ln in puzzle.lines],
            leaderboard=self.leaderboard,
            perPlayerResults=results,
        )
        return [to(self.participants, msg)]

    def advance(self, conn_id: str) -> List[Delivery]:
        self._require_admin(conn_id, "advance the session")
        nxt = self._require(Command.ADVANCE)
        following = self.puzzle_index + 1
        if following < self.total_puzzles:
            self.puzzle_index = following
            self.phase = nxt
            logger.info("[session %s] advanced to puzzle %d", self.id, following)
            return [to(self.participants, AdvancedToNextPuzzle(
                nextPuzzleIndex=following, totalPuzzles=self.total_puzzles))]

        self.phase = Phase.CONCLUDED
        logger.info("[session %s] concluded", self.id)
        return [to(self.participants, SessionCompleted(
            message="All puzzles have been completed.", leaderboard=self.leaderboard))]

    def terminate(self, conn_id: str) -> List[Delivery]:
        self._require_admin(conn_id, "end the session")
        recipients = self.participants
        self.phase = self._require(Command.TERMINATE)
        self.launched_at = None
        logger.info("[session %s] terminated by admin", self.id)
        return [to(recipients, SessionTerminated(
            sessionId=self.id, message="The administrator has ended the session."))]

    # ---- player commands ----
    def join(self, conn_id: str, nickname: str) -> List[Delivery]:
        self._require(Command.JOIN)
        if self.is_admin(conn_id):
            raise NotAuthorizedError("The session admin cannot join as a player.")
        if conn_id in self.players:
            raise SessionStateError("You have already joined this session.")
        nickname = (nickname or "").strip()
        if not nickname:
            raise PuzzleValidationError("nickname: must not be empty", field="nickname")
        taken = {p.nickname.casefold() for p in self.players.values()}
        if nickname.casefold() in taken:
            raise PuzzleValidationError(f"nickname: '{nickname}' is already taken", field="nickname")

        player = Player(id=conn_id, nickname=nickname)
        if self.puzzle_active:
            player.reset(self._start_fen, tuple(ln.id for ln in self.current_puzzle.lines))
        self.players[conn_id] = player
        logger.info("[session %s] %s joined (%d players)", self.id, nickname, len(self.players))

        current = PuzzleView(**self.current_puzzle.client_view()) if self.puzzle_active else None
        players = self.player_list()
        return [
            to(conn_id, SessionJoined(
                sessionId=self.id,
                playerId=conn_id,
                nickname=nickname,
                players=players,
                puzzleActive=self.puzzle_active,
                puzzleIndex=self.puzzle_index,
                totalPuzzles=self.total_puzzles,
                currentPuzzle=current,
                endTime=self.end_time,
            )),
            to(self.participants, PlayerJoined(playerId=conn_id, nickname=nickname, players=players)),
        ]

    def submit_move(self, conn_id: str, move_text: str) -> List[Delivery]:
        player = self.players.get(conn_id)
        if player is None:
            raise NotAuthorizedError("You have not joined this session.")
        self._require(Command.SUBMIT)
        if player.status.concluded:
            raise SessionStateError("You can't submit more moves for this puzzle.")

        now = self._clock()
        puzzle = self.current_puzzle
        j = judge_move(player.position, player.step, puzzle.lines, player.viable_lines, move_text)
        player.last_move = j.attempted
        player.last_move_at = now
        logger.info("[session %s] %s played %r at step %d -> %s",
                    self.id, player.nickname, j.attempted, player.step, j.outcome.value)

        if j.outcome is Outcome.ADVANCE:
            return self._advance_attempt(player, j, now)
        if j.outcome is Outcome.SOLVED:
            return self._solve_attempt(player, j, now)
        if j.outcome is Outcome.BROKEN:
            return self._break_attempt(player, j, now)
        return self._fail_attempt(player, j, now)

    # ---- attempt updates ----
    def _progress(self, player: Player, j: Judgment, status: str, now: int) -> AdminPlayerProgress:
        return AdminPlayerProgress(
            playerId=player.id,
            nickname=player.nickname,
            attemptedMove=j.played or j.attempted,
            status=status,
            opponentMove=j.opponent_move,
            expectedMoves=list(j.expected) if status in ("incorrect_step", "configuration_error") else [],
            timestamp=now,
        )

    def _advance_attempt(self, player: Player, j: Judgment, now: int) -> List[Delivery]:
        player.status = AttemptStatus.IN_PROGRESS
        player.step = j.step
        player.position = j.position
        player.viable_lines = j.viable
        return [
            to(player.id, PuzzleStepSuccess(
                newPosition=j.position, playedMove=j.played, opponentMove=j.opponent_move, nextStepExpected=True)),
            to(self.admin_id, self._progress(player, j, "correct_step", now)),
        ]

    def _solve_attempt(self, player: Player, j: Judgment, now: int) -> List[Delivery]:
        player.status = AttemptStatus.SUCCEEDED
        player.step = j.step
        player.position = j.position
        player.viable_lines = j.viable
        player.line_id = j.line_id
        player.completed_at = now
        return [
            to(player.id, PuzzleStepSuccess(
                newPosition=j.position, playedMove=j.played, opponentMove=j.opponent_move, nextStepExpected=False)),
            to(self.participants, PlayerCompletedSequence(
                playerId=player.id,
                nickname=player.nickname,
                finalPosition=j.position,
                elapsedMs=max(0, now - (self.launched_at or now)),
                lineId=j.line_id,
            )),
            to(self.admin_id, self._progress(player, j, "completed", now)),
        ]

    def _fail_attempt(self, player: Player, j: Judgment, now: int) -> List[Delivery]:
        player.status = AttemptStatus.FAILED
        player.completed_at = now
        message = "Incorrect move." if j.played else "Illegal move."
        return [
            to(player.id, PuzzleStepFailed(attemptedMove=j.attempted, message=message)),
            to(self.participants, PlayerFailedSequence(
                playerId=player.id, nickname=player.nickname, attemptedMove=j.attempted)),
            to(self.admin_id, self._progress(player, j, "incorrect_step", now)),
        ]

    def _break_attempt(self, player: Player, j: Judgment, now: int) -> List[Delivery]:
        # The player's move was fine; the puzzle definition is not.
        player.status = AttemptStatus.FAILED
        player.position = j.position
        player.completed_at = now
        err = ConfigurationIntegrityError(
            "This puzzle's solution can't be continued (configured opponent move is illegal). "
            "Please tell the administrator.",
            line_id=j.line_id, step=j.step,
        )
        logger.error("[session %s] puzzle %d misconfigured: %s", self.id, self.puzzle_index, j.error)
        return [
            to(player.id, ErrorMessage(code=err.code, message=err.message)),
            to(self.participants, PlayerFailedSequence(
                playerId=player.id, nickname=player.nickname, attemptedMove=j.attempted)),
            to(self.admin_id, self._progress(player, j, "configuration_error", now)),
            to(self.admin_id, ErrorMessage(
                code=err.code, message=f"Puzzle {self.puzzle_index + 1}: {j.error}", field="solutionLines")),
        ]

    # ---- connection loss ----
    def drop_connection(self, conn_id: str) -> List[Delivery]:
        if self.is_admin(conn_id):
            logger.info("[session %s] admin disconnected", self.id)
            return [to(list(self.players), AdminDisconnected(
                message="The administrator has disconnected. The session may end soon."))]
        player = self.players.pop(conn_id, None)
        if player is None:
            return []
        logger.info("[session %s] %s left (%d players)", self.id, player.nickname, len(self.players))
        return [to(self.participants, PlayerLeft(
            playerId=conn_id, nickname=player.nickname, players=self.player_list()))]
