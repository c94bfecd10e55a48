# Path: puzzle_svc/judge.py
"""
Move judging against one or more solution lines.

Tokens at even steps are the player's moves, odd steps the simulated
opponent's replies. Several lines may stay viable while they share a
prefix; a line is dropped as soon as the player's move differs from its
token. When the viable lines disagree on the opponent's reply no reply is
played and the player's next move picks the line.

Pure: takes the attempt's position/step/viable ids, returns a Judgment.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .models import SolutionLine
from .notation import normalize_move
from .oracle import IllegalMoveError, PlayedMove, Position

logger = logging.getLogger("puzzle_svc.judge")

_GLYPHS = "+#!?"


class Outcome(str, Enum):
    ADVANCE = "advance"
    SOLVED = "solved"
    FAILED = "failed"
    BROKEN = "broken"  # configured reply can't be played: puzzle definition error


@dataclass(frozen=True)
class Judgment:
    outcome: Outcome
    attempted: str
    played: Optional[str] = None
    position: Optional[str] = None
    opponent_move: Optional[str] = None
    step: int = 0
    viable: Tuple[str, ...] = ()
    line_id: Optional[str] = None
    expected: Tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def concluded(self) -> bool:
        return self.outcome is not Outcome.ADVANCE


def canonical(token: str) -> str:
    return token.strip().rstrip(_GLYPHS).lower()


def _matches(current: Position, played: PlayedMove, token: str) -> bool:
    uci = current.resolve_uci(token)
    if uci is not None:
        return uci == played.uci
    # Token doesn't parse here (e.g. lower-case piece letter): fall back to text.
    return canonical(token) == canonical(played.san)


def _reply_groups(after: Position, lines: Sequence[SolutionLine], step: int) -> Dict[str, List[SolutionLine]]:
    groups: Dict[str, List[SolutionLine]] = {}
    for ln in lines:
        token = ln.token(step) or ""
        key = after.resolve_uci(token) or f"?{canonical(token)}"
        groups.setdefault(key, []).append(ln)
    return groups


def judge_move(
    position: str,
    step: int,
    lines: Sequence[SolutionLine],
    viable: Sequence[str],
    move_text: str,
) -> Judgment:
    attempted = normalize_move(move_text)
    candidates = [ln for ln in lines if ln.id in viable and ln.token(step) is not None]
    expected = tuple(dict.fromkeys(ln.token(step) for ln in candidates))
    if not candidates:
        return Judgment(
            Outcome.BROKEN, attempted, position=position, step=step, viable=tuple(viable),
            error=f"no solution line has a move at step {step}",
        )

    current = Position(position)
    try:
        played = current.play(attempted)
    except IllegalMoveError:
        return Judgment(Outcome.FAILED, attempted, position=position, step=step,
                        viable=tuple(viable), expected=expected)

    matched = [ln for ln in candidates if _matches(current, played, ln.token(step))]
    if not matched:
        return Judgment(Outcome.FAILED, attempted, played=played.san, position=position,
                        step=step, viable=tuple(viable), expected=expected)

    ids = tuple(ln.id for ln in matched)
    nxt = step + 1
    done = [ln for ln in matched if len(ln.moves) == nxt]
    if done:
        return Judgment(Outcome.SOLVED, attempted, played=played.san, position=played.position.fen,
                        step=nxt, viable=ids, line_id=done[0].id, expected=expected)

    if step % 2 == 1:
        # Player just chose between divergent replies; their own move comes next.
        return Judgment(Outcome.ADVANCE, attempted, played=played.san, position=played.position.fen,
                        step=nxt, viable=ids, expected=expected)

    groups = _reply_groups(played.position, matched, nxt)
    if len(groups) > 1:
        return Judgment(Outcome.ADVANCE, attempted, played=played.san, position=played.position.fen,
                        step=nxt, viable=ids, expected=expected)

    reply_token = matched[0].token(nxt)
    try:
        reply = played.position.play(reply_token)
    except IllegalMoveError:
        logger.error("[judge] configured reply %r is illegal in %s (line %s, step %d)",
                     reply_token, played.position.fen, matched[0].id, nxt)
        return Judgment(Outcome.BROKEN, attempted, played=played.san, position=played.position.fen,
                        step=nxt, viable=ids, line_id=matched[0].id, expected=expected,
                        error=f"opponent move '{reply_token}' is illegal after {played.san}")

    after = nxt + 1
    done = [ln for ln in matched if len(ln.moves) == after]
    if done:
        return Judgment(Outcome.SOLVED, attempted, played=played.san, position=reply.position.fen,
                        opponent_move=reply.san, step=after, viable=ids, line_id=done[0].id,
                        expected=expected)
    return Judgment(Outcome.ADVANCE, attempted, played=played.san, position=reply.position.fen,
                    opponent_move=reply.san, step=after, viable=ids, expected=expected)
