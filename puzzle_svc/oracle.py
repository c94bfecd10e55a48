# Path: puzzle_svc/oracle.py
"""
Chess rules access (python-chess) behind an immutable position value.

- FEN parsing/validation
- SAN (or UCI) move application with legality check
- Every move yields a NEW Position; no chess.Board instance outlives a call
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import chess


class InvalidPositionError(ValueError):
    pass


class IllegalMoveError(ValueError):
    pass


@dataclass(frozen=True)
class PlayedMove:
    san: str
    uci: str
    position: "Position"


@dataclass(frozen=True)
class Position:
    fen: str

    @classmethod
    def parse(cls, fen: str) -> "Position":
        if not isinstance(fen, str) or not fen.strip():
            raise InvalidPositionError("position is empty")
        try:
            board = chess.Board(fen.strip())
        except ValueError as e:
            raise InvalidPositionError(f"invalid FEN: {e}") from e
        if not board.is_valid():
            raise InvalidPositionError(f"illegal position: {board.status()!r}")
        return cls(board.fen())

    def board(self) -> chess.Board:
        # Fresh copy per call; callers may mutate it freely.
        return chess.Board(self.fen)

    @property
    def turn(self) -> str:
        return "w" if self.board().turn == chess.WHITE else "b"

    def _resolve(self, board: chess.Board, text: str) -> chess.Move:
        text = (text or "").strip().rstrip("!?")
        if not text:
            raise IllegalMoveError("empty move")
        try:
            mv = board.parse_san(text)
        except ValueError:
            pass
        else:
            if not mv:  # "--" parses as a null move
                raise IllegalMoveError(f"illegal move: {text}")
            return mv
        # Accept coordinate input (e2e4, e7e8q) as a fallback.
        try:
            mv = chess.Move.from_uci(text.lower())
        except ValueError:
            raise IllegalMoveError(f"illegal move: {text}")
        if mv not in board.legal_moves:
            raise IllegalMoveError(f"illegal move: {text}")
        return mv

    def play(self, text: str) -> PlayedMove:
        board = self.board()
        mv = self._resolve(board, text)
        san = board.san(mv)
        board.push(mv)
        return PlayedMove(san=san, uci=mv.uci(), position=Position(board.fen()))

    def resolve_uci(self, text: str) -> Optional[str]:
        """UCI of `text` on this position, or None when it is not a legal move here."""
        try:
            return self._resolve(self.board(), text).uci()
        except IllegalMoveError:
            return None
