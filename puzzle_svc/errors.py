# Path: puzzle_svc/errors.py
"""
Purpose: Exception hierarchy for session commands.
Usage: raised by the session aggregate/registry, turned into `error` frames by the orchestrator.

Each class carries the `code` sent to the offending client. None of these
leave the aggregate in a modified state.
"""
from __future__ import annotations

from typing import Optional


class PuzzleSessionError(Exception):
    """Base exception for all session command failures."""

    code = "error"

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class NotAuthorizedError(PuzzleSessionError):
    """Caller lacks the identity the command requires (admin, joined player)."""

    code = "not_authorized"


class SessionNotFoundError(PuzzleSessionError):
    code = "not_found"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' not found or has ended.")


class PuzzleNotFoundError(PuzzleSessionError):
    code = "not_found"

    def __init__(self, puzzle_index: int, total: int):
        self.puzzle_index = puzzle_index
        self.total = total
        super().__init__(
            f"Puzzle index {puzzle_index} is out of range (session has {total} puzzles).",
            field="puzzleIndex",
        )


class PuzzleValidationError(PuzzleSessionError):
    """Bad nickname, empty solution line, non-positive points, malformed FEN..."""

    code = "validation"


class SessionStateError(PuzzleSessionError):
    """Command not allowed in the session's current phase or the attempt's state."""

    code = "invalid_state"


class ConfigurationIntegrityError(PuzzleSessionError):
    """A configured opponent reply cannot be played from the reached position."""

    code = "configuration"

    def __init__(self, message: str, line_id: Optional[str] = None, step: Optional[int] = None):
        self.line_id = line_id
        self.step = step
        super().__init__(message)
