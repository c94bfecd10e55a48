# Path: puzzle_svc/notation.py
"""
Purpose: Turn admin-entered move lines ("1. e4 e5, 2. Nf3 ...") into move tokens.
Usage: normalize_line(raw) when a puzzle is updated; normalize_move(raw) for live player input.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Union

# "12." / "12..." / "12…" move numbers; the dots must touch the digits
_MOVE_NUMBER = re.compile(r"(?<![A-Za-z])\d+(?:\.\.\.|\.|…)+")
_SEPARATORS = re.compile(r"[,;]")


def normalize_line(raw: Union[str, Iterable[str], None]) -> List[str]:
    if raw is None:
        return []
    if not isinstance(raw, str):
        raw = " ".join(str(tok) for tok in raw)
    # separators first, so a number match never spans one
    text = _SEPARATORS.sub(" ", raw)
    text = _MOVE_NUMBER.sub(" ", text)
    return [tok for tok in text.split() if tok]


def normalize_move(raw: object) -> str:
    # Live input is a single move; only surrounding whitespace is noise.
    if not isinstance(raw, str):
        return ""
    return raw.strip()


def join_line(tokens: Iterable[str]) -> str:
    return " ".join(tokens)
