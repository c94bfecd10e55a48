"""Shared test fixtures for the puzzle service.

Fixtures:
    clock         - FakeClock returning controllable epoch milliseconds.
    registry      - SessionRegistry driven by the fake clock.
    activity_path - Temp file path for the JSON Lines activity log.
    orchestrator  - Orchestrator over `registry`, logging to `activity_path`.
"""

from __future__ import annotations

import chess
import pytest

from puzzle_svc.activity_log import ActivityLog
from puzzle_svc.models import PuzzleConfig, SolutionLine
from puzzle_svc.orchestrator import Orchestrator
from puzzle_svc.registry import SessionRegistry

START = chess.STARTING_FEN
ADMIN = "admin-conn"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.ms = start_ms

    def __call__(self) -> int:
        return self.ms

    def advance(self, seconds: float) -> None:
        self.ms += int(seconds * 1000)


def make_puzzle(*lines, position: str = START, timer: int = 60) -> PuzzleConfig:
    """Build a PuzzleConfig from (moves, points) pairs; moves is a space-separated string."""
    built = []
    for i, (moves, points) in enumerate(lines, start=1):
        built.append(SolutionLine(id=f"line-{i}", moves=tuple(moves.split()), points=points, label=f"Line {i}"))
    return PuzzleConfig(position=position, lines=tuple(built), timer=timer)


def events(deliveries) -> list[str]:
    return [d.message.event for d in deliveries]


def sent_to(deliveries, conn_id: str) -> list:
    """Messages (in order) a given connection would receive."""
    return [d.message for d in deliveries if conn_id in d.recipients]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def registry(clock) -> SessionRegistry:
    return SessionRegistry(clock=clock)


@pytest.fixture()
def activity_path(tmp_path):
    return tmp_path / "activity.jsonl"


@pytest.fixture()
def orchestrator(registry, activity_path):
    orch = Orchestrator(registry, ActivityLog(activity_path))
    yield orch
    orch.activity.close()
