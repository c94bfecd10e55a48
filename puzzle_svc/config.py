# Path: puzzle_svc/config.py
"""
Purpose: Runtime settings (environment) and fixed game constants.
Usage: from puzzle_svc import config
"""
from __future__ import annotations

import os

# ---- Environment ----
ACTIVITY_LOG_PATH = os.getenv("PUZZLE_SVC_ACTIVITY_LOG", "session_activity_log.jsonl")
LOG_LEVEL = os.getenv("PUZZLE_SVC_LOG_LEVEL", "INFO").upper()
HOST = os.getenv("PUZZLE_SVC_HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "10000"))

# ---- Puzzle slots ----
DEFAULT_POSITION = "4k3/8/8/8/8/8/8/4K3 w - - 0 1"  # bare kings until the admin configures the slot
DEFAULT_TIMER = 60
DEFAULT_POINTS = 3
MIN_TIMER = 10
MAX_TIMER = 3600
MAX_SOLUTION_LINES = 3
MAX_PUZZLES = 50

# ---- Players ----
MAX_NICKNAME = 32

# ---- Scoring ----
BONUS_MULTIPLIER = 1.0  # instant solve = 2x base, time limit = 1x base
SCORE_DECIMALS = 2

SESSION_ID_LENGTH = 6

CORS_ORIGINS = [o.strip() for o in os.getenv("PUZZLE_SVC_CORS_ORIGINS", "*").split(",") if o.strip()]
