# Path: puzzle_svc/activity_log.py
"""
Purpose: Best-effort, append-only activity log (one JSON object per line).
Usage: log = ActivityLog(path); log.record("PUZZLE_LAUNCHED", sessionId=..., puzzleIndex=...); log.close()

Never authoritative: a failed write is logged and dropped so the session
transition that triggered it still completes. `record` only serializes and
enqueues; a logging QueueListener thread does the file I/O, so the event
loop never waits on disk. `close` drains the queue.
"""
from __future__ import annotations

import json
import logging
import queue
from datetime import datetime, timezone
from logging.handlers import QueueListener
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger("puzzle_svc.activity")


class _ActivityFileHandler(logging.FileHandler):
    def emit(self, record: logging.LogRecord) -> None:
        # FileHandler opens the file (delay=True) outside its own error handling
        try:
            super().emit(record)
        except Exception:
            self.handleError(record)

    def handleError(self, record: logging.LogRecord) -> None:
        logger.warning("[activity] could not write to %s", self.baseFilename, exc_info=True)


class ActivityLog:
    def __init__(self, path: Optional[Union[str, Path]]) -> None:
        self.path = Path(path) if path else None
        self._queue: Optional[queue.SimpleQueue] = None
        self._listener: Optional[QueueListener] = None
        self._handler: Optional[logging.Handler] = None
        if self.path is not None:
            self._handler = _ActivityFileHandler(self.path, mode="a", encoding="utf-8", delay=True)
            self._handler.setFormatter(logging.Formatter("%(message)s"))
            self._queue = queue.SimpleQueue()
            self._listener = QueueListener(self._queue, self._handler)
            self._listener.start()

    @property
    def enabled(self) -> bool:
        return self._queue is not None

    def record(self, event: str, **data: Any) -> bool:
        if self._queue is None:
            return False
        entry = {"timestamp": datetime.now(timezone.utc).isoformat(), "event": event, **data}
        try:
            line = json.dumps(entry, separators=(",", ":"), default=str, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.warning("[activity] could not serialize %s: %s", event, e)
            return False
        self._queue.put_nowait(logging.makeLogRecord({"name": logger.name, "msg": line, "levelno": logging.INFO}))
        return True

    def close(self) -> None:
        """Write out everything queued so far; later records are dropped."""
        if self._listener is None:
            return
        self._listener.stop()
        self._handler.close()
        self._listener = None
        self._queue = None
