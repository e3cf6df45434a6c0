from __future__ import annotations
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

from repcount.common.events import SessionRecord

logger = logging.getLogger(__name__)

SCHEMA = r"""
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS sessions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts REAL NOT NULL,
  exercise TEXT NOT NULL,
  reps INTEGER NOT NULL CHECK (reps > 0)
);

CREATE INDEX IF NOT EXISTS sessions_exercise ON sessions (exercise);
"""


class SessionRecorder(Protocol):
    def record(self, rec: SessionRecord) -> None: ...


class MemoryRecorder:
    """Keeps records in a list. Used for headless runs and tests."""
    def __init__(self):
        self.records: List[SessionRecord] = []

    def record(self, rec: SessionRecord):
        self.records.append(rec)

    def clear(self):
        self.records.clear()

    def load_sessions(self, exercise: Optional[str] = None) -> List[SessionRecord]:
        return [r for r in self.records if exercise is None or r.exercise == exercise]

    def totals_by_exercise(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for r in self.records:
            out[r.exercise] = out.get(r.exercise, 0) + r.reps
        return out


class SQLiteRecorder:
    def __init__(self, path: Union[str, Path] = "./workout.db"):
        self.path = Path(path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path.as_posix(), check_same_thread=False)
            self._conn.executescript(SCHEMA)
            self._conn.commit()
            logger.info("opened session store %s", self.path)
        return self._conn

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # Session writes

    def record(self, rec: SessionRecord):
        if rec.reps <= 0:
            return
        with self._lock:
            conn = self.get_conn()
            conn.execute(
                "INSERT INTO sessions (ts, exercise, reps) VALUES (?,?,?)",
                (rec.ts, rec.exercise, rec.reps),
            )
            conn.commit()

    def clear(self):
        with self._lock:
            conn = self.get_conn()
            conn.execute("DELETE FROM sessions")
            conn.commit()
        logger.info("cleared session history in %s", self.path)

    # History reads

    def load_sessions(self, exercise: Optional[str] = None) -> List[SessionRecord]:
        with self._lock:
            conn = self.get_conn()
            if exercise is None:
                rows = conn.execute("SELECT ts, exercise, reps FROM sessions ORDER BY ts, id").fetchall()
            else:
                rows = conn.execute(
                    "SELECT ts, exercise, reps FROM sessions WHERE exercise=? ORDER BY ts, id",
                    (exercise,),
                ).fetchall()
        return [SessionRecord(ts=ts, exercise=ex, reps=reps) for ts, ex, reps in rows]

    def totals_by_exercise(self) -> Dict[str, int]:
        with self._lock:
            rows = self.get_conn().execute(
                "SELECT exercise, SUM(reps) FROM sessions GROUP BY exercise ORDER BY exercise"
            ).fetchall()
        return {ex: int(total) for ex, total in rows}
