from __future__ import annotations
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

Stage = Literal["up", "down"]


class EventType(str, Enum):
    STAGE = "stage"
    REP = "rep"
    FORM = "form"
    EXERCISE = "exercise"
    SESSION = "session"
    TRACE = "trace"


@dataclass
class FrameResult:
    angle: int                 # rounded smoothed angle of the last counted frame
    stage: Optional[Stage]
    rep_count: int
    form_alert: Optional[str]
    rep_delta: int = 0
    counted: bool = False      # False when the visibility gate skipped counting

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SessionRecord:
    ts: float
    exercise: str
    reps: int

    @property
    def date(self) -> str:
        return datetime.fromtimestamp(self.ts, tz=timezone.utc).isoformat()

    def to_dict(self) -> dict:
        return {"date": self.date, "ts": self.ts, "exercise": self.exercise, "reps": self.reps}
