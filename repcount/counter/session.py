from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from repcount.common.events import EventType, FrameResult, SessionRecord
from repcount.counter.pipeline import VISIBILITY_MIN, FramePipeline
from repcount.counter.pose_core import JointSet
from repcount.counter.profiles import ExerciseProfile, get_profile, next_exercise
from repcount.counter.smoother import ANGLE_HISTORY_SIZE
from repcount.data.db import SessionRecorder

logger = logging.getLogger(__name__)


@dataclass
class SessionStatus:
    exercise: str
    stage: Optional[str]
    count: int
    angle: int


class RepSessionManager:
    """
    Owns the active exercise and its frame pipeline.

    process_frame, select_exercise and reset are serialized on one lock, so a
    switch never lands in the middle of a frame.
    """
    def __init__(
        self,
        recorder: Optional[SessionRecorder] = None,
        exercise: str = "bicep_curl",
        visibility_min: float = VISIBILITY_MIN,
        window: int = ANGLE_HISTORY_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        self.recorder = recorder
        self.visibility_min = visibility_min
        self.window = window
        self.clock = clock
        self._lock = threading.RLock()
        self._event_sink: Optional[Callable[[dict], None]] = None
        self._last_alert: Optional[str] = None
        self.profile: ExerciseProfile = get_profile(exercise)
        self.pipeline = self._make_pipeline(self.profile)

    def _make_pipeline(self, profile: ExerciseProfile) -> FramePipeline:
        return FramePipeline(
            profile,
            visibility_min=self.visibility_min,
            window=self.window,
            debug_cb=lambda msg: self._emit({"type": EventType.TRACE.value, "msg": msg}),
        )

    def set_event_sink(self, sink: Optional[Callable[[dict], None]]):
        self._event_sink = sink

    def _emit(self, ev: dict):
        if self._event_sink is None:
            return
        try:
            self._event_sink(ev)
        except Exception:
            logger.exception("event sink failed for %s", ev.get("type"))

    @property
    def exercise(self) -> str:
        return self.profile.key

    @property
    def count(self) -> int:
        return self.pipeline.machine.rep_count

    def process_frame(self, joints: Optional[JointSet]) -> FrameResult:
        with self._lock:
            prev_stage = self.pipeline.machine.stage
            res = self.pipeline.process_frame(joints)
            alert_changed = res.form_alert != self._last_alert
            self._last_alert = res.form_alert

        if res.stage != prev_stage:
            self._emit({"type": EventType.STAGE.value, "stage": res.stage})
        if res.rep_delta:
            self._emit({"type": EventType.REP.value, "count": res.rep_count})
        if alert_changed:
            self._emit({"type": EventType.FORM.value, "alert": res.form_alert})
        return res

    def _close_session(self) -> Optional[SessionRecord]:
        reps = self.count
        if reps <= 0:
            return None
        rec = SessionRecord(ts=self.clock(), exercise=self.exercise, reps=reps)
        logger.info("session closed: %s x%d", rec.exercise, rec.reps)
        if self.recorder is not None:
            try:
                self.recorder.record(rec)
            except Exception:
                logger.exception("failed to record session %s", rec)
        self._emit({"type": EventType.SESSION.value, "record": rec.to_dict()})
        return rec

    def reset(self) -> Optional[SessionRecord]:
        """Hand the current count to the recorder (if any reps) and start over."""
        with self._lock:
            rec = self._close_session()
            self.pipeline.reset()
            self._last_alert = None
        logger.info("counters reset for %s", self.exercise)
        return rec

    def select_exercise(self, exercise: str) -> bool:
        """
        Switch the active exercise. Returns False when `exercise` is already
        active (no-op). Unknown keys raise before anything changes.
        """
        profile = get_profile(exercise)
        with self._lock:
            if profile.key == self.profile.key:
                return False
            self._close_session()
            self.pipeline.reset()
            self._last_alert = None
            old = self.profile.key
            self.profile = profile
            self.pipeline = self._make_pipeline(profile)
        logger.info("exercise switched %s -> %s", old, profile.key)
        self._emit({"type": EventType.EXERCISE.value, "exercise": profile.key})
        return True

    def cycle_exercise(self, step: int = 1) -> str:
        with self._lock:
            key = next_exercise(self.exercise, step)
            self.select_exercise(key)
        return key

    def status(self) -> SessionStatus:
        with self._lock:
            return SessionStatus(
                exercise=self.exercise,
                stage=self.pipeline.machine.stage,
                count=self.count,
                angle=int(round(self.pipeline.angle)),
            )
