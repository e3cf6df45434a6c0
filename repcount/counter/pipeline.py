from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from repcount.common.events import FrameResult, Stage
from repcount.counter.form_rules import evaluate_form
from repcount.counter.pose_core import JointSet, angle_3pt, is_usable, joint_at
from repcount.counter.profiles import ExerciseProfile
from repcount.counter.smoother import ANGLE_HISTORY_SIZE, AngleSmoother

logger = logging.getLogger(__name__)

VISIBILITY_MIN = 0.5


@dataclass
class StepResult:
    stage: Optional[Stage]
    rep_delta: int = 0


class RepStateMachine:
    """
    Debounced two-level hysteresis over the smoothed angle.

    angle > down_threshold and angle < up_threshold are two independent
    crossings sharing one hold counter. Anything in between resets the counter.
    A rep is credited when "down" is confirmed while the stage is "up".
    """
    def __init__(self, profile: ExerciseProfile, debug_cb: Optional[Callable[[str], None]] = None):
        self.profile = profile
        self._dbg = debug_cb or (lambda *_: None)
        self.reset()

    def reset(self):
        self.stage: Optional[Stage] = None
        self.rep_count = 0
        self.hold_count = 0

    def pause(self):
        # frame skipped by the visibility gate: drop debounce credit, keep stage
        self.hold_count = 0

    def _enter_stage(self, new_stage: Stage):
        if new_stage != self.stage:
            self.stage = new_stage
            self._dbg(f"state→{new_stage}")
            logger.debug("%s: stage -> %s", self.profile.key, new_stage)

    def process(self, angle: float) -> StepResult:
        cfg = self.profile
        delta = 0
        if angle > cfg.down_threshold:
            self.hold_count += 1
            if self.hold_count >= cfg.hold_frames:
                if self.stage == "up":
                    self.rep_count += 1
                    delta = 1
                    self._dbg(f"rep++ ({self.rep_count})")
                    logger.debug("%s: rep %d", cfg.key, self.rep_count)
                self._enter_stage("down")
                self.hold_count = 0
        elif angle < cfg.up_threshold:
            self.hold_count += 1
            if self.hold_count >= cfg.hold_frames:
                self._enter_stage("up")
                self.hold_count = 0
        else:
            self.hold_count = 0
        return StepResult(stage=self.stage, rep_delta=delta)


class FramePipeline:
    """
    One exercise's per-frame processing: form check on the full joint set,
    then visibility gate -> angle -> smoother -> state machine.
    Not thread-safe; callers serialize access.
    """
    def __init__(
        self,
        profile: ExerciseProfile,
        visibility_min: float = VISIBILITY_MIN,
        window: int = ANGLE_HISTORY_SIZE,
        debug_cb: Optional[Callable[[str], None]] = None,
    ):
        self.profile = profile
        self.visibility_min = visibility_min
        self.smoother = AngleSmoother(window)
        self.machine = RepStateMachine(profile, debug_cb=debug_cb)
        self.angle = 0.0

    def reset(self):
        self.smoother.clear()
        self.machine.reset()
        self.angle = 0.0

    def snapshot(self, form_alert: Optional[str] = None) -> FrameResult:
        return FrameResult(
            angle=int(round(self.angle)),
            stage=self.machine.stage,
            rep_count=self.machine.rep_count,
            form_alert=form_alert,
        )

    def process_frame(self, joints: Optional[JointSet]) -> FrameResult:
        form_alert = evaluate_form(joints, self.profile.form_rules)

        ai, bi, ci = self.profile.joints
        a, b, c = joint_at(joints, ai), joint_at(joints, bi), joint_at(joints, ci)
        if not all(is_usable(j, self.visibility_min) for j in (a, b, c)):
            self.machine.pause()
            return self.snapshot(form_alert)

        raw = angle_3pt(a.xy, b.xy, c.xy)
        self.angle = self.smoother.push(raw)
        step = self.machine.process(self.angle)

        res = self.snapshot(form_alert)
        res.rep_delta = step.rep_delta
        res.counted = True
        return res
