from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from repcount.common.errors import UnknownExerciseError
from repcount.counter.form_rules import (
    AngleBelow,
    FormRule,
    HorizontalDeviation,
    VerticalDeviation,
)
from repcount.counter.pose_core import Landmark as L


@dataclass(frozen=True)
class ExerciseProfile:
    key: str
    label: str
    # (proximal, pivot, distal) landmark indices; the angle is measured at the pivot
    joints: Tuple[int, int, int]
    # Two independent crossing levels. Not a sorted pair: shoulder press has up > down.
    up_threshold: float    # angle < this  -> "up" candidate
    down_threshold: float  # angle > this  -> "down" candidate
    hold_frames: int       # consecutive frames needed to confirm a stage
    hint: str = ""
    form_rules: Tuple[FormRule, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.hold_frames < 1:
            raise ValueError(f"{self.key}: hold_frames must be positive")


EXERCISES: Dict[str, ExerciseProfile] = {
    "bicep_curl": ExerciseProfile(
        key="bicep_curl",
        label="Bicep Curl",
        joints=(L.LEFT_SHOULDER, L.LEFT_ELBOW, L.LEFT_WRIST),
        up_threshold=50,
        down_threshold=150,
        hold_frames=12,
        hint='Left arm visible. Full extension = "down", full curl = "up".',
        form_rules=(
            HorizontalDeviation(
                name="elbow_drift",
                message="Keep your elbow pinned to your side",
                a=L.LEFT_SHOULDER, b=L.LEFT_ELBOW, max_delta=0.08,
            ),
            HorizontalDeviation(
                name="body_swing",
                message="Stop swinging your torso",
                a=L.LEFT_SHOULDER, b=L.LEFT_HIP, max_delta=0.10,
            ),
        ),
    ),
    "squat": ExerciseProfile(
        key="squat",
        label="Squat",
        joints=(L.LEFT_HIP, L.LEFT_KNEE, L.LEFT_ANKLE),
        up_threshold=100,
        down_threshold=160,
        hold_frames=15,
        hint='Stand side-on to camera. Standing = "down", deep squat = "up".',
        form_rules=(
            AngleBelow(
                name="torso_lean",
                message="Keep your chest up",
                a=L.LEFT_SHOULDER, b=L.LEFT_HIP, c=L.LEFT_KNEE, limit=45,
            ),
            HorizontalDeviation(
                name="knees_past_toes",
                message="Sit back, knees are drifting past your toes",
                a=L.LEFT_KNEE, b=L.LEFT_FOOT_INDEX, max_delta=0.12,
            ),
        ),
    ),
    "pushup": ExerciseProfile(
        key="pushup",
        label="Push-up",
        joints=(L.LEFT_SHOULDER, L.LEFT_ELBOW, L.LEFT_WRIST),
        up_threshold=90,
        down_threshold=155,
        hold_frames=12,
        hint='Camera side-on. Arms extended = "down", chest to floor = "up".',
        form_rules=(
            AngleBelow(
                name="hip_line",
                message="Keep your body in a straight line",
                a=L.LEFT_SHOULDER, b=L.LEFT_HIP, c=L.LEFT_ANKLE, limit=150,
            ),
        ),
    ),
    "shoulder_press": ExerciseProfile(
        key="shoulder_press",
        label="Shoulder Press",
        joints=(L.LEFT_SHOULDER, L.LEFT_ELBOW, L.LEFT_WRIST),
        up_threshold=160,   # arm extended overhead
        down_threshold=90,  # elbow at ~90 degrees
        hold_frames=12,
        hint='Face camera. Arms at 90° = "down", fully pressed overhead = "up".',
        form_rules=(
            VerticalDeviation(
                name="uneven_press",
                message="Press both arms evenly",
                a=L.LEFT_WRIST, b=L.RIGHT_WRIST, max_delta=0.10,
            ),
            HorizontalDeviation(
                name="lean_back",
                message="Don't lean back, keep your torso upright",
                a=L.LEFT_SHOULDER, b=L.LEFT_HIP, max_delta=0.08,
            ),
        ),
    ),
}


def get_profile(key: str) -> ExerciseProfile:
    try:
        return EXERCISES[key]
    except KeyError:
        raise UnknownExerciseError(key) from None


def exercise_keys() -> List[str]:
    return list(EXERCISES)


def next_exercise(key: str, step: int = 1) -> str:
    """Neighbour of `key` in table order, wrapping around (step=-1 goes back)."""
    keys = exercise_keys()
    if key not in EXERCISES:
        raise UnknownExerciseError(key)
    return keys[(keys.index(key) + step) % len(keys)]


def previous_exercise(key: str) -> str:
    return next_exercise(key, -1)
