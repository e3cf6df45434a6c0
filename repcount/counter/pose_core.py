from __future__ import annotations
import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Sequence, Tuple

# MediaPipe Pose landmark numbering (33 points)

class Landmark(IntEnum):
    NOSE = 0
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


@dataclass(frozen=True)
class JointSample:
    x: float
    y: float
    visibility: float = 1.0  # landmarks without a confidence count as visible

    @property
    def xy(self) -> Tuple[float, float]:
        return (self.x, self.y)


JointSet = Sequence[Optional[JointSample]]

# Utility math

def angle_3pt(a: Tuple[float, float], b: Tuple[float, float], c: Tuple[float, float]) -> float:
    """Return angle ABC in degrees with B as vertex, folded into [0, 180]."""
    try:
        ang = math.degrees(
            math.atan2(c[1] - b[1], c[0] - b[0]) - math.atan2(a[1] - b[1], a[0] - b[0])
        )
        ang = abs(ang)
        if ang > 180:
            ang = 360 - ang
        return ang
    except (TypeError, ValueError):
        return 0.0


def joint_at(joints: Optional[JointSet], idx: int) -> Optional[JointSample]:
    if not joints or idx < 0 or idx >= len(joints):
        return None
    return joints[idx]


def is_usable(sample: Optional[JointSample], min_visibility: float) -> bool:
    """A joint feeds the counter only if present, finite and strictly above the visibility floor."""
    if sample is None:
        return False
    if not (math.isfinite(sample.x) and math.isfinite(sample.y)):
        return False
    return sample.visibility > min_visibility
