import math

import pytest

from repcount.counter.pose_core import JointSample, Landmark as L

N_LANDMARKS = 33

# neutral standing pose, side-on: everything stacked on x=0.5
_BASE = {
    L.NOSE: (0.5, 0.1),
    L.LEFT_SHOULDER: (0.5, 0.3),
    L.RIGHT_SHOULDER: (0.5, 0.3),
    L.LEFT_ELBOW: (0.5, 0.5),
    L.RIGHT_ELBOW: (0.5, 0.5),
    L.LEFT_WRIST: (0.5, 0.7),
    L.RIGHT_WRIST: (0.5, 0.7),
    L.LEFT_HIP: (0.5, 0.6),
    L.RIGHT_HIP: (0.5, 0.6),
    L.LEFT_KNEE: (0.5, 0.75),
    L.RIGHT_KNEE: (0.5, 0.75),
    L.LEFT_ANKLE: (0.5, 0.9),
    L.RIGHT_ANKLE: (0.5, 0.9),
    L.LEFT_FOOT_INDEX: (0.52, 0.92),
    L.RIGHT_FOOT_INDEX: (0.52, 0.92),
}


def make_joints(overrides=None, visibility=1.0):
    joints = [JointSample(0.5, 0.5, visibility) for _ in range(N_LANDMARKS)]
    for idx, (x, y) in _BASE.items():
        joints[idx] = JointSample(x, y, visibility)
    for idx, val in (overrides or {}).items():
        joints[idx] = val if val is None or isinstance(val, JointSample) else JointSample(*val)
    return joints


def left_arm_at(angle_deg, visibility=1.0, **extra):
    """Pose whose left shoulder-elbow-wrist angle is `angle_deg`."""
    ex, ey = 0.5, 0.5
    r = 0.2
    t = math.radians(angle_deg)
    wrist = (ex + r * math.sin(t), ey - r * math.cos(t))
    overrides = {
        L.LEFT_SHOULDER: JointSample(0.5, 0.3, visibility),
        L.LEFT_ELBOW: JointSample(ex, ey, visibility),
        L.LEFT_WRIST: JointSample(wrist[0], wrist[1], visibility),
    }
    overrides.update(extra)
    return make_joints(overrides)


@pytest.fixture
def joints():
    return make_joints()
