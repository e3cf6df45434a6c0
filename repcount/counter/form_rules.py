# Declarative form checks.
#
# Each rule is plain data naming the joints it reads and a limit; one
# interpreter (`rule_triggered`) evaluates every kind, so a new exercise only
# needs new table rows. A rule that cannot find its joints does not fire.
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from repcount.counter.pose_core import JointSet, angle_3pt, joint_at


@dataclass(frozen=True)
class HorizontalDeviation:
    """Fires when |x(a) - x(b)| exceeds max_delta (normalized units)."""
    name: str
    message: str
    a: int
    b: int
    max_delta: float
    kind: str = "horizontal_deviation"


@dataclass(frozen=True)
class VerticalDeviation:
    """Fires when |y(a) - y(b)| exceeds max_delta (normalized units)."""
    name: str
    message: str
    a: int
    b: int
    max_delta: float
    kind: str = "vertical_deviation"


@dataclass(frozen=True)
class AngleBelow:
    """Fires when the angle at b (a-b-c) drops under limit degrees."""
    name: str
    message: str
    a: int
    b: int
    c: int
    limit: float
    kind: str = "angle_below"


@dataclass(frozen=True)
class AngleAbove:
    """Fires when the angle at b (a-b-c) rises over limit degrees."""
    name: str
    message: str
    a: int
    b: int
    c: int
    limit: float
    kind: str = "angle_above"


FormRule = Union[HorizontalDeviation, VerticalDeviation, AngleBelow, AngleAbove]


def _points(joints: JointSet, idxs: Tuple[int, ...]):
    pts = [joint_at(joints, i) for i in idxs]
    if any(p is None for p in pts):
        return None
    return pts


def rule_triggered(rule: FormRule, joints: Optional[JointSet]) -> bool:
    if isinstance(rule, (HorizontalDeviation, VerticalDeviation)):
        pts = _points(joints, (rule.a, rule.b))
        if pts is None:
            return False
        a, b = pts
        if isinstance(rule, HorizontalDeviation):
            return abs(a.x - b.x) > rule.max_delta
        return abs(a.y - b.y) > rule.max_delta

    if isinstance(rule, (AngleBelow, AngleAbove)):
        pts = _points(joints, (rule.a, rule.b, rule.c))
        if pts is None:
            return False
        ang = angle_3pt(pts[0].xy, pts[1].xy, pts[2].xy)
        if isinstance(rule, AngleBelow):
            return ang < rule.limit
        return ang > rule.limit

    raise TypeError(f"unsupported form rule: {rule!r}")


def evaluate_form(joints: Optional[JointSet], rules: Sequence[FormRule]) -> Optional[str]:
    """Return the message of the first rule that fires, or None. Later rules are not evaluated."""
    for rule in rules:
        if rule_triggered(rule, joints):
            return rule.message
    return None
