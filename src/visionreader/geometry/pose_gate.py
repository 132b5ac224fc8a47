from __future__ import annotations
from typing import Callable, NamedTuple, Sequence

from ..schemas.landmarks import REQUIRED_LANDMARKS, VisionMode
from ..schemas.metrics import PoseStatus
from .extract import FACE, _ratio

MSG_NO_FACE = "No face detected"
MSG_CENTERED = "Perfect position"

class GateRule(NamedTuple):
    name: str
    measure: Callable[[Sequence], float]
    lo: float
    hi: float
    below_msg: str
    above_msg: str

def _yaw(lms: Sequence) -> float:
    """Nose tip x as a fraction of the cheek-to-cheek span (0.5 is frontal)."""
    left = lms[FACE["cheek_left"]]
    right = lms[FACE["cheek_right"]]
    nose = lms[FACE["nose_tip"]]
    return _ratio(nose.x - left.x, right.x - left.x)

def _pitch(lms: Sequence) -> float:
    """Eye-line-to-nose height over nose-to-chin height."""
    eye_y = (lms[FACE["eye_left_outer"]].y + lms[FACE["eye_right_outer"]].y) * 0.5
    nose_y = lms[FACE["nose_tip"]].y
    chin_y = lms[FACE["chin"]].y
    return _ratio(nose_y - eye_y, chin_y - nose_y)

# Order is the tie-break: yaw is reported before pitch.
HEAD_POSE_RULES: tuple[GateRule, ...] = (
    GateRule("yaw", _yaw, 0.35, 0.65, "Turn your head left", "Turn your head right"),
    GateRule("pitch", _pitch, 0.35, 0.95, "Don't tilt your head up", "Don't tilt your head down"),
)

def check_head_pose(landmarks: Sequence | None) -> PoseStatus:
    if not landmarks or len(landmarks) < REQUIRED_LANDMARKS[VisionMode.FACE]:
        return PoseStatus(is_centered=False, message=MSG_NO_FACE)
    for rule in HEAD_POSE_RULES:
        v = rule.measure(landmarks)
        if v < rule.lo:
            return PoseStatus(is_centered=False, message=rule.below_msg)
        if v > rule.hi:
            return PoseStatus(is_centered=False, message=rule.above_msg)
    return PoseStatus(is_centered=True, message=MSG_CENTERED)
