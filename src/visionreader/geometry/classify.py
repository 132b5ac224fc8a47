from __future__ import annotations
from typing import Callable, NamedTuple

from ..schemas.metrics import DominantZone, HandElement, PostureType

# ---- dominant facial zone ----

# Minimum lead (normalized units) a zone needs over every other zone.
# Keeps a still face from flapping between labels on sub-pixel jitter.
ZONE_TOLERANCE = 0.01

def classify_dominant_zone(upper: float, middle: float, lower: float, *, tolerance: float = ZONE_TOLERANCE) -> DominantZone:
    zones: tuple[tuple[DominantZone, float], ...] = (("upper", upper), ("middle", middle), ("lower", lower))
    top = max(v for _, v in zones)
    for name, v in zones:
        if v != top:
            continue
        if all(v > other + tolerance for n, other in zones if n != name):
            return name
    return "balanced"

# ---- hand element ----

PALM_SQUARE_MIN = 0.88
FINGER_LONG_MIN = 0.80

# (square palm, long fingers) -> element
HAND_ELEMENT_TABLE: dict[tuple[bool, bool], HandElement] = {
    (True, False): "earth",
    (False, False): "fire",
    (True, True): "air",
    (False, True): "water",
}

def classify_hand_element(palm_ratio: float, finger_length_ratio: float) -> HandElement:
    key = (palm_ratio >= PALM_SQUARE_MIN, finger_length_ratio >= FINGER_LONG_MIN)
    return HAND_ELEMENT_TABLE[key]

# ---- posture ----

class PostureRule(NamedTuple):
    name: str
    applies: Callable[[float, float], bool]
    label: Callable[[float, float], PostureType]

def _lean(shoulder_balance: float, _torso: float) -> PostureType:
    # Positive balance: right shoulder sits lower in image coordinates.
    return "leaning_right" if shoulder_balance > 0 else "leaning_left"

SHOULDER_LEAN_MIN = 0.05
TORSO_SHIFT_MIN = 0.05
SHOULDER_LEAN_MIN_UPPER_BODY = 0.04
HIP_VISIBILITY_MIN = 0.5

# Evaluated top to bottom, first match wins.
POSTURE_RULES: tuple[PostureRule, ...] = (
    PostureRule("shoulder_lean", lambda sb, ta: abs(sb) > SHOULDER_LEAN_MIN, _lean),
    PostureRule("torso_shift", lambda sb, ta: abs(ta) > TORSO_SHIFT_MIN, lambda sb, ta: "slouch"),
)

# Hips out of frame: torso alignment is meaningless, shoulders only.
UPPER_BODY_POSTURE_RULES: tuple[PostureRule, ...] = (
    PostureRule("shoulder_lean", lambda sb, ta: abs(sb) > SHOULDER_LEAN_MIN_UPPER_BODY, _lean),
)

def classify_posture(shoulder_balance: float, torso_alignment: float, *, hips_visible: bool = True) -> PostureType:
    rules = POSTURE_RULES if hips_visible else UPPER_BODY_POSTURE_RULES
    for rule in rules:
        if rule.applies(shoulder_balance, torso_alignment):
            return rule.label(shoulder_balance, torso_alignment)
    return "upright"

def hips_visible(left_hip, right_hip, *, thr: float = HIP_VISIBILITY_MIN) -> bool:
    """False when either hip reports a visibility below thr (upper-body framing)."""
    for lm in (left_hip, right_hip):
        v = getattr(lm, "visibility", None)
        if v is not None and float(v) < thr:
            return False
    return True
