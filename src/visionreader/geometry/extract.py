from __future__ import annotations

import math
from typing import Sequence

from ..errors import InsufficientLandmarksError
from ..schemas.landmarks import REQUIRED_LANDMARKS, VisionMode
from ..schemas.metrics import (
    BodyMetrics,
    EarMetrics,
    FaceMetrics,
    FaceRatios,
    FaceZones,
    HandMetrics,
    TwelvePalaces,
    VisionMetrics,
)
from .classify import classify_dominant_zone, classify_hand_element, classify_posture, hips_visible

# Face Mesh indices (478-point topology, refined iris included)
FACE = {
    "forehead_top": 10, "brow_center": 9, "nose_bridge": 168, "nose_tip": 1, "chin": 152,
    "cheek_left": 234, "cheek_right": 454,
    "nose_wing_left": 49, "nose_wing_right": 279,
    "brow_left_top": 107, "brow_left_bottom": 66,
    "brow_right_top": 336, "brow_right_bottom": 296,
    "brow_left_inner": 55, "brow_right_inner": 285,
    "eye_left_outer": 33, "eye_left_inner": 133, "eye_left_top": 159, "eye_left_bottom": 145,
    "eye_right_outer": 263, "eye_right_inner": 362, "eye_right_bottom": 374,
    "lip_top": 0, "lip_top_inner": 13, "lip_bottom_inner": 14, "lip_bottom": 17,
    "mouth_left": 61, "mouth_right": 291,
    "jaw_left": 172, "jaw_right": 397, "chin_left": 148, "chin_right": 377,
    "cheekbone_left": 116, "cheekbone_right": 345,
    "forehead_left": 54, "forehead_right": 284,
    "forehead_corner_left": 103, "forehead_corner_right": 332,
    "temple_left": 127, "temple_right": 356,
    "under_eye_left": 118, "under_eye_right": 347,
}

# Hand Landmarker indices
HAND = {"wrist": 0, "index_mcp": 5, "middle_mcp": 9, "middle_tip": 12, "pinky_mcp": 17}

# Pose Landmarker indices (BlazePose 33)
BODY = {
    "left_ear": 7, "right_ear": 8,
    "left_shoulder": 11, "right_shoulder": 12,
    "left_hip": 23, "right_hip": 24,
}

def _dist2(a, b) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)

def _ratio(num: float, den: float) -> float:
    # Degenerate geometry (collapsed points) yields a neutral 0, never NaN/inf.
    if den == 0:
        return 0.0
    return num / den

def _require(landmarks: Sequence | None, mode: VisionMode) -> Sequence:
    need = REQUIRED_LANDMARKS[mode]
    if landmarks is None:
        raise InsufficientLandmarksError(mode.value, need, None)
    if len(landmarks) < need:
        raise InsufficientLandmarksError(mode.value, need, len(landmarks))
    return landmarks

def extract_face_metrics(landmarks: Sequence | None) -> FaceMetrics:
    lms = _require(landmarks, VisionMode.FACE)

    def p(name: str):
        return lms[FACE[name]]

    def d(a: str, b: str) -> float:
        return _dist2(p(a), p(b))

    upper = d("forehead_top", "brow_center")
    middle = d("brow_center", "nose_tip")
    lower = d("nose_tip", "chin")
    zones = FaceZones(upper=upper, middle=middle, lower=lower, dominant=classify_dominant_zone(upper, middle, lower))

    face_w = d("cheek_left", "cheek_right")
    face_h = d("forehead_top", "chin")
    eye_w_left = d("eye_left_outer", "eye_left_inner")
    eye_w_right = d("eye_right_outer", "eye_right_inner")
    top_lip = d("lip_top", "lip_top_inner")
    bottom_lip = d("lip_bottom_inner", "lip_bottom")
    jaw_w = d("jaw_left", "jaw_right")
    half_left = d("nose_tip", "cheek_left")
    half_right = d("nose_tip", "cheek_right")

    mouth_center_y = (p("lip_top_inner").y + p("lip_bottom_inner").y) * 0.5
    mouth_corner_y = (p("mouth_left").y + p("mouth_right").y) * 0.5
    cheekbone_y = (p("cheekbone_left").y + p("cheekbone_right").y) * 0.5
    halves = half_left + half_right
    symmetry = 1.0 - _ratio(abs(half_left - half_right), halves) if halves > 0 else 0.0

    ratios = FaceRatios(
        nose_width_ratio=_ratio(d("nose_wing_left", "nose_wing_right"), face_w),
        brow_thickness=(d("brow_left_top", "brow_left_bottom") + d("brow_right_top", "brow_right_bottom")) / 2.0,
        eye_roundness=_ratio(d("eye_left_top", "eye_left_bottom"), eye_w_left),
        lip_fullness=_ratio(top_lip + bottom_lip, d("mouth_left", "mouth_right")),
        jaw_width=_ratio(jaw_w, face_w),
        avg_eye_size=_ratio((eye_w_left + eye_w_right) / 2.0, face_w),
        eye_distance=_ratio(d("eye_left_inner", "eye_right_inner"), face_w),
        nose_height_ratio=_ratio(d("nose_bridge", "nose_tip"), face_h),
        lip_ratio=_ratio(bottom_lip, top_lip),
        # Positive when the mouth corners sit above the lip line (upturned).
        mouth_curve=mouth_center_y - mouth_corner_y,
        brow_gap=_ratio(d("brow_left_inner", "brow_right_inner"), face_w),
        cheekbone_width=_ratio(d("cheekbone_left", "cheekbone_right"), face_w),
        cheekbone_height=_ratio(p("nose_tip").y - cheekbone_y, face_h),
        chin_sharpness=_ratio(d("chin_left", "chin_right"), jaw_w),
        face_symmetry=symmetry,
    )

    palaces = TwelvePalaces(
        yintang_width=_ratio(d("brow_left_top", "brow_right_top"), face_w),
        forehead_fullness=_ratio(d("forehead_left", "forehead_right"), face_w),
        forehead_corner_width=_ratio(d("forehead_corner_left", "forehead_corner_right"), face_w),
        eye_tail_width=_ratio((d("eye_left_outer", "temple_left") + d("eye_right_outer", "temple_right")) / 2.0, face_w),
        tear_trough_fullness=_ratio((d("eye_left_bottom", "under_eye_left") + d("eye_right_bottom", "under_eye_right")) / 2.0, face_h),
        shan_gen_height=_ratio(d("brow_center", "nose_bridge"), middle),
        cheekbone_support=_ratio((d("cheekbone_left", "nose_tip") + d("cheekbone_right", "nose_tip")) / 2.0, face_w),
    )

    return FaceMetrics(zones=zones, ratios=ratios, twelve_palaces=palaces)

def extract_hand_metrics(landmarks: Sequence | None) -> HandMetrics:
    lms = _require(landmarks, VisionMode.HAND)

    palm_w = _dist2(lms[HAND["index_mcp"]], lms[HAND["pinky_mcp"]])
    palm_h = _dist2(lms[HAND["wrist"]], lms[HAND["middle_mcp"]])
    finger = _dist2(lms[HAND["middle_mcp"]], lms[HAND["middle_tip"]])

    palm_ratio = _ratio(palm_w, palm_h)
    finger_ratio = _ratio(finger, palm_h)
    return HandMetrics(
        palm_ratio=palm_ratio,
        finger_length_ratio=finger_ratio,
        element=classify_hand_element(palm_ratio, finger_ratio),
    )

def extract_body_metrics(landmarks: Sequence | None) -> BodyMetrics:
    lms = _require(landmarks, VisionMode.BODY)

    ls, rs = lms[BODY["left_shoulder"]], lms[BODY["right_shoulder"]]
    lh, rh = lms[BODY["left_hip"]], lms[BODY["right_hip"]]
    le, re = lms[BODY["left_ear"]], lms[BODY["right_ear"]]

    # Signed on purpose: the sign tells left from right.
    shoulder_balance = rs.y - ls.y
    torso_alignment = (ls.x + rs.x) * 0.5 - (lh.x + rh.x) * 0.5
    head_tilt = re.y - le.y

    return BodyMetrics(
        shoulder_balance=shoulder_balance,
        head_tilt=head_tilt,
        torso_alignment=torso_alignment,
        posture_type=classify_posture(shoulder_balance, torso_alignment, hips_visible=hips_visible(lh, rh)),
    )

def extract_metrics(mode: VisionMode, landmarks: Sequence | None, *, ear: EarMetrics | None = None) -> VisionMetrics:
    mode = VisionMode(mode)
    if mode == VisionMode.FACE:
        return VisionMetrics(mode=mode, face=extract_face_metrics(landmarks), ear=ear)
    if mode == VisionMode.HAND:
        return VisionMetrics(mode=mode, hand=extract_hand_metrics(landmarks))
    return VisionMetrics(mode=mode, body=extract_body_metrics(landmarks))
