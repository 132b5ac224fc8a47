import pytest

from visionreader.errors import InsufficientLandmarksError
from visionreader.geometry.extract import extract_body_metrics, extract_face_metrics, extract_hand_metrics, extract_metrics
from visionreader.schemas.landmarks import VisionMode
from visionreader.schemas.metrics import EarMetrics

@pytest.mark.parametrize("mode,short", [(VisionMode.FACE, 477), (VisionMode.HAND, 20), (VisionMode.BODY, 10)])
def test_short_sets_raise(landmarks, mode, short):
    with pytest.raises(InsufficientLandmarksError) as ei:
        extract_metrics(mode, landmarks(mode, n=short))
    assert ei.value.got == short
    assert str(short) in str(ei.value)

def test_missing_landmarks_raise():
    with pytest.raises(InsufficientLandmarksError, match="got none"):
        extract_face_metrics(None)

def test_face_upper_zone_dominates(landmarks):
    lms = landmarks(VisionMode.FACE, {10: (0.5, 0.1), 9: (0.5, 0.4), 1: (0.5, 0.6), 152: (0.5, 0.8)})
    face = extract_face_metrics(lms)
    assert face.zones.upper == pytest.approx(0.3)
    assert face.zones.middle == pytest.approx(0.2)
    assert face.zones.dominant == "upper"

def test_face_near_tie_is_balanced(landmarks):
    lms = landmarks(VisionMode.FACE, {10: (0.5, 0.1), 9: (0.5, 0.4), 1: (0.5, 0.695), 152: (0.5, 0.895)})
    assert extract_face_metrics(lms).zones.dominant == "balanced"

def test_face_is_deterministic(centered_face):
    assert extract_face_metrics(centered_face) == extract_face_metrics(centered_face)

def test_collapsed_face_gives_zero_ratios(landmarks):
    face = extract_face_metrics(landmarks(VisionMode.FACE))
    assert face.ratios.nose_width_ratio == 0.0
    assert face.ratios.eye_roundness == 0.0
    assert face.ratios.face_symmetry == 0.0
    assert face.zones.dominant == "balanced"
    assert face.twelve_palaces is not None

def test_face_symmetry_of_mirrored_face(centered_face):
    assert extract_face_metrics(centered_face).ratios.face_symmetry == pytest.approx(1.0)

def test_hand_ratios_and_element(air_hand):
    hand = extract_hand_metrics(air_hand)
    assert hand.palm_ratio == pytest.approx(0.9)
    assert hand.finger_length_ratio == pytest.approx(0.85)
    assert hand.element == "air"

def _body(landmarks, sb=0.0, ta=0.0, hip_vis=None):
    pts = {
        7: (0.45, 0.15), 8: (0.55, 0.15),
        11: (0.4, 0.3), 12: (0.6, 0.3 + sb),
        23: (0.42 - ta, 0.6), 24: (0.58 - ta, 0.6),
    }
    lms = landmarks(VisionMode.BODY, pts, visibility=0.9)
    if hip_vis is not None:
        for i in (23, 24):
            lms[i] = lms[i].model_copy(update={"visibility": hip_vis})
    return lms

def test_body_signed_values(landmarks):
    body = extract_body_metrics(_body(landmarks, sb=-0.08))
    assert body.shoulder_balance == pytest.approx(-0.08)
    assert body.posture_type == "leaning_left"

def test_body_torso_shift_is_slouch(landmarks):
    body = extract_body_metrics(_body(landmarks, ta=0.07))
    assert body.torso_alignment == pytest.approx(0.07)
    assert body.posture_type == "slouch"

def test_body_hidden_hips_ignore_torso(landmarks):
    body = extract_body_metrics(_body(landmarks, ta=0.2, hip_vis=0.1))
    assert body.posture_type == "upright"

def test_extract_metrics_carries_ear_in_face_mode(centered_face):
    ear = EarMetrics(has_ear_image=True, position="high")
    m = extract_metrics(VisionMode.FACE, centered_face, ear=ear)
    assert m.mode == VisionMode.FACE
    assert m.ear == ear
    assert m.hand is None and m.body is None
