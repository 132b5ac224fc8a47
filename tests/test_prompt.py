import pytest

from visionreader.narrative.prompt import (
    FACE_RATIO_DEFAULTS,
    format_metrics,
    resolve_face_ratios,
    system_prompt,
    user_prompt,
    zone_shares,
)
from visionreader.schemas.landmarks import VisionMode
from visionreader.schemas.metrics import (
    BodyMetrics,
    EarMetrics,
    FaceMetrics,
    FaceRatios,
    FaceZones,
    HandMetrics,
    VisionMetrics,
)

def _face(upper=0.3, middle=0.3, lower=0.3, dominant="balanced"):
    return FaceMetrics(
        zones=FaceZones(upper=upper, middle=middle, lower=lower, dominant=dominant),
        ratios=FaceRatios(nose_width_ratio=0.25, brow_thickness=0.01, eye_roundness=0.4, lip_fullness=0.3, jaw_width=0.8),
    )

def test_defaults_fill_unmeasured_ratios():
    r = resolve_face_ratios(_face().ratios)
    for k, v in FACE_RATIO_DEFAULTS.items():
        assert r[k] == v
    assert r["nose_width_ratio"] == 0.25

def test_measured_ratios_win_over_defaults():
    ratios = _face().ratios.model_copy(update={"face_symmetry": 0.97})
    assert resolve_face_ratios(ratios)["face_symmetry"] == 0.97

def test_zone_shares():
    assert zone_shares(_face(0.2, 0.2, 0.4)) == pytest.approx((0.25, 0.25, 0.5))
    assert zone_shares(_face(0, 0, 0)) == pytest.approx((1 / 3, 1 / 3, 1 / 3))

def test_face_text_without_ear():
    text = format_metrics(VisionMetrics(mode=VisionMode.FACE, face=_face()))
    assert text.startswith("[Face measurements]")
    assert "Dominant: three zones balanced" in text
    assert "No ear photo supplied" in text
    assert "Twelve palaces" not in text

def test_face_text_with_ear():
    ear = EarMetrics(has_ear_image=True, position="high", lobe_fullness="thick")
    text = format_metrics(VisionMetrics(mode=VisionMode.FACE, face=_face(), ear=ear))
    assert "- Position: high" in text
    assert "- Lobe: thick" in text
    assert "- Size: medium" in text

def test_hand_and_body_text():
    hand = VisionMetrics(mode=VisionMode.HAND, hand=HandMetrics(palm_ratio=0.9, finger_length_ratio=0.85, element="air"))
    assert "Palm type: air" in format_metrics(hand)
    body = VisionMetrics(
        mode=VisionMode.BODY,
        body=BodyMetrics(shoulder_balance=-0.06, head_tilt=0.01, torso_alignment=0.0, posture_type="leaning_left"),
    )
    text = format_metrics(body)
    assert "[Posture measurements]" in text
    assert "Shoulder imbalance: 6.0%" in text

def test_prompts_name_the_mode_schema():
    assert '"sanTing"' in system_prompt(VisionMode.FACE)
    assert '"palmType"' in system_prompt(VisionMode.HAND)
    assert '"postureAnalysis"' in system_prompt(VisionMode.BODY)
    metrics = VisionMetrics(mode=VisionMode.FACE, face=_face())
    assert "[Face measurements]" in user_prompt(metrics)
    assert "face reading" in user_prompt(metrics)
