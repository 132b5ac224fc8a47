import pytest

from visionreader.geometry.extract import extract_metrics
from visionreader.narrative.local import LocalNarrativeService
from visionreader.schemas.landmarks import VisionMode
from visionreader.schemas.metrics import BodyMetrics, HandMetrics, VisionMetrics
from visionreader.schemas.report import LegacyReport, normalize_report

FACE_KEYS = {
    "zoneAnalysis", "eyeAnalysis", "noseAnalysis", "mouthAnalysis", "browAnalysis",
    "cheekboneAnalysis", "jawAnalysis", "symmetryAnalysis", "fortuneAnalysis", "careerSuggestion",
}

def test_face_reading_is_legacy(centered_face):
    report = LocalNarrativeService().generate(extract_metrics(VisionMode.FACE, centered_face))
    assert report.mode == VisionMode.FACE
    assert 50 <= report.score <= 99
    assert report.title and report.poem
    body = normalize_report(report)
    assert isinstance(body, LegacyReport)
    assert set(body.fields) == FACE_KEYS

def test_face_reading_is_deterministic(centered_face):
    metrics = extract_metrics(VisionMode.FACE, centered_face)
    svc = LocalNarrativeService()
    assert svc.generate(metrics) == svc.generate(metrics)

@pytest.mark.parametrize(
    "element,title",
    [("earth", "Hand of Earth"), ("fire", "Hand of Fire"), ("air", "Hand of Air"), ("water", "Hand of Water")],
)
def test_hand_titles(element, title):
    metrics = VisionMetrics(mode=VisionMode.HAND, hand=HandMetrics(palm_ratio=0.9, finger_length_ratio=0.7, element=element))
    report = LocalNarrativeService().generate(metrics)
    assert report.title == title
    assert set(report.details) == {"handShapeAnalysis", "fingerAnalysis", "careerAdvice"}

@pytest.mark.parametrize(
    "posture,title,score",
    [("upright", "Pine in Wind", 92), ("slouch", "Resting Tortoise", 75), ("leaning_left", "Willow in Breeze", 72)],
)
def test_body_readings(posture, title, score):
    body = BodyMetrics(shoulder_balance=0.0, head_tilt=0.0, torso_alignment=0.0, posture_type=posture)
    report = LocalNarrativeService().generate(VisionMetrics(mode=VisionMode.BODY, body=body))
    assert (report.title, report.score) == (title, score)
    assert "postureAnalysis" in report.details
