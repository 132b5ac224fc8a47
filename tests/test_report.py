from visionreader.schemas.landmarks import VisionMode
from visionreader.schemas.report import AnalysisReport, ExtendedReport, LegacyReport, normalize_report

def test_camel_case_payload_validates():
    report = AnalysisReport.model_validate({
        "mode": "face",
        "title": "Star",
        "sanTing": {"overview": "even", "upper": "broad"},
        "wuGuan": {"eye": "bright", "earIsInferred": False},
    })
    assert report.san_ting.upper == "broad"
    assert report.wu_guan.ear_is_inferred is False
    assert report.twelve_palaces is None

def test_face_extended_shape():
    report = AnalysisReport(
        mode=VisionMode.FACE,
        san_ting={"overview": "even"},
        summary={"career": "lead"},
        details={"zoneAnalysis": "ignored"},
    )
    body = normalize_report(report)
    assert isinstance(body, ExtendedReport)
    assert body.kind == "extended"
    assert list(body.sections) == ["san_ting", "summary"]
    assert body.sections["san_ting"]["overview"] == "even"
    assert body.sections["summary"]["career"] == "lead"

def test_face_without_anchor_is_legacy():
    report = AnalysisReport(
        mode=VisionMode.FACE,
        summary={"career": "lead"},
        details={"zoneAnalysis": "broad upper zone", "eyeAnalysis": "  ", "score": 3, "missing": None},
    )
    body = normalize_report(report)
    assert isinstance(body, LegacyReport)
    assert body.fields == {"zoneAnalysis": "broad upper zone", "score": "3"}

def test_hand_extended_shape():
    report = AnalysisReport(mode=VisionMode.HAND, palm_type={"element": "air"}, mounts={"venus": "full"})
    body = normalize_report(report)
    assert isinstance(body, ExtendedReport)
    assert list(body.sections) == ["palm_type", "mounts"]

def test_body_is_always_legacy():
    report = AnalysisReport(mode=VisionMode.BODY, summary={"health": "stretch"}, details={"postureAnalysis": "upright"})
    body = normalize_report(report)
    assert isinstance(body, LegacyReport)
    assert body.fields == {"postureAnalysis": "upright"}

def test_empty_report_is_empty_legacy():
    body = normalize_report(AnalysisReport(mode=VisionMode.HAND))
    assert isinstance(body, LegacyReport)
    assert body.fields == {}
