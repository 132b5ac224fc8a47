import pytest

from visionreader.errors import ServiceError
from visionreader.lifecycle.context import AppState, CaptureSource
from visionreader.lifecycle.orchestrator import MSG_NO_SUBJECT, AnalysisOrchestrator
from visionreader.schemas.landmarks import VisionMode
from visionreader.schemas.metrics import EarMetrics
from visionreader.schemas.report import AnalysisReport

class FakeService:
    def __init__(self, exc=None, during=None):
        self.calls = 0
        self.seen = []
        self.exc = exc
        self.during = during

    def generate(self, metrics):
        self.calls += 1
        self.seen.append(metrics)
        if self.during is not None:
            self.during()
        if self.exc is not None:
            raise self.exc
        return AnalysisReport(mode=metrics.mode, title="reading", score=80)

@pytest.fixture
def service():
    return FakeService()

@pytest.fixture
def transitions():
    return []

@pytest.fixture
def orch(service, transitions):
    return AnalysisOrchestrator(service, on_state_change=lambda prev, new: transitions.append((prev, new)))

def test_starts_idle(orch):
    assert orch.state == AppState.IDLE
    assert not orch.can_analyze()
    assert orch.analyze() is None

def test_upload_analyze_and_dismiss(orch, service, transitions, centered_face):
    orch.load_image(centered_face)
    assert orch.state == AppState.SCANNING
    report = orch.analyze()
    assert report is not None and report.title == "reading"
    assert orch.state == AppState.RESULT
    assert orch.report is report
    assert transitions == [
        (AppState.IDLE, AppState.SCANNING),
        (AppState.SCANNING, AppState.ANALYZING),
        (AppState.ANALYZING, AppState.RESULT),
    ]
    assert not orch.can_analyze()

    orch.dismiss()
    assert orch.state == AppState.SCANNING
    assert orch.report is None
    assert service.calls == 1

def test_dismiss_outside_result_is_noop(orch):
    orch.dismiss()
    assert orch.state == AppState.IDLE

def test_switching_source_clears_landmarks_and_report(orch, centered_face):
    orch.load_image(centered_face)
    orch.analyze()
    gen = orch.context.generation
    orch.start_camera(1)
    assert orch.state == AppState.SCANNING
    assert orch.landmarks is None
    assert orch.report is None
    assert orch.context.camera_index == 1
    assert orch.context.generation == gen + 1

def test_live_face_requires_centered_pose(orch, centered_face, turned_face):
    orch.start_camera()
    orch.update_landmarks(turned_face)
    assert orch.pose_status is not None and not orch.pose_status.is_centered
    assert not orch.can_analyze()
    assert orch.analyze() is None

    orch.update_landmarks(centered_face)
    assert orch.pose_status.is_centered
    assert orch.can_analyze()

def test_upload_bypasses_pose_gate(orch, turned_face):
    orch.load_image(turned_face)
    assert orch.pose_status is None
    assert orch.can_analyze()

def test_live_hand_has_no_pose_gate(orch, air_hand):
    orch.set_mode(VisionMode.HAND)
    orch.start_camera()
    orch.update_landmarks(air_hand)
    assert orch.pose_status is None
    assert orch.can_analyze()

def test_reentrant_analyze_is_ignored(centered_face):
    inner = []
    service = FakeService(during=lambda: inner.append((orch.state, orch.busy, orch.analyze())))
    orch = AnalysisOrchestrator(service)
    orch.load_image(centered_face)
    assert orch.analyze() is not None
    assert service.calls == 1
    assert inner == [(AppState.ANALYZING, True, None)]
    assert not orch.busy

def test_service_failure_returns_to_scanning(centered_face):
    errors = []
    orch = AnalysisOrchestrator(FakeService(exc=ServiceError("boom", status=502)), on_error=errors.append)
    orch.load_image(centered_face)
    assert orch.analyze() is None
    assert orch.state == AppState.SCANNING
    assert orch.last_error.startswith("Analysis failed")
    assert errors == [orch.last_error]
    assert orch.can_analyze()

def test_short_landmarks_never_reach_service(orch, service, landmarks):
    orch.load_image(landmarks(VisionMode.FACE, n=40))
    assert orch.analyze() is None
    assert orch.last_error == MSG_NO_SUBJECT
    assert orch.state == AppState.SCANNING
    assert service.calls == 0

def test_stale_report_is_dropped(centered_face):
    service = FakeService(during=lambda: orch.load_image(centered_face))
    orch = AnalysisOrchestrator(service)
    orch.load_image(centered_face)
    assert orch.analyze() is None
    assert orch.report is None
    assert orch.state == AppState.SCANNING

def test_stop_while_analyzing_rests_idle(centered_face):
    service = FakeService(during=lambda: orch.stop_capture())
    orch = AnalysisOrchestrator(service)
    orch.load_image(centered_face)
    assert orch.analyze() is None
    assert orch.state == AppState.IDLE

def test_stop_capture_and_ignored_updates(orch, centered_face):
    orch.start_camera()
    orch.stop_capture()
    assert orch.state == AppState.IDLE
    assert orch.context.source == CaptureSource.NONE
    orch.update_landmarks(centered_face)
    assert orch.landmarks is None

def test_capture_failed_enters_error(orch):
    orch.capture_failed("Cannot open camera 3")
    assert orch.state == AppState.ERROR
    assert orch.last_error == "Cannot open camera 3"
    orch.start_camera(0)
    assert orch.state == AppState.SCANNING
    assert orch.last_error is None

def test_set_mode_and_switch_camera_clear_landmarks(orch, centered_face):
    orch.start_camera()
    orch.update_landmarks(centered_face)
    orch.switch_camera(2)
    assert orch.landmarks is None
    assert orch.context.camera_index == 2
    orch.update_landmarks(centered_face)
    orch.set_mode(VisionMode.BODY)
    assert orch.landmarks is None
    assert orch.mode == VisionMode.BODY

def test_ear_only_sent_in_face_mode(orch, service, centered_face, air_hand):
    ear = EarMetrics(has_ear_image=True, size="large")
    orch.set_ear(ear)
    orch.load_image(centered_face)
    orch.analyze()
    assert service.seen[-1].ear == ear

    orch.dismiss()
    orch.set_mode(VisionMode.HAND)
    orch.load_image(air_hand)
    orch.analyze()
    assert service.seen[-1].ear is None
    assert service.seen[-1].hand.element == "air"

def test_gate_is_checked_again_under_the_lock(monkeypatch, orch, service, centered_face):
    orch.load_image(centered_face)
    first = orch.analyze()
    assert orch.state == AppState.RESULT
    # a caller that saw the gate open just before the first analysis finished
    monkeypatch.setattr(orch, "can_analyze", lambda: True)
    assert orch.analyze() is None
    assert service.calls == 1
    assert orch.report is first
    assert orch.state == AppState.RESULT

def test_unexpected_service_exception_is_reported(centered_face):
    errors = []
    orch = AnalysisOrchestrator(FakeService(exc=KeyError("choices")), on_error=errors.append)
    orch.load_image(centered_face)
    assert orch.analyze() is None
    assert orch.state == AppState.SCANNING
    assert not orch.busy
    assert errors and "KeyError" in errors[0]

def test_switching_camera_to_upload_clears_report(orch, centered_face, turned_face):
    orch.start_camera()
    orch.update_landmarks(centered_face)
    orch.analyze()
    assert orch.state == AppState.RESULT
    gen = orch.context.generation
    orch.load_image(turned_face)
    assert orch.context.source == CaptureSource.UPLOAD
    assert orch.report is None
    assert orch.state == AppState.SCANNING
    assert orch.landmarks == turned_face
    assert orch.context.generation == gen + 1

def test_mode_change_drops_report_in_flight(centered_face):
    service = FakeService(during=lambda: orch.set_mode(VisionMode.HAND))
    orch = AnalysisOrchestrator(service)
    orch.load_image(centered_face)
    assert orch.analyze() is None
    assert orch.report is None
    assert orch.state == AppState.SCANNING
    assert orch.mode == VisionMode.HAND
