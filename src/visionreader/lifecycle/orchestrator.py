from __future__ import annotations

import threading
from typing import Callable, Sequence

from rich.console import Console

from ..errors import InsufficientLandmarksError, NarrativeError, ServiceError
from ..geometry.extract import extract_metrics
from ..geometry.pose_gate import check_head_pose
from ..narrative.client import NarrativeService
from ..schemas.landmarks import VisionMode
from ..schemas.metrics import EarMetrics, PoseStatus
from ..schemas.report import AnalysisReport
from .context import AppState, CaptureContext, CaptureSource

console = Console(stderr=True)

MSG_NO_SUBJECT = "No clear subject detected"

class AnalysisOrchestrator:
    """Capture → analyze → result state machine.

    IDLE → SCANNING when a source opens; SCANNING → ANALYZING only through
    analyze() and its gate; ANALYZING → RESULT on a report, back to SCANNING on
    any service failure; RESULT → SCANNING on dismiss(). IDLE is only reached
    again through stop_capture().
    """

    def __init__(
        self,
        service: NarrativeService,
        *,
        mode: VisionMode = VisionMode.FACE,
        on_state_change: Callable[[AppState, AppState], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ):
        self.service = service
        self.context = CaptureContext(mode=VisionMode(mode))
        self.state = AppState.IDLE
        self.landmarks: list | None = None
        self.pose_status: PoseStatus | None = None
        self.report: AnalysisReport | None = None
        self.ear: EarMetrics | None = None
        self.last_error: str | None = None
        self._on_state_change = on_state_change
        self._on_error = on_error
        self._busy = threading.Lock()

    @property
    def mode(self) -> VisionMode:
        return self.context.mode

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    # ---- internal ----

    def _set_state(self, state: AppState) -> None:
        if state == self.state:
            return
        prev, self.state = self.state, state
        if self._on_state_change is not None:
            self._on_state_change(prev, state)

    def _fail(self, message: str) -> None:
        self.last_error = message
        if self._on_error is not None:
            self._on_error(message)

    def _switch_source(self, source: CaptureSource, camera_index: int | None = None) -> None:
        ctx = self.context
        ctx.source = source
        ctx.generation += 1
        if camera_index is not None:
            ctx.camera_index = camera_index
        self.landmarks = None
        self.pose_status = None
        self.report = None

    def _resting_state(self) -> AppState:
        return AppState.SCANNING if self.context.active else AppState.IDLE

    # ---- capture sources ----

    def start_camera(self, camera_index: int | None = None) -> None:
        self._switch_source(CaptureSource.CAMERA, camera_index)
        self.last_error = None
        if self.state != AppState.ANALYZING:
            self._set_state(AppState.SCANNING)

    def load_image(self, landmarks: Sequence | None = None) -> None:
        """Switch to an uploaded still image; landmarks come from one-shot detection."""
        self._switch_source(CaptureSource.UPLOAD)
        self.last_error = None
        if self.state != AppState.ANALYZING:
            self._set_state(AppState.SCANNING)
        self.update_landmarks(landmarks)

    def stop_capture(self) -> None:
        self._switch_source(CaptureSource.NONE)
        if self.state != AppState.ANALYZING:
            self._set_state(AppState.IDLE)

    def capture_failed(self, message: str) -> None:
        """The source could not be opened (camera missing, permission denied, unreadable file)."""
        self._switch_source(CaptureSource.NONE)
        self._fail(message)
        if self.state != AppState.ANALYZING:
            self._set_state(AppState.ERROR)

    def switch_camera(self, camera_index: int) -> None:
        if not self.context.is_live:
            return
        # The new stream has no frames yet; callers see None until the next detection.
        self.context.camera_index = camera_index
        self.landmarks = None
        self.pose_status = None

    def set_mode(self, mode: VisionMode) -> None:
        mode = VisionMode(mode)
        if mode == self.context.mode:
            return
        self.context.mode = mode
        # A report still in flight belongs to the old mode.
        self.context.generation += 1
        self.landmarks = None
        self.pose_status = None

    def set_ear(self, ear: EarMetrics | None) -> None:
        self.ear = ear

    def update_landmarks(self, landmarks: Sequence | None) -> None:
        if not self.context.active:
            return
        self.landmarks = list(landmarks) if landmarks else None
        if self.landmarks is not None and self.context.mode == VisionMode.FACE and self.context.is_live:
            self.pose_status = check_head_pose(self.landmarks)
        else:
            self.pose_status = None

    # ---- analysis ----

    def _gate_open(self) -> bool:
        if self.landmarks is None or self.state != AppState.SCANNING:
            return False
        if self.context.mode == VisionMode.FACE and self.context.is_live:
            # Uploaded images are assumed to be framed by the user already.
            return self.pose_status is not None and self.pose_status.is_centered
        return True

    def can_analyze(self) -> bool:
        return not self.busy and self._gate_open()

    def _generate(self, metrics):
        try:
            return self.service.generate(metrics)
        except NarrativeError:
            raise
        except Exception as e:
            raise ServiceError(f"{type(e).__name__}: {e}") from e

    def analyze(self) -> AnalysisReport | None:
        """Run one analysis if the gate allows it; returns the report or None."""
        if not self._busy.acquire(blocking=False):
            return None
        try:
            # Re-evaluated under the lock; the caller may have checked before an earlier call finished.
            if not self._gate_open():
                return None
            mode = self.context.mode
            try:
                metrics = extract_metrics(mode, self.landmarks, ear=self.ear if mode == VisionMode.FACE else None)
            except InsufficientLandmarksError:
                self._fail(MSG_NO_SUBJECT)
                return None

            generation = self.context.generation
            self.last_error = None
            self._set_state(AppState.ANALYZING)
            report = None
            try:
                report = self._generate(metrics)
            except NarrativeError as e:
                console.print(f"[red]Analysis failed[/red] ({type(e).__name__}): {e}")
                self._fail(f"Analysis failed: {e}")
            finally:
                stale = generation != self.context.generation
                if report is None or stale:
                    self._set_state(self._resting_state())

            if report is None or stale:
                return None
            self.report = report
            self._set_state(AppState.RESULT)
            return report
        finally:
            self._busy.release()

    def dismiss(self) -> None:
        if self.state != AppState.RESULT:
            return
        self.report = None
        self._set_state(AppState.SCANNING)
