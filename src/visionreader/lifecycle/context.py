from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from ..schemas.landmarks import VisionMode

class AppState(str, Enum):
    IDLE = "IDLE"
    SCANNING = "SCANNING"
    ANALYZING = "ANALYZING"
    RESULT = "RESULT"
    ERROR = "ERROR"

class CaptureSource(str, Enum):
    NONE = "none"
    CAMERA = "camera"
    UPLOAD = "upload"

@dataclass
class CaptureContext:
    """Live capture settings shared with the frame loop.

    Only the orchestrator writes these fields. The loop keeps a reference and
    reads them on every tick, so mode switches and stop requests made between
    ticks are always observed.
    """

    mode: VisionMode = VisionMode.FACE
    source: CaptureSource = CaptureSource.NONE
    camera_index: int = 0
    # Bumped on every source or mode change; lets late results be dropped.
    generation: int = 0

    @property
    def active(self) -> bool:
        return self.source != CaptureSource.NONE

    @property
    def is_live(self) -> bool:
        return self.source == CaptureSource.CAMERA
