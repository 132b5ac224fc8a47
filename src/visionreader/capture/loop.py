from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Protocol, Sequence

from rich.console import Console

from ..lifecycle.context import CaptureContext
from ..schemas.landmarks import VisionMode

console = Console(stderr=True)

class LandmarkSource(Protocol):
    """Wraps a landmark model. Returns the first (most confident) subject or None."""

    def detect(self, frame: Any, mode: VisionMode, timestamp_ms: int | None = None) -> Sequence | None: ...

def frame_ready(frame: Any) -> bool:
    if frame is None:
        return False
    shape = getattr(frame, "shape", None)
    if shape is None or len(shape) < 2:
        return False
    return int(shape[0]) > 0 and int(shape[1]) > 0

@dataclass
class FrameLoop:
    """Continuous detection over live frames.

    `context` is shared with the orchestrator and read fresh each tick, never
    copied. Detection failures are steady-state (subject left the frame) and
    publish None instead of raising.
    """

    source: LandmarkSource
    context: CaptureContext
    publish: Callable[[Sequence | None], None]
    ticks: int = 0
    failures: int = 0
    _warned: set[str] = field(default_factory=set)

    def tick(self, frame: Any, timestamp_ms: int) -> bool:
        if not self.context.active:
            return False
        self.ticks += 1
        if not frame_ready(frame):
            return True
        try:
            landmarks = self.source.detect(frame, self.context.mode, timestamp_ms)
        except (RuntimeError, ValueError) as e:
            self.failures += 1
            key = type(e).__name__
            if key not in self._warned:
                self._warned.add(key)
                console.print(f"[dim]detection failed ({key}): {e}[/dim]")
            landmarks = None
        self.publish(landmarks or None)
        return True

    def run(self, frames: Iterable[tuple[Any, int]]) -> int:
        """Tick over (frame, timestamp_ms) pairs until capture stops; returns ticks run."""
        n = 0
        for frame, ts in frames:
            if not self.tick(frame, ts):
                break
            n += 1
        return n

def detect_once(source: LandmarkSource, image: Any, mode: VisionMode) -> Sequence | None:
    """Single stateless detection on an uploaded still image."""
    if not frame_ready(image):
        return None
    try:
        return source.detect(image, mode, None) or None
    except (RuntimeError, ValueError) as e:
        console.print(f"[dim]detection failed ({type(e).__name__}): {e}[/dim]")
        return None
