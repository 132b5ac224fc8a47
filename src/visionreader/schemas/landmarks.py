from __future__ import annotations
from enum import Enum
from pydantic import BaseModel

class VisionMode(str, Enum):
    FACE = "face"
    HAND = "hand"
    BODY = "body"

# Landmark count produced by each MediaPipe Tasks landmarker.
REQUIRED_LANDMARKS: dict[VisionMode, int] = {
    VisionMode.FACE: 478,
    VisionMode.HAND: 21,
    VisionMode.BODY: 33,
}

class Landmark(BaseModel):
    x: float
    y: float
    z: float | None = None
    visibility: float | None = None
    presence: float | None = None

def landmarks_from_tasks(raw) -> list[Landmark]:
    """Copy MediaPipe NormalizedLandmark objects into our own model."""
    return [
        Landmark(
            x=float(lm.x),
            y=float(lm.y),
            z=getattr(lm, "z", None),
            visibility=getattr(lm, "visibility", None),
            presence=getattr(lm, "presence", None),
        )
        for lm in raw
    ]
