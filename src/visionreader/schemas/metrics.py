from __future__ import annotations
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .landmarks import VisionMode

DominantZone = Literal["upper", "middle", "lower", "balanced"]
HandElement = Literal["earth", "fire", "air", "water"]
PostureType = Literal["upright", "slouch", "leaning_left", "leaning_right"]

class CamelModel(BaseModel):
    # Wire format is camelCase; Python attributes stay snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class FaceZones(CamelModel):
    upper: float
    middle: float
    lower: float
    dominant: DominantZone

class FaceRatios(CamelModel):
    nose_width_ratio: float
    brow_thickness: float
    eye_roundness: float
    lip_fullness: float
    jaw_width: float

    # Optional refinements; narrative formatting substitutes named defaults when absent.
    avg_eye_size: float | None = None
    eye_distance: float | None = None
    nose_height_ratio: float | None = None
    lip_ratio: float | None = None
    mouth_curve: float | None = None
    brow_gap: float | None = None
    cheekbone_width: float | None = None
    cheekbone_height: float | None = None
    chin_sharpness: float | None = None
    face_symmetry: float | None = None

class TwelvePalaces(CamelModel):
    yintang_width: float
    forehead_fullness: float
    forehead_corner_width: float
    eye_tail_width: float
    tear_trough_fullness: float
    shan_gen_height: float
    cheekbone_support: float

class FaceMetrics(CamelModel):
    zones: FaceZones
    ratios: FaceRatios
    twelve_palaces: TwelvePalaces | None = None

class EarMetrics(CamelModel):
    has_ear_image: bool = False
    position: Literal["high", "medium", "low"] | None = None
    lobe_fullness: Literal["thick", "medium", "thin"] | None = None
    size: Literal["large", "medium", "small"] | None = None

class HandMetrics(CamelModel):
    palm_ratio: float
    finger_length_ratio: float
    element: HandElement

class BodyMetrics(CamelModel):
    shoulder_balance: float
    head_tilt: float
    torso_alignment: float
    posture_type: PostureType

class PoseStatus(CamelModel):
    is_centered: bool
    message: str = ""

class VisionMetrics(CamelModel):
    mode: VisionMode
    face: FaceMetrics | None = None
    hand: HandMetrics | None = None
    body: BodyMetrics | None = None
    ear: EarMetrics | None = Field(default=None, description="Only meaningful in face mode.")

    @model_validator(mode="after")
    def _one_record_for_mode(self) -> "VisionMetrics":
        populated = {
            VisionMode.FACE: self.face is not None,
            VisionMode.HAND: self.hand is not None,
            VisionMode.BODY: self.body is not None,
        }
        if not populated[self.mode]:
            raise ValueError(f"{self.mode.value} metrics missing for mode '{self.mode.value}'")
        extra = [m.value for m, ok in populated.items() if ok and m != self.mode]
        if extra:
            raise ValueError(f"metrics for {', '.join(extra)} not allowed in mode '{self.mode.value}'")
        if self.ear is not None and self.mode != VisionMode.FACE:
            raise ValueError("ear metrics are only allowed in face mode")
        return self
