from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import mediapipe as mp
import numpy as np

from ..schemas.landmarks import Landmark, VisionMode, landmarks_from_tasks
from ..util.download import ensure_model

@dataclass(frozen=True)
class MediaPipeTasksConfig:
    PROFILE_PRESETS = {
        "balanced": {
            "min_detection_confidence": 0.50,
            "min_presence_confidence": 0.50,
            "min_tracking_confidence": 0.50,
        },
        "strict": {
            "min_detection_confidence": 0.70,
            "min_presence_confidence": 0.70,
            "min_tracking_confidence": 0.70,
        },
    }

    profile: str | None = None
    face_model: str = "face_landmarker.task"
    hand_model: str = "hand_landmarker.task"
    pose_model: str = "pose_landmarker_lite.task"
    models_dir: Path | None = None

    # Only the first subject is ever used, so ask the models for one.
    num_faces: int = 1
    num_hands: int = 1
    num_poses: int = 1
    min_detection_confidence: float = 0.50
    min_presence_confidence: float = 0.50
    min_tracking_confidence: float = 0.50

    def __post_init__(self):
        if self.profile is None:
            return
        key = self.profile.strip().lower()
        if key not in self.PROFILE_PRESETS:
            raise ValueError(f"Unknown profile '{self.profile}' (expected one of: {', '.join(self.PROFILE_PRESETS)})")
        object.__setattr__(self, "profile", key)
        for k, v in self.PROFILE_PRESETS[key].items():
            object.__setattr__(self, k, v)

class MediaPipeLandmarkSource:
    """LandmarkSource backed by MediaPipe Tasks landmarkers.

    VIDEO-mode landmarkers (tracking, timestamped) serve live frames; IMAGE-mode
    ones serve still images. Landmarkers are created lazily per mode, so only
    the models actually used get downloaded. Frames must be RGB uint8.
    """

    def __init__(self, cfg: MediaPipeTasksConfig | None = None):
        self.cfg = cfg or MediaPipeTasksConfig()
        self._landmarkers: dict[tuple[VisionMode, bool], object] = {}
        self._last_ts: dict[VisionMode, int] = {}

    def _create(self, mode: VisionMode, video: bool):
        cfg = self.cfg
        vision = mp.tasks.vision
        running_mode = vision.RunningMode.VIDEO if video else vision.RunningMode.IMAGE

        def base(model: str):
            return mp.tasks.BaseOptions(model_asset_path=str(ensure_model(model, cfg.models_dir)))

        if mode == VisionMode.FACE:
            opts = vision.FaceLandmarkerOptions(
                base_options=base(cfg.face_model),
                running_mode=running_mode,
                num_faces=cfg.num_faces,
                min_face_detection_confidence=cfg.min_detection_confidence,
                min_face_presence_confidence=cfg.min_presence_confidence,
                min_tracking_confidence=cfg.min_tracking_confidence,
            )
            return vision.FaceLandmarker.create_from_options(opts)
        if mode == VisionMode.HAND:
            opts = vision.HandLandmarkerOptions(
                base_options=base(cfg.hand_model),
                running_mode=running_mode,
                num_hands=cfg.num_hands,
                min_hand_detection_confidence=cfg.min_detection_confidence,
                min_hand_presence_confidence=cfg.min_presence_confidence,
                min_tracking_confidence=cfg.min_tracking_confidence,
            )
            return vision.HandLandmarker.create_from_options(opts)
        opts = vision.PoseLandmarkerOptions(
            base_options=base(cfg.pose_model),
            running_mode=running_mode,
            num_poses=cfg.num_poses,
            min_pose_detection_confidence=cfg.min_detection_confidence,
            min_pose_presence_confidence=cfg.min_presence_confidence,
            min_tracking_confidence=cfg.min_tracking_confidence,
        )
        return vision.PoseLandmarker.create_from_options(opts)

    def _landmarker(self, mode: VisionMode, video: bool):
        key = (mode, video)
        if key not in self._landmarkers:
            self._landmarkers[key] = self._create(mode, video)
        return self._landmarkers[key]

    @staticmethod
    def _to_mp_image(rgb: np.ndarray) -> mp.Image:
        return mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb))

    def _monotonic(self, mode: VisionMode, timestamp_ms: int) -> int:
        # detect_for_video rejects timestamps that do not strictly increase.
        ts = max(int(timestamp_ms), self._last_ts.get(mode, -1) + 1)
        self._last_ts[mode] = ts
        return ts

    def detect(self, frame: np.ndarray, mode: VisionMode, timestamp_ms: int | None = None) -> list[Landmark] | None:
        mode = VisionMode(mode)
        video = timestamp_ms is not None
        lmk = self._landmarker(mode, video)
        image = self._to_mp_image(frame)
        if video:
            result = lmk.detect_for_video(image, self._monotonic(mode, timestamp_ms))
        else:
            result = lmk.detect(image)

        if mode == VisionMode.FACE:
            candidates = result.face_landmarks
        elif mode == VisionMode.HAND:
            candidates = result.hand_landmarks
        else:
            candidates = result.pose_landmarks
        if not candidates:
            return None
        return landmarks_from_tasks(candidates[0])

    def close(self) -> None:
        for lmk in self._landmarkers.values():
            lmk.close()
        self._landmarkers.clear()
