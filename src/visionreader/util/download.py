from __future__ import annotations

import os
import time
import urllib.request
from pathlib import Path

from rich.console import Console

console = Console(stderr=True)

_BASE = "https://storage.googleapis.com/mediapipe-models"

# Task file name -> download URL
MODEL_URLS: dict[str, str] = {
    "face_landmarker.task": f"{_BASE}/face_landmarker/face_landmarker/float16/latest/face_landmarker.task",
    "hand_landmarker.task": f"{_BASE}/hand_landmarker/hand_landmarker/float16/latest/hand_landmarker.task",
    "pose_landmarker_lite.task": f"{_BASE}/pose_landmarker/pose_landmarker_lite/float16/latest/pose_landmarker_lite.task",
    "pose_landmarker_full.task": f"{_BASE}/pose_landmarker/pose_landmarker_full/float16/latest/pose_landmarker_full.task",
}

def default_models_dir() -> Path:
    root = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(root) / "visionreader" / "models"

def _have(path: Path) -> bool:
    return path.exists() and path.stat().st_size > 0

def ensure_model(name: str, models_dir: Path | None = None, *, wait_seconds: float = 120.0) -> Path:
    """Return the local path of a task model, fetching it on first use.

    Concurrent callers serialize on a lock directory next to the target; the
    file is written under a temporary name and moved into place atomically.
    """
    dst = (models_dir or default_models_dir()) / name
    if _have(dst):
        return dst
    url = MODEL_URLS.get(name)
    if url is None:
        raise FileNotFoundError(f"{dst} is missing and '{name}' has no known download URL")

    dst.parent.mkdir(parents=True, exist_ok=True)
    lock = dst.with_name(dst.name + ".lock")
    deadline = time.monotonic() + wait_seconds
    while True:
        try:
            lock.mkdir()
            break
        except FileExistsError:
            if _have(dst):
                return dst
            if time.monotonic() > deadline:
                raise TimeoutError(f"gave up waiting for {lock}")
            time.sleep(0.25)

    try:
        if _have(dst):
            return dst
        console.print(f"[yellow]Fetching model[/yellow] {name}")
        part = dst.with_name(f"{dst.name}.{os.getpid()}.part")
        try:
            with urllib.request.urlopen(url) as resp, open(part, "wb") as out:
                while True:
                    chunk = resp.read(1 << 20)
                    if not chunk:
                        break
                    out.write(chunk)
            if not _have(part):
                raise RuntimeError(f"empty download for {url}")
            os.replace(part, dst)
        except Exception:
            part.unlink(missing_ok=True)
            raise
        return dst
    finally:
        if lock.exists():
            lock.rmdir()
