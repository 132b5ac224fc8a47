from __future__ import annotations

import re
import threading
import time
from pathlib import Path

import cv2
import numpy as np
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from tqdm import tqdm

from .capture.loop import FrameLoop, detect_once
from .detectors.mediapipe_tasks_backend import MediaPipeLandmarkSource, MediaPipeTasksConfig
from .errors import InsufficientLandmarksError
from .geometry.extract import extract_metrics
from .lifecycle.context import AppState
from .lifecycle.orchestrator import AnalysisOrchestrator
from .narrative.client import NarrativeConfig, NarrativeService, OpenRouterNarrativeService
from .narrative.local import LocalNarrativeService
from .schemas.landmarks import VisionMode
from .schemas.metrics import EarMetrics, VisionMetrics
from .schemas.report import AnalysisReport, ExtendedReport, normalize_report

app = typer.Typer(add_completion=False, help="Landmark-based face, palm and posture readings.")
console = Console()

IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".bmp"}
WINDOW = "visionreader"
MAX_FAILED_READS = 30

def _make_service(local: bool) -> NarrativeService:
    cfg = NarrativeConfig.from_env()
    if local:
        return LocalNarrativeService()
    if not cfg.api_key:
        console.print("[yellow]OPENROUTER_API_KEY not set; using local rule-based readings.[/yellow]")
        return LocalNarrativeService()
    return OpenRouterNarrativeService(cfg)

def _detector(profile: str | None) -> MediaPipeLandmarkSource:
    try:
        cfg = MediaPipeTasksConfig(profile=profile)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--profile")
    return MediaPipeLandmarkSource(cfg)

def _humanize(key: str) -> str:
    words = re.sub(r"([a-z])([A-Z])", r"\1 \2", key).replace("_", " ")
    return words.strip().capitalize()

def render_report(report: AnalysisReport) -> None:
    head = f"[bold]{report.title}[/bold]  ◆ {report.archetype}\nScore: [bold]{report.score}[/bold]"
    if report.poem:
        head += f"\n\n[italic]{report.poem}[/italic]"
    console.print(Panel(head, title=f"{report.mode.value} reading", expand=False))

    body = normalize_report(report)
    if isinstance(body, ExtendedReport):
        for name, fields in body.sections.items():
            table = Table(title=_humanize(name), show_header=False, expand=True)
            table.add_column("field", style="cyan", no_wrap=True)
            table.add_column("text")
            for k, v in fields.items():
                table.add_row(_humanize(k), str(v))
            console.print(table)
        return

    table = Table(show_header=False, expand=True)
    table.add_column("field", style="cyan", no_wrap=True)
    table.add_column("text")
    for k, v in body.fields.items():
        table.add_row(_humanize(k), v)
    console.print(table)

def _ear_from_options(position: str | None, lobe: str | None, size: str | None) -> EarMetrics | None:
    if position is None and lobe is None and size is None:
        return None
    try:
        return EarMetrics(has_ear_image=True, position=position, lobe_fullness=lobe, size=size)
    except ValidationError as e:
        raise typer.BadParameter(f"invalid ear option: {e.errors()[0]['msg']}")

@app.command()
def analyze(
    image: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Photo to read."),
    mode: VisionMode = typer.Option(VisionMode.FACE, "--mode", help="face|hand|body"),
    local: bool = typer.Option(False, "--local", help="Use rule-based readings instead of the narrative service."),
    profile: str | None = typer.Option(None, "--profile", help="Detector threshold preset: balanced|strict"),
    ear_position: str | None = typer.Option(None, "--ear-position", help="high|medium|low"),
    ear_lobe: str | None = typer.Option(None, "--ear-lobe", help="thick|medium|thin"),
    ear_size: str | None = typer.Option(None, "--ear-size", help="large|medium|small"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
):
    """Read a single uploaded image."""
    ear = _ear_from_options(ear_position, ear_lobe, ear_size)
    source = _detector(profile)
    orch = AnalysisOrchestrator(_make_service(local), mode=mode, on_error=lambda m: console.print(f"[red]{m}[/red]"))
    orch.set_ear(ear)
    try:
        bgr = cv2.imread(str(image))
        if bgr is None:
            orch.capture_failed(f"Cannot read image: {image}")
            raise typer.Exit(1)
        rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        orch.load_image(detect_once(source, rgb, mode))
        if not orch.can_analyze():
            console.print("[yellow]No clear subject detected[/yellow]")
            raise typer.Exit(1)
        with console.status("Reading..."):
            report = orch.analyze()
        if report is None:
            raise typer.Exit(1)
        if as_json:
            console.print_json(report.model_dump_json(by_alias=True))
        else:
            render_report(report)
    finally:
        source.close()

def _draw_status(bgr: np.ndarray, orch: AnalysisOrchestrator) -> np.ndarray:
    out = bgr.copy()
    h, w = out.shape[:2]
    for lm in orch.landmarks or []:
        cv2.circle(out, (int(lm.x * w), int(lm.y * h)), 1, (0, 255, 0), -1)

    lines = [f"{orch.mode.value} | {orch.state.value}"]
    if orch.pose_status is not None:
        lines.append(orch.pose_status.message)
    if orch.state == AppState.SCANNING:
        lines.append("[a] analyze" if orch.can_analyze() else "waiting for subject")
    lines.append("[m] mode  [c] camera  [d] dismiss  [q] quit")
    for i, text in enumerate(lines):
        y = 26 + i * 24
        cv2.putText(out, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 0), 4, cv2.LINE_AA)
        cv2.putText(out, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1, cv2.LINE_AA)
    return out

@app.command()
def live(
    mode: VisionMode = typer.Option(VisionMode.FACE, "--mode", help="face|hand|body"),
    camera: int = typer.Option(0, "--camera", min=0, help="OpenCV camera index."),
    local: bool = typer.Option(False, "--local", help="Use rule-based readings instead of the narrative service."),
    profile: str | None = typer.Option(None, "--profile", help="Detector threshold preset: balanced|strict"),
):
    """Live camera session with pose gating."""
    source = _detector(profile)

    def on_state(prev: AppState, new: AppState) -> None:
        if new == AppState.RESULT and orch.report is not None:
            render_report(orch.report)

    orch = AnalysisOrchestrator(
        _make_service(local), mode=mode, on_state_change=on_state, on_error=lambda m: console.print(f"[red]{m}[/red]")
    )
    cap = cv2.VideoCapture(camera)
    if not cap.isOpened():
        orch.capture_failed(f"Cannot open camera {camera}")
        raise typer.Exit(1)
    orch.start_camera(camera)
    loop = FrameLoop(source, orch.context, orch.update_landmarks)
    modes = list(VisionMode)
    t0 = time.monotonic()
    failed_reads = 0
    try:
        while orch.context.active:
            ok, bgr = cap.read()
            failed_reads = 0 if ok else failed_reads + 1
            if failed_reads >= MAX_FAILED_READS:
                orch.capture_failed(f"Camera {orch.context.camera_index} stopped delivering frames")
                break
            rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB) if ok else None
            if not loop.tick(rgb, int((time.monotonic() - t0) * 1000)):
                break
            if ok:
                cv2.imshow(WINDOW, _draw_status(bgr, orch))
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                orch.stop_capture()
            elif key == ord("a") and orch.can_analyze():
                threading.Thread(target=orch.analyze, daemon=True).start()
            elif key == ord("d"):
                orch.dismiss()
            elif key == ord("m"):
                orch.set_mode(modes[(modes.index(orch.mode) + 1) % len(modes)])
            elif key == ord("c"):
                # Cycle to the next index, wrapping to 0 when it does not open.
                nxt = orch.context.camera_index + 1
                cap.release()
                cap = cv2.VideoCapture(nxt)
                if not cap.isOpened():
                    nxt = 0
                    cap = cv2.VideoCapture(nxt)
                orch.switch_camera(nxt)
    finally:
        cap.release()
        cv2.destroyAllWindows()
        source.close()
    if orch.state == AppState.ERROR:
        raise typer.Exit(1)

def _iter_images(dataset_dir: Path) -> list[Path]:
    return sorted(p for p in dataset_dir.rglob("*") if p.is_file() and p.suffix.lower() in IMAGE_EXTS)

def _summarize(m: VisionMetrics) -> tuple[str, str]:
    if m.face is not None:
        z = m.face.zones
        return z.dominant, f"upper={z.upper:.3f} middle={z.middle:.3f} lower={z.lower:.3f}"
    if m.hand is not None:
        return m.hand.element, f"palm={m.hand.palm_ratio:.2f} finger={m.hand.finger_length_ratio:.2f}"
    b = m.body
    return b.posture_type, f"shoulders={b.shoulder_balance:+.3f} torso={b.torso_alignment:+.3f} head={b.head_tilt:+.3f}"

@app.command()
def batch(
    dataset_dir: Path = typer.Argument(..., exists=True, file_okay=False, dir_okay=True, readable=True, help="Directory of images (searched recursively)."),
    mode: VisionMode = typer.Option(VisionMode.FACE, "--mode", help="face|hand|body"),
    profile: str | None = typer.Option(None, "--profile", help="Detector threshold preset: balanced|strict"),
    max_images: int | None = typer.Option(None, "--max-images", help="Optional cap for debugging."),
):
    """Measure and label every image in a directory (no narrative calls)."""
    paths = _iter_images(dataset_dir)
    if max_images is not None:
        paths = paths[:max_images]
    if not paths:
        console.print(f"[yellow]No images under[/yellow] {dataset_dir}")
        raise typer.Exit(1)

    source = _detector(profile)
    table = Table(title=f"{mode.value} metrics ({len(paths)} images)")
    table.add_column("image")
    table.add_column("label", style="bold")
    table.add_column("measurements")
    try:
        for p in tqdm(paths, desc=f"{mode.value}", unit="img"):
            rel = p.relative_to(dataset_dir).as_posix()
            bgr = cv2.imread(str(p))
            if bgr is None:
                table.add_row(rel, "[red]unreadable[/red]", "")
                continue
            lms = detect_once(source, cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB), mode)
            try:
                label, detail = _summarize(extract_metrics(mode, lms))
            except InsufficientLandmarksError:
                table.add_row(rel, "[yellow]no subject[/yellow]", "")
                continue
            table.add_row(rel, label, detail)
    finally:
        source.close()
    console.print(table)

if __name__ == "__main__":
    app()
