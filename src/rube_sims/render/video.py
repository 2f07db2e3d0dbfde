# src/rube_sims/render/video.py

from __future__ import annotations

from pathlib import Path
import shutil
from typing import TYPE_CHECKING, Callable

from matplotlib.animation import FFMpegWriter

from .canvas import MatplotlibCanvas, RendererConfig

if TYPE_CHECKING:
    from rube_sims.core.events import BaseEvent
    from rube_sims.core.world import World

PREVIEW_FFMPEG_ARGS = [
    "-crf", "35",
    "-preset", "ultrafast",
    "-tune", "zerolatency",
    "-pix_fmt", "yuv420p",
]
FINAL_FFMPEG_ARGS = [
    "-crf", "18",          # 16-20 is a good "high quality" range
    "-preset", "slow",
    "-pix_fmt", "yuv420p",
]


def require_ffmpeg() -> None:
    if shutil.which("ffmpeg") is None:
        raise RuntimeError(
            "ffmpeg not found. Install with: conda install -c conda-forge ffmpeg"
        )


def render_video(
    world: World,
    *,
    output_path: str | Path,
    n_frames: int,
    dt: float,
    fps: int = 60,
    steps_per_frame: int = 1,
    config: RendererConfig | None = None,
    bitrate: int | None = None,
    preview: bool = False,
    on_events: Callable[[list[BaseEvent]], None] | None = None,
    log_interval: int = 1,  # seconds
) -> Path:
    """
    Step a live, initialized World and write every frame to an MP4.

    Each video frame advances the world `steps_per_frame` times by `dt`.
    Events produced while stepping are handed to `on_events` if given.

    Requirements:
        - ffmpeg installed and discoverable by Matplotlib.
    """
    require_ffmpeg()
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    canvas = MatplotlibCanvas(world.w, world.h, config)
    writer = FFMpegWriter(
        fps=fps,
        metadata={"artist": "rube_sims"},
        bitrate=bitrate,
        extra_args=PREVIEW_FFMPEG_ARGS if preview else FINAL_FFMPEG_ARGS,
    )

    try:
        with writer.saving(canvas.fig, str(output_path), canvas.config.dpi):
            for idx in range(n_frames):
                for _ in range(steps_per_frame):
                    events = world.update(dt)
                    if on_events is not None:
                        on_events(events)
                world.draw(canvas)
                writer.grab_frame()
                if (idx + 1) % (fps * log_interval) == 0:
                    print(f"Rendered {(idx+1)/fps:.1f} seconds of video...")
    finally:
        canvas.close()
    return output_path
