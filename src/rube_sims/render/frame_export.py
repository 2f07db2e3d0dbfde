# src/rube_sims/render/frame_export.py

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

import imageio.v3 as iio
import numpy as np

from .canvas import MatplotlibCanvas, RendererConfig

if TYPE_CHECKING:
    from rube_sims.core.world import World


def render_frame(world: World, config: RendererConfig | None = None) -> np.ndarray:
    """Draw the world's current state and return it as an (H, W, 4) uint8 array."""
    canvas = MatplotlibCanvas(world.w, world.h, config)
    try:
        world.draw(canvas)
        canvas.fig.canvas.draw()
        return np.asarray(canvas.fig.canvas.buffer_rgba()).copy()
    finally:
        canvas.close()


def export_frame(
    world: World,
    out_path: str | Path,
    *,
    config: RendererConfig | None = None,
) -> Path:
    """
    Render the world's current state to a PNG (or any extension imageio can
    write), at the same resolution and look as the video frames.
    """
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    iio.imwrite(out_path, render_frame(world, config))
    return out_path


def export_frames_at(
    world: World,
    times: Sequence[float],
    exp_dir: str | Path,
    dt: float,
    *,
    config: RendererConfig | None = None,
) -> list[Path]:
    """
    Advance the world and export one frame each time it reaches one of
    `times` (seconds, ascending). Times already in the past export immediately.
    """
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")
    exp_dir = Path(exp_dir)
    paths = []
    for target in sorted(times):
        while world.t + 1e-9 < target:
            world.update(dt)
        paths.append(export_frame(world, exp_dir / f"frame_{world.t:07.3f}.png", config=config))
    return paths
