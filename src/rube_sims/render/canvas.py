# src/rube_sims/render/canvas.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib.lines import Line2D
from matplotlib.patches import Circle, Rectangle

from rube_sims.core.shapes import Color


class Canvas(Protocol):
    """
    Drawing surface handed to `World.draw` and every chamber's `draw`.

    Coordinates are canvas pixels with y pointing down. Colors are (r, g, b)
    in 0-255 plus a separate alpha in 0-255; widths are in pixels.
    """

    def clear(self, color: Color) -> None: ...
    def fill_circle(self, x: float, y: float, r: float, color: Color, alpha: int = 255) -> None: ...
    def stroke_circle(self, x: float, y: float, r: float, color: Color, alpha: int = 255, width: float = 1) -> None: ...
    def fill_rect(self, x: float, y: float, w: float, h: float, color: Color, alpha: int = 255) -> None: ...
    def stroke_rect(self, x: float, y: float, w: float, h: float, color: Color, alpha: int = 255, width: float = 1) -> None: ...
    def draw_line(self, x1: float, y1: float, x2: float, y2: float, color: Color, alpha: int = 255, width: float = 1) -> None: ...
    def push_clip(self, x: float, y: float, w: float, h: float) -> None: ...
    def pop_clip(self) -> None: ...


@dataclass
class RendererConfig:
    width_px: int = 1920
    height_px: int = 1080
    dpi: int = 100


def fig_inches_from_pixels(width_px: int, height_px: int, dpi: int) -> tuple[float, float]:
    return (width_px / dpi, height_px / dpi)


def _rgba(color: Color, alpha: float = 255) -> tuple[float, float, float, float]:
    r, g, b = color
    return (r / 255, g / 255, b / 255, max(0.0, min(1.0, alpha / 255)))


class MatplotlibCanvas:
    """
    `Canvas` on a Matplotlib Axes spanning the whole figure.

    The axes are set up as a `width x height` pixel grid with y increasing
    downward, so one data unit is one output pixel at the configured dpi.
    Clipping uses the top rectangle of the clip stack as each artist's clip
    path.
    """

    def __init__(self, width: float, height: float, config: RendererConfig | None = None):
        self.width = float(width)
        self.height = float(height)
        self.config = config or RendererConfig(width_px=int(width), height_px=int(height))
        self.fig: Figure | None = None
        self.ax: Axes | None = None
        self._clips: list[Rectangle] = []
        self._init_figure()

    def _init_figure(self) -> None:
        fig, ax = plt.subplots(
            figsize=fig_inches_from_pixels(self.config.width_px, self.config.height_px, self.config.dpi),
            dpi=self.config.dpi,
        )
        ax.set_position([0, 0, 1, 1])
        self.fig, self.ax = fig, ax
        self._setup_axes()

    def _setup_axes(self) -> None:
        ax = self.ax
        ax.set_xlim(0, self.width)
        ax.set_ylim(self.height, 0)   # y increases downward
        ax.set_aspect("auto")
        ax.set_axis_off()

    @property
    def _px_to_pt(self) -> float:
        # line widths are given in canvas pixels, Matplotlib wants points
        return 72.0 / self.config.dpi * (self.config.width_px / self.width)

    def _add(self, artist) -> None:
        if isinstance(artist, Line2D):
            self.ax.add_line(artist)
        else:
            self.ax.add_patch(artist)
        if self._clips:
            artist.set_clip_path(self._clips[-1])

    # --------- Canvas ---------

    def clear(self, color: Color) -> None:
        self.ax.clear()
        self._clips.clear()
        self._setup_axes()
        self.fig.patch.set_facecolor(_rgba(color))
        self.ax.set_facecolor(_rgba(color))

    def fill_circle(self, x, y, r, color, alpha=255) -> None:
        self._add(Circle((x, y), r, facecolor=_rgba(color, alpha), edgecolor="none", linewidth=0))

    def stroke_circle(self, x, y, r, color, alpha=255, width=1) -> None:
        self._add(Circle((x, y), r, fill=False, edgecolor=_rgba(color, alpha),
                         linewidth=width * self._px_to_pt))

    def fill_rect(self, x, y, w, h, color, alpha=255) -> None:
        self._add(Rectangle((x, y), w, h, facecolor=_rgba(color, alpha), edgecolor="none", linewidth=0))

    def stroke_rect(self, x, y, w, h, color, alpha=255, width=1) -> None:
        self._add(Rectangle((x, y), w, h, fill=False, edgecolor=_rgba(color, alpha),
                            linewidth=width * self._px_to_pt))

    def draw_line(self, x1, y1, x2, y2, color, alpha=255, width=1) -> None:
        self._add(Line2D([x1, x2], [y1, y2], color=_rgba(color, alpha),
                         linewidth=width * self._px_to_pt, solid_capstyle="round"))

    def push_clip(self, x, y, w, h) -> None:
        clip = Rectangle((x, y), w, h, transform=self.ax.transData, visible=False)
        self._clips.append(clip)

    def pop_clip(self) -> None:
        if self._clips:
            self._clips.pop()

    def close(self) -> None:
        if self.fig is not None:
            plt.close(self.fig)
            self.fig = None
            self.ax = None
