# src/rube_sims/core/layout.py

from __future__ import annotations

from dataclasses import asdict, dataclass
import math
from typing import Any, Mapping


@dataclass(frozen=True)
class Viewport:
    """Axis-aligned chamber rectangle in global canvas coordinates."""
    x: float
    y: float
    w: float
    h: float
    index: int = 0
    col: int = 0
    row: int = 0

    @property
    def origin(self) -> tuple[float, float]:
        return (self.x, self.y)

    def overlaps_circle(self, x: float, y: float, r: float) -> bool:
        """AABB of the circle vs the viewport, strict on every edge."""
        return (
            x + r > self.x
            and x - r < self.x + self.w
            and y + r > self.y
            and y - r < self.y + self.h
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None, fallback: "Viewport") -> "Viewport":
        """Per-field restore; anything missing or unusable keeps `fallback`'s value."""
        if not isinstance(data, Mapping):
            return fallback
        values = asdict(fallback)
        for key, current in values.items():
            raw = data.get(key)
            if raw is None:
                continue
            try:
                value = type(current)(raw)
            except (TypeError, ValueError):
                continue
            if isinstance(value, float) and not math.isfinite(value):
                continue
            values[key] = value
        if values["w"] <= 0 or values["h"] <= 0:
            return fallback
        return cls(**values)


def grid_shape(n: int) -> tuple[int, int]:
    """
    Grid (cols, rows) for `n` chambers:
      n <= 3 -> one row
      n <= 6 -> 3 x 2
      else   -> 4 x ceil(n / 4)
    """
    if n <= 0:
        return (1, 1)
    if n <= 3:
        return (n, 1)
    if n <= 6:
        return (3, 2)
    return (4, math.ceil(n / 4))


def layout_viewports(
    n: int,
    width: float,
    height: float,
    cols: int | None = None,
    rows: int | None = None,
) -> tuple[list[Viewport], int, int]:
    """
    Split a `width x height` canvas into equal cells, row-major.

    A restored (cols, rows) pair is used verbatim when it can hold all `n`
    chambers; otherwise the shape is derived from `n`. Returns the viewports
    together with the grid shape actually used.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Canvas must have positive size, got {width}x{height}")
    if n <= 0:
        return [], *grid_shape(0)

    if cols is None or rows is None or cols <= 0 or rows <= 0 or cols * rows < n:
        cols, rows = grid_shape(n)

    cell_w = width / cols
    cell_h = height / rows

    viewports = []
    for i in range(n):
        col = i % cols
        row = i // cols
        viewports.append(
            Viewport(
                x=col * cell_w,
                y=row * cell_h,
                w=cell_w,
                h=cell_h,
                index=i,
                col=col,
                row=row,
            )
        )
    return viewports, cols, rows
