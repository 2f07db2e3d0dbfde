# src/rube_sims/core/shapes.py

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Tuple

import numpy as np

Color = Tuple[int, int, int]

DEFAULT_RADIUS = 10.0
DEFAULT_COLOR: Color = (220, 80, 80)


# --------- Balls (global physics state) ---------

@dataclass
class Ball:
    """
    A moving circular body owned by the World.

    - pos / vel: global canvas coordinates (pixels, y down)
    - radius: constant, > 0
    - color: display attribute only
    - active: cleared when the ball leaves through the bottom of the canvas;
      inactive balls are removed from the World at the end of the frame
    """
    id: int
    pos: np.ndarray           # shape (2,)
    vel: np.ndarray           # shape (2,)
    radius: float = DEFAULT_RADIUS
    color: Color = DEFAULT_COLOR
    active: bool = True

    def __post_init__(self):
        if self.radius <= 0:
            raise ValueError(f"Ball radius must be positive, got {self.radius}")
        self.pos = np.asarray(self.pos, dtype=float).copy()
        self.vel = np.asarray(self.vel, dtype=float).copy()

    @property
    def x(self) -> float:
        return float(self.pos[0])

    @property
    def y(self) -> float:
        return float(self.pos[1])

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "x": float(self.pos[0]),
            "y": float(self.pos[1]),
            "vx": float(self.vel[0]),
            "vy": float(self.vel[1]),
            "radius": float(self.radius),
            "color": tuple(int(c) for c in self.color),
            "active": bool(self.active),
        }


# --------- Chamber-scoped views ---------

@dataclass
class LocalBall:
    """
    Working copy of a Ball handed to one chamber for one frame.

    Coordinates are relative to the chamber viewport origin. The World writes
    pos / vel / active back onto the owning Ball once the chamber returns, and
    turns `gravity_suppressed` / `color_override` into a possession annotation
    keyed by `id`. Chambers must not keep LocalBall references across frames;
    anything they track between frames is keyed by `id`.
    """
    id: int
    pos: np.ndarray
    vel: np.ndarray
    radius: float
    color: Color
    active: bool = True
    gravity_suppressed: bool = False
    color_override: Color | None = None

    @classmethod
    def from_ball(cls, ball: Ball, origin: np.ndarray) -> "LocalBall":
        return cls(
            id=ball.id,
            pos=ball.pos - origin,
            vel=ball.vel.copy(),
            radius=ball.radius,
            color=ball.color,
            active=ball.active,
        )

    def write_back(self, ball: Ball, origin: np.ndarray) -> None:
        ball.pos[:] = self.pos + origin
        ball.vel[:] = self.vel
        ball.active = bool(self.active)

    @property
    def x(self) -> float:
        return float(self.pos[0])

    @property
    def y(self) -> float:
        return float(self.pos[1])


@dataclass(frozen=True)
class Possession:
    """Per-frame annotation a chamber places on a ball it is steering."""
    chamber: str
    gravity_suppressed: bool = False
    color_override: Color | None = None


def create_ball(
    ball_id: int,
    pos,
    vel=(0.0, 0.0),
    radius: float = DEFAULT_RADIUS,
    color: Color | None = None,
) -> Ball:
    """Helper to create a Ball with sensible defaults."""
    return Ball(
        id=int(ball_id),
        pos=np.asarray(pos, dtype=float),
        vel=np.asarray(vel, dtype=float),
        radius=float(radius),
        color=tuple(int(c) for c in color) if color is not None else DEFAULT_COLOR,
        active=True,
    )


def ball_from_dict(data: dict[str, Any], ball_id: int) -> Ball:
    """
    Rebuild a Ball from a `Ball.to_dict()` entry.

    Every field falls back independently: missing coordinates become 0,
    missing radius / color take the defaults, missing `active` means alive.
    """
    radius = data.get("radius", DEFAULT_RADIUS)
    try:
        radius = float(radius)
    except (TypeError, ValueError):
        radius = DEFAULT_RADIUS
    if not np.isfinite(radius) or radius <= 0:
        radius = DEFAULT_RADIUS

    color = data.get("color") or DEFAULT_COLOR
    try:
        color = tuple(int(c) for c in color)[:3]
    except (TypeError, ValueError):
        color = DEFAULT_COLOR
    if len(color) != 3:
        color = DEFAULT_COLOR

    active = data.get("active")
    return Ball(
        id=ball_id,
        pos=np.array([_num(data.get("x")), _num(data.get("y"))]),
        vel=np.array([_num(data.get("vx")), _num(data.get("vy"))]),
        radius=radius,
        color=color,
        active=True if active is None else bool(active),
    )


def _num(value, default: float = 0.0) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return default
    return out if np.isfinite(out) else default
