# src/rube_sims/chambers/magnet.py

from __future__ import annotations
from dataclasses import dataclass
from typing import List

import numpy as np

from rube_sims.core.events import BaseEvent
from rube_sims.core.physics import reflect, safe_normal
from rube_sims.core.shapes import LocalBall
from rube_sims.utils.random import choice
from .base import Chamber, ChamberKind, Obstacle

RESTITUTION = 1.5
STRENGTH = 9_000_000.0   # px^3 / s^2 at scale 1


@dataclass
class Magnet(Obstacle):
    x: float
    y: float
    radius: float
    strength: float
    polarity: str = "pull"   # "pull" attracts, "push" repels

    def __post_init__(self):
        super().__post_init__()
        if self.polarity not in ("pull", "push"):
            raise ValueError(f"Unknown magnet polarity {self.polarity!r}")


class MagnetChamber(Chamber):
    """A single inverse-square attractor (or repulsor) with a solid core."""

    kind = ChamberKind.MAGNET
    obstacle_fields = {"magnets": Magnet}

    def generate(self) -> None:
        self.magnets: List[Magnet] = [
            Magnet(
                x=self.w * 0.5,
                y=self.h * 0.5,
                radius=40.0 * self.scale,
                # acceleration ~ strength / d^2 grows linearly with scale
                strength=STRENGTH * self.scale ** 3,
                polarity=choice("layout", ("pull", "push")),
            )
        ]

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        for ball in balls:
            for m in self.magnets:
                away = ball.pos - np.array([m.x, m.y])
                raw_dist = float(np.linalg.norm(away))
                # unit vector from the core towards the ball
                out = safe_normal(away, raw_dist)
                dist = max(raw_dist, m.radius)

                accel = m.strength / (dist * dist)
                if m.polarity == "push":
                    accel = -accel
                ball.vel -= out * accel * dt

                reach = m.radius + ball.radius
                if raw_dist < reach:
                    ball.pos += out * (reach - raw_dist)
                    reflect(ball.vel, out, RESTITUTION)
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        for m in self.magnets:
            color = (100, 100, 255) if m.polarity == "pull" else (255, 100, 100)
            core = (50, 50, 200) if m.polarity == "pull" else (200, 50, 50)
            span = 200 * self.scale
            for i in range(5):
                offset = (self.t * 5 * self.scale + i * span / 5) % span
                alpha = max(0, int(255 - offset / self.scale * 1.5))
                canvas.stroke_circle(ox + m.x, oy + m.y, m.radius + offset, color, alpha, 1)
            canvas.fill_circle(ox + m.x, oy + m.y, m.radius, core)
