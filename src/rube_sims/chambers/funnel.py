# src/rube_sims/chambers/funnel.py

from __future__ import annotations
from dataclasses import dataclass
from typing import List

import numpy as np

from rube_sims.core.events import BaseEvent
from rube_sims.core.physics import push_out_of_segment, reflect
from rube_sims.core.shapes import LocalBall
from .base import Chamber, ChamberKind, Obstacle

RESTITUTION = 1.8


@dataclass
class Wall(Obstacle):
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def a(self) -> np.ndarray:
        return np.array([self.x1, self.y1])

    @property
    def b(self) -> np.ndarray:
        return np.array([self.x2, self.y2])


class FunnelChamber(Chamber):
    """Two angled walls narrowing into a gap, with a pair of lips below it."""

    kind = ChamberKind.FUNNEL
    obstacle_fields = {"walls": Wall}

    def generate(self) -> None:
        w, h = self.w, self.h
        self.walls: List[Wall] = [
            Wall(w * 0.05, h * 0.15, w * 0.35, h * 0.55),
            Wall(w * 0.95, h * 0.15, w * 0.65, h * 0.55),
            Wall(w * 0.25, h * 0.60, w * 0.40, h * 0.75),
            Wall(w * 0.75, h * 0.60, w * 0.60, h * 0.75),
        ]

    @property
    def wall_thickness(self) -> float:
        return self.px(4, minimum=2)

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        thick = self.wall_thickness
        for ball in balls:
            for wall in self.walls:
                n, _ = push_out_of_segment(ball.pos, ball.radius, wall.a, wall.b, thick)
                if n is not None:
                    reflect(ball.vel, n, RESTITUTION)
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        width = self.px(8, minimum=4)
        for wall in self.walls:
            canvas.draw_line(ox + wall.x1, oy + wall.y1, ox + wall.x2, oy + wall.y2, (90, 70, 110), 255, width)
