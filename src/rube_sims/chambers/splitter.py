# src/rube_sims/chambers/splitter.py

from __future__ import annotations
from dataclasses import dataclass
from typing import List

import numpy as np

from rube_sims.core.events import BaseEvent
from rube_sims.core.physics import closest_point_on_segment, reflect, safe_normal
from rube_sims.core.shapes import LocalBall
from rube_sims.utils.random import uniform
from .base import Chamber, ChamberKind, Obstacle

RESTITUTION = 1.5


@dataclass
class Wedge(Obstacle):
    top_x: float
    top_y: float
    left_x: float
    left_y: float
    right_x: float
    right_y: float

    def walls(self) -> list[tuple[np.ndarray, np.ndarray, np.ndarray]]:
        """(start, end, outward unit normal) for the left and right faces."""
        top = np.array([self.top_x, self.top_y])
        left = np.array([self.left_x, self.left_y])
        right = np.array([self.right_x, self.right_y])

        d = left - top
        left_n = safe_normal(np.array([-d[1], d[0]]))   # up-left
        d = right - top
        right_n = safe_normal(np.array([d[1], -d[0]]))  # up-right
        return [(top, left, left_n), (top, right, right_n)]


class SplitterChamber(Chamber):
    """An inverted V that sends balls off to either side."""

    kind = ChamberKind.SPLITTER
    obstacle_fields = {"wedges": Wedge}

    def generate(self) -> None:
        w, h = self.w, self.h
        top_x = w * (0.5 + 0.1 * uniform("layout", 0.0, 1.0))
        top_y = h * (0.15 + 0.1 * uniform("layout", 0.0, 1.0))
        spread = w * (0.2 + 0.1 * uniform("layout", 0.0, 1.0))
        self.wedges: List[Wedge] = [
            Wedge(
                top_x=top_x, top_y=top_y,
                left_x=top_x - spread, left_y=h * 0.6,
                right_x=top_x + spread, right_y=h * 0.6,
            )
        ]

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        thick = self.px(5, minimum=2)
        walls = [wall for wedge in self.wedges for wall in wedge.walls()]
        for ball in balls:
            min_dist = ball.radius + thick
            for a, b, n in walls:
                proj, _ = closest_point_on_segment(ball.pos, a, b)
                if float(np.linalg.norm(ball.pos - proj)) >= min_dist:
                    continue
                # penetration measured along the face normal, so a ball that
                # slipped past the face is still pushed out on the outside
                signed = float(np.dot(ball.pos - a, n))
                if signed < min_dist:
                    ball.pos += n * (min_dist - signed)
                    reflect(ball.vel, n, RESTITUTION)
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        width = self.px(10, minimum=5)
        for wedge in self.wedges:
            for a, b, _ in wedge.walls():
                canvas.draw_line(ox + a[0], oy + a[1], ox + b[0], oy + b[1], (100, 200, 150), 255, width)
