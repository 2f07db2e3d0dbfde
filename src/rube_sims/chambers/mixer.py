# src/rube_sims/chambers/mixer.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import List

import numpy as np

from rube_sims.core.events import BaseEvent
from rube_sims.core.physics import push_out_of_segment
from rube_sims.core.shapes import LocalBall
from .base import Chamber, ChamberKind, Obstacle

PUSH = 50.0
SPIN_TO_SPEED = 100.0


@dataclass
class Blade(Obstacle):
    cx: float
    cy: float
    half_length: float
    speed: float   # rad / s, sign gives the spin direction

    def angle(self, t: float) -> float:
        return t * self.speed

    def endpoints(self, t: float) -> tuple[np.ndarray, np.ndarray]:
        a = self.angle(t)
        half = self.half_length * np.array([math.cos(a), math.sin(a)])
        center = np.array([self.cx, self.cy])
        return center - half, center + half


class MixerChamber(Chamber):
    """Two counter-rotating blades that bat balls around."""

    kind = ChamberKind.MIXER
    obstacle_fields = {"blades": Blade}

    def generate(self) -> None:
        half = 60.0 * self.scale
        self.blades: List[Blade] = [
            Blade(cx=self.w * 0.3, cy=self.h * 0.5, half_length=half, speed=3.0),
            Blade(cx=self.w * 0.7, cy=self.h * 0.5, half_length=half, speed=-2.5),
        ]

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        thick = 8.0 * self.scale
        for ball in balls:
            for blade in self.blades:
                a, b = blade.endpoints(self.t)
                n, _ = push_out_of_segment(ball.pos, ball.radius, a, b, thick)
                if n is None:
                    continue
                angle = blade.angle(self.t)
                tangent = np.array([-math.sin(angle), math.cos(angle)])
                spin = blade.speed * SPIN_TO_SPEED * self.scale
                ball.vel += n * PUSH * self.scale + tangent * spin * 0.5
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        width = self.px(16, minimum=4)
        for blade in self.blades:
            a, b = blade.endpoints(self.t)
            canvas.draw_line(ox + a[0], oy + a[1], ox + b[0], oy + b[1], (200, 100, 100), 255, width)
            canvas.fill_circle(ox + blade.cx, oy + blade.cy, 10 * self.scale, (150, 150, 150))
