# src/rube_sims/chambers/pegs.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import List

import numpy as np

from rube_sims.core.events import BaseEvent
from rube_sims.core.physics import push_out_of_circle, reflect
from rube_sims.core.shapes import LocalBall
from rube_sims.utils.random import randint, uniform
from .base import Chamber, ChamberKind, Obstacle

RESTITUTION = 1.5
JITTER = 30.0
MAX_ATTEMPTS = 1000


@dataclass
class Peg(Obstacle):
    x: float
    y: float
    radius: float


class PegsChamber(Chamber):
    """Plinko board: a random scatter of pegs that kick balls sideways."""

    kind = ChamberKind.PEGS
    obstacle_fields = {"pegs": Peg}

    def generate(self) -> None:
        self.pegs: List[Peg] = []
        peg_radius = self.min_dim * 0.025
        margin = self.min_dim * 0.08
        # room for a peg plus a ball between neighbours
        min_sep = peg_radius * 4

        target = randint("layout", 15, 25)
        attempts = 0
        while len(self.pegs) < target and attempts < MAX_ATTEMPTS:
            attempts += 1
            x = uniform("layout", margin, self.w - margin)
            y = uniform("layout", self.h * 0.15, self.h * 0.85)
            if any(math.hypot(x - p.x, y - p.y) < min_sep for p in self.pegs):
                continue
            self.pegs.append(Peg(x=x, y=y, radius=peg_radius))

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        for ball in balls:
            for peg in self.pegs:
                _, n = push_out_of_circle(ball.pos, ball.radius, np.array([peg.x, peg.y]), peg.radius)
                if n is None:
                    continue
                reflect(ball.vel, n, RESTITUTION)
                ball.vel[0] += uniform("physics", -0.5, 0.5) * JITTER * self.scale
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        width = self.px(2, minimum=1)
        for i, peg in enumerate(self.pegs):
            pulse = math.sin(self.t * 3 + i * 0.5) * 0.2 + 0.8
            color = (int(100 * pulse), int(80 * pulse), int(140 * pulse))
            rim = (color[0] + 40, color[1] + 30, color[2] + 30)
            canvas.fill_circle(ox + peg.x, oy + peg.y, peg.radius, color)
            canvas.stroke_circle(ox + peg.x, oy + peg.y, peg.radius, rim, 200, width)
