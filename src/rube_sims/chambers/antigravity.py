# src/rube_sims/chambers/antigravity.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import List

from rube_sims.core.events import BaseEvent
from rube_sims.core.shapes import LocalBall
from rube_sims.utils.random import randint, uniform
from .base import Chamber, ChamberKind, Obstacle

LIFT = -600.0            # outweighs gravity, so balls float up
FALL_SPEED_CAP = 100.0
FALL_DAMPING = 0.9
DRIFT = 20.0
WALL_MARGIN = 10.0
WALL_BOUNCE = 0.5


@dataclass
class Zone(Obstacle):
    x: float
    y: float
    w: float
    h: float
    force: float

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.w and self.y <= y <= self.y + self.h


class AntigravityChamber(Chamber):
    """Rectangular zones where gravity is overpowered and balls drift upward."""

    kind = ChamberKind.ANTIGRAVITY
    obstacle_fields = {"zones": Zone}

    def generate(self) -> None:
        w, h = self.w, self.h
        self.zones: List[Zone] = []
        count = randint("layout", 2, 3)
        for i in range(count):
            zw = w * uniform("layout", 0.3, 0.6)
            zh = h * uniform("layout", 0.2, 0.4)
            self.zones.append(Zone(
                x=uniform("layout", w * 0.1, w * 0.9 - zw),
                y=h * ((i + 0.5) / count) - zh * 0.5,
                w=zw,
                h=zh,
                force=LIFT * self.scale,
            ))

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        margin = WALL_MARGIN * self.scale
        for ball in balls:
            for z in self.zones:
                if not z.contains(ball.x, ball.y):
                    continue
                ball.vel[1] += z.force * dt
                if ball.vel[1] > FALL_SPEED_CAP * self.scale:
                    ball.vel[1] *= FALL_DAMPING
                ball.vel[0] += math.sin(self.t * 2 + z.x) * DRIFT * self.scale * dt

            # soft side walls
            if ball.pos[0] < margin:
                ball.pos[0] = margin
                ball.vel[0] = abs(ball.vel[0]) * WALL_BOUNCE
            if ball.pos[0] > self.w - margin:
                ball.pos[0] = self.w - margin
                ball.vel[0] = -abs(ball.vel[0]) * WALL_BOUNCE
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        pulse = 0.8 + 0.2 * math.sin(self.t * 3)
        color = (150, 200, 255)
        for z in self.zones:
            canvas.fill_rect(ox + z.x, oy + z.y, z.w, z.h, color, int(20 * pulse))
            canvas.stroke_rect(ox + z.x, oy + z.y, z.w, z.h, color, 150, 2)
