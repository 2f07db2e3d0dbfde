# src/rube_sims/chambers/accelerator.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import List

from rube_sims.core.events import BaseEvent
from rube_sims.core.shapes import LocalBall
from rube_sims.utils.random import randint, uniform
from .base import Chamber, ChamberKind, Obstacle

BOOST = 5.0
ATTEMPTS_PER_BOOSTER = 10
GAP = 10.0


@dataclass
class Booster(Obstacle):
    x: float
    y: float
    w: float
    h: float
    dir_x: float
    dir_y: float
    force: float

    def overlaps_circle(self, x: float, y: float, r: float) -> bool:
        return x + r > self.x and x - r < self.x + self.w and y + r > self.y and y - r < self.y + self.h

    def overlaps(self, other: "Booster", gap: float) -> bool:
        return (
            self.x < other.x + other.w + gap
            and self.x + self.w + gap > other.x
            and self.y < other.y + other.h + gap
            and self.y + self.h + gap > other.y
        )


class AcceleratorChamber(Chamber):
    """Speed-boost pads, each pushing along its own random direction."""

    kind = ChamberKind.ACCELERATOR
    obstacle_fields = {"boosters": Booster}

    def generate(self) -> None:
        w, h = self.w, self.h
        self.boosters: List[Booster] = []
        min_side = 40.0 * self.scale
        gap = GAP * self.scale

        for _ in range(randint("layout", 3, 5)):
            for _ in range(ATTEMPTS_PER_BOOSTER):
                bw = uniform("layout", min_side, max(min_side, w * 0.3))
                bh = uniform("layout", min_side, max(min_side, h * 0.3))
                bx = uniform("layout", w * 0.1, w * 0.9 - bw)
                by = uniform("layout", h * 0.1, h * 0.9 - bh)
                angle = uniform("layout", 0.0, 2 * math.pi)
                candidate = Booster(
                    x=bx, y=by, w=bw, h=bh,
                    dir_x=math.cos(angle), dir_y=math.sin(angle),
                    force=uniform("layout", 600.0, 1200.0) * self.scale,
                )
                if not any(candidate.overlaps(other, gap) for other in self.boosters):
                    self.boosters.append(candidate)
                    break

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        for ball in balls:
            for b in self.boosters:
                if b.overlaps_circle(ball.x, ball.y, ball.radius):
                    ball.vel[0] += b.dir_x * b.force * BOOST * dt
                    ball.vel[1] += b.dir_y * b.force * BOOST * dt
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        alpha = int(100 + math.sin(self.t * 10) * 50)
        white = (255, 255, 255)
        width = self.px(4, minimum=2)
        head = 15 * self.scale
        for b in self.boosters:
            canvas.fill_rect(ox + b.x, oy + b.y, b.w, b.h, (50, 255, 50), alpha)

            cx = ox + b.x + b.w * 0.5
            cy = oy + b.y + b.h * 0.5
            length = min(b.w, b.h) * 0.4
            nx, ny = b.dir_x, b.dir_y
            x2, y2 = cx + nx * length, cy + ny * length
            canvas.draw_line(cx - nx * length, cy - ny * length, x2, y2, white, 255, width)
            canvas.draw_line(x2, y2, x2 - nx * head + ny * head * 0.5, y2 - ny * head - nx * head * 0.5, white, 255, width)
            canvas.draw_line(x2, y2, x2 - nx * head - ny * head * 0.5, y2 - ny * head + nx * head * 0.5, white, 255, width)
