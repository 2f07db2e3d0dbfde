# src/rube_sims/chambers/trampoline.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import List

from rube_sims.core.events import BaseEvent
from rube_sims.core.shapes import LocalBall
from .base import Chamber, ChamberKind, Obstacle, lands_on

RESTITUTION = 1.5
MAX_BOUNCE = 800.0
MIN_BOUNCE = 200.0
WEAK_BOUNCE = 350.0


@dataclass
class Pad(Obstacle):
    x: float
    y: float
    w: float
    h: float


class TrampolineChamber(Chamber):
    """A springy pad that throws falling balls back up."""

    kind = ChamberKind.TRAMPOLINE
    obstacle_fields = {"pads": Pad}

    def generate(self) -> None:
        w, h = self.w, self.h
        self.pads: List[Pad] = [
            Pad(x=w * 0.2, y=h * 0.7, w=w * 0.6, h=max(10.0, math.floor(h * 0.035))),
        ]

    @property
    def max_bounce(self) -> float:
        return MAX_BOUNCE * self.scale

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        for ball in balls:
            for p in self.pads:
                if not (ball.x + ball.radius > p.x and ball.x - ball.radius < p.x + p.w):
                    continue
                if not lands_on(ball, p.y, p.y + p.h, dt):
                    continue
                ball.pos[1] = p.y - ball.radius
                vy = -ball.vel[1] * RESTITUTION
                vy = max(vy, -self.max_bounce)
                if vy > -MIN_BOUNCE * self.scale:
                    vy = -WEAK_BOUNCE * self.scale
                ball.vel[1] = vy
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        leg = self.px(4, minimum=2)
        inset = self.px(10, minimum=5)
        bed = self.px(8, minimum=4)
        for p in self.pads:
            for lx in (p.x + inset, p.x + p.w - inset):
                canvas.draw_line(ox + lx, oy + p.y + inset, ox + lx, oy + self.h, (100, 100, 100), 255, leg)
            canvas.fill_rect(ox + p.x, oy + p.y, p.w, bed, (50, 50, 200))
            canvas.stroke_rect(ox + p.x, oy + p.y, p.w, bed, (100, 100, 255), 255, self.px(2, minimum=1))
