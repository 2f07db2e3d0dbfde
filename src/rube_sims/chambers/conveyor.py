# src/rube_sims/chambers/conveyor.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import List

from rube_sims.core.events import BaseEvent
from rube_sims.core.shapes import LocalBall
from .base import Chamber, ChamberKind, Obstacle, lands_on

BELT_SPEED = 100.0
FRICTION = 5.0   # 1/s


@dataclass
class Belt(Obstacle):
    x: float
    y: float
    w: float
    h: float
    speed: float


class ConveyorChamber(Chamber):
    """Two belts running in opposite directions; balls ride them sideways."""

    kind = ChamberKind.CONVEYOR
    obstacle_fields = {"belts": Belt}

    def generate(self) -> None:
        w, h = self.w, self.h
        belt_h = max(8.0, math.floor(h * 0.03))
        speed = BELT_SPEED * self.scale
        self.belts: List[Belt] = [
            Belt(x=w * 0.1, y=h * 0.3, w=w * 0.4, h=belt_h, speed=speed),
            Belt(x=w * 0.5, y=h * 0.6, w=w * 0.4, h=belt_h, speed=-speed),
        ]

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        blend = min(1.0, FRICTION * dt)
        for ball in balls:
            for b in self.belts:
                if not (ball.x + ball.radius > b.x and ball.x - ball.radius < b.x + b.w):
                    continue
                if not lands_on(ball, b.y, b.y + b.h, dt):
                    continue
                ball.pos[1] = b.y - ball.radius
                ball.vel[1] = 0.0
                ball.vel[0] = ball.vel[0] * (1 - blend) + b.speed * blend
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        spacing = self.px(20, minimum=10)
        width = self.px(2, minimum=1)
        for b in self.belts:
            canvas.fill_rect(ox + b.x, oy + b.y, b.w, b.h, (60, 60, 60))
            offset = (self.t * b.speed) % spacing
            tread = offset
            while tread < b.w:
                canvas.draw_line(ox + b.x + tread, oy + b.y, ox + b.x + tread, oy + b.y + b.h, (40, 40, 40), 255, width)
                tread += spacing
            for wx in (b.x, b.x + b.w):
                canvas.fill_circle(ox + wx, oy + b.y + b.h / 2, b.h / 2 + 2, (30, 30, 30))
