# src/rube_sims/chambers/wind_tunnel.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import List

from rube_sims.core.events import BaseEvent
from rube_sims.core.shapes import LocalBall
from .base import Chamber, ChamberKind, Obstacle


@dataclass
class Fan(Obstacle):
    x: float
    y: float
    w: float
    h: float
    direction: int   # +1 blows right, -1 blows left
    force: float

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.w and self.y <= y <= self.y + self.h


class WindTunnelChamber(Chamber):
    """Two horizontal bands blowing in opposite directions."""

    kind = ChamberKind.WIND_TUNNEL
    obstacle_fields = {"fans": Fan}

    def generate(self) -> None:
        w, h = self.w, self.h
        force = 1000.0 * self.scale
        self.fans: List[Fan] = [
            Fan(x=0.0, y=h * 0.2, w=w, h=h * 0.3, direction=1, force=force),
            Fan(x=0.0, y=h * 0.6, w=w, h=h * 0.3, direction=-1, force=force),
        ]

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        for ball in balls:
            for fan in self.fans:
                if fan.contains(ball.x, ball.y):
                    ball.vel[0] += fan.direction * fan.force * dt
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        spacing = self.px(40, minimum=20)
        width = self.px(2, minimum=1)
        length = self.px(30)
        gap = self.px(10, minimum=5)
        for fan in self.fans:
            color = (100, 150, 200) if fan.direction > 0 else (200, 150, 100)
            canvas.fill_rect(ox + fan.x, oy + fan.y, fan.w, fan.h, color, 30)

            offset = (self.t * fan.direction * 100 * self.scale) % spacing
            mid = fan.y + fan.h * 0.5
            for i in range(int(math.floor(fan.w / spacing)) + 1):
                lx = fan.x + i * spacing + offset
                if not fan.x <= lx <= fan.x + fan.w:
                    continue
                for dy in (-gap, 0.0, gap):
                    canvas.draw_line(ox + lx, oy + mid + dy, ox + lx + length * fan.direction, oy + mid + dy, color, 150, width)
