# src/rube_sims/chambers/tesla_coil.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import List

import numpy as np

from rube_sims.core.events import BaseEvent, ZapEvent
from rube_sims.core.physics import push_out_of_circle, reflect
from rube_sims.core.shapes import LocalBall
from .base import Chamber, ChamberKind, Obstacle

CHARGE_RATE = 0.8
KICK = 400.0
RESTITUTION = 1.5
ZAP_LIFE = 0.15


@dataclass
class Coil(Obstacle):
    x: float
    y: float
    radius: float
    range: float
    charge: float = 0.0


@dataclass
class Zap:
    """Visual-only arc from a coil to where the ball was when it fired."""
    x1: float
    y1: float
    x2: float
    y2: float
    life: float = ZAP_LIFE


class TeslaCoilChamber(Chamber):
    """Coils that charge up and fire a radial kick at the first ball in range."""

    kind = ChamberKind.TESLA_COIL
    obstacle_fields = {"coils": Coil}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.zaps: List[Zap] = []

    def generate(self) -> None:
        self.zaps = []
        radius = self.min_dim * 0.06
        reach = self.min_dim * 0.25
        self.coils: List[Coil] = [
            Coil(x=self.w * 0.3, y=self.h * 0.5, radius=radius, range=reach, charge=0.0),
            Coil(x=self.w * 0.7, y=self.h * 0.5, radius=radius, range=reach, charge=0.5),
        ]

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        events: List[BaseEvent] = []

        for c in self.coils:
            c.charge += dt * CHARGE_RATE
        for z in self.zaps:
            z.life -= dt
        self.zaps = [z for z in self.zaps if z.life > 0]

        for ball in balls:
            for i, c in enumerate(self.coils):
                center = np.array([c.x, c.y])
                offset = ball.pos - center
                dist = float(np.linalg.norm(offset))

                if c.radius < dist < c.range and c.charge >= 1.0:
                    c.charge = 0.0
                    self.zaps.append(Zap(c.x, c.y, ball.x, ball.y))
                    ball.vel += offset / dist * KICK * self.scale
                    events.append(ZapEvent(t=self.t, chamber=self.name, body_id=ball.id, coil=i))

                _, n = push_out_of_circle(ball.pos, ball.radius, center, c.radius)
                if n is not None:
                    reflect(ball.vel, n, RESTITUTION)
        return events

    def draw(self, canvas, ox: float, oy: float) -> None:
        width = self.px(3, minimum=2)
        for z in self.zaps:
            alpha = int(z.life / ZAP_LIFE * 255)
            canvas.draw_line(ox + z.x1, oy + z.y1, ox + z.x2, oy + z.y2, (200, 200, 255), alpha, width)

        dot = self.px(4, minimum=2)
        for c in self.coils:
            glow = max(0, min(255, int(c.charge * 100)))
            canvas.fill_circle(ox + c.x, oy + c.y, c.range, (100, 100, 255), glow)
            canvas.fill_circle(ox + c.x, oy + c.y, c.radius, (50, 50, 80))
            canvas.stroke_circle(ox + c.x, oy + c.y, c.radius, (150, 150, 255), 255, width)

            arc = c.charge * math.pi * 2
            for i in range(4):
                a = self.t * 2 + i * math.pi / 2
                if a < arc:
                    r = c.radius + 5 * self.scale
                    canvas.fill_circle(ox + c.x + math.cos(a) * r, oy + c.y + math.sin(a) * r, dot, (255, 255, 100))
