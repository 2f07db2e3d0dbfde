# src/rube_sims/chambers/seesaw.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import List

import numpy as np

from rube_sims.core.events import BaseEvent
from rube_sims.core.physics import closest_point_on_segment, reflect
from rube_sims.core.shapes import LocalBall
from .base import Chamber, ChamberKind, Obstacle

RESTITUTION = 1.5
SPRING = 2.0
DAMPING = 0.98
MAX_ANGLE = 0.4
TORQUE_PER_PX = 0.0005


@dataclass
class Plank(Obstacle):
    cx: float
    cy: float
    length: float
    angle: float = 0.0
    angular_vel: float = 0.0

    def endpoints(self) -> tuple[np.ndarray, np.ndarray]:
        half = 0.5 * self.length * np.array([math.cos(self.angle), math.sin(self.angle)])
        center = np.array([self.cx, self.cy])
        return center - half, center + half

    def step(self, dt: float) -> None:
        self.angular_vel -= self.angle * SPRING * dt
        self.angular_vel *= DAMPING
        self.angle += self.angular_vel * dt
        if abs(self.angle) > MAX_ANGLE:
            self.angle = math.copysign(MAX_ANGLE, self.angle)
            self.angular_vel = 0.0


class SeesawChamber(Chamber):
    """A sprung plank on a central pivot that tips under impacts."""

    kind = ChamberKind.SEESAW
    obstacle_fields = {"planks": Plank}

    def generate(self) -> None:
        self.planks: List[Plank] = [Plank(cx=self.w * 0.5, cy=self.h * 0.4, length=self.w * 0.7)]

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        for plank in self.planks:
            plank.step(dt)

        thick = 8.0 * self.scale
        for ball in balls:
            for plank in self.planks:
                a, b = plank.endpoints()
                proj, s = closest_point_on_segment(ball.pos, a, b)
                offset = ball.pos - proj
                dist = float(np.linalg.norm(offset))
                reach = ball.radius + thick
                if dist >= reach:
                    continue
                # plank normal, flipped to the side the ball is on
                n = np.array([-math.sin(plank.angle), math.cos(plank.angle)])
                if offset[1] < 0:
                    n = -n
                ball.pos += n * (reach - dist)
                reflect(ball.vel, n, RESTITUTION)

                lever = (s - 0.5) * plank.length
                plank.angular_vel += lever * TORQUE_PER_PX / self.scale
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        width = self.px(12, minimum=4)
        for plank in self.planks:
            a, b = plank.endpoints()
            canvas.draw_line(ox + a[0], oy + a[1], ox + b[0], oy + b[1], (150, 100, 50), 255, width)
            canvas.fill_circle(ox + plank.cx, oy + plank.cy, 10 * self.scale, (100, 80, 40))
