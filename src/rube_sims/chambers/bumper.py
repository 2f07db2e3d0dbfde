# src/rube_sims/chambers/bumper.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import List

import numpy as np

from rube_sims.core.events import BaseEvent, BumperHitEvent
from rube_sims.core.physics import push_out_of_circle, reflect
from rube_sims.core.shapes import LocalBall
from rube_sims.utils.random import randint, uniform
from .base import Chamber, ChamberKind, Obstacle

RESTITUTION = 2.0   # super-elastic
FLASH = 0.2
MAX_ATTEMPTS = 100


@dataclass
class Bumper(Obstacle):
    x: float
    y: float
    radius: float
    hit_timer: float = 0.0


class BumperChamber(Chamber):
    """Pinball bumpers that return more speed than they receive."""

    kind = ChamberKind.BUMPER
    obstacle_fields = {"bumpers": Bumper}

    def generate(self) -> None:
        w, h = self.w, self.h
        self.bumpers: List[Bumper] = []
        margin = 20.0 * self.scale
        target = randint("layout", 2, 4)
        attempts = 0
        while len(self.bumpers) < target and attempts < MAX_ATTEMPTS:
            attempts += 1
            radius = uniform("layout", 20.0, 35.0) * self.scale
            x = uniform("layout", radius + margin, w - radius - margin)
            y = uniform("layout", h * 0.15, h * 0.85)
            if any(math.hypot(x - b.x, y - b.y) < radius + b.radius + margin for b in self.bumpers):
                continue
            self.bumpers.append(Bumper(x=x, y=y, radius=radius))

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        events: List[BaseEvent] = []
        for b in self.bumpers:
            if b.hit_timer > 0:
                b.hit_timer = max(0.0, b.hit_timer - dt)

        for ball in balls:
            for i, b in enumerate(self.bumpers):
                _, n = push_out_of_circle(ball.pos, ball.radius, np.array([b.x, b.y]), b.radius)
                if n is None:
                    continue
                reflect(ball.vel, n, 1 + RESTITUTION)
                b.hit_timer = FLASH
                events.append(BumperHitEvent(t=self.t, chamber=self.name, body_id=ball.id, bumper=i))
        return events

    def draw(self, canvas, ox: float, oy: float) -> None:
        white = (255, 255, 255)
        for b in self.bumpers:
            body = (255, 255, 100) if b.hit_timer > 0 else (200, 50, 50)
            cx, cy = ox + b.x, oy + b.y
            canvas.fill_circle(cx, cy, b.radius, body)
            canvas.stroke_circle(cx, cy, b.radius, white, 255, 3)
            canvas.stroke_circle(cx, cy, b.radius * 0.6, white, 150, 2)
            canvas.stroke_circle(cx, cy, b.radius * 0.3, white, 150, 2)
