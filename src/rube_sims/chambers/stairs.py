# src/rube_sims/chambers/stairs.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import List

from rube_sims.core.events import BaseEvent
from rube_sims.core.shapes import LocalBall
from rube_sims.utils.random import choice, randint, uniform
from .base import Chamber, ChamberKind, Obstacle, lands_on

BOUNCE = 0.8
BOOSTER_BOUNCE = 1.8
BOOSTER_CHANCE = 0.2
NUDGE = 60.0
MIN_WALK_SPEED = 30.0
PHASE_SWAY = 5.0
MOTIONS = ("static", "horizontal", "vertical", "phase")


@dataclass
class Step(Obstacle):
    x_orig: float
    y_orig: float
    x: float
    y: float
    w: float
    h: float
    is_booster: bool = False
    motion: str = "static"
    offset: float = 0.0
    range: float = 0.0
    speed: float = 1.0

    def __post_init__(self):
        super().__post_init__()
        if self.motion not in MOTIONS:
            raise ValueError(f"Unknown step motion {self.motion!r}")

    def animate(self, t: float, scale: float) -> None:
        if self.motion == "horizontal":
            self.x = self.x_orig + math.sin(t * self.speed + self.offset) * self.range
        elif self.motion == "vertical":
            self.y = self.y_orig + math.cos(t * self.speed + self.offset) * self.range
        elif self.motion == "phase":
            self.x = self.x_orig + math.sin(t * self.speed) * PHASE_SWAY * scale


class StairsChamber(Chamber):
    """A staircase of one-way steps walking balls across the chamber."""

    kind = ChamberKind.STAIRS
    obstacle_fields = {"steps": Step}
    state_scalars = ("direction",)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.direction = 1   # +1 descends to the right, -1 to the left

    def generate(self) -> None:
        w, h = self.w, self.h
        self.direction = choice("layout", (1, -1))
        count = randint("layout", 6, 9)
        step_w = w * 0.9 / count
        step_h = h * 0.7 / count

        self.steps: List[Step] = []
        for i in range(count):
            x = i * step_w if self.direction == 1 else w - (i + 1) * step_w
            y = h * 0.15 + i * step_h
            self.steps.append(Step(
                x_orig=x, y_orig=y, x=x, y=y,
                w=step_w + 5 * self.scale,
                h=12 * self.scale,
                is_booster=uniform("layout", 0.0, 1.0) < BOOSTER_CHANCE,
                motion=choice("layout", MOTIONS),
                offset=uniform("layout", 0.0, 2 * math.pi),
                range=uniform("layout", 10.0, 30.0) * self.scale,
                speed=uniform("layout", 1.0, 3.0),
            ))

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        for s in self.steps:
            s.animate(self.t, self.scale)

        nudge = NUDGE * self.scale * dt
        walk = MIN_WALK_SPEED * self.scale
        for ball in balls:
            for s in self.steps:
                half = ball.radius * 0.5
                if not (ball.x + half >= s.x and ball.x - half <= s.x + s.w):
                    continue
                if not lands_on(ball, s.y, s.y + s.h, dt):
                    continue
                ball.pos[1] = s.y - ball.radius
                ball.vel[1] = -ball.vel[1] * (BOOSTER_BOUNCE if s.is_booster else BOUNCE)
                ball.vel[0] += self.direction * nudge
                if abs(ball.vel[0]) < walk:
                    ball.vel[0] = self.direction * walk
        return []

    def draw(self, canvas, ox: float, oy: float) -> None:
        edge = self.px(3, minimum=1)
        for s in self.steps:
            neon = (255, 50, 150) if s.is_booster else (50, 150, 255)
            canvas.fill_rect(ox + s.x - 2, oy + s.y - 2, s.w + 4, s.h + 4, neon, 40)
            canvas.fill_rect(ox + s.x, oy + s.y, s.w, s.h, (20, 20, 30))
            canvas.fill_rect(ox + s.x, oy + s.y, s.w, edge, neon)
            if s.is_booster:
                pulse = math.sin(self.t * 10) * 0.5 + 0.5
                canvas.stroke_rect(ox + s.x, oy + s.y, s.w, s.h, (255, 255, 255), int(50 + 100 * pulse), 1)
