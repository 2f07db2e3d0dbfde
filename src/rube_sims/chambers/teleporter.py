# src/rube_sims/chambers/teleporter.py

from __future__ import annotations
from dataclasses import dataclass
import math
from typing import Any, List, Mapping

import numpy as np

from rube_sims.core.events import BaseEvent, TeleportEvent
from rube_sims.core.shapes import Color, LocalBall
from rube_sims.utils.random import randint, uniform
from .base import Chamber, ChamberKind, Obstacle, restore_float

COOLDOWN = 0.2
EXIT_GAP = 2.0
STATIONARY_SPEED = 0.1
ATTEMPTS_PER_PAIR = 100
PAIR_COLORS: list[tuple[Color, Color]] = [
    ((50, 150, 255), (50, 255, 200)),
    ((255, 150, 50), (255, 200, 50)),
    ((200, 50, 200), (150, 50, 255)),
]


@dataclass
class Portal(Obstacle):
    x: float
    y: float
    radius: float
    target: int              # index of the linked portal
    color: Color = (255, 255, 255)


class TeleporterChamber(Chamber):
    """
    Linked portal pairs. A ball whose center enters a portal reappears just
    outside the linked portal, continuing along its velocity (or straight
    down when it was almost still), and cannot teleport again until its
    cooldown has run out.
    """

    kind = ChamberKind.TELEPORTER
    obstacle_fields = {"portals": Portal}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.cooldowns: dict[int, float] = {}

    def generate(self) -> None:
        w, h = self.w, self.h
        self.portals: List[Portal] = []
        self.cooldowns = {}
        radius = 22.0 * self.scale
        edge = radius + 15.0 * self.scale
        min_spacing = radius * 4

        for colors in PAIR_COLORS[: randint("layout", 2, 3)]:
            pair: list[tuple[float, float]] = []
            attempts = 0
            while len(pair) < 2 and attempts < ATTEMPTS_PER_PAIR:
                attempts += 1
                x = uniform("layout", edge, w - edge)
                y = uniform("layout", h * 0.1, h * 0.9)
                taken = [(p.x, p.y) for p in self.portals] + pair
                if any(math.hypot(x - px, y - py) < min_spacing for px, py in taken):
                    continue
                pair.append((x, y))

            if len(pair) < 2:
                continue
            first = len(self.portals)
            (x1, y1), (x2, y2) = pair
            self.portals.append(Portal(x=x1, y=y1, radius=radius, target=first + 1, color=colors[0]))
            self.portals.append(Portal(x=x2, y=y2, radius=radius, target=first, color=colors[1]))

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        events: List[BaseEvent] = []

        for ball_id in list(self.cooldowns):
            self.cooldowns[ball_id] -= dt
            if self.cooldowns[ball_id] <= 0:
                del self.cooldowns[ball_id]

        for ball in balls:
            if ball.id in self.cooldowns:
                continue
            for i, p in enumerate(self.portals):
                if math.hypot(ball.x - p.x, ball.y - p.y) >= p.radius:
                    continue
                if not 0 <= p.target < len(self.portals):
                    continue
                self._send(ball, self.portals[p.target])
                self.cooldowns[ball.id] = COOLDOWN
                events.append(TeleportEvent(t=self.t, chamber=self.name, body_id=ball.id, source=i, target=p.target))
                break
        return events

    @staticmethod
    def _send(ball: LocalBall, target: Portal) -> None:
        exit_dist = target.radius + ball.radius + EXIT_GAP
        speed = float(np.linalg.norm(ball.vel))
        if speed > STATIONARY_SPEED:
            direction = ball.vel / speed
        else:
            direction = np.array([0.0, 1.0])
        ball.pos[:] = np.array([target.x, target.y]) + direction * exit_dist

    def extra_state(self) -> dict[str, Any]:
        return {"cooldowns": dict(self.cooldowns)}

    def load_extra_state(self, state: Mapping[str, Any]) -> None:
        raw = state.get("cooldowns")
        if not isinstance(raw, Mapping):
            return
        cooldowns = {}
        for key, value in raw.items():
            try:
                ball_id = int(key)
            except (TypeError, ValueError):
                continue
            remaining = restore_float(value, 0.0)
            if remaining > 0:
                cooldowns[ball_id] = remaining
        self.cooldowns = cooldowns

    def draw(self, canvas, ox: float, oy: float) -> None:
        for p in self.portals:
            cx, cy = ox + p.x, oy + p.y
            canvas.fill_circle(cx, cy, p.radius * 1.2, p.color, 40)
            canvas.fill_circle(cx, cy, p.radius, (10, 10, 20))
            canvas.stroke_circle(cx, cy, p.radius, p.color, 255, 3)
            rot = self.t * 4
            for j in (1, 2):
                angle = rot + j * math.pi
                ex = cx + math.cos(angle) * (p.radius + 3)
                ey = cy + math.sin(angle) * (p.radius + 3)
                canvas.fill_circle(ex, ey, 4 * self.scale, (255, 255, 255), 180)
