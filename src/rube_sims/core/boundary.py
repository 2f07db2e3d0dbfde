# src/rube_sims/core/boundary.py
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

import numpy as np

from .shapes import Ball
from .events import HitWallEvent, BaseEvent


class Boundary(ABC):
    @abstractmethod
    def resolve_collision(self, ball: Ball, t: float) -> List[BaseEvent]:
        """
        Mutate the ball's position/velocity if it reaches the boundary,
        or deactivate it if it left the domain for good.
        Return any events describing what happened.
        """
        ...


@dataclass
class CanvasBoundary(Boundary):
    """
    Open-bottom box: the left, right and top edges bounce with damping,
    the bottom edge is an exit.
    """
    width: float
    height: float
    damping: float = 0.8

    def resolve_collision(self, ball: Ball, t: float) -> List[BaseEvent]:
        events: List[BaseEvent] = []
        if not ball.active:
            return events
        r = ball.radius
        pos = ball.pos
        vel = ball.vel

        # Left wall
        if pos[0] - r < 0.0:
            pos[0] = r
            vel[0] = abs(vel[0]) * self.damping
            events.append(HitWallEvent(t=t, body_id=ball.id, norm_vec=np.array([1.0, 0.0])))

        # Right wall
        if pos[0] + r > self.width:
            pos[0] = self.width - r
            vel[0] = -abs(vel[0]) * self.damping
            events.append(HitWallEvent(t=t, body_id=ball.id, norm_vec=np.array([-1.0, 0.0])))

        # Top wall
        if pos[1] - r < 0.0:
            pos[1] = r
            vel[1] = abs(vel[1]) * self.damping
            events.append(HitWallEvent(t=t, body_id=ball.id, norm_vec=np.array([0.0, 1.0])))

        # Bottom: the whole ball is below the canvas
        if pos[1] - r > self.height:
            ball.active = False

        return events
