# src/rube_sims/chambers/pong.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List, Mapping

import numpy as np

from rube_sims.core.events import BaseEvent, ScoreEvent
from rube_sims.core.shapes import Color, LocalBall
from rube_sims.utils.random import uniform
from .base import Chamber, ChamberKind, Obstacle

GAME_BALL_COLOR: Color = (255, 255, 255)
REACTION_MIN = 0.1
REACTION_SPREAD = 0.15
AIM_ERROR = 50.0
SPEEDUP = 1.05
MIN_RETURN_SPEED = 300.0
SPIN = 400.0
MAX_SPEED = 1000.0
WALL_BOUNCE = 0.9
GOAL_MARGIN = 5.0
SERVE_SPEED = 300.0
SERVE_SPREAD = 100.0


@dataclass
class Paddle(Obstacle):
    x: float
    y: float
    w: float
    h: float
    target_y: float
    speed: float
    side: str                  # "left" or "right"
    reaction_timer: float = 0.0
    color: Color = (255, 255, 255)

    def __post_init__(self):
        super().__post_init__()
        if self.side not in ("left", "right"):
            raise ValueError(f"Unknown paddle side {self.side!r}")

    @property
    def face_x(self) -> float:
        return self.x + self.w if self.side == "left" else self.x

    @property
    def away(self) -> float:
        """Sign of vx for a ball leaving this paddle."""
        return 1.0 if self.side == "left" else -1.0


class PongChamber(Chamber):
    """
    Two AI paddles playing with one possessed ball.

    The possessed ("game") ball floats: gravity is cancelled for it while the
    chamber tracks it, and it bounces off the top and bottom of the chamber.
    Missing it on either side scores for the other paddle and re-serves the
    ball from the center. Every other ball still bounces off the paddles.
    Possession is kept by ball id only; the World clears the annotation each
    frame, so a ball this chamber stops tracking goes back to normal.
    """

    kind = ChamberKind.PONG
    obstacle_fields = {"paddles": Paddle}
    state_scalars = ("score_left", "score_right")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.target_ball_id: int | None = None
        self.score_left = 0
        self.score_right = 0

    def generate(self) -> None:
        w, h = self.w, self.h
        pw = 15.0 * self.scale
        ph = h * 0.25
        margin = 20.0 * self.scale
        speed = 300.0 * self.scale
        rest = h * 0.5 - ph * 0.5
        self.paddles: List[Paddle] = [
            Paddle(x=margin, y=rest, w=pw, h=ph, target_y=rest, speed=speed,
                   side="left", color=(100, 200, 255)),
            Paddle(x=w - margin - pw, y=rest, w=pw, h=ph, target_y=rest, speed=speed,
                   side="right", color=(255, 150, 100)),
        ]
        self.target_ball_id = None
        self.score_left = 0
        self.score_right = 0

    # --------- possession ---------

    def _select_target(self, balls: List[LocalBall]) -> LocalBall | None:
        if self.target_ball_id is not None:
            for ball in balls:
                if ball.id == self.target_ball_id:
                    return ball
        if not balls:
            return None
        center = np.array([self.w * 0.5, self.h * 0.5])
        target = min(balls, key=lambda b: float(np.sum((b.pos - center) ** 2)))
        self.target_ball_id = target.id
        return target

    def _possess(self, ball: LocalBall, dt: float) -> None:
        # undo this frame's gravity step
        ball.vel[1] -= self.gravity * dt
        ball.pos[1] -= self.gravity * dt * dt
        ball.gravity_suppressed = True
        ball.color_override = GAME_BALL_COLOR

    # --------- paddles ---------

    def _aim(self, paddle: Paddle, target: LocalBall | None) -> None:
        rest = self.h * 0.5 - paddle.h * 0.5
        if target is None:
            paddle.target_y = rest
            return

        time_to_paddle = 0.0
        vx = float(target.vel[0])
        if paddle.side == "left" and vx < 0:
            time_to_paddle = (target.x - paddle.face_x) / -vx
        elif paddle.side == "right" and vx > 0:
            time_to_paddle = (paddle.face_x - target.x) / vx

        if time_to_paddle < 0:
            # already behind the paddle
            paddle.target_y = rest
            return

        predicted = target.y + target.vel[1] * time_to_paddle
        predicted += uniform("physics", -1.0, 1.0) * AIM_ERROR * self.scale
        paddle.target_y = float(np.clip(predicted - paddle.h * 0.5, 0.0, max(0.0, self.h - paddle.h)))

    def _move(self, paddle: Paddle, dt: float) -> None:
        diff = paddle.target_y - paddle.y
        step = paddle.speed * dt
        if abs(diff) < step:
            paddle.y = paddle.target_y
        else:
            paddle.y += step if diff > 0 else -step
        paddle.y = float(np.clip(paddle.y, 0.0, max(0.0, self.h - paddle.h)))

    # --------- collisions ---------

    def _hits(self, ball: LocalBall, paddle: Paddle, dt: float) -> bool:
        r = ball.radius
        prev = ball.pos - ball.vel * dt
        face = paddle.face_x

        # swept test against the paddle face, only for balls moving towards it
        moving_in = ball.vel[0] * paddle.away < 0
        if paddle.side == "left":
            crossed = prev[0] >= face - r and ball.pos[0] <= face + r
        else:
            crossed = prev[0] <= face + r and ball.pos[0] >= face - r
        if moving_in and crossed:
            span = ball.pos[0] - prev[0]
            s = (face - prev[0]) / span if span != 0 else 0.0
            s = min(1.0, max(0.0, s))
            y_cross = prev[1] + (ball.pos[1] - prev[1]) * s
            if paddle.y - r <= y_cross <= paddle.y + paddle.h + r:
                ball.pos[0] = face + paddle.away * (r + 1)
                return True

        # slow balls: plain overlap with the paddle box
        closest = np.array([
            min(max(ball.pos[0], paddle.x), paddle.x + paddle.w),
            min(max(ball.pos[1], paddle.y), paddle.y + paddle.h),
        ])
        delta = ball.pos - closest
        dist = float(np.linalg.norm(delta))
        if dist >= r:
            return False
        if dist > 0:
            ball.pos += delta / dist * (r - dist)
        else:
            ball.pos[0] = face + paddle.away * (r + 1)
        return True

    def _return(self, ball: LocalBall, paddle: Paddle) -> None:
        half = paddle.h * 0.5
        hit_pos = (ball.y - (paddle.y + half)) / half if half > 0 else 0.0
        hit_pos = min(1.0, max(-1.0, hit_pos))

        speed_x = max(abs(ball.vel[0]) * SPEEDUP, MIN_RETURN_SPEED * self.scale)
        ball.vel[0] = paddle.away * speed_x
        ball.vel[1] = hit_pos * SPIN * self.scale

        cap = MAX_SPEED * self.scale
        speed = float(np.linalg.norm(ball.vel))
        if speed > cap:
            ball.vel *= cap / speed

    def _keep_in_play(self, ball: LocalBall) -> ScoreEvent | None:
        r = ball.radius
        ball.pos[1] = float(np.clip(ball.pos[1], r, max(r, self.h - r)))
        if ball.pos[1] <= r:
            ball.vel[1] = abs(ball.vel[1]) * WALL_BOUNCE
        if ball.pos[1] >= self.h - r:
            ball.vel[1] = -abs(ball.vel[1]) * WALL_BOUNCE

        goal = GOAL_MARGIN * self.scale
        if ball.pos[0] - r <= goal:
            self.score_right += 1
            return self._serve(ball, direction=1.0, scorer="right")
        if ball.pos[0] + r >= self.w - goal:
            self.score_left += 1
            return self._serve(ball, direction=-1.0, scorer="left")
        return None

    def _serve(self, ball: LocalBall, direction: float, scorer: str) -> ScoreEvent:
        ball.pos[:] = (self.w * 0.5, self.h * 0.5)
        ball.vel[0] = direction * (SERVE_SPEED + uniform("physics", 0.0, SERVE_SPREAD)) * self.scale
        ball.vel[1] = uniform("physics", -SERVE_SPREAD, SERVE_SPREAD) * self.scale
        return ScoreEvent(
            t=self.t,
            chamber=self.name,
            body_id=ball.id,
            side=scorer,
            score_left=self.score_left,
            score_right=self.score_right,
        )

    # --------- contract ---------

    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        self.t += dt
        events: List[BaseEvent] = []

        target = self._select_target(balls)
        if target is not None:
            self._possess(target, dt)

        for paddle in self.paddles:
            paddle.reaction_timer -= dt
            if paddle.reaction_timer <= 0:
                paddle.reaction_timer = REACTION_MIN + uniform("physics", 0.0, REACTION_SPREAD)
                self._aim(paddle, target)
            self._move(paddle, dt)

        for ball in balls:
            for paddle in self.paddles:
                if self._hits(ball, paddle, dt):
                    self._return(ball, paddle)
            if ball is target:
                scored = self._keep_in_play(ball)
                if scored is not None:
                    events.append(scored)
        return events

    def extra_state(self) -> dict[str, Any]:
        return {"target_ball_id": self.target_ball_id}

    def load_extra_state(self, state: Mapping[str, Any]) -> None:
        if "target_ball_id" not in state:
            return
        raw = state["target_ball_id"]
        try:
            self.target_ball_id = None if raw is None else int(raw)
        except (TypeError, ValueError):
            pass

    def draw(self, canvas, ox: float, oy: float) -> None:
        dash = 20 * self.scale
        gap = 15 * self.scale
        y = 0.0
        while y <= self.h:
            canvas.fill_rect(ox + self.w * 0.5 - 2, oy + y, 4, dash, (80, 80, 100), 150)
            y += dash + gap

        for paddle in self.paddles:
            px, py = ox + paddle.x, oy + paddle.y
            canvas.fill_rect(px - 3, py - 3, paddle.w + 6, paddle.h + 6, paddle.color, 30)
            canvas.fill_rect(px, py, paddle.w, paddle.h, paddle.color)
            canvas.stroke_rect(px, py, paddle.w, paddle.h, (255, 255, 255), 150, 2)

        # score pips along the top edge
        pip = 4 * self.scale
        for i in range(min(self.score_left, 10)):
            canvas.fill_circle(ox + self.w * 0.25 - i * 3 * pip, oy + 20 * self.scale, pip, (100, 200, 255), 200)
        for i in range(min(self.score_right, 10)):
            canvas.fill_circle(ox + self.w * 0.75 + i * 3 * pip, oy + 20 * self.scale, pip, (255, 150, 100), 200)
