# src/rube_sims/core/recording.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterator, Sequence, Tuple
from pathlib import Path
import pickle
import lzma
import numpy as np

if TYPE_CHECKING:
    from .world import World
    from .events import BaseEvent
    from .shapes import Ball, Color


@dataclass
class BallStaticSnapshot:
    """Static properties of a ball, stored once per recording."""
    id: int
    radius: float
    color: Tuple[float, float, float]  # normalized 0-1 for matplotlib


@dataclass
class BallStateSnapshot:
    """Per-frame dynamic state of a ball."""
    pos: Tuple[float, float]
    vel: Tuple[float, float]
    color_override: Tuple[float, float, float] | None = None   # set while possessed


@dataclass
class EventSnapshot:
    t: float
    type: str               # e.g. "CollisionEvent", "TeleportEvent", ...
    a_id: int | None = None
    b_id: int | None = None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class FrameSnapshot:
    t: float
    balls: dict[int, BallStateSnapshot]
    events: list[EventSnapshot] = field(default_factory=list)


@dataclass
class SimulationRecording:
    """
    Frozen record of a full simulation run.

    `meta` holds config, seed, chamber order, etc.
    """
    frames: list[FrameSnapshot] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
    ball_static: Dict[int, BallStaticSnapshot] = field(default_factory=dict)

    def add_frame(self, frame: FrameSnapshot) -> None:
        self.frames.append(frame)

    @property
    def times(self) -> list[float]:
        return [f.t for f in self.frames]

    @property
    def t_end(self) -> float | None:
        """Time of the last frame, or None if no frames."""
        if not self.frames:
            return None
        return self.frames[-1].t

    def iter_events(self) -> Iterator[EventSnapshot]:
        """Iterate over all EventSnapshots in time order."""
        for frame in self.frames:
            for ev in frame.events:
                yield ev

    def save(self, path: str | Path) -> None:
        path = Path(path)
        with lzma.open(path, "wb") as f:
            pickle.dump(self, f, protocol=pickle.HIGHEST_PROTOCOL)

    @classmethod
    def load(cls, path: str | Path) -> "SimulationRecording":
        path = Path(path)
        with lzma.open(path, "rb") as f:
            rec = pickle.load(f)
        if not isinstance(rec, cls):
            raise ValueError(f"{path} does not hold a SimulationRecording")
        return rec


def _normalized(color: Color) -> Tuple[float, float, float]:
    return tuple(c / 255 for c in color)


def make_ball_static_snapshot(ball: Ball) -> BallStaticSnapshot:
    return BallStaticSnapshot(
        id=ball.id,
        radius=float(ball.radius),
        color=_normalized(ball.color),
    )


def make_ball_state_snapshot(ball: Ball, color_override: Color | None = None) -> BallStateSnapshot:
    pos = np.asarray(ball.pos, dtype=float)
    vel = np.asarray(ball.vel, dtype=float)
    return BallStateSnapshot(
        pos=(float(pos[0]), float(pos[1])),
        vel=(float(vel[0]), float(vel[1])),
        color_override=_normalized(color_override) if color_override is not None else None,
    )


def snapshot_world(
    world: World,
    t: float,
    events: Sequence[BaseEvent],
    *,
    ball_static_registry: Dict[int, BallStaticSnapshot],
) -> FrameSnapshot:
    balls_state: Dict[int, BallStateSnapshot] = {}

    for ball in world.balls:
        # Static snapshot exactly once per ball id
        if ball.id not in ball_static_registry:
            ball_static_registry[ball.id] = make_ball_static_snapshot(ball)

        possession = world.possessions.get(ball.id)
        override = possession.color_override if possession is not None else None
        balls_state[ball.id] = make_ball_state_snapshot(ball, override)

    event_snaps = [
        EventSnapshot(
            t=t,
            type=type(e).__name__,
            a_id=e.a_id,
            b_id=e.b_id,
            payload=e.to_payload_dict(),
        )
        for e in events
    ]
    return FrameSnapshot(t=t, balls=balls_state, events=event_snaps)
