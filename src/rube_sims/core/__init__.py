# src/rube_sims/core/__init__.py

from .config import SimConfig
from .world import World, run_simulation
from .physics import integrate_gravity, resolve_ball_collisions
from .shapes import Ball, LocalBall, Possession, create_ball
from .boundary import Boundary, CanvasBoundary
from .layout import Viewport, grid_shape, layout_viewports
from .recording import FrameSnapshot, SimulationRecording
from .events import (
    BaseEvent,
    CollisionEvent,
    HitWallEvent,
    SpawnEvent,
    DestroyEvent,
    ChamberEvent,
    TeleportEvent,
    ZapEvent,
    BumperHitEvent,
    ScoreEvent,
)

__all__ = [
    "SimConfig",
    "World",
    "run_simulation",
    "integrate_gravity",
    "resolve_ball_collisions",
    "Ball",
    "LocalBall",
    "Possession",
    "create_ball",
    "Boundary",
    "CanvasBoundary",
    "Viewport",
    "grid_shape",
    "layout_viewports",
    "FrameSnapshot",
    "SimulationRecording",
    "BaseEvent",
    "CollisionEvent",
    "HitWallEvent",
    "SpawnEvent",
    "DestroyEvent",
    "ChamberEvent",
    "TeleportEvent",
    "ZapEvent",
    "BumperHitEvent",
    "ScoreEvent",
]
