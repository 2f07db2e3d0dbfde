# src/rube_sims/core/events.py

from __future__ import annotations
from dataclasses import dataclass
from abc import ABC

import numpy as np


@dataclass(kw_only=True)
class BaseEvent(ABC):
    """Marker base class so you can type on 'list[BaseEvent]'."""
    t: float  # simulation time when this event occurred
    a_id: int | None = None
    b_id: int | None = None

    def to_payload_dict(self) -> dict:
        """Convert event-specific data to a serializable dict."""
        return {}


@dataclass(kw_only=True)
class CollisionEvent(BaseEvent):
    a_id: int
    b_id: int
    pos: np.ndarray        # contact point (2,), global coordinates
    relative_speed: float  # approach speed along the normal

    def to_payload_dict(self) -> dict:
        return {
            "pos": self.pos.tolist(),
            "relative_speed": self.relative_speed,
        }


@dataclass(kw_only=True)
class HitWallEvent(BaseEvent):
    body_id: int
    norm_vec: np.ndarray    # (2,) unit vector pointing into the canvas from the wall

    def __post_init__(self):
        self.a_id = self.body_id

    def to_payload_dict(self) -> dict:
        return {"norm_vec": self.norm_vec.tolist()}


@dataclass(kw_only=True)
class SpawnEvent(BaseEvent):
    child_id: int
    reason: str = "timer"

    def __post_init__(self):
        self.a_id = self.child_id

    def to_payload_dict(self) -> dict:
        return {"reason": self.reason}


@dataclass(kw_only=True)
class DestroyEvent(BaseEvent):
    body_id: int
    reason: str = "exit_bottom"

    def __post_init__(self):
        self.a_id = self.body_id

    def to_payload_dict(self) -> dict:
        return {"reason": self.reason}


# --------- Chamber events (positions are chamber-local) ---------

@dataclass(kw_only=True)
class ChamberEvent(BaseEvent):
    chamber: str

    def to_payload_dict(self) -> dict:
        return {"chamber": self.chamber}


@dataclass(kw_only=True)
class TeleportEvent(ChamberEvent):
    body_id: int
    source: int   # portal index
    target: int

    def __post_init__(self):
        self.a_id = self.body_id

    def to_payload_dict(self) -> dict:
        payload = super().to_payload_dict()
        payload.update({"source": self.source, "target": self.target})
        return payload


@dataclass(kw_only=True)
class ZapEvent(ChamberEvent):
    body_id: int
    coil: int

    def __post_init__(self):
        self.a_id = self.body_id

    def to_payload_dict(self) -> dict:
        payload = super().to_payload_dict()
        payload["coil"] = self.coil
        return payload


@dataclass(kw_only=True)
class BumperHitEvent(ChamberEvent):
    body_id: int
    bumper: int

    def __post_init__(self):
        self.a_id = self.body_id

    def to_payload_dict(self) -> dict:
        payload = super().to_payload_dict()
        payload["bumper"] = self.bumper
        return payload


@dataclass(kw_only=True)
class ScoreEvent(ChamberEvent):
    body_id: int
    side: str            # "left" or "right": who scored
    score_left: int
    score_right: int

    def __post_init__(self):
        self.a_id = self.body_id

    def to_payload_dict(self) -> dict:
        payload = super().to_payload_dict()
        payload.update({
            "side": self.side,
            "score_left": self.score_left,
            "score_right": self.score_right,
        })
        return payload
