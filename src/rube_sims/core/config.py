# src/rube_sims/core/config.py

from __future__ import annotations
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from rube_sims.utils.preset_loader import load_preset

GRAVITY = 400.0           # px / s^2, shared by the whole canvas
REF_CHAMBER_W = 480.0     # reference chamber size used for `scale`
REF_CHAMBER_H = 270.0

PALETTE: list[tuple[int, int, int]] = [
    (220, 80, 80),
    (80, 180, 220),
    (80, 220, 120),
    (220, 180, 80),
    (180, 80, 220),
]


@dataclass
class SimConfig:
    width: float = 1920.0
    height: float = 1080.0
    gravity: float = GRAVITY
    ball_radius: float = 10.0
    spawn_interval: float = 0.5
    max_balls: int = 50
    initial_balls: int = 3
    chambers: Optional[list[str]] = None   # None -> every kind, shuffled once
    seed: Optional[int] = None
    dt: float = 1.0 / 60.0
    duration: float = 10.0
    fps: int = 60
    palette: list[tuple[int, int, int]] = field(default_factory=lambda: list(PALETTE))

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Canvas must have positive size, got {self.width}x{self.height}")
        if self.max_balls <= 0:
            raise ValueError(f"max_balls must be positive, got {self.max_balls}")
        if self.ball_radius <= 0:
            raise ValueError(f"ball_radius must be positive, got {self.ball_radius}")
        if self.spawn_interval <= 0:
            raise ValueError(f"spawn_interval must be positive, got {self.spawn_interval}")
        self.palette = [tuple(int(c) for c in col) for col in self.palette]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SimConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**dict(data))

    @classmethod
    def from_preset(cls, path: str | Path) -> "SimConfig":
        return cls.from_mapping(load_preset(path).resolved)

    @classmethod
    def from_args(cls, args, base: "SimConfig | None" = None) -> "SimConfig":
        """CLI values that were actually given override `base` (or the defaults)."""
        kwargs = {}
        if base is not None:
            kwargs = {f.name: getattr(base, f.name) for f in fields(cls)}
        for f in fields(cls):
            name = f.name
            value = getattr(args, name, None)
            if value is None:
                continue
            kwargs[name] = value
        return cls(**kwargs)
