# src/rube_sims/chambers/base.py

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, fields, is_dataclass
from enum import Enum
import logging
import math
from typing import TYPE_CHECKING, Any, ClassVar, List, Mapping, Sequence

from rube_sims.core.config import GRAVITY, REF_CHAMBER_W, REF_CHAMBER_H
from rube_sims.core.events import BaseEvent
from rube_sims.core.layout import Viewport
from rube_sims.core.shapes import LocalBall

if TYPE_CHECKING:
    from rube_sims.render.canvas import Canvas

logger = logging.getLogger(__name__)


class ChamberKind(str, Enum):
    ANTIGRAVITY = "antigravity"
    TESLA_COIL = "tesla_coil"
    WIND_TUNNEL = "wind_tunnel"
    SEESAW = "seesaw"
    PEGS = "pegs"
    FUNNEL = "funnel"
    STAIRS = "stairs"
    TRAMPOLINE = "trampoline"
    MIXER = "mixer"
    ACCELERATOR = "accelerator"
    SPLITTER = "splitter"
    CONVEYOR = "conveyor"
    TELEPORTER = "teleporter"
    MAGNET = "magnet"
    BUMPER = "bumper"
    PONG = "pong"


class Obstacle:
    """Base for obstacle dataclasses: `float` fields are coerced and must be finite."""

    def __post_init__(self):
        for f in fields(self):
            if f.type not in ("float", float):
                continue
            value = float(getattr(self, f.name))
            if not math.isfinite(value):
                raise ValueError(f"{type(self).__name__}.{f.name} is not finite")
            setattr(self, f.name, value)


class Chamber(ABC):
    """
    One tile of the canvas with its own obstacles and collision policy.

    Everything a chamber knows is in local coordinates: (0, 0) is the top-left
    corner of its viewport and (w, h) the bottom-right. Lifecycle:

      init(w, h)            size + procedural obstacle generation
      resize(w, h)          size only (used before load_state on restore)
      update(dt, balls)     advance time, mutate the LocalBalls in place
      draw(canvas, ox, oy)  render at a global offset
      save_state / load_state

    Obstacle lists named in `obstacle_fields` and scalars named in
    `state_scalars` round-trip through plain dicts automatically.
    """

    kind: ClassVar[ChamberKind]
    obstacle_fields: ClassVar[Mapping[str, type]] = {}
    state_scalars: ClassVar[Sequence[str]] = ()

    def __init__(self, gravity: float = GRAVITY):
        self.gravity = float(gravity)
        self.w = 0.0
        self.h = 0.0
        self.scale = 1.0
        self.t = 0.0
        self.viewport: Viewport | None = None
        for name in self.obstacle_fields:
            setattr(self, name, [])

    @property
    def name(self) -> str:
        return self.kind.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(w={self.w:.0f}, h={self.h:.0f}, t={self.t:.2f})"

    # --------- lifecycle ---------

    def resize(self, w: float, h: float) -> None:
        if w <= 0 or h <= 0:
            raise ValueError(f"{self.name}: chamber size must be positive, got {w}x{h}")
        self.w = float(w)
        self.h = float(h)
        self.scale = min(self.w / REF_CHAMBER_W, self.h / REF_CHAMBER_H)

    def init(self, w: float, h: float) -> None:
        self.resize(w, h)
        self.t = 0.0
        self.generate()

    @abstractmethod
    def generate(self) -> None:
        """Build obstacles for the current (w, h, scale)."""
        ...

    @abstractmethod
    def update(self, dt: float, balls: List[LocalBall]) -> List[BaseEvent]:
        """Advance `t` by dt and apply this chamber's policy to `balls`."""
        ...

    def draw(self, canvas: Canvas, ox: float, oy: float) -> None:
        """Default: nothing beyond the panel the World draws."""
        return None

    @property
    def min_dim(self) -> float:
        return min(self.w, self.h)

    def px(self, value: float, minimum: float | None = None) -> float:
        """A reference-size length in this chamber's pixels, floored like a line width."""
        out = math.floor(value * self.scale)
        if minimum is not None:
            out = max(minimum, out)
        return float(out)

    # --------- persistence ---------

    def save_state(self) -> dict[str, Any]:
        state: dict[str, Any] = {"t": self.t}
        for name in self.obstacle_fields:
            state[name] = [asdict(item) for item in getattr(self, name)]
        for name in self.state_scalars:
            state[name] = getattr(self, name)
        state.update(self.extra_state())
        return state

    def load_state(self, state: Mapping[str, Any] | None) -> None:
        if not isinstance(state, Mapping):
            return
        self.t = restore_float(state.get("t"), self.t)
        for name, item_cls in self.obstacle_fields.items():
            restored = restore_items(item_cls, state.get(name), getattr(self, name), owner=self.name)
            setattr(self, name, restored)
        for name in self.state_scalars:
            setattr(self, name, restore_scalar(state.get(name), getattr(self, name)))
        self.load_extra_state(state)

    def extra_state(self) -> dict[str, Any]:
        return {}

    def load_extra_state(self, state: Mapping[str, Any]) -> None:
        return None


def lands_on(ball: LocalBall, top: float, bottom: float, dt: float) -> bool:
    """
    One-way platform test: the ball is falling, its bottom edge has reached
    `top`, and at the start of the frame it was not already below `bottom`.
    """
    if ball.vel[1] <= 0:
        return False
    prev_y = ball.pos[1] - ball.vel[1] * dt
    return ball.pos[1] + ball.radius >= top and prev_y + ball.radius <= bottom


def restore_float(raw: Any, current: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return current
    return value if math.isfinite(value) else current


def restore_scalar(raw: Any, current: Any) -> Any:
    """Coerce `raw` to the type of `current`; keep `current` on any mismatch."""
    if raw is None:
        return current
    if current is None:
        return raw
    if isinstance(current, bool):
        return bool(raw)
    if isinstance(current, float):
        return restore_float(raw, current)
    try:
        return type(current)(raw)
    except (TypeError, ValueError):
        return current


def restore_items(item_cls: type, raw: Any, current: list, owner: str = "") -> list:
    """
    Rebuild a list of obstacle dataclasses from saved dicts.

    Unknown keys are ignored. If any entry cannot be rebuilt the whole list
    keeps its pre-restore value, so geometry is never half-restored.
    """
    if raw is None:
        return current
    if not is_dataclass(item_cls):
        raise TypeError(f"{item_cls!r} is not a dataclass")
    if not isinstance(raw, (list, tuple)):
        logger.warning("%s: expected a list for %s, keeping current geometry", owner, item_cls.__name__)
        return current
    names = {f.name for f in fields(item_cls)}
    try:
        return [item_cls(**{k: v for k, v in dict(entry).items() if k in names}) for entry in raw]
    except (TypeError, ValueError, AttributeError) as exc:
        logger.warning("%s: could not restore %s (%s), keeping current geometry", owner, item_cls.__name__, exc)
        return current
