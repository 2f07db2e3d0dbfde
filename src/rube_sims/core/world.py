# src/rube_sims/core/world.py

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any, Callable, List, Mapping

import numpy as np

from rube_sims.utils.random import choice, shuffled, uniform
from .appearances import AppearancePolicy, PaletteAppearancePolicy
from .boundary import CanvasBoundary
from .config import GRAVITY, PALETTE, SimConfig
from .events import BaseEvent, DestroyEvent, SpawnEvent
from .layout import Viewport, layout_viewports
from .physics import integrate_gravity, resolve_ball_collisions
from .recording import BallStaticSnapshot, SimulationRecording, snapshot_world
from .shapes import (
    DEFAULT_RADIUS,
    Ball,
    Color,
    LocalBall,
    Possession,
    ball_from_dict,
    create_ball,
)

if TYPE_CHECKING:
    from rube_sims.chambers.base import Chamber
    from rube_sims.render.canvas import Canvas

logger = logging.getLogger(__name__)

SPAWN_MARGIN_X = 30.0
SPAWN_BAND = (30.0, 80.0)       # px below the top of a top-row chamber
SPAWN_VX = (-100.0, 100.0)
SPAWN_VY = (0.0, 50.0)

BACKGROUND: Color = (15, 15, 25)
PANEL: Color = (25, 25, 40)
PANEL_EDGE: Color = (60, 60, 90)


@dataclass
class World:
    """
    Simulation manager: owns the balls, the chambers and every timer.

    Construct, then `init(w, h)` (fresh start) or `load_state(state)`
    (restore); afterwards call `update(dt)` once per frame.
    """
    gravity: float = GRAVITY
    ball_radius: float = DEFAULT_RADIUS
    spawn_interval: float = 0.5
    max_balls: int = 50
    initial_balls: int = 3
    chamber_names: list[str] | None = None   # None -> every kind, shuffled once
    appearance_policy: AppearancePolicy = field(
        default_factory=lambda: PaletteAppearancePolicy(PALETTE)
    )

    balls: list[Ball] = field(default_factory=list)
    chambers: list[Chamber] = field(default_factory=list)
    chamber_order: list[str] = field(default_factory=list)
    possessions: dict[int, Possession] = field(default_factory=dict)
    next_ball_id: int = 1
    spawn_timer: float = 0.0
    cols: int = 0
    rows: int = 0
    t: float = 0.0
    w: float = 0.0
    h: float = 0.0
    boundary: CanvasBoundary | None = None

    def __post_init__(self):
        if self.max_balls <= 0:
            raise ValueError(f"max_balls must be positive, got {self.max_balls}")
        if self.ball_radius <= 0:
            raise ValueError(f"ball_radius must be positive, got {self.ball_radius}")

    @classmethod
    def from_config(cls, cfg: SimConfig) -> "World":
        """Un-initialized World carrying the config's physics and spawn settings."""
        return cls(
            gravity=cfg.gravity,
            ball_radius=cfg.ball_radius,
            spawn_interval=cfg.spawn_interval,
            max_balls=cfg.max_balls,
            initial_balls=cfg.initial_balls,
            chamber_names=list(cfg.chambers) if cfg.chambers is not None else None,
            appearance_policy=PaletteAppearancePolicy(cfg.palette),
        )

    def chamber(self, name: str) -> Chamber | None:
        for c in self.chambers:
            if c.name == name:
                return c
        return None

    # --------- construction ---------

    def init(self, w: float, h: float) -> None:
        """Fresh start: discover and shuffle chambers, lay them out, spawn the initial burst."""
        self._set_canvas(w, h)
        self.balls = []
        self.possessions = {}
        self.next_ball_id = 1
        self.spawn_timer = 0.0
        self.t = 0.0

        from rube_sims.chambers.registry import ALL_CHAMBERS

        if self.chamber_names is not None:
            names = list(self.chamber_names)
        else:
            names = shuffled("layout", ALL_CHAMBERS)
        self.chambers = self._instantiate(names)
        self._place_chambers(lambda chamber, vp: chamber.init(vp.w, vp.h))

        for _ in range(self.initial_balls):
            self.spawn_random_ball()

    def _set_canvas(self, w: float, h: float) -> None:
        if w <= 0 or h <= 0:
            raise ValueError(f"Canvas must have positive size, got {w}x{h}")
        self.w = float(w)
        self.h = float(h)
        self.boundary = CanvasBoundary(self.w, self.h)

    def _instantiate(self, names) -> list[Chamber]:
        # chambers import core modules, so the registry is resolved lazily
        from rube_sims.chambers.registry import make_chamber

        chambers = []
        for name in names:
            try:
                chambers.append(make_chamber(name, gravity=self.gravity))
            except Exception:
                logger.exception("Could not create chamber %r, leaving it out", name)
        return chambers

    def _place_chambers(
        self,
        setup: Callable[[Chamber, Viewport], None],
        cols: int | None = None,
        rows: int | None = None,
    ) -> None:
        """
        Lay out the current chambers and run `setup` on each.

        A chamber whose setup raises is dropped and the survivors are laid
        out (and set up) again, so the grid never keeps a hole.
        """
        while True:
            viewports, self.cols, self.rows = layout_viewports(
                len(self.chambers), self.w, self.h, cols, rows
            )
            survivors = []
            for chamber, vp in zip(self.chambers, viewports):
                chamber.viewport = vp
                try:
                    setup(chamber, vp)
                except Exception:
                    logger.exception("Chamber %r failed to initialize, leaving it out", chamber.name)
                    continue
                survivors.append(chamber)
            if len(survivors) == len(self.chambers):
                break
            self.chambers = survivors
            cols = rows = None
        self.chamber_order = [c.name for c in self.chambers]

    # --------- spawning ---------

    def spawn_random_ball(self) -> Ball | None:
        """
        Drop a new ball near the top of a random top-row chamber.

        Returns None when the population is at its cap or there is no
        top-row chamber to spawn into.
        """
        if len(self.balls) >= self.max_balls:
            return None
        top_row = [c for c in self.chambers if c.viewport is not None and c.viewport.row == 0]
        if not top_row:
            return None

        vp = choice("spawn", top_row).viewport
        x = vp.x + uniform("spawn", SPAWN_MARGIN_X, vp.w - SPAWN_MARGIN_X)
        y = vp.y + uniform("spawn", *SPAWN_BAND)
        # tiny viewports: keep the spawn point inside the chamber
        x = min(max(x, vp.x), vp.x + vp.w)
        y = min(max(y, vp.y), vp.y + vp.h)
        vel = (uniform("spawn", *SPAWN_VX), uniform("spawn", *SPAWN_VY))

        ball = create_ball(
            self.next_ball_id,
            pos=(x, y),
            vel=vel,
            radius=self.ball_radius,
            color=self.appearance_policy.sample(),
        )
        self.next_ball_id += 1
        self.balls.append(ball)
        return ball

    # --------- frame ---------

    def update(self, dt: float) -> List[BaseEvent]:
        """
        Advance one frame:
          1. timers and periodic spawn
          2. gravity + integration (global coordinates)
          3. chamber routing, sequential in chamber order
          4. ball-ball collisions
          5. canvas boundary
          6. removal of exited balls and their replacements
        """
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}")
        events: List[BaseEvent] = []

        self.t += dt
        self.spawn_timer += dt
        if self.spawn_timer >= self.spawn_interval and len(self.balls) < self.max_balls:
            ball = self.spawn_random_ball()
            if ball is not None:
                events.append(SpawnEvent(t=self.t, child_id=ball.id))
            self.spawn_timer = 0.0

        integrate_gravity(self.balls, self.gravity, dt)
        events.extend(self._route_to_chambers(dt))

        active = [b for b in self.balls if b.active]
        events.extend(resolve_ball_collisions(active, self.t))

        if self.boundary is not None:
            for b in active:
                events.extend(self.boundary.resolve_collision(b, self.t))

        events.extend(self._remove_inactive())
        return events

    def _route_to_chambers(self, dt: float) -> List[BaseEvent]:
        """
        Hand each chamber LocalBall views of the balls overlapping it.

        Chambers run one after another and write back immediately, so a ball
        straddling two chambers is seen by the second with the first one's
        changes applied.
        """
        events: List[BaseEvent] = []
        self.possessions.clear()
        for chamber in self.chambers:
            vp = chamber.viewport
            if vp is None:
                continue
            origin = np.array(vp.origin, dtype=float)
            owned = [
                b for b in self.balls
                if b.active and vp.overlaps_circle(b.x, b.y, b.radius)
            ]
            local = [LocalBall.from_ball(b, origin) for b in owned]
            events.extend(chamber.update(dt, local))

            for lb, ball in zip(local, owned):
                lb.write_back(ball, origin)
                if lb.gravity_suppressed or lb.color_override is not None:
                    self.possessions[ball.id] = Possession(
                        chamber=chamber.name,
                        gravity_suppressed=lb.gravity_suppressed,
                        color_override=lb.color_override,
                    )
        return events

    def _remove_inactive(self) -> List[BaseEvent]:
        events: List[BaseEvent] = []
        removed = [b for b in self.balls if not b.active]
        if not removed:
            return events

        self.balls = [b for b in self.balls if b.active]
        for b in removed:
            self.possessions.pop(b.id, None)
            events.append(DestroyEvent(t=self.t, body_id=b.id))

        for _ in removed:
            ball = self.spawn_random_ball()
            if ball is not None:
                events.append(SpawnEvent(t=self.t, child_id=ball.id, reason="replacement"))
        return events

    def effective_color(self, ball: Ball) -> Color:
        possession = self.possessions.get(ball.id)
        if possession is not None and possession.color_override is not None:
            return possession.color_override
        return ball.color

    # --------- drawing ---------

    def draw(self, canvas: Canvas) -> None:
        canvas.clear(BACKGROUND)
        for chamber in self.chambers:
            vp = chamber.viewport
            if vp is None:
                continue
            canvas.push_clip(vp.x, vp.y, vp.w, vp.h)
            canvas.fill_rect(vp.x, vp.y, vp.w, vp.h, PANEL)
            chamber.draw(canvas, vp.x, vp.y)
            canvas.pop_clip()
            canvas.stroke_rect(vp.x, vp.y, vp.w, vp.h, PANEL_EDGE, 255, 2)

        for b in self.balls:
            if not b.active:
                continue
            r = b.radius
            canvas.fill_circle(b.x + 2, b.y + 2, r, (0, 0, 0), 80)
            canvas.fill_circle(b.x, b.y, r, self.effective_color(b))
            canvas.fill_circle(b.x - r * 0.3, b.y - r * 0.3, r * 0.3, (255, 255, 255), 120)

    # --------- persistence ---------

    def save_state(self) -> dict[str, Any]:
        return {
            "t": self.t,
            "w": self.w,
            "h": self.h,
            "balls": [b.to_dict() for b in self.balls],
            "next_ball_id": self.next_ball_id,
            "spawn_timer": self.spawn_timer,
            "chamber_order": list(self.chamber_order),
            "cols": self.cols,
            "rows": self.rows,
            "chamber_states": [
                {
                    "name": c.name,
                    "viewport": c.viewport.to_dict() if c.viewport is not None else None,
                    "state": c.save_state(),
                }
                for c in self.chambers
            ],
        }

    def load_state(self, state: Mapping[str, Any]) -> None:
        """
        Restore a `save_state()` snapshot.

        Every field falls back to its current value when missing or unusable.
        Chambers are rebuilt from `chamber_order` only when this World has
        none yet, and those are initialized before their blob is applied so
        anything the blob lacks keeps a generated default. Saved chamber blobs
        are matched by name and their geometry overrides the generated one.
        """
        if not isinstance(state, Mapping):
            logger.warning("Ignoring restore: expected a mapping, got %s", type(state).__name__)
            return

        w = _restore_number(state.get("w"), self.w or 1920.0)
        h = _restore_number(state.get("h"), self.h or 1080.0)
        if w <= 0 or h <= 0:
            w, h = self.w or 1920.0, self.h or 1080.0
        self._set_canvas(w, h)

        self.t = _restore_number(state.get("t"), self.t)
        self.spawn_timer = _restore_number(state.get("spawn_timer"), self.spawn_timer)
        cols = _restore_int(state.get("cols"), self.cols)
        rows = _restore_int(state.get("rows"), self.rows)

        created: set[int] = set()
        if not self.chambers:
            order = state.get("chamber_order")
            if isinstance(order, (list, tuple)):
                self.chambers = self._instantiate(order)
                created = {id(c) for c in self.chambers}
            else:
                logger.warning("Snapshot has no usable chamber_order, restoring without chambers")

        blobs = _chamber_blobs(state.get("chamber_states"))
        assigned: dict[int, Mapping[str, Any]] = {}
        for chamber in self.chambers:
            if blobs.get(chamber.name):
                assigned[id(chamber)] = blobs[chamber.name].pop(0)

        def restore(chamber: Chamber, vp: Viewport) -> None:
            entry = assigned.get(id(chamber))
            if entry is None:
                if (chamber.w, chamber.h) != (vp.w, vp.h):
                    chamber.init(vp.w, vp.h)
                return
            saved_vp = Viewport.from_dict(entry.get("viewport"), fallback=vp)
            # a saved viewport only applies to the grid it was saved in
            if (self.cols, self.rows) == (cols, rows) and saved_vp.index == vp.index:
                vp = saved_vp
            chamber.viewport = vp
            if id(chamber) in created:
                # geometry missing from the blob falls back to a generated layout
                chamber.init(vp.w, vp.h)
            else:
                chamber.resize(vp.w, vp.h)
            chamber.load_state(entry.get("state"))

        self._place_chambers(restore, cols, rows)

        self._restore_balls(state.get("balls"), _restore_int(state.get("next_ball_id"), self.next_ball_id))
        self.possessions = {}

    def _restore_balls(self, raw: Any, next_id: int) -> None:
        if raw is None:
            self.next_ball_id = max(1, next_id)
            return
        if not isinstance(raw, (list, tuple)):
            logger.warning("Snapshot 'balls' is not a list, keeping current balls")
            return

        entries = [entry for entry in raw if isinstance(entry, Mapping)]
        if len(entries) != len(raw):
            logger.warning("Skipped %d malformed ball entries", len(raw) - len(entries))

        taken: set[int] = set()
        pending: list[tuple[int, Mapping]] = []
        for entry in entries:
            ball_id = _restore_int(entry.get("id"), 0)
            if ball_id > 0 and ball_id not in taken:
                taken.add(ball_id)
                pending.append((ball_id, entry))
            else:
                pending.append((0, entry))

        next_id = max(next_id, max(taken, default=0) + 1, 1)
        balls = []
        for ball_id, entry in pending:
            if ball_id == 0:
                ball_id = next_id
                next_id += 1
            balls.append(ball_from_dict(entry, ball_id))
        self.balls = balls
        self.next_ball_id = next_id


def _chamber_blobs(raw: Any) -> dict[str, list[Mapping[str, Any]]]:
    """Saved chamber entries grouped by name, in saved order."""
    out: dict[str, list[Mapping[str, Any]]] = defaultdict(list)
    if not isinstance(raw, (list, tuple)):
        return out
    for entry in raw:
        if isinstance(entry, Mapping) and isinstance(entry.get("name"), str):
            out[entry["name"]].append(entry)
    return out


def _restore_number(raw: Any, current: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return current
    return value if np.isfinite(value) else current


def _restore_int(raw: Any, current: int) -> int:
    if isinstance(raw, bool):
        return current
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError):
        return current


def run_simulation(
    world: World,
    n_steps: int,
    dt: float,
    log_interval: int = 600,
    *,
    record_events: bool = True,
) -> SimulationRecording:
    """
    Step the world forward n_steps and record snapshots for offline use.
    """
    recording = SimulationRecording()
    ball_static: dict[int, BallStaticSnapshot] = {}
    for step in range(n_steps):
        all_events = world.update(dt)
        frame_events = all_events if record_events else []
        snapshot = snapshot_world(world,
                                  t=world.t,
                                  events=frame_events,
                                  ball_static_registry=ball_static)
        recording.add_frame(snapshot)
        recording.ball_static.update(ball_static)
        if log_interval and (step + 1) % log_interval == 0:
            print(f"Simulated {world.t:.3f} seconds / {n_steps*dt:.3f} seconds...")
            print(f"Number of balls: {len(world.balls)}")

    recording.meta.setdefault("chamber_order", list(world.chamber_order))
    return recording
