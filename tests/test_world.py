"""
World: spawning, the per-frame pipeline, chamber routing and save / restore.
"""

import logging

import numpy as np
import pytest

from rube_sims.chambers import ChamberKind
from rube_sims.chambers.base import Chamber
from rube_sims.chambers.registry import CHAMBER_TYPES
from rube_sims.chambers.teleporter import Portal
from rube_sims.core import SimConfig, World, run_simulation
from rube_sims.core.events import DestroyEvent, SpawnEvent, TeleportEvent
from rube_sims.core.recording import SimulationRecording
from rube_sims.core.shapes import DEFAULT_COLOR, DEFAULT_RADIUS, create_ball

DT = 1 / 60


# ── Helpers ──────────────────────────────────────────────

def quiet_world(names, w=480.0, h=270.0, **kwargs):
    """A World with the given chambers and no spawning of its own."""
    kwargs.setdefault("initial_balls", 0)
    kwargs.setdefault("spawn_interval", 1e9)
    world = World(chamber_names=list(names), **kwargs)
    world.init(w, h)
    return world


def place(world, x, y, vx=0.0, vy=0.0):
    ball = create_ball(world.next_ball_id, pos=(x, y), vel=(vx, vy))
    world.next_ball_id += 1
    world.balls.append(ball)
    return ball


class Recorder(Chamber):
    """Records the LocalBalls it is handed and optionally rewrites vx."""
    kind = ChamberKind.PEGS

    def __init__(self, set_vx=None, **kwargs):
        super().__init__(**kwargs)
        self.set_vx = set_vx
        self.seen = []

    def generate(self):
        pass

    def update(self, dt, balls):
        self.t += dt
        self.seen.append([(b.id, b.pos.copy(), b.vel.copy()) for b in balls])
        if self.set_vx is not None:
            for b in balls:
                b.vel[0] = self.set_vx
        return []


class Broken(Chamber):
    kind = ChamberKind.PEGS

    def generate(self):
        raise RuntimeError("no room for pegs")

    def update(self, dt, balls):
        return []


def install_recorders(world, *recorders):
    for recorder, existing in zip(recorders, world.chambers):
        recorder.viewport = existing.viewport
        recorder.init(existing.viewport.w, existing.viewport.h)
    world.chambers = list(recorders)


class TestConstruction:

    def test_all_chambers_shuffled_on_full_canvas(self):
        world = World()
        world.init(1920, 1080)

        assert sorted(world.chamber_order) == sorted(k.value for k in ChamberKind)
        assert (world.cols, world.rows) == (4, 4)
        assert all(c.scale == pytest.approx(1.0) for c in world.chambers)
        assert len(world.balls) == 3
        assert [b.id for b in world.balls] == [1, 2, 3]

    def test_explicit_order_is_kept(self):
        world = quiet_world(["funnel", "pegs", "pong"], w=1440)
        assert world.chamber_order == ["funnel", "pegs", "pong"]
        assert [c.viewport.x for c in world.chambers] == [0.0, 480.0, 960.0]

    def test_from_config(self):
        cfg = SimConfig(max_balls=7, spawn_interval=0.25, chambers=["bumper"], palette=[(1, 2, 3)])
        world = World.from_config(cfg)
        world.init(cfg.width, cfg.height)
        assert world.max_balls == 7
        assert world.chamber_order == ["bumper"]
        assert all(b.color == (1, 2, 3) for b in world.balls)

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            World(max_balls=0)
        with pytest.raises(ValueError):
            World().init(0, 100)

    def test_failed_chamber_is_left_out(self, monkeypatch, caplog):
        monkeypatch.setitem(CHAMBER_TYPES, ChamberKind.PEGS, Broken)
        with caplog.at_level(logging.ERROR):
            world = quiet_world(["pegs", "funnel", "bumper", "magnet"], w=960, h=540)

        assert world.chamber_order == ["funnel", "bumper", "magnet"]
        # the survivors are laid out again as a single row
        assert (world.cols, world.rows) == (3, 1)
        assert world.chambers[0].viewport.x == 0.0
        assert "pegs" in caplog.text

    def test_unknown_chamber_name_is_left_out(self):
        world = quiet_world(["funnel", "catapult"])
        assert world.chamber_order == ["funnel"]


class TestSpawning:

    def test_spawn_lands_in_top_row(self):
        world = quiet_world(["funnel", "pegs", "bumper", "magnet"], w=960, h=540)
        for _ in range(30):
            ball = world.spawn_random_ball()
            vp = next(c.viewport for c in world.chambers if c.viewport.x <= ball.x <= c.viewport.x + c.viewport.w)
            assert vp.row == 0
            assert 30.0 <= ball.y <= 80.0
            assert -100.0 <= ball.vel[0] <= 100.0
            assert 0.0 <= ball.vel[1] <= 50.0

    def test_population_is_capped(self):
        world = World(chamber_names=["funnel", "bumper"], max_balls=5, spawn_interval=0.01)
        world.init(960, 270)
        for _ in range(300):
            world.update(DT)
            assert len(world.balls) <= 5
        if len(world.balls) == 5:
            assert world.spawn_random_ball() is None

    def test_ids_are_unique_and_increasing(self):
        world = World(chamber_names=["funnel", "trampoline", "pegs"], spawn_interval=0.05)
        world.init(1440, 270)
        seen = []
        for _ in range(600):
            for e in world.update(DT):
                if isinstance(e, SpawnEvent):
                    seen.append(e.child_id)
            ids = [b.id for b in world.balls]
            assert len(ids) == len(set(ids))
        assert seen == sorted(seen)
        assert len(seen) == len(set(seen))

    def test_no_chambers_no_spawn(self):
        world = World(chamber_names=[])
        world.init(480, 270)
        assert world.balls == []
        assert world.spawn_random_ball() is None


class TestPipeline:

    def test_negative_dt(self):
        world = quiet_world(["funnel"])
        with pytest.raises(ValueError):
            world.update(-0.1)

    def test_exit_through_bottom_is_replaced(self):
        world = quiet_world(["funnel"])
        place(world, 240.0, 270.0 + 11.0)
        events = world.update(DT)

        assert [type(e) for e in events] == [DestroyEvent, SpawnEvent]
        assert events[1].reason == "replacement"
        assert [b.id for b in world.balls] == [2]

    def test_chambers_see_local_coordinates(self):
        world = quiet_world(["funnel", "bumper"], w=960)
        left, right = Recorder(), Recorder()
        install_recorders(world, left, right)
        ball = place(world, 600.0, 100.0)

        world.update(DT)
        assert left.seen == [[]]
        (ball_id, pos, _), = right.seen[0]
        assert ball_id == ball.id
        np.testing.assert_allclose(pos, ball.pos - np.array([480.0, 0.0]))

    def test_routing_is_sequential(self):
        world = quiet_world(["funnel", "bumper"], w=960)
        first, second = Recorder(set_vx=123.0), Recorder()
        install_recorders(world, first, second)
        # straddles the shared edge at x = 480
        place(world, 475.0, 100.0)

        world.update(DT)
        (_, _, vel), = second.seen[0]
        assert vel[0] == 123.0

    def test_gravity_applied_once(self):
        world = quiet_world(["funnel", "bumper"], w=960)
        install_recorders(world, Recorder(), Recorder())
        ball = place(world, 475.0, 50.0)
        world.update(DT)
        assert ball.vel[1] == pytest.approx(400.0 * DT)

    def test_teleport_scenario(self):
        world = quiet_world(["funnel", "teleporter"], w=960)
        tp = world.chamber("teleporter")
        tp.portals = [
            Portal(x=100.0, y=100.0, radius=22.0, target=1),
            Portal(x=350.0, y=150.0, radius=22.0, target=0),
        ]
        ball = place(world, 480.0 + 104.0, 100.0, vx=120.0)

        events = world.update(DT)
        assert any(isinstance(e, TeleportEvent) for e in events)
        direction = ball.vel / np.linalg.norm(ball.vel)
        np.testing.assert_allclose(ball.pos, np.array([480.0 + 350.0, 150.0]) + direction * 34.0)

        # dropped straight back into B, the ball stays put
        ball.pos[:] = (480.0 + 350.0, 150.0)
        events = world.update(DT)
        assert not any(isinstance(e, TeleportEvent) for e in events)
        assert np.linalg.norm(ball.pos - np.array([830.0, 150.0])) < 22.0

    def test_trampoline_scenario(self):
        world = quiet_world(["trampoline"])
        pad = world.chambers[0].pads[0]
        ball = place(world, 240.0, pad.y - 40.0)

        for _ in range(120):
            world.update(DT)
            if ball.vel[1] < 0:
                break
        assert ball.vel[1] < 0
        assert abs(ball.vel[1]) <= world.chambers[0].max_bounce

    def test_pong_possession_is_per_frame(self):
        world = quiet_world(["pong", "funnel"], w=960)
        ball = place(world, 240.0, 135.0, vx=50.0)

        world.update(DT)
        assert world.possessions[ball.id].chamber == "pong"
        assert world.effective_color(ball) == (255, 255, 255)
        assert ball.vel[1] == pytest.approx(0.0, abs=1e-9)

        ball.pos[:] = (720.0, 30.0)
        world.update(DT)
        assert ball.id not in world.possessions
        assert world.effective_color(ball) == ball.color


class TestPersistence:

    def run(self, world, frames=90):
        for _ in range(frames):
            world.update(DT)

    def test_snapshot_keys(self):
        world = quiet_world(["pegs", "pong"], w=960, initial_balls=2)
        state = world.save_state()
        assert set(state) == {
            "t", "w", "h", "balls", "next_ball_id", "spawn_timer",
            "chamber_order", "cols", "rows", "chamber_states",
        }
        assert set(state["balls"][0]) == {"id", "x", "y", "vx", "vy", "radius", "color", "active"}
        assert [s["name"] for s in state["chamber_states"]] == ["pegs", "pong"]

    def test_restore_is_idempotent_in_place(self):
        world = World(spawn_interval=0.1)
        world.init(1920, 1080)
        self.run(world)
        first = world.save_state()

        world.load_state(first)
        assert world.save_state() == first

    def test_restore_into_fresh_world(self):
        world = World(spawn_interval=0.1)
        world.init(1920, 1080)
        self.run(world)
        first = world.save_state()

        fresh = World()
        fresh.load_state(first)
        assert fresh.chamber_order == first["chamber_order"]
        assert fresh.save_state() == first

    def test_restore_does_not_regenerate_geometry(self):
        world = quiet_world(["pegs"])
        pegs = [(p.x, p.y) for p in world.chambers[0].pegs]
        state = world.save_state()

        fresh = World()
        fresh.load_state(state)
        assert [(p.x, p.y) for p in fresh.chambers[0].pegs] == pegs

    def test_blob_without_geometry_falls_back_to_generated(self):
        world = quiet_world(["pegs", "bumper"], w=960)
        self.run(world, 10)
        state = world.save_state()
        state["chamber_states"] = [
            {"name": entry["name"], "viewport": entry["viewport"], "state": {"t": entry["state"]["t"]}}
            for entry in state["chamber_states"]
        ]

        fresh = World()
        fresh.load_state(state)
        pegs = fresh.chamber("pegs")
        bumper = fresh.chamber("bumper")
        assert len(pegs.pegs) >= 1
        assert len(bumper.bumpers) >= 1
        assert pegs.t == pytest.approx(world.t)
        assert (pegs.w, pegs.h) == (480.0, 270.0)
        self.run(fresh, 10)

    def test_restored_world_keeps_running(self):
        world = World(spawn_interval=0.1)
        world.init(1920, 1080)
        self.run(world, 30)
        fresh = World()
        fresh.load_state(world.save_state())
        self.run(fresh, 60)
        assert fresh.t == pytest.approx(world.t + 60 * DT)
        assert len(fresh.balls) > 0

    def test_malformed_snapshot(self, caplog):
        world = World()
        with caplog.at_level(logging.WARNING):
            world.load_state({
                "t": "later",
                "chamber_order": ["pegs", "catapult"],
                "cols": "x",
                "balls": [{"x": 5, "y": 6}, "junk", {"id": 4, "x": "bad", "radius": -1, "color": "red"}],
            })

        assert world.chamber_order == ["pegs"]
        assert world.t == 0.0
        assert (world.w, world.h) == (1920.0, 1080.0)
        assert len(world.balls) == 2
        by_id = {b.id: b for b in world.balls}
        assert set(by_id) == {4, 5}
        assert by_id[4].radius == DEFAULT_RADIUS
        assert by_id[4].color == DEFAULT_COLOR
        assert by_id[4].x == 0.0
        assert world.next_ball_id == 6

    def test_duplicate_ids_are_reassigned(self):
        world = World()
        world.load_state({"chamber_order": ["funnel"], "next_ball_id": 2,
                          "balls": [{"id": 1, "x": 10}, {"id": 1, "x": 20}]})
        assert sorted(b.id for b in world.balls) == [1, 2]
        assert world.next_ball_id == 3

    def test_non_mapping_is_ignored(self):
        world = quiet_world(["funnel"])
        before = world.save_state()
        world.load_state(["not", "a", "snapshot"])
        assert world.save_state() == before


class RecordingCanvas:

    def __init__(self):
        self.calls = []
        self.depth = 0

    def clear(self, color):
        self.calls.append(("clear", color))

    def fill_circle(self, x, y, r, color, alpha=255):
        self.calls.append(("fill_circle", color))

    def stroke_circle(self, x, y, r, color, alpha=255, width=1):
        self.calls.append(("stroke_circle", color))

    def fill_rect(self, x, y, w, h, color, alpha=255):
        self.calls.append(("fill_rect", color))

    def stroke_rect(self, x, y, w, h, color, alpha=255, width=1):
        self.calls.append(("stroke_rect", color))

    def draw_line(self, x1, y1, x2, y2, color, alpha=255, width=1):
        self.calls.append(("draw_line", color))

    def push_clip(self, x, y, w, h):
        self.depth += 1

    def pop_clip(self):
        assert self.depth > 0
        self.depth -= 1


class TestDraw:

    def test_draw_every_chamber_and_ball(self):
        world = World()
        world.init(1920, 1080)
        world.update(DT)
        canvas = RecordingCanvas()
        world.draw(canvas)

        assert canvas.calls[0][0] == "clear"
        assert canvas.depth == 0
        ball_colors = [color for name, color in canvas.calls if name == "fill_circle"]
        for b in world.balls:
            assert world.effective_color(b) in ball_colors


class TestRunSimulation:

    def test_recording(self, tmp_path, capsys):
        world = World(chamber_names=["funnel", "bumper", "pegs"], spawn_interval=0.1)
        world.init(1440, 270)
        recording = run_simulation(world, 120, DT, log_interval=60)

        assert len(recording.frames) == 120
        assert recording.t_end == pytest.approx(120 * DT)
        assert set(recording.frames[-1].balls) == {b.id for b in world.balls}
        assert set(recording.ball_static) >= set(recording.frames[-1].balls)
        assert "Simulated" in capsys.readouterr().out

        path = tmp_path / "recording.pkl.xz"
        recording.save(path)
        loaded = SimulationRecording.load(path)
        assert len(loaded.frames) == 120
        assert [e.type for e in loaded.iter_events()] == [e.type for e in recording.iter_events()]
