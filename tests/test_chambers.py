"""
Chamber policies, run directly on LocalBall views at the reference chamber
size (480 x 270, scale 1) so every constant appears unscaled.
"""

import math

import numpy as np
import pytest

from rube_sims.chambers import (
    CHAMBER_TYPES,
    AcceleratorChamber,
    AntigravityChamber,
    BumperChamber,
    ChamberKind,
    ConveyorChamber,
    FunnelChamber,
    MagnetChamber,
    MixerChamber,
    PegsChamber,
    PongChamber,
    SeesawChamber,
    SplitterChamber,
    StairsChamber,
    TeleporterChamber,
    TeslaCoilChamber,
    TrampolineChamber,
    WindTunnelChamber,
    make_chamber,
)
from rube_sims.chambers.accelerator import Booster
from rube_sims.chambers.bumper import Bumper
from rube_sims.chambers.magnet import Magnet
from rube_sims.chambers.pegs import Peg
from rube_sims.chambers.stairs import Step
from rube_sims.chambers.teleporter import Portal
from rube_sims.core.events import BumperHitEvent, ScoreEvent, TeleportEvent, ZapEvent
from rube_sims.core.shapes import LocalBall

DT = 1 / 60
W, H = 480.0, 270.0


# ── Helpers ──────────────────────────────────────────────

def chamber(cls, w=W, h=H):
    c = cls()
    c.init(w, h)
    return c


def local(ball_id=1, x=0.0, y=0.0, vx=0.0, vy=0.0, r=10.0):
    return LocalBall(
        id=ball_id,
        pos=np.array([x, y], dtype=float),
        vel=np.array([vx, vy], dtype=float),
        radius=r,
        color=(200, 200, 200),
    )


class TestContract:

    def test_registry_covers_every_kind(self):
        assert set(CHAMBER_TYPES) == set(ChamberKind)
        for kind, cls in CHAMBER_TYPES.items():
            assert cls.kind is kind

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            make_chamber("catapult")

    @pytest.mark.parametrize("kind", list(ChamberKind))
    def test_scale_and_time(self, kind):
        c = make_chamber(kind)
        c.init(960, 270)
        assert c.scale == pytest.approx(1.0)
        c.update(DT, [])
        c.update(DT, [])
        assert c.t == pytest.approx(2 * DT)

    @pytest.mark.parametrize("kind", list(ChamberKind))
    def test_save_load_round_trip(self, kind):
        c = make_chamber(kind)
        c.init(W, H)
        for _ in range(10):
            c.update(DT, [local(x=W / 2, y=H / 2, vx=40.0)])
        state = c.save_state()

        restored = make_chamber(kind)
        restored.resize(W, H)
        restored.load_state(state)
        assert restored.save_state() == state

    @pytest.mark.parametrize("kind", list(ChamberKind))
    def test_no_nan_with_a_crowd(self, kind):
        c = make_chamber(kind)
        c.init(W, H)
        balls = [local(i, x=x, y=y, vx=30.0, vy=60.0)
                 for i, (x, y) in enumerate([(x, y) for x in range(20, 480, 60) for y in range(20, 270, 50)], 1)]
        for _ in range(60):
            c.update(DT, balls)
        for b in balls:
            assert np.all(np.isfinite(b.pos)) and np.all(np.isfinite(b.vel))

    def test_malformed_state_keeps_geometry(self):
        c = chamber(PegsChamber)
        before = c.save_state()
        c.load_state({"t": "soon", "pegs": [{"x": "left", "y": 1.0, "radius": 2.0}]})
        assert c.save_state() == before

    def test_partial_state_restores_what_is_there(self):
        c = chamber(PegsChamber)
        c.load_state({"t": 3.5})
        assert c.t == 3.5
        assert len(c.pegs) > 0


class TestPegs:

    def test_generated_pegs_respect_spacing(self):
        c = chamber(PegsChamber)
        assert 1 <= len(c.pegs) <= 25
        for i, a in enumerate(c.pegs):
            for b in c.pegs[i + 1:]:
                assert math.hypot(a.x - b.x, a.y - b.y) >= 4 * a.radius

    def test_no_residual_penetration(self):
        c = chamber(PegsChamber)
        c.pegs = [Peg(x=240.0, y=135.0, radius=6.75)]
        b = local(x=242.0, y=122.0, vy=200.0)
        c.update(DT, [b])

        assert math.hypot(b.x - 240.0, b.y - 135.0) >= 16.75 - 1e-9
        assert b.vel[1] < 0


class TestBumper:

    def test_super_elastic_hit(self):
        c = chamber(BumperChamber)
        c.bumpers = [Bumper(x=240.0, y=135.0, radius=25.0)]
        b = local(x=240.0, y=105.0, vy=100.0)
        events = c.update(DT, [b])

        np.testing.assert_allclose(b.vel, [0.0, -200.0])
        assert math.hypot(b.x - 240.0, b.y - 135.0) >= 35.0 - 1e-9
        assert c.bumpers[0].hit_timer == pytest.approx(0.2)
        assert len(events) == 1 and isinstance(events[0], BumperHitEvent)
        assert events[0].a_id == 1

    def test_flash_decays(self):
        c = chamber(BumperChamber)
        c.bumpers = [Bumper(x=240.0, y=135.0, radius=25.0, hit_timer=0.2)]
        for _ in range(30):
            c.update(DT, [])
        assert c.bumpers[0].hit_timer == 0.0


class TestFunnel:

    def test_no_residual_penetration(self):
        c = chamber(FunnelChamber)
        wall = c.walls[0]
        mid = (wall.a + wall.b) / 2
        b = local(x=mid[0] + 3.0, y=mid[1] - 3.0, vy=150.0)
        c.update(DT, [b])

        seg = wall.b - wall.a
        s = np.clip(np.dot(b.pos - wall.a, seg) / np.dot(seg, seg), 0, 1)
        dist = np.linalg.norm(b.pos - (wall.a + s * seg))
        assert dist >= b.radius + c.wall_thickness - 1e-9


class TestTrampoline:

    def test_landing_bounces_up(self):
        c = chamber(TrampolineChamber)
        pad = c.pads[0]
        b = local(x=240.0, y=pad.y - 4.0, vy=300.0)
        c.update(DT, [b])

        assert b.vel[1] == pytest.approx(-450.0)
        assert b.y == pytest.approx(pad.y - b.radius)

    def test_bounce_is_capped(self):
        c = chamber(TrampolineChamber)
        pad = c.pads[0]
        b = local(x=240.0, y=pad.y - 4.0, vy=1000.0)
        c.update(DT, [b])
        assert b.vel[1] == pytest.approx(-c.max_bounce)

    def test_weak_landing_gets_minimum_bounce(self):
        c = chamber(TrampolineChamber)
        pad = c.pads[0]
        b = local(x=240.0, y=pad.y - 9.0, vy=60.0)
        c.update(DT, [b])
        assert b.vel[1] == pytest.approx(-350.0)

    def test_rising_ball_passes_through(self):
        c = chamber(TrampolineChamber)
        pad = c.pads[0]
        b = local(x=240.0, y=pad.y - 4.0, vy=-100.0)
        c.update(DT, [b])
        assert b.vel[1] == -100.0


class TestTeleporter:

    def setup_chamber(self):
        c = chamber(TeleporterChamber)
        c.portals = [
            Portal(x=100.0, y=100.0, radius=22.0, target=1),
            Portal(x=350.0, y=150.0, radius=22.0, target=0),
        ]
        c.cooldowns = {}
        return c

    def test_exit_along_velocity(self):
        c = self.setup_chamber()
        b = local(x=105.0, y=100.0, vx=100.0)
        events = c.update(DT, [b])

        np.testing.assert_allclose(b.pos, [350.0 + 34.0, 150.0])
        np.testing.assert_array_equal(b.vel, [100.0, 0.0])
        assert len(events) == 1 and isinstance(events[0], TeleportEvent)
        assert (events[0].source, events[0].target) == (0, 1)

    def test_still_ball_exits_downward(self):
        c = self.setup_chamber()
        b = local(x=100.0, y=100.0)
        c.update(DT, [b])
        np.testing.assert_allclose(b.pos, [350.0, 150.0 + 34.0])

    def test_cooldown_blocks_immediate_return(self):
        c = self.setup_chamber()
        b = local(x=105.0, y=100.0, vx=100.0)
        c.update(DT, [b])

        b.pos[:] = (350.0, 150.0)
        events = c.update(DT, [b])
        assert events == []
        np.testing.assert_array_equal(b.pos, [350.0, 150.0])

        # cooldown runs out after 0.2 s
        for _ in range(12):
            c.update(DT, [])
        assert c.update(DT, [b]) != []

    def test_cooldowns_survive_save_load(self):
        c = self.setup_chamber()
        c.update(DT, [local(x=105.0, y=100.0, vx=100.0)])
        restored = make_chamber("teleporter")
        restored.resize(W, H)
        restored.load_state(c.save_state())
        assert restored.cooldowns == c.cooldowns
        assert 1 in restored.cooldowns


class TestConveyor:

    def test_belt_carries_ball(self):
        c = chamber(ConveyorChamber)
        belt = c.belts[0]
        b = local(x=belt.x + 50.0, y=belt.y - 6.0, vy=60.0)
        c.update(DT, [b])

        assert b.vel[1] == 0.0
        assert b.y == pytest.approx(belt.y - b.radius)
        assert b.vel[0] == pytest.approx(belt.speed * 5 * DT)

    def test_belts_run_opposite_ways(self):
        c = chamber(ConveyorChamber)
        assert c.belts[0].speed == -c.belts[1].speed


class TestStairs:

    def test_step_bounces_and_walks(self):
        c = chamber(StairsChamber)
        c.direction = 1
        c.steps = [Step(x_orig=100.0, y_orig=150.0, x=100.0, y=150.0, w=100.0, h=12.0)]
        b = local(x=150.0, y=145.0, vy=100.0)
        c.update(DT, [b])

        assert b.y == pytest.approx(140.0)
        assert b.vel[1] == pytest.approx(-80.0)
        assert b.vel[0] == pytest.approx(30.0)

    def test_booster_step(self):
        c = chamber(StairsChamber)
        c.direction = -1
        c.steps = [Step(x_orig=100.0, y_orig=150.0, x=100.0, y=150.0, w=100.0, h=12.0, is_booster=True)]
        b = local(x=150.0, y=145.0, vx=-100.0, vy=100.0)
        c.update(DT, [b])

        assert b.vel[1] == pytest.approx(-180.0)
        assert b.vel[0] == pytest.approx(-101.0)

    def test_moving_steps_oscillate_around_origin(self):
        c = chamber(StairsChamber)
        c.steps = [Step(x_orig=100.0, y_orig=150.0, x=100.0, y=150.0, w=50.0, h=12.0,
                        motion="horizontal", range=20.0, speed=2.0)]
        for _ in range(90):
            c.update(DT, [])
            assert abs(c.steps[0].x - 100.0) <= 20.0 + 1e-9

    def test_unknown_motion(self):
        with pytest.raises(ValueError):
            Step(x_orig=0, y_orig=0, x=0, y=0, w=1, h=1, motion="spiral")


class TestMagnet:

    def setup_chamber(self, polarity):
        c = chamber(MagnetChamber)
        c.magnets = [Magnet(x=240.0, y=135.0, radius=40.0, strength=9e6, polarity=polarity)]
        return c

    def test_pull(self):
        c = self.setup_chamber("pull")
        b = local(x=340.0, y=135.0)
        c.update(DT, [b])
        assert b.vel[0] == pytest.approx(-9e6 / 100.0 ** 2 * DT)

    def test_push(self):
        c = self.setup_chamber("push")
        b = local(x=340.0, y=135.0)
        c.update(DT, [b])
        assert b.vel[0] > 0

    def test_core_is_solid(self):
        c = self.setup_chamber("pull")
        b = local(x=265.0, y=135.0, vx=-50.0)
        c.update(DT, [b])
        assert math.hypot(b.x - 240.0, b.y - 135.0) >= 50.0 - 1e-9
        assert b.vel[0] > 0

    def test_ball_at_core_center_is_pushed_up(self):
        c = self.setup_chamber("pull")
        b = local(x=240.0, y=135.0)
        c.update(DT, [b])

        assert b.x == 240.0
        assert b.y == pytest.approx(135.0 - 50.0)
        assert np.all(np.isfinite(b.vel))
        assert b.vel[1] < 0


class TestTeslaCoil:

    def test_charged_coil_fires_once(self):
        c = chamber(TeslaCoilChamber)
        coil = c.coils[0]
        coil.charge = 1.0
        b = local(x=coil.x + coil.radius + 20.0, y=coil.y)
        events = c.update(DT, [b])

        assert b.vel[0] == pytest.approx(400.0)
        assert coil.charge == 0.0
        assert len(c.zaps) == 1
        assert [type(e) for e in events] == [ZapEvent]
        assert c.update(DT, [b]) == []

    def test_coils_recharge(self):
        c = chamber(TeslaCoilChamber)
        for _ in range(60):
            c.update(DT, [])
        assert c.coils[0].charge == pytest.approx(0.8)
        assert c.coils[1].charge == pytest.approx(1.3)


class TestForceFields:

    def test_wind_tunnel(self):
        c = chamber(WindTunnelChamber)
        upper, lower = c.fans
        a = local(1, x=240.0, y=upper.y + upper.h / 2)
        b = local(2, x=240.0, y=lower.y + lower.h / 2)
        c.update(DT, [a, b])
        assert a.vel[0] == pytest.approx(1000.0 * DT)
        assert b.vel[0] == pytest.approx(-1000.0 * DT)

    def test_accelerator(self):
        c = chamber(AcceleratorChamber)
        c.boosters = [Booster(x=100.0, y=100.0, w=80.0, h=80.0, dir_x=1.0, dir_y=0.0, force=600.0)]
        b = local(x=140.0, y=140.0)
        c.update(DT, [b])
        assert b.vel[0] == pytest.approx(600.0 * 5 * DT)
        assert b.vel[1] == 0.0

    def test_antigravity_lifts(self):
        c = chamber(AntigravityChamber)
        z = c.zones[0]
        b = local(x=z.x + z.w / 2, y=z.y + z.h / 2)
        c.update(DT, [b])
        assert b.vel[1] == pytest.approx(-600.0 * DT)

    def test_antigravity_soft_walls(self):
        c = chamber(AntigravityChamber)
        c.zones = []
        b = local(x=2.0, y=10.0, vx=-40.0)
        c.update(DT, [b])
        assert b.x == 10.0
        assert b.vel[0] == pytest.approx(20.0)


class TestMovingObstacles:

    def test_seesaw_tips_towards_impact(self):
        c = chamber(SeesawChamber)
        plank = c.planks[0]
        b = local(x=plank.cx + 100.0, y=plank.cy - 12.0, vy=150.0)
        c.update(DT, [b])

        assert plank.angular_vel > 0
        assert b.y < plank.cy - 12.0
        assert b.vel[1] < 0

    def test_seesaw_angle_is_clamped(self):
        c = chamber(SeesawChamber)
        plank = c.planks[0]
        plank.angular_vel = 100.0
        c.update(DT, [])
        assert abs(plank.angle) <= 0.4

    def test_splitter_pushes_out_along_face(self):
        c = chamber(SplitterChamber)
        a, b, n = c.wedges[0].walls()[0]
        mid = (a + b) / 2
        ball = local(x=mid[0], y=mid[1], vy=100.0)
        c.update(DT, [ball])

        signed = float(np.dot(ball.pos - a, n))
        assert signed >= ball.radius + c.px(5, minimum=2) - 1e-9

    def test_mixer_bats_ball(self):
        c = chamber(MixerChamber)
        blade = c.blades[0]
        b = local(x=blade.cx, y=blade.cy - 12.0)
        c.update(DT, [b])
        assert np.linalg.norm(b.vel) > 0
        a_end, b_end = blade.endpoints(c.t)
        seg = b_end - a_end
        s = np.clip(np.dot(b.pos - a_end, seg) / np.dot(seg, seg), 0, 1)
        assert np.linalg.norm(b.pos - (a_end + s * seg)) >= b.radius + 8.0 - 1e-9


class TestPong:

    def test_possession_cancels_gravity_and_recolors(self):
        c = chamber(PongChamber)
        b = local(7, x=240.0, y=135.0, vx=200.0)
        c.update(DT, [b])

        assert c.target_ball_id == 7
        assert b.gravity_suppressed
        assert b.color_override == (255, 255, 255)
        assert b.vel[1] == pytest.approx(-400.0 * DT)

    def test_nearest_ball_to_center_is_tracked(self):
        c = chamber(PongChamber)
        far = local(1, x=60.0, y=40.0)
        near = local(2, x=250.0, y=140.0)
        c.update(DT, [far, near])
        assert c.target_ball_id == 2
        assert not far.gravity_suppressed

    def test_target_switches_when_tracked_ball_leaves(self):
        c = chamber(PongChamber)
        c.update(DT, [local(1, x=240.0, y=135.0)])
        other = local(2, x=100.0, y=60.0)
        c.update(DT, [other])
        assert c.target_ball_id == 2
        assert other.gravity_suppressed

    def test_paddle_returns_ball(self):
        c = chamber(PongChamber)
        left = c.paddles[0]
        b = local(x=left.face_x + 9.0, y=left.y + left.h / 2, vx=-600.0)
        c.update(DT, [b])

        assert b.vel[0] == pytest.approx(630.0)
        assert b.x - b.radius > left.face_x

    def test_fast_ball_crossing_face_is_returned(self):
        c = chamber(PongChamber)
        left = c.paddles[0]
        # one frame ago the ball was clear of the paddle, now it is behind it
        b = local(x=left.x - 15.0, y=left.y + left.h / 2, vx=-3000.0)
        assert b.x + b.radius < left.x
        events = c.update(DT, [b])

        assert events == []
        assert b.vel[0] > 0
        assert b.x == pytest.approx(left.face_x + b.radius + 1)
        assert np.linalg.norm(b.vel) == pytest.approx(1000.0)

    def test_slow_floor_on_return(self):
        c = chamber(PongChamber)
        right = c.paddles[1]
        b = local(x=right.face_x - 9.0, y=right.y + right.h / 2, vx=50.0)
        c.update(DT, [b])
        assert b.vel[0] == pytest.approx(-300.0)

    def test_miss_scores_and_reserves(self):
        c = chamber(PongChamber)
        b = local(x=12.0, y=30.0, vx=-100.0)
        events = c.update(DT, [b])

        assert (c.score_left, c.score_right) == (0, 1)
        np.testing.assert_allclose(b.pos, [240.0, 135.0])
        assert 300.0 <= b.vel[0] <= 400.0
        assert -100.0 <= b.vel[1] <= 100.0
        assert len(events) == 1 and isinstance(events[0], ScoreEvent)
        assert events[0].side == "right"

    def test_untracked_balls_can_leave(self):
        c = chamber(PongChamber)
        c.target_ball_id = 99
        tracked = local(99, x=240.0, y=135.0)
        stray = local(1, x=12.0, y=30.0, vx=-100.0)
        c.update(DT, [tracked, stray])
        assert c.score_right == 0
        assert stray.x == 12.0
        assert stray.vel[0] == -100.0
        assert not stray.gravity_suppressed

    def test_state_keeps_score_and_target(self):
        c = chamber(PongChamber)
        c.update(DT, [local(5, x=12.0, y=30.0, vx=-100.0)])
        restored = make_chamber("pong")
        restored.resize(W, H)
        restored.load_state(c.save_state())
        assert restored.target_ball_id == 5
        assert restored.score_right == 1
        assert restored.paddles == c.paddles
