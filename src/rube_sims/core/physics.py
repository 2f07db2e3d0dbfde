# src/rube_sims/core/physics.py

from __future__ import annotations
from typing import TYPE_CHECKING, List, Sequence

import numpy as np

from .events import CollisionEvent, BaseEvent
if TYPE_CHECKING:
    from .shapes import Ball

# Screen space is y-down, so "up" is negative y.
FALLBACK_NORMAL = np.array([0.0, -1.0])


def integrate_gravity(balls: Sequence[Ball], gravity: float, dt: float) -> None:
    """Semi-implicit Euler: velocity first, then position with the new velocity."""
    for b in balls:
        if not b.active:
            continue
        b.vel[1] += gravity * dt
        b.pos += b.vel * dt


def resolve_ball_collisions(balls: Sequence[Ball], t: float) -> List[BaseEvent]:
    """
    Pairwise circle-circle resolution over the active balls, O(n^2).

    Overlap is split equally between both balls along the contact normal.
    Velocities are exchanged along the normal only when the pair approaches;
    resting and separating contacts keep their velocities.
    """
    events: List[BaseEvent] = []
    n = len(balls)
    for i in range(n):
        a = balls[i]
        if not a.active:
            continue
        for j in range(i + 1, n):
            b = balls[j]
            if not b.active:
                continue
            ev = _circle_circle_collision(a, b, t)
            if ev is not None:
                events.append(ev)
    return events


def _circle_circle_collision(a: Ball, b: Ball, t: float) -> CollisionEvent | None:
    penetration, n = get_penetration(a.pos, a.radius, b.pos, b.radius)
    if n is None:
        return None

    half = penetration / 2.0
    a.pos -= n * half
    b.pos += n * half

    # approach speed of a towards b along the normal
    dvn = float(np.dot(a.vel - b.vel, n))
    if dvn <= 0:
        return None

    a.vel -= dvn * n
    b.vel += dvn * n

    return CollisionEvent(
        t=t,
        a_id=a.id,
        b_id=b.id,
        pos=a.pos + n * a.radius,
        relative_speed=dvn,
    )


def get_penetration(a_pos, a_radius, b_pos, b_radius) -> tuple[float, np.ndarray | None]:
    """Depth of overlap and unit normal from a to b; normal is None when apart."""
    delta = b_pos - a_pos
    dist = float(np.linalg.norm(delta))
    penetration = a_radius + b_radius - dist
    if penetration <= 0:
        return penetration, None
    return penetration, safe_normal(delta, dist)


# --------- shared obstacle helpers ---------

def safe_normal(vec: np.ndarray, length: float | None = None) -> np.ndarray:
    """`vec` normalized, or FALLBACK_NORMAL when it has no usable length."""
    if length is None:
        length = float(np.linalg.norm(vec))
    if length <= 1e-12 or not np.isfinite(length):
        return FALLBACK_NORMAL.copy()
    return np.asarray(vec, dtype=float) / length


def reflect(vel: np.ndarray, n: np.ndarray, factor: float, only_approaching: bool = True) -> None:
    """
    In-place `vel -= factor * dot(vel, n) * n`.

    `factor` is the full reflection factor (2.0 is a mirror bounce). With
    `only_approaching`, velocities already leaving the surface are untouched.
    """
    dot = float(np.dot(vel, n))
    if only_approaching and dot >= 0:
        return
    vel -= factor * dot * n


def closest_point_on_segment(p: np.ndarray, a: np.ndarray, b: np.ndarray) -> tuple[np.ndarray, float]:
    """Closest point to `p` on segment a-b and its parameter in [0, 1]."""
    ab = b - a
    len_sq = float(np.dot(ab, ab))
    if len_sq == 0.0:
        return a.copy(), 0.0
    s = float(np.dot(p - a, ab)) / len_sq
    s = min(1.0, max(0.0, s))
    return a + s * ab, s


def push_out_of_circle(
    pos: np.ndarray,
    radius: float,
    center: np.ndarray,
    center_radius: float,
) -> tuple[float, np.ndarray | None]:
    """
    Move `pos` radially out of a static circle.

    Returns (overlap, normal pointing from the circle to the ball); the normal
    is None when there was no contact.
    """
    overlap, n = get_penetration(center, center_radius, pos, radius)
    if n is None:
        return 0.0, None
    pos += n * overlap
    return overlap, n


def push_out_of_segment(
    pos: np.ndarray,
    radius: float,
    a: np.ndarray,
    b: np.ndarray,
    thickness: float,
) -> tuple[np.ndarray | None, float]:
    """
    Separate a ball from a thick segment along the closest-point normal.

    Returns (normal, segment parameter); normal is None when not touching.
    """
    proj, s = closest_point_on_segment(pos, a, b)
    delta = pos - proj
    dist = float(np.linalg.norm(delta))
    reach = radius + thickness
    if dist >= reach:
        return None, s
    n = safe_normal(delta, dist)
    pos += n * (reach - dist)
    return n, s
