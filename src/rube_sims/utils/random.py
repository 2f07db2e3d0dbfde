# src/rube_sims/utils/random.py

from __future__ import annotations

from typing import Dict, Hashable, Sequence, TypeVar
import numpy as np

T = TypeVar("T")

_master_seed: int | None = None
_rngs: Dict[str, np.random.Generator] = {}


def seed_all(seed: int | None) -> None:
    """
    Set the master seed for every named stream.

    - If seed is None: streams are entropy-seeded (non-reproducible).
    - Resets cached named streams.
    """
    global _master_seed, _rngs
    _master_seed = seed
    _rngs.clear()


def rng(name: str = "physics") -> np.random.Generator:
    """
    Return a named global RNG stream (order-dependent draws within that stream).

    Streams in use:
      - "layout":  chamber shuffling and procedural obstacle placement
      - "spawn":   ball spawn position / velocity / color
      - "physics": per-collision jitter, paddle reaction noise, score serves
    """
    global _rngs
    if name not in _rngs:
        if _master_seed is None:
            _rngs[name] = np.random.default_rng()
        else:
            ss = np.random.SeedSequence([_master_seed, _stable_int(name)])
            _rngs[name] = np.random.default_rng(ss)
    return _rngs[name]


def uniform(name: str, low: float, high: float) -> float:
    """Float in [low, high); a degenerate range returns `low`."""
    if high <= low:
        return float(low)
    return float(rng(name).uniform(low, high))


def randint(name: str, low: int, high: int) -> int:
    """Integer in [low, high], both ends inclusive."""
    if high <= low:
        return int(low)
    return int(rng(name).integers(low, high + 1))


def choice(name: str, items: Sequence[T]) -> T:
    return items[int(rng(name).integers(0, len(items)))]


def shuffled(name: str, items: Sequence[T]) -> list[T]:
    out = list(items)
    rng(name).shuffle(out)
    return out


def _stable_int(x: Hashable) -> int:
    """
    Convert arbitrary key -> stable 32-bit-ish integer without relying on Python's hash().
    """
    s = repr(x).encode("utf-8", errors="surrogatepass")
    h = 2166136261
    for b in s:
        h ^= b
        h = (h * 16777619) & 0xFFFFFFFF
    return h
