from typing import Protocol, Sequence
from dataclasses import dataclass

from rube_sims.utils.random import choice
from .shapes import Color


class AppearancePolicy(Protocol):
    def sample(self, **overrides) -> Color:
        ...


@dataclass(frozen=True)
class PaletteAppearancePolicy:
    """Spawned balls take a uniformly drawn color from a fixed palette."""
    colors: Sequence[Color]
    stream: str = "spawn"

    def __post_init__(self):
        if not self.colors:
            raise ValueError("Palette must hold at least one color")

    def sample(self, *, override: Color | None = None, **_) -> Color:
        if override is not None:
            return tuple(int(c) for c in override)
        return tuple(choice(self.stream, self.colors))
