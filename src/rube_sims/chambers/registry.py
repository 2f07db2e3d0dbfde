# src/rube_sims/chambers/registry.py

from __future__ import annotations

from rube_sims.core.config import GRAVITY
from .base import Chamber, ChamberKind
from .accelerator import AcceleratorChamber
from .antigravity import AntigravityChamber
from .bumper import BumperChamber
from .conveyor import ConveyorChamber
from .funnel import FunnelChamber
from .magnet import MagnetChamber
from .mixer import MixerChamber
from .pegs import PegsChamber
from .pong import PongChamber
from .seesaw import SeesawChamber
from .splitter import SplitterChamber
from .stairs import StairsChamber
from .teleporter import TeleporterChamber
from .tesla_coil import TeslaCoilChamber
from .trampoline import TrampolineChamber
from .wind_tunnel import WindTunnelChamber

CHAMBER_TYPES: dict[ChamberKind, type[Chamber]] = {
    cls.kind: cls
    for cls in (
        AntigravityChamber,
        TeslaCoilChamber,
        WindTunnelChamber,
        SeesawChamber,
        PegsChamber,
        FunnelChamber,
        StairsChamber,
        TrampolineChamber,
        MixerChamber,
        AcceleratorChamber,
        SplitterChamber,
        ConveyorChamber,
        TeleporterChamber,
        MagnetChamber,
        BumperChamber,
        PongChamber,
    )
}

# Discovery order before the one-time shuffle.
ALL_CHAMBERS: tuple[str, ...] = tuple(kind.value for kind in ChamberKind)


def make_chamber(name: str | ChamberKind, gravity: float = GRAVITY) -> Chamber:
    """Instantiate a chamber by kind name; unknown names raise ValueError."""
    kind = ChamberKind(name)
    return CHAMBER_TYPES[kind](gravity=gravity)
