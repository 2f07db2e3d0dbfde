# src/rube_sims/chambers/__init__.py

from .base import Chamber, ChamberKind, Obstacle
from .registry import ALL_CHAMBERS, CHAMBER_TYPES, make_chamber
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

__all__ = [
    "ALL_CHAMBERS",
    "CHAMBER_TYPES",
    "Chamber",
    "ChamberKind",
    "Obstacle",
    "make_chamber",
    "AcceleratorChamber",
    "AntigravityChamber",
    "BumperChamber",
    "ConveyorChamber",
    "FunnelChamber",
    "MagnetChamber",
    "MixerChamber",
    "PegsChamber",
    "PongChamber",
    "SeesawChamber",
    "SplitterChamber",
    "StairsChamber",
    "TeleporterChamber",
    "TeslaCoilChamber",
    "TrampolineChamber",
    "WindTunnelChamber",
]
