# src/rube_sims/utils/io.py

from __future__ import annotations

from pathlib import Path
from typing import Any
import lzma
import pickle


def unique_path(path: Path) -> Path:
    if not path.exists():
        return path

    stem = path.stem
    suffix = path.suffix
    parent = path.parent

    i = 2
    while True:
        candidate = parent / f"{stem}_{i}{suffix}"
        if not candidate.exists():
            return candidate
        i += 1


def save_state_file(state: dict[str, Any], path: str | Path) -> Path:
    """Write a `World.save_state()` snapshot as an lzma-compressed pickle."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with lzma.open(path, "wb") as f:
        pickle.dump(state, f, protocol=pickle.HIGHEST_PROTOCOL)
    return path


def load_state_file(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    with lzma.open(path, "rb") as f:
        state = pickle.load(f)
    if not isinstance(state, dict):
        raise ValueError(f"State file does not hold a snapshot dict: {path}")
    return state
