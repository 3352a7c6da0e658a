"""Speech settings shared between the engine and its synthesizers."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["Settings"]


@dataclass
class Settings:
    """Pitch, rate and volume adjustments, output frequency and debug flag."""

    pitch: int = 0
    rate: int = 0
    volume: int = 10
    frequency: int = 22050
    debug_mode: bool = False