"""Base class for synthesizers and sample-rate conversion of their output."""

from __future__ import annotations

from abc import ABC, abstractmethod
from fractions import Fraction
from typing import Any, Callable, Optional, Sequence

import numpy as np
from scipy.signal import resample_poly

from .constants import CallbackMessage, CallbackReturn
from .settings import Settings

__all__ = ["Synthesizer", "resample"]

#: Callback signature: (message, l_param, w_param) -> CallbackReturn or None.
Callback = Callable[[CallbackMessage, Any, int], Optional[int]]

_CHUNK_FRAMES = 4096


def resample(samples: Sequence[int], from_rate: int, to_rate: int) -> np.ndarray:
    """Convert 16-bit mono samples from one sample rate to another.

    Returns a new int16 array; values are clipped to the 16-bit range.
    """
    if from_rate <= 0 or to_rate <= 0:
        raise ValueError("sample rates must be positive")
    data = np.asarray(samples, dtype=np.int16)
    if from_rate == to_rate or data.size == 0:
        return data.copy()

    ratio = Fraction(to_rate, from_rate)
    floats = data.astype(np.float64) / 32768.0
    converted = resample_poly(floats, ratio.numerator, ratio.denominator)
    scaled = np.rint(converted * 32768.0)
    return np.clip(scaled, -32768, 32767).astype(np.int16)


class Synthesizer(ABC):
    """Common behaviour of synthesizers: event delivery and sample playback."""

    def __init__(self, settings: Settings, callback: Optional[Callback]) -> None:
        self.settings = settings
        self.callback = callback
        self.stopped = False

    @property
    @abstractmethod
    def frequency(self) -> int:
        """Native sample rate of this synthesizer."""

    @abstractmethod
    def stop(self) -> None:
        """Interrupt the current synthesis."""

    @abstractmethod
    def apply_changes(self) -> None:
        """Apply the current settings to the underlying voice."""

    def fire_word_boundary(self, offset: int, length: int) -> None:
        """Report the start of a word at ``offset`` spanning ``length`` characters."""
        if self.callback is not None:
            self.callback(CallbackMessage.EVENT_WORD_BOUNDARY, offset, length)

    def _deliver(self, chunk: np.ndarray) -> bool:
        result = self.callback(CallbackMessage.WAVE_BUFFER, chunk, chunk.size * 2)
        return result != CallbackReturn.DATA_ABORT

    def play_samples(self, samples: Sequence[int]) -> bool:
        """Hand samples to the callback, resampling to the configured frequency.

        The callback receives an int16 array and its size in bytes. Returns
        False when there is no callback or the callback asks to abort.
        """
        if self.callback is None:
            return False

        data = np.asarray(samples, dtype=np.int16)
        if self.frequency == self.settings.frequency:
            return self._deliver(data)

        converted = resample(data, self.frequency, self.settings.frequency)
        for start in range(0, converted.size, _CHUNK_FRAMES):
            if not self._deliver(converted[start : start + _CHUNK_FRAMES]):
                return False
        return True