"""Speech synthesis with mbrola voice databases."""

from __future__ import annotations

from array import array
from typing import Iterable, Optional, Sequence, Tuple

from .mbrowrap import MbrolaError, MbrolaProcess
from .settings import Settings
from .synthesizer import Callback, Synthesizer

__all__ = [
    "MbrolaLib",
    "MbrolaSynthesizer",
    "pitch_factor",
    "rate_factor",
    "volume_ratio",
]

_SAMPLE_LENGTH = 2048

#: A word to speak: character offset, character length and its mbrola phoneme lines.
Word = Tuple[int, int, Sequence[str]]


def pitch_factor(pitch: int) -> float:
    """Map a pitch adjustment (-10..10) to an mbrola pitch ratio (0.2..1.8)."""
    return ((pitch + 10) * 1.6 / 20) + 0.2


def rate_factor(rate: int) -> float:
    """Map a rate adjustment to an mbrola time ratio (reversed, 2.2..0.2)."""
    if rate >= 0:
        return abs(rate - 10) * 0.06 + 0.2
    return abs(rate) * 0.5 + 0.2


def volume_ratio(volume: int) -> float:
    """Map a volume (0..100) to an mbrola volume ratio (0.2..3.0)."""
    return (volume * 2.8 / 100) + 0.2


class MbrolaLib:
    """Thin control layer over an mbrola process."""

    def __init__(self, process: Optional[MbrolaProcess] = None) -> None:
        self.process = process if process is not None else MbrolaProcess()

    def initialize(self, data_path: str) -> None:
        """Load the voice database at ``data_path``; raises MbrolaError on failure."""
        self.finalize()
        try:
            self.process.init(data_path)
        except MbrolaError:
            self.finalize()
            raise

    def finalize(self) -> None:
        """Stop the mbrola process."""
        self.process.close()

    def write(self, text: str) -> None:
        """Send phoneme text to mbrola."""
        self.process.write(text)

    def read(self, length: int) -> array:
        """Read at most ``length`` samples of synthesized audio."""
        return self.process.read(length)

    def last_error_str(self) -> str:
        """Return the latest error reported by mbrola."""
        return self.process.last_error()

    def apply_pitch(self, pitch: int) -> None:
        """Send a pitch-ratio command for the given adjustment."""
        self.write(f";; F = {pitch_factor(pitch):f}\r\n")

    def apply_rate(self, rate: int) -> None:
        """Send a time-ratio command for the given adjustment."""
        self.write(f";; T = {rate_factor(rate):f}\r\n")

    def apply_volume(self, volume: int) -> None:
        """Set the output volume ratio for the given volume."""
        self.process.set_volume_ratio(volume_ratio(volume))

    @property
    def frequency(self) -> int:
        """Sample rate of the loaded voice."""
        return self.process.frequency

    def flush(self) -> None:
        """Ask mbrola to synthesize everything written so far."""
        self.process.flush()

    def clear(self) -> None:
        """Leave queued output in place; mbrola drains it on the next read."""
        return None

    def reset(self) -> bool:
        """Abort ongoing synthesis in mbrola; True on success."""
        return self.process.reset()


class MbrolaSynthesizer(Synthesizer):
    """Synthesizer that speaks words through an mbrola voice."""

    def __init__(
        self,
        settings: Settings,
        callback: Optional[Callback] = None,
        lib: Optional[MbrolaLib] = None,
    ) -> None:
        super().__init__(settings, callback)
        self.lib = lib if lib is not None else MbrolaLib()

    def __enter__(self) -> "MbrolaSynthesizer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.lib.finalize()

    def load(self, param: str = "") -> None:
        """Load the voice named ``param`` from the ``./data`` directory."""
        self.lib.initialize("./data/" + param)

    @property
    def frequency(self) -> int:
        return self.lib.frequency

    def synthesize(self, line: str) -> bool:
        """Synthesize one line of phonemes and play it; False if playback aborted."""
        self.lib.write(line)
        self.lib.flush()
        while True:
            samples = self.lib.read(_SAMPLE_LENGTH)
            if len(samples) == 0:
                return True
            if not self.play_samples(samples):
                self.lib.clear()
                return False

    def speak_words(self, words: Iterable[Word]) -> None:
        """Speak words given as ``(offset, length, phoneme_lines)`` tuples.

        A word-boundary event is fired before each word. Speaking ends early
        when ``stop`` is called or the callback aborts playback.
        """
        words = list(words)
        if not words:
            return

        self.stopped = False
        for offset, length, phonemes in words:
            if self.stopped:
                break
            self.fire_word_boundary(offset, length)
            if not self.synthesize("".join(phonemes)):
                break

    def stop(self) -> None:
        self.stopped = True
        self.lib.clear()

    def apply_changes(self) -> None:
        self.lib.apply_volume(self.settings.volume)
        self.lib.apply_rate(self.settings.rate)
        self.lib.apply_pitch(self.settings.pitch)