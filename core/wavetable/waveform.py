"""
core/wavetable/waveform.py — One cycle of audio in the time domain.

A Waveform is a fixed-length float32 buffer whose length is a power of two
and whose values always stay inside [-1, 1]. It is mutable (the editing
model writes into it in place) but never shared: every hand-off between
components goes through clone().

Design:
    - Storage is a numpy float32 array; ``samples`` exposes a read-only view
      so callers cannot bypass clamping.
    - Index access raises OutOfRangeError; value writes clamp silently.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

import numpy as np

from core.wavetable.errors import InvalidLengthError, OutOfRangeError

DEFAULT_SAMPLE_COUNT: int = 1024
"""Samples per cycle used by presets and synthesis when none is given."""


def is_power_of_two(n: int) -> bool:
    """True for 1, 2, 4, 8, ... ; False for zero and negatives."""
    return n > 0 and (n & (n - 1)) == 0


class Waveform:
    """Single-cycle time-domain buffer.

    Args:
        sample_count: Number of samples. Must be a power of two.

    Raises:
        InvalidLengthError: If sample_count is not a positive power of two.
    """

    def __init__(self, sample_count: int = DEFAULT_SAMPLE_COUNT) -> None:
        if isinstance(sample_count, bool) or not isinstance(sample_count, int | np.integer):
            raise InvalidLengthError(sample_count)
        if not is_power_of_two(int(sample_count)):
            raise InvalidLengthError(sample_count)
        self._sample_count = int(sample_count)
        self._samples = np.zeros(self._sample_count, dtype=np.float32)

    @classmethod
    def from_samples(cls, values: Iterable[float]) -> Waveform:
        """Build a waveform from raw values, clamping each into [-1, 1].

        Raises:
            InvalidLengthError: If the number of values is not a power of two.
        """
        data = np.asarray(list(values), dtype=np.float64)
        waveform = cls(len(data))
        waveform._samples[:] = np.clip(data, -1.0, 1.0)
        return waveform

    # ------------------------------------------------------------------ #
    # Accessors                                                            #
    # ------------------------------------------------------------------ #

    @property
    def sample_count(self) -> int:
        return self._sample_count

    @property
    def samples(self) -> np.ndarray:
        """Read-only view of the sample buffer."""
        view = self._samples.view()
        view.flags.writeable = False
        return view

    def __len__(self) -> int:
        return self._sample_count

    def __repr__(self) -> str:
        return f"Waveform(sample_count={self._sample_count}, peak={self.peak():.4f})"

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self._sample_count:
            raise OutOfRangeError("Sample", index, self._sample_count)

    def get_sample(self, index: int) -> float:
        self._check_index(index)
        return float(self._samples[index])

    def set_sample(self, index: int, value: float) -> None:
        """Store ``value`` at ``index``, clamped into [-1, 1]."""
        self._check_index(index)
        self._samples[index] = max(-1.0, min(1.0, value))

    def to_list(self) -> list[float]:
        return [float(v) for v in self._samples]

    def peak(self) -> float:
        """Largest absolute sample value."""
        return float(np.max(np.abs(self._samples))) if self._sample_count else 0.0

    # ------------------------------------------------------------------ #
    # Signal operations                                                    #
    # ------------------------------------------------------------------ #

    def interpolate(self, position: float) -> float:
        """Linearly interpolated value at a continuous position.

        The position is wrapped modulo sample_count, so negative positions
        and positions past the end read around the cycle.
        """
        n = self._sample_count
        position = ((position % n) + n) % n
        index = math.floor(position)
        if index >= n:
            # Float rounding can land exactly on n for tiny negative inputs
            index = 0
            position = 0.0
        fraction = position - index
        next_index = (index + 1) % n
        return float(self._samples[index]) * (1.0 - fraction) + float(
            self._samples[next_index]
        ) * fraction

    def ensure_continuity(self) -> None:
        """Make the last sample equal to the first so the cycle loops cleanly."""
        self._samples[-1] = self._samples[0]

    def smooth(self, amount: float = 0.1) -> None:
        """Single-pass 3-tap circular moving average blended by ``amount``.

        Each sample becomes ``curr * (1 - amount) + mean(prev, next) * amount``.
        Amounts outside (0, 1] leave the waveform untouched.
        """
        if amount <= 0 or amount > 1:
            return
        prev = np.roll(self._samples, 1)
        nxt = np.roll(self._samples, -1)
        smoothed = self._samples * (1.0 - amount) + (prev + nxt) * 0.5 * amount
        self._samples[:] = smoothed.astype(np.float32)

    def normalize(self) -> None:
        """Scale to unit peak amplitude. All-zero waveforms are left alone."""
        peak = self.peak()
        if peak > 0 and peak != 1:
            self._samples /= np.float32(peak)
            np.clip(self._samples, -1.0, 1.0, out=self._samples)

    def clone(self) -> Waveform:
        """Independent deep copy."""
        copy = Waveform(self._sample_count)
        copy._samples[:] = self._samples
        return copy
