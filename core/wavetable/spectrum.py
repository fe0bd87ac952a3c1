"""
core/wavetable/spectrum.py — Bounded harmonic series (frequency domain).

Index ``i`` holds harmonic number ``i + 1``; index 0 is the fundamental.
Each slot stores an amplitude in [0, 1] and a phase in [0, 2π).

Invariants:
    0 <= amplitude <= 1      (clamped on write)
    0 <= phase < 2π          (reduced on write)
    harmonic_count is fixed at construction
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from core.wavetable.errors import OutOfRangeError

DEFAULT_HARMONIC_COUNT: int = 64
"""Harmonics kept by analysis when no count is given."""

DEFAULT_FUNDAMENTAL_HZ: float = 440.0
"""Reference pitch (A4). Informational only, never used by the transform."""

TWO_PI: float = 2.0 * math.pi


def wrap_phase(phase: float) -> float:
    """Reduce a phase in radians into [0, 2π)."""
    wrapped = phase % TWO_PI
    # -1e-17 % 2π rounds up to exactly 2π
    return 0.0 if wrapped >= TWO_PI else wrapped


@dataclass(frozen=True)
class Harmonic:
    """Amplitude/phase pair for a single harmonic.

    Returned by value from FrequencySpectrum.get_harmonic(), so mutating
    spectrum storage always goes through set_harmonic().
    """

    amplitude: float
    """Linear amplitude, 0.0–1.0."""

    phase: float
    """Phase in radians, 0.0 ≤ phase < 2π."""


class FrequencySpectrum:
    """Fixed-length series of harmonics.

    Args:
        harmonic_count: Number of harmonics. Must be >= 1.
        fundamental_frequency: Reference pitch in Hz (informational).

    Raises:
        ValueError: If harmonic_count < 1.
    """

    def __init__(
        self,
        harmonic_count: int = DEFAULT_HARMONIC_COUNT,
        fundamental_frequency: float = DEFAULT_FUNDAMENTAL_HZ,
    ) -> None:
        if harmonic_count < 1:
            raise ValueError(f"harmonic_count must be >= 1, got {harmonic_count}")
        self._harmonic_count = int(harmonic_count)
        self.fundamental_frequency = fundamental_frequency
        self._amplitudes = np.zeros(self._harmonic_count, dtype=np.float64)
        self._phases = np.zeros(self._harmonic_count, dtype=np.float64)

    @classmethod
    def from_harmonics(
        cls,
        harmonics: Iterable[tuple[float, float]],
        fundamental_frequency: float = DEFAULT_FUNDAMENTAL_HZ,
    ) -> FrequencySpectrum:
        """Build a spectrum from ``(amplitude, phase)`` pairs.

        Values go through set_harmonic(), so they are clamped and wrapped.
        """
        pairs = list(harmonics)
        spectrum = cls(len(pairs), fundamental_frequency)
        for index, (amplitude, phase) in enumerate(pairs):
            spectrum.set_harmonic(index, amplitude, phase)
        return spectrum

    @property
    def harmonic_count(self) -> int:
        return self._harmonic_count

    @property
    def harmonics(self) -> tuple[Harmonic, ...]:
        return tuple(
            Harmonic(amplitude=float(a), phase=float(p))
            for a, p in zip(self._amplitudes, self._phases, strict=True)
        )

    def __len__(self) -> int:
        return self._harmonic_count

    def __repr__(self) -> str:
        return (
            f"FrequencySpectrum(harmonic_count={self._harmonic_count}, "
            f"fundamental_frequency={self.fundamental_frequency})"
        )

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self._harmonic_count:
            raise OutOfRangeError("Harmonic", index, self._harmonic_count)

    def get_harmonic(self, index: int) -> Harmonic:
        self._check_index(index)
        return Harmonic(
            amplitude=float(self._amplitudes[index]),
            phase=float(self._phases[index]),
        )

    def set_harmonic(self, index: int, amplitude: float, phase: float = 0.0) -> None:
        """Store a harmonic. Amplitude is clamped to [0, 1], phase wrapped to [0, 2π)."""
        self._check_index(index)
        self._amplitudes[index] = max(0.0, min(1.0, amplitude))
        self._phases[index] = wrap_phase(phase)

    def amplitudes(self) -> np.ndarray:
        return self._amplitudes.copy()

    def phases(self) -> np.ndarray:
        return self._phases.copy()

    def clear(self) -> None:
        """Reset every harmonic to amplitude 0, phase 0."""
        self._amplitudes.fill(0.0)
        self._phases.fill(0.0)

    def normalize(self) -> None:
        """Scale amplitudes so that they sum to 1.

        Distinct from Waveform.normalize(), which scales to unit *peak*.
        """
        total = float(np.sum(self._amplitudes))
        if total > 0 and total != 1:
            self._amplitudes /= total

    def clone(self) -> FrequencySpectrum:
        """Independent deep copy, including the reference fundamental."""
        copy = FrequencySpectrum(self._harmonic_count, self.fundamental_frequency)
        copy._amplitudes[:] = self._amplitudes
        copy._phases[:] = self._phases
        return copy
