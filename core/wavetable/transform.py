"""
core/wavetable/transform.py — Bidirectional time/frequency conversion.

All functions are pure: they read their inputs, never mutate them, and
return fresh Waveform / FrequencySpectrum instances.

Analysis is a direct discrete transform evaluated only at the requested
harmonic numbers (1 .. harmonic_count), O(N·H). harmonic_count stays small
(tens), so a full FFT would compute N/2 bins only to throw most away.

Phase convention:
    A harmonic with amplitude A and phase φ contributes
        A · cos(2π·h·s/N − φ)  ==  A · sin(2π·h·s/N + π/2 − φ)
    to sample s. A pure sine therefore analyzes to φ = π/2, and
    to_time_domain() is the exact inverse of to_frequency_domain() for
    band-limited input.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from core.wavetable.spectrum import DEFAULT_HARMONIC_COUNT, FrequencySpectrum
from core.wavetable.waveform import DEFAULT_SAMPLE_COUNT, Waveform

logger = logging.getLogger(__name__)

_HALF_PI = 0.5 * math.pi


def _harmonic_angles(harmonic_count: int, sample_count: int) -> np.ndarray:
    """Angle matrix ``2π·h·s/N`` of shape (harmonic_count, sample_count).

    Row ``k`` corresponds to harmonic number ``k + 1``.
    """
    numbers = np.arange(1, harmonic_count + 1, dtype=np.float64)[:, np.newaxis]
    positions = np.arange(sample_count, dtype=np.float64)[np.newaxis, :]
    return 2.0 * np.pi * numbers * positions / sample_count


def to_frequency_domain(
    waveform: Waveform,
    harmonic_count: int = DEFAULT_HARMONIC_COUNT,
) -> FrequencySpectrum:
    """Analyze one waveform cycle into its first ``harmonic_count`` harmonics.

    For harmonic index k (harmonic number k + 1) over N samples::

        real = Σ s[n]·cos(−2π(k+1)n/N) / N
        imag = Σ s[n]·sin(−2π(k+1)n/N) / N
        amplitude = 2·√(real² + imag²)
        phase     = atan2(−imag, real)

    Amplitudes above 1 (e.g. the fundamental of a square wave, 4/π) are
    clamped by FrequencySpectrum.set_harmonic().

    Args:
        waveform: Source cycle. Not modified.
        harmonic_count: Number of harmonics to extract. Must be >= 1.

    Returns:
        A new FrequencySpectrum with harmonic_count entries.
    """
    spectrum = FrequencySpectrum(harmonic_count)
    n = waveform.sample_count
    samples = waveform.samples.astype(np.float64)

    angles = -_harmonic_angles(harmonic_count, n)
    real = np.cos(angles) @ samples / n
    imag = np.sin(angles) @ samples / n

    amplitudes = 2.0 * np.sqrt(real * real + imag * imag)
    phases = np.arctan2(-imag, real)

    for k in range(harmonic_count):
        spectrum.set_harmonic(k, float(amplitudes[k]), float(phases[k]))

    logger.debug(
        "Analyzed %d samples into %d harmonics (fundamental=%.4f)",
        n,
        harmonic_count,
        spectrum.get_harmonic(0).amplitude,
    )
    return spectrum


def to_time_domain(
    spectrum: FrequencySpectrum,
    sample_count: int = DEFAULT_SAMPLE_COUNT,
) -> Waveform:
    """Resynthesize a cycle from a spectrum by additive synthesis.

    Only harmonics with nonzero amplitude contribute. The raw sum is
    peak-normalized before it is written into the Waveform, so many
    harmonics adding up above 1 are scaled down rather than clipped.

    Args:
        spectrum: Source harmonics. Not modified.
        sample_count: Output length. Must be a power of two.

    Returns:
        A new Waveform with unit peak (or silence for an all-zero spectrum).

    Raises:
        InvalidLengthError: If sample_count is not a power of two.
    """
    waveform = Waveform(sample_count)
    amplitudes = spectrum.amplitudes()
    phases = spectrum.phases()
    active = np.flatnonzero(amplitudes > 0)
    if active.size == 0:
        return waveform

    angles = _harmonic_angles(spectrum.harmonic_count, sample_count)[active]
    values = amplitudes[active] @ np.sin(angles + _HALF_PI - phases[active, np.newaxis])

    # Normalize before from_samples() clamps, so the shape is never clipped
    peak = float(np.max(np.abs(values)))
    if peak > 0 and peak != 1:
        values = values / peak
    return Waveform.from_samples(values)


def apply_smoothing(waveform: Waveform, amount: float = 0.1) -> Waveform:
    """Return a smoothed copy; the input waveform is left untouched."""
    smoothed = waveform.clone()
    smoothed.smooth(amount)
    return smoothed


def band_limit(spectrum: FrequencySpectrum, cutoff_harmonic: int) -> FrequencySpectrum:
    """Return a copy with every harmonic at index >= cutoff_harmonic zeroed.

    Harmonics below the cutoff keep their amplitude and phase. A negative
    cutoff zeroes everything; a cutoff past the end changes nothing.
    """
    limited = spectrum.clone()
    for index in range(max(0, cutoff_harmonic), spectrum.harmonic_count):
        limited.set_harmonic(index, 0.0, 0.0)
    return limited
