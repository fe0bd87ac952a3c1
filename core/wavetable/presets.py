"""
core/wavetable/presets.py — Canonical single-cycle waveform generators.

Every generator is pure and returns a fresh Waveform of the requested
sample count (a power of two, default 1024).

Presets:
    sine      sin(2π·i/N)
    saw       linear ramp −1 → 1, last sample patched to the first
    square    +1 for the first half, −1 for the second
    triangle  0 → 1 (first quarter), 1 → −1 (middle half), −1 → 0 (last quarter)
    custom    Σ amplitude[h]·sin(2π(h+1)i/N), peak-normalized
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np

from core.wavetable.waveform import DEFAULT_SAMPLE_COUNT, Waveform


def _positions(sample_count: int) -> np.ndarray:
    # Validate before allocating anything
    Waveform(sample_count)
    return np.arange(sample_count, dtype=np.float64)


def sine(sample_count: int = DEFAULT_SAMPLE_COUNT) -> Waveform:
    i = _positions(sample_count)
    return Waveform.from_samples(np.sin(2.0 * np.pi * i / sample_count))


def saw(sample_count: int = DEFAULT_SAMPLE_COUNT) -> Waveform:
    """Rising ramp. The wrap discontinuity is patched with ensure_continuity()."""
    i = _positions(sample_count)
    waveform = Waveform.from_samples((i / sample_count) * 2.0 - 1.0)
    waveform.ensure_continuity()
    return waveform


def square(sample_count: int = DEFAULT_SAMPLE_COUNT) -> Waveform:
    i = _positions(sample_count)
    return Waveform.from_samples(np.where(i < sample_count / 2, 1.0, -1.0))


def triangle(sample_count: int = DEFAULT_SAMPLE_COUNT) -> Waveform:
    i = _positions(sample_count)
    quarter = sample_count / 4
    values = np.where(
        i < quarter,
        i / quarter,
        np.where(
            i < 3 * quarter,
            1.0 - (i - quarter) / quarter,
            -1.0 + (i - 3 * quarter) / quarter,
        ),
    )
    return Waveform.from_samples(values)


def custom(
    sample_count: int = DEFAULT_SAMPLE_COUNT,
    harmonics: Sequence[float] = (1.0,),
) -> Waveform:
    """Additive sum of sine harmonics, peak-normalized.

    Args:
        sample_count: Output length (power of two).
        harmonics: Amplitude per harmonic; index 0 is the fundamental.
            Zero entries are skipped.

    Returns:
        A Waveform with unit peak, or silence if every amplitude is zero.
    """
    i = _positions(sample_count)
    values = np.zeros(sample_count, dtype=np.float64)
    for h, amplitude in enumerate(harmonics):
        if amplitude != 0:
            values += amplitude * np.sin(2.0 * np.pi * i / sample_count * (h + 1))

    peak = float(np.max(np.abs(values)))
    if peak > 0:
        values /= peak
    return Waveform.from_samples(values)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

PRESETS: dict[str, Callable[[int], Waveform]] = {
    "sine": sine,
    "saw": saw,
    "square": square,
    "triangle": triangle,
}
"""Named presets selectable from the editor and the CLI."""


def available_presets() -> list[str]:
    return sorted(PRESETS)


def generate_preset(name: str, sample_count: int = DEFAULT_SAMPLE_COUNT) -> Waveform:
    """Generate a named preset.

    Raises:
        ValueError: If ``name`` is not a registered preset.
    """
    factory = PRESETS.get(name.lower())
    if factory is None:
        raise ValueError(f"Unknown preset: {name!r} (valid: {available_presets()})")
    return factory(sample_count)
