"""
core/wavetable/editing.py — Map user interactions onto valid mutations.

Two independent editing surfaces:

    ControlPointEditor  — time domain. A sparse set of anchors is sampled from
                          the waveform; dragging an anchor rebuilds every sample
                          by piecewise-linear interpolation. Freehand drawing
                          writes a small weighted neighbourhood directly.
    HarmonicEditor      — frequency domain. Dragging a harmonic bar changes its
                          amplitude and keeps its phase.

Both editors mutate the object they were given in place. They know nothing
about history, persistence or the complementary representation: when a
gesture completes, the owner (see core/wavetable/session.py) takes a clone
of the edited object and runs the commit path.

Coordinates are already in domain units here (sample index, sample value,
amplitude). Screen-to-domain mapping belongs to the rendering layer.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from core.wavetable.spectrum import FrequencySpectrum
from core.wavetable.waveform import Waveform

logger = logging.getLogger(__name__)

DEFAULT_CONTROL_POINTS: int = 64
"""Anchors derived from a waveform (fewer when the waveform is shorter)."""

DEFAULT_DRAW_RADIUS: int = 2
"""Freehand brush half-width in samples."""


@dataclass
class ControlPoint:
    """A draggable anchor over the waveform.

    Attributes:
        sample_index: Position of the anchor in the waveform (fixed).
        value: Anchor level in [-1, 1]; changed by dragging.
    """

    sample_index: int
    value: float


# ---------------------------------------------------------------------------
# Time domain
# ---------------------------------------------------------------------------


class ControlPointEditor:
    """Control-point and freehand editing over a Waveform.

    Args:
        waveform: The working copy to edit in place.
        point_count: Requested number of anchors. Capped at the waveform's
            sample count.
    """

    def __init__(self, waveform: Waveform, point_count: int = DEFAULT_CONTROL_POINTS) -> None:
        if point_count < 1:
            raise ValueError(f"point_count must be >= 1, got {point_count}")
        self._waveform = waveform
        self._point_count = point_count
        self._points: list[ControlPoint] = []
        self.rebuild_points()

    @property
    def waveform(self) -> Waveform:
        return self._waveform

    @property
    def points(self) -> tuple[ControlPoint, ...]:
        return tuple(self._points)

    def update_from_waveform(self, waveform: Waveform) -> None:
        """Replace the edited waveform wholesale and re-derive the anchors."""
        self._waveform = waveform
        self.rebuild_points()

    def rebuild_points(self) -> None:
        """Sample evenly spaced anchors from the current waveform."""
        n = self._waveform.sample_count
        count = min(self._point_count, n)
        step = n / count
        self._points = [
            ControlPoint(sample_index=index, value=self._waveform.get_sample(index))
            for index in (math.floor(i * step) for i in range(count))
        ]

    def find_point(self, sample_index: float, tolerance: float = 0.0) -> int | None:
        """Index of the anchor nearest ``sample_index`` within ``tolerance``.

        Returns:
            Position in ``points`` or None when no anchor is close enough
            (the caller then starts a freehand stroke instead).
        """
        best: int | None = None
        best_distance = math.inf
        for position, point in enumerate(self._points):
            distance = abs(point.sample_index - sample_index)
            if distance <= tolerance and distance < best_distance:
                best, best_distance = position, distance
        return best

    def interpolate_at(self, sample_index: float) -> float:
        """Piecewise-linear value of the anchor polyline at a sample index.

        Positions before the first anchor or after the last one take that
        anchor's value.
        """
        xs = [p.sample_index for p in self._points]
        ys = [p.value for p in self._points]
        return float(np.interp(sample_index, xs, ys))

    def drag_point(self, position: int, value: float) -> None:
        """Move anchor ``position`` to ``value`` and rebuild every sample.

        Raises:
            IndexError: If position does not name an anchor.
        """
        if position < 0 or position >= len(self._points):
            raise IndexError(f"Control point {position} out of range [0, {len(self._points)})")
        self._points[position].value = max(-1.0, min(1.0, value))
        self._rebuild_waveform()

    def finish_drag(self) -> None:
        """Pointer-up after a drag: close the loop."""
        self._waveform.ensure_continuity()

    def draw_at(self, sample_index: int, value: float, radius: int = DEFAULT_DRAW_RADIUS) -> bool:
        """Freehand write at ``sample_index`` with a linearly decaying brush.

        Every in-range sample within ``radius`` is blended towards ``value``
        with ``weight = 1 - |offset| / (radius + 1)``; the centre sample
        (weight 1) is overwritten outright.

        Returns:
            False (and changes nothing) if sample_index is outside the waveform.
        """
        n = self._waveform.sample_count
        if sample_index < 0 or sample_index >= n:
            return False
        for offset in range(-radius, radius + 1):
            index = sample_index + offset
            if 0 <= index < n:
                weight = 1.0 - abs(offset) / (radius + 1)
                current = self._waveform.get_sample(index)
                self._waveform.set_sample(index, current * (1.0 - weight) + value * weight)
        return True

    def finish_draw(self) -> None:
        """Pointer-up after a stroke: close the loop and resample the anchors."""
        self._waveform.ensure_continuity()
        self.rebuild_points()

    def _rebuild_waveform(self) -> None:
        xs = np.array([p.sample_index for p in self._points], dtype=np.float64)
        ys = np.array([p.value for p in self._points], dtype=np.float64)
        rebuilt = np.interp(np.arange(self._waveform.sample_count), xs, ys)
        for index, level in enumerate(rebuilt):
            self._waveform.set_sample(index, float(level))


# ---------------------------------------------------------------------------
# Frequency domain
# ---------------------------------------------------------------------------


class HarmonicEditor:
    """Harmonic-bar editing over a FrequencySpectrum.

    Args:
        spectrum: The working copy to edit in place.
    """

    def __init__(self, spectrum: FrequencySpectrum) -> None:
        self._spectrum = spectrum

    @property
    def spectrum(self) -> FrequencySpectrum:
        return self._spectrum

    def update_from_spectrum(self, spectrum: FrequencySpectrum) -> None:
        self._spectrum = spectrum

    def set_amplitude(self, index: int, amplitude: float) -> None:
        """Change one harmonic's amplitude, keeping its current phase.

        Raises:
            OutOfRangeError: If index is not a valid harmonic index.
        """
        current = self._spectrum.get_harmonic(index)
        self._spectrum.set_harmonic(index, amplitude, current.phase)
        logger.debug("Harmonic %d amplitude -> %.4f", index + 1, amplitude)
