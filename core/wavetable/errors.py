"""
core/wavetable/errors.py — Exception taxonomy for the wavetable domain.

Only two conditions are errors:
    InvalidLengthError — a Waveform was requested with a sample count that
                         is not a power of two. Fatal to construction.
    OutOfRangeError    — a sample or harmonic index outside its bounds.
                         Rejected locally, never clamped.

Out-of-range *values* (sample levels, harmonic amplitudes) are not errors:
they are clamped silently so that transient drag positions never fail.
"""

from __future__ import annotations


class WavetableError(Exception):
    """Base class for all wavetable domain errors."""


class InvalidLengthError(WavetableError, ValueError):
    """Raised when a Waveform length is not a positive power of two.

    Args:
        length: The rejected sample count.
    """

    def __init__(self, length: int) -> None:
        """Initialize with the rejected length."""
        self.length = length
        super().__init__(f"Sample count must be a positive power of 2, got {length}")


class OutOfRangeError(WavetableError, IndexError):
    """Raised when a sample or harmonic index falls outside ``[0, size)``.

    Args:
        kind: What was indexed, e.g. "Sample" or "Harmonic".
        index: The rejected index.
        size: Number of valid slots (valid indices are ``0 .. size - 1``).
    """

    def __init__(self, kind: str, index: int, size: int) -> None:
        """Initialize with the indexed kind, index and container size."""
        self.kind = kind
        self.index = index
        self.size = size
        super().__init__(f"{kind} index {index} out of bounds [0, {size})")
