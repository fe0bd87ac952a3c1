"""
wavetable_io/export.py — Render a Waveform into shareable formats.

This module is the output boundary for finished wavetables:
    to_array_literal  SuperCollider code: the cycle as a FloatArray literal
                      plus a snippet that loads it into a buffer and plays it
    to_wav_bytes      mono 16-bit PCM WAV; the cycle is resampled and looped
                      at a playback frequency for a fixed duration
    to_json           {"sampleRate": N, "samples": [...]}
    write_export      any of the above written to a file

Usage:
    from wavetable_io.export import to_wav_bytes, write_export

WAV structure (44-byte canonical header, little-endian):
    0  "RIFF"   4  36 + data size   8  "WAVE"
    12 "fmt "   16 16 (chunk size)  20 1 (PCM)   22 channels
    24 sample rate   28 byte rate   32 block align   34 bits per sample
    36 "data"   40 data size        44 int16 frames
"""

from __future__ import annotations

import json
import logging
import struct
from pathlib import Path
from typing import Literal

import numpy as np

from core.wavetable.waveform import Waveform

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_EXPORT_SAMPLE_RATE: int = 44100
DEFAULT_EXPORT_FREQUENCY: float = 440.0
DEFAULT_EXPORT_DURATION: float = 1.0

NUM_CHANNELS: int = 1
BITS_PER_SAMPLE: int = 16
PCM_FORMAT_TAG: int = 1
WAV_HEADER_SIZE: int = 44

_INT16_SCALE: float = 32767.0

ExportFormat = Literal["supercollider", "wav", "json"]
EXPORT_FORMATS: tuple[str, ...] = ("supercollider", "wav", "json")
_EXTENSIONS: dict[str, str] = {"supercollider": ".scd", "wav": ".wav", "json": ".json"}


# ---------------------------------------------------------------------------
# Text formats
# ---------------------------------------------------------------------------


def to_array_literal(waveform: Waveform, name: str = "wavetable") -> str:
    """SuperCollider code holding every sample at six decimals.

    Args:
        waveform: Cycle to export.
        name: Environment variable name for the array (``~name``).

    Returns:
        Multi-line SuperCollider source.
    """
    values = ", ".join(f"{v:.6f}" for v in waveform.to_list())
    return (
        f"// Wavetable - {waveform.sample_count} samples\n"
        f"~{name} = FloatArray[{values}];\n"
        "\n"
        "// Load into a buffer\n"
        f"~buffer = Buffer.loadCollection(s, ~{name});\n"
        "\n"
        "// Use with Osc\n"
        "(\n"
        "{\n"
        "    var sig = Osc.ar(~buffer, 440, 0, 0.5);\n"
        "    sig ! 2;\n"
        "}.play;\n"
        ")"
    )


def to_json(waveform: Waveform) -> str:
    """``{"sampleRate": N, "samples": [...]}`` with two-space indentation."""
    return json.dumps(
        {"sampleRate": waveform.sample_count, "samples": waveform.to_list()},
        indent=2,
    )


# ---------------------------------------------------------------------------
# WAV
# ---------------------------------------------------------------------------


def render_cycles(
    waveform: Waveform,
    frequency: float = DEFAULT_EXPORT_FREQUENCY,
    sample_rate: int = DEFAULT_EXPORT_SAMPLE_RATE,
    duration: float = DEFAULT_EXPORT_DURATION,
) -> np.ndarray:
    """Loop the cycle at ``frequency`` Hz for ``duration`` seconds.

    Output sample ``i`` reads the waveform at
    ``((i mod spc) / spc) · N`` with ``spc = sample_rate / frequency``,
    interpolating linearly between stored samples.

    Returns:
        float64 array of ``int(sample_rate · duration)`` values in [-1, 1].

    Raises:
        ValueError: If frequency, sample_rate or duration is not positive.
    """
    if frequency <= 0:
        raise ValueError(f"frequency must be positive, got {frequency}")
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    if duration <= 0:
        raise ValueError(f"duration must be positive, got {duration}")

    num_samples = int(sample_rate * duration)
    samples_per_cycle = sample_rate / frequency
    n = waveform.sample_count
    positions = np.mod(np.arange(num_samples, dtype=np.float64), samples_per_cycle)
    positions = positions / samples_per_cycle * n
    # Table closed with its first sample so positions in [n-1, n) wrap around
    table = np.append(waveform.samples.astype(np.float64), float(waveform.samples[0]))
    return np.interp(positions, np.arange(n + 1, dtype=np.float64), table)


def wav_header(num_frames: int, sample_rate: int) -> bytes:
    """Canonical 44-byte header for mono 16-bit PCM."""
    block_align = NUM_CHANNELS * BITS_PER_SAMPLE // 8
    byte_rate = sample_rate * block_align
    data_size = num_frames * block_align
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT_TAG,
        NUM_CHANNELS,
        sample_rate,
        byte_rate,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def to_wav_bytes(
    waveform: Waveform,
    frequency: float = DEFAULT_EXPORT_FREQUENCY,
    sample_rate: int = DEFAULT_EXPORT_SAMPLE_RATE,
    duration: float = DEFAULT_EXPORT_DURATION,
) -> bytes:
    """Encode the looped cycle as a complete WAV file in memory.

    Samples are clamped to [-1, 1] and scaled by 32767, truncating toward
    zero, so full scale is symmetric (+32767 / −32767).
    """
    audio = render_cycles(waveform, frequency, sample_rate, duration)
    pcm = np.trunc(np.clip(audio, -1.0, 1.0) * _INT16_SCALE).astype("<i2")
    return wav_header(len(pcm), sample_rate) + pcm.tobytes()


# ---------------------------------------------------------------------------
# File output
# ---------------------------------------------------------------------------


def default_filename(fmt: ExportFormat, stem: str = "wavetable") -> str:
    """File name with the conventional extension for ``fmt``."""
    if fmt not in _EXTENSIONS:
        raise ValueError(f"Unknown export format: {fmt!r} (valid: {list(EXPORT_FORMATS)})")
    return f"{stem}{_EXTENSIONS[fmt]}"


def write_export(
    waveform: Waveform,
    fmt: ExportFormat,
    output_path: str | Path,
    *,
    frequency: float = DEFAULT_EXPORT_FREQUENCY,
    sample_rate: int = DEFAULT_EXPORT_SAMPLE_RATE,
    duration: float = DEFAULT_EXPORT_DURATION,
) -> Path:
    """Write ``waveform`` to ``output_path`` in the given format.

    Parent directories are created as needed. ``frequency``, ``sample_rate``
    and ``duration`` apply to the WAV format only.

    Returns:
        The path written.

    Raises:
        ValueError: If fmt is not one of EXPORT_FORMATS.
    """
    path = Path(output_path)
    if fmt == "wav":
        data: bytes = to_wav_bytes(waveform, frequency, sample_rate, duration)
    elif fmt == "json":
        data = to_json(waveform).encode("utf-8")
    elif fmt == "supercollider":
        data = to_array_literal(waveform).encode("utf-8")
    else:
        raise ValueError(f"Unknown export format: {fmt!r} (valid: {list(EXPORT_FORMATS)})")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info("Exported %s (%d bytes) to %s", fmt, len(data), path)
    return path
