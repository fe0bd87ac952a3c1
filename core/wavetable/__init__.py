"""
core/wavetable — Single-cycle waveform editing engine.

Keeps one periodic waveform editable in two coupled representations, a
cycle of samples (time domain) and a bounded harmonic series (frequency
domain), with bounded undo/redo over the editing history.

Everything here is pure: no file, database or audio device access. The
persistence and export adapters live in wavetable_io/.

Public API:
    Types:      Waveform, FrequencySpectrum, Harmonic, ControlPoint,
                HistorySnapshot, HistoryInfo, EditorConfig
    Errors:     WavetableError, InvalidLengthError, OutOfRangeError
    Transform:  to_frequency_domain, to_time_domain, apply_smoothing, band_limit
    Presets:    sine, saw, square, triangle, custom, generate_preset
    Editing:    ControlPointEditor, HarmonicEditor
    History:    HistoryManager
    Session:    EditingSession, StateStore, PlaybackSink
"""

from core.wavetable.config import DEFAULT_CONFIG, HI_RES_CONFIG, EditorConfig
from core.wavetable.editing import ControlPoint, ControlPointEditor, HarmonicEditor
from core.wavetable.errors import InvalidLengthError, OutOfRangeError, WavetableError
from core.wavetable.history import HistoryInfo, HistoryManager, HistorySnapshot
from core.wavetable.presets import (
    PRESETS,
    available_presets,
    custom,
    generate_preset,
    saw,
    sine,
    square,
    triangle,
)
from core.wavetable.session import EditingSession, PlaybackSink, StateStore
from core.wavetable.spectrum import FrequencySpectrum, Harmonic
from core.wavetable.transform import (
    apply_smoothing,
    band_limit,
    to_frequency_domain,
    to_time_domain,
)
from core.wavetable.waveform import Waveform, is_power_of_two

__all__ = [
    # Types
    "Waveform",
    "FrequencySpectrum",
    "Harmonic",
    "ControlPoint",
    "HistorySnapshot",
    "HistoryInfo",
    "EditorConfig",
    "DEFAULT_CONFIG",
    "HI_RES_CONFIG",
    "is_power_of_two",
    # Errors
    "WavetableError",
    "InvalidLengthError",
    "OutOfRangeError",
    # Transform
    "to_frequency_domain",
    "to_time_domain",
    "apply_smoothing",
    "band_limit",
    # Presets
    "PRESETS",
    "available_presets",
    "generate_preset",
    "sine",
    "saw",
    "square",
    "triangle",
    "custom",
    # Editing
    "ControlPointEditor",
    "HarmonicEditor",
    # History
    "HistoryManager",
    # Session
    "EditingSession",
    "StateStore",
    "PlaybackSink",
]
