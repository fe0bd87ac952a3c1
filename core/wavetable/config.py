"""
Configuration for the wavetable editing session.

An immutable config object gathers every tunable of the editor in one place so
that the session, the CLI and the tests share one definition of the defaults.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields

from core.wavetable.presets import PRESETS
from core.wavetable.waveform import is_power_of_two

ENV_PREFIX = "WAVETABLE_"
"""Environment variables are named WAVETABLE_<FIELD NAME IN UPPER CASE>."""


@dataclass(frozen=True)
class EditorConfig:
    """
    Configuration for an editing session.

    Attributes:
        sample_count: Samples per cycle. Must be a power of two. Defaults to
            1024, enough resolution for smooth drawing at typical canvas widths.
        harmonic_count: Harmonics kept by analysis. Defaults to 64.
        max_history: Undo depth. Defaults to 50.
        control_points: Anchors for control-point editing. Defaults to 64.
        default_preset: Preset loaded when nothing is persisted.
        preview_frequency: Playback pitch in Hz. Defaults to 440 (A4).
        preview_volume: Playback gain in [0, 1]. Defaults to 0.05.
        export_sample_rate: WAV export rate in Hz. Defaults to 44100.
        export_duration: WAV export length in seconds. Defaults to 1.0.

    Example:
        >>> config = EditorConfig(sample_count=2048, max_history=100)
        >>> session = EditingSession(config)
    """

    sample_count: int = 1024
    harmonic_count: int = 64
    max_history: int = 50
    control_points: int = 64
    default_preset: str = "sine"
    preview_frequency: float = 440.0
    preview_volume: float = 0.05
    export_sample_rate: int = 44100
    export_duration: float = 1.0

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not is_power_of_two(self.sample_count):
            raise ValueError(f"sample_count must be a power of 2, got {self.sample_count}")
        if self.harmonic_count < 1:
            raise ValueError(f"harmonic_count must be >= 1, got {self.harmonic_count}")
        if self.max_history < 1:
            raise ValueError(f"max_history must be >= 1, got {self.max_history}")
        if self.control_points < 1:
            raise ValueError(f"control_points must be >= 1, got {self.control_points}")
        if self.default_preset not in PRESETS:
            raise ValueError(
                f"Unknown default_preset {self.default_preset!r}, "
                f"valid options: {sorted(PRESETS)}"
            )
        if self.preview_frequency <= 0:
            raise ValueError(f"preview_frequency must be positive, got {self.preview_frequency}")
        if not 0.0 <= self.preview_volume <= 1.0:
            raise ValueError(f"preview_volume must be in [0, 1], got {self.preview_volume}")
        if self.export_sample_rate <= 0:
            raise ValueError(f"export_sample_rate must be positive, got {self.export_sample_rate}")
        if self.export_duration <= 0:
            raise ValueError(f"export_duration must be positive, got {self.export_duration}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EditorConfig:
        """Build a config from WAVETABLE_* environment variables.

        Unset variables keep their defaults. Values are converted with the
        field's declared type (int, float or str).

        Raises:
            ValueError: If a variable cannot be converted or fails validation.
        """
        env = os.environ if environ is None else environ
        converters = {"int": int, "float": float, "str": str}
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None or raw == "":
                continue
            convert = converters[str(f.type)]
            try:
                overrides[f.name] = convert(raw)
            except ValueError as exc:
                raise ValueError(f"{ENV_PREFIX}{f.name.upper()}={raw!r}: {exc}") from exc
        return cls(**overrides)  # type: ignore[arg-type]


# Pre-defined configurations

DEFAULT_CONFIG = EditorConfig()
"""Default configuration: 1024 samples, 64 harmonics, 50 undo steps."""

HI_RES_CONFIG = EditorConfig(sample_count=4096, harmonic_count=128, control_points=128)
"""Higher resolution for exporting tables to samplers with long cycles."""
