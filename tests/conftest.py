"""
Shared fixtures for the test suite.

Centralizes the fake collaborators used by the session tests so that
individual test files don't repeat them.
"""

from __future__ import annotations

import pytest

from core.wavetable.config import EditorConfig
from core.wavetable.session import EditingSession
from core.wavetable.spectrum import FrequencySpectrum
from core.wavetable.waveform import Waveform

# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class InMemoryStore:
    """StateStore that keeps clones in a dict — no SQLite, no disk."""

    def __init__(self, waveform: Waveform | None = None) -> None:
        self.data: dict[str, object] = {}
        self.saves: list[str] = []
        if waveform is not None:
            self.data["waveform"] = waveform.clone()

    def load_waveform(self) -> Waveform | None:
        saved = self.data.get("waveform")
        return saved.clone() if isinstance(saved, Waveform) else None

    def save_waveform(self, waveform: Waveform) -> None:
        self.data["waveform"] = waveform.clone()
        self.saves.append("waveform")

    def load_spectrum(self) -> FrequencySpectrum | None:
        saved = self.data.get("spectrum")
        return saved.clone() if isinstance(saved, FrequencySpectrum) else None

    def save_spectrum(self, spectrum: FrequencySpectrum) -> None:
        self.data["spectrum"] = spectrum.clone()
        self.saves.append("spectrum")

    def load_frequency(self) -> float:
        return float(self.data.get("frequency", 440.0))  # type: ignore[arg-type]

    def save_frequency(self, frequency: float) -> None:
        self.data["frequency"] = frequency

    def load_volume(self) -> float:
        return float(self.data.get("volume", 0.05))  # type: ignore[arg-type]

    def save_volume(self, volume: float) -> None:
        self.data["volume"] = volume

    def load_active_view(self) -> str:
        return str(self.data.get("active_view", "time"))

    def save_active_view(self, view: str) -> None:
        self.data["active_view"] = view


class FakePlayer:
    """PlaybackSink that records calls instead of making sound."""

    def __init__(self) -> None:
        self.playing = False
        self.frequency: float | None = None
        self.volume: float | None = None
        self.waveform_updates: list[Waveform] = []

    @property
    def is_playing(self) -> bool:
        return self.playing

    def play(self, waveform: Waveform, frequency: float) -> None:
        self.playing = True
        self.frequency = frequency
        self.waveform_updates.append(waveform)

    def stop(self) -> None:
        self.playing = False

    def update_waveform(self, waveform: Waveform) -> None:
        self.waveform_updates.append(waveform)

    def set_frequency(self, frequency: float) -> None:
        self.frequency = frequency

    def set_volume(self, volume: float) -> None:
        self.volume = volume


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


SMALL_CONFIG = EditorConfig(sample_count=256, harmonic_count=16, max_history=10, control_points=32)
"""Small sizes keep the O(N·H) transforms fast in session tests."""


@pytest.fixture()
def small_config() -> EditorConfig:
    return SMALL_CONFIG


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def player() -> FakePlayer:
    return FakePlayer()


@pytest.fixture()
def session(store: InMemoryStore, player: FakePlayer) -> EditingSession:
    return EditingSession(SMALL_CONFIG, store=store, player=player)
