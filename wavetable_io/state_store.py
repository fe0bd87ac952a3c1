"""SQLite-backed store for the editor's persisted state.

Local-first: one small key/value table on disk holding the last accepted
waveform and spectrum plus preview settings. Values are JSON in the same
shapes the export and UI layers use:

    waveform  {"sampleRate": 1024, "samples": [float, ...]}
    spectrum  {"harmonicCount": 64, "harmonics": [{"amplitude": a, "phase": p}, ...]}
    frequency 440.0
    volume    0.05
    active_view "time" | "frequency"

Payloads are validated with pydantic on the way in and out. A missing or
invalid entry loads as None (or the default for scalar settings). Storage
failures are logged and swallowed: persistence must never break editing.

Schema (auto-created on first use):
    editor_state(
        key        TEXT PK,
        value      TEXT,   -- JSON
        updated_at TEXT    -- ISO-8601 UTC
    )
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.wavetable.spectrum import FrequencySpectrum
from core.wavetable.waveform import Waveform, is_power_of_two

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data/wavetable.db")
DEFAULT_FREQUENCY: float = 440.0
DEFAULT_VOLUME: float = 0.05
DEFAULT_VIEW: str = "time"

ViewName = Literal["time", "frequency"]

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS editor_state (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


# ---------------------------------------------------------------------------
# Payload models
# ---------------------------------------------------------------------------


class WaveformPayload(BaseModel):
    """Persisted waveform: ``{sampleRate, samples}``.

    ``sampleRate`` is the number of samples per cycle (the name is kept for
    compatibility with existing saved state and JSON exports).
    """

    model_config = ConfigDict(populate_by_name=True)

    sample_rate: int = Field(..., alias="sampleRate", gt=0)
    samples: list[float]

    @model_validator(mode="after")
    def _check_length(self) -> WaveformPayload:
        if not is_power_of_two(self.sample_rate):
            raise ValueError(f"sampleRate must be a power of 2, got {self.sample_rate}")
        if len(self.samples) != self.sample_rate:
            raise ValueError(
                f"samples has {len(self.samples)} values, expected {self.sample_rate}"
            )
        return self

    @classmethod
    def from_waveform(cls, waveform: Waveform) -> WaveformPayload:
        return cls(sample_rate=waveform.sample_count, samples=waveform.to_list())

    def to_waveform(self) -> Waveform:
        return Waveform.from_samples(self.samples)


class HarmonicPayload(BaseModel):
    amplitude: float
    phase: float = 0.0


class SpectrumPayload(BaseModel):
    """Persisted spectrum: ``{harmonicCount, harmonics: [{amplitude, phase}]}``."""

    model_config = ConfigDict(populate_by_name=True)

    harmonic_count: int = Field(..., alias="harmonicCount", ge=1)
    harmonics: list[HarmonicPayload]

    @model_validator(mode="after")
    def _check_length(self) -> SpectrumPayload:
        if len(self.harmonics) != self.harmonic_count:
            raise ValueError(
                f"harmonics has {len(self.harmonics)} entries, expected {self.harmonic_count}"
            )
        return self

    @classmethod
    def from_spectrum(cls, spectrum: FrequencySpectrum) -> SpectrumPayload:
        return cls(
            harmonic_count=spectrum.harmonic_count,
            harmonics=[
                HarmonicPayload(amplitude=h.amplitude, phase=h.phase) for h in spectrum.harmonics
            ],
        )

    def to_spectrum(self) -> FrequencySpectrum:
        return FrequencySpectrum.from_harmonics((h.amplitude, h.phase) for h in self.harmonics)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SqliteStateStore:
    """Persistent editor state in a single SQLite file.

    Satisfies the ``StateStore`` protocol of core/wavetable/session.py.

    Args:
        db_path: Path to the SQLite database file. Created on first use.

    Raises:
        sqlite3.Error: If the database cannot be opened or its schema created.
    """

    def __init__(self, db_path: Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_TABLE_SQL)
            conn.commit()

    # ------------------------------------------------------------------ #
    # Raw key/value access                                                 #
    # ------------------------------------------------------------------ #

    def _get(self, key: str) -> Any | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM editor_state WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            logger.warning("Could not load %s from %s: %s", key, self._db_path, exc)
            return None
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as exc:
            logger.warning("Discarding corrupt %s entry: %s", key, exc)
            return None

    def _set(self, key: str, value: Any) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO editor_state (key, value, updated_at) VALUES (?, ?, ?)",
                    (key, json.dumps(value), datetime.now(UTC).isoformat()),
                )
                conn.commit()
        except sqlite3.Error as exc:
            logger.warning("Could not save %s to %s: %s", key, self._db_path, exc)

    def keys(self) -> list[str]:
        """Names of all stored entries, sorted. Empty if the database is unreadable."""
        try:
            with self._connect() as conn:
                rows = conn.execute("SELECT key FROM editor_state ORDER BY key").fetchall()
        except sqlite3.Error as exc:
            logger.warning("Could not list keys in %s: %s", self._db_path, exc)
            return []
        return [row["key"] for row in rows]

    def clear(self) -> None:
        """Delete every stored entry."""
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM editor_state")
                conn.commit()
        except sqlite3.Error as exc:
            logger.warning("Could not clear state: %s", exc)

    # ------------------------------------------------------------------ #
    # Waveform / spectrum                                                  #
    # ------------------------------------------------------------------ #

    def save_waveform(self, waveform: Waveform) -> None:
        payload = WaveformPayload.from_waveform(waveform)
        self._set("waveform", payload.model_dump(by_alias=True))

    def load_waveform(self) -> Waveform | None:
        """Last saved waveform, or None if missing or invalid."""
        raw = self._get("waveform")
        if raw is None:
            return None
        try:
            return WaveformPayload.model_validate(raw).to_waveform()
        except ValidationError as exc:
            logger.warning("Ignoring invalid saved waveform: %s", exc.errors()[0]["msg"])
            return None

    def save_spectrum(self, spectrum: FrequencySpectrum) -> None:
        payload = SpectrumPayload.from_spectrum(spectrum)
        self._set("spectrum", payload.model_dump(by_alias=True))

    def load_spectrum(self) -> FrequencySpectrum | None:
        """Last saved spectrum, or None if missing or invalid."""
        raw = self._get("spectrum")
        if raw is None:
            return None
        try:
            return SpectrumPayload.model_validate(raw).to_spectrum()
        except ValidationError as exc:
            logger.warning("Ignoring invalid saved spectrum: %s", exc.errors()[0]["msg"])
            return None

    # ------------------------------------------------------------------ #
    # Preview settings                                                     #
    # ------------------------------------------------------------------ #

    def save_frequency(self, frequency: float) -> None:
        self._set("frequency", float(frequency))

    def load_frequency(self) -> float:
        raw = self._get("frequency")
        return float(raw) if isinstance(raw, int | float) and raw > 0 else DEFAULT_FREQUENCY

    def save_volume(self, volume: float) -> None:
        self._set("volume", float(volume))

    def load_volume(self) -> float:
        raw = self._get("volume")
        return float(raw) if isinstance(raw, int | float) and 0 <= raw <= 1 else DEFAULT_VOLUME

    def save_active_view(self, view: ViewName) -> None:
        if view not in ("time", "frequency"):
            raise ValueError(f"view must be 'time' or 'frequency', got {view!r}")
        self._set("active_view", view)

    def load_active_view(self) -> str:
        raw = self._get("active_view")
        return raw if raw in ("time", "frequency") else DEFAULT_VIEW
