"""
core/wavetable/session.py — The live editing session.

EditingSession owns the single live (waveform, spectrum) pair and keeps the
two representations synchronized. Every accepted edit runs the same commit
path:

    1. adopt a private copy of the edited representation
    2. re-derive the complementary one through core/wavetable/transform.py
    3. hand the new waveform to playback (only while playing)
    4. push a history snapshot (suppressed while restoring)
    5. persist both representations through the state store
    6. notify waveform / spectrum listeners

Undo and redo write back into the live state through _restore(), which
raises the ``restoring`` guard so nothing triggered as a side effect of the
replay can record the restored state again.

Collaborators (persistence, playback) are Protocols. Their failures are
logged and never leave the in-memory state half-updated. This module does
no I/O itself — concrete stores live in wavetable_io/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol, TypeVar, runtime_checkable

from core.wavetable.config import DEFAULT_CONFIG, EditorConfig
from core.wavetable.editing import ControlPointEditor, HarmonicEditor
from core.wavetable.history import HistoryInfo, HistoryManager, HistorySnapshot
from core.wavetable.presets import PRESETS, generate_preset
from core.wavetable.spectrum import FrequencySpectrum
from core.wavetable.transform import (
    apply_smoothing,
    band_limit,
    to_frequency_domain,
    to_time_domain,
)
from core.wavetable.waveform import Waveform

logger = logging.getLogger(__name__)

T = TypeVar("T")

VIEWS: tuple[str, ...] = ("time", "frequency")
"""Editing surfaces the session can switch between."""

DEFAULT_VIEW: str = "time"


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class StateStore(Protocol):
    """Persistence collaborator.

    Loads return None when nothing (valid) has been stored yet.
    """

    def load_waveform(self) -> Waveform | None: ...

    def save_waveform(self, waveform: Waveform) -> None: ...

    def load_spectrum(self) -> FrequencySpectrum | None: ...

    def save_spectrum(self, spectrum: FrequencySpectrum) -> None: ...

    def load_frequency(self) -> float: ...

    def save_frequency(self, frequency: float) -> None: ...

    def load_volume(self) -> float: ...

    def save_volume(self, volume: float) -> None: ...

    def load_active_view(self) -> str: ...

    def save_active_view(self, view: str) -> None: ...


@runtime_checkable
class PlaybackSink(Protocol):
    """Audio preview collaborator. Synthesis itself happens outside the core."""

    @property
    def is_playing(self) -> bool: ...

    def play(self, waveform: Waveform, frequency: float) -> None: ...

    def stop(self) -> None: ...

    def update_waveform(self, waveform: Waveform) -> None: ...

    def set_frequency(self, frequency: float) -> None: ...

    def set_volume(self, volume: float) -> None: ...


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class EditingSession:
    """Single live waveform/spectrum pair with history, persistence and playback.

    Args:
        config: Editor configuration (default: DEFAULT_CONFIG).
        store: Optional persistence collaborator. Without one, nothing is
            loaded or saved.
        player: Optional playback collaborator.
        history: Optional pre-built HistoryManager (default: one sized by
            ``config.max_history``).
    """

    def __init__(
        self,
        config: EditorConfig = DEFAULT_CONFIG,
        store: StateStore | None = None,
        player: PlaybackSink | None = None,
        history: HistoryManager | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._player = player
        self._history = history if history is not None else HistoryManager(config.max_history)
        self._restoring = False
        self._waveform_listeners: list[Callable[[Waveform], None]] = []
        self._spectrum_listeners: list[Callable[[FrequencySpectrum], None]] = []

        self._waveform = self._initial_waveform()
        self._spectrum = to_frequency_domain(self._waveform, config.harmonic_count)
        self._frequency = self._load_setting("load_frequency", config.preview_frequency)
        self._volume = self._load_setting("load_volume", config.preview_volume)
        self._active_view = self._load_active_view()

        self._time_editor = ControlPointEditor(self._waveform.clone(), config.control_points)
        self._harmonic_editor = HarmonicEditor(self._spectrum.clone())

        self._push_history()
        logger.info(
            "EditingSession ready (samples=%d, harmonics=%d, history=%d)",
            self._waveform.sample_count,
            config.harmonic_count,
            self._history.max_length,
        )

    # ------------------------------------------------------------------ #
    # Startup                                                              #
    # ------------------------------------------------------------------ #

    def _initial_waveform(self) -> Waveform:
        saved: Waveform | None = None
        if self._store is not None:
            try:
                saved = self._store.load_waveform()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Could not load saved waveform (%s) — using default preset", exc)
        if saved is not None:
            logger.info("Restored saved waveform (%d samples)", saved.sample_count)
            return saved.clone()
        return generate_preset(self._config.default_preset, self._config.sample_count)

    def _load_setting(self, loader: str, default: float) -> float:
        if self._store is None:
            return default
        try:
            return float(getattr(self._store, loader)())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not load %s (%s) — using %s", loader, exc, default)
            return default

    def _load_active_view(self) -> str:
        if self._store is None:
            return DEFAULT_VIEW
        try:
            view = self._store.load_active_view()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not load active view (%s) — using %s", exc, DEFAULT_VIEW)
            return DEFAULT_VIEW
        return view if view in VIEWS else DEFAULT_VIEW

    # ------------------------------------------------------------------ #
    # Read access                                                          #
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> EditorConfig:
        return self._config

    @property
    def history(self) -> HistoryManager:
        return self._history

    @property
    def waveform(self) -> Waveform:
        """Copy of the live waveform."""
        return self._waveform.clone()

    @property
    def spectrum(self) -> FrequencySpectrum:
        """Copy of the live spectrum."""
        return self._spectrum.clone()

    @property
    def time_editor(self) -> ControlPointEditor:
        return self._time_editor

    @property
    def harmonic_editor(self) -> HarmonicEditor:
        return self._harmonic_editor

    @property
    def is_restoring(self) -> bool:
        """True while undo/redo is writing a snapshot back into the live state."""
        return self._restoring

    @property
    def active_view(self) -> str:
        """Editing surface in front: "time" or "frequency"."""
        return self._active_view

    @property
    def preview_frequency(self) -> float:
        return self._frequency

    @property
    def volume(self) -> float:
        return self._volume

    # ------------------------------------------------------------------ #
    # Notifications                                                        #
    # ------------------------------------------------------------------ #

    def subscribe_waveform(self, listener: Callable[[Waveform], None]) -> Callable[[], None]:
        return self._subscribe(self._waveform_listeners, listener)

    def subscribe_spectrum(
        self, listener: Callable[[FrequencySpectrum], None]
    ) -> Callable[[], None]:
        return self._subscribe(self._spectrum_listeners, listener)

    def subscribe_history(self, listener: Callable[[HistoryInfo], None]) -> Callable[[], None]:
        return self._history.subscribe(listener)

    @staticmethod
    def _subscribe(
        listeners: list[Callable[[T], None]], listener: Callable[[T], None]
    ) -> Callable[[], None]:
        listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return _unsubscribe

    def _emit(self) -> None:
        for on_waveform in list(self._waveform_listeners):
            try:
                on_waveform(self._waveform.clone())
            except Exception:  # noqa: BLE001
                logger.exception("Waveform listener %r failed", on_waveform)
        for on_spectrum in list(self._spectrum_listeners):
            try:
                on_spectrum(self._spectrum.clone())
            except Exception:  # noqa: BLE001
                logger.exception("Spectrum listener %r failed", on_spectrum)

    # ------------------------------------------------------------------ #
    # Commit path                                                          #
    # ------------------------------------------------------------------ #

    def on_waveform_changed(self, waveform: Waveform) -> None:
        """Accept a new time-domain state and re-derive the spectrum."""
        self._apply_waveform(waveform.clone(), sync_time_editor=True)

    def on_spectrum_changed(self, spectrum: FrequencySpectrum) -> None:
        """Accept a new frequency-domain state and resynthesize the waveform."""
        self._apply_spectrum(spectrum.clone(), sync_harmonic_editor=True)

    def commit_time_edit(self) -> None:
        """Pointer-up on the time-domain surface: accept the editor's waveform."""
        self._apply_waveform(self._time_editor.waveform.clone(), sync_time_editor=False)

    def commit_frequency_edit(self) -> None:
        """Pointer-up on the harmonic bars: accept the editor's spectrum."""
        self._apply_spectrum(self._harmonic_editor.spectrum.clone(), sync_harmonic_editor=False)

    def load_preset(self, name: str) -> bool:
        """Replace the waveform with a named preset.

        Returns:
            False (and changes nothing) for an unknown preset name.
        """
        if name.lower() not in PRESETS:
            logger.warning("Unknown preset: %s", name)
            return False
        self.on_waveform_changed(generate_preset(name, self._waveform.sample_count))
        logger.info("Loaded preset: %s", name)
        return True

    def smooth(self, amount: float = 0.1) -> None:
        """Smooth the live waveform as one undoable edit."""
        self.on_waveform_changed(apply_smoothing(self._waveform, amount))

    def band_limit(self, cutoff_harmonic: int) -> None:
        """Zero harmonics at and above ``cutoff_harmonic`` as one undoable edit."""
        self.on_spectrum_changed(band_limit(self._spectrum, cutoff_harmonic))

    def _apply_waveform(self, waveform: Waveform, *, sync_time_editor: bool) -> None:
        spectrum = to_frequency_domain(waveform, self._config.harmonic_count)
        self._waveform = waveform
        self._spectrum = spectrum
        if sync_time_editor:
            self._time_editor.update_from_waveform(waveform.clone())
        self._harmonic_editor.update_from_spectrum(spectrum.clone())
        self._after_change()

    def _apply_spectrum(self, spectrum: FrequencySpectrum, *, sync_harmonic_editor: bool) -> None:
        waveform = to_time_domain(spectrum, self._waveform.sample_count)
        self._spectrum = spectrum
        self._waveform = waveform
        if sync_harmonic_editor:
            self._harmonic_editor.update_from_spectrum(spectrum.clone())
        self._time_editor.update_from_waveform(waveform.clone())
        self._after_change()

    def _after_change(self) -> None:
        self._update_playback()
        self._push_history()
        self._persist()
        self._emit()

    def _push_history(self) -> None:
        if self._restoring:
            return
        self._history.push(self._waveform, self._spectrum)

    def _persist(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save_waveform(self._waveform)
            self._store.save_spectrum(self._spectrum)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not persist editor state: %s", exc)

    def _update_playback(self) -> None:
        if self._player is None:
            return
        try:
            if self._player.is_playing:
                self._player.update_waveform(self._waveform.clone())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Playback update failed: %s", exc)

    # ------------------------------------------------------------------ #
    # History replay                                                       #
    # ------------------------------------------------------------------ #

    def undo(self) -> bool:
        """Restore the previous snapshot. Returns False when there is none."""
        snapshot = self._history.undo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        logger.info("Undo -> %d/%d", self._history.current_index + 1, len(self._history))
        return True

    def redo(self) -> bool:
        """Restore the next snapshot. Returns False when there is none."""
        snapshot = self._history.redo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        logger.info("Redo -> %d/%d", self._history.current_index + 1, len(self._history))
        return True

    def _restore(self, snapshot: HistorySnapshot) -> None:
        self._restoring = True
        try:
            self._waveform = snapshot.waveform
            self._spectrum = snapshot.spectrum
            self._time_editor.update_from_waveform(self._waveform.clone())
            self._harmonic_editor.update_from_spectrum(self._spectrum.clone())
            self._after_change()
        finally:
            self._restoring = False

    # ------------------------------------------------------------------ #
    # View                                                                 #
    # ------------------------------------------------------------------ #

    def switch_view(self, view: str) -> None:
        """Bring an editing surface to the front and persist the choice.

        The surface's editor is re-synced from the live state, dropping any
        uncommitted gesture on it.

        Raises:
            ValueError: If view is not "time" or "frequency".
        """
        if view not in VIEWS:
            raise ValueError(f"view must be one of {list(VIEWS)}, got {view!r}")
        self._active_view = view
        if view == "time":
            self._time_editor.update_from_waveform(self._waveform.clone())
        else:
            self._harmonic_editor.update_from_spectrum(self._spectrum.clone())
        self._save_setting("save_active_view", view)
        logger.debug("Active view -> %s", view)

    # ------------------------------------------------------------------ #
    # Playback controls                                                    #
    # ------------------------------------------------------------------ #

    def play(self) -> bool:
        """Start previewing the live waveform at the preview frequency.

        Returns:
            True if playback started; False without a player or on failure.
        """
        if self._player is None:
            return False
        try:
            self._player.set_volume(self._volume)
            self._player.play(self._waveform.clone(), self._frequency)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error playing audio: %s", exc)
            self.stop()
            return False
        logger.info("Playing preview at %.1f Hz", self._frequency)
        return True

    def stop(self) -> None:
        if self._player is None:
            return
        try:
            self._player.stop()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Error stopping audio: %s", exc)

    def set_preview_frequency(self, frequency: float) -> None:
        """Change the preview pitch; applied live while playing and persisted.

        Raises:
            ValueError: If frequency is not positive.
        """
        if frequency <= 0:
            raise ValueError(f"frequency must be positive, got {frequency}")
        self._frequency = float(frequency)
        if self._player is not None:
            try:
                if self._player.is_playing:
                    self._player.set_frequency(self._frequency)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Could not update playback frequency: %s", exc)
        self._save_setting("save_frequency", self._frequency)

    def set_volume(self, volume: float) -> None:
        """Change the preview gain, clamped into [0, 1], and persist it."""
        self._volume = max(0.0, min(1.0, float(volume)))
        if self._player is not None:
            try:
                self._player.set_volume(self._volume)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Could not update playback volume: %s", exc)
        self._save_setting("save_volume", self._volume)

    def _save_setting(self, saver: str, value: float | str) -> None:
        if self._store is None:
            return
        try:
            getattr(self._store, saver)(value)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not %s (%s)", saver.replace("_", " "), exc)
