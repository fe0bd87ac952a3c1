"""
Tests for core/wavetable/session.py — the synchronized editing session.

Validates:
    - Startup restores a saved waveform, falling back to the default preset
    - Every edit re-derives the other representation, pushes history,
      persists and notifies listeners
    - Undo/redo restore state without growing history, even when listeners
      re-enter the commit path
    - Collaborator failures are logged and never corrupt live state
    - The active view is restored at startup and persisted on switch
    - Playback controls forward to the player only while it is playing
"""

import math

import numpy as np
import pytest

from core.wavetable.config import EditorConfig
from core.wavetable.history import HistoryInfo
from core.wavetable.presets import sine, square
from core.wavetable.session import EditingSession, PlaybackSink, StateStore
from core.wavetable.spectrum import FrequencySpectrum
from core.wavetable.waveform import Waveform


class _BrokenStore:
    """StateStore whose every call fails."""

    def load_waveform(self):
        raise OSError("disk unavailable")

    def save_waveform(self, waveform):
        raise OSError("disk unavailable")

    def load_spectrum(self):
        raise OSError("disk unavailable")

    def save_spectrum(self, spectrum):
        raise OSError("disk unavailable")

    def load_frequency(self):
        raise OSError("disk unavailable")

    def save_frequency(self, frequency):
        raise OSError("disk unavailable")

    def load_volume(self):
        raise OSError("disk unavailable")

    def save_volume(self, volume):
        raise OSError("disk unavailable")

    def load_active_view(self):
        raise OSError("disk unavailable")

    def save_active_view(self, view):
        raise OSError("disk unavailable")


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


class TestStartup:
    def test_defaults_to_sine(self, session):
        assert np.allclose(session.waveform.samples, sine(256).samples)
        assert session.spectrum.harmonic_count == 16
        assert session.spectrum.get_harmonic(0).amplitude == pytest.approx(1.0, abs=1e-3)

    def test_initial_state_in_history(self, session):
        assert len(session.history) == 1
        assert not session.history.can_undo()

    def test_restores_saved_waveform(self, store, small_config):
        store.data["waveform"] = square(256)
        session = EditingSession(small_config, store=store)
        assert session.waveform.to_list() == square(256).to_list()

    def test_startup_does_not_persist(self, session, store):
        assert store.saves == []

    def test_loads_preview_settings(self, store, small_config):
        store.data["frequency"] = 220.0
        store.data["volume"] = 0.3
        session = EditingSession(small_config, store=store)
        assert session.preview_frequency == 220.0
        assert session.volume == 0.3

    def test_broken_store_falls_back(self, small_config, caplog):
        session = EditingSession(small_config, store=_BrokenStore())
        assert np.allclose(session.waveform.samples, sine(256).samples)
        assert session.preview_frequency == small_config.preview_frequency
        assert session.volume == small_config.preview_volume
        assert "Could not load saved waveform" in caplog.text

    def test_without_collaborators(self):
        session = EditingSession(EditorConfig(sample_count=64, harmonic_count=8))
        assert session.waveform.sample_count == 64
        assert session.play() is False

    def test_default_preset_from_config(self):
        config = EditorConfig(sample_count=64, harmonic_count=8, default_preset="square")
        session = EditingSession(config)
        assert session.waveform.to_list() == square(64).to_list()

    def test_fakes_satisfy_protocols(self, store, player):
        assert isinstance(store, StateStore)
        assert isinstance(player, PlaybackSink)


# ---------------------------------------------------------------------------
# Commit path
# ---------------------------------------------------------------------------


class TestWaveformEdits:
    def test_spectrum_rederived(self, session):
        session.on_waveform_changed(square(256))
        assert session.spectrum.get_harmonic(2).amplitude == pytest.approx(
            4 / (3 * math.pi), abs=1e-2
        )

    def test_history_grows(self, session):
        session.on_waveform_changed(square(256))
        assert len(session.history) == 2
        assert session.history.can_undo()

    def test_persisted(self, session, store):
        session.on_waveform_changed(square(256))
        assert store.saves == ["waveform", "spectrum"]
        assert store.data["waveform"].to_list() == square(256).to_list()

    def test_caller_copy_is_not_adopted(self, session):
        wf = square(256)
        session.on_waveform_changed(wf)
        wf.set_sample(0, -1.0)
        assert session.waveform.get_sample(0) == 1.0

    def test_listeners_receive_copies(self, session):
        received: list[Waveform] = []
        spectra: list[FrequencySpectrum] = []
        session.subscribe_waveform(received.append)
        session.subscribe_spectrum(spectra.append)
        session.on_waveform_changed(square(256))
        assert len(received) == 1 and len(spectra) == 1
        received[0].set_sample(0, -1.0)
        assert session.waveform.get_sample(0) == 1.0

    def test_unsubscribe(self, session):
        received: list[Waveform] = []
        unsubscribe = session.subscribe_waveform(received.append)
        unsubscribe()
        session.on_waveform_changed(square(256))
        assert received == []

    def test_time_editor_follows(self, session):
        session.on_waveform_changed(square(256))
        assert session.time_editor.points[0].value == 1.0
        assert session.time_editor.points[-1].value == -1.0

    def test_store_failure_keeps_edit(self, small_config, caplog):
        session = EditingSession(small_config, store=_BrokenStore())
        session.on_waveform_changed(square(256))
        assert session.waveform.to_list() == square(256).to_list()
        assert len(session.history) == 2
        assert "Could not persist editor state" in caplog.text

    def test_failing_listener_is_logged(self, session, caplog):
        def broken(_):
            raise RuntimeError("render failed")

        session.subscribe_waveform(broken)
        session.on_waveform_changed(square(256))
        assert len(session.history) == 2
        assert "Waveform listener" in caplog.text


class TestSpectrumEdits:
    def test_waveform_resynthesized(self, session):
        spectrum = FrequencySpectrum(16)
        spectrum.set_harmonic(0, 1.0, 0.0)
        session.on_spectrum_changed(spectrum)
        wf = session.waveform
        assert wf.get_sample(0) == pytest.approx(1.0)
        assert wf.get_sample(128) == pytest.approx(-1.0)

    def test_spectrum_kept_as_given(self, session):
        spectrum = FrequencySpectrum(16)
        spectrum.set_harmonic(3, 0.4, 1.0)
        session.on_spectrum_changed(spectrum)
        assert session.spectrum.get_harmonic(3).amplitude == pytest.approx(0.4)
        assert session.spectrum.get_harmonic(0).amplitude == 0.0

    def test_commit_frequency_edit(self, session, store):
        session.harmonic_editor.set_amplitude(1, 0.5)
        session.commit_frequency_edit()
        assert session.spectrum.get_harmonic(1).amplitude == pytest.approx(0.5)
        assert len(session.history) == 2
        assert "spectrum" in store.saves

    def test_commit_time_edit(self, session):
        editor = session.time_editor
        editor.drag_point(4, 1.0)
        editor.finish_drag()
        session.commit_time_edit()
        assert session.waveform.get_sample(editor.points[4].sample_index) == pytest.approx(1.0)
        assert len(session.history) == 2


class TestCommands:
    def test_load_preset(self, session):
        assert session.load_preset("square") is True
        assert session.waveform.to_list() == square(256).to_list()
        assert len(session.history) == 2

    def test_preset_name_is_case_insensitive(self, session):
        assert session.load_preset("Square") is True
        assert session.waveform.to_list() == square(256).to_list()

    def test_unknown_preset_changes_nothing(self, session, caplog):
        assert session.load_preset("noise") is False
        assert len(session.history) == 1
        assert "Unknown preset" in caplog.text

    def test_smooth_is_undoable(self, session):
        session.load_preset("square")
        session.smooth(1.0)
        assert session.waveform.get_sample(0) < 1.0
        session.undo()
        assert session.waveform.to_list() == square(256).to_list()

    def test_band_limit(self, session):
        session.load_preset("square")
        session.band_limit(1)
        assert all(h.amplitude == 0.0 for h in session.spectrum.harmonics[1:])
        assert len(session.history) == 3


# ---------------------------------------------------------------------------
# Undo / redo
# ---------------------------------------------------------------------------


class TestUndoRedo:
    def test_undo_restores_previous(self, session):
        session.on_waveform_changed(square(256))
        assert session.undo() is True
        assert np.allclose(session.waveform.samples, sine(256).samples)

    def test_redo_restores_next(self, session):
        session.on_waveform_changed(square(256))
        session.undo()
        assert session.redo() is True
        assert session.waveform.to_list() == square(256).to_list()

    def test_history_does_not_grow(self, session):
        session.on_waveform_changed(square(256))
        session.undo()
        session.redo()
        session.undo()
        assert len(session.history) == 2
        assert session.history.current_index == 0

    def test_nothing_to_undo(self, session):
        assert session.undo() is False
        assert session.redo() is False

    def test_restore_is_persisted_and_emitted(self, session, store):
        session.on_waveform_changed(square(256))
        received: list[Waveform] = []
        session.subscribe_waveform(received.append)
        session.undo()
        assert np.allclose(store.data["waveform"].samples, sine(256).samples)
        assert len(received) == 1

    def test_reentrant_edit_during_restore_is_not_recorded(self, session):
        session.on_waveform_changed(square(256))
        seen_restoring: list[bool] = []

        def echo(waveform: Waveform) -> None:
            seen_restoring.append(session.is_restoring)
            # Echo once, like a view writing its redraw back into the session
            if session.is_restoring and len(seen_restoring) == 1:
                session.on_waveform_changed(waveform)

        session.subscribe_waveform(echo)
        session.undo()
        assert seen_restoring[0] is True
        assert len(session.history) == 2
        assert session.history.can_redo()
        assert not session.is_restoring

    def test_edit_after_undo_drops_redo(self, session):
        session.on_waveform_changed(square(256))
        session.undo()
        session.load_preset("triangle")
        assert not session.history.can_redo()
        assert len(session.history) == 2

    def test_history_listener(self, session):
        events: list[HistoryInfo] = []
        session.subscribe_history(events.append)
        session.on_waveform_changed(square(256))
        session.undo()
        assert [e.as_event()["currentIndex"] for e in events] == [1, 0]
        assert events[-1].can_redo


# ---------------------------------------------------------------------------
# Active view
# ---------------------------------------------------------------------------


class TestActiveView:
    def test_defaults_to_time(self, session):
        assert session.active_view == "time"

    def test_restored_from_store(self, store, small_config):
        store.data["active_view"] = "frequency"
        assert EditingSession(small_config, store=store).active_view == "frequency"

    def test_invalid_saved_view_falls_back(self, store, small_config):
        store.data["active_view"] = "spectrogram"
        assert EditingSession(small_config, store=store).active_view == "time"

    def test_broken_store_falls_back(self, small_config):
        assert EditingSession(small_config, store=_BrokenStore()).active_view == "time"

    def test_switch_persists(self, session, store):
        session.switch_view("frequency")
        assert session.active_view == "frequency"
        assert store.data["active_view"] == "frequency"

    def test_switch_resyncs_editor(self, session):
        session.harmonic_editor.set_amplitude(0, 0.0)
        session.switch_view("frequency")
        assert session.harmonic_editor.spectrum.get_harmonic(0).amplitude == pytest.approx(
            1.0, abs=1e-3
        )
        assert len(session.history) == 1

    def test_unknown_view_rejected(self, session, store):
        with pytest.raises(ValueError):
            session.switch_view("spectrogram")
        assert session.active_view == "time"
        assert "active_view" not in store.data


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------


class TestPlayback:
    def test_no_update_while_stopped(self, session, player):
        session.on_waveform_changed(square(256))
        assert player.waveform_updates == []

    def test_play_starts_at_preview_frequency(self, session, player):
        assert session.play() is True
        assert player.playing
        assert player.frequency == 440.0
        assert player.volume == 0.05

    def test_edits_update_running_playback(self, session, player):
        session.play()
        session.on_waveform_changed(square(256))
        assert player.waveform_updates[-1].to_list() == square(256).to_list()

    def test_stop(self, session, player):
        session.play()
        session.stop()
        assert not player.playing

    def test_failed_play_stops(self, session, player, monkeypatch, caplog):
        def explode(waveform, frequency):
            player.playing = True
            raise RuntimeError("no audio device")

        monkeypatch.setattr(player, "play", explode)
        assert session.play() is False
        assert not player.playing
        assert "Error playing audio" in caplog.text

    def test_set_preview_frequency(self, session, player, store):
        session.play()
        session.set_preview_frequency(220.0)
        assert session.preview_frequency == 220.0
        assert player.frequency == 220.0
        assert store.data["frequency"] == 220.0

    def test_frequency_not_forwarded_while_stopped(self, session, player):
        session.set_preview_frequency(110.0)
        assert player.frequency is None

    @pytest.mark.parametrize("frequency", [0.0, -10.0])
    def test_invalid_frequency(self, session, frequency):
        with pytest.raises(ValueError):
            session.set_preview_frequency(frequency)

    def test_volume_clamped_and_saved(self, session, player, store):
        session.set_volume(1.5)
        assert session.volume == 1.0
        assert player.volume == 1.0
        assert store.data["volume"] == 1.0
