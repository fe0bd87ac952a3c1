"""
core/wavetable/history.py — Bounded undo/redo over (waveform, spectrum) snapshots.

State machine::

    empty (cursor = -1)
        │ push
        ▼
    [s0 … sK … sM]   cursor = K
        │ push   → drop s(K+1)…sM, append, cursor = last;
        │          evict s0 when longer than max_length
        │ undo   → cursor − 1   (when cursor > 0)
        │ redo   → cursor + 1   (when cursor < last)
        │ clear  → empty

Every push deep-copies its inputs and every read deep-copies the stored
snapshot, so the live editing state and the history never share buffers.
None of the operations raise: undo/redo simply return None when there is
nothing to move to.

Listeners registered with subscribe() receive a HistoryInfo after every
push, undo, redo and clear.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from core.wavetable.spectrum import FrequencySpectrum
from core.wavetable.waveform import Waveform

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY: int = 50
"""Snapshots retained before the oldest is evicted."""


@dataclass(frozen=True)
class HistorySnapshot:
    """One accepted editing state.

    The contained waveform and spectrum are private copies. Snapshots handed
    out by HistoryManager are fresh copies too, so callers may mutate them.
    """

    waveform: Waveform
    spectrum: FrequencySpectrum
    timestamp: float
    """Seconds since the epoch when the state was pushed."""

    def clone(self) -> HistorySnapshot:
        return HistorySnapshot(
            waveform=self.waveform.clone(),
            spectrum=self.spectrum.clone(),
            timestamp=self.timestamp,
        )


@dataclass(frozen=True)
class HistoryInfo:
    """Payload of the history-change notification."""

    can_undo: bool
    can_redo: bool
    history_size: int
    current_index: int

    def as_event(self) -> dict[str, bool | int]:
        """camelCase dict in the shape UI listeners expect."""
        return {
            "canUndo": self.can_undo,
            "canRedo": self.can_redo,
            "historySize": self.history_size,
            "currentIndex": self.current_index,
        }


HistoryListener = Callable[[HistoryInfo], None]


class HistoryManager:
    """Bounded linear undo/redo history.

    Args:
        max_length: Maximum number of retained snapshots (default: 50).
        clock: Timestamp source, injectable for tests (default: time.time).

    Raises:
        ValueError: If max_length < 1.
    """

    def __init__(
        self,
        max_length: int = DEFAULT_MAX_HISTORY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_length < 1:
            raise ValueError(f"max_length must be >= 1, got {max_length}")
        self._max_length = max_length
        self._clock = clock
        self._snapshots: list[HistorySnapshot] = []
        self._current_index = -1
        self._listeners: list[HistoryListener] = []

    # ------------------------------------------------------------------ #
    # Introspection                                                        #
    # ------------------------------------------------------------------ #

    @property
    def max_length(self) -> int:
        return self._max_length

    @property
    def current_index(self) -> int:
        return self._current_index

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def snapshots(self) -> tuple[HistorySnapshot, ...]:
        """Copies of every retained snapshot, oldest first."""
        return tuple(snapshot.clone() for snapshot in self._snapshots)

    def can_undo(self) -> bool:
        return self._current_index > 0

    def can_redo(self) -> bool:
        return self._current_index < len(self._snapshots) - 1

    def info(self) -> HistoryInfo:
        return HistoryInfo(
            can_undo=self.can_undo(),
            can_redo=self.can_redo(),
            history_size=len(self._snapshots),
            current_index=self._current_index,
        )

    # ------------------------------------------------------------------ #
    # Notifications                                                        #
    # ------------------------------------------------------------------ #

    def subscribe(self, listener: HistoryListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        info = self.info()
        for listener in list(self._listeners):
            try:
                listener(info)
            except Exception:  # noqa: BLE001
                logger.exception("History listener %r failed", listener)

    # ------------------------------------------------------------------ #
    # Transitions                                                          #
    # ------------------------------------------------------------------ #

    def push(self, waveform: Waveform, spectrum: FrequencySpectrum) -> None:
        """Record a new accepted state.

        Any redo branch beyond the cursor is discarded first. When the
        history grows past max_length the oldest snapshot is evicted. The
        cursor always ends on the snapshot just pushed.
        """
        del self._snapshots[self._current_index + 1 :]
        self._snapshots.append(
            HistorySnapshot(
                waveform=waveform.clone(),
                spectrum=spectrum.clone(),
                timestamp=self._clock(),
            )
        )
        if len(self._snapshots) > self._max_length:
            evicted = len(self._snapshots) - self._max_length
            del self._snapshots[:evicted]
            logger.debug("History full: evicted %d oldest snapshot(s)", evicted)
        self._current_index = len(self._snapshots) - 1
        self._notify()

    def undo(self) -> HistorySnapshot | None:
        """Step back one snapshot. Returns a copy of it, or None at the start."""
        if not self.can_undo():
            return None
        self._current_index -= 1
        self._notify()
        return self._snapshots[self._current_index].clone()

    def redo(self) -> HistorySnapshot | None:
        """Step forward one snapshot. Returns a copy of it, or None at the end."""
        if not self.can_redo():
            return None
        self._current_index += 1
        self._notify()
        return self._snapshots[self._current_index].clone()

    def get_current_state(self) -> HistorySnapshot | None:
        """Copy of the snapshot under the cursor, or None if history is empty."""
        if 0 <= self._current_index < len(self._snapshots):
            return self._snapshots[self._current_index].clone()
        return None

    def clear(self) -> None:
        """Drop every snapshot and return to the empty state."""
        self._snapshots.clear()
        self._current_index = -1
        self._notify()
