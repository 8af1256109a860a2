"""Playback synchronizer: maps a live audio position onto the highlight track.

State machine::

    idle ──load──▶ loaded ──play──▶ playing ◀──play── paused
                     │                 │  └───pause───▶ ┘
                     └─ first advancing update_time ─┘
    any ──stop──▶ stopped ──play──▶ playing

Events are emitted synchronously to subscribers: a ``HighlightEvent`` only
when the active token set changes, a ``ClearEvent`` when highlighting ends.
``seek`` always re-emits.
"""

from __future__ import annotations

from typing import Any, Callable

from voicesync.playback.calibrator import DriftCalibrator
from voicesync.playback.events import (
    ClearEvent,
    HighlightEvent,
    Listener,
    PlaybackEvent,
    PlaybackState,
    PlaybackStatus,
)
from voicesync.timeline.base import HighlightSegment, HighlightTrack
from voicesync.timeline.stats import TrackStatistics, track_statistics
from voicesync.utils.config import PlaybackConfig
from voicesync.utils.logging import debug, error


class PlaybackSynchronizer:
    """Single-driver playback state; call it serially from one event loop."""

    def __init__(self, config: PlaybackConfig | None = None,
                 calibrator: DriftCalibrator | None = None):
        self.config = config or PlaybackConfig()
        self.calibrator = calibrator
        self._track: HighlightTrack | None = None
        self._status = PlaybackStatus.IDLE
        self._time_ms = 0.0
        self._active: HighlightSegment | None = None
        self._emitted: frozenset[int] | None = None
        self._listeners: list[Listener] = []

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def track(self) -> HighlightTrack | None:
        return self._track

    @property
    def current_time_ms(self) -> float:
        return self._time_ms

    # ── Subscribers ──────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear_listeners(self) -> None:
        self._listeners.clear()

    def _emit(self, event: PlaybackEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                error(f"Playback listener failed on {type(event).__name__}: {e}")

    # ── Transitions ──────────────────────────────────────────────────────

    def load(self, track: HighlightTrack) -> None:
        if self._emitted is not None:
            self._emit(ClearEvent(time_ms=self._time_ms))
        self._track = track
        self._status = PlaybackStatus.LOADED
        self._time_ms = 0.0
        self._active = None
        self._emitted = None
        if self.calibrator is not None:
            self.calibrator.reset()
        debug(f"Track loaded: {len(track)} segments, {track.total_duration_ms}ms")

    def play(self) -> None:
        if self._status in (PlaybackStatus.IDLE, PlaybackStatus.PLAYING):
            debug(f"play() ignored in state {self._status.value}")
            return
        self._status = PlaybackStatus.PLAYING
        self._refresh(force=False)

    def pause(self) -> None:
        if self._status is not PlaybackStatus.PLAYING:
            debug(f"pause() ignored in state {self._status.value}")
            return
        self._status = PlaybackStatus.PAUSED

    def stop(self) -> None:
        if self._track is None:
            debug("stop() ignored: no track loaded")
            return
        self._status = PlaybackStatus.STOPPED
        self._time_ms = 0.0
        self._active = None
        self._emitted = None
        if self.calibrator is not None:
            self.calibrator.reset()
        self._emit(ClearEvent(time_ms=0.0))

    def seek(self, time_ms: float) -> None:
        """Jump to ``time_ms`` in any loaded state and re-emit unconditionally."""
        if self._track is None:
            debug("seek() ignored: no track loaded")
            return
        self._time_ms = max(0.0, float(time_ms))
        self._refresh(force=True)

    def update_time(self, time_ms: float, expected_ms: float | None = None,
                    at_ms: float | None = None) -> None:
        """Advance to the reported audio position.

        Only acts while playing, except that the first advancing non-zero
        time in ``loaded`` starts playback implicitly. When ``expected_ms`` is
        given the pair is fed to the calibrator before the lookup, stamped
        with ``at_ms`` (the calibrator clock when omitted).
        """
        if self._track is None:
            debug("update_time() ignored: no track loaded")
            return
        if self._status is PlaybackStatus.LOADED and time_ms > 0 and time_ms > self._time_ms:
            debug(f"Implicit start at {time_ms:.0f}ms")
            self._status = PlaybackStatus.PLAYING
        if self._status is not PlaybackStatus.PLAYING:
            debug(f"update_time() ignored in state {self._status.value}")
            return

        if expected_ms is not None and self.calibrator is not None:
            self.calibrator.record(time_ms, expected_ms, at_ms=at_ms)
        self._time_ms = max(0.0, float(time_ms))
        self._refresh(force=False)

    # ── Lookup ───────────────────────────────────────────────────────────

    def _lookup_time(self) -> float:
        if self.calibrator is not None and self.config.use_calibration:
            return self._time_ms - self.calibrator.applied_offset()
        return self._time_ms

    def _refresh(self, force: bool) -> None:
        if self._track is None:
            return
        seg = self._track.segment_at(self._lookup_time(), self.config.tolerance_ms)
        self._active = seg

        if seg is None:
            if self._emitted is not None or force:
                self._emitted = None
                self._emit(ClearEvent(time_ms=self._time_ms))
            return

        if force or seg.token_ids != self._emitted:
            self._emitted = seg.token_ids
            self._emit(HighlightEvent(
                token_ids=tuple(sorted(seg.token_ids)),
                tier=seg.tier,
                confidence=seg.confidence,
                segment_id=seg.id,
                time_ms=self._time_ms,
            ))

    def get_segment_at_time(self, time_ms: float) -> HighlightSegment | None:
        if self._track is None:
            return None
        return self._track.segment_at(time_ms, self.config.tolerance_ms)

    def get_segments_in_range(self, start_ms: float, end_ms: float) -> list[HighlightSegment]:
        if self._track is None:
            return []
        return self._track.segments_in_range(start_ms, end_ms)

    # ── Read-only views ──────────────────────────────────────────────────

    def statistics(self) -> TrackStatistics:
        return track_statistics(self._track or HighlightTrack.empty())

    def state(self) -> PlaybackState:
        track = self._track
        total = track.total_duration_ms if track else 0
        return PlaybackState(
            status=self._status,
            current_time_ms=self._time_ms,
            active_segment=self._active,
            next_segment=track.next_segment(self._lookup_time()) if track else None,
            progress=min(1.0, self._time_ms / total) if total > 0 else 0.0,
        )

    def track_info(self) -> dict[str, Any]:
        track = self._track
        return {
            "status": self._status.value,
            "loaded": track is not None,
            "segment_count": len(track) if track else 0,
            "total_duration_ms": track.total_duration_ms if track else 0,
            "overall_confidence": round(track.overall_confidence, 4) if track else 0.0,
        }
