"""Drift calibration between the reported audio clock and the planned timeline.

Each sample is ``offset = actual - expected``. The calibrator keeps a bounded
history and derives:

- current offset: mean of the most recent samples
- average offset: mean of the whole history
- confidence: ``max(0, 1 - stddev(recent) / max_stddev_ms)``, low until enough
  samples exist
- drift rate: change in mean offset between the older and newer half of the
  history, per second of sample time

It is advisory only; playback works without it.
"""

from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable

from voicesync.utils.config import CalibrationConfig
from voicesync.utils.logging import debug, error

LOW_CONFIDENCE = 0.3
MEDIUM_CONFIDENCE = 0.7


@dataclass(frozen=True)
class SyncSample:
    at_ms: float        # clock time the sample was taken
    actual_ms: float
    expected_ms: float

    @property
    def offset_ms(self) -> float:
        return self.actual_ms - self.expected_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "at_ms": self.at_ms,
            "actual_ms": self.actual_ms,
            "expected_ms": self.expected_ms,
            "offset_ms": self.offset_ms,
        }


@dataclass(frozen=True)
class SyncCalibration:
    current_offset_ms: float = 0.0
    average_offset_ms: float = 0.0
    confidence: float = 0.0
    drift_rate_ms_per_sec: float = 0.0
    sample_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_offset_ms": round(self.current_offset_ms, 2),
            "average_offset_ms": round(self.average_offset_ms, 2),
            "confidence": round(self.confidence, 3),
            "drift_rate_ms_per_sec": round(self.drift_rate_ms_per_sec, 3),
            "sample_count": self.sample_count,
        }


@dataclass(frozen=True)
class SyncQuality:
    quality: str        # excellent | good | fair | poor
    score: int          # 0-100
    issues: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"quality": self.quality, "score": self.score, "issues": list(self.issues)}


CalibrationListener = Callable[[SyncCalibration], None]


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _stddev(values: list[float]) -> float:
    if not values:
        return 0.0
    m = _mean(values)
    return math.sqrt(sum((v - m) ** 2 for v in values) / len(values))


@dataclass
class DriftCalibrator:
    config: CalibrationConfig = field(default_factory=CalibrationConfig)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)   # seconds
    _history: deque[SyncSample] = field(init=False, repr=False)
    _calibration: SyncCalibration = field(init=False, default_factory=SyncCalibration)
    _listeners: list[CalibrationListener] = field(init=False, default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self._history = deque(maxlen=self.config.history_size)

    def __len__(self) -> int:
        return len(self._history)

    # ── Recording ────────────────────────────────────────────────────────

    def record(self, actual_ms: float, expected_ms: float, at_ms: float | None = None) -> SyncCalibration:
        """Add one ``(actual, expected)`` pair and recompute the calibration."""
        stamp = self.clock() * 1000.0 if at_ms is None else at_ms
        self._history.append(SyncSample(at_ms=stamp, actual_ms=actual_ms, expected_ms=expected_ms))
        self._calibration = self._recompute()
        self._notify()
        return self._calibration

    def _recompute(self) -> SyncCalibration:
        cfg = self.config
        offsets = [s.offset_ms for s in self._history]
        recent = offsets[-cfg.recent_window:]

        if len(recent) < cfg.min_samples_for_confidence:
            confidence = cfg.underflow_confidence
        else:
            confidence = max(0.0, min(1.0, 1.0 - _stddev(recent) / cfg.max_stddev_ms))

        return SyncCalibration(
            current_offset_ms=_mean(recent),
            average_offset_ms=_mean(offsets),
            confidence=confidence,
            drift_rate_ms_per_sec=self._drift_rate(),
            sample_count=len(offsets),
        )

    def _drift_rate(self) -> float:
        samples = list(self._history)
        if len(samples) < self.config.min_samples_for_drift:
            return 0.0
        half = len(samples) // 2
        older, newer = samples[:half], samples[half:]
        offset_change = _mean([s.offset_ms for s in newer]) - _mean([s.offset_ms for s in older])
        seconds = (_mean([s.at_ms for s in newer]) - _mean([s.at_ms for s in older])) / 1000.0
        return offset_change / seconds if seconds > 0 else 0.0

    # ── Corrections ──────────────────────────────────────────────────────

    def calibration(self) -> SyncCalibration:
        return self._calibration

    def applied_offset(self) -> float:
        """Share of the current offset ``adjust`` applies, scaled by confidence."""
        cal = self._calibration
        if cal.sample_count == 0:
            return 0.0
        if cal.confidence < LOW_CONFIDENCE:
            return cal.current_offset_ms * 0.3
        if cal.confidence < MEDIUM_CONFIDENCE:
            return cal.current_offset_ms * 0.7
        return cal.current_offset_ms

    def adjust(self, planned_ms: float) -> float:
        return planned_ms + self.applied_offset()

    def predict(self, planned_ms: float, now_actual_ms: float) -> float:
        """Corrected time for an event ``planned_ms``, extrapolating drift from now."""
        cal = self._calibration
        seconds_ahead = (planned_ms - now_actual_ms) / 1000.0
        return planned_ms + cal.current_offset_ms + cal.drift_rate_ms_per_sec * seconds_ahead

    def needs_adjustment(self, threshold_ms: float = 50) -> bool:
        cal = self._calibration
        return abs(cal.current_offset_ms) > threshold_ms and cal.confidence > 0.5

    # ── Quality & diagnostics ────────────────────────────────────────────

    def sync_quality(self) -> SyncQuality:
        cal = self._calibration
        issues: list[str] = []
        score = 100

        offset = abs(cal.current_offset_ms)
        if offset > 200:
            issues.append("Large timing offset detected")
            score -= 30
        elif offset > 100:
            issues.append("Moderate timing offset")
            score -= 15

        if cal.confidence < 0.5:
            issues.append("Low calibration confidence")
            score -= 20

        drift = abs(cal.drift_rate_ms_per_sec)
        if drift > 10:
            issues.append("High timing drift rate")
            score -= 25
        elif drift > 5:
            issues.append("Moderate timing drift")
            score -= 10

        if len(self._history) < self.config.min_samples_for_drift:
            issues.append("Insufficient calibration data")
            score -= 15

        if score >= 90:
            quality = "excellent"
        elif score >= 75:
            quality = "good"
        elif score >= 60:
            quality = "fair"
        else:
            quality = "poor"

        if issues:
            debug(f"Sync quality {quality} ({score}): {'; '.join(issues)}")
        return SyncQuality(quality=quality, score=max(0, score), issues=tuple(issues))

    def diagnostics(self) -> dict[str, Any]:
        history = list(self._history)
        return {
            "history_size": len(history),
            "last_offset_ms": history[-1].offset_ms if history else 0.0,
            "calibration": self._calibration.to_dict(),
            "sync_quality": self.sync_quality().to_dict(),
            "recent_history": [s.to_dict() for s in history[-5:]],
        }

    def reset(self) -> None:
        self._history.clear()
        self._calibration = SyncCalibration()

    # ── Listeners ────────────────────────────────────────────────────────

    def subscribe(self, listener: CalibrationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._calibration)
            except Exception as e:
                error(f"Calibration listener failed: {e}")
