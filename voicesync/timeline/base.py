"""Timeline data model: word timings, highlight segments and tracks."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from voicesync.utils.config import TierConfig


class Tier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def for_confidence(cls, confidence: float, tiers: TierConfig | None = None) -> Tier:
        t = tiers or TierConfig()
        if confidence >= t.high:
            return cls.HIGH
        if confidence >= t.medium:
            return cls.MEDIUM
        return cls.LOW


@dataclass(frozen=True)
class WordTiming:
    word: str
    start_ms: int
    end_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {"word": self.word, "start_ms": self.start_ms, "end_ms": self.end_ms}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> WordTiming:
        start = d["start_ms"] if "start_ms" in d else d["startMs"]
        end = d["end_ms"] if "end_ms" in d else d["endMs"]
        return cls(word=str(d.get("word", "")), start_ms=int(start), end_ms=int(end))


@dataclass(frozen=True)
class HighlightSegment:
    id: str
    start_ms: int
    end_ms: int
    token_ids: frozenset[int]
    confidence: float
    tier: Tier
    words: tuple[str, ...] = ()

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    def contains(self, time_ms: float, tolerance_ms: float = 0) -> bool:
        return self.start_ms - tolerance_ms <= time_ms <= self.end_ms + tolerance_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start_ms": self.start_ms,
            "end_ms": self.end_ms,
            "token_ids": sorted(self.token_ids),
            "confidence": round(self.confidence, 4),
            "tier": self.tier.value,
            "words": list(self.words),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> HighlightSegment:
        confidence = float(d.get("confidence", 0.0))
        return cls(
            id=str(d["id"]),
            start_ms=int(d["start_ms"]),
            end_ms=int(d["end_ms"]),
            token_ids=frozenset(int(t) for t in d.get("token_ids", [])),
            confidence=confidence,
            tier=Tier(d["tier"]) if "tier" in d else Tier.for_confidence(confidence),
            words=tuple(d.get("words", [])),
        )


@dataclass(frozen=True)
class HighlightTrack:
    """Time-ordered, non-overlapping segments for one explanation session.

    The segments plus the gaps between them partition ``[0, total_duration_ms]``.
    """
    segments: tuple[HighlightSegment, ...]
    total_duration_ms: int
    overall_confidence: float
    _starts: tuple[int, ...] = field(init=False, repr=False, compare=False)
    _reach: tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_starts", tuple(s.start_ms for s in self.segments))
        # _reach[i]: latest end among segments[:i + 1]
        reach, latest = [], 0
        for s in self.segments:
            latest = max(latest, s.end_ms)
            reach.append(latest)
        object.__setattr__(self, "_reach", tuple(reach))

    @classmethod
    def empty(cls, total_duration_ms: int = 0) -> HighlightTrack:
        return cls(segments=(), total_duration_ms=total_duration_ms, overall_confidence=0.0)

    def __len__(self) -> int:
        return len(self.segments)

    def segment_at(self, time_ms: float, tolerance_ms: float = 0) -> HighlightSegment | None:
        """Segment containing ``time_ms``.

        A segment that strictly contains the time wins over ones that only
        reach it through ``tolerance_ms``; among equals the higher confidence
        wins, then the earlier segment.
        """
        exact = [s for s in self._reaching(time_ms, 0) if s.contains(time_ms)]
        if exact:
            return _best(exact)
        if tolerance_ms <= 0:
            return None
        near = [s for s in self._reaching(time_ms, tolerance_ms) if s.contains(time_ms, tolerance_ms)]
        return _best(near) if near else None

    def _reaching(self, time_ms: float, tolerance_ms: float) -> Iterator[HighlightSegment]:
        """Walk back from the last segment starting by ``time_ms + tolerance_ms``
        while some earlier segment can still reach ``time_ms - tolerance_ms``."""
        i = bisect_right(self._starts, time_ms + tolerance_ms) - 1
        while i >= 0 and self._reach[i] >= time_ms - tolerance_ms:
            yield self.segments[i]
            i -= 1

    def segments_in_range(self, start_ms: float, end_ms: float) -> list[HighlightSegment]:
        """Segments overlapping ``[start_ms, end_ms]``."""
        return [s for s in self.segments if s.start_ms <= end_ms and s.end_ms >= start_ms]

    def next_segment(self, time_ms: float) -> HighlightSegment | None:
        """First segment starting strictly after ``time_ms``."""
        idx = bisect_right(self._starts, time_ms)
        return self.segments[idx] if idx < len(self.segments) else None

    def partition(self) -> Iterator[tuple[int, int, HighlightSegment | None]]:
        """Yield ``(start, end, segment)`` covering the whole track; gaps carry ``None``."""
        cursor = 0
        for seg in self.segments:
            if seg.start_ms > cursor:
                yield cursor, seg.start_ms, None
            yield seg.start_ms, seg.end_ms, seg
            cursor = max(cursor, seg.end_ms)
        if cursor < self.total_duration_ms:
            yield cursor, self.total_duration_ms, None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_duration_ms": self.total_duration_ms,
            "overall_confidence": round(self.overall_confidence, 4),
            "segments": [s.to_dict() for s in self.segments],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> HighlightTrack:
        segments = tuple(sorted(
            (HighlightSegment.from_dict(s) for s in d.get("segments", [])),
            key=lambda s: (s.start_ms, s.end_ms),
        ))
        return cls(
            segments=segments,
            total_duration_ms=int(d.get("total_duration_ms", 0)),
            overall_confidence=float(d.get("overall_confidence", 0.0)),
        )


def _best(segments: list[HighlightSegment]) -> HighlightSegment:
    return min(segments, key=lambda s: (-s.confidence, s.start_ms))
