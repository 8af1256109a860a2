"""Events and status snapshots emitted by the playback synchronizer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Union

from voicesync.timeline.base import HighlightSegment, Tier


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    LOADED = "loaded"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class HighlightEvent:
    """Highlight these tokens; ``tier`` picks one of three visual intensities."""
    token_ids: tuple[int, ...]
    tier: Tier
    confidence: float
    segment_id: str = ""
    time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "highlight",
            "token_ids": list(self.token_ids),
            "tier": self.tier.value,
            "confidence": round(self.confidence, 4),
            "segment_id": self.segment_id,
            "time_ms": self.time_ms,
        }


@dataclass(frozen=True)
class ClearEvent:
    """Remove every highlight decoration."""
    time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"type": "clear", "time_ms": self.time_ms}


PlaybackEvent = Union[HighlightEvent, ClearEvent]
Listener = Callable[[PlaybackEvent], None]


@dataclass(frozen=True)
class PlaybackState:
    status: PlaybackStatus
    current_time_ms: float
    active_segment: HighlightSegment | None
    next_segment: HighlightSegment | None
    progress: float                     # 0..1 of the track duration

    @property
    def is_playing(self) -> bool:
        return self.status is PlaybackStatus.PLAYING

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "is_playing": self.is_playing,
            "current_time_ms": self.current_time_ms,
            "active_segment": self.active_segment.to_dict() if self.active_segment else None,
            "next_segment": self.next_segment.to_dict() if self.next_segment else None,
            "progress": round(self.progress, 4),
        }
