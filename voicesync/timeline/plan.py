"""Externally generated highlight plans (e.g. from an LLM) → validated highlight tracks.

A plan is untrusted input. It is parsed into pydantic models first, then
every referenced token id is checked against the snippet's tokens before the
frames become segments. The resulting track goes through the same merge and
conflict passes as a lexically built track.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from voicesync.code.base import Token
from voicesync.timeline.base import HighlightSegment, HighlightTrack, Tier
from voicesync.timeline.builder import finalize_track, merge_segments, resolve_conflicts
from voicesync.utils.config import AppConfig
from voicesync.utils.logging import debug, info, warn

DEFAULT_PLAN_CONFIDENCE = 0.5

_TOKEN_REF = re.compile(r"^(?:token[_-]?)?(\d+)$")


class PlanValidationError(ValueError):
    """Plan payload is not JSON or does not have the expected structure."""


class PlannedFrame(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    time_ms: int = Field(ge=0, alias="timeMs")
    duration_ms: int = Field(ge=0, alias="durationMs")
    token_ids: list[int | str] = Field(alias="tokenIds")
    confidence: float = DEFAULT_PLAN_CONFIDENCE
    explanation: str = ""

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        if v is None:
            return DEFAULT_PLAN_CONFIDENCE
        try:
            value = float(v)
        except (TypeError, ValueError):
            return DEFAULT_PLAN_CONFIDENCE
        if value != value:  # NaN
            return DEFAULT_PLAN_CONFIDENCE
        return max(0.0, min(1.0, value))

    @property
    def end_ms(self) -> int:
        return self.time_ms + self.duration_ms


class HighlightPlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    frames: list[PlannedFrame]
    total_duration_ms: int | None = Field(default=None, ge=0, alias="totalDurationMs")


def parse_plan(raw: str | bytes | dict[str, Any]) -> HighlightPlan:
    """Parse and validate a plan; raises ``PlanValidationError`` on bad input."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PlanValidationError(f"Plan is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise PlanValidationError("Plan must be a JSON object with a 'frames' array")
    try:
        plan = HighlightPlan.model_validate(raw)
    except ValidationError as e:
        raise PlanValidationError(f"Invalid plan: {e.error_count()} error(s)\n{e}") from e
    debug(f"Parsed plan with {len(plan.frames)} frames")
    return plan


def resolve_token_ref(ref: int | str) -> int | None:
    """Plan token references are ints or ``"token_N"``-style strings."""
    if isinstance(ref, int):
        return ref
    m = _TOKEN_REF.match(ref.strip())
    return int(m.group(1)) if m else None


def track_from_plan(
    plan: HighlightPlan,
    tokens: list[Token],
    total_duration_ms: int | None = None,
    config: AppConfig | None = None,
) -> HighlightTrack:
    cfg = config or AppConfig()
    known = {t.id for t in tokens}
    unknown: set[str] = set()
    segments: list[HighlightSegment] = []

    for index, frame in enumerate(sorted(plan.frames, key=lambda f: f.time_ms)):
        ids: set[int] = set()
        for ref in frame.token_ids:
            tid = resolve_token_ref(ref)
            if tid is None or tid not in known:
                unknown.add(str(ref))
            else:
                ids.add(tid)
        if not ids or frame.duration_ms == 0:
            continue
        segments.append(HighlightSegment(
            id=f"f{index}",
            start_ms=frame.time_ms,
            end_ms=frame.end_ms,
            token_ids=frozenset(ids),
            confidence=frame.confidence,
            tier=Tier.for_confidence(frame.confidence, cfg.tiers),
            words=(frame.explanation,) if frame.explanation else (),
        ))

    if unknown:
        warn(f"Plan references {len(unknown)} unknown token id(s): {', '.join(sorted(unknown)[:8])}")

    merged = merge_segments(segments, cfg.timeline.adjacency_window_ms, cfg.tiers)
    final = merge_segments(resolve_conflicts(merged), cfg.timeline.adjacency_window_ms, cfg.tiers)

    total = total_duration_ms
    if total is None:
        total = plan.total_duration_ms or 0
    track = finalize_track(final, total)
    info(f"Plan track: {len(track)} segments from {len(plan.frames)} frames")
    return track
