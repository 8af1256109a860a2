"""Shared test fixtures.

Provides:
- The canonical JavaScript snippet and its narrated explanation
- A token factory for matcher tests
- Hand-built highlight tracks for synchronizer tests
- Quiet logging for every test
"""

from __future__ import annotations

import pytest

from voicesync.code.base import Token, TokenKind, intrinsic_weight
from voicesync.timeline.base import HighlightSegment, HighlightTrack, Tier, WordTiming
from voicesync.utils.logging import Verbosity, setup_logging


# ── Seed data ────────────────────────────────────────────────────────────────

SAMPLE_JS = "function calculateTotal(items) { let total = 0; ... }"

SAMPLE_EXPLANATION = "Let's look at this calculateTotal function"

SAMPLE_TIMINGS = [
    {"word": "Let's", "startMs": 0, "endMs": 300},
    {"word": "look", "startMs": 300, "endMs": 500},
    {"word": "at", "startMs": 500, "endMs": 600},
    {"word": "this", "startMs": 600, "endMs": 800},
    {"word": "calculateTotal", "startMs": 800, "endMs": 1400},
    {"word": "function", "startMs": 1400, "endMs": 1700},
]

SAMPLE_PY = '''\
def average(values):
    """Mean of the values."""
    # guard against empty input
    if not values:
        return 0.0
    total = 0
    for v in values:
        total += v
    return total / len(values)
'''


@pytest.fixture(autouse=True)
def quiet_logging():
    setup_logging(Verbosity.SILENT)
    yield


@pytest.fixture
def sample_timings() -> list[WordTiming]:
    return [WordTiming.from_dict(t) for t in SAMPLE_TIMINGS]


def make_token(text: str, kind: TokenKind = TokenKind.IDENTIFIER, id: int = 0,
               line: int = 0, column: int = 0) -> Token:
    return Token(
        id=id,
        text=text,
        kind=kind,
        line=line,
        start_column=column,
        end_column=column + len(text),
        weight=intrinsic_weight(text, kind),
        offset=column,
    )


def make_segment(start: int, end: int, ids: set[int] | frozenset[int], confidence: float = 0.9,
                 seg_id: str = "") -> HighlightSegment:
    return HighlightSegment(
        id=seg_id or f"s{start}",
        start_ms=start,
        end_ms=end,
        token_ids=frozenset(ids),
        confidence=confidence,
        tier=Tier.for_confidence(confidence),
    )


@pytest.fixture
def three_segment_track() -> HighlightTrack:
    """[0-500] {1}, gap, [1000-1500] {2, 3}, [1500-2000] {4} (low), silence to 3000."""
    return HighlightTrack(
        segments=(
            make_segment(0, 500, {1}, 0.95, "a"),
            make_segment(1000, 1500, {2, 3}, 0.6, "b"),
            make_segment(1500, 2000, {4}, 0.4, "c"),
        ),
        total_duration_ms=3000,
        overall_confidence=(0.95 + 0.6 + 0.4) / 3,
    )
