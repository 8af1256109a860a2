"""Highlight track builder: explanation words + audio timings → timed segments.

Pipeline:
1. Pair explanation word *i* with timing *i* (stop at the shorter list).
2. Clean each word, skip short ones, match it against every token and emit a
   raw segment over the word's audio span.
3. Merge pass – consecutive segments with the same token set that overlap or
   sit within the adjacency window collapse into one.
4. Conflict pass – remaining overlaps keep the higher-confidence segment; the
   loser is truncated, split around the winner, or dropped when covered.
5. Total duration is the last audio end; overall confidence is the mean of
   the final segments (0.0 for an empty track, which is not an error).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable

from voicesync.code.base import Token
from voicesync.match.matcher import LexicalMatcher, WordTokenMatch
from voicesync.timeline.base import HighlightSegment, HighlightTrack, Tier, WordTiming
from voicesync.timeline.stats import MatchDiagnostics
from voicesync.timeline.word_timing import clean_word, sanitize_word_timings, split_explanation
from voicesync.utils.config import AppConfig, TierConfig
from voicesync.utils.logging import debug, info, warn


# ── Build ────────────────────────────────────────────────────────────────────

def build_track(
    explanation: str,
    word_timings: Iterable[WordTiming | dict[str, Any]],
    tokens: list[Token],
    config: AppConfig | None = None,
) -> HighlightTrack:
    """Build the highlight track for one explanation session."""
    track, _ = build_track_with_diagnostics(explanation, word_timings, tokens, config)
    return track


def build_track_with_diagnostics(
    explanation: str,
    word_timings: Iterable[WordTiming | dict[str, Any]],
    tokens: list[Token],
    config: AppConfig | None = None,
) -> tuple[HighlightTrack, MatchDiagnostics]:
    cfg = config or AppConfig()
    timings = sanitize_word_timings(word_timings)
    words = split_explanation(explanation)
    diag = MatchDiagnostics(words_total=len(words))

    if len(words) != len(timings):
        warn(f"Explanation has {len(words)} words but {len(timings)} timings; "
             f"matching the first {min(len(words), len(timings))}")

    matcher = LexicalMatcher(tokens, cfg.matcher)
    raw: list[HighlightSegment] = []

    for index, (word, timing) in enumerate(zip(words, timings)):
        cleaned = clean_word(word)
        if len(cleaned) < cfg.timeline.min_word_length:
            continue
        diag.words_considered += 1

        match = matcher.match_word(cleaned, index)
        if match is None:
            diag.unmatched_words.append(cleaned)
            continue

        diag.words_matched += 1
        diag.matches.append(match)
        diag.matches_by_kind[match.kind.value] = diag.matches_by_kind.get(match.kind.value, 0) + 1
        raw.append(_segment_for(match, timing, cfg.tiers))

    merged = merge_segments(raw, cfg.timeline.adjacency_window_ms, cfg.tiers)
    resolved = resolve_conflicts(merged)
    # truncation can leave same-token neighbours touching again
    final = merge_segments(resolved, cfg.timeline.adjacency_window_ms, cfg.tiers)

    total = max((t.end_ms for t in timings), default=0)
    track = finalize_track(final, total)

    info(f"Highlight track: {len(track)} segments from {diag.words_matched}/"
         f"{diag.words_considered} matched words, confidence {track.overall_confidence:.2f}")
    return track, diag


def _segment_for(match: WordTokenMatch, timing: WordTiming, tiers: TierConfig) -> HighlightSegment:
    return HighlightSegment(
        id=f"w{match.word_index}",
        start_ms=timing.start_ms,
        end_ms=timing.end_ms,
        token_ids=frozenset(match.token_ids),
        confidence=match.confidence,
        tier=Tier.for_confidence(match.confidence, tiers),
        words=(match.word,),
    )


def finalize_track(segments: list[HighlightSegment], total_duration_ms: int) -> HighlightTrack:
    """Assign stable ids in time order and compute track-level metrics."""
    ordered = sorted(segments, key=lambda s: (s.start_ms, s.end_ms))
    numbered = tuple(replace(s, id=f"seg_{i}") for i, s in enumerate(ordered))
    total = max([total_duration_ms] + [s.end_ms for s in numbered])
    overall = sum(s.confidence for s in numbered) / len(numbered) if numbered else 0.0
    return HighlightTrack(segments=numbered, total_duration_ms=total, overall_confidence=overall)


# ── Merge pass ───────────────────────────────────────────────────────────────

def merge_segments(
    segments: list[HighlightSegment],
    adjacency_window_ms: int = 200,
    tiers: TierConfig | None = None,
) -> list[HighlightSegment]:
    """Collapse consecutive same-token segments that overlap or nearly touch.

    The merged segment spans both and keeps the higher confidence.
    """
    if len(segments) <= 1:
        return list(segments)

    ordered = sorted(segments, key=lambda s: (s.start_ms, s.end_ms))
    result: list[HighlightSegment] = [ordered[0]]
    merged_count = 0

    for nxt in ordered[1:]:
        cur = result[-1]
        gap = nxt.start_ms - cur.end_ms
        if gap < adjacency_window_ms and nxt.token_ids == cur.token_ids:
            confidence = max(cur.confidence, nxt.confidence)
            result[-1] = replace(
                cur,
                end_ms=max(cur.end_ms, nxt.end_ms),
                confidence=confidence,
                tier=Tier.for_confidence(confidence, tiers),
                words=cur.words + nxt.words,
            )
            merged_count += 1
        else:
            result.append(nxt)

    if merged_count:
        debug(f"Merged {merged_count} adjacent segment(s)")
    return result


# ── Conflict pass ────────────────────────────────────────────────────────────

def resolve_conflicts(segments: list[HighlightSegment]) -> list[HighlightSegment]:
    """Remove overlaps between segments that target different tokens.

    For each overlap the higher-confidence segment keeps the shared span
    (ties go to the earlier segment). A losing segment is truncated; when
    the winner sits strictly inside it, the loser's remainder after the
    winner is kept as its own segment. Segments left empty are dropped.
    """
    pending = sorted(segments, key=lambda s: (s.start_ms, s.end_ms))
    result: list[HighlightSegment] = []
    dropped = 0

    while pending:
        seg = pending.pop(0)
        if seg.end_ms <= seg.start_ms:
            continue
        if not result or seg.start_ms >= result[-1].end_ms:
            result.append(seg)
            continue

        last = result[-1]
        if last.confidence >= seg.confidence:
            if seg.end_ms > last.end_ms:
                _insert_sorted(pending, replace(seg, start_ms=last.end_ms))
            else:
                dropped += 1
            continue

        # seg wins: cut last around it, then re-check seg against what remains
        result.pop()
        if last.end_ms > seg.end_ms:
            _insert_sorted(pending, replace(last, start_ms=seg.end_ms))
        if last.start_ms < seg.start_ms:
            result.append(replace(last, end_ms=seg.start_ms))
        elif last.end_ms <= seg.end_ms:
            dropped += 1
        pending.insert(0, seg)

    if dropped:
        debug(f"Conflict pass dropped {dropped} fully covered segment(s)")
    return result


def _insert_sorted(pending: list[HighlightSegment], seg: HighlightSegment) -> None:
    key = (seg.start_ms, seg.end_ms)
    for i, other in enumerate(pending):
        if (other.start_ms, other.end_ms) > key:
            pending.insert(i, seg)
            return
    pending.append(seg)

