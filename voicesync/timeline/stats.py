"""Track statistics and build diagnostics: coverage, tiers and confidence spread.

Generates:
- TrackStatistics: per-track numbers shown by the CLI and the synchronizer
- MatchDiagnostics: what the matcher did with each explanation word
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rich.table import Table

from voicesync.timeline.base import HighlightTrack, Tier

if TYPE_CHECKING:
    from voicesync.match.matcher import WordTokenMatch

HISTOGRAM_BUCKETS = 5


@dataclass
class TrackStatistics:
    """Aggregate view of one highlight track."""
    segment_count: int
    tier_counts: dict[str, int]
    average_segment_ms: float
    highlighted_ms: int
    total_duration_ms: int
    coverage_percent: float          # share of the audio with an active highlight
    overall_confidence: float
    confidence_histogram: list[int]  # 5 buckets of width 0.2, last one closed

    def to_dict(self) -> dict[str, Any]:
        return {
            "segment_count": self.segment_count,
            "tier_counts": dict(self.tier_counts),
            "average_segment_ms": round(self.average_segment_ms, 1),
            "highlighted_ms": self.highlighted_ms,
            "total_duration_ms": self.total_duration_ms,
            "coverage_percent": round(self.coverage_percent, 1),
            "overall_confidence": round(self.overall_confidence, 3),
            "confidence_histogram": list(self.confidence_histogram),
        }


@dataclass
class MatchDiagnostics:
    """What happened to each explanation word during a build."""
    words_total: int = 0
    words_considered: int = 0
    words_matched: int = 0
    matches_by_kind: dict[str, int] = field(default_factory=dict)
    unmatched_words: list[str] = field(default_factory=list)
    matches: list[WordTokenMatch] = field(default_factory=list)

    @property
    def match_rate(self) -> float:
        return self.words_matched / self.words_considered if self.words_considered else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "words_total": self.words_total,
            "words_considered": self.words_considered,
            "words_matched": self.words_matched,
            "match_rate": round(self.match_rate, 3),
            "matches_by_kind": dict(self.matches_by_kind),
            "unmatched_words": list(self.unmatched_words),
        }


def confidence_bucket(confidence: float) -> int:
    return min(int(max(confidence, 0.0) * HISTOGRAM_BUCKETS), HISTOGRAM_BUCKETS - 1)


def track_statistics(track: HighlightTrack) -> TrackStatistics:
    tier_counts = {t.value: 0 for t in Tier}
    histogram = [0] * HISTOGRAM_BUCKETS
    highlighted = 0
    for seg in track.segments:
        tier_counts[seg.tier.value] += 1
        histogram[confidence_bucket(seg.confidence)] += 1
        highlighted += seg.duration_ms

    count = len(track.segments)
    total = track.total_duration_ms
    return TrackStatistics(
        segment_count=count,
        tier_counts=tier_counts,
        average_segment_ms=highlighted / count if count else 0.0,
        highlighted_ms=highlighted,
        total_duration_ms=total,
        coverage_percent=min(100.0, highlighted / total * 100) if total > 0 else 0.0,
        overall_confidence=track.overall_confidence,
        confidence_histogram=histogram,
    )


# ── Rendering ────────────────────────────────────────────────────────────────

def render_report(stats: TrackStatistics, diagnostics: MatchDiagnostics | None = None) -> Table:
    conf = stats.overall_confidence
    conf_color = "green" if conf >= 0.8 else "yellow" if conf >= 0.5 else "red"

    table = Table(title="Highlight track", show_header=False, box=None, pad_edge=False)
    table.add_row("[dim]Segments:[/dim]", str(stats.segment_count))
    table.add_row(
        "[dim]Tiers:[/dim]",
        " / ".join(f"{k} {v}" for k, v in stats.tier_counts.items()),
    )
    table.add_row("[dim]Duration:[/dim]", f"{stats.total_duration_ms / 1000:.2f}s")
    table.add_row("[dim]Coverage:[/dim]", f"{stats.coverage_percent:.1f}%")
    table.add_row("[dim]Avg segment:[/dim]", f"{stats.average_segment_ms:.0f}ms")
    table.add_row("[dim]Confidence:[/dim]", f"[{conf_color}]{conf:.2f}[/{conf_color}]")

    labels = [f"{i / HISTOGRAM_BUCKETS:.1f}" for i in range(HISTOGRAM_BUCKETS)]
    table.add_row(
        "[dim]Histogram:[/dim]",
        "  ".join(f"{lbl}+:{n}" for lbl, n in zip(labels, stats.confidence_histogram)),
    )

    if diagnostics is not None:
        table.add_row(
            "[dim]Words matched:[/dim]",
            f"{diagnostics.words_matched}/{diagnostics.words_considered}"
            f" ({diagnostics.match_rate:.0%})",
        )
        if diagnostics.matches_by_kind:
            table.add_row(
                "[dim]By layer:[/dim]",
                ", ".join(f"{k} {v}" for k, v in sorted(diagnostics.matches_by_kind.items())),
            )
        if diagnostics.unmatched_words:
            table.add_row("[dim]Unmatched:[/dim]", ", ".join(diagnostics.unmatched_words[:12]))
    return table
