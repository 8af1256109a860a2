"""Tests for track statistics and the rich report."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from voicesync.timeline.base import HighlightTrack
from voicesync.timeline.stats import MatchDiagnostics, confidence_bucket, render_report, track_statistics


class TestTrackStatistics:
    def test_counts_and_coverage(self, three_segment_track):
        stats = track_statistics(three_segment_track)
        assert stats.segment_count == 3
        assert stats.tier_counts == {"high": 1, "medium": 1, "low": 1}
        assert stats.highlighted_ms == 1500
        assert stats.coverage_percent == 50.0
        assert stats.average_segment_ms == 500.0
        assert stats.confidence_histogram == [0, 0, 1, 1, 1]

    def test_empty_track(self):
        stats = track_statistics(HighlightTrack.empty())
        assert stats.segment_count == 0
        assert stats.coverage_percent == 0.0
        assert stats.average_segment_ms == 0.0
        assert stats.confidence_histogram == [0] * 5

    def test_buckets(self):
        assert confidence_bucket(0.0) == 0
        assert confidence_bucket(0.19) == 0
        assert confidence_bucket(0.2) == 1
        assert confidence_bucket(1.0) == 4

    def test_to_dict(self, three_segment_track):
        d = track_statistics(three_segment_track).to_dict()
        assert d["coverage_percent"] == 50.0
        assert d["tier_counts"]["high"] == 1


class TestRenderReport:
    def test_renders_table(self, three_segment_track):
        diag = MatchDiagnostics(words_total=4, words_considered=3, words_matched=2,
                                matches_by_kind={"direct": 2}, unmatched_words=["banana"])
        table = render_report(track_statistics(three_segment_track), diag)
        assert isinstance(table, Table)

        console = Console(record=True, width=120)
        console.print(table)
        text = console.export_text()
        assert "Coverage" in text
        assert "50.0%" in text
        assert "banana" in text
