"""Explanation word splitting, timing sanitation and timing estimation."""

from __future__ import annotations

import re
from typing import Any, Iterable

from voicesync.timeline.base import WordTiming
from voicesync.utils.logging import debug, warn

_EDGE_PUNCT = re.compile(r"^[^\w$]+|[^\w$]+$", re.UNICODE)
_QUOTES = re.compile(r"['\"`’‘]")


def split_explanation(text: str) -> list[str]:
    """Whitespace split; word *i* lines up with timing entry *i*."""
    return text.split()


def clean_word(word: str) -> str:
    """Lowercase, strip surrounding punctuation and drop quote characters.

    ``"Let's"`` → ``"lets"``, ``"(items),"`` → ``"items"``.
    """
    w = _EDGE_PUNCT.sub("", word.strip())
    w = _QUOTES.sub("", w)
    return w.lower()


def sanitize_word_timings(timings: Iterable[WordTiming | dict[str, Any]]) -> list[WordTiming]:
    """Clamp malformed entries instead of rejecting them.

    Negative starts become 0 and ``end_ms`` is raised to ``start_ms`` when a
    provider reports a negative duration. Order is preserved because timing
    *i* belongs to explanation word *i*.
    """
    result: list[WordTiming] = []
    clamped = 0
    for t in timings:
        wt = t if isinstance(t, WordTiming) else WordTiming.from_dict(t)
        start = max(0, int(wt.start_ms))
        end = max(int(wt.end_ms), start)
        if start != wt.start_ms or end != wt.end_ms:
            clamped += 1
            wt = WordTiming(word=wt.word, start_ms=start, end_ms=end)
        result.append(wt)

    if clamped:
        warn(f"Clamped {clamped} malformed word timing(s)")

    out_of_order = sum(1 for a, b in zip(result, result[1:]) if b.start_ms < a.start_ms)
    if out_of_order:
        debug(f"{out_of_order} word timing(s) start before their predecessor")
    return result


def estimate_word_timings(text: str, word_ms: int = 500, start_ms: int = 0) -> list[WordTiming]:
    """Fixed per-word duration for speech providers that report no timings."""
    timings: list[WordTiming] = []
    cursor = start_ms
    for word in split_explanation(text):
        timings.append(WordTiming(word=word, start_ms=cursor, end_ms=cursor + word_ms))
        cursor += word_ms
    return timings
