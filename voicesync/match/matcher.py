"""Lexical matcher: scores spoken words against code tokens.

Layers are evaluated in order and the first one that fires decides:

1. direct     – case-folded equality (1.0) or containment either way (0.9)
2. semantic   – spoken alias of an operator/punctuation/keyword (0.95)
3. fuzzy      – normalized Levenshtein similarity > 0.7, discounted (×0.8)
4. contextual – category word vs. token kind, e.g. "loop" → ``for`` (0.6–0.8)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from rapidfuzz.distance import Levenshtein

from voicesync.code.base import Token, TokenKind
from voicesync.code.tokenizer import declared_names
from voicesync.match.aliases import CONTEXT_RULES, PROSE_STOPWORDS, SEMANTIC_ALIASES
from voicesync.utils.config import MatcherConfig

DIRECT_EXACT = 1.0
DIRECT_CONTAINS = 0.9
SEMANTIC = 0.95


class MatchKind(str, Enum):
    DIRECT = "direct"
    SEMANTIC = "semantic"
    FUZZY = "fuzzy"
    CONTEXTUAL = "contextual"


@dataclass(frozen=True)
class MatchScore:
    confidence: float
    kind: MatchKind | None = None

    @property
    def matched(self) -> bool:
        return self.kind is not None and self.confidence > 0


NO_MATCH = MatchScore(0.0)


@dataclass(frozen=True)
class WordTokenMatch:
    """Tokens chosen for one spoken word."""
    word_index: int
    word: str
    token_ids: tuple[int, ...]
    confidence: float
    kind: MatchKind
    candidate_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "word_index": self.word_index,
            "word": self.word,
            "token_ids": list(self.token_ids),
            "confidence": round(self.confidence, 4),
            "kind": self.kind.value,
            "candidate_count": self.candidate_count,
        }


# ── Distance ─────────────────────────────────────────────────────────────────

def similarity(a: str, b: str) -> float:
    """``(maxLen - editDistance) / maxLen``; 1.0 for two empty strings."""
    return Levenshtein.normalized_similarity(a, b)


# ── Layers ───────────────────────────────────────────────────────────────────

def _contains_word(haystack: str, needle: str) -> bool:
    return re.search(rf"(?<![a-z0-9_]){re.escape(needle)}(?![a-z0-9_])", haystack) is not None


def _direct(word: str, text: str, kind: TokenKind, cfg: MatcherConfig) -> float:
    if word == text:
        return DIRECT_EXACT
    if min(len(word), len(text)) < cfg.min_substring_length:
        return 0.0
    if kind in (TokenKind.COMMENT, TokenKind.STRING_LITERAL):
        # prose inside the token: whole words only, no filler words
        if word in PROSE_STOPWORDS:
            return 0.0
        return DIRECT_CONTAINS if _contains_word(text, word) else 0.0
    if kind == TokenKind.KEYWORD and word in PROSE_STOPWORDS:
        # "lets" never lights up the let keyword
        return 0.0
    if word in text or text in word:
        return DIRECT_CONTAINS
    return 0.0


def _semantic(word: str, text: str) -> float:
    aliases = SEMANTIC_ALIASES.get(text)
    if aliases and word in aliases:
        return SEMANTIC
    reverse = SEMANTIC_ALIASES.get(word)
    if reverse and text in reverse:
        return SEMANTIC
    return 0.0


def _fuzzy(word: str, text: str, cfg: MatcherConfig) -> float:
    if len(word) < cfg.fuzzy_min_length or len(text) < cfg.fuzzy_min_length:
        return 0.0
    # similarity can never exceed shorter/longer; skip hopeless pairs early
    if min(len(word), len(text)) / max(len(word), len(text)) <= cfg.fuzzy_threshold:
        return 0.0
    sim = similarity(word, text)
    if sim > cfg.fuzzy_threshold:
        return sim * cfg.fuzzy_discount
    return 0.0


def _contextual(word: str, token: Token, text: str, declarer: str | None) -> float:
    for rule in CONTEXT_RULES:
        if rule.applies(word, token.kind, text, declarer):
            return rule.confidence
    return 0.0


def score(word: str, token: Token, config: MatcherConfig | None = None,
          declarer: str | None = None) -> MatchScore:
    """Score one spoken word against one token; first firing layer wins.

    ``declarer`` is the keyword that declared ``token`` (``"function"`` for the
    name in ``function foo()``), used by the contextual layer.
    """
    cfg = config or MatcherConfig()
    w = word.lower()
    text = token.text.lower()
    if not w or not text:
        return NO_MATCH

    conf = _direct(w, text, token.kind, cfg)
    if conf:
        return MatchScore(conf, MatchKind.DIRECT)
    conf = _semantic(w, text)
    if conf:
        return MatchScore(conf, MatchKind.SEMANTIC)
    conf = _fuzzy(w, text, cfg)
    if conf:
        return MatchScore(conf, MatchKind.FUZZY)
    conf = _contextual(w, token, text, declarer)
    if conf:
        return MatchScore(conf, MatchKind.CONTEXTUAL)
    return NO_MATCH


# ── Matcher over a token set ─────────────────────────────────────────────────

@dataclass
class LexicalMatcher:
    """Matches words against one snippet's tokens.

    Holds the per-snippet context (which identifiers are declared names) so
    it is computed once rather than per word.
    """
    tokens: list[Token]
    config: MatcherConfig = field(default_factory=MatcherConfig)
    _declarers: dict[int, str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        by_id = {t.id: t for t in self.tokens}
        self._declarers = {}
        for tid in declared_names(self.tokens):
            prev = by_id.get(tid - 1)
            if prev is not None:
                self._declarers[tid] = prev.text

    def score(self, word: str, token: Token) -> MatchScore:
        return score(word, token, self.config, self._declarers.get(token.id))

    def match_word(self, word: str, word_index: int = 0) -> WordTokenMatch | None:
        """Best tokens for ``word``, or ``None`` when nothing clears the floor.

        Keeps the top ``max_tokens_per_word`` candidates (ties go to the higher
        intrinsic weight, then source order), averages their confidence and
        applies the broad-match penalty when too many tokens matched.
        """
        cfg = self.config
        candidates: list[tuple[MatchScore, Token]] = []
        for token in self.tokens:
            s = self.score(word, token)
            if s.matched and s.confidence > cfg.min_confidence:
                candidates.append((s, token))
        if not candidates:
            return None

        candidates.sort(key=lambda c: (-c[0].confidence, -c[1].weight, c[1].id))
        best = candidates[: cfg.max_tokens_per_word]
        confidence = sum(s.confidence for s, _ in best) / len(best)
        if len(candidates) > cfg.broad_match_threshold:
            confidence *= cfg.broad_match_penalty

        return WordTokenMatch(
            word_index=word_index,
            word=word,
            token_ids=tuple(sorted(t.id for _, t in best)),
            confidence=min(1.0, confidence),
            kind=best[0][0].kind,
            candidate_count=len(candidates),
        )
