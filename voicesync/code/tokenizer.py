"""Source-code tokenizer: splits a snippet into typed, positioned tokens.

Scanning is character driven. At each non-whitespace position the language's
ordered pattern list is tried (comments, strings, numbers, operators longest
first, punctuation, keywords), then the generic identifier pattern, and as a
last resort a single character becomes a punctuation token. Every
non-whitespace character therefore ends up in exactly one token.
"""

from __future__ import annotations

from voicesync.code.base import Token, TokenKind, intrinsic_weight
from voicesync.code.languages import (
    DECLARATION_KEYWORDS,
    IDENTIFIER_RE,
    compiled_patterns,
    resolve_language,
)
from voicesync.utils.logging import debug


def tokenize(code: str, language_id: str = "") -> list[Token]:
    """Tokenize ``code``. Never raises; unknown languages use generic patterns."""
    spec = resolve_language(language_id)
    patterns = compiled_patterns(spec)

    tokens: list[Token] = []
    pos = 0
    line = 0
    line_start = 0
    length = len(code)

    while pos < length:
        ch = code[pos]
        if ch.isspace():
            if ch == "\n":
                line += 1
                line_start = pos + 1
            pos += 1
            continue

        text, kind = _match_at(code, pos, patterns)
        end = pos + len(text)

        newlines = text.count("\n")
        if newlines:
            end_line = line + newlines
            end_line_start = pos + text.rfind("\n") + 1
        else:
            end_line = line
            end_line_start = line_start

        tokens.append(Token(
            id=len(tokens),
            text=text,
            kind=kind,
            line=line,
            start_column=pos - line_start,
            end_column=end - end_line_start,
            weight=intrinsic_weight(text, kind),
            offset=pos,
            end_line=end_line,
        ))

        line = end_line
        line_start = end_line_start
        pos = end

    debug(f"Tokenized {length} chars as {spec.name}: {len(tokens)} tokens")
    return tokens


def _match_at(code: str, pos: int, patterns) -> tuple[str, TokenKind]:
    for regex, kind in patterns:
        m = regex.match(code, pos)
        if m and m.end() > pos:
            return m.group(0), kind
    m = IDENTIFIER_RE.match(code, pos)
    if m:
        return m.group(0), TokenKind.IDENTIFIER
    return code[pos], TokenKind.PUNCTUATION


def declared_names(tokens: list[Token]) -> set[int]:
    """Ids of identifiers that directly follow a declaration keyword.

    ``function calculateTotal(...)`` → the id of ``calculateTotal``.
    """
    names: set[int] = set()
    for prev, tok in zip(tokens, tokens[1:]):
        if (prev.kind == TokenKind.KEYWORD and prev.text in DECLARATION_KEYWORDS
                and tok.kind == TokenKind.IDENTIFIER):
            names.add(tok.id)
    return names


def reconstruct(code: str, tokens: list[Token]) -> str:
    """Rebuild ``code`` from token spans plus the whitespace between them."""
    parts: list[str] = []
    cursor = 0
    for tok in tokens:
        gap = code[cursor:tok.offset]
        if gap.strip():
            raise ValueError(f"Uncovered text before token {tok.id}: {gap!r}")
        parts.append(gap)
        parts.append(tok.text)
        cursor = tok.end_offset
    tail = code[cursor:]
    if tail.strip():
        raise ValueError(f"Uncovered text after the last token: {tail!r}")
    parts.append(tail)
    return "".join(parts)
