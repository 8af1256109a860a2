"""Lexical token model shared by the tokenizer, matcher and timeline builder."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class TokenKind(str, Enum):
    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    LITERAL = "literal"
    PUNCTUATION = "punctuation"
    COMMENT = "comment"
    STRING_LITERAL = "string"


def intrinsic_weight(text: str, kind: TokenKind) -> float:
    """Type-based prior for how worth highlighting a token is."""
    if kind == TokenKind.KEYWORD:
        return 0.9
    if kind == TokenKind.IDENTIFIER:
        return 0.8 if len(text) > 2 else 0.6
    if kind == TokenKind.STRING_LITERAL:
        return 0.8
    if kind in (TokenKind.LITERAL, TokenKind.OPERATOR):
        return 0.7
    if kind == TokenKind.COMMENT:
        return 0.5
    return 0.3


@dataclass(frozen=True)
class Token:
    """A positioned lexical unit. ``id`` is the token's index in its token list.

    Lines and columns are 0-based. ``end_line``/``end_column`` describe where
    the token stops (exclusive column), which differs from ``line`` only for
    block comments and multi-line strings.
    """
    id: int
    text: str
    kind: TokenKind
    line: int
    start_column: int
    end_column: int
    weight: float
    offset: int = 0
    end_line: int = -1

    def __post_init__(self) -> None:
        if self.end_line < 0:
            object.__setattr__(self, "end_line", self.line)

    @property
    def end_offset(self) -> int:
        return self.offset + len(self.text)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "kind": self.kind.value,
            "line": self.line,
            "start_column": self.start_column,
            "end_line": self.end_line,
            "end_column": self.end_column,
            "offset": self.offset,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Token:
        return cls(
            id=int(d["id"]),
            text=d["text"],
            kind=TokenKind(d["kind"]),
            line=d["line"],
            start_column=d["start_column"],
            end_column=d["end_column"],
            weight=d.get("weight", intrinsic_weight(d["text"], TokenKind(d["kind"]))),
            offset=d.get("offset", 0),
            end_line=d.get("end_line", -1),
        )
