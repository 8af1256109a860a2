"""Per-language lexical pattern tables for the code tokenizer.

Each language contributes comment and string forms, extra operators and a
keyword set. Everything else (numbers, punctuation, identifiers) is shared.
Unknown language ids resolve to ``GENERIC``: common keywords, the usual
comment/string forms, plain decimal numbers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache

from voicesync.code.base import TokenKind

# ── Shared building blocks ───────────────────────────────────────────────────

IDENT_CHARS = r"A-Za-z0-9_$"
IDENTIFIER_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")

LINE_COMMENT_SLASH = r"//[^\n]*"
LINE_COMMENT_HASH = r"#[^\n]*"
BLOCK_COMMENT = r"/\*[\s\S]*?(?:\*/|\Z)"

DOUBLE_QUOTED = r'"(?:[^"\\\n]|\\[\s\S])*"'
SINGLE_QUOTED = r"'(?:[^'\\\n]|\\[\s\S])*'"
BACKTICK = r"`(?:[^`\\]|\\[\s\S])*`"
TRIPLE_DOUBLE = r'"""[\s\S]*?"""'
TRIPLE_SINGLE = r"'''[\s\S]*?'''"

DECIMAL_NUMBER = r"\d+(?:\.\d+)?(?:[eE][+-]?\d+)?"
RICH_NUMBER = (
    r"0[xX][0-9a-fA-F_]+|0[bB][01_]+|0[oO][0-7_]+"
    r"|\d[\d_]*(?:\.\d[\d_]*)?(?:[eE][+-]?\d+)?[nNlLfFdDuU]*"
)

COMMON_OPERATORS = [
    "===", "!==", "==", "!=", "<=", ">=", "=>", "++", "--", "&&", "||",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<", ">>",
    "+", "-", "*", "/", "%", "=", "<", ">", "!", "&", "|", "^", "~", "?",
]
PUNCTUATION = r"[(){}\[\];,.:@]"

COMMON_KEYWORDS = frozenset({
    "if", "else", "for", "while", "return", "function", "class", "def",
    "import", "export", "var", "let", "const", "try", "catch", "finally",
    "true", "false", "null",
})


@dataclass(frozen=True)
class LanguageSpec:
    name: str
    comments: tuple[str, ...]
    strings: tuple[str, ...]
    keywords: frozenset[str]
    number: str = RICH_NUMBER
    extra_operators: tuple[str, ...] = ()
    aliases: tuple[str, ...] = field(default=())

    def operators(self) -> list[str]:
        """All operators, longest first so ``===`` wins over ``==`` and ``=``."""
        ops = set(COMMON_OPERATORS) | set(self.extra_operators)
        return sorted(ops, key=lambda op: (-len(op), op))


JAVASCRIPT = LanguageSpec(
    name="javascript",
    comments=(LINE_COMMENT_SLASH, BLOCK_COMMENT),
    strings=(DOUBLE_QUOTED, SINGLE_QUOTED, BACKTICK),
    keywords=frozenset({
        "function", "const", "let", "var", "if", "else", "for", "while", "do",
        "return", "class", "import", "export", "from", "default", "async", "await",
        "try", "catch", "finally", "throw", "new", "this", "super", "extends",
        "switch", "case", "break", "continue", "typeof", "instanceof", "in",
        "delete", "void", "yield", "static", "true", "false", "null",
        "undefined",
    }),
    extra_operators=(">>>=", ">>>", "**=", "<<=", ">>=", "**", "??", "?.", "...", "&&=", "||=", "??="),
    aliases=("javascript", "javascriptreact", "js", "jsx", "mjs", "cjs"),
)

TYPESCRIPT = LanguageSpec(
    name="typescript",
    comments=JAVASCRIPT.comments,
    strings=JAVASCRIPT.strings,
    keywords=JAVASCRIPT.keywords | frozenset({
        "implements", "interface", "type", "enum", "namespace", "module", "declare",
        "public", "private", "protected", "readonly", "abstract", "as", "keyof",
        "infer", "is", "satisfies",
    }),
    extra_operators=JAVASCRIPT.extra_operators,
    aliases=("typescript", "typescriptreact", "ts", "tsx"),
)

PYTHON = LanguageSpec(
    name="python",
    comments=(LINE_COMMENT_HASH,),
    strings=(
        r"[rRbBuUfF]{0,2}" + TRIPLE_DOUBLE,
        r"[rRbBuUfF]{0,2}" + TRIPLE_SINGLE,
        r"[rRbBuUfF]{0,2}" + DOUBLE_QUOTED,
        r"[rRbBuUfF]{0,2}" + SINGLE_QUOTED,
    ),
    keywords=frozenset({
        "def", "class", "if", "elif", "else", "for", "while", "return", "import",
        "from", "as", "try", "except", "finally", "raise", "with", "lambda",
        "global", "nonlocal", "yield", "assert", "break", "continue", "pass",
        "del", "and", "or", "not", "in", "is", "async", "await",
        "True", "False", "None",
    }),
    extra_operators=("**=", "//=", "**", "//", ":=", "->", "@="),
    aliases=("python", "py", "python3"),
)

JAVA = LanguageSpec(
    name="java",
    comments=(LINE_COMMENT_SLASH, BLOCK_COMMENT),
    strings=(r'"""[\s\S]*?"""', DOUBLE_QUOTED, SINGLE_QUOTED),
    keywords=frozenset({
        "public", "private", "protected", "static", "final", "abstract", "class",
        "interface", "extends", "implements", "if", "else", "for", "while", "do",
        "return", "try", "catch", "finally", "throw", "throws", "new", "this",
        "super", "package", "import", "void", "int", "String", "boolean",
        "double", "float", "long", "short", "byte", "char", "switch", "case",
        "break", "continue", "default", "enum", "record", "var", "instanceof",
        "true", "false", "null",
    }),
    extra_operators=(">>>=", ">>>", "<<=", ">>=", "->", "::"),
    aliases=("java",),
)

C_FAMILY = LanguageSpec(
    name="c",
    comments=(LINE_COMMENT_SLASH, BLOCK_COMMENT),
    strings=(DOUBLE_QUOTED, SINGLE_QUOTED),
    keywords=frozenset({
        "if", "else", "for", "while", "do", "return", "switch", "case", "break",
        "continue", "default", "struct", "union", "enum", "typedef", "static",
        "const", "void", "int", "char", "float", "double", "long", "short",
        "unsigned", "signed", "sizeof", "class", "public", "private", "protected",
        "virtual", "namespace", "using", "template", "typename", "new", "delete",
        "this", "true", "false", "nullptr", "NULL", "auto", "bool", "string",
        "var", "foreach", "in", "out", "ref", "null", "override", "async", "await",
    }),
    extra_operators=("<<=", ">>=", "->", "::", "<=>", "??"),
    aliases=("c", "cpp", "c++", "csharp", "cs", "objective-c", "objective-cpp"),
)

GO = LanguageSpec(
    name="go",
    comments=(LINE_COMMENT_SLASH, BLOCK_COMMENT),
    strings=(DOUBLE_QUOTED, SINGLE_QUOTED, BACKTICK),
    keywords=frozenset({
        "break", "case", "chan", "const", "continue", "default", "defer", "else",
        "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
        "map", "package", "range", "return", "select", "struct", "switch", "type",
        "var", "true", "false", "nil",
    }),
    extra_operators=(":=", "<-", "&^", "&^=", "<<=", ">>=", "..."),
    aliases=("go", "golang"),
)

GENERIC = LanguageSpec(
    name="generic",
    comments=(LINE_COMMENT_SLASH, BLOCK_COMMENT, LINE_COMMENT_HASH),
    strings=(DOUBLE_QUOTED, SINGLE_QUOTED, BACKTICK),
    keywords=COMMON_KEYWORDS,
    number=DECIMAL_NUMBER,
)

LANGUAGES: tuple[LanguageSpec, ...] = (JAVASCRIPT, TYPESCRIPT, PYTHON, JAVA, C_FAMILY, GO)
_BY_ALIAS = {alias: spec for spec in LANGUAGES for alias in spec.aliases}

# Keywords that introduce a declared name (the next identifier is that name)
DECLARATION_KEYWORDS = frozenset({"function", "def", "func", "fn", "class", "struct", "interface"})


def resolve_language(language_id: str) -> LanguageSpec:
    """Map an editor language id to its pattern table (``GENERIC`` when unknown)."""
    return _BY_ALIAS.get((language_id or "").strip().lower(), GENERIC)


@lru_cache(maxsize=None)
def compiled_patterns(spec: LanguageSpec) -> tuple[tuple[re.Pattern[str], TokenKind], ...]:
    """Ordered (pattern, kind) list tried at every scan position."""
    patterns: list[tuple[str, TokenKind]] = []
    patterns.extend((c, TokenKind.COMMENT) for c in spec.comments)
    patterns.extend((s, TokenKind.STRING_LITERAL) for s in spec.strings)
    patterns.append((spec.number, TokenKind.LITERAL))
    patterns.append(("|".join(re.escape(op) for op in spec.operators()), TokenKind.OPERATOR))
    patterns.append((PUNCTUATION, TokenKind.PUNCTUATION))
    keywords = sorted(spec.keywords, key=lambda k: (-len(k), k))
    patterns.append((rf"(?:{'|'.join(keywords)})(?![{IDENT_CHARS}])", TokenKind.KEYWORD))
    return tuple((re.compile(p), kind) for p, kind in patterns)
