"""Spoken-form tables: how a narrator refers to operators, punctuation and keywords.

``SEMANTIC_ALIASES`` maps canonical (lowercased) token text to the words a
speaker would use for it. ``CONTEXT_RULES`` map category words ("loop",
"variable", ...) onto token kinds. This module is the only place these
tables live.
"""

from __future__ import annotations

from dataclasses import dataclass

from voicesync.code.base import TokenKind

SEMANTIC_ALIASES: dict[str, frozenset[str]] = {
    # Operators
    "=": frozenset({"equals", "assign", "assigns", "assigned", "assignment", "set", "sets"}),
    "==": frozenset({"equality", "equal", "compare", "compares", "comparison"}),
    "===": frozenset({"strict", "strictly", "identical", "equality"}),
    "!=": frozenset({"unequal", "inequality", "differs"}),
    "!==": frozenset({"unequal", "inequality"}),
    "+": frozenset({"plus", "add", "adds", "adding", "addition", "sum", "concatenate"}),
    "-": frozenset({"minus", "subtract", "subtracts", "subtraction", "negative"}),
    "*": frozenset({"times", "multiply", "multiplies", "multiplied", "multiplication", "product"}),
    "/": frozenset({"divide", "divides", "divided", "division"}),
    "%": frozenset({"modulo", "modulus", "remainder"}),
    "**": frozenset({"power", "exponent", "squared"}),
    "++": frozenset({"increment", "increments", "incremented", "increase"}),
    "--": frozenset({"decrement", "decrements", "decremented", "decrease"}),
    "+=": frozenset({"accumulate", "accumulates", "increment", "increments"}),
    "-=": frozenset({"decrement", "decrements"}),
    "&&": frozenset({"and", "both"}),
    "||": frozenset({"or", "either", "fallback"}),
    "!": frozenset({"not", "negate", "negates", "negation"}),
    "<": frozenset({"less", "smaller", "below"}),
    ">": frozenset({"greater", "larger", "bigger", "above"}),
    "<=": frozenset({"most"}),
    ">=": frozenset({"least"}),
    "=>": frozenset({"arrow", "lambda"}),
    "->": frozenset({"arrow", "returns"}),
    "?": frozenset({"ternary"}),
    "??": frozenset({"nullish", "coalescing", "default"}),
    "...": frozenset({"spread", "rest"}),
    ":=": frozenset({"walrus", "assign", "declare"}),
    # Punctuation
    "(": frozenset({"parenthesis", "parentheses", "paren", "parens", "call", "calls", "invoke", "invokes"}),
    ")": frozenset({"parenthesis", "parentheses", "paren"}),
    "{": frozenset({"brace", "braces", "curly", "block", "body"}),
    "}": frozenset({"brace", "braces", "curly"}),
    "[": frozenset({"bracket", "brackets", "index", "subscript", "array"}),
    "]": frozenset({"bracket", "brackets"}),
    ";": frozenset({"semicolon"}),
    ",": frozenset({"comma"}),
    ".": frozenset({"dot", "period", "property", "member"}),
    ":": frozenset({"colon"}),
    "@": frozenset({"decorator", "annotation"}),
    # Keywords
    "function": frozenset({"function", "functions", "method", "procedure", "routine"}),
    "def": frozenset({"function", "method", "define", "defines", "definition"}),
    "func": frozenset({"function", "method"}),
    "fn": frozenset({"function"}),
    "lambda": frozenset({"anonymous", "lambda", "inline"}),
    "const": frozenset({"constant", "constants", "immutable"}),
    "let": frozenset({"variable", "declare", "declares", "declaration"}),
    "var": frozenset({"variable", "declare", "declaration"}),
    "if": frozenset({"condition", "conditional", "check", "checks", "whether"}),
    "elif": frozenset({"otherwise", "condition"}),
    "else": frozenset({"otherwise", "fallback"}),
    "switch": frozenset({"switch", "cases", "branches"}),
    "for": frozenset({"loop", "loops", "iterate", "iterates", "iterating", "iteration", "each"}),
    "foreach": frozenset({"loop", "iterate", "each"}),
    "while": frozenset({"loop", "loops", "repeat", "repeats", "until"}),
    "return": frozenset({"returns", "returned", "returning", "output", "result"}),
    "yield": frozenset({"yields", "generator", "produces"}),
    "class": frozenset({"class", "classes", "object", "type", "blueprint"}),
    "new": frozenset({"instance", "instantiate", "instantiates", "construct", "creates"}),
    "import": frozenset({"import", "imports", "require", "requires", "dependency"}),
    "export": frozenset({"export", "exports", "expose", "exposes"}),
    "try": frozenset({"attempt", "attempts"}),
    "catch": frozenset({"error", "errors", "exception", "exceptions", "handle", "handles"}),
    "except": frozenset({"error", "errors", "exception", "exceptions", "handle", "handles"}),
    "throw": frozenset({"throws", "error", "exception"}),
    "raise": frozenset({"raises", "error", "exception"}),
    "async": frozenset({"asynchronous", "asynchronously"}),
    "await": frozenset({"awaits", "waits", "wait"}),
    "null": frozenset({"nothing", "empty"}),
    "none": frozenset({"nothing", "empty"}),
    "nil": frozenset({"nothing", "empty"}),
    "true": frozenset({"truthy"}),
    "false": frozenset({"falsy"}),
    "this": frozenset({"self", "instance"}),
    "self": frozenset({"this", "instance"}),
}


@dataclass(frozen=True)
class ContextRule:
    """A category word set that matches tokens by kind (optionally by text)."""
    words: frozenset[str]
    kinds: frozenset[TokenKind]
    confidence: float
    texts: frozenset[str] = frozenset()
    declared_by: frozenset[str] = frozenset()   # only names declared by these keywords

    def applies(self, word: str, kind: TokenKind, text: str, declarer: str | None) -> bool:
        if word not in self.words or kind not in self.kinds:
            return False
        if self.texts and text not in self.texts:
            return False
        if self.declared_by and declarer not in self.declared_by:
            return False
        return True


_FUNCTION_WORDS = frozenset({"function", "functions", "method", "methods", "procedure", "routine"})

# Ordered most specific first; the first applicable rule decides the score.
CONTEXT_RULES: tuple[ContextRule, ...] = (
    ContextRule(_FUNCTION_WORDS, frozenset({TokenKind.KEYWORD}), 0.8,
                texts=frozenset({"function", "def", "func", "fn", "lambda"})),
    ContextRule(_FUNCTION_WORDS, frozenset({TokenKind.IDENTIFIER}), 0.8,
                declared_by=frozenset({"function", "def", "func", "fn"})),
    ContextRule(frozenset({"class", "classes", "struct", "interface", "type"}),
                frozenset({TokenKind.IDENTIFIER}), 0.8,
                declared_by=frozenset({"class", "struct", "interface"})),
    ContextRule(frozenset({"condition", "conditions", "conditional", "branch", "branches"}),
                frozenset({TokenKind.KEYWORD}), 0.8,
                texts=frozenset({"if", "elif", "else", "switch", "case"})),
    ContextRule(frozenset({"loop", "loops", "looping", "iteration", "iterate", "iterates"}),
                frozenset({TokenKind.KEYWORD}), 0.8,
                texts=frozenset({"for", "while", "do", "foreach", "range"})),
    ContextRule(frozenset({"result", "output", "returns"}),
                frozenset({TokenKind.KEYWORD}), 0.7,
                texts=frozenset({"return", "yield"})),
    ContextRule(frozenset({"string", "strings", "text", "message"}),
                frozenset({TokenKind.STRING_LITERAL}), 0.7),
    ContextRule(frozenset({"number", "numbers", "numeric", "integer", "literal"}),
                frozenset({TokenKind.LITERAL}), 0.7),
    ContextRule(frozenset({"comment", "comments", "note"}),
                frozenset({TokenKind.COMMENT}), 0.7),
    ContextRule(frozenset({"operator", "operators", "operation"}),
                frozenset({TokenKind.OPERATOR}), 0.6),
    ContextRule(frozenset({"variable", "variables", "parameter", "parameters",
                           "argument", "arguments", "identifier"}),
                frozenset({TokenKind.IDENTIFIER}), 0.6),
)

# Filler words never matched by containment inside comments, strings or keywords
PROSE_STOPWORDS = frozenset({
    "the", "and", "this", "that", "these", "those", "with", "from", "into", "then",
    "than", "are", "was", "were", "has", "have", "had", "its", "our", "you", "your",
    "will", "can", "all", "any", "not", "but", "for", "here", "there", "which",
    "what", "when", "where", "who", "how", "each", "every", "some", "just", "also",
    "let", "lets", "look", "see", "now", "next", "first",
})
