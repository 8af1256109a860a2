"""Tests for the code tokenizer: coverage, longest-match operators, positions, weights."""

from __future__ import annotations

import pytest

from voicesync.code.base import Token, TokenKind
from voicesync.code.languages import GENERIC, JAVASCRIPT, PYTHON, resolve_language
from voicesync.code.tokenizer import declared_names, reconstruct, tokenize

from conftest import SAMPLE_JS, SAMPLE_PY


# ── Coverage ─────────────────────────────────────────────────────────────────


class TestCoverage:
    @pytest.mark.parametrize("code,language", [
        (SAMPLE_JS, "javascript"),
        (SAMPLE_PY, "python"),
        ("int main() {\n  return a->b << 2; // done\n}\n", "cpp"),
        ("x := <-ch\n\tfmt.Println(`raw\nstring`)", "go"),
        ("weird §§ chars ¤ and émoji ✓ here", "plaintext"),
        ("/* unterminated block comment", "javascript"),
        ("s = 'unterminated", "python"),
        ("   \n\t  ", "javascript"),
    ])
    def test_tokens_plus_whitespace_reconstruct_source(self, code, language):
        tokens = tokenize(code, language)
        assert reconstruct(code, tokens) == code

    def test_spans_do_not_overlap(self):
        tokens = tokenize(SAMPLE_PY, "python")
        for a, b in zip(tokens, tokens[1:]):
            assert a.end_offset <= b.offset

    def test_empty_code(self):
        assert tokenize("", "javascript") == []

    def test_reconstruct_detects_gaps(self):
        tokens = tokenize("a    b", "javascript")
        with pytest.raises(ValueError):
            reconstruct("a XY b", tokens)

    def test_reconstruct_detects_trailing_text(self):
        tokens = tokenize("a b", "javascript")
        with pytest.raises(ValueError):
            reconstruct("a b  cd", tokens)
        assert reconstruct("a b  \n", tokens) == "a b  \n"


# ── Operators ────────────────────────────────────────────────────────────────


class TestOperators:
    def test_strict_equality_is_one_token(self):
        tokens = tokenize("===", "javascript")
        assert len(tokens) == 1
        assert tokens[0].kind == TokenKind.OPERATOR
        assert tokens[0].text == "==="

    def test_longest_match_in_expression(self):
        texts = [t.text for t in tokenize("a !== b && c >= d", "javascript")]
        assert texts == ["a", "!==", "b", "&&", "c", ">=", "d"]

    def test_spread_operator(self):
        tokens = tokenize("...rest", "javascript")
        assert tokens[0].text == "..."
        assert tokens[0].kind == TokenKind.OPERATOR

    def test_operator_order_longest_first(self):
        ops = JAVASCRIPT.operators()
        assert ops.index("===") < ops.index("==") < ops.index("=")

    def test_python_walrus_and_floor_div(self):
        texts = [t.text for t in tokenize("if (n := a // 2):", "python")]
        assert ":=" in texts
        assert "//" in texts


# ── Kinds & positions ────────────────────────────────────────────────────────


class TestKindsAndPositions:
    def test_sample_js(self):
        tokens = tokenize(SAMPLE_JS, "javascript")
        assert [t.text for t in tokens] == [
            "function", "calculateTotal", "(", "items", ")", "{",
            "let", "total", "=", "0", ";", "...", "}",
        ]
        kinds = {t.text: t.kind for t in tokens}
        assert kinds["function"] == TokenKind.KEYWORD
        assert kinds["calculateTotal"] == TokenKind.IDENTIFIER
        assert kinds["let"] == TokenKind.KEYWORD
        assert kinds["0"] == TokenKind.LITERAL
        assert kinds["("] == TokenKind.PUNCTUATION
        assert kinds["="] == TokenKind.OPERATOR

    def test_ids_are_list_positions(self):
        tokens = tokenize(SAMPLE_PY, "python")
        assert [t.id for t in tokens] == list(range(len(tokens)))

    def test_tokenizing_twice_gives_equal_tokens(self):
        assert tokenize(SAMPLE_JS, "javascript") == tokenize(SAMPLE_JS, "javascript")

    def test_python_comments_strings_lines(self):
        tokens = tokenize(SAMPLE_PY, "python")
        doc = next(t for t in tokens if t.kind == TokenKind.STRING_LITERAL)
        assert doc.text == '"""Mean of the values."""'
        assert doc.line == 1
        comment = next(t for t in tokens if t.kind == TokenKind.COMMENT)
        assert comment.text == "# guard against empty input"
        assert comment.line == 2
        ret = next(t for t in tokens if t.text == "return")
        assert ret.line == 4
        assert ret.start_column == 8

    def test_multiline_block_comment_positions(self):
        tokens = tokenize("/* a\nb */ x", "javascript")
        assert tokens[0].kind == TokenKind.COMMENT
        assert tokens[0].end_line == 1
        x = tokens[1]
        assert (x.line, x.start_column, x.end_column) == (1, 5, 6)

    def test_keyword_prefix_is_identifier(self):
        tokens = tokenize("functional iffy", "javascript")
        assert [t.kind for t in tokens] == [TokenKind.IDENTIFIER, TokenKind.IDENTIFIER]

    def test_unknown_character_becomes_punctuation(self):
        tokens = tokenize("a § b", "javascript")
        assert tokens[1].text == "§"
        assert tokens[1].kind == TokenKind.PUNCTUATION

    def test_template_string(self):
        tokens = tokenize("const s = `hi ${name}`;", "javascript")
        assert any(t.kind == TokenKind.STRING_LITERAL and t.text.startswith("`") for t in tokens)


class TestWeights:
    def test_weights_by_kind(self):
        tokens = {t.text: t for t in tokenize("if (i < count) { x = 'go'; }", "javascript")}
        assert tokens["if"].weight == 0.9
        assert tokens["count"].weight == 0.8
        assert tokens["i"].weight == 0.6
        assert tokens["<"].weight == 0.7
        assert tokens["'go'"].weight == 0.8
        assert tokens["("].weight == 0.3

    def test_comment_weight(self):
        tokens = tokenize("// note", "javascript")
        assert tokens[0].weight == 0.5


# ── Languages ────────────────────────────────────────────────────────────────


class TestLanguages:
    def test_aliases(self):
        assert resolve_language("js") is JAVASCRIPT
        assert resolve_language("Python") is PYTHON
        assert resolve_language("") is GENERIC
        assert resolve_language("cobol") is GENERIC

    def test_unknown_language_never_raises(self):
        tokens = tokenize("let x = 0x1F; # note", "cobol")
        assert reconstruct("let x = 0x1F; # note", tokens) == "let x = 0x1F; # note"
        assert tokens[0].kind == TokenKind.KEYWORD
        assert tokens[-1].kind == TokenKind.COMMENT

    def test_language_specific_keywords(self):
        py = {t.text: t.kind for t in tokenize("elif x", "python")}
        js = {t.text: t.kind for t in tokenize("elif x", "javascript")}
        assert py["elif"] == TokenKind.KEYWORD
        assert js["elif"] == TokenKind.IDENTIFIER


class TestDeclaredNames:
    def test_function_name(self):
        tokens = tokenize(SAMPLE_JS, "javascript")
        assert declared_names(tokens) == {1}

    def test_python_def_and_class(self):
        tokens = tokenize("class Cart:\n    def add(self): pass", "python")
        names = {tokens[i].text for i in declared_names(tokens)}
        assert names == {"Cart", "add"}


class TestTokenModel:
    def test_dict_roundtrip(self):
        tok = tokenize(SAMPLE_JS, "javascript")[1]
        assert Token.from_dict(tok.to_dict()) == tok
