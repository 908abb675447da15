"""Tests for mapping interpreter failures onto host tokens."""

from inline_python.core.diagnostics import (
    Diagnostic,
    diagnostic_for_compile_failure,
    diagnostic_for_runtime_failure,
    spans_for_line,
)
from inline_python.core.lexer import tokenize
from inline_python.core.service import CompileFailure, Frame, RuntimeFailure
from inline_python.core.tokens import LineColumn, Span

HOST_FILE = "src/main.rs"


class TestSpansForLine:
    def test_first_and_last_token_of_line(self) -> None:
        first, last = spans_for_line(tokenize("  x  y   z"), 1)
        assert first.start.column == 2
        assert last.start.column == 9

    def test_nested_tokens_and_delimiters_take_part(self) -> None:
        tokens = tokenize("f(a,\n  g(b))")
        first, last = spans_for_line(tokens, 2)
        assert first.start == LineColumn(line=2, column=2)
        assert last.start == LineColumn(line=2, column=6)

    def test_line_without_tokens(self) -> None:
        assert spans_for_line(tokenize("a\n\nb"), 2) is None

    def test_group_open_on_earlier_line_does_not_count(self) -> None:
        tokens = tokenize("(\n  x\n)")
        first, last = spans_for_line(tokens, 2)
        assert first == last
        assert first.start.column == 2


class TestCompileFailure:
    def test_anchored_on_failing_line(self, counting_tokens) -> None:
        diagnostic = diagnostic_for_compile_failure(
            counting_tokens, CompileFailure(5, "invalid syntax", "invalid syntax (src/main.rs, line 5)")
        )
        assert diagnostic.message == "invalid syntax"
        assert diagnostic.span.start == LineColumn(line=5, column=12)
        assert diagnostic.span.end == LineColumn(line=5, column=20)

    def test_line_outside_block_uses_full_message(self, counting_tokens) -> None:
        diagnostic = diagnostic_for_compile_failure(
            counting_tokens, CompileFailure(40, "unexpected EOF", "unexpected EOF (src/main.rs, line 40)")
        )
        assert not diagnostic.is_anchored
        assert diagnostic.message == "unexpected EOF (src/main.rs, line 40)"

    def test_no_line(self, counting_tokens) -> None:
        diagnostic = diagnostic_for_compile_failure(counting_tokens, CompileFailure(None, "null bytes"))
        assert diagnostic.spans is None
        assert diagnostic.text == "python: null bytes"


class TestRuntimeFailure:
    def test_outermost_frame_of_host_file(self, counting_tokens) -> None:
        failure = RuntimeFailure(
            [Frame(HOST_FILE, 4), Frame(HOST_FILE, 5), Frame("/usr/lib/python3/json/__init__.py", 12)],
            "TypeError: boom",
        )
        diagnostic = diagnostic_for_runtime_failure(counting_tokens, failure, HOST_FILE)
        assert diagnostic.message == "TypeError: boom"
        assert diagnostic.span.start.line == 4

    def test_other_files_are_ignored(self, counting_tokens) -> None:
        failure = RuntimeFailure([Frame("other.rs", 4)], "NameError: name 'x' is not defined")
        diagnostic = diagnostic_for_runtime_failure(counting_tokens, failure, HOST_FILE)
        assert not diagnostic.is_anchored

    def test_deeper_frames_from_other_blocks_are_not_used(self, counting_tokens) -> None:
        # Line 2 holds no tokens of this block; line 5 is never consulted.
        failure = RuntimeFailure([Frame(HOST_FILE, 2), Frame(HOST_FILE, 5)], "ValueError: x")
        diagnostic = diagnostic_for_runtime_failure(counting_tokens, failure, HOST_FILE)
        assert diagnostic.spans is None


class TestDiagnosticFormat:
    SOURCE = "fn f() {\n    a = b\n}\n"

    def diagnostic(self) -> Diagnostic:
        return Diagnostic(
            message="boom",
            spans=(Span.at(2, 4, 5, file="a.rs"), Span.at(2, 8, 9, file="a.rs")),
        )

    def test_with_source_shows_snippet(self) -> None:
        expected = "a.rs:2:5\n   2 |     a = b\n" + " " * 11 + "^^^^^\npython: boom"
        assert self.diagnostic().format(self.SOURCE) == expected

    def test_without_source(self) -> None:
        assert self.diagnostic().format() == "a.rs:2:5\npython: boom"

    def test_unanchored(self) -> None:
        assert Diagnostic(message="boom").format(self.SOURCE) == "python: boom"

    def test_anchored_at_only_fills_missing_spans(self) -> None:
        fallback = (Span.at(1, 0, file="a.rs"), Span.at(3, 0, file="a.rs"))
        unanchored = Diagnostic(message="boom")
        assert unanchored.anchored_at(fallback).spans == fallback
        anchored = self.diagnostic()
        assert anchored.anchored_at(fallback) is anchored


class TestDeepTrees:
    def test_spans_for_line_in_deep_tree(self) -> None:
        depth = 3000
        tokens = tokenize("(" * depth + "x" + ")" * depth)
        first, last = spans_for_line(tokens, 1)
        assert first.start.column == 0
        assert last.start.column == 2 * depth
