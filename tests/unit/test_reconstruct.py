"""Tests for rebuilding Python source from host tokens."""

import pytest

from inline_python.core.errors import InvalidIndentError, UnrepresentableSyntaxError
from inline_python.core.lexer import tokenize
from inline_python.core.reconstruct import reconstruct
from inline_python.core.tokens import LiteralToken, PunctToken, Spacing, Span


def python_of(text: str, **kwargs) -> str:
    return reconstruct(tokenize(text), **kwargs).source


class TestLayout:
    def test_counting_block_keeps_host_line_numbers(self, counting_tokens) -> None:
        result = reconstruct(counting_tokens)
        assert result.source == "\n\n\nfor i in range(_RUST_n):\n    print(i)"
        # Line 4 of the Python is line 4 of the host file.
        assert result.source.splitlines()[3] == "for i in range(_RUST_n):"

    def test_indentation_is_relative_to_first_line(self, body) -> None:
        tokens = body(
            "python! {\n"
            "        if x:\n"
            "            if y:\n"
            "                pass\n"
            "        z = 1\n"
            "}"
        )
        assert reconstruct(tokens).source == "\nif x:\n    if y:\n        pass\nz = 1"

    def test_spacing_within_a_line_is_kept(self) -> None:
        assert python_of("x  =   1") == "x  =   1"

    def test_tokens_that_touched_still_touch(self) -> None:
        assert python_of("a.b(c)[0]") == "a.b(c)[0]"

    def test_blank_lines_are_kept(self) -> None:
        assert python_of("a = 1\n\n\nb = 2") == "a = 1\n\n\nb = 2"

    def test_dedent_below_first_line_is_rejected(self) -> None:
        with pytest.raises(InvalidIndentError, match="invalid indent") as exc_info:
            python_of("x = 1\n    y = 2\nz = 3")
        assert exc_info.value.spans[0].start.line == 3

    def test_multiline_group(self, body) -> None:
        tokens = body("python! {\n    xs = [\n        1,\n    ]\n}")
        assert reconstruct(tokens).source == "\nxs = [\n    1,\n]"

    def test_empty_body(self) -> None:
        result = reconstruct([])
        assert result.source == ""
        assert len(result.captures) == 0


class TestCaptures:
    def test_capture_becomes_placeholder(self) -> None:
        result = reconstruct(tokenize("print('x)"))
        assert result.source == "print(_RUST_x)"
        assert result.captures.names() == ["_RUST_x"]
        assert result.captures["_RUST_x"].text == "x"

    def test_repeated_capture_registers_once(self) -> None:
        result = reconstruct(tokenize("'a + 'a"))
        assert result.source == "_RUST_a + _RUST_a"
        assert len(result.captures) == 1
        # The first occurrence is the one kept.
        assert result.captures["_RUST_a"].span.start.column == 1

    def test_bindings_are_sorted_by_placeholder(self) -> None:
        result = reconstruct(tokenize("'zeta + 'alpha + 'mid"))
        assert [b.host_name for b in result.captures.bindings()] == ["alpha", "mid", "zeta"]

    def test_text_after_capture_keeps_host_columns(self) -> None:
        assert python_of("f('a, b)") == "f(_RUST_a, b)"
        assert python_of("'a  + 1") == "_RUST_a  + 1"

    def test_custom_prefix(self) -> None:
        result = reconstruct(tokenize("'n * 2"), prefix="_HOST_")
        assert result.source == "_HOST_n * 2"
        assert "_HOST_n" in result.captures

    def test_capture_disabled_leaves_marker(self) -> None:
        result = reconstruct(tokenize("'n"), capture=False)
        assert result.source == "'n"
        assert len(result.captures) == 0

    def test_character_literal_is_not_a_capture(self) -> None:
        result = reconstruct(tokenize("c = 'x'"))
        assert result.source == "c = 'x'"
        assert len(result.captures) == 0


class TestRewrites:
    def test_double_hash_is_floor_division(self) -> None:
        assert python_of("a ## b") == "a // b"

    def test_double_hash_augmented_assignment(self) -> None:
        assert python_of("x = 7 ##= 2") == "x = 7 //= 2"

    def test_single_hash_is_left_alone(self) -> None:
        assert python_of("#!") == "#!"

    def test_separated_hashes_are_not_rewritten(self) -> None:
        assert python_of("# #") == "# #"

    def test_prefixed_string_space_is_dropped(self) -> None:
        assert python_of('print(f "{x}")') == 'print(f"{x}")'
        assert python_of('rb "raw"') == 'rb"raw"'

    def test_space_after_non_letter_is_kept(self) -> None:
        assert python_of('x = 1 "a"') == 'x = 1 "a"'
        assert python_of('print(x, "a")') == 'print(x, "a")'

    def test_triple_quoted_string_is_rebuilt(self) -> None:
        assert python_of('s = """doc"""') == 's = """doc"""'

    def test_capture_marker_without_name(self) -> None:
        tokens = [
            PunctToken(char="'", spacing=Spacing.JOINT, span=Span.at(1, 0)),
            LiteralToken(text="1", span=Span.at(1, 1)),
        ]
        with pytest.raises(UnrepresentableSyntaxError, match="expected a name"):
            reconstruct(tokens)


class TestTreeShapes:
    def test_reconstruction_is_repeatable(self, counting_tokens) -> None:
        first = reconstruct(counting_tokens)
        second = reconstruct(counting_tokens)
        assert first.source == second.source
        assert first.captures == second.captures
        assert first.captures.names() == second.captures.names()

    def test_deep_nesting(self) -> None:
        depth = 3000
        text = "(" * depth + "x" + ")" * depth
        assert python_of(text) == text

    def test_deep_nesting_with_capture(self) -> None:
        depth = 2000
        result = reconstruct(tokenize("[" * depth + "'n" + "]" * depth))
        assert result.source == "[" * depth + "_RUST_n" + "]" * depth
        assert result.captures.names() == ["_RUST_n"]
