"""
Lexer/Tokenizer for host source files.

Converts host text into a tree of tokens with source location tracking.
Delimited groups (parentheses, brackets, braces) become group tokens that
own their children; comments and whitespace are dropped, but every token
keeps the span it was read from so the original layout can be rebuilt.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from .errors import HostSyntaxError, UnrepresentableSyntaxError, make_error
from .tokens import (
    Delimiter,
    GroupToken,
    IdentToken,
    LineColumn,
    LiteralToken,
    PunctToken,
    Spacing,
    Span,
    TokenTree,
)

logger = logging.getLogger(__name__)

PUNCT_CHARS = frozenset("=<>!~+-*/%^&|@.,;:#$?")
DIGITS = frozenset("0123456789")

OPEN_DELIMITERS = {"(": Delimiter.PARENTHESIS, "[": Delimiter.BRACKET, "{": Delimiter.BRACE}
CLOSE_DELIMITERS = {")": Delimiter.PARENTHESIS, "]": Delimiter.BRACKET, "}": Delimiter.BRACE}

# Prefixes the host accepts in front of a string literal
STRING_PREFIXES = {"b", "c", "r", "br", "cr"}
RAW_PREFIXES = {"r", "br", "cr"}

_NUMBER_RE = re.compile(
    r"0[xX][0-9a-fA-F_]+\w*"
    r"|0[oO][0-7_]+\w*"
    r"|0[bB][01_]+\w*"
    r"|\d[\d_]*(?:\.\d[\d_]*|\.(?![.A-Za-z_]))?(?:[eE][+-]?\d[\d_]*)?(?:[A-Za-z_]\w*)?"
)


@dataclass
class _OpenGroup:
    """A group whose closing delimiter has not been seen yet."""

    delimiter: Delimiter
    span_open: Span
    children: list[TokenTree] = field(default_factory=list)


class Lexer:
    """
    Lexer for host source text.

    Produces a token tree the way the host compiler hands a macro its input.
    """

    def __init__(self, text: str, file: str | Path):
        """
        Initialize lexer.

        Args:
            text: Source text to tokenize
            file: Source file path (recorded in every span)
        """
        self.text = text
        self.file = str(file)
        self.pos = 0
        self.line = 1
        self.column = 0
        self.stack: list[_OpenGroup] = []
        self.tokens: list[TokenTree] = []

    def current_char(self) -> str | None:
        """Get current character or None if at end."""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def peek_char(self, offset: int = 1) -> str | None:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def advance(self, count: int = 1) -> None:
        """Move forward, updating line/column."""
        for _ in range(count):
            if self.pos >= len(self.text):
                return
            if self.text[self.pos] == "\n":
                self.line += 1
                self.column = 0
            else:
                self.column += 1
            self.pos += 1

    def location(self) -> LineColumn:
        return LineColumn(line=self.line, column=self.column)

    def span_from(self, start: LineColumn) -> Span:
        return Span(file=self.file, start=start, end=self.location())

    def error(self, cls: type, message: str, start: LineColumn | None = None) -> Exception:
        start = start or self.location()
        end = LineColumn(line=start.line, column=start.column + 1)
        return make_error(cls, message, Span(file=self.file, start=start, end=end))

    def skip_whitespace_and_comments(self) -> None:
        """Skip whitespace, line comments and (nested) block comments."""
        while True:
            ch = self.current_char()
            if ch is not None and ch.isspace():
                self.advance()
            elif ch == "/" and self.peek_char() == "/":
                while self.current_char() not in (None, "\n"):
                    self.advance()
            elif ch == "/" and self.peek_char() == "*":
                self.skip_block_comment()
            else:
                return

    def skip_block_comment(self) -> None:
        start = self.location()
        depth = 0
        while True:
            ch = self.current_char()
            if ch is None:
                raise self.error(HostSyntaxError, "unterminated block comment", start)
            if ch == "/" and self.peek_char() == "*":
                depth += 1
                self.advance(2)
            elif ch == "*" and self.peek_char() == "/":
                depth -= 1
                self.advance(2)
                if depth == 0:
                    return
            else:
                self.advance()

    def read_string(self, start: LineColumn) -> None:
        """Read the rest of a double-quoted string, starting at the opening quote."""
        self.advance()  # opening quote
        while True:
            ch = self.current_char()
            if ch is None:
                raise self.error(HostSyntaxError, "unterminated double quote string", start)
            if ch == "\\":
                self.advance(2)
            elif ch == '"':
                self.advance()
                return
            else:
                self.advance()

    def read_raw_string(self, start: LineColumn) -> None:
        """Read a raw string body: ``#``s, the quote, then up to the matching close."""
        hashes = 0
        while self.current_char() == "#":
            hashes += 1
            self.advance()
        if self.current_char() != '"':
            raise self.error(HostSyntaxError, "expected `\"` after raw string prefix", start)
        self.advance()
        closing = '"' + "#" * hashes
        end = self.text.find(closing, self.pos)
        if end == -1:
            raise self.error(HostSyntaxError, "unterminated raw string", start)
        self.advance(end + len(closing) - self.pos)

    def read_char_literal(self, start: LineColumn) -> bool:
        """
        Read ``'x'`` or ``'\\n'`` starting at the opening quote.

        Returns:
            False (without consuming anything) when the quote does not start a
            character literal
        """
        if self.peek_char() == "\\":
            end = self.pos + 3
            while end < len(self.text) and self.text[end] not in "'\n":
                end += 1
            if end >= len(self.text) or self.text[end] != "'":
                raise self.error(HostSyntaxError, "unterminated character literal", start)
            self.advance(end + 1 - self.pos)
            return True
        if self.peek_char(2) == "'" and self.peek_char() not in (None, "\n", "'"):
            self.advance(3)
            return True
        return False

    def read_identifier(self) -> str:
        """Read an identifier or keyword."""
        chars = []
        current = self.current_char()
        while current and (current.isalnum() or current == "_"):
            chars.append(current)
            self.advance()
            current = self.current_char()
        return "".join(chars)

    def literal(self, start_pos: int, start: LineColumn) -> LiteralToken:
        """Literal token for the text read since ``start_pos``."""
        return LiteralToken(text=self.text[start_pos : self.pos], span=self.span_from(start))

    def add(self, token: TokenTree) -> None:
        if self.stack:
            self.stack[-1].children.append(token)
        else:
            self.tokens.append(token)

    def lex_quote(self) -> None:
        """Character literal, or a lifetime: a joint ``'`` followed by a name."""
        start_pos = self.pos
        start = self.location()
        if self.read_char_literal(start):
            self.add(self.literal(start_pos, start))
            return

        next_char = self.peek_char()
        if next_char is None or not (next_char.isalpha() or next_char == "_"):
            raise self.error(HostSyntaxError, "unterminated character literal", start)

        self.advance()
        quote = PunctToken(char="'", spacing=Spacing.JOINT, span=self.span_from(start))
        name_start = self.location()
        name = self.read_identifier()
        if self.current_char() == "'":
            raise self.error(
                UnrepresentableSyntaxError,
                "single quoted strings can only hold one character; use double quotes",
                start,
            )
        self.add(quote)
        self.add(IdentToken(text=name, span=self.span_from(name_start)))

    def lex_word(self) -> None:
        """Identifier, or a prefixed string/byte literal such as ``b"..."``."""
        start_pos = self.pos
        start = self.location()
        name = self.read_identifier()
        ch = self.current_char()

        if name in RAW_PREFIXES and (
            ch == '"' or (ch == "#" and self.text[self.pos :].lstrip("#").startswith('"'))
        ):
            self.read_raw_string(start)
        elif ch == '"':
            if name not in STRING_PREFIXES:
                raise self.error(
                    UnrepresentableSyntaxError,
                    f'prefixed strings are reserved; write `{name} "..."` instead of `{name}"..."`',
                    start,
                )
            self.read_string(self.location())
        elif ch == "'" and name == "b":
            if not self.read_char_literal(self.location()):
                raise self.error(HostSyntaxError, "unterminated byte literal", start)
        else:
            self.add(IdentToken(text=name, span=self.span_from(start)))
            return

        self.add(self.literal(start_pos, start))

    def lex_number(self) -> None:
        start = self.location()
        match = _NUMBER_RE.match(self.text, self.pos)
        if match is None:
            raise self.error(HostSyntaxError, f"unknown start of token: {self.current_char()!r}")
        self.advance(match.end() - self.pos)
        self.add(LiteralToken(text=match.group(), span=self.span_from(start)))

    def open_group(self, ch: str) -> None:
        start = self.location()
        self.advance()
        self.stack.append(_OpenGroup(OPEN_DELIMITERS[ch], self.span_from(start)))

    def close_group(self, ch: str) -> None:
        start = self.location()
        if not self.stack:
            raise self.error(HostSyntaxError, f"unexpected closing delimiter: `{ch}`", start)
        group = self.stack[-1]
        if group.delimiter != CLOSE_DELIMITERS[ch]:
            raise make_error(
                HostSyntaxError,
                f"mismatched closing delimiter: `{ch}`",
                group.span_open,
                Span(file=self.file, start=start, end=LineColumn(line=start.line, column=start.column + 1)),
            )
        self.advance()
        self.stack.pop()
        self.add(
            GroupToken(
                delimiter=group.delimiter,
                span_open=group.span_open,
                span_close=self.span_from(start),
                children=tuple(group.children),
            )
        )

    def tokenize(self) -> list[TokenTree]:
        """
        Tokenize the entire source text.

        Returns:
            Top-level tokens; groups hold their own children

        Raises:
            HostSyntaxError: If the text is not valid host syntax
            UnrepresentableSyntaxError: If the text uses a reserved literal form
        """
        while True:
            self.skip_whitespace_and_comments()
            ch = self.current_char()
            if ch is None:
                break

            if ch in OPEN_DELIMITERS:
                self.open_group(ch)
            elif ch in CLOSE_DELIMITERS:
                self.close_group(ch)
            elif ch == '"':
                start_pos, start = self.pos, self.location()
                self.read_string(start)
                self.add(self.literal(start_pos, start))
            elif ch == "'":
                self.lex_quote()
            elif ch in DIGITS:
                self.lex_number()
            elif ch.isalpha() or ch == "_":
                self.lex_word()
            elif ch in PUNCT_CHARS:
                start = self.location()
                self.advance()
                spacing = Spacing.JOINT if self.current_char() in PUNCT_CHARS else Spacing.ALONE
                self.add(PunctToken(char=ch, spacing=spacing, span=self.span_from(start)))
            else:
                raise self.error(HostSyntaxError, f"unknown start of token: {ch!r}")

        if self.stack:
            raise make_error(HostSyntaxError, "unclosed delimiter", self.stack[-1].span_open)

        logger.debug("Tokenized %s into %d top-level tokens", self.file, len(self.tokens))
        return self.tokens


def tokenize(text: str, file: str | Path = "<host>") -> list[TokenTree]:
    """
    Convenience function to tokenize host text.

    Args:
        text: Source text
        file: Source file path

    Returns:
        List of top-level tokens
    """
    lexer = Lexer(text, file)
    return lexer.tokenize()
