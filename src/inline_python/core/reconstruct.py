"""
Rebuild Python source text from host tokens.

The host tokenizer throws whitespace away, but Python is indentation
sensitive. Every token knows where it was written, so the layout can be
reproduced: one newline per host line advanced, then indentation relative
to the first line of the block, and spaces between tokens on a line.

Two rewrites happen while emitting:

- ``'name`` (a joint ``'`` and an identifier) becomes the placeholder
  ``_RUST_name`` and is recorded in the capture registry.
- ``##`` becomes ``//``, which the host cannot write because it starts a
  comment.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from .captures import CAPTURE_PREFIX, CaptureRegistry
from .errors import InvalidIndentError, UnrepresentableSyntaxError, make_error
from .tokens import GroupToken, IdentToken, LiteralToken, PunctToken, Span, TokenTree

logger = logging.getLogger(__name__)

CAPTURE_MARKER = "'"
ESCAPE_MARK = "#"


@dataclass
class Location:
    """
    Write position in the host file's coordinates.

    Attributes:
        line: Host line the output currently ends on (1-indexed)
        column: Host column the output currently ends at (0-indexed)
        first_indent: Column of the first line advanced to; set once
    """

    line: int = 1
    column: int = 0
    first_indent: int | None = None


@dataclass
class Reconstruction:
    """Python source rebuilt from a token tree."""

    source: str
    captures: CaptureRegistry
    location: Location = field(default_factory=Location)


@dataclass
class _Level:
    """Tokens of one nesting level still to be written; `group` is None at the top."""

    tokens: Sequence[TokenTree]
    group: GroupToken | None = None
    index: int = 0

    def next_token(self) -> TokenTree | None:
        # The token after the one at `index`, for two-token rewrites
        if self.index + 1 < len(self.tokens):
            return self.tokens[self.index + 1]
        return None


class _Writer:
    """Single reconstruction pass over one token tree."""

    def __init__(self, capture: bool, prefix: str):
        self.capture = capture
        self.prefix = prefix
        self.python = ""
        self.loc = Location()
        self.captures = CaptureRegistry()

    def emit(self, text: str) -> None:
        self.python += text

    def add_whitespace(self, span: Span) -> None:
        line = span.start.line
        column = span.start.column
        if line > self.loc.line:
            self.emit("\n" * (line - self.loc.line))
            self.loc.line = line
            if self.loc.first_indent is None:
                self.loc.first_indent = column
            indent = column - self.loc.first_indent
            if indent < 0:
                raise make_error(InvalidIndentError, "invalid indent", span)
            self.emit(" " * indent)
            self.loc.column = column
        elif line == self.loc.line and column > self.loc.column:
            self.emit(" " * (column - self.loc.column))
            self.loc.column = column

    def move_to_end(self, span: Span) -> None:
        self.loc.line = span.end.line
        self.loc.column = span.end.column

    def add_tokens(self, tokens: Sequence[TokenTree]) -> None:
        levels = [_Level(tokens)]
        while levels:
            level = levels[-1]
            if level.index >= len(level.tokens):
                levels.pop()
                if level.group is not None:
                    self.close_group(level.group)
                continue

            token = level.tokens[level.index]
            next_token = level.next_token()
            level.index += 1

            if isinstance(token, GroupToken):
                self.open_group(token)
                levels.append(_Level(token.children, token))
            elif isinstance(token, PunctToken):
                if self.is_capture(token):
                    if not isinstance(next_token, IdentToken):
                        raise make_error(
                            UnrepresentableSyntaxError,
                            "expected a name after `'`",
                            token.span,
                        )
                    self.add_capture(token, next_token)
                    level.index += 1
                elif self.is_escape_pair(token, next_token):
                    self.add_whitespace(token.span)
                    self.emit("//")
                    self.loc.column += 2
                    level.index += 1
                else:
                    self.add_whitespace(token.span)
                    self.emit(token.char)
                    self.loc.column += 1
            elif isinstance(token, LiteralToken):
                self.add_whitespace(token.span)
                self.add_literal(token)
            else:
                self.add_whitespace(token.span)
                self.emit(token.text)
                self.move_to_end(token.span)

    def open_group(self, group: GroupToken) -> None:
        self.add_whitespace(group.span)
        self.add_whitespace(group.span_open)
        self.emit(group.delimiter.open)
        self.loc.column += len(group.delimiter.open)

    def close_group(self, group: GroupToken) -> None:
        self.add_whitespace(group.span_close)
        self.emit(group.delimiter.close)
        self.loc.column += len(group.delimiter.close)

    def is_capture(self, token: PunctToken) -> bool:
        return self.capture and token.char == CAPTURE_MARKER and token.is_joint

    @staticmethod
    def is_escape_pair(token: PunctToken, next_token: TokenTree | None) -> bool:
        return (
            token.char == ESCAPE_MARK
            and token.is_joint
            and isinstance(next_token, PunctToken)
            and next_token.char == ESCAPE_MARK
        )

    def add_capture(self, marker: PunctToken, name: IdentToken) -> None:
        self.add_whitespace(marker.span)
        placeholder = f"{self.prefix}{name.text}"
        self.emit(placeholder)
        # The cursor follows the host text (`'name`), not the placeholder.
        self.loc.column += len(placeholder) - len(self.prefix) + 1
        self.captures.register(placeholder, name)

    def add_literal(self, token: LiteralToken) -> None:
        # `f ".."` in the host means `f".."` in Python.
        before_space = self.python[-2:-1]
        if (
            token.text.startswith('"')
            and self.python.endswith(" ")
            and before_space.isascii()
            and before_space.isalpha()
        ):
            self.python = self.python[:-1]
        self.emit(token.text)
        self.move_to_end(token.span)


def reconstruct(
    tokens: Sequence[TokenTree],
    *,
    capture: bool = True,
    prefix: str = CAPTURE_PREFIX,
) -> Reconstruction:
    """
    Turn a token tree into Python source with its original layout.

    Line numbers of the result equal host-file line numbers, so errors
    reported by the interpreter can be mapped back to host tokens.

    Args:
        tokens: Body of the macro invocation
        capture: Rewrite ``'name`` captures into placeholders; compile-time
            blocks cannot capture and leave the ``'`` in place
        prefix: Placeholder prefix for captured names

    Returns:
        Reconstruction with the source and the capture registry

    Raises:
        InvalidIndentError: If a line is less indented than the first line
        UnrepresentableSyntaxError: If a capture marker is not followed by a name
    """
    writer = _Writer(capture, prefix)
    writer.add_tokens(tokens)
    source = writer.python
    logger.debug(
        "Reconstructed %d lines with %d captures", source.count("\n") + 1, len(writer.captures)
    )
    return Reconstruction(source=source, captures=writer.captures, location=writer.loc)
