"""
Token model for host macro invocations.

A macro body arrives as a tree of host tokens: identifiers, literals,
punctuation marks and delimited groups. Every token carries the source span
it was read from so reconstructed Python can be mapped back onto the host
file.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class LineColumn(BaseModel):
    """
    A position in a host file.

    Attributes:
        line: Line number (1-indexed)
        column: Column number (0-indexed, in characters)
    """

    line: int
    column: int

    model_config = ConfigDict(frozen=True)

    def __lt__(self, other: LineColumn) -> bool:
        return (self.line, self.column) < (other.line, other.column)

    def __le__(self, other: LineColumn) -> bool:
        return (self.line, self.column) <= (other.line, other.column)

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


class Span(BaseModel):
    """Source range of a token, always within one file."""

    file: str = ""
    start: LineColumn
    end: LineColumn

    model_config = ConfigDict(frozen=True)

    @classmethod
    def at(
        cls,
        line: int,
        column: int,
        end_column: int | None = None,
        *,
        end_line: int | None = None,
        file: str = "",
    ) -> Span:
        """Build a span from plain numbers; a missing end means a one-character span."""
        return cls(
            file=file,
            start=LineColumn(line=line, column=column),
            end=LineColumn(
                line=line if end_line is None else end_line,
                column=column + 1 if end_column is None else end_column,
            ),
        )

    @property
    def line(self) -> int:
        return self.start.line

    @property
    def column(self) -> int:
        return self.start.column

    def join(self, other: Span) -> Span:
        """Span from the start of this span to the end of ``other``."""
        end = other.end if self.end < other.end else self.end
        return Span(file=self.file, start=self.start, end=end)

    def __str__(self) -> str:
        return f"{self.file}:{self.start.line}:{self.start.column + 1}"


class Delimiter(StrEnum):
    """Bracket pair of a group."""

    PARENTHESIS = "parenthesis"
    BRACE = "brace"
    BRACKET = "bracket"
    NONE = "none"

    @property
    def open(self) -> str:
        return _DELIMITER_CHARS[self][0]

    @property
    def close(self) -> str:
        return _DELIMITER_CHARS[self][1]

    @classmethod
    def for_open(cls, char: str) -> Delimiter:
        for delimiter, (open_char, _) in _DELIMITER_CHARS.items():
            if open_char and open_char == char:
                return delimiter
        raise ValueError(f"not an opening delimiter: {char!r}")


_DELIMITER_CHARS: dict[Delimiter, tuple[str, str]] = {
    Delimiter.PARENTHESIS: ("(", ")"),
    Delimiter.BRACE: ("{", "}"),
    Delimiter.BRACKET: ("[", "]"),
    Delimiter.NONE: ("", ""),
}


class Spacing(StrEnum):
    """Whether a punctuation mark is immediately followed by another one."""

    JOINT = "joint"
    ALONE = "alone"


class IdentToken(BaseModel):
    """An identifier or keyword."""

    kind: Literal["ident"] = "ident"
    text: str
    span: Span

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.text


class LiteralToken(BaseModel):
    """A number, string, byte or character literal, kept as written."""

    kind: Literal["literal"] = "literal"
    text: str
    span: Span

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.text


class PunctToken(BaseModel):
    """A single punctuation character."""

    kind: Literal["punct"] = "punct"
    char: str
    spacing: Spacing = Spacing.ALONE
    span: Span

    model_config = ConfigDict(frozen=True)

    @property
    def is_joint(self) -> bool:
        return self.spacing == Spacing.JOINT

    def __str__(self) -> str:
        return self.char


class GroupToken(BaseModel):
    """
    A delimited group owning its children.

    The open and close delimiters have their own spans; ``span`` covers the
    whole group.
    """

    kind: Literal["group"] = "group"
    delimiter: Delimiter
    span_open: Span
    span_close: Span
    children: tuple[TokenTree, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def span(self) -> Span:
        return self.span_open.join(self.span_close)

    def __str__(self) -> str:
        inner = " ".join(str(child) for child in self.children)
        return f"{self.delimiter.open}{inner}{self.delimiter.close}"


TokenTree = Annotated[
    Union[GroupToken, PunctToken, IdentToken, LiteralToken],
    Field(discriminator="kind"),
]

GroupToken.model_rebuild()


def iter_spans(tokens: Iterable[TokenTree]) -> Iterator[Span]:
    """
    Walk every span of a token tree in document order.

    Groups contribute their open span, then their children, then their close
    span. The walk keeps its own stack, so nesting depth is not limited by
    the interpreter's recursion limit.
    """
    stack: list[tuple[Iterator[TokenTree], Span | None]] = [(iter(tokens), None)]
    while stack:
        children, span_close = stack[-1]
        token = next(children, None)
        if token is None:
            stack.pop()
            if span_close is not None:
                yield span_close
        elif isinstance(token, GroupToken):
            yield token.span_open
            stack.append((iter(token.children), token.span_close))
        else:
            yield token.span


def outer_span(tokens: Iterable[TokenTree]) -> Span | None:
    """Span covering the first through the last token, or None when empty."""
    spans = list(iter_spans(tokens))
    if not spans:
        return None
    return spans[0].join(spans[-1])
