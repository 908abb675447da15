"""
Diagnostics for embedded Python.

Maps compile and runtime failures reported by the interpreter back onto
the host tokens they came from. Reconstructed Python keeps the line numbers
of the host file, so a Python line number selects the host tokens starting
on that line; the first and last of them anchor the error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from .tokens import Span, TokenTree, iter_spans

if TYPE_CHECKING:
    from .service import CompileFailure, RuntimeFailure

logger = logging.getLogger(__name__)

MESSAGE_PREFIX = "python"


class Diagnostic(BaseModel):
    """
    A host-level error message for an embedded block.

    Attributes:
        message: Human-readable description, without the ``python:`` prefix
        spans: First and last host span of the error, or None when the error
            could not be tied to a line of the block
    """

    message: str
    spans: tuple[Span, Span] | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def text(self) -> str:
        return f"{MESSAGE_PREFIX}: {self.message}"

    @property
    def is_anchored(self) -> bool:
        return self.spans is not None

    @property
    def span(self) -> Span | None:
        """The single reporting span joining the first and last span."""
        if self.spans is None:
            return None
        first, last = self.spans
        return first.join(last)

    def anchored_at(self, spans: tuple[Span, Span] | None) -> Diagnostic:
        """Fall back to ``spans`` (usually the whole invocation) when unanchored."""
        if self.spans is not None or spans is None:
            return self
        return self.model_copy(update={"spans": spans})

    def format(self, source: str | None = None) -> str:
        """
        Format the diagnostic for people.

        Args:
            source: Text of the host file; when given, the offending line is
                shown with the span underlined

        Returns:
            Formatted string like: "main.rs:3:9\\npython: name 'x' is not defined"
        """
        span = self.span
        if span is None:
            return self.text

        location = str(span)
        if source is None:
            return f"{location}\n{self.text}"
        return f"{location}\n{_format_snippet(source, span)}\n{self.text}"


def _format_snippet(source: str, span: Span) -> str:
    """Format the first line of a span with a line number and carets under it."""
    lines = source.splitlines()
    if not 1 <= span.start.line <= len(lines):
        return ""

    text = lines[span.start.line - 1]
    prefix = f"{span.start.line:4d} | "
    if span.end.line == span.start.line:
        width = max(1, span.end.column - span.start.column)
    else:
        width = max(1, len(text) - span.start.column)
    marker = " " * (len(prefix) + span.start.column) + "^" * width
    return f"{prefix}{text}\n{marker}"


def spans_for_line(tokens: Iterable[TokenTree], line: int) -> tuple[Span, Span] | None:
    """
    Get the first and last span starting on a line of the host file.

    Every leaf and both delimiters of every group take part, in document
    order, so the result covers the leftmost and rightmost token of the line
    however deeply they are nested.
    """
    spans: tuple[Span, Span] | None = None
    for span in iter_spans(tokens):
        if span.start.line == line:
            spans = (span, span) if spans is None else (spans[0], span)
    return spans


def diagnostic_for_compile_failure(
    tokens: Iterable[TokenTree], failure: CompileFailure
) -> Diagnostic:
    """Anchor a compile failure on its line, or report it unanchored."""
    if failure.line is not None:
        spans = spans_for_line(tokens, failure.line)
        if spans is not None:
            return Diagnostic(message=failure.message, spans=spans)
        logger.debug("No host tokens on line %s for compile failure", failure.line)
    return Diagnostic(message=failure.detail or failure.message)


def diagnostic_for_runtime_failure(
    tokens: Iterable[TokenTree], failure: RuntimeFailure, filename: str
) -> Diagnostic:
    """
    Anchor a runtime failure on the outermost traceback frame of the host file.

    That frame is the top-level statement of the block that was running.
    Only frames whose file is exactly ``filename`` (the name the block was
    compiled under) are considered; deeper frames may belong to functions
    defined by other blocks of the same file.
    """
    for frame in failure.traceback:
        if frame.file != filename:
            continue
        spans = spans_for_line(tokens, frame.line)
        if spans is not None:
            return Diagnostic(message=failure.message, spans=spans)
        logger.debug("No host tokens on line %s for runtime failure", frame.line)
        break
    return Diagnostic(message=failure.message)
