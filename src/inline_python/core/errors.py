"""
Error types for embedding Python in host source files.
"""

from .diagnostics import Diagnostic
from .tokens import Span


class EmbedError(Exception):
    """Base exception for all inline-python errors."""

    def __init__(self, message: str, spans: tuple[Span, Span] | None = None):
        self.diagnostic = Diagnostic(message=message, spans=spans)
        super().__init__(self._format_message())

    @classmethod
    def from_diagnostic(cls, diagnostic: Diagnostic) -> "EmbedError":
        return cls(diagnostic.message, diagnostic.spans)

    @property
    def message(self) -> str:
        return self.diagnostic.message

    @property
    def spans(self) -> tuple[Span, Span] | None:
        return self.diagnostic.spans

    def _format_message(self) -> str:
        """Format error message with location if available."""
        span = self.diagnostic.span
        if span is not None:
            return f"{span}: {self.diagnostic.text}"
        return self.diagnostic.text


class HostSyntaxError(EmbedError):
    """
    Raised when host source text cannot be tokenized.

    Examples:
    - Unbalanced or mismatched delimiters
    - Unterminated string literals
    - Characters outside the host alphabet
    """

    pass


class InvalidIndentError(EmbedError):
    """
    Raised when a line of a block is less indented than its first line.
    """

    pass


class UnrepresentableSyntaxError(EmbedError):
    """
    Raised when Python syntax cannot pass through the host tokenizer.

    Examples:
    - Single-quoted strings longer than one character
    - Prefixed strings written without a space (``f"..."``)
    - A capture marker that is not followed by a name
    """

    pass


class EmbeddedCompileError(EmbedError):
    """Raised when the reconstructed Python fails to compile."""

    pass


class EmbeddedRuntimeError(EmbedError):
    """Raised when embedded Python raises while running."""

    pass


class OutputNotParseableError(EmbedError):
    """Raised when compile-time Python prints something that is not host code."""

    pass


class UnboundCaptureError(EmbedError):
    """Raised when a captured host name has no value in the given scope."""

    pass


class InterpreterBusyError(EmbedError):
    """Raised when the interpreter is re-entered by the thread holding it."""

    pass


class ManifestError(EmbedError):
    """Raised when inline_python.toml cannot be read."""

    pass


def make_error(
    cls: type[EmbedError],
    message: str,
    first: Span | None = None,
    last: Span | None = None,
) -> EmbedError:
    """
    Helper to create an error anchored at one or two spans.

    Args:
        cls: Error class to instantiate
        message: Error description
        first: Span where the error starts
        last: Span where the error ends; defaults to ``first``

    Returns:
        Error with its diagnostic attached
    """
    if first is None:
        return cls(message)
    return cls(message, (first, last or first))
