"""
The ``python!`` and ``ct_python!`` macros.

``python! { ... }`` blocks are compiled ahead of time into a ``PythonBlock``
that the host program runs later, with captured host variables bound into
its globals. ``ct_python! { ... }`` blocks are run immediately; whatever they
print is host code that replaces the invocation.

Every failure is raised as one ``EmbedError`` carrying a diagnostic anchored
at the tightest host span available, or at the whole invocation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import CodeType

from .captures import CAPTURE_PREFIX, CaptureBinding
from .diagnostics import (
    Diagnostic,
    diagnostic_for_compile_failure,
    diagnostic_for_runtime_failure,
)
from .errors import (
    EmbeddedCompileError,
    EmbeddedRuntimeError,
    EmbedError,
    HostSyntaxError,
    OutputNotParseableError,
    UnrepresentableSyntaxError,
)
from .lexer import tokenize
from .manifest import EmbedConfig
from .reconstruct import reconstruct
from .service import (
    CompileFailure,
    RuntimeFailure,
    compile_source,
    execute,
    interpreter,
    new_namespace,
)
from .tokens import GroupToken, IdentToken, PunctToken, Span, TokenTree

logger = logging.getLogger(__name__)


@dataclass
class PythonBlock:
    """
    A compiled ``python!`` block, ready to run.

    Attributes:
        code: Compiled module code
        bindings: Captured host variables, in placeholder order
        tokens: Body tokens, kept to map runtime errors back to the host file
        filename: Host file the block was compiled from
        source: Reconstructed Python
    """

    code: CodeType
    bindings: list[CaptureBinding]
    tokens: Sequence[TokenTree]
    filename: str
    source: str


@dataclass
class CompileTimeOutput:
    """What a ``ct_python!`` block printed, and the host tokens it parses to."""

    text: str
    tokens: list[TokenTree] = field(default_factory=list)


@dataclass(frozen=True)
class Invocation:
    """A ``name! { ... }`` macro call found in host tokens."""

    name: IdentToken
    bang: PunctToken
    body: GroupToken

    @property
    def macro(self) -> str:
        return self.name.text

    @property
    def tokens(self) -> Sequence[TokenTree]:
        return self.body.children

    @property
    def spans(self) -> tuple[Span, Span]:
        """First and last span of the whole invocation."""
        return (self.name.span, self.body.span_close)


def compile_block(
    tokens: Sequence[TokenTree], filename: str, *, prefix: str = CAPTURE_PREFIX
) -> PythonBlock:
    """
    Reconstruct and compile the body of a ``python!`` block.

    Raises:
        InvalidIndentError: If the block's indentation cannot be rebuilt
        UnrepresentableSyntaxError: If a capture marker has no name
        EmbeddedCompileError: If the Python does not compile
    """
    reconstruction = reconstruct(tokens, capture=True, prefix=prefix)
    with interpreter():
        try:
            code = compile_source(reconstruction.source, filename)
        except CompileFailure as failure:
            diagnostic = diagnostic_for_compile_failure(tokens, failure)
            raise EmbeddedCompileError.from_diagnostic(diagnostic) from failure
    return PythonBlock(
        code=code,
        bindings=reconstruction.captures.bindings(),
        tokens=tokens,
        filename=filename,
        source=reconstruction.source,
    )


def run_compile_time(tokens: Sequence[TokenTree], filename: str) -> CompileTimeOutput:
    """
    Run the body of a ``ct_python!`` block and parse its output as host code.

    Captures are not available at compile time; a ``'`` stays as written.

    Raises:
        EmbeddedCompileError: If the Python does not compile
        EmbeddedRuntimeError: If the Python raises
        OutputNotParseableError: If the output is not valid host code
    """
    reconstruction = reconstruct(tokens, capture=False)
    with interpreter():
        try:
            code = compile_source(reconstruction.source, filename)
        except CompileFailure as failure:
            diagnostic = diagnostic_for_compile_failure(tokens, failure)
            raise EmbeddedCompileError.from_diagnostic(diagnostic) from failure
        try:
            text = execute(code, new_namespace(), capture_output=True)
        except RuntimeFailure as failure:
            diagnostic = diagnostic_for_runtime_failure(tokens, failure, filename)
            raise EmbeddedRuntimeError.from_diagnostic(diagnostic) from failure

    try:
        generated = tokenize(text, f"<{filename} output>")
    except (HostSyntaxError, UnrepresentableSyntaxError) as e:
        raise OutputNotParseableError(f"produced invalid host code: {e.message}") from e
    logger.debug("Compile-time block in %s produced %d tokens", filename, len(generated))
    return CompileTimeOutput(text=text, tokens=generated)


def find_invocations(tokens: Sequence[TokenTree], names: Sequence[str]) -> list[Invocation]:
    """Every ``name! { ... }`` call with one of ``names``, in document order."""
    return list(_iter_invocations(tokens, set(names)))


def _iter_invocations(tokens: Sequence[TokenTree], names: set[str]) -> Iterator[Invocation]:
    # One (tokens, index) entry per group being searched
    stack: list[tuple[Sequence[TokenTree], int]] = [(tokens, 0)]
    while stack:
        level, index = stack.pop()
        if index >= len(level):
            continue
        token = level[index]
        if (
            isinstance(token, IdentToken)
            and token.text in names
            and index + 2 < len(level)
            and isinstance(level[index + 1], PunctToken)
            and level[index + 1].char == "!"
            and isinstance(level[index + 2], GroupToken)
        ):
            yield Invocation(name=token, bang=level[index + 1], body=level[index + 2])
            stack.append((level, index + 3))
            continue
        stack.append((level, index + 1))
        if isinstance(token, GroupToken):
            stack.append((token.children, 0))


def anchor_error(error: EmbedError, invocation: Invocation) -> EmbedError:
    """The same error, anchored at the invocation when it had no spans."""
    if error.diagnostic.is_anchored:
        return error
    return type(error).from_diagnostic(error.diagnostic.anchored_at(invocation.spans))


def check_source(
    text: str, filename: str | Path, config: EmbedConfig | None = None
) -> list[Diagnostic]:
    """
    Compile every block of a host file and collect the diagnostics.

    ``python!`` blocks are compiled; ``ct_python!`` blocks are run, as the
    host compiler would do.
    """
    config = config or EmbedConfig()
    filename = str(filename)
    try:
        tokens = tokenize(text, filename)
    except EmbedError as e:
        return [e.diagnostic]

    diagnostics: list[Diagnostic] = []
    for invocation in find_invocations(tokens, config.macro_names):
        try:
            if invocation.macro == config.inline_macro:
                compile_block(invocation.tokens, filename, prefix=config.capture_prefix)
            else:
                run_compile_time(invocation.tokens, filename)
        except EmbedError as e:
            diagnostics.append(anchor_error(e, invocation).diagnostic)
    return diagnostics


def compile_source_blocks(
    text: str, filename: str | Path, config: EmbedConfig | None = None
) -> list[PythonBlock]:
    """Compile the ``python!`` blocks of a host file, in order."""
    config = config or EmbedConfig()
    filename = str(filename)
    blocks = []
    for invocation in find_invocations(tokenize(text, filename), [config.inline_macro]):
        try:
            blocks.append(compile_block(invocation.tokens, filename, prefix=config.capture_prefix))
        except EmbedError as e:
            raise anchor_error(e, invocation) from e
    return blocks


def expand_source(text: str, filename: str | Path, config: EmbedConfig | None = None) -> str:
    """
    Replace every ``ct_python!`` invocation with the host code it prints.

    Raises:
        EmbedError: The first failing block; nothing is expanded then
    """
    config = config or EmbedConfig()
    filename = str(filename)
    invocations = find_invocations(tokenize(text, filename), [config.compile_time_macro])

    replacements: list[tuple[int, int, str]] = []
    line_starts = _line_starts(text)
    for invocation in invocations:
        try:
            output = run_compile_time(invocation.tokens, filename)
        except EmbedError as e:
            raise anchor_error(e, invocation) from e
        first, last = invocation.spans
        start = line_starts[first.start.line - 1] + first.start.column
        end = line_starts[last.end.line - 1] + last.end.column
        replacements.append((start, end, output.text.strip()))

    for start, end, replacement in reversed(replacements):
        text = text[:start] + replacement + text[end:]
    logger.debug("Expanded %d compile-time blocks in %s", len(replacements), filename)
    return text


def _line_starts(text: str) -> list[int]:
    starts = [0]
    for index, char in enumerate(text):
        if char == "\n":
            starts.append(index + 1)
    return starts
