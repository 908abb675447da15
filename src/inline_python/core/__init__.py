"""
Core of inline-python: host tokens in, Python source and diagnostics out.
"""

from .captures import CaptureBinding, CaptureRegistry
from .context import Context, run_block
from .diagnostics import Diagnostic, spans_for_line
from .errors import (
    EmbeddedCompileError,
    EmbeddedRuntimeError,
    EmbedError,
    HostSyntaxError,
    InvalidIndentError,
    OutputNotParseableError,
    UnrepresentableSyntaxError,
)
from .lexer import tokenize
from .macros import (
    PythonBlock,
    check_source,
    compile_block,
    expand_source,
    find_invocations,
    run_compile_time,
)
from .reconstruct import reconstruct

__all__ = [
    "CaptureBinding",
    "CaptureRegistry",
    "Context",
    "Diagnostic",
    "EmbedError",
    "EmbeddedCompileError",
    "EmbeddedRuntimeError",
    "HostSyntaxError",
    "InvalidIndentError",
    "OutputNotParseableError",
    "PythonBlock",
    "UnrepresentableSyntaxError",
    "check_source",
    "compile_block",
    "expand_source",
    "find_invocations",
    "reconstruct",
    "run_block",
    "run_compile_time",
    "spans_for_line",
    "tokenize",
]
