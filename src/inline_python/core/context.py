"""
Execution context for compiled ``python!`` blocks.

A ``Context`` is a set of Python globals. Running several blocks in the same
context shares variables between them, and the host can read results back
with ``get``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .captures import resolve
from .diagnostics import diagnostic_for_runtime_failure
from .errors import EmbeddedRuntimeError
from .macros import PythonBlock
from .service import RuntimeFailure, execute, interpreter, new_namespace
from .tokens import outer_span

logger = logging.getLogger(__name__)


class Context:
    """
    Python globals that outlive a single block.

    Example:
        context = Context()
        context.run(compile_block(tokens, "main.rs"), {"n": 5})
        context.get("result")
    """

    def __init__(self) -> None:
        self.globals: dict[str, Any] = new_namespace()

    def run(self, block: PythonBlock, scope: Mapping[str, Any] | None = None) -> None:
        """
        Bind the block's captures from ``scope`` and run it in this context.

        Raises:
            UnboundCaptureError: If a captured name is missing from ``scope``
            EmbeddedRuntimeError: If the block raises; the diagnostic points at
                the block's statement that failed, or at the whole block
        """
        values = resolve(block.bindings, scope or {})
        with interpreter():
            self.globals.update(values)
            try:
                execute(block.code, self.globals)
            except RuntimeFailure as failure:
                diagnostic = diagnostic_for_runtime_failure(block.tokens, failure, block.filename)
                span = outer_span(block.tokens)
                if span is not None:
                    diagnostic = diagnostic.anchored_at((span, span))
                raise EmbeddedRuntimeError.from_diagnostic(diagnostic) from failure
        logger.debug("Ran block from %s", block.filename)

    def get(self, name: str) -> Any:
        """
        Get a global variable.

        Raises:
            KeyError: If the context has no such variable
        """
        try:
            return self.globals[name]
        except KeyError:
            raise KeyError(f"Python context does not contain a variable named `{name}`") from None

    def set(self, name: str, value: Any) -> None:
        self.globals[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self.globals


def run_block(block: PythonBlock, scope: Mapping[str, Any] | None = None) -> Context:
    """Run a block in a fresh context and return the context."""
    context = Context()
    context.run(block, scope)
    return context
