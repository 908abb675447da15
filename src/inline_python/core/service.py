"""
The Python interpreter as an execution service.

Compiling and running embedded blocks goes through this module only. The
interpreter is one process-wide resource (running a block may swap
``sys.stdout``), so callers hold it through ``interpreter()`` for the whole
compile and execute call.

Failures come back as two exception types with plain fields, so the rest of
the package never has to look inside Python exception or traceback objects.
"""

from __future__ import annotations

import builtins
import io
import logging
import threading
import traceback
from collections.abc import Iterator
from contextlib import contextmanager, redirect_stdout
from dataclasses import dataclass
from types import CodeType
from typing import Any

from .errors import InterpreterBusyError

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_owner: int | None = None


@dataclass(frozen=True)
class Frame:
    """One traceback entry: the file a code object came from and its line."""

    file: str
    line: int


class CompileFailure(Exception):
    """
    The source did not compile.

    Attributes:
        line: Line of the error, or None when the interpreter gave none
        message: Short message (``invalid syntax``)
        detail: Full message including file and line
    """

    def __init__(self, line: int | None, message: str, detail: str = ""):
        self.line = line
        self.message = message
        self.detail = detail or message
        super().__init__(self.detail)


class RuntimeFailure(Exception):
    """
    The code raised while running.

    Attributes:
        traceback: Frames from outermost to innermost
        message: Exception type and message (``ZeroDivisionError: division by zero``)
    """

    def __init__(self, traceback: list[Frame], message: str):
        self.traceback = traceback
        self.message = message
        super().__init__(message)


@contextmanager
def interpreter() -> Iterator[None]:
    """
    Hold the interpreter exclusively for the duration of the block.

    The lock is not reentrant: embedded code that tries to run another block
    while one is running gets an ``InterpreterBusyError`` instead of a
    deadlock.
    """
    global _owner
    thread = threading.get_ident()
    # Read without the lock: `_owner` only equals this thread's id while this
    # thread holds `_lock`, and only the holder writes it.
    if _owner == thread:
        raise InterpreterBusyError("the interpreter is already running a block on this thread")
    with _lock:
        _owner = thread
        try:
            yield
        finally:
            _owner = None


def new_namespace() -> dict[str, Any]:
    """Fresh globals for a block, laid out like a ``__main__`` module."""
    return {"__name__": "__main__", "__builtins__": builtins}


def compile_source(source: str, filename: str) -> CodeType:
    """
    Compile reconstructed source as a module.

    Raises:
        CompileFailure: If the source is not valid Python
    """
    logger.debug("Compiling %d characters from %s", len(source), filename)
    try:
        return compile(source, filename, "exec", dont_inherit=True)
    except SyntaxError as exc:
        raise CompileFailure(exc.lineno, exc.msg, str(exc)) from exc
    except ValueError as exc:
        # e.g. source containing null bytes
        raise CompileFailure(None, str(exc)) from exc


def execute(code: CodeType, namespace: dict[str, Any], *, capture_output: bool = False) -> str:
    """
    Run compiled code in ``namespace``.

    Args:
        code: Code object from ``compile_source``
        namespace: Globals of the block; updated in place
        capture_output: Collect everything written to ``sys.stdout``

    Returns:
        Captured output, or an empty string when not capturing

    Raises:
        RuntimeFailure: If the code raises
    """
    buffer = io.StringIO()
    try:
        if capture_output:
            with redirect_stdout(buffer):
                exec(code, namespace)
        else:
            exec(code, namespace)
    except (Exception, SystemExit) as exc:
        frames = [
            Frame(file=entry.filename, line=entry.lineno)
            for entry in traceback.extract_tb(exc.__traceback__)
            if entry.lineno is not None
        ]
        message = "".join(traceback.format_exception_only(type(exc), exc)).strip()
        logger.debug("Block from %s raised %s", code.co_filename, message)
        raise RuntimeFailure(frames, message) from exc
    return buffer.getvalue()
