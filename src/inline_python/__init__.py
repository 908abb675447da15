"""
inline-python - Python blocks embedded in brace-delimited host source.

Host files write ``python! { ... }`` and ``ct_python! { ... }`` blocks; this
package rebuilds their Python source from host tokens, compiles and runs it,
and reports Python errors at the host lines they came from.
"""

from __future__ import annotations

import re
from importlib.metadata import version as _metadata_version
from pathlib import Path as _Path

from .core import (
    Context,
    Diagnostic,
    EmbeddedCompileError,
    EmbeddedRuntimeError,
    EmbedError,
    PythonBlock,
    compile_block,
    expand_source,
    reconstruct,
    run_block,
    run_compile_time,
    tokenize,
)


def _get_version() -> str:
    """Get version from pyproject.toml (editable) or importlib.metadata (installed)."""
    pyproject = _Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        content = pyproject.read_text()
        if match := re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE):
            return match.group(1)

    try:
        return _metadata_version("inline-python")
    except Exception:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "Context",
    "Diagnostic",
    "EmbedError",
    "EmbeddedCompileError",
    "EmbeddedRuntimeError",
    "PythonBlock",
    "compile_block",
    "expand_source",
    "reconstruct",
    "run_block",
    "run_compile_time",
    "tokenize",
]
