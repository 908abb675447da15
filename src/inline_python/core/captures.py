"""
Capture registry for host variables referenced from embedded Python.

Writing ``'name`` inside a block captures the host variable ``name``. The
reconstructed Python refers to it through a placeholder global
(``_RUST_name``), and the registry remembers which host identifier each
placeholder stands for so the runtime can bind it before the block runs.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from .errors import UnboundCaptureError, make_error
from .tokens import IdentToken

CAPTURE_PREFIX = "_RUST_"


class CaptureBinding(BaseModel):
    """Set global ``placeholder`` to the value of host identifier ``identifier``."""

    placeholder: str
    identifier: IdentToken

    model_config = ConfigDict(frozen=True)

    @property
    def host_name(self) -> str:
        return self.identifier.text


class CaptureRegistry:
    """
    Placeholder names mapped to the host identifiers they came from.

    Registration is idempotent by placeholder name: the first identifier
    wins and later captures of the same name reuse it. Iteration is always
    in placeholder name order.
    """

    def __init__(self) -> None:
        self._entries: dict[str, IdentToken] = {}

    def register(self, placeholder: str, identifier: IdentToken) -> IdentToken:
        """Record a capture, returning the identifier kept for the placeholder."""
        return self._entries.setdefault(placeholder, identifier)

    def names(self) -> list[str]:
        return sorted(self._entries)

    def bindings(self) -> list[CaptureBinding]:
        """Binding instructions, one per placeholder, in name order."""
        return [
            CaptureBinding(placeholder=name, identifier=self._entries[name])
            for name in self.names()
        ]

    def __getitem__(self, placeholder: str) -> IdentToken:
        return self._entries[placeholder]

    def __contains__(self, placeholder: object) -> bool:
        return placeholder in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CaptureRegistry):
            return NotImplemented
        return self.bindings() == other.bindings()

    def __repr__(self) -> str:
        return f"CaptureRegistry({self.names()!r})"


def resolve(bindings: list[CaptureBinding], scope: Mapping[str, Any]) -> dict[str, Any]:
    """
    Look up the host value for every binding.

    Args:
        bindings: Binding instructions of a compiled block
        scope: Host variables by name

    Returns:
        Placeholder globals ready to be merged into the block's namespace

    Raises:
        UnboundCaptureError: If a captured name is missing from ``scope``
    """
    values: dict[str, Any] = {}
    for binding in bindings:
        if binding.host_name not in scope:
            raise make_error(
                UnboundCaptureError,
                f"cannot find value `{binding.host_name}` in this scope",
                binding.identifier.span,
            )
        values[binding.placeholder] = scope[binding.host_name]
    return values
