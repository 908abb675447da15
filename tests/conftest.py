"""Shared pytest fixtures for inline-python tests."""

from pathlib import Path

import pytest

from inline_python.core.lexer import tokenize
from inline_python.core.macros import Invocation, find_invocations
from inline_python.core.tokens import TokenTree

HOST_FILE = "src/main.rs"

COUNTING_PROGRAM = """\
fn main() {
    let n = 5;
    python! {
        for i in range('n):
            print(i)
    }
}
"""


def invocation_in(text: str, file: str = HOST_FILE) -> Invocation:
    """The first python!/ct_python! invocation of a host text."""
    invocations = find_invocations(tokenize(text, file), ["python", "ct_python"])
    assert invocations, "no macro invocation in host text"
    return invocations[0]


def body_of(text: str, file: str = HOST_FILE) -> tuple[TokenTree, ...]:
    """Body tokens of the first macro invocation of a host text."""
    return tuple(invocation_in(text, file).tokens)


@pytest.fixture
def counting_tokens() -> tuple[TokenTree, ...]:
    """Body of the counting example: a loop over range('n) printing i."""
    return body_of(COUNTING_PROGRAM)


@pytest.fixture
def host_project(tmp_path: Path) -> Path:
    """Create a temporary host project with an inline_python.toml."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "main.rs").write_text(COUNTING_PROGRAM)
    (tmp_path / "inline_python.toml").write_text(
        """
[project]
name = "demo"
sources = ["src/"]
extensions = [".rs"]
"""
    )
    return tmp_path


@pytest.fixture
def body():
    """Helper returning the body tokens of the first block in a host text."""
    return body_of


@pytest.fixture
def invocation():
    """Helper returning the first block invocation in a host text."""
    return invocation_in
