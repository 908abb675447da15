"""
inline-python CLI.

Commands:
- render: Show the Python rebuilt from each block of a host file
- check: Compile every block and report diagnostics at host locations
- expand: Replace ct_python! blocks with the host code they print
- run: Run the python! blocks of a host file in one context
"""

import ast
import logging
import os
import platform
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from inline_python import __version__
from inline_python.core.context import Context
from inline_python.core.diagnostics import Diagnostic
from inline_python.core.errors import EmbedError
from inline_python.core.fileset import discover_host_files
from inline_python.core.lexer import tokenize
from inline_python.core.macros import check_source, compile_source_blocks, expand_source, find_invocations
from inline_python.core.manifest import MANIFEST_NAME, load_manifest
from inline_python.core.reconstruct import reconstruct

LOG_ENV_VAR = "INLINE_PYTHON_LOG"

console = Console()

app = typer.Typer(
    help="""inline-python - Python blocks inside host source files

  • render: show the Python rebuilt from each block
  • check: compile every block, report errors at host locations
  • expand: replace ct_python! blocks with their output
  • run: run python! blocks with host variables from --var
""",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"inline-python version {__version__}")
        typer.echo(f"  Python:        {platform.python_implementation()} {platform.python_version()}")
        typer.echo(f"  Platform:      {platform.system()} {platform.release()}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.getenv(LOG_ENV_VAR, "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """inline-python CLI main callback for global options."""
    _configure_logging(verbose)


def _read(path: Path) -> str:
    if not path.is_file():
        typer.echo(f"Error: no such file: {path}", err=True)
        raise typer.Exit(code=1)
    return path.read_text(encoding="utf-8")


def _print_human_diagnostic(diagnostic: Diagnostic, path: Path, source: str) -> None:
    if diagnostic.is_anchored:
        typer.echo(f"ERROR: {diagnostic.format(source)}", err=True)
    else:
        typer.echo(f"ERROR: {path}\n{diagnostic.text}", err=True)


def _print_vscode_diagnostic(diagnostic: Diagnostic, path: Path) -> None:
    """Print a diagnostic as file:line:col: severity: message."""
    span = diagnostic.span
    if span is None:
        typer.echo(f"{path}:1:1: error: {diagnostic.text}", err=True)
    else:
        typer.echo(
            f"{path}:{span.start.line}:{span.start.column + 1}: error: {diagnostic.text}",
            err=True,
        )


def _parse_var(assignment: str) -> tuple[str, Any]:
    name, sep, raw = assignment.partition("=")
    if not sep or not name.strip():
        raise typer.BadParameter(f"expected NAME=VALUE, got {assignment!r}", param_hint="--var")
    try:
        value = ast.literal_eval(raw)
    except (ValueError, SyntaxError):
        value = raw
    return name.strip(), value


@app.command()
def render(
    file: Path = typer.Argument(..., help="Host source file"),
    manifest: str = typer.Option(MANIFEST_NAME, "--manifest", "-m", help="Path to inline_python.toml"),
) -> None:
    """Print the Python rebuilt from every block of FILE."""
    config = load_manifest(Path(manifest).resolve()).embed
    source = _read(file)
    try:
        invocations = find_invocations(tokenize(source, str(file)), config.macro_names)
        if not invocations:
            console.print(f"[yellow]No blocks found in {file}[/yellow]")
            return
        for invocation in invocations:
            capture = invocation.macro == config.inline_macro
            result = reconstruct(invocation.tokens, capture=capture, prefix=config.capture_prefix)
            python = result.source.lstrip("\n")
            start_line = result.source.count("\n") - python.count("\n") + 1
            console.rule(f"{invocation.macro}! at {invocation.name.span}")
            console.print(Syntax(python, "python", line_numbers=True, start_line=start_line))
            if result.captures:
                table = Table(title="Captures")
                table.add_column("Placeholder", style="cyan")
                table.add_column("Host variable")
                table.add_column("Location")
                for binding in result.captures.bindings():
                    table.add_row(binding.placeholder, binding.host_name, str(binding.identifier.span))
                console.print(table)
    except EmbedError as e:
        _print_human_diagnostic(e.diagnostic, file, source)
        raise typer.Exit(code=1)


@app.command()
def check(
    files: list[Path] = typer.Argument(None, help="Host files; defaults to the project sources"),
    manifest: str = typer.Option(MANIFEST_NAME, "--manifest", "-m", help="Path to inline_python.toml"),
    format: str = typer.Option("human", "--format", "-f", help="Output format: 'human' or 'vscode'"),
) -> None:
    """
    Compile every python! block and run every ct_python! block.

    Exits with code 1 when any block fails.
    """
    manifest_path = Path(manifest).resolve()
    mf = load_manifest(manifest_path)
    paths = files or discover_host_files(mf.root, mf)

    failed = 0
    for path in paths:
        source = _read(path)
        for diagnostic in check_source(source, str(path), mf.embed):
            failed += 1
            if format == "vscode":
                _print_vscode_diagnostic(diagnostic, path)
            else:
                _print_human_diagnostic(diagnostic, path, source)

    if failed:
        if format != "vscode":
            typer.echo(f"\n{failed} error(s) in {len(paths)} file(s)", err=True)
        raise typer.Exit(code=1)
    if format == "vscode":
        typer.echo("::notice: Check successful")
    else:
        typer.echo(f"OK: {len(paths)} file(s) checked.")


@app.command()
def expand(
    file: Path = typer.Argument(..., help="Host source file"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write here instead of stdout"),
    manifest: str = typer.Option(MANIFEST_NAME, "--manifest", "-m", help="Path to inline_python.toml"),
) -> None:
    """Replace every ct_python! block of FILE with the host code it prints."""
    config = load_manifest(Path(manifest).resolve()).embed
    source = _read(file)
    try:
        expanded = expand_source(source, str(file), config)
    except EmbedError as e:
        _print_human_diagnostic(e.diagnostic, file, source)
        raise typer.Exit(code=1)

    if output is None:
        typer.echo(expanded, nl=False)
    else:
        output.write_text(expanded, encoding="utf-8")
        typer.echo(f"Wrote {output}")


@app.command()
def run(
    file: Path = typer.Argument(..., help="Host source file"),
    var: list[str] = typer.Option([], "--var", help="Host variable as NAME=VALUE (repeatable)"),
    manifest: str = typer.Option(MANIFEST_NAME, "--manifest", "-m", help="Path to inline_python.toml"),
) -> None:
    """
    Run the python! blocks of FILE, in order, in one shared context.

    Values given with --var are parsed as Python literals when possible and
    are what captured names ('name) refer to.
    """
    config = load_manifest(Path(manifest).resolve()).embed
    scope = dict(_parse_var(item) for item in var)
    source = _read(file)
    try:
        context = Context()
        for block in compile_source_blocks(source, str(file), config):
            context.run(block, scope)
    except EmbedError as e:
        _print_human_diagnostic(e.diagnostic, file, source)
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
