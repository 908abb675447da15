import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .captures import CAPTURE_PREFIX
from .errors import ManifestError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "inline_python.toml"


@dataclass
class EmbedConfig:
    """How blocks are recognized and rewritten."""

    inline_macro: str = "python"  # Compiled now, run by the host program
    compile_time_macro: str = "ct_python"  # Run now, output becomes host code
    capture_prefix: str = CAPTURE_PREFIX

    @property
    def macro_names(self) -> tuple[str, str]:
        return (self.inline_macro, self.compile_time_macro)


@dataclass
class ProjectManifest:
    """Project configuration.

    Example inline_python.toml:

        [project]
        name = "demo"
        sources = ["src/"]
        extensions = [".rs"]

        [embed]
        inline_macro = "python"
        compile_time_macro = "ct_python"
        capture_prefix = "_RUST_"
    """

    name: str = "project"
    root: Path = field(default_factory=Path.cwd)
    sources: list[str] = field(default_factory=lambda: ["src/"])
    extensions: list[str] = field(default_factory=lambda: [".rs"])
    embed: EmbedConfig = field(default_factory=EmbedConfig)


_KNOWN_SECTIONS = {"project", "embed"}


def load_manifest(path: Path) -> ProjectManifest:
    """
    Read inline_python.toml; a missing file gives the defaults.

    Raises:
        ManifestError: If the file is not valid TOML
    """
    if not path.exists():
        logger.debug("No manifest at %s, using defaults", path)
        return ProjectManifest(root=path.parent)

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(f"invalid {path.name}: {e}") from e

    for section in sorted(set(data) - _KNOWN_SECTIONS):
        logger.warning("Ignoring unknown section [%s] in %s", section, path)

    project = data.get("project", {})
    embed_data = data.get("embed", {})

    embed = EmbedConfig(
        inline_macro=embed_data.get("inline_macro", "python"),
        compile_time_macro=embed_data.get("compile_time_macro", "ct_python"),
        capture_prefix=embed_data.get("capture_prefix", CAPTURE_PREFIX),
    )

    return ProjectManifest(
        name=project.get("name", path.parent.name),
        root=path.parent,
        sources=project.get("sources", ["src/"]),
        extensions=project.get("extensions", [".rs"]),
        embed=embed,
    )
