"""Tests for inline_python.toml loading and host file discovery."""

import logging
from pathlib import Path

import pytest

from inline_python.core.errors import ManifestError
from inline_python.core.fileset import discover_host_files
from inline_python.core.manifest import MANIFEST_NAME, EmbedConfig, load_manifest


class TestLoadManifest:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        manifest = load_manifest(tmp_path / MANIFEST_NAME)
        assert manifest.root == tmp_path
        assert manifest.sources == ["src/"]
        assert manifest.extensions == [".rs"]
        assert manifest.embed == EmbedConfig()

    def test_reads_project_and_embed(self, tmp_path: Path) -> None:
        path = tmp_path / MANIFEST_NAME
        path.write_text(
            """
[project]
name = "demo"
sources = ["lib/", "build.rs"]
extensions = [".rs", ".in"]

[embed]
inline_macro = "py"
capture_prefix = "_HOST_"
"""
        )
        manifest = load_manifest(path)
        assert manifest.name == "demo"
        assert manifest.sources == ["lib/", "build.rs"]
        assert manifest.extensions == [".rs", ".in"]
        assert manifest.embed.inline_macro == "py"
        assert manifest.embed.compile_time_macro == "ct_python"
        assert manifest.embed.capture_prefix == "_HOST_"
        assert manifest.embed.macro_names == ("py", "ct_python")

    def test_name_defaults_to_directory(self, tmp_path: Path) -> None:
        path = tmp_path / MANIFEST_NAME
        path.write_text("[embed]\n")
        assert load_manifest(path).name == tmp_path.name

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / MANIFEST_NAME
        path.write_text("[project\n")
        with pytest.raises(ManifestError, match="invalid inline_python.toml"):
            load_manifest(path)

    def test_unknown_section_is_logged(self, tmp_path: Path, caplog) -> None:
        path = tmp_path / MANIFEST_NAME
        path.write_text("[tool]\nx = 1\n")
        with caplog.at_level(logging.WARNING, logger="inline_python.core.manifest"):
            load_manifest(path)
        assert "Ignoring unknown section [tool]" in caplog.text


class TestDiscoverHostFiles:
    def test_finds_sources_recursively(self, host_project: Path) -> None:
        (host_project / "src" / "nested").mkdir()
        (host_project / "src" / "nested" / "util.rs").write_text("fn util() {}\n")
        (host_project / "src" / "notes.txt").write_text("not host code\n")
        manifest = load_manifest(host_project / MANIFEST_NAME)
        files = discover_host_files(manifest.root, manifest)
        assert [f.name for f in files] == ["main.rs", "util.rs"]

    def test_missing_source_directory(self, tmp_path: Path) -> None:
        manifest = load_manifest(tmp_path / MANIFEST_NAME)
        assert discover_host_files(tmp_path, manifest) == []

    def test_single_file_source(self, tmp_path: Path) -> None:
        (tmp_path / "build.rs").write_text("fn main() {}\n")
        path = tmp_path / MANIFEST_NAME
        path.write_text('[project]\nsources = ["build.rs"]\n')
        manifest = load_manifest(path)
        assert discover_host_files(manifest.root, manifest) == [(tmp_path / "build.rs").resolve()]
