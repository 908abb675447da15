from pathlib import Path

from .manifest import ProjectManifest


def discover_host_files(root: Path, manifest: ProjectManifest) -> list[Path]:
    files: list[Path] = []
    for rel in manifest.sources:
        base = (root / rel).resolve()
        if not base.exists():
            continue
        if base.is_file():
            files.append(base)
            continue
        for ext in manifest.extensions:
            for p in base.rglob(f"*{ext}"):
                files.append(p)
    return sorted(set(files))
