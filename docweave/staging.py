"""Utilities for preparing the local output directory."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .errors import FileSystemError
from .themes import ThemeLoader

ASSETS_DIRNAME = "assets"


@dataclass
class StagingResult:
    """Summary of theme assets copied into the output directory."""

    staged_paths: list[Path] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.staged_paths)


def reset_directory(path: Path) -> None:
    """Remove a directory and recreate it empty."""
    try:
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileSystemError(f"Failed to reset directory '{path}': {exc}") from exc


def stage_theme_assets(theme: ThemeLoader, output_dir: Path) -> StagingResult:
    """Copy the theme's static folders into ``output_dir/assets``.

    The fallback theme is copied first so files from the active theme win.
    """
    result = StagingResult()
    destination = output_dir / ASSETS_DIRNAME
    for static_dir in theme.static_dirs():
        for item in sorted(static_dir.rglob("*")):
            if not item.is_file():
                continue
            target = destination / item.relative_to(static_dir)
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(item, target)
            except OSError as exc:
                raise FileSystemError(f"Failed to stage theme asset '{item}': {exc}") from exc
            if target not in result.staged_paths:
                result.staged_paths.append(target)
    return result
