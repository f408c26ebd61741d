"""Persistence helpers for module manifests."""

from __future__ import annotations

from pathlib import Path

from ..errors import FileSystemError
from .codec import dumps_manifest
from .models import ManifestNode

MANIFEST_DIRNAME = "manifest"


def manifest_relpath(module_name: str) -> str:
    """Relative key of a module manifest, shared by local output and the remote store."""
    return f"{MANIFEST_DIRNAME}/{module_name}.json"


def write_manifest(node: ManifestNode, destination: Path) -> Path:
    """Serialize ``node`` to ``destination`` as JSON."""
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(dumps_manifest(node), encoding="utf-8")
    except OSError as exc:
        raise FileSystemError(f"Failed to write manifest '{destination}': {exc}") from exc
    return destination
