"""Convert page trees to manifests and read manifests back from storage."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from ..content.models import PageTree
from ..errors import FileSystemError, ManifestError
from .models import ManifestNode


def to_manifest(tree: PageTree, index: int = 0) -> ManifestNode:
    """Serialize the page at ``index`` and its reachable subtree."""
    page = tree[index]
    return ManifestNode(
        id=page.id,
        path=page.local_url,
        name=page.name,
        has_content=page.has_content,
        children=[to_manifest(tree, child) for child in page.children],
    )


def normalize(data: ManifestNode | Mapping[str, Any]) -> ManifestNode:
    """Validate manifest data, defaulting absent ``children`` to empty lists."""
    if isinstance(data, ManifestNode):
        data = data.model_dump(by_alias=True)
    try:
        return ManifestNode.model_validate(data)
    except ValidationError as exc:
        raise ManifestError(f"Invalid manifest: {exc}") from exc


def loads_manifest(text: str | bytes) -> ManifestNode:
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ManifestError(f"Manifest is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ManifestError("Manifest does not define an object root.")
    return normalize(payload)


def dumps_manifest(node: ManifestNode) -> str:
    return json.dumps(
        node.model_dump(mode="json", by_alias=True, exclude_none=True),
        ensure_ascii=False,
        indent=2,
    )


def load_manifest(path: Path) -> ManifestNode:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FileSystemError(f"Failed to read manifest '{path}': {exc}") from exc
    try:
        return loads_manifest(text)
    except ManifestError as exc:
        raise ManifestError(f"{path}: {exc}") from exc


def load_manifest_dir(directory: Path) -> dict[str, ManifestNode]:
    """Load every ``*.json`` manifest below ``directory`` keyed by relative path."""
    if not directory.exists():
        return {}
    manifests: dict[str, ManifestNode] = {}
    for path in directory.rglob("*.json"):
        if path.is_file():
            manifests[path.relative_to(directory).as_posix()] = load_manifest(path)
    return manifests
