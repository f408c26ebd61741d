"""Manifest data structures and helpers."""

from .codec import dumps_manifest, load_manifest, load_manifest_dir, loads_manifest, normalize, to_manifest
from .merger import merge_all, merge_into
from .models import ManifestNode
from .writer import MANIFEST_DIRNAME, manifest_relpath, write_manifest

__all__ = [
    "MANIFEST_DIRNAME",
    "ManifestNode",
    "dumps_manifest",
    "load_manifest",
    "load_manifest_dir",
    "loads_manifest",
    "manifest_relpath",
    "merge_all",
    "merge_into",
    "normalize",
    "to_manifest",
    "write_manifest",
]
