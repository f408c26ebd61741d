"""Deterministic merging of manifests published by independent modules."""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Mapping

from .models import ManifestNode

logger = logging.getLogger(__name__)


def merge_into(dst: ManifestNode, src: ManifestNode) -> ManifestNode:
    """Populate ``dst`` from ``src`` without overwriting anything already set.

    Scalars are first-write-wins: a field is copied only while ``dst`` still
    has it unset (``None``). Children are unioned by ``id``; matching children
    are merged recursively and unmatched ones are appended in ``src`` order.
    """
    for name, value in src.scalar_items():
        if _is_unset(dst, name):
            setattr(dst, name, deepcopy(value))

    for src_child in src.children:
        dst_child = _find_child(dst, src_child.id)
        if dst_child is None:
            dst_child = ManifestNode()
            dst.children.append(dst_child)
        merge_into(dst_child, src_child)
    return dst


def merge_all(sources: Mapping[str, ManifestNode]) -> ManifestNode:
    """Fold every source into a fresh node, in lexicographic key order.

    Sorting the keys makes the result a function of the set of manifests
    alone; whichever key sorts first wins any conflicting scalar.
    """
    combined = ManifestNode()
    for key in sorted(sources):
        logger.debug("Merging manifest %s", key)
        merge_into(combined, sources[key])
    return combined


def _is_unset(node: ManifestNode, name: str) -> bool:
    extra = node.model_extra or {}
    if name in extra:
        return extra[name] is None
    return getattr(node, name, None) is None


def _find_child(node: ManifestNode, child_id: str | None) -> ManifestNode | None:
    for child in node.children:
        if child.id == child_id:
            return child
    return None
