"""Fold ``index`` documents into the directory page that contains them."""

from __future__ import annotations

import logging

from ..errors import ContentConflict
from .models import PageTree

logger = logging.getLogger(__name__)


def promote_index(tree: PageTree, index: int = 0) -> PageTree:
    """Move each ``index`` child's content into its parent, bottom-up.

    The promoted child is detached from the tree. Raises
    :class:`ContentConflict` when the parent already carries content.
    """
    parent = tree[index]
    kept: list[int] = []
    for child_index in list(parent.children):
        promote_index(tree, child_index)
        child = tree[child_index]
        if not child.is_index:
            kept.append(child_index)
            continue
        if parent.has_content:
            raise ContentConflict(
                f"Page '{parent.id or '<root>'}' already has content; "
                "promoting its 'index' page would discard it."
            )
        if child.children:
            logger.warning(
                "Discarding %d child page(s) of '%s' while promoting it into '%s'.",
                len(child.children),
                child.id,
                parent.id or "<root>",
            )
        parent.content = child.content
        child.parent = None
    parent.children = kept
    return tree
