"""Content tree construction helpers."""

from .builder import DEFAULT_MARKDOWN_EXTENSION, build_tree
from .models import INDEX_PAGE_NAME, Page, PageTree
from .promote import promote_index

__all__ = [
    "DEFAULT_MARKDOWN_EXTENSION",
    "INDEX_PAGE_NAME",
    "Page",
    "PageTree",
    "build_tree",
    "promote_index",
]
