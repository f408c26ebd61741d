"""Build a page tree by walking the content directory."""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import FileSystemError
from .models import Page, PageTree

logger = logging.getLogger(__name__)

DEFAULT_MARKDOWN_EXTENSION = ".md"


def build_tree(
    content_dir: Path,
    *,
    extension: str = DEFAULT_MARKDOWN_EXTENSION,
    sort_entries: bool = False,
) -> PageTree:
    """Mirror ``content_dir`` as a :class:`PageTree`.

    Subdirectories become category pages and files ending in ``extension``
    become content pages. Everything else is skipped. Siblings keep the order
    returned by the filesystem unless ``sort_entries`` is set.
    """
    root = Path(content_dir)
    if not root.is_dir():
        raise FileSystemError(f"Content directory '{root}' does not exist or is not a directory.")

    tree = PageTree()
    _read_directory(tree, 0, root, extension.lower(), sort_entries)
    logger.debug("Read %d page(s) from %s", len(tree.pages), root)
    return tree


def _read_directory(
    tree: PageTree,
    parent: int,
    directory: Path,
    extension: str,
    sort_entries: bool,
) -> None:
    parent_page = tree[parent]
    child_path = (*parent_page.path, parent_page.name) if parent_page.name else parent_page.path

    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise FileSystemError(f"Failed to list directory '{directory}': {exc}") from exc
    if sort_entries:
        entries.sort(key=lambda entry: entry.name)

    for entry in entries:
        try:
            is_dir = entry.is_dir()
            is_file = not is_dir and entry.is_file()
        except OSError as exc:
            raise FileSystemError(f"Failed to stat '{entry}': {exc}") from exc

        if is_dir:
            index = tree.add_child(parent, Page(name=entry.name, path=child_path))
            _read_directory(tree, index, entry, extension, sort_entries)
        elif is_file and entry.name.lower().endswith(extension):
            tree.add_child(
                parent,
                Page(
                    name=entry.name[: -len(extension)],
                    path=child_path,
                    content=_read_document(entry),
                ),
            )


def _read_document(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileSystemError(f"Failed to read document '{path}': {exc}") from exc
