"""In-memory page tree built from the content directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

INDEX_PAGE_NAME = "index"


@dataclass
class Page:
    """A directory (category) or Markdown document inside a content tree.

    ``children`` and ``parent`` hold indices into the owning :class:`PageTree`.
    The parent link is only used for lookups and never drives traversal.
    """

    name: str
    path: tuple[str, ...] = ()
    content: str = ""
    children: list[int] = field(default_factory=list)
    parent: int | None = None

    @property
    def id(self) -> str:
        return "-".join((*self.path, self.name))

    @property
    def local_url(self) -> str:
        return "/".join((*self.path, f"{self.name}.html"))

    @property
    def has_content(self) -> bool:
        return self.content != ""

    @property
    def is_index(self) -> bool:
        return self.name == INDEX_PAGE_NAME


class PageTree:
    """Arena of pages; index ``0`` is always the synthetic root."""

    def __init__(self) -> None:
        self.pages: list[Page] = [Page(name="")]

    @property
    def root(self) -> Page:
        return self.pages[0]

    def __getitem__(self, index: int) -> Page:
        return self.pages[index]

    def add_child(self, parent: int, page: Page) -> int:
        """Append ``page`` under ``parent`` and return its arena index."""
        page.parent = parent
        self.pages.append(page)
        index = len(self.pages) - 1
        self.pages[parent].children.append(index)
        return index

    def children(self, index: int) -> list[Page]:
        return [self.pages[child] for child in self.pages[index].children]

    def walk(self, index: int = 0) -> Iterator[tuple[int, Page]]:
        """Yield reachable pages depth-first in child order."""
        stack = [index]
        while stack:
            current = stack.pop()
            yield current, self.pages[current]
            stack.extend(reversed(self.pages[current].children))

    def ancestors(self, index: int) -> list[Page]:
        """Return the pages from the root down to (excluding) ``index``."""
        chain: list[Page] = []
        parent = self.pages[index].parent
        while parent is not None:
            chain.append(self.pages[parent])
            parent = self.pages[parent].parent
        chain.reverse()
        return chain

    def title(self, index: int, separator: str = " / ") -> str:
        """Compose a display title from the named ancestors and the page itself."""
        names = [page.name for page in self.ancestors(index) if page.name]
        names.append(self.pages[index].name)
        return separator.join(name for name in names if name)

    def first_content_page(self, index: int = 0) -> Page | None:
        for _, page in self.walk(index):
            if page.has_content:
                return page
        return None

    def content_pages(self) -> list[Page]:
        return [page for _, page in self.walk() if page.has_content]
