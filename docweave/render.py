"""Render content pages and the combined navigation entry page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .config import Config
from .content.models import PageTree
from .errors import FileSystemError
from .manifests.models import ManifestNode
from .markdown import render_document
from .themes import ThemeLoader, build_theme_loader

logger = logging.getLogger(__name__)

ENTRY_PAGE_FILENAME = "index.html"


@dataclass(slots=True)
class SiteRenderer:
    """Bind a theme to the project settings used by every rendered page."""

    theme: ThemeLoader
    project_name: str

    @classmethod
    def from_config(cls, config: Config) -> SiteRenderer:
        theme = build_theme_loader(themes_root=config.themes_root, active_theme=config.theme_name)
        return cls(theme=theme, project_name=config.project_name)

    def make_asset_href(self, path: str, *, depth: int) -> str:
        """Return a relative href/src for assets located under the site root."""
        if path.startswith(("http://", "https://", "//")):
            return path
        normalized = path.lstrip("/")
        prefix = "./" if depth == 0 else "../" * depth
        return f"{prefix}{normalized}"

    def asset_context(self, *, depth: int) -> dict[str, Any]:
        assets = self.theme.assets
        scripts = []
        for script in assets.scripts:
            entry = script.to_template_dict()
            entry["src"] = self.make_asset_href(script.src, depth=depth)
            scripts.append(entry)
        return {
            "styles": [self.make_asset_href(href, depth=depth) for href in assets.styles],
            "scripts": scripts,
        }

    def write_pages(self, tree: PageTree, output_dir: Path) -> list[Path]:
        """Write one HTML file per content page at its local URL."""
        written: list[Path] = []
        for index, page in tree.walk():
            if not page.has_content:
                continue
            document = render_document(page.content)
            title = document.title or tree.title(index) or self.project_name
            html = self.theme.render(
                "page",
                {
                    "title": title,
                    "project_name": self.project_name,
                    "page_id": page.id,
                    "body": document.html,
                    **self.asset_context(depth=len(page.path)),
                },
            )
            written.append(_write_text(output_dir / page.local_url, html))
        logger.debug("Rendered %d page(s) into %s", len(written), output_dir)
        return written

    def write_navigation_page(self, combined: ManifestNode, output_dir: Path) -> Path:
        """Write the entry page embedding the combined manifest for client navigation."""
        page_tree = combined.model_dump(mode="json", by_alias=True, exclude_none=True)
        html = self.theme.render(
            "frame",
            {
                "project_name": self.project_name,
                "root": page_tree,
                "page_tree": page_tree,
                "initial_page": initial_page(combined),
                **self.asset_context(depth=0),
            },
        )
        return _write_text(output_dir / ENTRY_PAGE_FILENAME, html)


def initial_page(combined: ManifestNode) -> str | None:
    """Local URL of the first content-bearing node in navigation order."""
    for node in combined.iter_nodes():
        if node.has_content and node.path:
            return node.path
    return None


def _write_text(path: Path, text: str) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise FileSystemError(f"Failed to write '{path}': {exc}") from exc
    return path
