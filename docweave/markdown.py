"""Markdown rendering shared by every generated page."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Sequence, cast

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.anchors import anchors_plugin
from mdit_py_plugins.deflist import deflist_plugin
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin


@dataclass(frozen=True, slots=True)
class RenderedDocument:
    html: str
    title: str | None = None


@lru_cache(maxsize=1)
def _renderer() -> MarkdownIt:
    """CommonMark plus tables, strikethrough, heading anchors and the usual doc extras."""
    md = MarkdownIt("commonmark", {"html": True, "linkify": True, "typographer": True})
    md.enable(["table", "strikethrough", "linkify"])
    md.use(anchors_plugin, max_level=3, permalink=False)
    md.use(deflist_plugin)
    md.use(footnote_plugin)
    md.use(tasklists_plugin, label=True)
    return md


def render_document(text: str) -> RenderedDocument:
    """Parse once and return both the HTML fragment and the first H1 text."""
    if not text.strip():
        return RenderedDocument(html="")
    md = _renderer()
    env: dict[str, Any] = {}
    tokens = md.parse(text, env)
    html = cast(str, md.renderer.render(tokens, md.options, env))
    return RenderedDocument(html=html, title=_first_h1(tokens))


def render_markdown(text: str) -> str:
    return render_document(text).html


def first_heading(text: str) -> str | None:
    return _first_h1(_renderer().parse(text))


def _first_h1(tokens: Sequence[Token]) -> str | None:
    for position, token in enumerate(tokens):
        if token.type == "heading_open" and token.tag == "h1":
            inline = tokens[position + 1]
            return "".join(child.content for child in inline.children or []) or None
    return None
