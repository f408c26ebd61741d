from __future__ import annotations

import json
import re
import shutil
from pathlib import Path

import pytest

from docweave.config import PACKAGED_THEMES_DIR
from docweave.content import build_tree, promote_index
from docweave.manifests import normalize, to_manifest
from docweave.markdown import first_heading, render_markdown
from docweave.render import SiteRenderer, initial_page
from docweave.staging import stage_theme_assets
from docweave.themes import ThemeError, build_theme_loader


def _page_tree_payload(html: str) -> dict:
    match = re.search(r"const pageTree = (.*);", html)
    assert match is not None
    return json.loads(match.group(1))


def test_write_pages_places_html_at_local_urls(tmp_path: Path, make_config, write_tree) -> None:
    write_tree(
        tmp_path / "content",
        {"guide/index.md": "# Guide Home\n\nWelcome.", "guide/intro.md": "Plain *intro*"},
    )
    config = make_config()
    tree = promote_index(build_tree(config.content_dir, sort_entries=True))
    renderer = SiteRenderer.from_config(config)

    written = renderer.write_pages(tree, config.output_dir)

    assert sorted(path.relative_to(config.output_dir).as_posix() for path in written) == [
        "guide.html",
        "guide/intro.html",
    ]
    guide = (config.output_dir / "guide.html").read_text(encoding="utf-8")
    assert "<title>Guide Home</title>" in guide
    assert 'href="./assets/docweave.css"' in guide
    intro = (config.output_dir / "guide" / "intro.html").read_text(encoding="utf-8")
    assert "<title>guide / intro</title>" in intro
    assert "<em>intro</em>" in intro
    assert 'href="../assets/docweave.css"' in intro


def test_navigation_page_embeds_combined_manifest(tmp_path: Path, make_config, write_tree) -> None:
    write_tree(tmp_path / "content", {"api/users.md": "Users", "faq.md": "FAQ"})
    config = make_config()
    combined = to_manifest(promote_index(build_tree(config.content_dir, sort_entries=True)))
    renderer = SiteRenderer.from_config(config)

    path = renderer.write_navigation_page(combined, config.output_dir)

    html = path.read_text(encoding="utf-8")
    assert path == config.output_dir / "index.html"
    assert _page_tree_payload(html)["children"][0]["id"] == "api"
    assert 'data-toggle-id="api"' in html
    assert 'data-page-url="api/users.html"' in html
    assert 'class="contentPane" src="api/users.html"' in html


def test_initial_page_is_first_content_node_in_navigation_order() -> None:
    combined = normalize(
        {
            "id": "",
            "children": [
                {"id": "a", "name": "a", "children": [{"id": "a-b", "path": "a/b.html", "hasContent": True}]},
                {"id": "c", "path": "c.html", "hasContent": True},
            ],
        }
    )

    assert initial_page(combined) == "a/b.html"
    assert initial_page(normalize({"id": ""})) is None


def test_stage_theme_assets_copies_static_files(tmp_path: Path, make_config) -> None:
    config = make_config()
    theme = build_theme_loader(themes_root=config.themes_root, active_theme=config.theme_name)

    result = stage_theme_assets(theme, config.output_dir)

    assets = config.output_dir / "assets"
    assert (assets / "docweave.css").is_file()
    assert (assets / "navigation.js").is_file()
    assert result.total == 2


def test_missing_theme_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(ThemeError):
        build_theme_loader(themes_root=tmp_path / "no-themes", active_theme="default")


def test_markdown_helpers() -> None:
    html = render_markdown("# Title\n\nSee https://example.com")

    assert '<h1 id="title">Title</h1>' in html
    assert first_heading("intro\n\n# Title\n\n# Later") == "Title"
    assert first_heading("## Only second level") is None
    assert render_markdown("   ") == ""


def test_custom_theme_overrides_page_and_falls_back_for_frame(tmp_path: Path) -> None:
    themes_root = tmp_path / "themes"
    shutil.copytree(PACKAGED_THEMES_DIR / "default", themes_root / "default")
    custom = themes_root / "plain"
    custom.mkdir()
    (custom / "theme.json").write_text(json.dumps({"name": "Plain", "entrypoints": {"page": "plain.html.j2"}}), encoding="utf-8")
    (custom / "plain.html.j2").write_text("<main>{{ body | safe }}</main>", encoding="utf-8")

    theme = build_theme_loader(themes_root=themes_root, active_theme="plain")

    assert theme.active_theme == "plain"
    assert theme.render("page", {"body": "<p>x</p>"}) == "<main><p>x</p></main>"
    assert "contentPane" in theme.render("frame", {"project_name": "P", "root": {"children": []}, "page_tree": {}})
    assert theme.assets.styles == ["assets/docweave.css"]


def test_unknown_active_theme_uses_fallback(tmp_path: Path) -> None:
    theme = build_theme_loader(themes_root=PACKAGED_THEMES_DIR, active_theme="missing")

    assert theme.active_theme == "default"


def test_page_with_children_can_expand_its_child_list(tmp_path: Path, make_config, write_tree) -> None:
    write_tree(tmp_path / "content", {"guide/index.md": "# Guide", "guide/intro.md": "Intro", "faq.md": "FAQ"})
    config = make_config()
    combined = to_manifest(promote_index(build_tree(config.content_dir, sort_entries=True)))
    renderer = SiteRenderer.from_config(config)
    stage_theme_assets(renderer.theme, config.output_dir)

    html = renderer.write_navigation_page(combined, config.output_dir).read_text(encoding="utf-8")

    guide = re.search(r'<li id="doc-guide"[^>]*>', html)
    faq = re.search(r'<li id="doc-faq"[^>]*>', html)
    assert guide is not None and faq is not None
    assert 'data-page-url="guide.html"' in guide.group(0)
    assert 'data-has-children="true"' in guide.group(0)
    assert "data-has-children" not in faq.group(0)
    assert '<ul id="children-guide"' in html
    script = (config.output_dir / "assets" / "navigation.js").read_text(encoding="utf-8")
    assert "el.dataset.hasChildren" in script
    assert "setPageOpened(id, !isPageOpened(id))" in script.split("function navigateToPage", 1)[1]
