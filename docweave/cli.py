"""CLI entrypoints for docweave build and publish tooling."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import webbrowser
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Annotated, Any, Iterator

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.tree import Tree

from .config import Config, load_config
from .content import PageTree, build_tree, promote_index
from .errors import DocweaveError
from .manifests import ManifestNode, dumps_manifest, load_manifest, merge_all
from .publish import PublishResult, create_store, publish as run_publish

console = Console()
app = typer.Typer(help="Build Markdown documentation sites and publish them into a shared bucket.")

ConfigPathOption = Annotated[
    str,
    typer.Option("--config", "-c", help="Path to docweave.yml or the directory containing it."),
]
ModuleOption = Annotated[
    str | None,
    typer.Option("--module", "-m", help="Override the module name used for manifests and remote sync."),
]
ContentDirOption = Annotated[
    Path | None,
    typer.Option("--content-dir", help="Override the Markdown content directory."),
]
OutputDirOption = Annotated[
    Path | None,
    typer.Option("--output-dir", "-o", help="Override the local output directory."),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.command()
def build(
    config_path: ConfigPathOption = ".",
    module: ModuleOption = None,
    content_dir: ContentDirOption = None,
    output_dir: OutputDirOption = None,
) -> None:
    """Render the site locally, merging any manifests already staged in the cache."""
    config = _with_overrides(_load(config_path), module_name=module, content_dir=content_dir, output_dir=output_dir)
    result = _run(config, with_remote=False)
    _print_summary(config, result)


@app.command()
def publish(
    config_path: ConfigPathOption = ".",
    module: ModuleOption = None,
    content_dir: ContentDirOption = None,
    output_dir: OutputDirOption = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Do everything except deleting or uploading remote objects."),
    ] = False,
) -> None:
    """Build the site, merge every module's manifest, and sync this module to the bucket."""
    config = _with_overrides(
        _load(config_path),
        module_name=module,
        content_dir=content_dir,
        output_dir=output_dir,
        dry_run=dry_run or None,
    )
    result = _run(config, with_remote=True)
    _print_summary(config, result)


@app.command()
def tree(
    config_path: ConfigPathOption = ".",
    content_dir: ContentDirOption = None,
) -> None:
    """Print the page tree that a build would render."""
    config = _with_overrides(_load(config_path), content_dir=content_dir)
    try:
        pages = promote_index(
            build_tree(config.content_dir, extension=config.markdown_extension, sort_entries=config.sort_entries)
        )
    except DocweaveError as exc:
        console.print(f"[bold red]Build failed[/]: {exc}")
        raise typer.Exit(code=1) from exc
    console.print(_render_tree(pages, 0, Tree(f"[bold]{config.project_name}[/]")))


@app.command()
def merge(
    manifests: Annotated[
        list[Path],
        typer.Argument(..., help="Manifest JSON files to merge; keys are their file names."),
    ],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the combined manifest here instead of stdout."),
    ] = None,
) -> None:
    """Merge manifests deterministically, first sorted file name winning conflicts."""
    sources: dict[str, ManifestNode] = {}
    for path in manifests:
        if path.name in sources:
            raise typer.BadParameter(f"Duplicate manifest file name: {path.name}")
        try:
            sources[path.name] = load_manifest(path)
        except DocweaveError as exc:
            console.print(f"[bold red]Cannot read manifest[/]: {exc}")
            raise typer.Exit(code=1) from exc

    text = dumps_manifest(merge_all(sources))
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    console.print(f"[bold green]Combined manifest[/]: merged {len(sources)} file(s) into {_display_path(output)}")


@app.command()
def preview(
    config_path: ConfigPathOption = ".",
    host: Annotated[
        str,
        typer.Option("--host", help="Host interface to bind the preview server."),
    ] = "127.0.0.1",
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Port for the preview server."),
    ] = 8080,
    open_browser: Annotated[
        bool,
        typer.Option("--open-browser/--no-open-browser", help="Open the site in a browser after starting."),
    ] = False,
) -> None:
    """Serve the generated site directory with a simple HTTP server."""
    config = _load(config_path)
    if port < 0 or port > 65535:
        raise typer.BadParameter("Port must be between 0 and 65535.")

    output_dir = config.output_dir
    if not output_dir.exists():
        console.print(f"[bold red]Site output not found[/]: {output_dir}")
        console.print("Run 'docweave build' to generate the site before previewing.")
        raise typer.Exit(code=1)

    handler = _make_request_handler(output_dir)
    try:
        with _serve(host, port, handler) as server:
            bound_host, bound_port = str(server.server_address[0]), int(server.server_address[1])
            url_host = "127.0.0.1" if bound_host in {"0.0.0.0", ""} else bound_host
            site_url = f"http://{url_host}:{bound_port}/"
            console.print(f"[bold green]Preview server[/]: serving {output_dir} at {site_url} (press Ctrl+C to stop)")
            if open_browser:
                webbrowser.open(site_url)
            try:
                server.serve_forever()
            except KeyboardInterrupt:
                console.print("\n[bold yellow]Stopping preview server...[/]")
    except OSError as exc:
        console.print(f"[bold red]Failed to start preview server[/]: {exc}")
        raise typer.Exit(code=1) from exc


@app.command()
def clean(
    config_path: ConfigPathOption = ".",
    include_cache: Annotated[
        bool,
        typer.Option("--cache", help="Also remove staged manifests and reports."),
    ] = False,
) -> None:
    """Remove the generated site and, optionally, the cache directory."""
    config = _load(config_path)
    targets = [("site output", config.output_dir)]
    if include_cache:
        targets.append(("cache", config.cache_dir))

    removed = 0
    for label, path in targets:
        if path.exists():
            console.print(f"[bold green]Removing[/]: {label} ({path})")
            shutil.rmtree(path, ignore_errors=True)
            removed += 1
        else:
            console.print(f"[bold yellow]Skipping[/]: {label} ({path}) not found")

    noun = "directory" if removed == 1 else "directories"
    console.print(f"[bold green]Clean complete[/]: removed {removed} {noun}.")


def _run(config: Config, *, with_remote: bool) -> PublishResult:
    store = None
    if with_remote:
        store = create_store(config)
        if store is None:
            console.print(
                "[bold yellow]Remote publishing disabled[/]: no bucket credentials configured; building locally."
            )
    try:
        return asyncio.run(run_publish(config, store=store))
    except DocweaveError as exc:
        console.print(f"[bold red]Build failed[/]: {exc}")
        raise typer.Exit(code=1) from exc


def _print_summary(config: Config, result: PublishResult) -> None:
    stats = result.report.pages
    console.print(
        "[bold green]Pages[/]: "
        f"{stats.documents} document(s) in {stats.categories} categor{'y' if stats.categories == 1 else 'ies'}; "
        f"rendered into {_display_path(config.output_dir)}"
    )
    console.print(
        "[bold green]Manifest[/]: "
        f"{_display_path(result.build.manifest_path)}; combined from {len(result.sources)} source(s) "
        f"({', '.join(result.sources)})"
    )
    console.print(f"[bold green]Navigation[/]: {_display_path(result.navigation_path)}")

    sync = result.sync
    if sync is not None and not sync.skipped:
        console.print(
            "[bold green]Remote[/]: "
            f"deleted {sync.deletes.deleted} stale object(s), uploaded {sync.uploads.uploaded}/{sync.uploads.total} file(s)"
        )
        if result.published:
            console.print(
                "If DNS points at your bucket, you can view your docs at: "
                f"{config.remote.site_url}"
            )
    elif config.dry_run:
        console.print("[bold blue]Dry run[/]: no remote objects were deleted or uploaded.")

    if result.warnings:
        console.print("[bold yellow]Warnings:[/]")
        for warning in result.warnings:
            console.print(f"- {warning}")


def _render_tree(pages: PageTree, index: int, node: Tree) -> Tree:
    for child_index in pages[index].children:
        child = pages[child_index]
        if child.children:
            label = f"[bold]\\[{child.name}][/]" if not child.has_content else f"[bold]{child.name}[/]"
            _render_tree(pages, child_index, node.add(label))
        else:
            node.add(child.name)
    return node


def _with_overrides(config: Config, **overrides: Any) -> Config:
    update: dict[str, Any] = {}
    for key, value in overrides.items():
        if value is None:
            continue
        update[key] = value.resolve() if isinstance(value, Path) else value
    if not update:
        return config
    try:
        return Config.model_validate({**config.model_dump(), **update})
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _display_path(path: Path) -> str:
    try:
        return path.relative_to(Path.cwd()).as_posix()
    except ValueError:
        return path.as_posix()


def _load(path: str) -> Config:
    try:
        return load_config(path)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Config file not found: {path}") from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


class _ThreadingHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True


def _make_request_handler(directory: Path) -> type[SimpleHTTPRequestHandler]:
    directory_path = str(directory)

    class PreviewRequestHandler(SimpleHTTPRequestHandler):
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__(*args, directory=directory_path, **kwargs)

    return PreviewRequestHandler


@contextlib.contextmanager
def _serve(
    host: str,
    port: int,
    handler: type[SimpleHTTPRequestHandler],
) -> Iterator[ThreadingHTTPServer]:
    server = _ThreadingHTTPServer((host, port), handler)
    try:
        yield server
    finally:
        # serve_forever runs on this thread, so there is no loop left to shut down.
        server.server_close()
