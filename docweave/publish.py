"""Sequence the build, merge and remote sync phases of a publish."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from .config import Config
from .content import PageTree, build_tree, promote_index
from .errors import FileSystemError, ManifestError, ManifestFetchError
from .manifests import (
    ManifestNode,
    load_manifest_dir,
    manifest_relpath,
    merge_all,
    to_manifest,
    write_manifest,
)
from .remote import ObjectStore, RemoteSync, S3ObjectStore, SyncResult
from .remote.sync import ProgressCallback
from .render import SiteRenderer
from .reporting import (
    PublishReport,
    assemble_report,
    build_manifest_stats,
    build_page_stats,
    build_remote_stats,
    write_report,
)
from .staging import StagingResult, reset_directory, stage_theme_assets

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BuildOutputs:
    """Local artifacts produced for this module."""

    tree: PageTree
    manifest: ManifestNode
    manifest_path: Path
    page_paths: list[Path]
    staging: StagingResult
    renderer: SiteRenderer


@dataclass(slots=True)
class PublishResult:
    """Everything a publish produced, including the remote outcome if any."""

    build: BuildOutputs
    combined: ManifestNode
    sources: list[str]
    navigation_path: Path
    report: PublishReport
    report_path: Path
    sync: SyncResult | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def published(self) -> bool:
        return self.sync is not None and self.sync.complete


def build_site(config: Config) -> BuildOutputs:
    """Build, promote and render the content tree, then write its manifest."""
    tree = build_tree(
        config.content_dir,
        extension=config.markdown_extension,
        sort_entries=config.sort_entries,
    )
    promote_index(tree)

    renderer = SiteRenderer.from_config(config)
    reset_directory(config.output_dir)
    staging = stage_theme_assets(renderer.theme, config.output_dir)
    page_paths = renderer.write_pages(tree, config.output_dir)

    manifest = to_manifest(tree)
    manifest_path = write_manifest(manifest, config.output_dir / manifest_relpath(config.module_name))
    logger.info("Wrote %d page(s) and manifest %s", len(page_paths), manifest_path)
    return BuildOutputs(
        tree=tree,
        manifest=manifest,
        manifest_path=manifest_path,
        page_paths=page_paths,
        staging=staging,
        renderer=renderer,
    )


def combine_manifests(config: Config, manifest: ManifestNode) -> tuple[ManifestNode, dict[str, ManifestNode]]:
    """Merge this module's manifest with every staged manifest from other modules."""
    own_key = f"{config.module_name}.json"
    if not config.multi_module:
        return manifest, {own_key: manifest}
    sources = load_manifest_dir(config.staging_dir)
    sources[own_key] = manifest
    return merge_all(sources), sources


def create_store(config: Config) -> ObjectStore | None:
    """Build the configured object store, or ``None`` when credentials are absent."""
    if not config.remote.has_credentials:
        return None
    return S3ObjectStore.from_config(config.remote)


async def publish(
    config: Config,
    *,
    store: ObjectStore | None = None,
    on_progress: ProgressCallback | None = None,
) -> PublishResult:
    """Run a full publish for ``config.module_name``.

    Local build failures propagate. Remote failures only degrade the result:
    the local output stays complete and usable either way.
    """
    start = time.perf_counter()
    warnings: list[str] = []
    outputs = build_site(config)

    remote_sync: RemoteSync | None = None
    if store is not None:
        remote_sync = RemoteSync(
            store,
            bucket_root=config.remote.bucket_root,
            module_name=config.module_name,
            max_concurrency=config.remote.max_concurrency,
            delete_batch_size=config.remote.delete_batch_size,
            on_progress=on_progress,
        )

    sync_allowed = remote_sync is not None
    if config.multi_module and remote_sync is not None:
        try:
            reset_directory(config.staging_dir)
            await remote_sync.download_all_manifests(config.staging_dir)
        except (ManifestFetchError, FileSystemError) as exc:
            message = f"Could not download published manifests; remote sync skipped: {exc}"
            logger.error(message)
            warnings.append(message)
            sync_allowed = False

    try:
        combined, sources = combine_manifests(config, outputs.manifest)
    except (ManifestError, FileSystemError) as exc:
        message = f"Ignoring staged manifests: {exc}"
        logger.error(message)
        warnings.append(message)
        combined, sources = outputs.manifest, {f"{config.module_name}.json": outputs.manifest}
        sync_allowed = False
    navigation_path = outputs.renderer.write_navigation_page(combined, config.output_dir)

    sync_result: SyncResult | None = None
    if remote_sync is not None and not config.multi_module:
        warnings.append(
            "Remote publishing requires a module name; set 'module_name' to publish this site."
        )
    elif remote_sync is not None and config.dry_run:
        logger.info("Dry run: skipping remote deletion and upload for %s", config.module_name)
    elif remote_sync is not None and sync_allowed:
        sync_result = await remote_sync.sync(outputs.manifest, config.output_dir)
        if sync_result.skipped:
            warnings.append(f"Remote sync skipped: {sync_result.error}")
        if sync_result.deletes.failed:
            warnings.append(f"{sync_result.deletes.failed} stale object(s) could not be deleted.")
        if sync_result.uploads.failed:
            warnings.append(f"{sync_result.uploads.failed} file(s) failed to upload.")

    report = assemble_report(
        project=config.project_name,
        module=config.module_name,
        duration_seconds=time.perf_counter() - start,
        dry_run=config.dry_run,
        pages=build_page_stats(outputs.tree),
        manifests=build_manifest_stats(sources, combined),
        remote=build_remote_stats(sync_result) if sync_result is not None else None,
        warnings=warnings,
    )
    report_path = write_report(report, config.cache_dir)

    return PublishResult(
        build=outputs,
        combined=combined,
        sources=sorted(sources),
        navigation_path=navigation_path,
        report=report,
        report_path=report_path,
        sync=sync_result,
        warnings=warnings,
    )
