"""Incremental publication of one module into the shared object store."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Sequence

from ..errors import (
    FileSystemError,
    ManifestError,
    ManifestFetchError,
    ManifestNotFound,
    RemoteDeleteError,
    RemoteUploadError,
)
from ..manifests import MANIFEST_DIRNAME, ManifestNode, loads_manifest, manifest_relpath
from .store import DeleteFailure, ObjectNotFound, ObjectStore, ObjectStoreError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]

MAX_DELETE_BATCH = 1000
PROGRESS_INTERVAL_SECONDS = 1.0


@dataclass
class DeleteSummary:
    requested: int = 0
    failures: list[DeleteFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def deleted(self) -> int:
        return self.requested - self.failed


@dataclass
class UploadSummary:
    total: int = 0
    failed_keys: list[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_keys)

    @property
    def uploaded(self) -> int:
        return self.total - self.failed


@dataclass
class SyncResult:
    """Terminal outcome of syncing a module with the store."""

    skipped: bool = False
    first_publish: bool = False
    error: str | None = None
    stale: list[str] = field(default_factory=list)
    deletes: DeleteSummary = field(default_factory=DeleteSummary)
    uploads: UploadSummary = field(default_factory=UploadSummary)

    @property
    def complete(self) -> bool:
        return not self.skipped and self.deletes.failed == 0 and self.uploads.failed == 0


class _Progress:
    """Report phase progress at most once per interval, plus the final count."""

    def __init__(self, name: str, total: int, callback: ProgressCallback | None) -> None:
        self.name = name
        self.total = total
        self.done = 0
        self._callback = callback
        self._last = time.monotonic()

    def advance(self) -> None:
        self.done += 1
        now = time.monotonic()
        if self.done == self.total or now - self._last >= PROGRESS_INTERVAL_SECONDS:
            self._last = now
            logger.info("%s: %d/%d", self.name, self.done, self.total)
            if self._callback is not None:
                self._callback(self.name, self.done, self.total)


def flatten(root: ManifestNode) -> list[tuple[str | None, str | None]]:
    """Flatten a manifest into ``(id, path)`` pairs, depth-first."""
    return [(node.id, node.path) for node in root.iter_nodes()]


def compute_stale(previous: ManifestNode | None, current: ManifestNode) -> list[str]:
    """Paths published previously by this module that the current manifest lacks."""
    if previous is None:
        return []
    current_paths = {path for _, path in flatten(current)}
    stale: list[str] = []
    for _, path in flatten(previous):
        if path is not None and path not in current_paths and path not in stale:
            stale.append(path)
    return stale


def _batched(items: Sequence[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class RemoteSync:
    """Fetch, diff, delete and upload one module's objects.

    Only this module's own previous manifest is ever compared, so objects
    written by other modules sharing ``bucket_root`` are never deleted.
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        bucket_root: str,
        module_name: str,
        max_concurrency: int = 8,
        delete_batch_size: int = MAX_DELETE_BATCH,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.store = store
        self.bucket_root = bucket_root
        self.module_name = module_name
        self.max_concurrency = max(1, max_concurrency)
        self.delete_batch_size = min(max(1, delete_batch_size), MAX_DELETE_BATCH)
        self.on_progress = on_progress

    @property
    def manifest_key(self) -> str:
        return self.bucket_root + manifest_relpath(self.module_name)

    @property
    def manifest_prefix(self) -> str:
        return self.bucket_root + MANIFEST_DIRNAME

    async def fetch_previous_manifest(self) -> ManifestNode:
        """Return the manifest this module published last time.

        Raises :class:`ManifestNotFound` for a first publish and
        :class:`ManifestFetchError` for any other failure.
        """
        logger.info("Fetching previous manifest from %s", self.manifest_key)
        try:
            payload = await self.store.get(self.manifest_key)
        except ObjectNotFound as exc:
            raise ManifestNotFound(f"No previous manifest at {self.manifest_key}") from exc
        except ObjectStoreError as exc:
            raise ManifestFetchError(str(exc)) from exc
        try:
            return loads_manifest(payload)
        except ManifestError as exc:
            raise ManifestFetchError(f"{self.manifest_key}: {exc}") from exc

    async def download_all_manifests(self, staging_dir: Path) -> list[Path]:
        """Copy every published module manifest into ``staging_dir``."""
        prefix = f"{self.manifest_prefix}/"
        try:
            keys = [key for key in await self.store.list_keys(self.manifest_prefix) if key.startswith(prefix)]
        except ObjectStoreError as exc:
            raise ManifestFetchError(f"Failed to list manifests under {self.manifest_prefix}: {exc}") from exc

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _download(key: str) -> Path:
            async with semaphore:
                try:
                    payload = await self.store.get(key)
                except ObjectStoreError as exc:
                    raise ManifestFetchError(f"Failed to download {key}: {exc}") from exc
            target = staging_dir / key[len(prefix) :]
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(payload)
            except OSError as exc:
                raise FileSystemError(f"Failed to stage manifest '{target}': {exc}") from exc
            return target

        outcomes = await asyncio.gather(*(_download(key) for key in keys), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        written = [outcome for outcome in outcomes if isinstance(outcome, Path)]
        logger.info("Downloaded %d manifest(s) into %s", len(written), staging_dir)
        return list(written)

    async def delete_stale(self, paths: Sequence[str]) -> DeleteSummary:
        """Delete ``bucket_root + path`` for each stale path, batch by batch.

        Failures are logged and counted; they never stop later batches.
        """
        summary = DeleteSummary(requested=len(paths))
        if not paths:
            logger.info("Nothing to delete")
            return summary

        keys = [self.bucket_root + path for path in paths]
        logger.info("Deleting %s", ", ".join(keys))
        for batch in _batched(keys, self.delete_batch_size):
            try:
                failures = await self.store.delete_many(batch)
            except ObjectStoreError as exc:
                error = RemoteDeleteError(f"Error deleting {len(batch)} old object(s): {exc}")
                logger.error("%s", error)
                summary.failures.extend(DeleteFailure(key=key, message=str(exc)) for key in batch)
                continue
            for failure in failures:
                logger.error("%s", RemoteDeleteError(f"Error deleting {failure.key}: {failure.message}"))
            summary.failures.extend(failures)
        logger.info("Finished deleting old files (%d deleted, %d failed)", summary.deleted, summary.failed)
        return summary

    async def upload_current(self, local_output_dir: Path) -> UploadSummary:
        """Upload every file below ``local_output_dir``; never deletes anything."""
        if not local_output_dir.is_dir():
            raise FileSystemError(f"Output directory '{local_output_dir}' does not exist.")
        files = sorted(path for path in local_output_dir.rglob("*") if path.is_file())
        summary = UploadSummary(total=len(files))
        progress = _Progress("Upload content", len(files), self.on_progress)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _upload(path: Path) -> None:
            key = self.bucket_root + path.relative_to(local_output_dir).as_posix()
            content_type, _ = mimetypes.guess_type(path.name)
            async with semaphore:
                try:
                    await self.store.put_file(key, path, content_type)
                except ObjectStoreError as exc:
                    logger.error("%s", RemoteUploadError(f"Error uploading {key}: {exc}"))
                    summary.failed_keys.append(key)
                finally:
                    progress.advance()

        await asyncio.gather(*(_upload(path) for path in files))
        logger.info("Upload content: done (%d uploaded, %d failed)", summary.uploaded, summary.failed)
        return summary

    async def sync(self, current: ManifestNode, local_output_dir: Path) -> SyncResult:
        """Delete this module's stale objects, then upload its current output."""
        result = SyncResult()
        try:
            previous: ManifestNode | None = await self.fetch_previous_manifest()
        except ManifestNotFound:
            logger.info(
                "No previous manifest found. This looks like the first upload of %s to this bucket.",
                self.module_name,
            )
            previous = None
            result.first_publish = True
        except ManifestFetchError as exc:
            logger.error("Skipping remote sync for module %s: %s", self.module_name, exc)
            result.skipped = True
            result.error = str(exc)
            return result

        result.stale = compute_stale(previous, current)
        result.deletes = await self.delete_stale(result.stale)
        result.uploads = await self.upload_current(local_output_dir)
        return result
