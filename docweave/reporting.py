"""Publish reporting helpers for docweave."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, Field

from .content.models import PageTree
from .errors import FileSystemError
from .manifests.models import ManifestNode
from .remote.sync import SyncResult

REPORT_FILENAME = "publish-report.json"


class PageStats(BaseModel):
    total: int
    documents: int
    categories: int


class ManifestStats(BaseModel):
    sources: list[str] = Field(default_factory=list)
    combined_nodes: int


class RemoteStats(BaseModel):
    skipped: bool
    first_publish: bool
    stale: list[str] = Field(default_factory=list)
    deleted: int
    delete_failures: int
    uploaded: int
    upload_failures: int


class PublishReport(BaseModel):
    project: str
    module: str
    generated_at: datetime
    duration_seconds: float
    dry_run: bool
    pages: PageStats
    manifests: ManifestStats
    remote: RemoteStats | None = None
    warnings: list[str] = Field(default_factory=list)


def build_page_stats(tree: PageTree) -> PageStats:
    total = documents = 0
    for index, page in tree.walk():
        if index == 0:
            continue
        total += 1
        if page.has_content:
            documents += 1
    return PageStats(total=total, documents=documents, categories=total - documents)


def build_manifest_stats(sources: Mapping[str, ManifestNode], combined: ManifestNode) -> ManifestStats:
    return ManifestStats(sources=sorted(sources), combined_nodes=len(combined.iter_nodes()))


def build_remote_stats(result: SyncResult) -> RemoteStats:
    return RemoteStats(
        skipped=result.skipped,
        first_publish=result.first_publish,
        stale=list(result.stale),
        deleted=result.deletes.deleted,
        delete_failures=result.deletes.failed,
        uploaded=result.uploads.uploaded,
        upload_failures=result.uploads.failed,
    )


def assemble_report(
    *,
    project: str,
    module: str,
    duration_seconds: float,
    dry_run: bool,
    pages: PageStats,
    manifests: ManifestStats,
    remote: RemoteStats | None,
    warnings: list[str],
) -> PublishReport:
    return PublishReport(
        project=project,
        module=module,
        generated_at=datetime.now(timezone.utc),
        duration_seconds=duration_seconds,
        dry_run=dry_run,
        pages=pages,
        manifests=manifests,
        remote=remote,
        warnings=list(warnings),
    )


def write_report(report: PublishReport, directory: Path) -> Path:
    target = directory / REPORT_FILENAME
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as handle:
            json.dump(report.model_dump(mode="json"), handle, ensure_ascii=False, indent=2)
    except OSError as exc:
        raise FileSystemError(f"Failed to write report '{target}': {exc}") from exc
    return target
