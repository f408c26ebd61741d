from __future__ import annotations

from pathlib import Path

import pytest

from docweave.config import Config, RemoteConfig
from docweave.remote import DeleteFailure, ObjectNotFound, ObjectStoreError


class InMemoryObjectStore:
    """Object store fake that records every call in order."""

    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects: dict[str, bytes] = dict(objects or {})
        self.calls: list[tuple[str, object]] = []
        self.fail_get: set[str] = set()
        self.fail_put: set[str] = set()
        self.fail_delete: set[str] = set()
        self.reject_delete_batches = False

    async def get(self, key: str) -> bytes:
        self.calls.append(("get", key))
        if key in self.fail_get:
            raise ObjectStoreError(f"boom: {key}")
        if key not in self.objects:
            raise ObjectNotFound(key)
        return self.objects[key]

    async def list_keys(self, prefix: str) -> list[str]:
        self.calls.append(("list", prefix))
        return sorted(key for key in self.objects if key.startswith(prefix))

    async def put_file(self, key: str, path: Path, content_type: str | None = None) -> None:
        self.calls.append(("put", key))
        if key in self.fail_put:
            raise ObjectStoreError(f"upload refused: {key}")
        self.objects[key] = path.read_bytes()

    async def delete_many(self, keys: list[str]) -> list[DeleteFailure]:
        self.calls.append(("delete", list(keys)))
        if self.reject_delete_batches:
            raise ObjectStoreError("access denied")
        failures = []
        for key in keys:
            if key in self.fail_delete:
                failures.append(DeleteFailure(key=key, message="locked"))
            else:
                self.objects.pop(key, None)
        return failures

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


def write_files(root: Path, files: dict[str, str]) -> Path:
    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def make_config(tmp_path: Path):
    def _make(**overrides: object) -> Config:
        values: dict[str, object] = {
            "project_name": "Test Docs",
            "content_dir": tmp_path / "content",
            "output_dir": tmp_path / "dist",
            "cache_dir": tmp_path / ".cache",
            "sort_entries": True,
            "remote": RemoteConfig(bucket="docs-bucket", bucket_root="site", access_key_id="a", secret_access_key="b"),
        }
        values.update(overrides)
        return Config(**values)

    return _make


@pytest.fixture
def write_tree():
    return write_files
