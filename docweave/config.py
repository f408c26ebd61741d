"""Configuration models and loader for docweave projects."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

CONFIG_FILENAME = "docweave.yml"
SINGLE_MODULE = "_simple"
PACKAGED_THEMES_DIR = Path(__file__).resolve().parent / "themes"


class RemoteConfig(BaseModel):
    """Connection details for the shared object store."""

    model_config = ConfigDict(frozen=True)

    bucket: str | None = Field(default=None, description="Name of the destination bucket.")
    bucket_root: str = Field(
        default="",
        description="Key prefix shared by every module publishing into the bucket.",
    )
    region: str = Field(default="us-east-1")
    endpoint_url: str | None = Field(
        default=None,
        description="Override for S3-compatible services such as MinIO or LocalStack.",
    )
    access_key_id: str | None = Field(default=None)
    secret_access_key: str | None = Field(default=None, repr=False)
    max_concurrency: int = Field(default=8, ge=1, le=64, description="Parallel object uploads.")
    delete_batch_size: int = Field(default=1000, ge=1, le=1000)

    @field_validator("bucket_root", mode="before")
    def _normalize_root(cls, value: Any) -> str:
        text = str(value or "").strip().lstrip("/")
        if text and not text.endswith("/"):
            text = f"{text}/"
        return text

    @property
    def has_credentials(self) -> bool:
        return bool(self.bucket and self.access_key_id and self.secret_access_key)

    @property
    def site_url(self) -> str:
        return f"http://{self.bucket}/{self.bucket_root}"


class Config(BaseModel):
    """Immutable settings threaded through the build and publish pipeline."""

    model_config = ConfigDict(frozen=True)

    project_name: str = Field(default="Docweave Project")
    module_name: str = Field(
        default=SINGLE_MODULE,
        description=f"Unique module name; '{SINGLE_MODULE}' publishes a standalone site without merging.",
    )
    content_dir: Path = Field(default=Path("content"))
    output_dir: Path = Field(default=Path("dist"))
    cache_dir: Path = Field(default=Path(".cache"))
    themes_dir: Path | None = Field(default=None)
    theme_name: str = Field(default="default")
    markdown_extension: str = Field(default=".md")
    sort_entries: bool = Field(
        default=False,
        description="Sort sibling entries by name instead of keeping filesystem order.",
    )
    dry_run: bool = Field(default=False, description="Skip remote deletion and upload.")
    remote: RemoteConfig = Field(default_factory=RemoteConfig)

    @field_validator("content_dir", "output_dir", "cache_dir", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("themes_dir", mode="before")
    def _ensure_optional_path(cls, value: Any) -> Path | None:
        if value is None or value == "":
            return None
        return Path(value)

    @field_validator("module_name")
    def _validate_module_name(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("module_name cannot be empty")
        if "/" in text or "\\" in text:
            raise ValueError("module_name cannot contain path separators")
        return text

    @field_validator("markdown_extension")
    def _normalize_extension(cls, value: str) -> str:
        text = value.strip()
        if not text:
            return ".md"
        if not text.startswith("."):
            text = f".{text}"
        return text.lower()

    @property
    def multi_module(self) -> bool:
        return self.module_name != SINGLE_MODULE

    @property
    def staging_dir(self) -> Path:
        """Local directory receiving manifests downloaded from the store."""
        return self.cache_dir / "manifest"

    @property
    def themes_root(self) -> Path:
        if self.themes_dir is not None:
            return self.themes_dir
        return PACKAGED_THEMES_DIR


def load_config(path: str | Path) -> Config:
    """Load configuration and resolve relative paths based on the config location.

    ``path`` may point to a file (e.g. ``/docs/docweave.yml``) or to a directory
    that may contain one. Relative paths are interpreted relative to the
    directory holding the config file. Remote credentials missing from the file
    are taken from ``AWS_ACCESS_KEY_ID`` / ``AWS_SECRET_ACCESS_KEY``.
    """
    candidate = Path(path)
    data: dict[str, Any] = {}
    if candidate.is_dir():
        config_file = candidate / CONFIG_FILENAME
        if config_file.exists():
            data = _read_yaml(config_file)
        base_dir = candidate.resolve()
    elif candidate.exists():
        data = _read_yaml(candidate)
        base_dir = candidate.parent.resolve()
    else:
        raise FileNotFoundError(candidate)

    try:
        cfg = Config(**data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration in {candidate}: {exc}") from exc

    def _abs(value: Path) -> Path:
        return value if value.is_absolute() else (base_dir / value).resolve()

    remote = cfg.remote.model_copy(
        update={
            "access_key_id": cfg.remote.access_key_id or os.environ.get("AWS_ACCESS_KEY_ID"),
            "secret_access_key": cfg.remote.secret_access_key or os.environ.get("AWS_SECRET_ACCESS_KEY"),
        }
    )
    return cfg.model_copy(
        update={
            "content_dir": _abs(cfg.content_dir),
            "output_dir": _abs(cfg.output_dir),
            "cache_dir": _abs(cfg.cache_dir),
            "themes_dir": _abs(cfg.themes_dir) if cfg.themes_dir is not None else None,
            "remote": remote,
        }
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must define a mapping.")
    return data
