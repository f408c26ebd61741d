from __future__ import annotations

from pathlib import Path

import pytest

from docweave.config import PACKAGED_THEMES_DIR, SINGLE_MODULE, Config, RemoteConfig, load_config


def _write_project_config(root: Path) -> Path:
    config_text = (
        "project_name: Billing Docs\n"
        "module_name: billing\n"
        "content_dir: docs\n"
        "output_dir: site\n"
        "cache_dir: .cache\n"
        "themes_dir: themes\n"
        "markdown_extension: markdown\n"
        "remote:\n"
        "  bucket: docs.example.com\n"
        "  bucket_root: /platform\n"
        "  region: eu-west-1\n"
    )
    cfg_path = root / "docweave.yml"
    cfg_path.write_text(config_text, encoding="utf-8")
    return cfg_path


def test_load_config_resolves_paths_relative_to_config_directory(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("AWS_ACCESS_KEY_ID", raising=False)
    monkeypatch.delenv("AWS_SECRET_ACCESS_KEY", raising=False)
    project = tmp_path / "project"
    project.mkdir()
    _write_project_config(project)

    # Pass a directory path; loader should find docweave.yml inside it.
    cfg = load_config(project)

    assert cfg.content_dir == (project / "docs").resolve()
    assert cfg.output_dir == (project / "site").resolve()
    assert cfg.cache_dir == (project / ".cache").resolve()
    assert cfg.themes_root == (project / "themes").resolve()
    assert cfg.staging_dir == (project / ".cache" / "manifest").resolve()
    assert cfg.markdown_extension == ".markdown"
    assert cfg.module_name == "billing"
    assert cfg.multi_module

    assert cfg.remote.bucket_root == "platform/"
    assert cfg.remote.region == "eu-west-1"
    assert cfg.remote.site_url == "http://docs.example.com/platform/"
    assert not cfg.remote.has_credentials


def test_load_config_accepts_config_file_path(tmp_path: Path) -> None:
    project = tmp_path / "siteproj"
    project.mkdir()
    config_file = _write_project_config(project)

    cfg = load_config(config_file)
    assert cfg.output_dir == (project / "site").resolve()


def test_load_config_uses_defaults_when_directory_has_no_config(tmp_path: Path) -> None:
    project = tmp_path / "emptyproj"
    project.mkdir()

    cfg = load_config(project)

    assert cfg.content_dir == (project / "content").resolve()
    assert cfg.output_dir == (project / "dist").resolve()
    assert cfg.cache_dir == (project / ".cache").resolve()
    assert cfg.themes_root == PACKAGED_THEMES_DIR
    assert cfg.module_name == SINGLE_MODULE
    assert not cfg.multi_module
    assert cfg.remote.bucket_root == ""


def test_load_config_reads_credentials_from_environment(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "env-key")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "env-secret")
    project = tmp_path / "project"
    project.mkdir()
    _write_project_config(project)

    cfg = load_config(project)

    assert cfg.remote.access_key_id == "env-key"
    assert cfg.remote.has_credentials
    assert "env-secret" not in repr(cfg.remote)


def test_load_config_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yml")


def test_load_config_rejects_invalid_values(tmp_path: Path) -> None:
    (tmp_path / "docweave.yml").write_text("module_name: a/b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(tmp_path)

    (tmp_path / "docweave.yml").write_text("- not\n- a mapping\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(tmp_path)


def test_config_is_immutable() -> None:
    cfg = Config()

    with pytest.raises(ValueError):
        cfg.module_name = "other"  # type: ignore[misc]


def test_bucket_root_is_normalized() -> None:
    assert RemoteConfig(bucket_root="docs").bucket_root == "docs/"
    assert RemoteConfig(bucket_root="docs/").bucket_root == "docs/"
    assert RemoteConfig(bucket_root=None).bucket_root == ""
