"""Theme resolution and template rendering for generated pages."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import DocweaveError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "theme.json"
DEFAULT_THEME_NAME = "default"
REQUIRED_ENTRYPOINTS: tuple[str, ...] = ("page", "frame")


class ThemeError(DocweaveError):
    """Raised when a theme cannot be found, parsed or rendered."""


class ScriptAsset(BaseModel):
    """A ``<script>`` tag the theme asks every page to include."""

    model_config = ConfigDict(populate_by_name=True)

    src: str
    type: str | None = None
    defer: bool = False
    async_: bool = Field(default=False, alias="async")

    def to_template_dict(self) -> dict[str, Any]:
        return {"src": self.src, "type": self.type, "defer": self.defer, "async": self.async_}


class ThemeAssets(BaseModel):
    styles: list[str] = Field(default_factory=list)
    scripts: list[ScriptAsset] = Field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.styles or self.scripts)


class ThemeManifest(BaseModel):
    """Contents of a theme's ``theme.json``."""

    model_config = ConfigDict(extra="ignore")

    name: str = "Unnamed Theme"
    version: str | None = None
    entrypoints: dict[str, str] = Field(
        default_factory=dict,
        description="Template file per rendering role, e.g. 'page' and 'frame'.",
    )
    assets: ThemeAssets = Field(default_factory=ThemeAssets)
    static_dir: str = Field(
        default="static",
        description="Theme subdirectory copied into the output 'assets' folder.",
    )


@dataclass(frozen=True, slots=True)
class ThemeLayer:
    name: str
    directory: Path
    manifest: ThemeManifest

    @property
    def static_path(self) -> Path:
        return self.directory / self.manifest.static_dir


class ThemeLoader:
    """Render pages with the active theme layered over the fallback theme.

    Templates and static files are looked up in the active theme first and
    then in the fallback, so a custom theme only ships what it overrides.
    A missing active theme degrades to the fallback with a warning.
    """

    def __init__(
        self,
        *,
        themes_root: Path,
        active_theme: str = DEFAULT_THEME_NAME,
        fallback_theme: str = DEFAULT_THEME_NAME,
    ) -> None:
        self.themes_root = Path(themes_root)
        self.layers = _resolve_layers(
            self.themes_root,
            active_theme or DEFAULT_THEME_NAME,
            fallback_theme or DEFAULT_THEME_NAME,
        )
        self.manifest = _overlay(self.layers)
        self.environment = Environment(
            loader=FileSystemLoader([str(layer.directory) for layer in self.layers]),
            autoescape=select_autoescape(["html", "xml", "j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.ensure_templates(REQUIRED_ENTRYPOINTS)
        logger.debug("Loaded theme layers: %s", ", ".join(layer.name for layer in self.layers))

    @property
    def active_theme(self) -> str:
        return self.layers[0].name

    @property
    def assets(self) -> ThemeAssets:
        return self.manifest.assets

    def static_dirs(self) -> list[Path]:
        """Static folders ordered fallback first, so later copies override earlier ones."""
        return [layer.static_path for layer in reversed(self.layers) if layer.static_path.is_dir()]

    def render(self, key: str, context: dict[str, Any]) -> str:
        return self.environment.get_template(self._template_name(key)).render(**context)

    def ensure_templates(self, keys: Sequence[str]) -> None:
        for key in keys:
            name = self._template_name(key)
            try:
                self.environment.get_template(name)
            except TemplateNotFound as exc:
                raise ThemeError(f"Template '{name}' for '{key}' not found in theme '{self.active_theme}'.") from exc

    def _template_name(self, key: str) -> str:
        name = self.manifest.entrypoints.get(key)
        if not name:
            raise ThemeError(f"Theme '{self.active_theme}' does not define an entrypoint named '{key}'.")
        return name


def build_theme_loader(
    *,
    themes_root: Path,
    active_theme: str = DEFAULT_THEME_NAME,
    fallback_theme: str = DEFAULT_THEME_NAME,
) -> ThemeLoader:
    """Construct a ThemeLoader, reporting filesystem failures as :class:`ThemeError`."""
    try:
        return ThemeLoader(themes_root=themes_root, active_theme=active_theme, fallback_theme=fallback_theme)
    except OSError as exc:
        raise ThemeError(f"Unexpected error loading theme '{active_theme}': {exc}") from exc


def _resolve_layers(themes_root: Path, active: str, fallback: str) -> list[ThemeLayer]:
    if not themes_root.is_dir():
        raise ThemeError(f"Themes root '{themes_root}' does not exist.")

    layers: list[ThemeLayer] = []
    for name in dict.fromkeys([active, fallback]):
        directory = themes_root / name
        manifest = _read_manifest(directory / MANIFEST_FILENAME)
        if manifest is None:
            if name == active and active != fallback:
                logger.warning("Theme '%s' not available. Falling back to '%s'.", active, fallback)
            continue
        layers.append(ThemeLayer(name=name, directory=directory, manifest=manifest))

    if not layers:
        raise ThemeError(f"Neither theme '{active}' nor fallback '{fallback}' exists under {themes_root}.")
    return layers


def _overlay(layers: list[ThemeLayer]) -> ThemeManifest:
    """Merge manifests from the fallback upwards; the active theme wins per key."""
    merged = layers[-1].manifest
    for layer in reversed(layers[:-1]):
        own = layer.manifest
        merged = ThemeManifest(
            name=own.name,
            version=own.version or merged.version,
            entrypoints={**merged.entrypoints, **own.entrypoints},
            assets=merged.assets if own.assets.empty else own.assets,
            static_dir=own.static_dir,
        )
    return merged


def _read_manifest(path: Path) -> ThemeManifest | None:
    if not path.is_file():
        logger.debug("Theme manifest not found at %s", path)
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ThemeError(f"Failed to load theme manifest at {path}: {exc}") from exc
    try:
        return ThemeManifest.model_validate(data)
    except ValidationError as exc:
        raise ThemeError(f"Theme manifest validation failed for {path}: {exc}") from exc
