"""Site configuration loaded from folio.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from folio.errors import ConfigError
from folio.models import DraftPolicy

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "folio.toml"


class SiteSection(BaseModel):
    """[site] section."""

    title: str = "Blog"
    description: str = ""
    author: str = ""
    url: str = ""
    language: str = "en"

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class ContentSection(BaseModel):
    """[content] section."""

    posts_dir: str = "_posts"
    drafts_dir: str = "_drafts"
    layouts_dir: str = "_layouts"
    exclude: list[str] = Field(
        default_factory=lambda: [CONFIG_FILENAME, "README.md", "LICENSE*"]
    )


class BuildSection(BaseModel):
    """[build] section."""

    drafts: DraftPolicy = DraftPolicy.EXCLUDE
    tag_pages: bool = True
    category_pages: bool = True
    feed: bool = True
    sitemap: bool = True
    feed_limit: int = Field(default=20, ge=1)
    workers: int = Field(default=1, ge=1)
    clean: bool = False


class FolioConfig(BaseModel):
    """Top-level configuration for a site build."""

    site: SiteSection = Field(default_factory=SiteSection)
    content: ContentSection = Field(default_factory=ContentSection)
    build: BuildSection = Field(default_factory=BuildSection)

    @property
    def publishes_feeds(self) -> bool:
        """Feeds and sitemaps need absolute URLs."""
        return bool(self.site.url)


def load_config(source: Path | None = None, path: str | Path | None = None) -> FolioConfig:
    """Load configuration for a site.

    Search order:
    1. Explicit path (if provided)
    2. folio.toml in the source directory

    Then overlay environment variables.

    Args:
        source: Site source directory.
        path: Explicit path to a TOML file.

    Returns:
        Merged FolioConfig.

    Raises:
        ConfigError: A value in the file, env vars, or flags is invalid.
    """
    data: dict[str, object] = {}
    loaded_from: Path | None = None

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
            loaded_from = toml_path
        else:
            logger.warning("Config file not found: %s", toml_path)
    elif source is not None:
        candidate = source / CONFIG_FILENAME
        if candidate.exists():
            data = _load_toml(candidate)
            loaded_from = candidate
            logger.info("Loaded config from %s", candidate)

    config = _validate(data, loaded_from) if data else FolioConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: FolioConfig, **cli_kwargs: object) -> FolioConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "site_url": ("site", "url"),
        "drafts": ("build", "drafts"),
        "workers": ("build", "workers"),
        "clean": ("build", "clean"),
    }

    sources: dict[str, str] = {}
    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value
            sources[f"{section}.{field}"] = "--" + key.replace("_", "-")

    return _validate(data, sources=sources)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: FolioConfig) -> FolioConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "FOLIO_SITE_URL": ("site", "url"),
        "FOLIO_SITE_TITLE": ("site", "title"),
        "FOLIO_DRAFTS": ("build", "drafts"),
        "FOLIO_WORKERS": ("build", "workers"),
    }

    sources: dict[str, str] = {}
    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value
            sources[f"{section}.{field}"] = env_var

    return _validate(data, sources=sources)


def _validate(
    data: dict[str, object],
    path: Path | None = None,
    sources: dict[str, str] | None = None,
) -> FolioConfig:
    """Validate merged config data, naming the offending key on failure.

    ``sources`` maps a ``section.field`` location to the env var or flag
    that supplied its value.
    """
    try:
        return FolioConfig.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        if sources and where in sources:
            where = f"{where} (from {sources[where]})"
        raise ConfigError(f"{where}: {first['msg']}", path) from exc
