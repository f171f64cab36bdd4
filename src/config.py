"""Unified site configuration loaded from inkpress.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from inkpress.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "inkpress.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]


class SiteSectionConfig(BaseModel):
    """[site] section."""

    title: str = "My Blog"
    description: str = ""
    base_url: str = "http://localhost:8000/"
    author: str = ""
    language: str = "en"
    default_layout: str = "post"


class ContentSectionConfig(BaseModel):
    """[content] section."""

    directory: str = "content"
    posts_dir: str = "posts"
    static_dir: str = "static"
    build_drafts: bool = False


class ThemeSectionConfig(BaseModel):
    """[theme] section."""

    name: str = "theme"
    repository: str = ""
    path: str = ""
    cache_dir: str = ".inkpress/themes"
    lock_file: str = "theme.lock.json"
    git_timeout: int = 120


class BuildSectionConfig(BaseModel):
    """[build] section."""

    output_dir: str = "public"
    minify: bool = True
    feed_limit: int = 20


class DeploySectionConfig(BaseModel):
    """[deploy] section."""

    target: str = "directory"
    directory: str = ""
    remote: str = ""
    branch: str = "gh-pages"
    trigger_branch: str = "main"
    commit_message: str = "Publish site"
    git_timeout: int = 300


class ServeSectionConfig(BaseModel):
    """[serve] section."""

    host: str = "127.0.0.1"
    port: int = 8000
    poll_interval: float = 1.0


class NotificationConfig(BaseModel):
    """[notifications] section."""

    slack_webhook: str = ""
    ntfy_url: str = ""
    ntfy_topic: str = "inkpress"
    enabled: bool = True

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.slack_webhook or self.ntfy_url)


class InkpressConfig(BaseModel):
    """Top-level configuration for a site.

    ``root`` is the project directory; every relative path in the other
    sections is resolved against it.
    """

    root: Path = Field(default_factory=Path.cwd)
    site: SiteSectionConfig = Field(default_factory=SiteSectionConfig)
    content: ContentSectionConfig = Field(default_factory=ContentSectionConfig)
    theme: ThemeSectionConfig = Field(default_factory=ThemeSectionConfig)
    build: BuildSectionConfig = Field(default_factory=BuildSectionConfig)
    deploy: DeploySectionConfig = Field(default_factory=DeploySectionConfig)
    serve: ServeSectionConfig = Field(default_factory=ServeSectionConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    def resolve(self, value: str | Path) -> Path:
        """Resolve a configured path against the project root."""
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.root / path

    @property
    def content_dir(self) -> Path:
        return self.resolve(self.content.directory)

    @property
    def static_dir(self) -> Path:
        return self.resolve(self.content.static_dir)

    @property
    def output_dir(self) -> Path:
        return self.resolve(self.build.output_dir)

    @property
    def theme_lock_path(self) -> Path:
        return self.resolve(self.theme.lock_file)

    @property
    def theme_cache_dir(self) -> Path:
        return self.resolve(self.theme.cache_dir)

    @property
    def state_dir(self) -> Path:
        return self.root / ".inkpress"

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILENAME


def load_config(path: str | Path | None = None) -> InkpressConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. inkpress.toml in each of ``CONFIG_SEARCH_PATHS``

    Then overlay environment variables. The directory holding the file
    becomes the project root; with no file the root is the CWD.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged InkpressConfig.

    Raises:
        ConfigError: If a config file exists but is not valid TOML or
            does not match the schema.
    """
    data: dict[str, object] = {}
    root = Path.cwd()

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
            root = toml_path.resolve().parent
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                root = candidate.resolve().parent
                logger.info("Loaded config from %s", candidate)
                break

    data["root"] = root
    try:
        config = InkpressConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    return _apply_env_vars(config)


def merge_cli_overrides(config: InkpressConfig, **cli_kwargs: object) -> InkpressConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).

    Args:
        config: Base config.
        **cli_kwargs: CLI flag values, keyed ``<section>_<field>``
            (e.g., ``build_output_dir``, ``serve_port``).

    Returns:
        Updated config with CLI overrides applied.
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "build_output_dir": ("build", "output_dir"),
        "content_build_drafts": ("content", "build_drafts"),
        "serve_host": ("serve", "host"),
        "serve_port": ("serve", "port"),
        "site_base_url": ("site", "base_url"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value
        else:
            logger.debug("Ignoring unknown CLI override %s", key)

    return InkpressConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc


def _apply_env_vars(config: InkpressConfig) -> InkpressConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "INKPRESS_OUTPUT_DIR": ("build", "output_dir"),
        "INKPRESS_BASE_URL": ("site", "base_url"),
        "INKPRESS_THEME_PATH": ("theme", "path"),
        "INKPRESS_DEPLOY_DIR": ("deploy", "directory"),
        "INKPRESS_DEPLOY_REMOTE": ("deploy", "remote"),
        "INKPRESS_DEPLOY_BRANCH": ("deploy", "branch"),
        "INKPRESS_SLACK_WEBHOOK": ("notifications", "slack_webhook"),
        "INKPRESS_NTFY_URL": ("notifications", "ntfy_url"),
        "INKPRESS_NTFY_TOPIC": ("notifications", "ntfy_topic"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    port_raw = os.environ.get("INKPRESS_PORT")
    if port_raw is not None:
        try:
            data["serve"]["port"] = int(port_raw)
        except ValueError as exc:
            raise ConfigError(f"INKPRESS_PORT must be an integer, got {port_raw!r}") from exc

    return InkpressConfig.model_validate(data)
