"""Unified configuration loaded from .inkwell.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".inkwell.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "inkwell" / "config.toml"


class ContentConfig(BaseModel):
    """[content] section."""

    root: str = "."
    extensions: list[str] = Field(default_factory=lambda: [".md", ".markdown"])
    drafts_collections: list[str] = Field(default_factory=lambda: ["_drafts", "drafts"])
    exclude: list[str] = Field(default_factory=lambda: ["_site", "node_modules"])


class LoaderConfig(BaseModel):
    """[loader] section."""

    workers: int = Field(default=1, ge=1)


class ResolverConfig(BaseModel):
    """[resolver] section."""

    threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    shingle_size: int = Field(default=3, ge=1)
    num_perm: int = Field(default=64, ge=1)
    bands: int = Field(default=16, ge=1)
    min_paragraph_chars: int = Field(default=40, ge=0)

    @property
    def rows_per_band(self) -> int:
        return max(1, self.num_perm // self.bands)


class OutputConfig(BaseModel):
    """[output] section."""

    directory: str = "./_resolved"
    include_history: bool = False


class InkwellConfig(BaseModel):
    """Top-level configuration model."""

    content: ContentConfig = Field(default_factory=ContentConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


def load_config(path: str | Path | None = None) -> InkwellConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .inkwell.toml in CWD
    3. ~/.config/inkwell/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged InkwellConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    config = InkwellConfig.model_validate(data) if data else InkwellConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: InkwellConfig, **cli_kwargs: object) -> InkwellConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).

    Args:
        config: Base config.
        **cli_kwargs: CLI flag values, e.g. ``content_root``, ``threshold``.

    Returns:
        Updated config with CLI overrides applied.
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "content_root": ("content", "root"),
        "threshold": ("resolver", "threshold"),
        "workers": ("loader", "workers"),
        "output_directory": ("output", "directory"),
        "include_history": ("output", "include_history"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return InkwellConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: InkwellConfig) -> InkwellConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "INKWELL_CONTENT_ROOT": ("content", "root"),
        "INKWELL_OUTPUT_DIR": ("output", "directory"),
        "INKWELL_THRESHOLD": ("resolver", "threshold"),
        "INKWELL_WORKERS": ("loader", "workers"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    return InkwellConfig.model_validate(data)
