"""
Configuration file loading.

Reads an EngineConfig from a JSON or YAML file. Relative file references
(templates, layouts, partial directories, static and error pages) are
resolved against the directory holding the configuration file, so a
project can be started from any working directory.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from pagesmith.config.schemas import EngineConfig
from pagesmith.errors import ConfigError

logger = logging.getLogger(__name__)


def _read(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a mapping")
    return data


def _rebase(value: str | None, base: Path) -> str | None:
    if value is None:
        return None
    candidate = Path(value)
    if candidate.is_absolute():
        return value
    return str(base / candidate)


def parse_config(data: dict[str, Any], base_dir: str | Path | None = None) -> EngineConfig:
    """
    Validate raw configuration data.

    Args:
        data: Decoded configuration mapping
        base_dir: Directory relative file references are resolved against

    Raises:
        ConfigError: If validation fails or page names are not unique
    """
    try:
        config = EngineConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config: {e}") from e

    names = [page.name for page in config.pages]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate page names: {', '.join(duplicates)}")

    sources = config.sources
    for page in config.pages:
        if page.template not in sources:
            raise ConfigError(f"Page {page.name} uses undeclared template {page.template}")
        if page.layout and page.layout not in sources:
            raise ConfigError(f"Page {page.name} uses undeclared layout {page.layout}")

    if base_dir is None:
        return config

    base = Path(base_dir)
    return config.model_copy(
        update={
            "templates": {k: _rebase(v, base) for k, v in config.templates.items()},
            "layouts": {k: _rebase(v, base) for k, v in config.layouts.items()},
            "partials_paths": [_rebase(p, base) for p in config.partials_paths],
            "static_pages": {k: _rebase(v, base) for k, v in config.static_pages.items()},
            "not_found_page": _rebase(config.not_found_page, base),
            "error_page": _rebase(config.error_page, base),
        }
    )


def load_config(path: str | Path) -> EngineConfig:
    """
    Load the engine configuration from a ``.json``, ``.yaml`` or ``.yml`` file.

    Raises:
        ConfigError: If the file is missing, malformed or invalid
    """
    path = Path(path)
    config = parse_config(_read(path), base_dir=path.parent)
    logger.info(
        f"[config] Loaded {path}: {len(config.pages)} pages, "
        f"{len(config.sources)} templates"
    )
    return config
