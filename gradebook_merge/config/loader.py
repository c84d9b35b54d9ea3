from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.column_mapping import ColumnMapping
from ..models.config_models import KeywordConfig, ReconcileConfig

"""Config loader.

Responsibilities:
- Load the bundled default keyword sets (config/keywords.yml)
- Load an optional user YAML config and validate it (config/config_schema.json)
- Apply defaults and merge keyword overrides into one KeywordConfig
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "default_config",
    "default_keywords",
    "load_config",
]

_CONFIG_DIR = Path(__file__).parent
KEYWORDS_PATH = _CONFIG_DIR / "keywords.yml"
SCHEMA_PATH = _CONFIG_DIR / "config_schema.json"

DEFAULT_CONFIG_PATH = Path("config/gradebook.yml")


class ConfigError(Exception):
    pass


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"invalid yaml: top level of {path.name} must be a mapping")
    return data


@lru_cache(maxsize=1)
def default_keywords() -> KeywordConfig:
    """Bundled bilingual keyword sets."""
    data = _read_yaml(KEYWORDS_PATH)
    try:
        return KeywordConfig.from_mapping(data)
    except ValueError as e:
        raise ConfigError(f"invalid keyword file {KEYWORDS_PATH.name}: {e}") from e


def default_config() -> ReconcileConfig:
    return ReconcileConfig(keywords=default_keywords())


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or the data violates it
            (unknown keys, wrong types, negative indices, ...).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path | None = None, *, required: bool = False) -> ReconcileConfig:
    """Load a ReconcileConfig from YAML.

    Args:
        path: config file. None -> DEFAULT_CONFIG_PATH.
        required: when True a missing file is an error; otherwise the
            built-in defaults are returned.
    """
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        if required:
            raise ConfigError(f"config file not found: {cfg_path}")
        return default_config()

    data = _read_yaml(cfg_path)
    _validate_config_schema(data)

    keywords = default_keywords()
    if data.get("keywords"):
        keywords = keywords.merged(data["keywords"])

    mappings = {
        str(name): ColumnMapping.from_dict(raw)
        for name, raw in (data.get("mappings") or {}).items()
    }

    defaults = ReconcileConfig(keywords=keywords)
    suffixes = data.get("file_suffixes")
    return ReconcileConfig(
        keywords=keywords,
        source_directory=data.get("source_directory"),
        file_suffixes=tuple(s.lower() for s in suffixes) if suffixes else defaults.file_suffixes,
        header_scan_limit=data.get("header_scan_limit", defaults.header_scan_limit),
        name_sample_rows=data.get("name_sample_rows", defaults.name_sample_rows),
        trend_threshold=float(data.get("trend_threshold", defaults.trend_threshold)),
        default_language=data.get("default_language", defaults.default_language),
        mappings=mappings,
    )
