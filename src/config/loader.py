"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY (Junior Developer Guide) ──────────────────
#
# Layers, later overriding earlier:
#
#   1. config/config.yaml  static defaults and prompt tuning, checked in
#   2. .env file           local developer overrides, never committed
#   3. Environment vars    deployment values
#
# load_config() reads the YAML first, then deep-merges the values that
# Settings resolved from layers 2 and 3 on top of it.  Nested keys merge
# recursively:
#   base      = {"ingest": {"classify_max_tokens": 500}}
#   overrides = {"ingest": {"max_text_chars": 50000}}
#   result    = {"ingest": {"classify_max_tokens": 500, "max_text_chars": 50000}}
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml

from src.config.settings import Settings
from src.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge environment-derived Settings over it.

    Args:
        path: Path to the YAML configuration file.  A missing file is not
            an error; an unreadable or non-mapping one is.
        settings: Settings instance to merge.  Defaults to a fresh one.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: If the YAML is malformed or not a mapping.
    """
    config_path = Path(path)
    yaml_config: dict = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(yaml_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at the top level")

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
            "cors_origins": settings.get_cors_origins(),
        },
        "llm": {
            "available_providers": settings.get_available_llm_providers(),
            "fast_model": settings.llm_fast_model,
            "mid_model": settings.llm_mid_model,
        },
        "storage": {
            "hierarchy_db_path": settings.hierarchy_db_path,
        },
        "ingest": {
            "max_text_chars": settings.ingest_max_text_chars,
            "batch_limit": settings.ingest_batch_limit,
            "preview_chars": settings.ingest_preview_chars,
            "log_limit": settings.ingest_log_limit,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
