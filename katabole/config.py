"""
config.py

Responsibility: Load optional defaults for `katabole gen` from a YAML file.

Lookup order for the file: explicit path, then $KATABOLE_CONFIG, then none.
Command-line flags override whatever the file provides.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from katabole import KataboleError

CONFIG_ENV_VAR = "KATABOLE_CONFIG"
DEFAULT_TEMPLATE_REPOSITORY = "https://github.com/katabole/kbexample"

_KEYS = ("template_repository", "template_ref")


class ConfigError(KataboleError, ValueError):
    pass


@dataclass(frozen=True)
class GenConfig:
    """Template source defaults."""

    template_repository: str = DEFAULT_TEMPLATE_REPOSITORY
    template_ref: str = ""

    def with_overrides(self, **overrides: str | None) -> GenConfig:
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _parse(data: Any, source: Path) -> GenConfig:
    if data is None:
        return GenConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: configuration must be a mapping at the top level.")

    values: dict[str, str] = {}
    for key in _KEYS:
        if key not in data or data[key] is None:
            continue
        raw = data[key]
        if not isinstance(raw, str):
            raise ConfigError(f"{source}: `{key}` must be a string.")
        values[key] = raw.strip()

    if values.get("template_repository") == "":
        raise ConfigError(f"{source}: `template_repository` must not be empty.")
    return GenConfig(**values)


def load_config(path: str | Path | None = None) -> GenConfig:
    """
    Load a `GenConfig`.

    - path: explicit file; it must exist
    - otherwise $KATABOLE_CONFIG if set (must exist), otherwise built-in defaults
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR, "").strip()
        if not env_path:
            return GenConfig()
        path = env_path

    cfg_path = Path(path).expanduser()
    if not cfg_path.is_file():
        raise ConfigError(f"Config file does not exist: {cfg_path}")
    try:
        text = cfg_path.read_text(encoding="utf-8")
        data = yaml.safe_load(text)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed reading config file {cfg_path}: {e}") from e
    return _parse(data, cfg_path)
