"""Configuration management.

Analyses read their collection ids, bands, scales, budgets and thresholds
from a ``ConfigManager``. The package default lives in
``default_config.yaml`` next to this module; user files are merged over it.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default_config.yaml"

_MISSING = object()


def _merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigManager:
    """Nested configuration with dotted-key access.

    Example:
        >>> config = ConfigManager({"carbon": {"fit_scale": 250}})
        >>> config.get("carbon.fit_scale")
        250
        >>> config.set("carbon.fit_scale", 500)
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None, source: Optional[Path] = None):
        self._data: dict[str, Any] = copy.deepcopy(dict(data or {}))
        self.source = source

    def get(self, key: str, default: Any = None) -> Any:
        """Value at dotted ``key`` (``default`` when any level is missing)."""
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def require(self, key: str) -> Any:
        """Value at dotted ``key``.

        Raises:
            KeyError: If the key is missing.
        """
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(f"Configuration key '{key}' is not set")
        return value

    def set(self, key: str, value: Any) -> None:
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            node = node.setdefault(part, {})
            if not isinstance(node, dict):
                raise ValueError(f"Cannot set '{key}': '{part}' is not a section")
        node[parts[-1]] = value

    def merge(self, overrides: Mapping[str, Any]) -> "ConfigManager":
        """New manager with ``overrides`` merged recursively over this one."""
        return ConfigManager(_merge(self._data, overrides), self.source)

    def as_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __repr__(self) -> str:
        """String representation."""
        return f"ConfigManager(sections={list(self._data)}, source={self.source})"


def load_config(path: Union[str, Path], merge_defaults: bool = True) -> ConfigManager:
    """Load a YAML configuration file.

    Args:
        path: YAML file holding a mapping.
        merge_defaults: Merge the file over the package default configuration.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file does not hold a mapping.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    if merge_defaults and path.resolve() != DEFAULT_CONFIG_PATH.resolve():
        config = get_config().merge(data)
        config.source = path
    else:
        config = ConfigManager(data, source=path)
    logger.info(f"Loaded config from {path}")
    return config


_default_config: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """Package default configuration (a fresh copy on every call)."""
    global _default_config
    if _default_config is None:
        _default_config = load_config(DEFAULT_CONFIG_PATH, merge_defaults=False)
    return _default_config.merge({})


def get_config_value(key: str, config: Optional[ConfigManager] = None, default: Any = None) -> Any:
    """Dotted ``key`` from ``config``, falling back to the package default."""
    if config is not None and key in config:
        return config.get(key)
    return get_config().get(key, default)


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ConfigManager",
    "get_config",
    "get_config_value",
    "load_config",
]
