from __future__ import annotations

import copy
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict

import yaml

from core.config import ConfigError, DetectorConfig, HorizonConfig, ProcessingConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/config.yaml")

DEFAULT_CONFIG: Dict[str, Any] = {
    "logging": {"level": "INFO", "log_file": "", "levels": {}},
    "processing": asdict(ProcessingConfig()),
    "detector": asdict(DetectorConfig()),
    "horizon": asdict(HorizonConfig()),
    "renderer": {},
}


def _deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _parse_scalar(text: str) -> Any:
    """Interpret a command line value the way YAML would ('5' -> 5, 'true' -> True)."""
    if not text.strip():
        return text
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse override value {text!r}: {exc}") from exc


class ConfigManager:
    """Loads YAML configuration layered over built-in defaults."""

    def __init__(self, path: Path | str | None = DEFAULT_CONFIG_PATH) -> None:
        self.path = Path(path) if path else None
        self._config: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        self.load()

    @property
    def data(self) -> Dict[str, Any]:
        return self._config

    def load(self) -> None:
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        if self.path is None:
            return
        if not self.path.exists():
            logger.warning("Config file %s not found, using defaults", self.path)
            return
        with self.path.open("r", encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(f"{self.path}: malformed YAML: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"{self.path}: top level must be a mapping, got {type(loaded).__name__}")
        _deep_merge(self._config, loaded)
        logger.debug("Loaded configuration from %s", self.path)

    def get_section(self, name: str) -> Dict[str, Any]:
        section = self._config.get(name)
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ConfigError(f"{name} must be a mapping, got {type(section).__name__}")
        return copy.deepcopy(section)

    def set_value(self, path: str, value: Any) -> None:
        """
        Sets a nested value using dot-notation (e.g., 'horizon.smooth_frames').
        Creates intermediate dicts if necessary.
        """
        parts = path.split(".")
        node = self._config
        for depth, key in enumerate(parts[:-1]):
            if node.get(key) is None:
                # an empty YAML section ("renderer:") loads as None
                node[key] = {}
            node = node[key]
            if not isinstance(node, dict):
                raise ConfigError(f"{'.'.join(parts[:depth + 1])} is not a mapping, cannot set {path}")
        node[parts[-1]] = value

    def get_value(self, path: str, default: Any = None) -> Any:
        node: Any = self._config
        for key in path.split("."):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return copy.deepcopy(node)

    def apply_override(self, assignment: str) -> None:
        """Apply a 'dotted.key=value' override from the command line."""
        key, sep, raw = assignment.partition("=")
        if not sep or not key.strip():
            raise ConfigError(f"Override must look like key=value, got {assignment!r}")
        self.set_value(key.strip(), _parse_scalar(raw))

    def horizon_config(self) -> HorizonConfig:
        return HorizonConfig.from_mapping(self.get_section("horizon"))

    def detector_config(self) -> DetectorConfig:
        return DetectorConfig.from_mapping(self.get_section("detector"))

    def processing_config(self) -> ProcessingConfig:
        return ProcessingConfig.from_mapping(self.get_section("processing"))

    def renderer_config(self) -> Dict[str, Any]:
        return self.get_section("renderer")
