"""Configuration loader for the dynamic DNS server.

Settings come from four sources, lowest precedence first:

1. built-in defaults (:mod:`dyndns.config.schema`)
2. a YAML or JSON configuration file
3. ``DYNDNS_<SECTION>_<KEY>`` environment variables
4. explicit overrides, normally the command line flags
"""

import dataclasses
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Type

import yaml

from .schema import (
    DynDNSConfig,
    LoggingConfig,
    SecurityConfig,
    ServerConfig,
    StorageConfig,
    TSIGConfig,
)

ENV_PREFIX = "DYNDNS_"

SECTIONS: Dict[str, Type] = {
    "server": ServerConfig,
    "storage": StorageConfig,
    "tsig": TSIGConfig,
    "security": SecurityConfig,
    "logging": LoggingConfig,
}

TRUE_VALUES = ("true", "yes", "on", "1")
FALSE_VALUES = ("false", "no", "off", "0")

Settings = Dict[str, Dict[str, Any]]


class ConfigLoader:
    """Builds a validated :class:`DynDNSConfig` from every configuration source."""

    def __init__(self, config_file: Optional[str] = None, env_prefix: str = ENV_PREFIX):
        """
        Args:
            config_file: Path to configuration file (YAML or JSON)
            env_prefix: Prefix of environment variable overrides
        """
        self.config_file = config_file
        self.env_prefix = env_prefix
        self._config: Optional[DynDNSConfig] = None

    def load_config(self, overrides: Optional[Settings] = None) -> DynDNSConfig:
        """Load, merge and validate the configuration.

        Args:
            overrides: Per-section values that take precedence over every
                other source; None values are ignored

        Raises:
            FileNotFoundError: If config file is specified but not found
            ValueError: If configuration is invalid
            yaml.YAMLError: If YAML parsing fails
            json.JSONDecodeError: If JSON parsing fails
        """
        settings: Settings = {name: {} for name in SECTIONS}

        if self.config_file:
            self._update(settings, self._load_from_file(self.config_file), "file")

        self._update(settings, self._read_environment(), "environment")

        for section, values in (overrides or {}).items():
            settings.setdefault(section, {}).update(
                {key: value for key, value in values.items() if value is not None}
            )

        self._config = self._build(settings)
        return self._config

    def get_config(self) -> Optional[DynDNSConfig]:
        """Configuration built by the last :meth:`load_config` call."""
        return self._config

    def _load_from_file(self, file_path: str) -> Settings:
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        content = path.read_text(encoding="utf-8")
        suffix = path.suffix.lower()

        if suffix == ".json":
            data = json.loads(content)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            # YAML is a superset of JSON, so it reads both
            data = yaml.safe_load(content)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must hold a mapping: {file_path}")
        return data

    def _read_environment(self) -> Settings:
        """Collect ``<prefix><SECTION>_<KEY>`` variables, typed per field"""
        found: Settings = {}

        for env_key, raw in os.environ.items():
            if not env_key.startswith(self.env_prefix):
                continue

            section, _, key = env_key[len(self.env_prefix) :].lower().partition("_")
            section_cls = SECTIONS.get(section)
            if section_cls is None or not key:
                continue

            field_types = {f.name: f.type for f in dataclasses.fields(section_cls)}
            if key not in field_types:
                raise ValueError(f"Unknown configuration variable: {env_key}")

            found.setdefault(section, {})[key] = _convert_env_value(
                raw, field_types[key], env_key
            )

        return found

    def _update(self, settings: Settings, source: Dict[str, Any], origin: str) -> None:
        for section, values in source.items():
            if section not in SECTIONS:
                raise ValueError(f"Unknown configuration sections: ['{section}'] ({origin})")
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ValueError(f"Configuration section '{section}' must be a mapping")
            settings[section].update(values)

    def _build(self, settings: Settings) -> DynDNSConfig:
        unknown = set(settings) - set(SECTIONS)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

        sections = {}
        for name, section_cls in SECTIONS.items():
            try:
                sections[name] = section_cls(**settings[name])
            except TypeError as e:
                raise ValueError(f"Invalid '{name}' configuration: {e}") from e

        return DynDNSConfig(**sections)


def _convert_env_value(raw: str, field_type: Any, env_key: str) -> Any:
    """Convert an environment string to the type declared by the schema field"""
    type_name = getattr(field_type, "__name__", str(field_type))

    if field_type is bool or type_name == "bool":
        lowered = raw.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        raise ValueError(f"{env_key} must be a boolean, got {raw!r}")

    if field_type is int or type_name == "int":
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"{env_key} must be an integer, got {raw!r}") from None

    if field_type is float or type_name == "float":
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"{env_key} must be a number, got {raw!r}") from None

    return raw


def load_config_from_file(
    config_file: Optional[str] = None, overrides: Optional[Settings] = None
) -> DynDNSConfig:
    """Convenience function to load configuration.

    Args:
        config_file: Path to configuration file
        overrides: Per-section overrides, typically from the command line
    """
    return ConfigLoader(config_file).load_config(overrides)
