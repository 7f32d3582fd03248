"""
Config system - Layered configuration with validation.

Merge precedence (later overrides earlier):
config files > .env file > environment variables > manual overrides
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from pathlib import Path
import os
import json

import yaml
from dotenv import dotenv_values

from .faults.domains import ConfigFault, ConfigInvalidFault, ConfigMissingFault

# Kept for callers that catch configuration problems generically
ConfigError = ConfigFault


@dataclass
class DatabaseSettings:
    """Connection settings for one database alias."""

    url: str = "memory://"
    database: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files
    """

    def __init__(self, env_prefix: str = "DOCUMAP_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "DOCUMAP_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources.

        Merge order (later overrides earlier):
        1. Config files (JSON or YAML, glob patterns supported)
        2. .env file (only keys carrying ``env_prefix``)
        3. Environment variables (``env_prefix`` + ``__``-separated nesting)
        4. Manual overrides

        Args:
            paths: List of config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        from glob import glob

        for path_str in sorted(glob(pattern)):
            path = Path(path_str)

            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
            self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
            if data:
                self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load config from .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert DOCUMAP_DATABASES__DEFAULT__URL to nested dict."""
        key = key[len(self.env_prefix):]

        # Split by double underscore for nested keys
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        # Boolean
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        # Number
        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        # JSON
        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        parts = path.split(".")
        current = self.config_data

        for part in parts:
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def require(self, path: str) -> Any:
        """Like ``get`` but raises ConfigMissingFault when absent."""
        sentinel = object()
        value = self.get(path, sentinel)
        if value is sentinel:
            raise ConfigMissingFault(path)
        return value

    def database_aliases(self) -> List[str]:
        """Aliases declared under ``databases``."""
        databases = self.get("databases", {})
        if not isinstance(databases, dict):
            raise ConfigInvalidFault("databases", "expected a mapping of alias -> settings")
        return list(databases)

    def database_settings(self, alias: str = "default") -> DatabaseSettings:
        """
        Build validated settings for one database alias.

        Accepts either a mapping (``url``, ``database``, ``options``) or a
        bare URL string.
        """
        key = f"databases.{alias}"
        raw = self.require(key)
        if isinstance(raw, str):
            raw = {"url": raw}
        if not isinstance(raw, dict):
            raise ConfigInvalidFault(key, f"expected mapping or URL string, got {type(raw).__name__}")

        url = raw.get("url", DatabaseSettings.url)
        if not isinstance(url, str) or not url:
            raise ConfigInvalidFault(f"{key}.url", "must be a non-empty string")
        database = raw.get("database")
        if database is not None and not isinstance(database, str):
            raise ConfigInvalidFault(f"{key}.database", "must be a string")
        options = raw.get("options") or {}
        if not isinstance(options, dict):
            raise ConfigInvalidFault(f"{key}.options", "must be a mapping")

        return DatabaseSettings(url=url, database=database, options=dict(options))

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()
