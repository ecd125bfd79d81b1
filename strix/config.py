"""
Context settings and their loader.

Settings are merged from several sources, later ones overriding earlier ones:
YAML files < .env file < environment variables < explicit overrides.

Example:
    settings = SettingsLoader.load(
        paths=["strix.yaml"],
        env_file=".env",
    ).to_settings()
    context = AnnotationConfigApplicationContext(settings)
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional
import json
import logging
import os

from dotenv import dotenv_values
import yaml

if TYPE_CHECKING:
    from .factory import ComponentFactoryResolverSettings


logger = logging.getLogger("strix.config")


class ConfigError(Exception):
    """Raised when settings validation fails."""
    pass


@dataclass
class ContextSettings:
    """
    Application context settings.

    Attributes:
        resolvers: Replaces the resolvers the context wires into its factory
        strict: Reject conflicting registrations and configurations that
            fail to load instead of logging a warning
        properties: Free-form values exposed to component conditions
    """

    resolvers: Optional["ComponentFactoryResolverSettings"] = None
    strict: bool = True
    properties: Dict[str, Any] = field(default_factory=dict)


class SettingsLoader:
    """Loads and merges settings from files, the environment and overrides."""

    def __init__(self, env_prefix: str = "STRIX_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "STRIX_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "SettingsLoader":
        """
        Load settings from multiple sources.

        Args:
            paths: YAML file paths (glob patterns supported)
            env_prefix: Prefix of the environment variables to read
            env_file: Path to a .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Loaded SettingsLoader
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
        from glob import glob

        matches = sorted(glob(pattern))
        if not matches:
            logger.debug(f"No settings file matches {pattern}")

        for path_str in matches:
            path = Path(path_str)
            if path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            elif path.suffix == ".json":
                self._load_json_file(path)

    def _load_yaml_file(self, path: Path):
        with open(path) as f:
            data = yaml.safe_load(f)
        if data:
            if not isinstance(data, dict):
                raise ConfigError(f"Settings file {path} must contain a mapping")
            self._merge_dict(self.config_data, data)
        logger.debug(f"Loaded settings from {path}")

    def _load_json_file(self, path: Path):
        with open(path) as f:
            data = json.load(f)
        self._merge_dict(self.config_data, data)
        logger.debug(f"Loaded settings from {path}")

    def _load_env_file(self, path: str):
        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if key.startswith(self.env_prefix) and value is not None:
                self._set_nested(key, value)

    def _load_from_env(self):
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert STRIX_PROPERTIES__DB__HOST to nested dict."""
        key = key[len(self.env_prefix):]

        # Double underscore separates nesting levels
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

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
        """Get a value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def to_dict(self) -> dict:
        return self.config_data.copy()

    def to_settings(self, **extra: Any) -> ContextSettings:
        """
        Build validated context settings.

        Args:
            extra: Values that cannot come from files (e.g. resolvers)

        Raises:
            ConfigError: If a value has the wrong type or a key is unknown
        """
        known = {f.name: f for f in fields(ContextSettings)}
        kwargs: Dict[str, Any] = {}

        for key, value in self.config_data.items():
            if key not in known or key == "resolvers":
                raise ConfigError(f"Unknown context setting '{key}'")
            kwargs[key] = value

        if "strict" in kwargs and not isinstance(kwargs["strict"], bool):
            raise ConfigError(
                f"Context setting 'strict' expected bool, got {type(kwargs['strict']).__name__}"
            )
        if "properties" in kwargs and not isinstance(kwargs["properties"], dict):
            raise ConfigError(
                f"Context setting 'properties' expected dict, "
                f"got {type(kwargs['properties']).__name__}"
            )

        for key, value in extra.items():
            if key not in known:
                raise ConfigError(f"Unknown context setting '{key}'")
            kwargs[key] = value

        return ContextSettings(**kwargs)
