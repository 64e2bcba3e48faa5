"""
gmbt Configuration

Loads configuration from a YAML file with environment variable overrides.

Example .gmbt.yml:

    gothic_path: C:/Games/Gothic II
    gothic_version: gothic2
    mod_files:
      assets:
        - mod
      default_world: NEWWORLD.ZEN
    hooks:
      common:
        pre:
          assets_merge:
            - python tools/export_textures.py
    process_timeout_seconds: 3600
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from gmbt.errors import ConfigError


PROJECT_CONFIG_NAME = ".gmbt.yml"
USER_CONFIG_PATH = Path.home() / ".gmbt" / "config.yaml"


def config_search_paths() -> List[Path]:
    """Default configuration file locations, checked in order."""
    return [Path.cwd() / PROJECT_CONFIG_NAME, USER_CONFIG_PATH]


GOTHIC_VERSIONS = ("gothic1", "gothic2")

DEFAULT_CONFIG: Dict[str, Any] = {
    "gothic_path": None,
    "gothic_version": "gothic2",

    # Command prefix for the engine, e.g. ["wine"] on Linux
    "launcher": [],

    "mod_files": {
        "assets": [],
        "default_world": "NEWWORLD.ZEN",
    },

    "hooks": {},

    # Engine runs are killed after this many seconds; 0 or null disables
    "process_timeout_seconds": 3600,

    "script_encoding": "windows-1250",
    "log_dir": str(Path.home() / ".gmbt" / "logs"),
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


class GmbtConfig:
    """Configuration for a mod project."""

    def __init__(self, config_path: Optional[Path] = None, data: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        self._config_path: Optional[Path] = None

        if data is not None:
            self._config = _merge(self._config, data)
        else:
            self._load_config(config_path)

        self._apply_env_overrides()
        self._validate()

    def _load_config(self, explicit_path: Optional[Path] = None) -> None:
        """Load configuration from the first YAML file found."""
        if explicit_path is not None:
            explicit_path = Path(explicit_path)
            if not explicit_path.exists():
                raise ConfigError("Config.Error.FileDidNotFound", path=explicit_path)
            search_paths = [explicit_path]
        else:
            search_paths = config_search_paths()

        for config_path in search_paths:
            if not config_path.exists():
                continue
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    user_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError("Config.Error.Invalid", path=config_path, reason=e) from e
            if not isinstance(user_config, dict):
                raise ConfigError("Config.Error.Invalid", path=config_path, reason="expected a mapping")
            self._config = _merge(self._config, user_config)
            self._config_path = config_path.absolute()
            return

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        if "GMBT_GOTHIC_PATH" in os.environ:
            self._config["gothic_path"] = os.environ["GMBT_GOTHIC_PATH"]
        if "GMBT_DEFAULT_WORLD" in os.environ and isinstance(self._config.get("mod_files"), dict):
            self._config["mod_files"]["default_world"] = os.environ["GMBT_DEFAULT_WORLD"]

    def _validate(self) -> None:
        if not self._config.get("gothic_path"):
            raise ConfigError("Config.Error.RequiredKey", key="gothic_path")
        if self._config["gothic_version"] not in GOTHIC_VERSIONS:
            raise ConfigError(
                "Config.Error.Invalid",
                path=self._config_path,
                reason=f"gothic_version must be one of {', '.join(GOTHIC_VERSIONS)}",
            )
        if not isinstance(self._config.get("launcher") or [], list):
            raise ConfigError("Config.Error.Invalid", path=self._config_path, reason="launcher must be a list")

        mod_files = self._config.get("mod_files")
        if not isinstance(mod_files, dict):
            raise ConfigError("Config.Error.Invalid", path=self._config_path, reason="mod_files must be a mapping")
        if not isinstance(mod_files.get("assets") or [], list):
            raise ConfigError("Config.Error.Invalid", path=self._config_path, reason="mod_files.assets must be a list")
        if not mod_files.get("default_world"):
            raise ConfigError("Config.Error.RequiredKey", key="mod_files.default_world")
        if not isinstance(self._config.get("hooks") or {}, dict):
            raise ConfigError("Config.Error.Invalid", path=self._config_path, reason="hooks must be a mapping")

        timeout = self._config.get("process_timeout_seconds")
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0):
            raise ConfigError(
                "Config.Error.Invalid",
                path=self._config_path,
                reason="process_timeout_seconds must be a non-negative number or null",
            )

    @property
    def config_path(self) -> Optional[Path]:
        """Path to loaded config file, or None if built from a dict."""
        return self._config_path

    @property
    def project_dir(self) -> Path:
        """Directory relative paths are resolved against."""
        if self._config_path is not None:
            return self._config_path.parent
        return Path.cwd()

    @property
    def gothic_path(self) -> Path:
        """Root of the game installation."""
        path = Path(self._config["gothic_path"])
        return path if path.is_absolute() else self.project_dir / path

    @property
    def gothic_version(self) -> str:
        return self._config["gothic_version"]

    @property
    def launcher(self) -> List[str]:
        return [str(part) for part in self._config.get("launcher") or []]

    @property
    def asset_dirs(self) -> List[Path]:
        """Mod asset directories, absolute."""
        return [self.project_dir / Path(p) for p in self._config["mod_files"].get("assets") or []]

    @property
    def default_world(self) -> str:
        return self._config["mod_files"]["default_world"]

    @property
    def hooks(self) -> Dict[str, Any]:
        return self._config.get("hooks") or {}

    @property
    def process_timeout(self) -> Optional[float]:
        """Engine timeout in seconds, or None for no timeout."""
        value = self._config.get("process_timeout_seconds")
        return float(value) if value else None

    @property
    def script_encoding(self) -> str:
        return self._config["script_encoding"]

    @property
    def log_dir(self) -> Path:
        return Path(self._config["log_dir"])

    def to_dict(self) -> Dict[str, Any]:
        """Export current configuration as dict."""
        return {
            "gothic_path": str(self.gothic_path),
            "gothic_version": self.gothic_version,
            "launcher": self.launcher,
            "asset_dirs": [str(p) for p in self.asset_dirs],
            "default_world": self.default_world,
            "process_timeout_seconds": self.process_timeout,
            "script_encoding": self.script_encoding,
            "log_dir": str(self.log_dir),
            "config_path": str(self._config_path) if self._config_path else None,
        }
