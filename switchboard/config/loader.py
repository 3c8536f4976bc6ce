"""Location and layering of Switchboard's TOML configuration files.

A deployment keeps its configuration in one directory. `default.toml`
holds the baseline for every environment and `{SWITCHBOARD_ENV}.toml`,
when the directory has one, overrides individual keys. Tables merge key
by key, so an environment file only lists the values it changes.
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "SWITCHBOARD_CONFIG_DIR"
ENVIRONMENT_ENV = "SWITCHBOARD_ENV"
DEFAULT_ENVIRONMENT = "development"
BASE_LAYER = "default.toml"

# Parent directories searched for config/ when no directory is configured
SEARCH_DEPTH = 5


def merge_tables(lower: dict[str, Any], upper: dict[str, Any]) -> dict[str, Any]:
    """Overlay one TOML document on another without mutating either."""
    merged = dict(lower)
    for key, value in upper.items():
        below = merged.get(key)
        if isinstance(below, dict) and isinstance(value, dict):
            merged[key] = merge_tables(below, value)
        else:
            merged[key] = value
    return merged


def read_layer(path: Path) -> dict[str, Any]:
    """Parse one configuration file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise FileNotFoundError(f"Configuration file not found: {path}") from e


def find_config_dir(start: Path) -> Path:
    """Nearest config/ directory at or above start, else a relative config/."""
    for directory in [start, *start.parents][:SEARCH_DEPTH]:
        candidate = directory / "config"
        if candidate.is_dir():
            return candidate
    return Path("config")


@dataclass(frozen=True)
class ConfigLayers:
    """A configuration directory and the environment whose overrides apply."""

    directory: Path
    environment: str = DEFAULT_ENVIRONMENT

    @classmethod
    def from_environment(cls) -> "ConfigLayers":
        """Resolve layers from SWITCHBOARD_CONFIG_DIR and SWITCHBOARD_ENV.

        Raises:
            FileNotFoundError: If SWITCHBOARD_CONFIG_DIR names a missing directory
        """
        configured = os.environ.get(CONFIG_DIR_ENV)
        if configured:
            directory = Path(configured)
            if not directory.is_dir():
                raise FileNotFoundError(f"Config directory not found: {configured}")
        else:
            directory = find_config_dir(Path.cwd())
        return cls(directory, os.environ.get(ENVIRONMENT_ENV, DEFAULT_ENVIRONMENT))

    @property
    def base(self) -> Path:
        return self.directory / BASE_LAYER

    @property
    def override(self) -> Path:
        return self.directory / f"{self.environment}.toml"

    @property
    def available(self) -> bool:
        """Whether the directory holds a base layer."""
        return self.base.is_file()

    def paths(self) -> list[Path]:
        """Files to read, lowest precedence first.

        Raises:
            FileNotFoundError: If the base layer is missing
        """
        if not self.available:
            raise FileNotFoundError(
                f"Default configuration file not found: {self.base}. "
                f"Create config/{BASE_LAYER} or set {CONFIG_DIR_ENV}."
            )
        if self.override != self.base and self.override.is_file():
            return [self.base, self.override]
        return [self.base]

    def load(self) -> dict[str, Any]:
        """Read and merge every layer."""
        merged: dict[str, Any] = {}
        for path in self.paths():
            merged = merge_tables(merged, read_layer(path))
        return merged


def load_config() -> dict[str, Any]:
    """Merged configuration for the current environment.

    Raises:
        FileNotFoundError: If no base layer can be found
    """
    return ConfigLayers.from_environment().load()
