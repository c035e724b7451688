# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for the project context engine."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".codectx.yml"

# Directory names never entered by any bounded walk
DEFAULT_IGNORE_DIRS = [
    ".git",
    "node_modules",
    "dist",
    "out",
    "build",
    "__pycache__",
    ".venv",
    "venv",
    ".tox",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    ".next",
    "coverage",
]


class ConfigurationError(Exception):
    """Raised when configuration validation fails critically."""

    pass


class Config:
    """Configuration for the project context engine.

    Loads configuration from .codectx.yml with validation and defaults.
    """

    DEFAULTS: Dict[str, Any] = {
        "cache_max_entries": 100,
        "cache_max_age_minutes": 30,
        "cache_persist": False,
        "scan_max_depth": 3,
        "similar_files_limit": 5,
        "similar_search_max_depth": 3,
        "reference_search_max_depth": 2,
        "top_k_imports": 10,
        "top_k_patterns": 10,
        "ignore_dirs": list(DEFAULT_IGNORE_DIRS),
        "context_token_limit": 4000,
        "enable_file_watcher": False,
    }

    _POSITIVE_INT_KEYS = (
        "cache_max_entries",
        "cache_max_age_minutes",
        "similar_files_limit",
        "top_k_imports",
        "top_k_patterns",
    )
    _NON_NEGATIVE_INT_KEYS = (
        "scan_max_depth",
        "similar_search_max_depth",
        "reference_search_max_depth",
    )

    def __init__(
        self,
        config_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default location.
            overrides: Programmatic values applied after the file. Unlike file
                values, invalid overrides raise ConfigurationError.
        """
        if config_path is None:
            config_path = Path.cwd() / CONFIG_FILENAME

        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

        if overrides:
            self._apply_overrides(overrides)

    @classmethod
    def for_project(
        cls, project_root: Path, overrides: Optional[Dict[str, Any]] = None
    ) -> "Config":
        """Load the configuration file that lives in a project root."""
        return cls(Path(project_root) / CONFIG_FILENAME, overrides=overrides)

    def _defaults(self) -> Dict[str, Any]:
        config = self.DEFAULTS.copy()
        config["ignore_dirs"] = list(self.DEFAULTS["ignore_dirs"])
        return config

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            self._config = self._defaults()
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                logger.warning("Configuration file is empty, using defaults")
                self._config = self._defaults()
                return

            if not isinstance(loaded_config, dict):
                logger.warning(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(loaded_config)}, using defaults"
                )
                self._config = self._defaults()
                return

            self._config = self._defaults()
            self._validate_and_merge(loaded_config)

        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self._defaults()
        except OSError as e:
            logger.warning(
                f"Error reading configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self._defaults()

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            self._config[key] = value

    def _apply_overrides(self, overrides: Dict[str, Any]) -> None:
        for key, value in overrides.items():
            if key not in self.DEFAULTS:
                raise ConfigurationError(f"Unknown configuration parameter '{key}'")
            if not self._validate_parameter(key, value):
                raise ConfigurationError(f"Invalid value for '{key}': {value!r}")
            self._config[key] = value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        expected_type = type(self.DEFAULTS[key])
        # bool is a subclass of int; reject it for numeric keys
        if expected_type is int and isinstance(value, bool):
            return False
        if not isinstance(value, expected_type):
            return False

        if key in self._POSITIVE_INT_KEYS:
            return bool(value > 0)
        elif key in self._NON_NEGATIVE_INT_KEYS:
            return bool(value >= 0)
        elif key == "context_token_limit":
            return bool(0 < value <= 200000)
        elif key == "ignore_dirs":
            return all(isinstance(name, str) and name for name in value)

        return True

    def to_dict(self) -> Dict[str, Any]:
        """Return a copy of the effective configuration."""
        config = dict(self._config)
        config["ignore_dirs"] = list(self._config["ignore_dirs"])
        return config

    @property
    def cache_max_entries(self) -> int:
        """Maximum number of cached context bundles."""
        value = self._config["cache_max_entries"]
        assert isinstance(value, int)
        return value

    @property
    def cache_max_age_minutes(self) -> int:
        """Age after which a cached bundle is considered expired."""
        value = self._config["cache_max_age_minutes"]
        assert isinstance(value, int)
        return value

    @property
    def cache_max_age_seconds(self) -> float:
        return float(self.cache_max_age_minutes * 60)

    @property
    def cache_persist(self) -> bool:
        """Whether the cache is exported on shutdown and imported on startup."""
        value = self._config["cache_persist"]
        assert isinstance(value, bool)
        return value

    @property
    def scan_max_depth(self) -> int:
        """Deepest directory level listed by the structure scan (root is 0)."""
        value = self._config["scan_max_depth"]
        assert isinstance(value, int)
        return value

    @property
    def similar_files_limit(self) -> int:
        value = self._config["similar_files_limit"]
        assert isinstance(value, int)
        return value

    @property
    def similar_search_max_depth(self) -> int:
        value = self._config["similar_search_max_depth"]
        assert isinstance(value, int)
        return value

    @property
    def reference_search_max_depth(self) -> int:
        """Depth of the fallback search for referenced files that do not exist."""
        value = self._config["reference_search_max_depth"]
        assert isinstance(value, int)
        return value

    @property
    def top_k_imports(self) -> int:
        value = self._config["top_k_imports"]
        assert isinstance(value, int)
        return value

    @property
    def top_k_patterns(self) -> int:
        value = self._config["top_k_patterns"]
        assert isinstance(value, int)
        return value

    @property
    def ignore_dirs(self) -> List[str]:
        """Directory and file names skipped by every walk."""
        value = self._config["ignore_dirs"]
        assert isinstance(value, list)
        return value

    @property
    def context_token_limit(self) -> int:
        """Maximum tokens for rendered prompt context."""
        value = self._config["context_token_limit"]
        assert isinstance(value, int)
        return value

    @property
    def enable_file_watcher(self) -> bool:
        """Whether filesystem events eagerly invalidate cached bundles."""
        value = self._config["enable_file_watcher"]
        assert isinstance(value, bool)
        return value
