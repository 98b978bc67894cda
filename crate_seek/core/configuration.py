"""
Configuration management for crate-seek.

This module provides the ConfigurationManager class for loading the YAML
configuration file and turning it into a validated SearchConfig.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from crate_seek.core.exceptions import ConfigurationError
from crate_seek.core.interfaces import MAX_PAGE_SIZE, Scope, SearchConfig, Sort


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/crate-seek/config.yaml")
CONFIG_PATH_ENV = "CRATE_SEEK_CONFIG"

_POSITIVE_INTS = ("request_timeout",)
_NON_NEGATIVE_INTS = ("retry_count",)
_NON_NEGATIVE_FLOATS = ("hydration_debounce", "rate_limit_interval")
_STRINGS = ("registry_url", "user_agent")


class ConfigurationManager:
    """
    Loads and validates crate-seek configuration.

    The configuration file is a flat YAML mapping whose keys mirror the fields
    of SearchConfig. Missing keys fall back to the dataclass defaults.
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, uses
                $CRATE_SEEK_CONFIG, then ~/.config/crate-seek/config.yaml.
        """
        self._explicit = config_path is not None or CONFIG_PATH_ENV in os.environ
        if config_path is None:
            config_path = os.environ.get(CONFIG_PATH_ENV, str(DEFAULT_CONFIG_PATH))
        self.config_path = Path(config_path).expanduser()

        self._config_cache: Optional[SearchConfig] = None

        logger.debug(f"ConfigurationManager initialized with config_path: {self.config_path}")

    def load(self) -> SearchConfig:
        """
        Load the configuration.

        Returns:
            The validated SearchConfig.

        Raises:
            ConfigurationError: If the file is unreadable, is not a mapping, or
                holds invalid values. A missing default file is not an error.
        """
        if self._config_cache is not None:
            return self._config_cache

        if not self.config_path.exists():
            if self._explicit:
                raise ConfigurationError(f"Configuration file not found: {self.config_path}")
            logger.debug(f"No configuration file at {self.config_path}, using defaults")
            self._config_cache = SearchConfig()
            return self._config_cache

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                raw_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing configuration YAML: {e}")
        except IOError as e:
            raise ConfigurationError(f"Error reading configuration file: {e}")

        self._config_cache = self.from_dict(raw_data)
        logger.debug(f"Loaded configuration from {self.config_path}")
        return self._config_cache

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> SearchConfig:
        """
        Build a SearchConfig from a mapping, validating every known key.

        Args:
            data: Raw configuration values.

        Returns:
            The validated SearchConfig.

        Raises:
            ConfigurationError: If a value has the wrong type or range.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration must be a mapping, got {type(data).__name__}")

        defaults = SearchConfig()
        values: Dict[str, Any] = {}

        for key, value in data.items():
            if key == "page_size":
                values[key] = _require_number(key, value, int, minimum=1, maximum=MAX_PAGE_SIZE)
            elif key in _POSITIVE_INTS:
                values[key] = _require_number(key, value, int, minimum=1)
            elif key in _NON_NEGATIVE_INTS:
                values[key] = _require_number(key, value, int, minimum=0)
            elif key in _NON_NEGATIVE_FLOATS:
                values[key] = float(_require_number(key, value, (int, float), minimum=0))
            elif key in _STRINGS:
                if not isinstance(value, str) or not value.strip():
                    raise ConfigurationError(f"'{key}' must be a non-empty string")
                values[key] = value
            elif key == "default_scope":
                values[key] = _parse_enum(Scope, key, value)
            elif key == "default_sort":
                values[key] = _parse_enum(Sort, key, value)
            else:
                logger.warning(f"Ignoring unknown configuration key: {key}")

        if "registry_url" in values and not values["registry_url"].endswith("/"):
            values["registry_url"] += "/"

        merged = defaults.to_dict()
        merged.update(values)
        merged["default_scope"] = values.get("default_scope", defaults.default_scope)
        merged["default_sort"] = values.get("default_sort", defaults.default_sort)
        return SearchConfig(**merged)


def _require_number(key: str, value: Any, kind, minimum: float, maximum: Optional[float] = None):
    # bool is an int subclass; "true" is never a valid page size
    if isinstance(value, bool) or not isinstance(value, kind):
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"'{key}' must be >= {minimum}, got {value!r}")
    if maximum is not None and value > maximum:
        raise ConfigurationError(f"'{key}' must be <= {maximum}, got {value!r}")
    return value


def _parse_enum(enum_cls, key: str, value: Any):
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(f"'{key}' must be one of: {choices}")
