"""
SIMNET Configuration Module

Centralized configuration loading for graph, layout and overlay parameters.
Reads from YAML files in the config/ directory at repo root.

Usage:
    from simnet.config import get_config, get_network_config

    # Load specific config
    network = get_network_config()
    top_k = network.get("top_k", 5)

    # Access with defaults (matches hardcoded behavior)
    from simnet.config import ConfigLoader
    loader = ConfigLoader()
    strength = loader.get_nested("layout", "forces", "charge_strength", default=-60.0)
"""

from pathlib import Path
from typing import Any, Dict, Optional
import logging
import yaml

from simnet.utils.paths import CONFIG_DIR

logger = logging.getLogger(__name__)


class ConfigLoader:
    """
    Centralized configuration loader for SIMNET.

    Loads YAML configuration files from the config/ directory.
    Caches loaded configs for performance.

    Usage:
        loader = ConfigLoader()

        # Get entire config dict
        layout_config = loader.load("layout")

        # Get specific value with default
        top_k = loader.get("network", "top_k", default=5)

        # Check if config exists
        if loader.exists("custom"):
            custom = loader.load("custom")
    """

    _instance: Optional["ConfigLoader"] = None
    _cache: Dict[str, Dict[str, Any]] = {}

    def __new__(cls) -> "ConfigLoader":
        """Singleton pattern - one loader instance per process."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._cache = {}
            cls._instance._config_dir = CONFIG_DIR
        return cls._instance

    @property
    def config_dir(self) -> Path:
        """Return the config directory path."""
        return self._config_dir

    def use_config_dir(self, path: Path) -> None:
        """Point the loader at another config directory and drop the cache."""
        self._config_dir = Path(path)
        self._cache.clear()
        logger.debug(f"Config directory set to {self._config_dir}")

    def exists(self, name: str) -> bool:
        """Check if a config file exists."""
        path = self.config_dir / f"{name}.yaml"
        return path.exists()

    def load(self, name: str, reload: bool = False) -> Dict[str, Any]:
        """
        Load a configuration file by name.

        Args:
            name: Config file name without extension (e.g., "network", "layout")
            reload: Force reload from disk even if cached

        Returns:
            Configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If the file is not valid YAML
        """
        if not reload and name in self._cache:
            return self._cache[name]

        path = self.config_dir / f"{name}.yaml"

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        try:
            with open(path) as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse config {name}: {e}")
            raise ValueError(f"Invalid YAML in {path}: {e}")

        self._cache[name] = config
        logger.debug(f"Loaded config: {name} ({len(config)} keys)")
        return config

    def get(
        self,
        config_name: str,
        key: str,
        default: Any = None,
        required: bool = False
    ) -> Any:
        """
        Get a specific value from a config file.

        Args:
            config_name: Config file name (e.g., "network")
            key: Key to retrieve
            default: Default value if key not found
            required: If True, raise KeyError when key not found

        Returns:
            Configuration value or default
        """
        try:
            config = self.load(config_name)
        except FileNotFoundError:
            if required:
                raise
            logger.warning(f"Config {config_name} not found, using default for {key}")
            return default

        if key in config:
            return config[key]

        if required:
            raise KeyError(f"Required key '{key}' not found in config '{config_name}'")

        return default

    def get_nested(
        self,
        config_name: str,
        *keys: str,
        default: Any = None
    ) -> Any:
        """
        Get a nested value from a config file.

        Example:
            loader.get_nested("layout", "forces", "link_distance")
        """
        try:
            config = self.load(config_name)
        except FileNotFoundError:
            return default

        value = config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def clear_cache(self, name: Optional[str] = None) -> None:
        """
        Clear cached configurations.

        Args:
            name: Specific config to clear, or None to clear all
        """
        if name is None:
            self._cache.clear()
            logger.debug("Cleared all config cache")
        elif name in self._cache:
            del self._cache[name]
            logger.debug(f"Cleared config cache: {name}")

    def list_configs(self) -> list:
        """List all available config files."""
        if not self.config_dir.exists():
            return []
        return sorted(p.stem for p in self.config_dir.glob("*.yaml"))


# Module-level convenience functions

_loader: Optional[ConfigLoader] = None


def _get_loader() -> ConfigLoader:
    """Get the global ConfigLoader instance."""
    global _loader
    if _loader is None:
        _loader = ConfigLoader()
    return _loader


def get_config(name: str, reload: bool = False) -> Dict[str, Any]:
    """
    Load a configuration by name.

    Args:
        name: Config name (e.g., "network", "layout")
        reload: Force reload from disk

    Returns:
        Configuration dictionary
    """
    return _get_loader().load(name, reload=reload)


def get_optional_config(name: str) -> Dict[str, Any]:
    """Load a configuration by name, returning {} when the file is missing."""
    try:
        return get_config(name)
    except FileNotFoundError:
        logger.warning(f"Config {name} not found, using built-in defaults")
        return {}


def get_network_config() -> Dict[str, Any]:
    """Load graph-building defaults (window, top_k, min_r)."""
    return get_optional_config("network")


def get_layout_config() -> Dict[str, Any]:
    """Load force simulation and viewport defaults."""
    return get_optional_config("layout")


def get_overlay_config() -> Dict[str, Any]:
    """Load interaction overlay opacity defaults."""
    return get_optional_config("overlay")
