"""
PMZ engine configuration management.

Loads the JSON configuration files in this directory and validates each
against its JSON Schema.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema

logger = logging.getLogger(__name__)

CONFIG_FILES = {
    'sessions': 'sessions.json',
    'engine': 'engine.json',
}


class ConfigLoader:
    """Loads and manages engine configurations."""

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize configuration loader.

        Args:
            config_dir: Directory containing configuration files; defaults
                to the directory of this package
        """
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).resolve().parent
        self.configs: Dict[str, Dict[str, Any]] = {}
        self._load_all_configs()

    def _load_all_configs(self) -> None:
        """Load all configuration files."""
        for config_name in CONFIG_FILES:
            self.configs[config_name] = self._load(config_name)

    def _load(self, config_name: str) -> Dict[str, Any]:
        """
        Read and validate one configuration.

        A missing file yields an empty config so code defaults apply; an
        unreadable or invalid file is logged and also yields an empty config.
        """
        config_path = self.config_dir / CONFIG_FILES[config_name]
        if not config_path.exists():
            return {}
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
            self.validate(config_name, config)
            return config
        except (OSError, json.JSONDecodeError, jsonschema.ValidationError) as e:
            logger.warning("config_load_failed", extra={
                "config": config_name,
                "path": str(config_path),
                "error": str(e),
            })
            return {}

    def validate(self, config_name: str, config: Dict[str, Any]) -> None:
        """
        Validate a configuration dict against its schema, if one exists.

        Raises:
            jsonschema.ValidationError: If the config does not match
        """
        schema_path = self.config_dir / f'{config_name}.schema.json'
        if not schema_path.exists():
            return
        with open(schema_path, 'r', encoding='utf-8') as sf:
            schema = json.load(sf)
        jsonschema.validate(instance=config, schema=schema)

    def get_config(self, config_name: str) -> Dict[str, Any]:
        """
        Get configuration by name.

        Args:
            config_name: Name of configuration

        Returns:
            Configuration dictionary
        """
        return self.configs.get(config_name, {})

    def get_all_configs(self) -> Dict[str, Dict[str, Any]]:
        """
        Get all configurations.

        Returns:
            Dictionary of all configurations
        """
        return self.configs.copy()

    def reload_config(self, config_name: str) -> None:
        """
        Reload specific configuration.

        Args:
            config_name: Name of configuration to reload
        """
        if config_name in CONFIG_FILES:
            self.configs[config_name] = self._load(config_name)


# Global configuration loader instance
config_loader = ConfigLoader()
