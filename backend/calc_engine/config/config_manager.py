"""
Configuration Manager for the commission engine
Location: backend/calc_engine/config/config_manager.py
"""

import copy
import os
import yaml
import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv

CONFIG_PATH_ENV = "COMMISSION_CONFIG_PATH"
DEFAULT_CONFIG_PATH = os.path.join("config", "settings.yaml")

# Section defaults; values from the YAML file are layered on top per key
DEFAULT_CONFIG: Dict[str, Any] = {
    'logging': {
        'level': 'INFO',
        'file': None,
        'json_format': False,
    },
    'engine': {
        'resolve_condition_fields': False,
        'require_unique_business_lines': False,
    },
    'ingestion': {
        'default_business_line': 'line1',
    },
    'export': {
        'calculations_sheet': 'Calculations',
        'details_sheet': 'Details',
    },
    'server': {
        'cors_origins': ['http://localhost:3000', 'http://127.0.0.1:3000'],
    },
    'plans': [],
}


class ConfigManager:
    def __init__(self, config_path: str):
        """
        Initialize ConfigManager with the path to the configuration file.

        Args:
            config_path: Path to YAML configuration file
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        self.logger = logging.getLogger(__name__)

        self._load_config()

    @classmethod
    def from_env(cls) -> "ConfigManager":
        """
        Build a ConfigManager from ``COMMISSION_CONFIG_PATH`` (``.env`` aware).

        Falls back to ``config/settings.yaml``.
        """
        load_dotenv()
        return cls(os.getenv(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH))

    def _load_config(self) -> None:
        """
        Load configuration from YAML file and merge it over the defaults.
        """
        self.logger.info(f"Loading configuration from: {self.config_path}")

        if not os.path.exists(self.config_path):
            self.logger.error(f"Configuration file not found: {self.config_path}")
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as config_file:
                loaded = yaml.safe_load(config_file)
        except yaml.YAMLError as e:
            self.logger.exception(f"Error parsing configuration: {str(e)}")
            raise

        if not loaded:
            self.logger.warning("Configuration file is empty, using defaults")
            return
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")

        for section, values in loaded.items():
            current = self.config.get(section)
            if isinstance(current, dict) and isinstance(values, dict):
                current.update(values)
            else:
                self.config[section] = values

        self.logger.info(f"Configuration loaded successfully with sections: {list(loaded.keys())}")

    def get(self, section: str, key: Optional[str] = None, default: Any = None) -> Any:
        """
        Get configuration value by section and key.

        Args:
            section: Configuration section
            key: Configuration key (optional)
            default: Default value if key is not found

        Returns:
            Configuration value or default
        """
        if key is None:
            return self.config.get(section, default)

        section_data = self.config.get(section)
        if not isinstance(section_data, dict):
            self.logger.warning(f"Configuration value not found for [{section}].{key}")
            return default
        return section_data.get(key, default)

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get entire configuration section, or an empty dict if not found.
        """
        value = self.config.get(section)
        return value if isinstance(value, dict) else {}

    def set(self, section: str, key: str, value: Any) -> None:
        """
        Set configuration value by section and key.
        """
        if not isinstance(self.config.get(section), dict):
            self.config[section] = {}

        self.config[section][key] = value

    def save(self, output_path: Optional[str] = None) -> None:
        """
        Save configuration to YAML file.

        Args:
            output_path: Path to save configuration (uses current config path by default)
        """
        save_path = output_path or self.config_path

        try:
            self.logger.info(f"Saving configuration to: {save_path}")

            directory = os.path.dirname(save_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            with open(save_path, 'w') as config_file:
                yaml.safe_dump(self.config, config_file, default_flow_style=False, sort_keys=False)

            self.logger.info("Configuration saved successfully")

        except OSError as e:
            self.logger.exception(f"Error saving configuration: {str(e)}")
            raise
