"""
Configuration Manager for BGA TM statistics
Handles loading, saving, and merging the JSON configuration with its defaults
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ('csv', 'json')


class ConfigManager:
    """Manages configuration with JSON storage"""

    def __init__(self, config_file: str = "config.json"):
        self.config_file = Path(config_file)
        self.config_data = {}
        self.load_config()

    def get_default_config(self) -> Dict[str, Any]:
        """Return default configuration structure"""
        return {
            "data_paths": {
                "parsed_data_dir": "data/parsed",
                "stats_output_dir": "data/stats"
            },
            "export_settings": {
                "format": "csv",
                "csv_delimiter": ","
            },
            "logging": {
                "level": "INFO",
                "log_file": "stats.log"
            }
        }

    def load_config(self):
        """Load configuration from file, falling back to defaults"""
        default_config = self.get_default_config()
        if not self.config_file.exists():
            self.config_data = default_config
            return

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Error loading config {self.config_file}: {e}. Using defaults.")
            self.config_data = default_config
            return

        if not isinstance(loaded, dict):
            logger.warning(f"Config {self.config_file} is not a JSON object. Using defaults.")
            self.config_data = default_config
            return

        # Merge with defaults to ensure all keys exist
        self.config_data = self._merge_configs(default_config, loaded)

        export_format = self.get_value("export_settings", "format")
        if export_format not in EXPORT_FORMATS:
            logger.warning(f"Unknown export format '{export_format}', using csv")
            self.set_value("export_settings", "format", "csv")

    def save_config(self):
        """Save current configuration to file"""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self.config_data, f, indent=2, ensure_ascii=False)
        logger.info(f"Configuration saved to {self.config_file}")

    def get_section(self, section_name: str) -> Dict[str, Any]:
        """Get a configuration section"""
        return self.config_data.get(section_name, {})

    def get_value(self, section: str, key: str, default=None):
        """Get a specific configuration value"""
        return self.config_data.get(section, {}).get(key, default)

    def set_value(self, section: str, key: str, value: Any):
        """Set a specific configuration value"""
        if section not in self.config_data:
            self.config_data[section] = {}

        self.config_data[section][key] = value

    def _merge_configs(self, default: Dict[str, Any], loaded: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge loaded config with defaults"""
        result = default.copy()

        for key, value in loaded.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result
