"""Simple YAML configuration loader for QariMatch."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..models.audio import CaptureProfile

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "audio": {
        "sample_rate": 44100,
        "channels": 1,
        "echo_cancellation": True,
        "noise_suppression": True,
        "auto_gain_control": True,
        "flush_interval_ms": 100,
        "fft_size": 256,
        "smoothing": 0.8,
    },
    "recording": {
        "max_duration_seconds": 120,
        "timer_interval_seconds": 1.0,
    },
    "ui": {
        "refresh_rate_hz": 60,
    },
    "silence": {
        "silent_threshold": 0.01,
        "mean_floor": 0.005,
        "max_silent_fraction": 0.8,
    },
    "analysis": {
        "backend": "sample",
        "endpoint": None,
        "api_key": None,
        "sample_delay_seconds": 0.0,
    },
    "progress": {
        "min_increment": 2.0,
        "max_increment": 10.0,
        "interval_ms": 200,
        "completion_delay_ms": 500,
    },
    "storage": {
        "export_directory": "recordings",
    },
    "logging": {
        "level": "INFO",
        "file_path": "logs/qarimatch.log",
        "console_output": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class QariMatchConfig:
    """QariMatch configuration loader."""

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults are used
                        and relative paths resolve against the working directory.
            overrides: Optional nested dict applied on top of the file contents
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        self.config = self._load_config()
        if overrides:
            self.config = _merge(self.config, overrides)

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file over the defaults."""
        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            config = copy.deepcopy(DEFAULT_CONFIG)
            self._resolve_paths(config, Path.cwd())
            return config

        logger.info(f"Loading configuration from: {self.config_file}")
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}")

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")

        config = _merge(DEFAULT_CONFIG, loaded)

        # Resolve relative paths
        self._resolve_paths(config, self.config_file.parent)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any], base_dir: Path) -> None:
        """Resolve relative paths in configuration relative to base_dir."""
        export_dir = config['storage']['export_directory']
        if export_dir and not os.path.isabs(export_dir):
            config['storage']['export_directory'] = str(base_dir / export_dir)

        log_path = config['logging']['file_path']
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(base_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'silence.mean_floor').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'analysis.backend')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_capture_profile(self) -> CaptureProfile:
        """Build the device capture profile from the audio section."""
        return CaptureProfile(
            sample_rate=int(self.get('audio.sample_rate')),
            channels=int(self.get('audio.channels')),
            echo_cancellation=bool(self.get('audio.echo_cancellation')),
            noise_suppression=bool(self.get('audio.noise_suppression')),
            auto_gain_control=bool(self.get('audio.auto_gain_control')),
        )

    def get_export_directory(self) -> str:
        """Get export directory path."""
        export_dir = self.get('storage.export_directory', 'recordings')
        return str(Path(export_dir).absolute())
