"""
Configuration manager for speed fusion sessions.
"""

import copy
import json
import logging
import os
from typing import Any, Dict, Optional

from .math import constants

logger = logging.getLogger(__name__)


class Config:
    """Configuration manager for the speed fusion system."""

    DEFAULT_CONFIG = {
        # Scalar Kalman filter
        "kalman": {
            "process_noise": constants.PROCESS_NOISE,
            "measurement_noise_base": constants.MEASUREMENT_NOISE_BASE,
            "initial_estimate_error": constants.INITIAL_ESTIMATE_ERROR
        },

        # GPS jump rejection
        "validation": {
            "jump_threshold_m": constants.GPS_JUMP_THRESHOLD_M,
            "speed_margin_factor": constants.SPEED_MARGIN_FACTOR,
            "speed_margin_offset": constants.SPEED_MARGIN_OFFSET,
            "unknown_speed_limit": constants.UNKNOWN_SPEED_LIMIT,
            "min_time_gap_s": constants.MIN_JUDGEABLE_GAP_S,
            "history_capacity": constants.GEO_HISTORY_CAPACITY
        },

        "smoothing": {
            "window_ms": constants.SMOOTHING_WINDOW_MS
        },

        # Motion calibration
        "calibration": {
            "samples": constants.CALIBRATION_SAMPLES,
            "threshold_factor": constants.NOISE_THRESHOLD_FACTOR,
            "default_noise_threshold": constants.DEFAULT_NOISE_THRESHOLD
        },

        # Motion detection
        "motion": {
            "movement_threshold": constants.MOVEMENT_THRESHOLD,
            "inertial_movement_threshold": constants.INERTIAL_MOVEMENT_THRESHOLD,
            "speed_buffer_size": constants.INERTIAL_SPEED_BUFFER
        },

        "confidence": {
            "high_accuracy_m": constants.HIGH_CONFIDENCE_ACCURACY_M,
            "medium_accuracy_m": constants.MEDIUM_CONFIDENCE_ACCURACY_M
        },

        # Heuristic, not physics: share of the raw inertial magnitude in the
        # acceleration reported while calibrating
        "acceleration": {
            "inertial_blend_weight": constants.INERTIAL_BLEND_WEIGHT
        },

        "logging": {
            "enable_logging": True,
            "log_file": None,
            "log_level": "INFO"
        }
    }

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to a JSON configuration file. When given and
                missing, the defaults are written there.
        """
        self.config_file = config_file
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file is None:
            return

        # Load configuration from file if it exists
        if os.path.exists(config_file):
            self.load_config()
        else:
            logger.info("Config file %s not found, using defaults", config_file)
            self.save_config()  # Create default config file

    def load_config(self) -> bool:
        """
        Load configuration from file.

        Returns:
            True if loaded successfully
        """
        try:
            with open(self.config_file, 'r') as f:
                file_config = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load config %s: %s", self.config_file, e)
            return False

        # Merge with defaults (file config overrides defaults)
        self._merge_config(self.config, file_config)

        logger.info("Configuration loaded from %s", self.config_file)
        return True

    def save_config(self) -> bool:
        """
        Save current configuration to file.

        Returns:
            True if saved successfully
        """
        try:
            with open(self.config_file, 'w') as f:
                json.dump(self.config, f, indent=2)
        except (OSError, TypeError) as e:
            logger.error("Failed to save config %s: %s", self.config_file, e)
            return False

        logger.info("Configuration saved to %s", self.config_file)
        return True

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]):
        """Recursively merge configuration dictionaries."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default=None):
        """Get configuration value with optional default."""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """Set configuration value."""
        keys = key.split('.')
        config = self.config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def configure_logging(self):
        """Apply the logging section to the root logger."""
        if not self.enable_logging:
            logging.disable(logging.CRITICAL)
            return

        handlers = [logging.StreamHandler()]
        if self.log_file:
            handlers.append(logging.FileHandler(self.log_file))

        logging.basicConfig(
            level=getattr(logging, str(self.log_level).upper(), logging.INFO),
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
            handlers=handlers,
        )

    # Property accessors for common configuration values
    @property
    def kalman(self) -> Dict[str, float]:
        return self.config["kalman"]

    @property
    def validation(self) -> Dict[str, float]:
        return self.config["validation"]

    @property
    def smoothing(self) -> Dict[str, int]:
        return self.config["smoothing"]

    @property
    def calibration(self) -> Dict[str, float]:
        return self.config["calibration"]

    @property
    def motion(self) -> Dict[str, float]:
        return self.config["motion"]

    @property
    def confidence(self) -> Dict[str, float]:
        return self.config["confidence"]

    @property
    def inertial_blend_weight(self) -> float:
        return self.config["acceleration"]["inertial_blend_weight"]

    @property
    def enable_logging(self) -> bool:
        return self.config["logging"]["enable_logging"]

    @property
    def log_file(self) -> Optional[str]:
        return self.config["logging"]["log_file"]

    @property
    def log_level(self) -> str:
        return self.config["logging"]["log_level"]

    def print_config(self):
        """Print current configuration."""
        print("=== Speed Fusion Configuration ===")
        print(json.dumps(self.config, indent=2))
