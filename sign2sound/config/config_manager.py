"""
Configuration Management for Sign2Sound

Loads and provides access to configuration from config.json.
Every timing constant, confidence threshold and gesture ratio of the
recognition core can be tuned here without touching code.
Supports both plain values and the [value, description] format.
"""

import copy
import json
from typing import Dict, Any, Optional
from pathlib import Path


DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.json"


class Config:
    """
    Singleton configuration manager that loads from config.json
    """
    _instance = None
    _config_data: Dict[str, Any] = {}
    _config_path: str = ""

    def __new__(cls, *args, **kwargs):
        # Config(path) must keep working with the singleton __new__.
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration from JSON file.

        Args:
            config_path: Path to config.json. If provided, force reload from
                         that path. If None, load from the default location
                         only on first initialization.
        """
        if config_path is not None:
            self._config_path = str(config_path)
            self.reload()
            return

        if not self._config_data:
            self._config_path = str(DEFAULT_CONFIG_PATH)
            self.reload()

    def reload(self):
        """Reload configuration from file."""
        try:
            with open(self._config_path, 'r') as f:
                self._config_data = json.load(f)
            print(f"✓ Loaded configuration from {self._config_path}")
        except FileNotFoundError:
            print(f"⚠ Config file not found: {self._config_path}")
            print("  Using default values")
            self._config_data = self._get_defaults()
        except json.JSONDecodeError as e:
            print(f"⚠ Error parsing config file: {e}")
            print("  Using default values")
            self._config_data = self._get_defaults()

    def save(self) -> bool:
        """Save current configuration back to file."""
        try:
            with open(self._config_path, 'w') as f:
                json.dump(self._config_data, f, indent=2)
            print(f"✓ Saved configuration to {self._config_path}")
            return True
        except OSError as e:
            print(f"✗ Error saving config: {e}")
            return False

    def get(self, *keys, default=None) -> Any:
        """
        Get configuration value using dot notation.
        Handles both plain values and the [value, description] format.

        Examples:
            config.get('stabilization', 'hold_frames')  # Returns 15
            config.get('gestures', 'thumb', 'spread_ratio')

        Args:
            keys: Path to value (e.g., 'gestures', 'pinch', 'touch_ratio')
            default: Default value if path doesn't exist

        Returns:
            Configuration value or default
        """
        current = self._config_data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        # [value, description] pairs; a bare list (like action_map) stays a list
        if self._is_described(current):
            return current[0]

        return current

    def set(self, *keys, value):
        """
        Set configuration value using dot notation.
        An existing description is kept, so `save()` writes it back.

        Example:
            config.set('stabilization', 'hold_frames', value=20)
        """
        if len(keys) == 0:
            return

        current = self._config_data
        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        previous = current.get(keys[-1])
        if self._is_described(previous):
            current[keys[-1]] = [value, previous[1]]
        else:
            current[keys[-1]] = value

    @staticmethod
    def _is_described(value) -> bool:
        return (
            isinstance(value, list)
            and len(value) == 2
            and isinstance(value[1], str)
            and not isinstance(value[0], dict)
        )

    def _get_defaults(self) -> Dict:
        """Return default configuration values."""
        return copy.deepcopy(DEFAULTS)

    @property
    def data(self) -> Dict:
        """Get entire configuration dictionary."""
        return self._config_data


DEFAULTS: Dict[str, Any] = {
    "labels": "ABCDEFGHIKLMNOPQRSTUVWXY",
    "labels_path": None,
    "confidence_thresholds": {
        "N": 0.75,
        "M": 0.72,
        "T": 0.72,
        "S": 0.70,
        "default": 0.60
    },
    "stabilization": {
        "feature_buffer_size": 3,
        "raw_buffer_size": 5,
        "min_votes": 3,
        "hold_frames": 15,
        "fast_hold_frames": 8,
        "fast_confidence": 0.85,
        "repeat_hold_frames": 45
    },
    "gestures": {
        "buffer_size": 10,
        "cooldown_frames": 20,
        "commit_ratio": 0.7,
        "potential_ratio": 0.4,
        "smart_select": {
            "thumb_spread_ratio": 0.4,
            "extended_ratio": 1.5,
            "folded_ratio": 1.2
        },
        "thumb": {
            "spread_ratio": 0.6,
            "vertical_offset_ratio": 0.3
        },
        "pinch": {
            "touch_ratio": 0.15,
            "folded_ratio": 1.3
        },
        "open_palm": {
            "extended_ratio": 0.85,
            "spread_ratio": 0.9
        }
    },
    "arbiter": {
        "spelling_cooldown_frames": 45
    },
    "vocabulary": {
        "path": "vocab_memory.json",
        "seed_path": None,
        "n_order": 5,
        "suggestion_top_k": 3,
        "recency_seconds": 300
    },
    "action_map": [
        {"gesture": "THUMB_UP", "action": "confirm_word"},
        {"gesture": "SMART_SELECT", "action": "accept_top_suggestion"},
        {"gesture": "THUMB_DOWN", "action": "clear_or_undo"},
        {"gesture": "PINCH", "action": "backspace"},
        {"gesture": "OPEN_PALM", "action": "complete_sentence"}
    ],
    "classifier": {
        "weights_path": None
    },
    "camera": {
        "index": 0,
        "width": 640,
        "height": 480,
        "fps": 30
    },
    "performance": {
        "min_detection_confidence": 0.5,
        "min_tracking_confidence": 0.5,
        "model_complexity": 1
    },
    "display": {
        "show_preview": True,
        "unmirror_preview": True,
        "window_name": "Sign2Sound"
    }
}


# Global configuration instance
config = Config()


# Convenience functions for common access patterns
def get_stabilization_setting(param_name: str, default=None):
    """Get a letter stabilization parameter."""
    return config.get('stabilization', param_name, default=default)


def get_gesture_setting(*keys, default=None):
    """Get a gesture classifier / debouncer parameter."""
    return config.get('gestures', *keys, default=default)


def get_vocabulary_setting(param_name: str, default=None):
    """Get a vocabulary / prediction parameter."""
    return config.get('vocabulary', param_name, default=default)


def get_labels(cfg: Optional[Config] = None):
    """Configured label list; a JSON list at `labels_path` wins over `labels`."""
    cfg = cfg or config
    labels_path = cfg.get('labels_path')
    if labels_path:
        try:
            with open(labels_path, 'r') as f:
                loaded = json.load(f)
            if isinstance(loaded, list) and loaded:
                return [str(x) for x in loaded]
            print(f"⚠ Labels file {labels_path} is not a non-empty list, using defaults")
        except (OSError, json.JSONDecodeError) as e:
            print(f"⚠ Could not read labels file {labels_path}: {e}")
    return list(cfg.get('labels', default=DEFAULTS['labels']))


if __name__ == "__main__":
    print("\n=== Configuration Test ===\n")

    print("Stabilization:")
    print(f"  Hold frames: {get_stabilization_setting('hold_frames')}")
    print(f"  Fast hold frames: {get_stabilization_setting('fast_hold_frames')}")
    print(f"  Repeat hold frames: {get_stabilization_setting('repeat_hold_frames')}")

    print("\nGestures:")
    print(f"  Buffer size: {get_gesture_setting('buffer_size')}")
    print(f"  Cooldown frames: {get_gesture_setting('cooldown_frames')}")

    print("\nVocabulary:")
    print(f"  N-gram order: {get_vocabulary_setting('n_order')}")
    print(f"  Labels: {''.join(get_labels())}")

    print("\n✓ Configuration system working!")
