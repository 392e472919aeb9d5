# wifi_heatmap/config_manager.py

import json
import math
import os
import tempfile

from .color_mapper import SCHEME_BANDS, SCHEME_HSL


MIN_SCAN_INTERVAL_MS = 500
MAX_SCAN_INTERVAL_MS = 60000


class ConfigManager:
    """
    Persistent key/value settings stored as one JSON object on disk.
    Keys that are missing from the file take the SurveySettings defaults.
    """
    def __init__(self, config_file_path):
        """
        Args:
            config_file_path (str): Location of the JSON file; its directory is
                created on the first save.
        """
        self.config_file_path = config_file_path
        self.config = self._read()

    def _read(self):
        if not os.path.exists(self.config_file_path):
            return {}
        try:
            with open(self.config_file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError:
            print(f"Warning: Configuration file '{self.config_file_path}' is malformed. Using defaults.")
            return {}
        except OSError as e:
            print(f"Error loading config file '{self.config_file_path}': {e}")
            return {}
        if not isinstance(data, dict):
            print(f"Warning: Configuration file '{self.config_file_path}' does not hold an object. Using defaults.")
            return {}
        return data

    def _write(self):
        """Write to a temporary file beside the config, then swap it in."""
        config_dir = os.path.dirname(self.config_file_path) or '.'
        try:
            os.makedirs(config_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix='.config-', suffix='.json', dir=config_dir)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=4)
            os.replace(tmp_path, self.config_file_path)
        except OSError as e:
            print(f"Error saving config file '{self.config_file_path}': {e}")

    def get(self, key, default=None):
        return self.config.get(key, default)

    def set(self, key, value):
        """Store one value and save the file."""
        self.config[key] = value
        self._write()

    def update(self, values):
        """Store several values with a single save."""
        self.config.update(values)
        self._write()

    def get_all_config(self):
        """Returns a shallow copy of every stored value."""
        return dict(self.config)


class SurveySettings:
    """
    Read-only snapshot of the settings that drive a survey session.

    Sessions never write settings back; a changed snapshot is pushed to a
    running session through CaptureSession.apply_settings.
    """
    def __init__(self, sensitivity=50.0, high_accuracy=True, scan_interval_ms=5000,
                 max_distance=50.0, cell_size=10.0, opacity=0.7, color_scheme=SCHEME_BANDS,
                 validate_bounds=False, language="en_US"):
        self.sensitivity = min(max(float(sensitivity), 0.0), 100.0)
        self.high_accuracy = bool(high_accuracy)
        self.scan_interval_ms = min(max(int(scan_interval_ms), MIN_SCAN_INTERVAL_MS), MAX_SCAN_INTERVAL_MS)
        self.max_distance = self._checked("max_distance", max_distance, 50.0, lambda v: v >= 0)
        self.cell_size = self._checked("cell_size", cell_size, 10.0, lambda v: v > 0)
        self.opacity = self._checked("opacity", opacity, 0.7, lambda v: 0 <= v <= 1)
        if color_scheme not in (SCHEME_BANDS, SCHEME_HSL):
            print(f"Warning: Unknown color scheme '{color_scheme}', using '{SCHEME_BANDS}'")
            color_scheme = SCHEME_BANDS
        self.color_scheme = color_scheme
        self.validate_bounds = bool(validate_bounds)
        self.language = language

    @staticmethod
    def _checked(name, raw, default, valid):
        """Return raw as a float, or default with a warning when it is unusable."""
        try:
            value = float(raw)
        except (TypeError, ValueError):
            value = math.nan
        if not math.isfinite(value) or not valid(value):
            print(f"Warning: Invalid {name} {raw!r}, using {default:g}")
            return default
        return value

    def to_dict(self):
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data):
        """Create SurveySettings instance from dictionary, ignoring unknown keys."""
        defaults = cls()
        return cls(**{key: data.get(key, value) for key, value in defaults.__dict__.items()})

    @classmethod
    def from_config(cls, config_manager):
        """Create SurveySettings from the values stored in a ConfigManager."""
        return cls.from_dict(config_manager.get_all_config())

    def save_to(self, config_manager):
        config_manager.update(self.to_dict())
