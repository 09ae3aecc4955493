"""
Configuration management for the duotone application.
Handles loading, validating and merging JSON job files with defaults.
Job files are read-only: nothing is ever written back.
"""

import copy
import json
import numbers
from pathlib import Path
from typing import Any, Dict, Optional

from duotone_lib import (
    ColorPair,
    LevelAdjustments,
    MAX_DIMENSION,
    PaletteKind,
    RasterParams,
    RasterStyle,
    RenderMode,
    RenderSettings,
)
from duotone_utils import hex_to_rgb

__all__ = [
    'ConfigManager',
    'ConfigValidationError',
    'validate_config',
    'load_config',
    'VALID_MODES',
    'VALID_PALETTES',
    'VALID_STYLES',
]

VALID_MODES = [mode.value for mode in RenderMode]
VALID_PALETTES = [kind.value for kind in PaletteKind]
VALID_STYLES = [style.value for style in RasterStyle]
LEVEL_FIELDS = list(LevelAdjustments._fields)


class ConfigValidationError(Exception):
    """Raised when config validation fails."""
    pass


def _is_int(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_float(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _check_section(config: Dict[str, Any], name: str, errors: list) -> Optional[Dict[str, Any]]:
    section = config.get(name)
    if section is None:
        return None
    if not isinstance(section, dict):
        errors.append(f"'{name}' must be an object/dictionary")
        return None
    return section


def validate_config(config: Dict[str, Any], config_path: Path) -> Dict[str, Any]:
    """
    Validate configuration and return it with paths resolved.

    Args:
        config: Config dictionary (already merged with defaults)
        config_path: Path to config file (for resolving relative paths)

    Returns:
        Validated and normalized config

    Raises:
        ConfigValidationError: If validation fails
    """
    errors = []

    # Required fields
    for key in ("input", "output"):
        if not config.get(key):
            errors.append(f"Missing required field: '{key}'")
        elif not isinstance(config[key], str):
            errors.append(f"'{key}' must be a path string")

    mode = config.get("mode")
    if mode not in VALID_MODES:
        errors.append(f"Invalid mode: '{mode}'. Must be one of: {VALID_MODES}")

    palette = _check_section(config, "palette", errors)
    if palette is not None:
        if palette.get("kind") not in VALID_PALETTES:
            errors.append(f"Invalid palette kind: '{palette.get('kind')}'. Must be one of: {VALID_PALETTES}")
        if not isinstance(palette.get("reversed"), bool):
            errors.append("'palette.reversed' must be true or false")
        shadow, highlight = palette.get("shadow"), palette.get("highlight")
        if (shadow is None) != (highlight is None):
            errors.append("'palette.shadow' and 'palette.highlight' must be given together")
        for key, value in (("shadow", shadow), ("highlight", highlight)):
            if value is not None:
                try:
                    hex_to_rgb(value)
                except ValueError:
                    errors.append(f"'palette.{key}' must be a hex color like '#165027', got {value!r}")

    raster = _check_section(config, "raster", errors)
    if raster is not None:
        if raster.get("style") not in VALID_STYLES:
            errors.append(f"Invalid raster style: '{raster.get('style')}'. Must be one of: {VALID_STYLES}")
        cell_size = raster.get("cell_size")
        if not _is_int(cell_size) or cell_size < 1:
            errors.append("'raster.cell_size' must be an integer of at least 1")
        for key in ("brightness", "contrast"):
            value = raster.get(key)
            if not _is_float(value) or value <= 0:
                errors.append(f"'raster.{key}' must be a positive number")

    levels = _check_section(config, "levels", errors)
    if levels is not None:
        unknown = sorted(set(levels) - set(LEVEL_FIELDS))
        if unknown:
            errors.append(f"Unknown 'levels' fields: {unknown}. Allowed: {LEVEL_FIELDS}")
        for key in LEVEL_FIELDS:
            if key in levels and not _is_float(levels[key]):
                errors.append(f"'levels.{key}' must be a number")
        shadows, highlights = levels.get("shadows", 0.0), levels.get("highlights", 1.0)
        if _is_float(shadows) and _is_float(highlights) and not 0.0 <= shadows < highlights <= 1.0:
            errors.append("'levels' must satisfy 0 <= shadows < highlights <= 1")
        if _is_float(levels.get("gamma", 1.0)) and levels.get("gamma", 1.0) <= 0:
            errors.append("'levels.gamma' must be positive")

    max_dimension = config.get("max_dimension")
    if not _is_int(max_dimension) or max_dimension < 1:
        errors.append("'max_dimension' must be a positive integer")

    workers = config.get("workers")
    if workers is not None and (not _is_int(workers) or workers < 1):
        errors.append("'workers' must be a positive integer or null")

    # If any errors, raise
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  • {e}" for e in errors)
        raise ConfigValidationError(error_msg)

    # Normalize paths (resolve relative to config file)
    config_dir = config_path.parent
    for key in ("input", "output"):
        path = Path(config[key])
        if not path.is_absolute():
            path = (config_dir / path).resolve()
        config[key] = str(path)

    if not Path(config["input"]).exists():
        raise ConfigValidationError(f"Input file/directory not found: {config['input']}")

    return config


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load and validate configuration from JSON file.

    Args:
        config_path: Path to JSON config file

    Returns:
        Validated config dictionary, merged with defaults

    Raises:
        ConfigValidationError: If validation fails
    """
    return ConfigManager(config_path).config


class ConfigManager:
    """Loads a JSON job file and exposes it merged over the defaults."""

    DEFAULT_CONFIG = {
        "input": None,
        "output": None,
        "mode": RenderMode.CONTINUOUS.value,
        "palette": {
            "kind": PaletteKind.OPTIMIZED.value,
            "reversed": False,
            "shadow": None,
            "highlight": None
        },
        "raster": {
            "style": RasterStyle.ROTATED_JOINED.value,
            "cell_size": 8,
            "brightness": 1.3,
            "contrast": 1.0
        },
        # None means the raster style's own clip points with default gamma/lift
        "levels": None,
        "max_dimension": MAX_DIMENSION,
        "workers": None
    }

    def __init__(self, config_file):
        """
        Initialize config manager.

        Args:
            config_file: Path to JSON config file

        Raises:
            ConfigValidationError: If the file is unreadable or invalid
        """
        self.config_file = Path(config_file)
        self.config = self._load_config()

    def _load_config(self) -> Dict:
        """Load config from file, merge with defaults and validate."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid JSON in config file:\n  Line {e.lineno}: {e.msg}")
        except OSError as e:
            raise ConfigValidationError(f"Failed to load config file: {e}")

        if not isinstance(loaded, dict):
            raise ConfigValidationError("Config file must contain a JSON object")

        merged = self._merge_configs(copy.deepcopy(self.DEFAULT_CONFIG), loaded)
        return validate_config(merged, self.config_file)

    def _merge_configs(self, default: Dict, loaded: Dict) -> Dict:
        """
        Recursively merge loaded config with defaults.
        Ensures all default keys exist even if not in loaded config.
        Keys starting with '_' are comments and are dropped.
        """
        for key, value in loaded.items():
            if key.startswith('_'):
                continue
            if isinstance(default.get(key), dict) and isinstance(value, dict):
                default[key] = self._merge_configs(default[key], value)
            else:
                default[key] = value
        return default

    def get(self, *keys: str, default: Any = None) -> Any:
        """
        Get config value by nested keys.

        Args:
            *keys: Nested keys (e.g., "raster", "cell_size")
            default: Default value if key not found

        Returns:
            Config value or default

        Example:
            config.get("raster", "cell_size")  # Returns 8
        """
        value = self.config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def build_settings(self) -> RenderSettings:
        """Translate the validated config into engine render settings."""
        raster = RasterParams(
            cell_size=self.get("raster", "cell_size"),
            brightness=self.get("raster", "brightness"),
            contrast=self.get("raster", "contrast"),
            style=self.get("raster", "style"),
        )
        levels = self.get("levels")
        if levels:
            raster.levels = raster.resolved_levels()._replace(**levels)

        custom = None
        if self.get("palette", "shadow") is not None:
            custom = ColorPair(hex_to_rgb(self.get("palette", "shadow")),
                               hex_to_rgb(self.get("palette", "highlight")))

        return RenderSettings(
            mode=self.get("mode"),
            palette=self.get("palette", "kind"),
            reversed=self.get("palette", "reversed"),
            raster=raster,
            custom_colors=custom,
            max_dimension=self.get("max_dimension"),
        )
