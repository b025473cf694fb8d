"""
Settings Module

Loads session defaults from a YAML settings file. Keys missing from the
file fall back to the values in constants.py.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .constants import (
    DEFAULT_GRID_COLS,
    DEFAULT_GRID_ROWS,
    DEFAULT_RESOLUTION,
    DEFAULT_TOLERANCE_INCHES,
    DEFAULT_TOLERANCE_MM,
    DEFAULT_UNITS,
    Units,
)
from .calibration.unit_converter import resolution_from_string, validate_units
from .errors import ValidationError
from .geometry.grid import require_grid_dimensions
from .tolerance.engine import require_tolerance

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path(__file__).parent.parent / "config" / "settings.yaml"


@dataclass
class SessionSettings:
    """Defaults applied when starting a new session."""
    units: str = DEFAULT_UNITS
    tolerance: float = DEFAULT_TOLERANCE_INCHES
    resolution: Optional[float] = None
    rows: int = DEFAULT_GRID_ROWS
    cols: int = DEFAULT_GRID_COLS
    lidar_available: bool = False

    def validate(self) -> "SessionSettings":
        validate_units(self.units)
        require_tolerance(self.tolerance, self.units)
        require_grid_dimensions(self.rows, self.cols)
        if self.resolution is not None and self.units != Units.IMPERIAL:
            raise ValidationError("Fractional resolution applies to imperial units only")
        return self


def settings_from_dict(data: Dict[str, Any]) -> SessionSettings:
    """
    Build validated settings from a parsed settings mapping.

    Expected layout:
        session:
          units: imperial
          tolerance: 0.125
          resolution: "1/8"
        grid:
          rows: 4
          cols: 4
        lidar: false
    """
    session = data.get("session") or {}
    grid = data.get("grid") or {}

    units = session.get("units", DEFAULT_UNITS)
    default_tolerance = DEFAULT_TOLERANCE_MM if units == Units.METRIC else DEFAULT_TOLERANCE_INCHES

    resolution = None
    if units == Units.IMPERIAL:
        resolution_name = session.get("resolution", DEFAULT_RESOLUTION)
        if resolution_name:
            resolution = resolution_from_string(str(resolution_name))

    settings = SessionSettings(
        units=units,
        tolerance=float(session.get("tolerance", default_tolerance)),
        resolution=resolution,
        rows=int(grid.get("rows", DEFAULT_GRID_ROWS)),
        cols=int(grid.get("cols", DEFAULT_GRID_COLS)),
        lidar_available=bool(data.get("lidar", False)),
    )
    return settings.validate()


def load_settings(path: Optional[str] = None) -> SessionSettings:
    """
    Load settings from a YAML file.

    Without a path the bundled config/settings.yaml is used if present,
    otherwise built-in defaults.

    Raises:
        ValidationError: If the file is malformed or values are out of bounds
    """
    settings_path = Path(path) if path else DEFAULT_SETTINGS_PATH

    if not settings_path.exists():
        if path:
            raise ValidationError(f"Settings file not found: {settings_path}")
        logger.debug("No settings file; using built-in defaults")
        return settings_from_dict({})

    try:
        with open(settings_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid settings file {settings_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError(f"Settings file {settings_path} must contain a mapping")

    logger.debug(f"Loaded settings from {settings_path}")
    return settings_from_dict(data)
