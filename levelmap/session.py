"""
Session Geometry Module

Immutable description of a measurement session: rectangle, grid size,
units, tolerance and resolution.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence

import numpy as np

from .constants import RESOLUTION_NAMES, Units
from .calibration.unit_converter import validate_units
from .errors import ValidationError
from .geometry.calculator import rectangle_area
from .geometry.grid import (
    calculate_rectangle_dimensions,
    create_rectangle_transform,
    require_grid_dimensions,
)
from .tolerance.engine import require_tolerance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionGeometry:
    """
    Rectangle and grid settings for one session.

    Validated on construction. To change the grid, build a new instance
    and regenerate the points.
    """
    rows: int
    cols: int
    units: str
    tolerance: float
    width: float = 0.0  # meters
    length: float = 0.0  # meters
    resolution: Optional[float] = None  # imperial only
    lidar_available: bool = False
    transform: np.ndarray = field(default_factory=lambda: np.identity(4), compare=False)
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        validate_units(self.units)
        require_grid_dimensions(self.rows, self.cols)
        require_tolerance(self.tolerance, self.units)

        if self.width < 0 or self.length < 0:
            raise ValidationError(
                f"Rectangle dimensions must be non-negative: {self.width} x {self.length}"
            )

        if self.resolution is not None:
            if self.units != Units.IMPERIAL:
                raise ValidationError("Fractional resolution applies to imperial units only")
            if self.resolution not in RESOLUTION_NAMES.values():
                raise ValidationError(f"Unsupported resolution {self.resolution}")

        transform = np.asarray(self.transform, dtype=float)
        if transform.shape != (4, 4):
            raise ValidationError(f"Transform must be 4x4, got {transform.shape}")
        object.__setattr__(self, "transform", transform)

    @classmethod
    def from_corners(
        cls,
        corner_a: Sequence[float],
        corner_b: Sequence[float],
        rows: int,
        cols: int,
        units: str,
        tolerance: float,
        resolution: Optional[float] = None,
        lidar_available: bool = False,
        session_id: Optional[str] = None,
    ) -> "SessionGeometry":
        """Build session geometry from two picked floor corners."""
        transform = create_rectangle_transform(corner_a, corner_b)
        width, length = calculate_rectangle_dimensions(corner_a, corner_b)

        logger.info(f"Rectangle {width:.3f} m x {length:.3f} m, grid {rows}x{cols}")

        kwargs = {}
        if session_id:
            kwargs["session_id"] = session_id

        return cls(
            rows=rows,
            cols=cols,
            units=units,
            tolerance=tolerance,
            width=width,
            length=length,
            resolution=resolution,
            lidar_available=lidar_available,
            transform=transform,
            **kwargs,
        )

    @property
    def area(self) -> float:
        return rectangle_area(self.width, self.length)

    @property
    def resolution_name(self) -> Optional[str]:
        """Resolution as its fraction name ("1/8"), or None."""
        for name, value in RESOLUTION_NAMES.items():
            if value == self.resolution:
                return name
        return None

    def to_export_record(self) -> Dict[str, Any]:
        """Session-level record handed to persistence and export."""
        return {
            "units": self.units,
            "tolerance": self.tolerance,
            "rows": self.rows,
            "cols": self.cols,
            "rectWidth": self.width,
            "rectLength": self.length,
            "resolution": self.resolution_name,
            "lidarAvailable": self.lidar_available,
        }
