"""
Geometry Calculator Module

Conversions between world meters and session units, and rectangle
area/footprint calculations.
"""

import logging
from typing import Iterable

import numpy as np
from shapely.geometry import Point, Polygon

from ..constants import INCHES_PER_METER, MM_PER_METER, Units
from ..errors import ValidationError
from .grid import transform_point

logger = logging.getLogger(__name__)


def _unit_factor(units: str) -> float:
    if units == Units.IMPERIAL:
        return INCHES_PER_METER
    if units == Units.METRIC:
        return MM_PER_METER
    raise ValidationError(f"Unknown units '{units}'")


def convert_from_meters(meters: float, units: str) -> float:
    """
    Convert meters to session units.

    Args:
        meters: Value in meters
        units: "imperial" (inches) or "metric" (mm)

    Returns:
        Converted value
    """
    return meters * _unit_factor(units)


def convert_to_meters(value: float, units: str) -> float:
    """Convert a value in session units to meters."""
    return value / _unit_factor(units)


def rectangle_area(width: float, length: float) -> float:
    """Area of the rectangle in square meters."""
    return width * length


def rectangle_footprint(
    transform: np.ndarray,
    width: float,
    length: float
) -> Polygon:
    """
    Floor footprint of the rectangle as a shapely Polygon in world (x, z).

    Args:
        transform: 4x4 rectangle transform
        width: Width in meters (local x)
        length: Length in meters (local z)

    Returns:
        Polygon with the four world corners
    """
    half_w = width / 2.0
    half_l = length / 2.0
    local_corners = [
        (-half_w, 0.0, -half_l),
        (half_w, 0.0, -half_l),
        (half_w, 0.0, half_l),
        (-half_w, 0.0, half_l),
    ]

    world_corners = [transform_point(corner, transform) for corner in local_corners]
    return Polygon([(c[0], c[2]) for c in world_corners])


def points_on_footprint(
    footprint: Polygon,
    world_positions: Iterable,
    tolerance_m: float = 1e-6
) -> bool:
    """True if every world position lies inside or on the footprint."""
    region = footprint.buffer(tolerance_m)
    for position in world_positions:
        if not region.covers(Point(position[0], position[2])):
            logger.debug(f"Position {tuple(position)} lies outside the rectangle footprint")
            return False
    return True
