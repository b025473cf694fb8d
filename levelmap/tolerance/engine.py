"""
Tolerance Engine Module

Aggregates per-point readings into statistics, pass/fail flags and
heatmap classes. Statistics are derived fresh from the points every time;
functions never raise on empty input and return zeroed results instead.
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Sequence

import numpy as np

from ..constants import (
    DEFAULT_TOLERANCES_IMPERIAL,
    DEFAULT_TOLERANCES_METRIC,
    HEATMAP_NORMALIZED_CAP,
    HEATMAP_YELLOW_FACTOR,
    MAX_TOLERANCE_INCHES,
    MAX_TOLERANCE_MM,
    Units,
)
from ..errors import ValidationError
from ..geometry.calculator import convert_from_meters
from ..geometry.grid_point import GridPoint

logger = logging.getLogger(__name__)


class HeatmapColor(Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


@dataclass(frozen=True)
class ToleranceStats:
    """Summary statistics over the final values of a point set."""
    average: float = 0.0
    min: float = 0.0
    max: float = 0.0
    range: float = 0.0
    max_pairwise_delta: float = 0.0
    exceedance_count: int = 0
    total_points: int = 0
    pass_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average": self.average,
            "min": self.min,
            "max": self.max,
            "range": self.range,
            "maxPairwiseDelta": self.max_pairwise_delta,
            "exceedanceCount": self.exceedance_count,
            "totalPoints": self.total_points,
            "passRate": self.pass_rate,
        }


@dataclass(frozen=True)
class HeatmapCell:
    """Heatmap classification of one grid point."""
    point_id: str
    label: str
    deviation: float
    normalized_deviation: float
    color: HeatmapColor
    pass_fail: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pointId": self.point_id,
            "label": self.label,
            "deviation": self.deviation,
            "normalizedDeviation": self.normalized_deviation,
            "color": self.color.value,
            "passFail": self.pass_fail,
        }


def final_values(points: Sequence[GridPoint]) -> List[float]:
    """Final values of the points that have one, in point order."""
    return [p.final_value for p in points if p.final_value is not None]


def max_pairwise_delta(values: Sequence[float]) -> float:
    """
    Largest |vi - vj| over all unordered pairs.

    Quadratic in the number of values; grids are capped at 26 x 50 points.
    """
    if len(values) < 2:
        return 0.0
    arr = np.asarray(values, dtype=float)
    return float(np.abs(arr[:, None] - arr[None, :]).max())


def calculate_tolerance_stats(
    points: Sequence[GridPoint],
    tolerance: float
) -> ToleranceStats:
    """
    Calculate tolerance statistics for a set of grid points.

    Args:
        points: Grid points; those without a final value are ignored
        tolerance: Allowed deviation from the average, in session units

    Returns:
        ToleranceStats (all zero when no point has a value)
    """
    values = final_values(points)
    if not values:
        logger.debug("No measured points; returning empty statistics")
        return ToleranceStats()

    average = sum(values) / len(values)
    low = min(values)
    high = max(values)

    exceedance_count = sum(1 for v in values if abs(v - average) > tolerance)
    total = len(values)

    return ToleranceStats(
        average=average,
        min=low,
        max=high,
        range=high - low,
        max_pairwise_delta=max_pairwise_delta(values),
        exceedance_count=exceedance_count,
        total_points=total,
        pass_rate=(total - exceedance_count) / total,
    )


def calculate_height_deviations(
    points: Sequence[GridPoint],
    geometry
) -> List[GridPoint]:
    """
    Depth-sensor channel: deviation of each point's height from the mean
    height, with pass/fail against the session tolerance.

    Sets deviation_from_avg and lidar_pass_fail on copies of the points.
    The value channel's pass_fail is left untouched.

    Args:
        points: Grid points, lidar_height in meters
        geometry: Session geometry (lidar_available, units, tolerance)

    Returns:
        Updated copies of the points (inputs returned as-is without LiDAR)
    """
    if not geometry.lidar_available:
        return list(points)

    heights = [p.lidar_height for p in points if p.lidar_height is not None]
    if not heights:
        logger.debug("No LiDAR heights recorded")
        return list(points)

    average_height = sum(heights) / len(heights)

    updated = []
    for point in points:
        if point.lidar_height is None:
            updated.append(replace(point))
            continue

        deviation = point.lidar_height - average_height
        deviation_in_units = abs(convert_from_meters(deviation, geometry.units))
        updated.append(replace(
            point,
            deviation_from_avg=deviation,
            lidar_pass_fail=deviation_in_units <= geometry.tolerance,
        ))

    logger.info(f"Height deviations computed for {len(heights)} points (mean {average_height:.4f} m)")
    return updated


def calculate_pass_fail(
    points: Sequence[GridPoint],
    tolerance: float,
    units: str = Units.IMPERIAL
) -> List[GridPoint]:
    """
    Value channel: pass when |final value - average| <= tolerance.

    Points without a final value keep their previous flag.

    Returns:
        Updated copies of the points
    """
    stats = calculate_tolerance_stats(points, tolerance)

    updated = []
    for point in points:
        value = point.final_value
        if value is None:
            updated.append(replace(point))
        else:
            updated.append(replace(point, pass_fail=abs(value - stats.average) <= tolerance))

    logger.info(
        f"Pass/fail: {stats.total_points - stats.exceedance_count}/{stats.total_points} "
        f"within {tolerance} {units}"
    )
    return updated


def classify_deviation(deviation: float, tolerance: float) -> HeatmapColor:
    """Green within tolerance, yellow within 1.5x, red beyond."""
    if deviation <= tolerance:
        return HeatmapColor.GREEN
    if deviation <= tolerance * HEATMAP_YELLOW_FACTOR:
        return HeatmapColor.YELLOW
    return HeatmapColor.RED


def generate_heatmap_data(
    points: Sequence[GridPoint],
    tolerance: float,
    units: str = Units.IMPERIAL
) -> List[HeatmapCell]:
    """
    Heatmap classification for each point.

    Points without a value get zero deviation (green).

    Raises:
        ValidationError: If tolerance is not positive
    """
    if tolerance <= 0:
        raise ValidationError(f"Tolerance must be positive, got {tolerance}")

    stats = calculate_tolerance_stats(points, tolerance)

    cells = []
    for point in points:
        value = point.final_value
        deviation = abs(value - stats.average) if value is not None else 0.0

        cells.append(HeatmapCell(
            point_id=point.point_id,
            label=point.label,
            deviation=deviation,
            normalized_deviation=min(deviation / tolerance, HEATMAP_NORMALIZED_CAP),
            color=classify_deviation(deviation, tolerance),
            pass_fail=bool(point.pass_fail),
        ))

    return cells


def calculate_uncertainty(points: Sequence[GridPoint]) -> float:
    """
    Standard error of the mean of the final values.

    Sample standard deviation (n - 1) divided by sqrt(n); 0 with fewer
    than two values.
    """
    values = final_values(points)
    n = len(values)
    if n < 2:
        return 0.0

    mean = sum(values) / n
    variance = sum((v - mean) ** 2 for v in values) / (n - 1)
    return math.sqrt(variance) / math.sqrt(n)


def validate_tolerance(tolerance: float, units: str) -> bool:
    """Tolerance must be positive and at most 12 in / 300 mm."""
    if units == Units.IMPERIAL:
        return 0 < tolerance <= MAX_TOLERANCE_INCHES
    if units == Units.METRIC:
        return 0 < tolerance <= MAX_TOLERANCE_MM
    return False


def require_tolerance(tolerance: float, units: str) -> None:
    """Raise ValidationError unless the tolerance is valid for the units."""
    if not validate_tolerance(tolerance, units):
        limit = MAX_TOLERANCE_MM if units == Units.METRIC else MAX_TOLERANCE_INCHES
        raise ValidationError(
            f"Tolerance {tolerance} out of bounds for {units}: must be > 0 and <= {limit}"
        )


def default_tolerances(units: str) -> List[float]:
    """Common tolerance choices for a unit system."""
    if units == Units.METRIC:
        return list(DEFAULT_TOLERANCES_METRIC)
    return list(DEFAULT_TOLERANCES_IMPERIAL)
