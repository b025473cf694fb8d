"""
Ruler Calibration Module

Derives a pixel-to-unit calibration from recognized ruler markings.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ..constants import (
    CONFIDENCE_BASE,
    CONFIDENCE_CONSISTENCY_BONUS,
    CONFIDENCE_MARKING_CAP,
    CONFIDENCE_OCR_WEIGHT,
    CONFIDENCE_PER_MARKING,
    MIN_MARKINGS_FOR_CALIBRATION,
    Axis,
)
from ..errors import (
    CalibrationRequiredError,
    InsufficientMarkingsError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def project_pixel(pixel: Tuple[float, float], axis: str) -> float:
    """Position of a pixel along the ruler axis (y for vertical, x for horizontal)."""
    if axis == Axis.HORIZONTAL:
        return float(pixel[0])
    return float(pixel[1])


@dataclass
class RulerMarking:
    """A numeric label recognized on the ruler."""
    value: float
    text: str
    confidence: float  # OCR confidence, 0-1
    pixel_position: Tuple[float, float]  # (x, y) image pixels

    def position_along(self, axis: str) -> float:
        return project_pixel(self.pixel_position, axis)


@dataclass(frozen=True)
class Calibration:
    """Pixel scale and zero offset along the ruler axis."""
    axis: str
    pixel_per_unit: float
    zero_pixel_offset: float

    def __post_init__(self):
        if self.axis not in (Axis.VERTICAL, Axis.HORIZONTAL):
            raise ValidationError(f"Unknown ruler axis '{self.axis}'")
        if not self.pixel_per_unit > 0:
            raise ValidationError(
                f"pixel_per_unit must be positive, got {self.pixel_per_unit}"
            )

    def pixel_to_value(self, pixel: Tuple[float, float]) -> float:
        """Convert an image pixel to a ruler reading in session units."""
        position = project_pixel(pixel, self.axis)
        return (position - self.zero_pixel_offset) / self.pixel_per_unit

    def value_to_pixel(self, value: float) -> float:
        """Pixel position along the axis where the ruler reads value."""
        return self.zero_pixel_offset + value * self.pixel_per_unit

    def to_dict(self) -> dict:
        return {
            "axis": self.axis,
            "pixel_per_unit": self.pixel_per_unit,
            "zero_pixel_offset": self.zero_pixel_offset,
        }


def sort_markings(markings: Sequence[RulerMarking]) -> List[RulerMarking]:
    """Markings ordered by their recognized value, lowest first."""
    return sorted(markings, key=lambda m: m.value)


def derive_calibration(
    markings: Sequence[RulerMarking],
    axis: str = Axis.VERTICAL
) -> Calibration:
    """
    Derive a calibration from the two lowest-valued markings.

    pixel_per_unit = |pos2 - pos1| / |value2 - value1|
    zero_pixel_offset = pos1 - value1 * pixel_per_unit

    Args:
        markings: Recognized ruler markings
        axis: Ruler axis in the image

    Returns:
        Calibration

    Raises:
        InsufficientMarkingsError: Fewer than two markings
        CalibrationRequiredError: The two markings cannot define a scale
    """
    if len(markings) < MIN_MARKINGS_FOR_CALIBRATION:
        raise InsufficientMarkingsError(
            f"Not enough ruler markings detected ({len(markings)} found, "
            f"{MIN_MARKINGS_FOR_CALIBRATION} required)"
        )

    ordered = sort_markings(markings)
    marking1, marking2 = ordered[0], ordered[1]

    pixel_distance = abs(marking2.position_along(axis) - marking1.position_along(axis))
    unit_distance = abs(marking2.value - marking1.value)

    if unit_distance == 0 or pixel_distance == 0:
        raise CalibrationRequiredError(
            f"Markings '{marking1.text}' and '{marking2.text}' do not define a scale"
        )

    pixel_per_unit = pixel_distance / unit_distance
    zero_pixel_offset = marking1.position_along(axis) - marking1.value * pixel_per_unit

    logger.debug(
        f"Calibration: {pixel_distance:.1f} px / {unit_distance:.3f} units = "
        f"{pixel_per_unit:.3f} px/unit, zero at {zero_pixel_offset:.1f} px"
    )

    return Calibration(
        axis=axis,
        pixel_per_unit=pixel_per_unit,
        zero_pixel_offset=zero_pixel_offset,
    )


def calculate_confidence(markings: Sequence[RulerMarking]) -> float:
    """
    Heuristic confidence for a vision reading, clamped to [0, 1].

    0.5 base, +0.1 per marking (max 0.3), +0.2 x mean OCR confidence,
    +0.1 for scale consistency.
    """
    confidence = CONFIDENCE_BASE
    confidence += min(len(markings) * CONFIDENCE_PER_MARKING, CONFIDENCE_MARKING_CAP)

    if markings:
        avg_marking_confidence = sum(m.confidence for m in markings) / len(markings)
        confidence += avg_marking_confidence * CONFIDENCE_OCR_WEIGHT

    confidence += CONFIDENCE_CONSISTENCY_BONUS

    return min(max(confidence, 0.0), 1.0)
