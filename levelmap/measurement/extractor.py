"""
Measurement Extractor Module

Turns a laser-dot pixel plus recognized ruler markings (or a cached
calibration) into a calibrated reading with a confidence score.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from ..calibration.ruler_calibration import (
    Calibration,
    RulerMarking,
    calculate_confidence,
    derive_calibration,
)
from ..calibration.unit_converter import format_measurement, parse_measurement
from ..constants import (
    CALIBRATION_TAP_THRESHOLD,
    MANUAL_CONFIDENCE,
    Axis,
    MeasurementMethod,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MeasurementResult:
    """A single reading ready for the capture UI to accept, edit or rescan."""
    value: float
    display: str
    confidence: float  # 0-1
    method: str  # MeasurementMethod.VISION or MeasurementMethod.MANUAL
    needs_calibration_tap: bool
    calibration: Optional[Calibration] = None

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "display": self.display,
            "confidence": round(self.confidence, 4),
            "method": self.method,
            "needs_calibration_tap": self.needs_calibration_tap,
            "calibration": self.calibration.to_dict() if self.calibration else None,
        }


def extract_measurement(
    laser_pixel: Tuple[float, float],
    markings: Sequence[RulerMarking],
    units: str,
    resolution: Optional[float] = None,
    prior_calibration: Optional[Calibration] = None,
    axis: str = Axis.VERTICAL
) -> MeasurementResult:
    """
    Calculate a ruler reading at the laser dot.

    A prior calibration, when given, is used as-is and markings only feed
    the confidence score. Otherwise a fresh calibration is derived from the
    two lowest markings.

    Args:
        laser_pixel: (x, y) pixel of the laser dot
        markings: Recognized ruler markings
        units: "imperial" or "metric"
        resolution: Fractional resolution for imperial display
        prior_calibration: Cached calibration from an earlier photo
        axis: Ruler axis when deriving a fresh calibration

    Returns:
        MeasurementResult

    Raises:
        InsufficientMarkingsError: No calibration and fewer than two markings
        CalibrationRequiredError: Markings cannot define a scale
    """
    if prior_calibration is not None:
        calibration = prior_calibration
        logger.debug("Using cached calibration")
    else:
        calibration = derive_calibration(markings, axis)

    value = calibration.pixel_to_value(laser_pixel)
    confidence = calculate_confidence(markings)
    needs_tap = confidence < CALIBRATION_TAP_THRESHOLD

    if needs_tap:
        logger.warning(f"Low confidence reading ({confidence:.2f}); calibration tap suggested")

    result = MeasurementResult(
        value=value,
        display=format_measurement(value, units, resolution),
        confidence=confidence,
        method=MeasurementMethod.VISION,
        needs_calibration_tap=needs_tap,
        calibration=calibration,
    )

    logger.debug(f"Reading {result.display} (confidence {confidence:.2f})")
    return result


def manual_result(
    text: str,
    units: str,
    resolution: Optional[float] = None
) -> MeasurementResult:
    """
    Build a result from technician-entered text.

    Raises:
        ParseError: If the text is malformed
    """
    value = parse_measurement(text, units)

    return MeasurementResult(
        value=value,
        display=format_measurement(value, units, resolution),
        confidence=MANUAL_CONFIDENCE,
        method=MeasurementMethod.MANUAL,
        needs_calibration_tap=False,
    )


class MeasurementExtractor:
    """
    Runs an injected vision analyzer on ruler photos and keeps the
    calibration from the first confident reading for later captures.

    The analyzer must provide analyze(image) -> VisionReading.
    """

    def __init__(self, analyzer, units: str, resolution: Optional[float] = None):
        self.analyzer = analyzer
        self.units = units
        self.resolution = resolution
        self.calibration: Optional[Calibration] = None

    def calibrate(
        self,
        markings: Sequence[RulerMarking],
        axis: str = Axis.VERTICAL
    ) -> Calibration:
        """Explicit calibration step from a set of markings."""
        self.calibration = derive_calibration(markings, axis)
        logger.info(
            f"Calibrated: {self.calibration.pixel_per_unit:.3f} px/unit "
            f"({self.calibration.axis})"
        )
        return self.calibration

    def reset_calibration(self) -> None:
        self.calibration = None

    def measure(self, image) -> MeasurementResult:
        """
        Analyze a ruler photo and return the reading.

        Detection errors from the analyzer propagate to the caller.
        """
        reading = self.analyzer.analyze(image)

        result = extract_measurement(
            reading.laser_pixel,
            reading.markings,
            self.units,
            resolution=self.resolution,
            prior_calibration=self.calibration,
            axis=reading.axis,
        )

        if self.calibration is None and not result.needs_calibration_tap:
            self.calibration = result.calibration

        return result

    def manual(self, text: str) -> MeasurementResult:
        return manual_result(text, self.units, self.resolution)
